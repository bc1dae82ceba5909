"""
Comment model - a note left by any user on an existing item.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Text, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base, utcnow

if TYPE_CHECKING:
    from marketplace.db.models.user import User


class Comment(Base):
    """Comment entity. ``author_id`` and ``item_id`` never change after creation."""

    __tablename__ = "comments"
    __table_args__ = (Index("ix_comments_item_id_created_at", "item_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    author: Mapped["User"] = relationship("User", lazy="raise")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, item_id={self.item_id})>"
