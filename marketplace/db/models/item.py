"""
Item model - a marketplace listing owned by its seller.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, String, Text, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from marketplace.db.base import Base, utcnow

if TYPE_CHECKING:
    from marketplace.db.models.user import User


class Item(Base):
    """Item entity. ``slug`` is fixed at creation; ``favorites_count`` is maintained by recomputation."""

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("favorites_count >= 0", name="ck_items_favorites_count_non_negative"),
        Index("ix_items_seller_id_created_at", "seller_id", "created_at"),
        Index("ix_items_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(300), unique=True, index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    seller_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    favorites_count: Mapped[int] = mapped_column(nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    seller: Mapped["User"] = relationship("User", lazy="raise")
    tags: Mapped[list["ItemTag"]] = relationship(
        "ItemTag",
        order_by="ItemTag.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tag_list(self) -> list[str]:
        return [t.tag for t in self.tags]

    def set_tag_list(self, tags: list[str]) -> None:
        # Reuse rows by position: the unit of work inserts before it deletes,
        # so replacing the collection would collide on (item_id, position).
        current = list(self.tags)
        for position, tag in enumerate(tags):
            if position < len(current):
                current[position].tag = tag
            else:
                self.tags.append(ItemTag(position=position, tag=tag))
        del self.tags[len(tags):]

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, slug={self.slug})>"


class ItemTag(Base):
    """One entry of an item's ordered tag list."""

    __tablename__ = "item_tags"
    __table_args__ = (Index("ix_item_tags_tag_item_id", "tag", "item_id"),)

    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    position: Mapped[int] = mapped_column(primary_key=True)
    tag: Mapped[str] = mapped_column(String(64), nullable=False)
