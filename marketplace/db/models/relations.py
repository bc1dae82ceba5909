"""
Relationship sets as association tables.

The composite primary keys make both sets duplicate-free; the check
constraint forbids self-follows at the storage level as well.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Table

from marketplace.db.base import Base

user_favorites = Table(
    "user_favorites",
    Base.metadata,
    Column("user_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("item_id", ForeignKey("items.id", ondelete="CASCADE"), primary_key=True),
    Index("ix_user_favorites_item_id", "item_id"),
)

user_follows = Table(
    "user_follows",
    Base.metadata,
    Column("follower_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("followee_id", ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    CheckConstraint("follower_id <> followee_id", name="ck_user_follows_no_self_follow"),
    Index("ix_user_follows_followee_id", "followee_id"),
)
