"""
Relationship repository - membership operations on the favorites and following sets.
Design: inserts are conditional (INSERT ... SELECT ... WHERE NOT EXISTS) so a
repeated toggle is a no-op rather than a constraint violation.
"""

from sqlalchemy import Table, and_, delete, exists, func, insert, literal, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.db.models.item import Item
from marketplace.db.models.relations import user_favorites, user_follows
from marketplace.db.retry import translate_store_errors


class RelationshipRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _add(self, table: Table, left: str, right: str, left_id: int, right_id: int) -> bool:
        # Aliased so the subquery is not correlated against the INSERT target.
        existing = table.alias()
        already = exists().where(and_(existing.c[left] == left_id, existing.c[right] == right_id))
        stmt = insert(table).from_select(
            [left, right],
            select(literal(left_id), literal(right_id)).where(~already),
        )
        with translate_store_errors("Relationship"):
            result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def _remove(self, table: Table, left: str, right: str, left_id: int, right_id: int) -> bool:
        stmt = delete(table).where(and_(table.c[left] == left_id, table.c[right] == right_id))
        with translate_store_errors("Relationship"):
            result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def _contains(self, table: Table, left: str, right: str, left_id: int, right_id: int) -> bool:
        stmt = select(exists().where(and_(table.c[left] == left_id, table.c[right] == right_id)))
        with translate_store_errors("Relationship"):
            return bool(await self.session.scalar(stmt))

    # Favorites

    async def add_favorite(self, user_id: int, item_id: int) -> bool:
        """Returns True if the membership was created."""
        return await self._add(user_favorites, "user_id", "item_id", user_id, item_id)

    async def remove_favorite(self, user_id: int, item_id: int) -> bool:
        return await self._remove(user_favorites, "user_id", "item_id", user_id, item_id)

    async def has_favorite(self, user_id: int, item_id: int) -> bool:
        """Membership of an existing item; a dangling id counts as not favorited."""
        stmt = select(
            exists()
            .where(user_favorites.c.user_id == user_id)
            .where(user_favorites.c.item_id == item_id)
            .where(user_favorites.c.item_id == Item.id)
        )
        with translate_store_errors("Relationship"):
            return bool(await self.session.scalar(stmt))

    async def favorite_ids(self, user_id: int) -> set[int]:
        stmt = (
            select(user_favorites.c.item_id)
            .join(Item, Item.id == user_favorites.c.item_id)
            .where(user_favorites.c.user_id == user_id)
        )
        with translate_store_errors("Relationship"):
            return set((await self.session.execute(stmt)).scalars().all())

    async def count_favorites_of_item(self, item_id: int) -> int:
        """Fresh aggregate: how many users hold ``item_id`` in their favorites."""
        stmt = select(func.count()).select_from(user_favorites).where(user_favorites.c.item_id == item_id)
        with translate_store_errors("Relationship"):
            return int(await self.session.scalar(stmt) or 0)

    async def remove_all_favorites_of_item(self, item_id: int) -> int:
        with translate_store_errors("Relationship"):
            result = await self.session.execute(delete(user_favorites).where(user_favorites.c.item_id == item_id))
        return result.rowcount or 0

    # Following

    async def add_follow(self, follower_id: int, followee_id: int) -> bool:
        return await self._add(user_follows, "follower_id", "followee_id", follower_id, followee_id)

    async def remove_follow(self, follower_id: int, followee_id: int) -> bool:
        return await self._remove(user_follows, "follower_id", "followee_id", follower_id, followee_id)

    async def has_follow(self, follower_id: int, followee_id: int) -> bool:
        return await self._contains(user_follows, "follower_id", "followee_id", follower_id, followee_id)

    async def following_ids(self, follower_id: int) -> set[int]:
        stmt = select(user_follows.c.followee_id).where(user_follows.c.follower_id == follower_id)
        with translate_store_errors("Relationship"):
            return set((await self.session.execute(stmt)).scalars().all())

    async def follower_count(self, followee_id: int) -> int:
        stmt = select(func.count()).select_from(user_follows).where(user_follows.c.followee_id == followee_id)
        with translate_store_errors("Relationship"):
            return int(await self.session.scalar(stmt) or 0)
