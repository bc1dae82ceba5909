"""
Item repository - item data access and query optimization (SOLID: Single Responsibility).
Challenge: Database query performance; avoid N+1, use indexes.
"""

from sqlalchemy import Select, func, select, update
from sqlalchemy.orm import selectinload

from marketplace.core.errors import NotFoundError
from marketplace.db.models.item import Item, ItemTag
from marketplace.db.models.relations import user_favorites, user_follows
from marketplace.db.repositories.base_repository import BaseRepository
from marketplace.db.retry import translate_store_errors


class ItemRepository(BaseRepository[Item]):
    """Item-specific queries. Uses selectinload to avoid N+1 when loading the seller."""

    resource_name = "Item"

    def __init__(self, session):
        super().__init__(session, Item)

    async def get_by_id_with_seller(self, id: int) -> Item | None:
        """Fetch item with seller in one extra query (solves N+1 problem)."""
        return await self._one(select(Item).where(Item.id == id))

    async def get_by_slug(self, slug: str) -> Item | None:
        return await self._one(select(Item).where(Item.slug == slug))

    async def require_by_slug(self, slug: str) -> Item:
        item = await self.get_by_slug(slug)
        if item is None:
            raise NotFoundError(self.resource_name, slug)
        return item

    async def slug_exists(self, slug: str) -> bool:
        with translate_store_errors(self.resource_name):
            count = await self.session.scalar(select(func.count()).select_from(Item).where(Item.slug == slug))
            return (count or 0) > 0

    async def list_filtered(
        self,
        *,
        tag: str | None = None,
        seller_id: int | None = None,
        favorited_by: int | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Item], int]:
        """Newest-first page plus total count for the same filters."""
        stmt = select(Item)
        if tag is not None:
            stmt = stmt.where(Item.id.in_(select(ItemTag.item_id).where(ItemTag.tag == tag)))
        if seller_id is not None:
            stmt = stmt.where(Item.seller_id == seller_id)
        if favorited_by is not None:
            stmt = stmt.where(
                Item.id.in_(select(user_favorites.c.item_id).where(user_favorites.c.user_id == favorited_by))
            )
        return await self._page(stmt, skip, limit)

    async def list_feed(self, follower_id: int, skip: int = 0, limit: int = 20) -> tuple[list[Item], int]:
        """Items sold by users that ``follower_id`` follows, newest first."""
        followed = select(user_follows.c.followee_id).where(user_follows.c.follower_id == follower_id)
        return await self._page(select(Item).where(Item.seller_id.in_(followed)), skip, limit)

    async def distinct_tags(self) -> list[str]:
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(ItemTag.tag).distinct().order_by(ItemTag.tag))
            return list(result.scalars().all())

    async def stored_favorites_counts(self) -> list[tuple[int, int]]:
        """(id, favorites_count) as stored, bypassing objects cached in the session."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(Item.id, Item.favorites_count).order_by(Item.id))
            return [(row.id, row.favorites_count) for row in result]

    async def store_favorites_count(self, item_id: int, count: int) -> None:
        """Unconditional write; a loaded copy of the item is synchronized in place."""
        with translate_store_errors(self.resource_name):
            await self.session.execute(update(Item).where(Item.id == item_id).values(favorites_count=count))

    async def _one(self, stmt: Select) -> Item | None:
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(
                stmt.options(selectinload(Item.seller), selectinload(Item.tags)).execution_options(
                    populate_existing=True
                )
            )
            return result.scalar_one_or_none()

    async def _page(self, stmt: Select, skip: int, limit: int) -> tuple[list[Item], int]:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        with translate_store_errors(self.resource_name):
            total = await self.session.scalar(count_stmt) or 0
            result = await self.session.execute(
                stmt.options(selectinload(Item.seller))
                .order_by(Item.created_at.desc(), Item.id.desc())
                .offset(skip)
                .limit(limit)
            )
            return list(result.scalars().all()), total
