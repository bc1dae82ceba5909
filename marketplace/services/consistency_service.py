"""
Consistency service - denormalized aggregates and cascading deletes.

favorites_count is recomputed from scratch (COUNT over user_favorites) rather
than incremented, so any stored value can be repaired by recomputing it. The
cost is one aggregate per toggle.

Cascading deletes are idempotent: every step deletes by key and treats
already-absent rows as done, so an interrupted cascade is completed by simply
running it again (which run_in_store does on TransientError).
"""

import logging

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import NotFoundError
from marketplace.db.models.item import Item, ItemTag
from marketplace.db.repositories.comment_repository import CommentRepository
from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.repositories.relationship_repository import RelationshipRepository
from marketplace.db.retry import run_in_store, translate_store_errors

logger = logging.getLogger(__name__)


class ConsistencyService:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.item_repo = ItemRepository(session)
        self.comment_repo = CommentRepository(session)
        self.relations = RelationshipRepository(session)

    async def recompute_favorites_count(self, item_id: int) -> int:
        """Count favoriting users afresh and store the result on the item.

        The write is unconditional: a copy of the item cached in this session
        may predate another session's commit, so it is never compared against.
        """

        async def op() -> int:
            await self.item_repo.require(item_id)
            count = await self.relations.count_favorites_of_item(item_id)
            await self.item_repo.store_favorites_count(item_id, count)
            return count

        return await run_in_store(self.session, op, label="recompute favorites count")

    async def recompute_all_favorites_counts(self) -> int:
        """Repair sweep over every item. Returns how many stored counts were wrong."""

        async def op() -> int:
            corrected = 0
            for item_id, stored in await self.item_repo.stored_favorites_counts():
                count = await self.relations.count_favorites_of_item(item_id)
                if stored != count:
                    logger.warning("favorites_count drift %d -> %d", stored, count, extra={"item_id": item_id})
                    corrected += 1
                await self.item_repo.store_favorites_count(item_id, count)
            await self.session.commit()
            return corrected

        return await run_in_store(self.session, op, label="favorites sweep")

    async def cascade_delete_item(self, item_id: int) -> None:
        """Delete the item with its comments, favorite memberships and tags, then commit."""

        async def op() -> None:
            comments = await self.comment_repo.delete_for_item(item_id)
            favorites = await self.relations.remove_all_favorites_of_item(item_id)
            with translate_store_errors("Item"):
                await self.session.execute(delete(ItemTag).where(ItemTag.item_id == item_id))
                await self.session.execute(delete(Item).where(Item.id == item_id))
            await self.session.commit()
            logger.info(
                "item deleted with %d comments and %d favorites", comments, favorites, extra={"item_id": item_id}
            )

        await run_in_store(self.session, op, label="cascade delete item")

    async def detach_comment(self, item_id: int, comment_id: int) -> None:
        """Remove a comment from its item's comment set by deleting the record."""

        async def op() -> None:
            comment = await self.comment_repo.get_by_id(comment_id)
            if comment is None or comment.item_id != item_id:
                raise NotFoundError("Comment", comment_id)
            await self.comment_repo.delete_by_id(comment_id)
            logger.info("comment deleted", extra={"item_id": item_id, "comment_id": comment_id})

        await run_in_store(self.session, op, label="detach comment")
