"""
Comment repository - comments are always read in the context of their item.
"""

from sqlalchemy import delete, select
from sqlalchemy.orm import selectinload

from marketplace.db.models.comment import Comment
from marketplace.db.repositories.base_repository import BaseRepository
from marketplace.db.retry import translate_store_errors


class CommentRepository(BaseRepository[Comment]):
    resource_name = "Comment"

    def __init__(self, session):
        super().__init__(session, Comment)

    async def get_with_author(self, id: int) -> Comment | None:
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(
                select(Comment).where(Comment.id == id).options(selectinload(Comment.author))
            )
            return result.scalar_one_or_none()

    async def list_for_item(self, item_id: int) -> list[Comment]:
        """Newest first, authors loaded."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(
                select(Comment)
                .where(Comment.item_id == item_id)
                .options(selectinload(Comment.author))
                .order_by(Comment.created_at.desc(), Comment.id.desc())
            )
            return list(result.scalars().all())

    async def ids_for_item(self, item_id: int) -> set[int]:
        """The item's comment set."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(Comment.id).where(Comment.item_id == item_id))
            return set(result.scalars().all())

    async def delete_by_id(self, id: int) -> int:
        """Delete one comment; absent ids are a no-op. Returns rows removed."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(delete(Comment).where(Comment.id == id))
            return result.rowcount or 0

    async def delete_for_item(self, item_id: int) -> int:
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(delete(Comment).where(Comment.item_id == item_id))
            return result.rowcount or 0
