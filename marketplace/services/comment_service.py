"""
Comment service - comments are created against, listed for, and deleted through an item.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.authorization import Action, AuthorizationGuard
from marketplace.core.errors import NotFoundError, ValidationError
from marketplace.core.security import Identity
from marketplace.db.models.comment import Comment
from marketplace.db.repositories.comment_repository import CommentRepository
from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.retry import run_in_store
from marketplace.services.consistency_service import ConsistencyService

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(
        self,
        session: AsyncSession,
        guard: AuthorizationGuard | None = None,
        consistency: ConsistencyService | None = None,
    ):
        self.session = session
        self.comment_repo = CommentRepository(session)
        self.item_repo = ItemRepository(session)
        self.user_repo = UserRepository(session)
        self.guard = guard or AuthorizationGuard()
        self.consistency = consistency or ConsistencyService(session)

    async def create(self, identity: Identity | None, slug: str, body: str) -> Comment:
        if not body or not body.strip():
            raise ValidationError.for_field("body", "can't be blank")

        async def op() -> Comment:
            item = await self.item_repo.require_by_slug(slug)
            self.guard.ensure_allowed(identity, item, Action.CREATE_COMMENT)
            author = await self.user_repo.require(identity.user_id)
            comment = Comment(body=body.strip(), author_id=author.id, item_id=item.id)
            comment.author = author
            return await self.comment_repo.add(comment)

        comment = await run_in_store(self.session, op, label="create comment")
        logger.info("comment created", extra={"comment_id": comment.id, "item_id": comment.item_id})
        return comment

    async def get(self, comment_id: int) -> Comment:
        async def op() -> Comment:
            comment = await self.comment_repo.get_with_author(comment_id)
            if comment is None:
                raise NotFoundError("Comment", comment_id)
            return comment

        return await run_in_store(self.session, op)

    async def list_for_item(self, slug: str) -> list[Comment]:
        async def op() -> list[Comment]:
            item = await self.item_repo.require_by_slug(slug)
            return await self.comment_repo.list_for_item(item.id)

        return await run_in_store(self.session, op)

    async def delete(self, identity: Identity | None, slug: str, comment_id: int) -> None:
        """Delete through the item's path; who may do so depends on the comment delete policy."""

        async def op() -> None:
            item = await self.item_repo.require_by_slug(slug)
            comment = await self.comment_repo.get_by_id(comment_id)
            if comment is None or comment.item_id != item.id:
                raise NotFoundError("Comment", comment_id)
            self.guard.ensure_allowed(identity, comment, Action.DELETE_COMMENT, parent=item)
            await self.consistency.detach_comment(item.id, comment_id)

        await run_in_store(self.session, op, label="delete comment")
