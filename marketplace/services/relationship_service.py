"""
Relationship service - favorites (user -> item) and following (user -> user).

All toggles are set-membership operations: repeating one is a no-op. A
favorite toggle and the item's count recomputation run under a per-item lock
and are committed before the lock is released, so concurrent toggles in this
process cannot interleave their recomputations. Without the lock (or across
processes) the stored count converges once the last recomputation commits.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.authorization import Action, AuthorizationGuard
from marketplace.core.errors import AuthenticationError, ValidationError
from marketplace.core.locks import KeyedLock
from marketplace.core.security import Identity
from marketplace.db.models.item import Item
from marketplace.db.models.user import User
from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.repositories.relationship_repository import RelationshipRepository
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.retry import run_in_store
from marketplace.services.consistency_service import ConsistencyService

logger = logging.getLogger(__name__)


class RelationshipService:
    def __init__(
        self,
        session: AsyncSession,
        consistency: ConsistencyService | None = None,
        item_locks: KeyedLock | None = None,
        guard: AuthorizationGuard | None = None,
    ):
        self.session = session
        self.relations = RelationshipRepository(session)
        self.user_repo = UserRepository(session)
        self.item_repo = ItemRepository(session)
        self.consistency = consistency or ConsistencyService(session)
        self.item_locks = item_locks
        self.guard = guard or AuthorizationGuard()

    @asynccontextmanager
    async def _serialized(self, item_id: int) -> AsyncIterator[None]:
        if self.item_locks is None:
            yield
            return
        async with self.item_locks.hold(("item", item_id)):
            yield

    async def _acting_user(self, identity: Identity | None, user_id: int, action: Action) -> User:
        user = await self.user_repo.require(user_id)
        self.guard.ensure_allowed(identity, user, action)
        return user

    # Favorites

    async def favorite(self, user_id: int, item_id: int, identity: Identity | None) -> Item:
        """Add ``item_id`` to the user's favorites and recompute the item's count."""
        return await self._toggle_favorite(user_id, item_id, identity, add=True)

    async def unfavorite(self, user_id: int, item_id: int, identity: Identity | None) -> Item:
        return await self._toggle_favorite(user_id, item_id, identity, add=False)

    async def _toggle_favorite(self, user_id: int, item_id: int, identity: Identity | None, add: bool) -> Item:
        if identity is None:
            raise AuthenticationError()

        async def op() -> Item:
            await self._acting_user(identity, user_id, Action.TOGGLE_FAVORITE)
            item = await self.item_repo.require(item_id)
            if add:
                changed = await self.relations.add_favorite(user_id, item_id)
            else:
                changed = await self.relations.remove_favorite(user_id, item_id)
            await self.consistency.recompute_favorites_count(item_id)
            await self.session.commit()
            if changed:
                logger.info(
                    "favorite %s", "added" if add else "removed", extra={"user_id": user_id, "item_id": item_id}
                )
            return item

        async with self._serialized(item_id):
            return await run_in_store(self.session, op, label="favorite toggle")

    async def is_favorited(self, user_id: int, item_id: int) -> bool:
        return await run_in_store(self.session, lambda: self.relations.has_favorite(user_id, item_id))

    async def favorites_of(self, user_id: int) -> set[int]:
        """Ids of existing items in the user's favorites set."""
        return await run_in_store(self.session, lambda: self.relations.favorite_ids(user_id))

    # Following

    async def follow(self, user_id: int, target_id: int, identity: Identity | None) -> User:
        """Add ``target_id`` to the user's following set. Returns the target."""
        return await self._toggle_follow(user_id, target_id, identity, add=True)

    async def unfollow(self, user_id: int, target_id: int, identity: Identity | None) -> User:
        return await self._toggle_follow(user_id, target_id, identity, add=False)

    async def _toggle_follow(self, user_id: int, target_id: int, identity: Identity | None, add: bool) -> User:
        if identity is None:
            raise AuthenticationError()
        if user_id == target_id:
            raise ValidationError.for_field("profile", "cannot follow yourself")

        async def op() -> User:
            await self._acting_user(identity, user_id, Action.TOGGLE_FOLLOW)
            target = await self.user_repo.require(target_id)
            if add:
                await self.relations.add_follow(user_id, target_id)
            else:
                await self.relations.remove_follow(user_id, target_id)
            await self.session.commit()
            return target

        return await run_in_store(self.session, op, label="follow toggle")

    async def is_following(self, user_id: int, target_id: int) -> bool:
        return await run_in_store(self.session, lambda: self.relations.has_follow(user_id, target_id))

    async def following_of(self, user_id: int) -> set[int]:
        return await run_in_store(self.session, lambda: self.relations.following_ids(user_id))

    async def follower_count(self, user_id: int) -> int:
        """Computed on demand; no follower counter is stored."""
        return await run_in_store(self.session, lambda: self.relations.follower_count(user_id))
