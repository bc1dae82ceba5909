"""
Item service - business logic for items (SOLID: Single Responsibility).
Challenge: Orchestrate repository, guard, consistency and search; keep controllers thin.
Design: Service depends on abstractions (repositories); easy to test with mocks.
"""

import logging
import re
import secrets
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config import get_settings
from marketplace.core.authorization import Action, AuthorizationGuard
from marketplace.core.errors import AuthenticationError, NotFoundError, ValidationError
from marketplace.core.security import Identity
from marketplace.db.models.item import Item
from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.retry import run_in_store
from marketplace.services.consistency_service import ConsistencyService

logger = logging.getLogger(__name__)
settings = get_settings()

UPDATABLE_FIELDS = ("title", "description", "body", "tag_list")

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    """Lowercase, ASCII-only, hyphen separated. Falls back to "item" for symbol-only titles."""
    slug = _NON_SLUG_CHARS.sub("-", title.lower()).strip("-")
    return slug[:240] or "item"


def item_to_doc(item: Item) -> dict:
    """Convert ORM model to document for Elasticsearch."""
    return {
        "id": item.id,
        "slug": item.slug,
        "title": item.title,
        "description": item.description or "",
        "body": item.body or "",
        "tag_list": item.tag_list,
        "seller_id": item.seller_id,
        "created_at": item.created_at.isoformat() if item.created_at else None,
    }


def _enqueue_index(item: Item) -> None:
    """Event-driven: send to queue instead of blocking on Elasticsearch."""
    if not settings.search_indexing_enabled:
        return
    from marketplace.queue.tasks import index_item_task

    index_item_task.delay(item_to_doc(item))


def _enqueue_removal(item_id: int) -> None:
    if not settings.search_indexing_enabled:
        return
    from marketplace.queue.tasks import remove_item_task

    remove_item_task.delay(item_id)


def _validate_tags(tags: Any) -> list[str]:
    if tags is None:
        return []
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValidationError.for_field("tagList", "must be a list of strings")
    return [t.strip() for t in tags if t.strip()]


class ItemService:
    """Handles all item use cases: CRUD, listing, feed, search indexing."""

    def __init__(
        self,
        session: AsyncSession,
        guard: AuthorizationGuard | None = None,
        consistency: ConsistencyService | None = None,
    ):
        self.session = session
        self.item_repo = ItemRepository(session)
        self.user_repo = UserRepository(session)
        self.guard = guard or AuthorizationGuard()
        self.consistency = consistency or ConsistencyService(session)

    async def _unique_slug(self, title: str) -> str:
        base = slugify(title)
        while True:
            slug = f"{base}-{secrets.token_hex(3)}"
            if not await self.item_repo.slug_exists(slug):
                return slug

    async def create(
        self,
        identity: Identity | None,
        title: str,
        description: str | None = None,
        body: str | None = None,
        tag_list: list[str] | None = None,
    ) -> Item:
        """Create an item owned by the caller. The slug is derived once, here."""
        if identity is None:
            raise AuthenticationError()
        if not title or not title.strip():
            raise ValidationError.for_field("title", "can't be blank")
        tags = _validate_tags(tag_list)

        async def op() -> Item:
            seller = await self.user_repo.require(identity.user_id)
            item = Item(
                slug=await self._unique_slug(title),
                title=title.strip(),
                description=description,
                body=body,
                seller_id=seller.id,
                favorites_count=0,
            )
            item.seller = seller
            item.set_tag_list(tags)
            await self.item_repo.add(item)
            # Reload with seller and tags loaded; lazy loads raise MissingGreenlet in async context
            return await self.item_repo.get_by_id_with_seller(item.id)

        item = await run_in_store(self.session, op, label="create item")
        logger.info("item created", extra={"item_id": item.id, "user_id": identity.user_id})
        _enqueue_index(item)
        return item

    async def get(self, item_id: int) -> Item:
        async def op() -> Item:
            item = await self.item_repo.get_by_id_with_seller(item_id)
            if item is None:
                raise NotFoundError("Item", item_id)
            return item

        return await run_in_store(self.session, op)

    async def get_by_slug(self, slug: str) -> Item:
        return await run_in_store(self.session, lambda: self.item_repo.require_by_slug(slug))

    async def list_items(
        self,
        *,
        tag: str | None = None,
        seller: str | None = None,
        favorited: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Item], int]:
        """Filter by tag, seller username, or favoriting username. Unknown usernames match nothing."""

        async def op() -> tuple[list[Item], int]:
            seller_id = favorited_by = None
            if seller is not None:
                seller_user = await self.user_repo.get_by_username(seller)
                if seller_user is None:
                    return [], 0
                seller_id = seller_user.id
            if favorited is not None:
                fan = await self.user_repo.get_by_username(favorited)
                if fan is None:
                    return [], 0
                favorited_by = fan.id
            return await self.item_repo.list_filtered(
                tag=tag, seller_id=seller_id, favorited_by=favorited_by, skip=skip, limit=limit
            )

        return await run_in_store(self.session, op)

    async def feed(self, identity: Identity, skip: int = 0, limit: int = 20) -> tuple[list[Item], int]:
        return await run_in_store(self.session, lambda: self.item_repo.list_feed(identity.user_id, skip, limit))

    async def tags(self) -> list[str]:
        return await run_in_store(self.session, self.item_repo.distinct_tags)

    async def update(self, identity: Identity | None, slug: str, changes: dict[str, Any]) -> Item:
        """Seller-only partial update. The slug is kept even when the title changes."""
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError.for_field(sorted(unknown)[0], "cannot be updated")

        async def op() -> Item:
            item = await self.item_repo.require_by_slug(slug)
            self.guard.ensure_allowed(identity, item, Action.UPDATE_ITEM)
            if "title" in changes:
                if not changes["title"] or not str(changes["title"]).strip():
                    raise ValidationError.for_field("title", "can't be blank")
                item.title = str(changes["title"]).strip()
            if "description" in changes:
                item.description = changes["description"]
            if "body" in changes:
                item.body = changes["body"]
            if "tag_list" in changes:
                item.set_tag_list(_validate_tags(changes["tag_list"]))
            await self.item_repo.flush()
            return item

        item = await run_in_store(self.session, op, label="update item")
        _enqueue_index(item)
        return item

    async def delete(self, identity: Identity | None, slug: str) -> None:
        """Seller-only delete; cascades to the item's comments."""
        item = await run_in_store(self.session, lambda: self.item_repo.require_by_slug(slug))
        self.guard.ensure_allowed(identity, item, Action.DELETE_ITEM)
        item_id = item.id
        await self.consistency.cascade_delete_item(item_id)
        _enqueue_removal(item_id)
