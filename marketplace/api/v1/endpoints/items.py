"""
Item endpoints - listings, favorites and comments (GET/POST/PUT/DELETE).
Challenge: Pagination, auth, ownership, 404 handling.
Design: Thin controller; service layer holds business logic.
"""

from fastapi import APIRouter, Query, status

from marketplace.config import get_settings
from marketplace.core.dependencies import CurrentIdentity, Guard, ItemLocks, OptionalIdentity
from marketplace.db.session import DbSession
from marketplace.schemas.comment import CommentEnvelope, CommentListEnvelope, CreateCommentRequest
from marketplace.schemas.item import CreateItemRequest, ItemEnvelope, ItemListEnvelope, UpdateItemRequest
from marketplace.services.comment_service import CommentService
from marketplace.services.item_service import ItemService
from marketplace.services.relationship_service import RelationshipService
from marketplace.services.views import ViewBuilder

router = APIRouter()
settings = get_settings()


@router.get("", response_model=ItemListEnvelope)
async def list_items(
    session: DbSession,
    viewer: OptionalIdentity,
    tag: str | None = None,
    seller: str | None = None,
    favorited: str | None = None,
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """List items newest first. Filters: tag, seller username, favorited-by username."""
    items, total = await ItemService(session).list_items(
        tag=tag, seller=seller, favorited=favorited, skip=offset, limit=limit
    )
    return ItemListEnvelope(items=await ViewBuilder(session, viewer).items(items), items_count=total)


@router.get("/feed", response_model=ItemListEnvelope)
async def feed(
    session: DbSession,
    identity: CurrentIdentity,
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Items from sellers the caller follows."""
    items, total = await ItemService(session).feed(identity, skip=offset, limit=limit)
    return ItemListEnvelope(items=await ViewBuilder(session, identity).items(items), items_count=total)


@router.post("", response_model=ItemEnvelope, status_code=status.HTTP_201_CREATED)
async def create_item(session: DbSession, identity: CurrentIdentity, data: CreateItemRequest):
    """Create item owned by the caller (seller comes from the token, never the body)."""
    payload = data.item
    item = await ItemService(session).create(
        identity, payload.title, payload.description, payload.body, payload.tag_list
    )
    return ItemEnvelope(item=await ViewBuilder(session, identity).item(item))


@router.get("/{slug}", response_model=ItemEnvelope)
async def get_item(session: DbSession, slug: str, viewer: OptionalIdentity):
    item = await ItemService(session).get_by_slug(slug)
    return ItemEnvelope(item=await ViewBuilder(session, viewer).item(item))


@router.put("/{slug}", response_model=ItemEnvelope)
async def update_item(session: DbSession, slug: str, identity: CurrentIdentity, guard: Guard, data: UpdateItemRequest):
    """Seller-only partial update. The slug does not change with the title."""
    changes = data.item.model_dump(exclude_unset=True)
    item = await ItemService(session, guard).update(identity, slug, changes)
    return ItemEnvelope(item=await ViewBuilder(session, identity).item(item))


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(session: DbSession, slug: str, identity: CurrentIdentity, guard: Guard):
    """Seller-only. Removes the item together with its comments."""
    await ItemService(session, guard).delete(identity, slug)


@router.post("/{slug}/favorite", response_model=ItemEnvelope)
async def favorite_item(session: DbSession, slug: str, identity: CurrentIdentity, guard: Guard, locks: ItemLocks):
    svc = ItemService(session)
    item = await svc.get_by_slug(slug)
    await RelationshipService(session, item_locks=locks, guard=guard).favorite(identity.user_id, item.id, identity)
    item = await svc.get(item.id)
    return ItemEnvelope(item=await ViewBuilder(session, identity).item(item))


@router.delete("/{slug}/favorite", response_model=ItemEnvelope)
async def unfavorite_item(session: DbSession, slug: str, identity: CurrentIdentity, guard: Guard, locks: ItemLocks):
    svc = ItemService(session)
    item = await svc.get_by_slug(slug)
    await RelationshipService(session, item_locks=locks, guard=guard).unfavorite(identity.user_id, item.id, identity)
    item = await svc.get(item.id)
    return ItemEnvelope(item=await ViewBuilder(session, identity).item(item))


@router.get("/{slug}/comments", response_model=CommentListEnvelope)
async def list_comments(session: DbSession, slug: str, viewer: OptionalIdentity):
    comments = await CommentService(session).list_for_item(slug)
    return CommentListEnvelope(comments=await ViewBuilder(session, viewer).comments(comments))


@router.post("/{slug}/comments", response_model=CommentEnvelope, status_code=status.HTTP_201_CREATED)
async def create_comment(
    session: DbSession, slug: str, identity: CurrentIdentity, guard: Guard, data: CreateCommentRequest
):
    comment = await CommentService(session, guard).create(identity, slug, data.comment.body)
    return CommentEnvelope(comment=await ViewBuilder(session, identity).comment(comment))


@router.delete("/{slug}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(session: DbSession, slug: str, comment_id: int, identity: CurrentIdentity, guard: Guard):
    await CommentService(session, guard).delete(identity, slug, comment_id)
