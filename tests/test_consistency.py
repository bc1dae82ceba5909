"""
Consistency tests - count recomputation, the repair sweep and cascading deletes.
"""

import pytest
from sqlalchemy import insert, select, update

from marketplace.core.errors import NotFoundError
from marketplace.db.models import Comment, Item, ItemTag, user_favorites
from marketplace.services.comment_service import CommentService
from marketplace.services.consistency_service import ConsistencyService
from marketplace.services.item_service import ItemService


@pytest.mark.asyncio
async def test_recompute_repairs_stored_count(session, alice, bob, bike):
    await session.execute(insert(user_favorites).values([
        {"user_id": alice.id, "item_id": bike.id},
        {"user_id": bob.id, "item_id": bike.id},
    ]))
    await session.execute(update(Item).where(Item.id == bike.id).values(favorites_count=7))
    assert await ConsistencyService(session).recompute_favorites_count(bike.id) == 2
    assert bike.favorites_count == 2


@pytest.mark.asyncio
async def test_recompute_overwrites_row_behind_stale_cached_item(session, bob, bike):
    await session.execute(insert(user_favorites).values(user_id=bob.id, item_id=bike.id))
    await session.execute(update(Item).where(Item.id == bike.id).values(favorites_count=1))
    # Another writer leaves the row at 3 while the cached object still says 1
    await session.execute(
        update(Item)
        .where(Item.id == bike.id)
        .values(favorites_count=3)
        .execution_options(synchronize_session=False)
    )
    assert bike.favorites_count == 1

    assert await ConsistencyService(session).recompute_favorites_count(bike.id) == 1
    stored = await session.scalar(select(Item.favorites_count).where(Item.id == bike.id))
    assert stored == 1


@pytest.mark.asyncio
async def test_recompute_missing_item(session):
    with pytest.raises(NotFoundError):
        await ConsistencyService(session).recompute_favorites_count(999)


@pytest.mark.asyncio
async def test_sweep_corrects_only_drifted_items(session, alice_identity, bob, bike):
    lamp = await ItemService(session).create(alice_identity, "Lamp")
    await session.execute(insert(user_favorites).values(user_id=bob.id, item_id=bike.id))
    await session.execute(update(Item).where(Item.id == bike.id).values(favorites_count=5))

    corrected = await ConsistencyService(session).recompute_all_favorites_counts()
    assert corrected == 1
    assert bike.favorites_count == 1
    assert lamp.favorites_count == 0
    assert await ConsistencyService(session).recompute_all_favorites_counts() == 0


@pytest.mark.asyncio
async def test_cascade_delete_removes_item_and_comments(session, alice_identity, bob_identity, bike):
    comments = CommentService(session)
    comment = await comments.create(bob_identity, bike.slug, "Nice bike")
    comment_id, item_id, slug = comment.id, bike.id, bike.slug

    await ItemService(session).delete(alice_identity, slug)

    with pytest.raises(NotFoundError):
        await ItemService(session).get_by_slug(slug)
    with pytest.raises(NotFoundError):
        await comments.get(comment_id)
    tags = await session.scalars(select(ItemTag).where(ItemTag.item_id == item_id))
    assert tags.all() == []


@pytest.mark.asyncio
async def test_cascade_delete_is_repeatable(session, bob_identity, bike):
    await CommentService(session).create(bob_identity, bike.slug, "Nice bike")
    consistency = ConsistencyService(session)
    await consistency.cascade_delete_item(bike.id)
    # A second run finds nothing left and still succeeds
    await consistency.cascade_delete_item(bike.id)
    remaining = await session.scalars(select(Comment))
    assert remaining.all() == []


@pytest.mark.asyncio
async def test_detach_comment(session, bob_identity, bike):
    comment = await CommentService(session).create(bob_identity, bike.slug, "Nice bike")
    consistency = ConsistencyService(session)
    assert await consistency.comment_repo.ids_for_item(bike.id) == {comment.id}

    await consistency.detach_comment(bike.id, comment.id)
    assert await consistency.comment_repo.ids_for_item(bike.id) == set()


@pytest.mark.asyncio
async def test_detach_comment_of_another_item(session, alice_identity, bob_identity, bike):
    lamp = await ItemService(session).create(alice_identity, "Lamp")
    comment = await CommentService(session).create(bob_identity, bike.slug, "Nice bike")
    with pytest.raises(NotFoundError):
        await ConsistencyService(session).detach_comment(lamp.id, comment.id)
