"""
Celery tasks - event-driven and async processing.
Challenge: Offload indexing and the favorites-count repair sweep from the request path.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from marketplace.config import get_settings
from marketplace.db.session import build_engine
from marketplace.queue.celery_app import celery_app
from marketplace.search.elasticsearch_client import ensure_items_index_sync, index_item_sync, remove_item_sync
from marketplace.services.consistency_service import ConsistencyService

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run async function from sync Celery task."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(bind=True, max_retries=3)
def index_item_task(self, item_doc: dict):
    """
    Index item in Elasticsearch asynchronously.
    Fired after item create/update (event-driven: API publishes, worker consumes).
    """
    try:
        ensure_items_index_sync()
        index_item_sync(item_doc)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=5)


@celery_app.task(bind=True, max_retries=3)
def remove_item_task(self, item_id: int):
    """Drop a deleted item from the search index."""
    try:
        remove_item_sync(item_id)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=5)


async def _recompute_all() -> int:
    # Fresh engine per run: pooled connections do not survive a new event loop.
    engine = build_engine(get_settings().database_url, poolclass=NullPool)
    try:
        maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
        async with maker() as session:
            return await ConsistencyService(session).recompute_all_favorites_counts()
    finally:
        await engine.dispose()


@celery_app.task
def recompute_favorites_task() -> int:
    """Periodic repair: closes the eventual-consistency window left by racing recomputations."""
    corrected = _run_async(_recompute_all())
    logger.info("favorites sweep corrected %d items", corrected)
    return corrected
