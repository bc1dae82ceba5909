#!/usr/bin/env python3
"""
Reindex all existing items from the database into Elasticsearch via Celery.
Use this after fixing the worker or when the index was empty; no new data is created.
Requires: database reachable. Celery worker must be running to process the queue.

If you get 503 / no_shard_available from Elasticsearch, delete the broken index and reindex:
  python scripts/reindex_elasticsearch.py --reset-index

  python scripts/reindex_elasticsearch.py
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.session import async_session_maker, engine
from marketplace.queue.tasks import index_item_task
from marketplace.search.elasticsearch_client import ITEMS_INDEX, _sync_es_client
from marketplace.services.item_service import item_to_doc

PAGE_SIZE = 100


def delete_items_index():
    """Delete the items index so Celery will recreate it with number_of_replicas=0 (single-node safe)."""
    es = _sync_es_client()
    if es.indices.exists(index=ITEMS_INDEX):
        es.indices.delete(index=ITEMS_INDEX)
        print(f"Deleted index '{ITEMS_INDEX}'. Celery will recreate it when processing the first task.")
    else:
        print(f"Index '{ITEMS_INDEX}' does not exist (already deleted or never created).")


async def collect_docs() -> list[dict]:
    docs = []
    async with async_session_maker() as session:
        repo = ItemRepository(session)
        skip = 0
        while True:
            page, total = await repo.list_filtered(skip=skip, limit=PAGE_SIZE)
            docs.extend(item_to_doc(it) for it in page)
            skip += PAGE_SIZE
            if skip >= total or not page:
                break
    await engine.dispose()
    return docs


def main():
    ap = argparse.ArgumentParser(description="Enqueue all items for Elasticsearch reindex")
    ap.add_argument("--reset-index", action="store_true", help="Delete the items index first (fixes 503 / no_shard_available), then enqueue")
    args = ap.parse_args()

    if args.reset_index:
        delete_items_index()
        print()

    docs = asyncio.run(collect_docs())
    if not docs:
        print("No items in DB. Run seed_data.py first or create items via the API.")
        return

    for doc in docs:
        index_item_task.delay(doc)

    print(f"Enqueued {len(docs)} items for Elasticsearch reindex. Ensure Celery worker is running.")
    print("Wait a few seconds, then try: curl -s 'http://localhost:9200/items/_count?pretty'")


if __name__ == "__main__":
    main()
