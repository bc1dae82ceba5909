"""
Elasticsearch client - full-text search over item listings.
Challenge: Index management, async operations, graceful degradation when ES is down.
Sync helpers used by Celery workers (no event loop in fork).
"""

import logging
from typing import Any
from urllib.parse import urlparse

from elasticsearch import AsyncElasticsearch, Elasticsearch

from marketplace.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

ITEMS_INDEX = "items"

_es_client: AsyncElasticsearch | None = None


def _es_client_options() -> dict:
    """Build Elasticsearch client options from settings (supports HTTPS + basic auth in URL)."""
    url = settings.elasticsearch_url
    basic_auth = None
    parsed = urlparse(url)
    if parsed.username and parsed.password:
        basic_auth = (parsed.username, parsed.password)
        # Remove auth from URL for the client (it uses basic_auth separately)
        netloc = parsed.hostname or ""
        if parsed.port:
            netloc += f":{parsed.port}"
        url = f"{parsed.scheme}://{netloc}"
    opts = {
        "hosts": [url],
        "verify_certs": settings.elasticsearch_verify_certs,
        "request_timeout": 30,
    }
    if basic_auth:
        opts["basic_auth"] = basic_auth
    return opts


async def get_elasticsearch() -> AsyncElasticsearch:
    """Get Elasticsearch client. Dependency injection for tests."""
    global _es_client
    if _es_client is None:
        _es_client = AsyncElasticsearch(**_es_client_options())
    return _es_client


def _items_index_mappings() -> dict:
    """Mapping for items index (shared by async and sync create)."""
    return {
        "properties": {
            "id": {"type": "integer"},
            "slug": {"type": "keyword"},
            "title": {"type": "text", "analyzer": "standard"},
            "description": {"type": "text", "analyzer": "standard"},
            "body": {"type": "text", "analyzer": "standard"},
            "tag_list": {"type": "keyword"},
            "seller_id": {"type": "integer"},
            "created_at": {"type": "date"},
        }
    }


def _clean_doc(doc: dict[str, Any]) -> dict[str, Any]:
    """Drop nulls; ES rejects a null date."""
    payload = {k: v for k, v in doc.items() if v is not None}
    payload.setdefault("created_at", "1970-01-01T00:00:00Z")
    return payload


async def ensure_items_index() -> None:
    """Create items index with mapping if not exists. Single-node: 0 replicas to avoid unassigned shards."""
    es = await get_elasticsearch()
    if not await es.indices.exists(index=ITEMS_INDEX):
        await es.indices.create(
            index=ITEMS_INDEX,
            settings={"index": {"number_of_replicas": 0}},
            mappings=_items_index_mappings(),
        )


async def search_items(query: str, skip: int = 0, limit: int = 20) -> list[dict[str, Any]]:
    """Full-text search on title, description, body and tags. Returns list of hits."""
    try:
        es = await get_elasticsearch()
        response = await es.search(
            index=ITEMS_INDEX,
            query={
                "multi_match": {
                    "query": query,
                    "fields": ["title^3", "tag_list^2", "description", "body"],
                    "fuzziness": "AUTO",
                }
            },
            from_=skip,
            size=limit,
        )
        body = getattr(response, "body", response)
        return [hit["_source"] for hit in body["hits"]["hits"]]
    except Exception as e:
        logger.warning("search_items failed: query=%r error=%s", query, e)
        return []


# --- Sync API for Celery (workers run in sync context; async + new_event_loop fails after fork) ---

def _sync_es_client() -> Elasticsearch:
    """New sync client per call (safe in forked Celery worker)."""
    return Elasticsearch(**_es_client_options())


def ensure_items_index_sync() -> None:
    """Create items index if not exists. Call from Celery task."""
    es = _sync_es_client()
    if not es.indices.exists(index=ITEMS_INDEX):
        es.indices.create(
            index=ITEMS_INDEX,
            settings={"index": {"number_of_replicas": 0}},
            mappings=_items_index_mappings(),
        )


def index_item_sync(doc: dict[str, Any]) -> None:
    """Index a single item. ES 8 requires id to be str. Raises so the task can retry."""
    es = _sync_es_client()
    es.index(index=ITEMS_INDEX, id=str(doc["id"]), document=_clean_doc(doc))


def remove_item_sync(item_id: int) -> None:
    """Remove a deleted item from the index; an absent document is fine."""
    es = _sync_es_client()
    es.options(ignore_status=404).delete(index=ITEMS_INDEX, id=str(item_id))
