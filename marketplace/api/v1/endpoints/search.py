"""
Search endpoint - Elasticsearch full-text search over items.
Challenge: Expose search API, pagination, graceful fallback if ES down.
"""

from fastapi import APIRouter, Query

from marketplace.config import get_settings
from marketplace.search.elasticsearch_client import search_items

router = APIRouter()
settings = get_settings()


@router.get("/items")
async def search_items_endpoint(
    q: str = Query(..., min_length=1),
    offset: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Full-text search on title, description, body and tags."""
    hits = await search_items(query=q, skip=offset, limit=limit)
    return {"query": q, "results": hits, "count": len(hits)}
