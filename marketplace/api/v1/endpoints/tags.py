"""Tags endpoint - distinct tags across all items."""

from fastapi import APIRouter

from marketplace.db.session import DbSession
from marketplace.schemas.item import TagsEnvelope
from marketplace.services.item_service import ItemService

router = APIRouter()


@router.get("", response_model=TagsEnvelope)
async def list_tags(session: DbSession):
    return TagsEnvelope(tags=await ItemService(session).tags())
