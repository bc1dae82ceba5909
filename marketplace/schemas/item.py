"""Item request/response schemas - REST API contract (camelCase on the wire)."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from marketplace.schemas.user import ProfileView


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ItemCreate(_CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    body: str | None = None
    tag_list: list[str] = Field(default_factory=list)


class ItemUpdate(_CamelModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    body: str | None = None
    tag_list: list[str] | None = None


class CreateItemRequest(BaseModel):
    item: ItemCreate


class UpdateItemRequest(BaseModel):
    item: ItemUpdate


class ItemView(_CamelModel):
    slug: str
    title: str
    description: str | None = None
    body: str | None = None
    tag_list: list[str]
    favorited: bool
    favorites_count: int
    author: ProfileView
    created_at: datetime
    updated_at: datetime


class ItemEnvelope(BaseModel):
    item: ItemView


class ItemListEnvelope(_CamelModel):
    items: list[ItemView]
    items_count: int


class TagsEnvelope(BaseModel):
    tags: list[str]
