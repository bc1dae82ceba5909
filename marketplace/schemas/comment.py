"""Comment request/response schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from marketplace.schemas.user import ProfileView


class CommentCreate(BaseModel):
    body: str = Field(..., min_length=1)


class CreateCommentRequest(BaseModel):
    comment: CommentCreate


class CommentView(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    body: str
    created_at: datetime
    author: ProfileView


class CommentEnvelope(BaseModel):
    comment: CommentView


class CommentListEnvelope(BaseModel):
    comments: list[CommentView]
