"""
Deterministic projections of users, items and comments for API responses.

The ``to_*`` functions are pure. ViewBuilder resolves the viewer-dependent
flags (``following``, ``favorited``) by loading the viewer's two sets once
per request instead of querying per entity.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.security import Identity, create_access_token
from marketplace.db.models import Comment, Item, User
from marketplace.db.repositories.relationship_repository import RelationshipRepository
from marketplace.db.retry import run_in_store
from marketplace.schemas.comment import CommentView
from marketplace.schemas.item import ItemView
from marketplace.schemas.user import AuthView, ProfileView


def to_auth_view(user: User) -> AuthView:
    """Includes a freshly minted token."""
    return AuthView(
        username=user.username,
        email=user.email,
        token=create_access_token(user.id, {"username": user.username}),
        bio=user.bio,
        image=user.image,
    )


def to_profile_view(user: User, following: bool = False) -> ProfileView:
    return ProfileView(username=user.username, bio=user.bio, image=user.image, following=following)


def to_item_view(item: Item, favorited: bool, author: ProfileView) -> ItemView:
    return ItemView(
        slug=item.slug,
        title=item.title,
        description=item.description,
        body=item.body,
        tag_list=item.tag_list,
        favorited=favorited,
        favorites_count=item.favorites_count,
        author=author,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def to_comment_view(comment: Comment, author: ProfileView) -> CommentView:
    return CommentView(id=comment.id, body=comment.body, created_at=comment.created_at, author=author)


class ViewBuilder:
    """Builds views for one viewer (None for anonymous callers)."""

    def __init__(self, session: AsyncSession, viewer: Identity | None):
        self.session = session
        self.viewer = viewer
        self._relations = RelationshipRepository(session)
        self._following: set[int] | None = None
        self._favorites: set[int] | None = None

    async def _following_ids(self) -> set[int]:
        if self.viewer is None:
            return set()
        if self._following is None:
            self._following = await run_in_store(
                self.session, lambda: self._relations.following_ids(self.viewer.user_id)
            )
        return self._following

    async def _favorite_ids(self) -> set[int]:
        if self.viewer is None:
            return set()
        if self._favorites is None:
            self._favorites = await run_in_store(
                self.session, lambda: self._relations.favorite_ids(self.viewer.user_id)
            )
        return self._favorites

    async def profile(self, user: User) -> ProfileView:
        return to_profile_view(user, following=user.id in await self._following_ids())

    async def item(self, item: Item) -> ItemView:
        return to_item_view(item, favorited=item.id in await self._favorite_ids(), author=await self.profile(item.seller))

    async def items(self, items: list[Item]) -> list[ItemView]:
        return [await self.item(i) for i in items]

    async def comment(self, comment: Comment) -> CommentView:
        return to_comment_view(comment, author=await self.profile(comment.author))

    async def comments(self, comments: list[Comment]) -> list[CommentView]:
        return [await self.comment(c) for c in comments]
