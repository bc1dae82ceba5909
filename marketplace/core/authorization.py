"""
Authorization guard - ownership rules for every mutation.

Rules:
    - Item update/delete: only the seller
    - Comment create: any authenticated caller
    - Comment delete: governed by CommentDeletePolicy (any authenticated caller,
      or only the comment's author / the item's seller)
    - Favorite and follow toggles: only on the caller's own sets
    - No identity: nothing may be mutated
"""

from enum import Enum

from marketplace.config import CommentDeletePolicy, get_settings
from marketplace.core.errors import AuthenticationError, AuthorizationError
from marketplace.core.security import Identity
from marketplace.db.models import Comment, Item, User


class Action(str, Enum):
    UPDATE_ITEM = "update_item"
    DELETE_ITEM = "delete_item"
    CREATE_COMMENT = "create_comment"
    DELETE_COMMENT = "delete_comment"
    TOGGLE_FAVORITE = "toggle_favorite"
    TOGGLE_FOLLOW = "toggle_follow"
    UPDATE_PROFILE = "update_profile"


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


class AuthorizationGuard:
    """Stateless; safe to share between concurrent requests."""

    def __init__(self, comment_delete_policy: CommentDeletePolicy | None = None):
        self.comment_delete_policy = comment_delete_policy or get_settings().comment_delete_policy

    def authorize_mutation(
        self,
        identity: Identity | None,
        resource: User | Item | Comment,
        action: Action,
        parent: Item | None = None,
    ) -> Decision:
        """Decide whether ``identity`` may perform ``action`` on ``resource``.

        ``parent`` is the item a comment belongs to; it is needed for the
        author-or-seller comment policy.
        """
        if identity is None:
            return Decision.DENIED

        if action in (Action.UPDATE_ITEM, Action.DELETE_ITEM):
            return _allow(isinstance(resource, Item) and resource.seller_id == identity.user_id)

        if action is Action.CREATE_COMMENT:
            return _allow(isinstance(resource, Item))

        if action is Action.DELETE_COMMENT:
            if not isinstance(resource, Comment):
                return Decision.DENIED
            if self.comment_delete_policy is CommentDeletePolicy.ANY_AUTHENTICATED:
                return Decision.ALLOWED
            if resource.author_id == identity.user_id:
                return Decision.ALLOWED
            return _allow(parent is not None and parent.id == resource.item_id and parent.seller_id == identity.user_id)

        if action in (Action.TOGGLE_FAVORITE, Action.TOGGLE_FOLLOW, Action.UPDATE_PROFILE):
            # The resource is the user whose set/profile changes.
            return _allow(isinstance(resource, User) and resource.id == identity.user_id)

        return Decision.DENIED

    def ensure_allowed(
        self,
        identity: Identity | None,
        resource: User | Item | Comment,
        action: Action,
        parent: Item | None = None,
    ) -> Identity:
        """Raise AuthenticationError (no identity) or AuthorizationError (denied)."""
        if identity is None:
            raise AuthenticationError()
        if self.authorize_mutation(identity, resource, action, parent) is Decision.DENIED:
            raise AuthorizationError()
        return identity


def _allow(condition: bool) -> Decision:
    return Decision.ALLOWED if condition else Decision.DENIED
