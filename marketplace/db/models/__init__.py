from marketplace.db.models.comment import Comment
from marketplace.db.models.item import Item, ItemTag
from marketplace.db.models.relations import user_favorites, user_follows
from marketplace.db.models.user import User, UserRole

__all__ = ["User", "UserRole", "Item", "ItemTag", "Comment", "user_favorites", "user_follows"]
