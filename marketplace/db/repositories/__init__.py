# Repository pattern: abstract data access (SOLID - Dependency Inversion)

from marketplace.db.repositories.comment_repository import CommentRepository
from marketplace.db.repositories.item_repository import ItemRepository
from marketplace.db.repositories.relationship_repository import RelationshipRepository
from marketplace.db.repositories.user_repository import UserRepository

__all__ = ["UserRepository", "ItemRepository", "CommentRepository", "RelationshipRepository"]
