"""
User repository - encapsulates all user data access (SOLID: Single Responsibility).
Challenge: Keep queries in one place for optimization and reuse.
"""

from sqlalchemy import func, select

from marketplace.core.errors import NotFoundError
from marketplace.db.models.user import User
from marketplace.db.repositories.base_repository import BaseRepository
from marketplace.db.retry import translate_store_errors


class UserRepository(BaseRepository[User]):
    """User-specific queries. Natural keys are compared lowercase."""

    resource_name = "User"

    def __init__(self, session):
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Find user by email - used for authentication."""
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(User).where(User.email == email.lower()))
            return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(User).where(User.username == username.lower()))
            return result.scalar_one_or_none()

    async def require_by_username(self, username: str) -> User:
        user = await self.get_by_username(username)
        if user is None:
            raise NotFoundError(self.resource_name, username)
        return user

    async def get_many_by_ids(self, ids: set[int]) -> dict[int, User]:
        if not ids:
            return {}
        with translate_store_errors(self.resource_name):
            result = await self.session.execute(select(User).where(User.id.in_(ids)))
            return {u.id: u for u in result.scalars().all()}

    async def username_taken(self, username: str, exclude_id: int | None = None) -> bool:
        return await self._taken(User.username, username.lower(), exclude_id)

    async def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        return await self._taken(User.email, email.lower(), exclude_id)

    async def _taken(self, column, value: str, exclude_id: int | None) -> bool:
        stmt = select(func.count()).select_from(User).where(column == value)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        with translate_store_errors(self.resource_name):
            return (await self.session.scalar(stmt) or 0) > 0
