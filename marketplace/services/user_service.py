"""
User service - profile reads and partial profile updates.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.authorization import Action, AuthorizationGuard
from marketplace.core.errors import ValidationError
from marketplace.core.security import Identity, derive_password_hash, generate_salt
from marketplace.db.models.user import User
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.retry import run_in_store
from marketplace.services.identity_service import TAKEN, normalize_email, normalize_username, require_password


class UserService:
    def __init__(self, session: AsyncSession, guard: AuthorizationGuard | None = None):
        self.session = session
        self.user_repo = UserRepository(session)
        self.guard = guard or AuthorizationGuard()

    async def get(self, user_id: int) -> User:
        return await run_in_store(self.session, lambda: self.user_repo.require(user_id))

    async def get_by_username(self, username: str) -> User:
        return await run_in_store(self.session, lambda: self.user_repo.require_by_username(username))

    async def update(self, identity: Identity | None, user_id: int, changes: dict[str, Any]) -> User:
        """Apply only the supplied fields; omitted fields keep their value."""

        async def op() -> User:
            user = await self.user_repo.require(user_id)
            self.guard.ensure_allowed(identity, user, Action.UPDATE_PROFILE)
            errors: dict[str, list[str]] = {}
            username = normalize_username(changes["username"]) if "username" in changes else None
            email = normalize_email(changes["email"]) if "email" in changes else None
            password = require_password(changes["password"]) if "password" in changes else None
            if username is not None and await self.user_repo.username_taken(username, exclude_id=user.id):
                errors["username"] = [TAKEN]
            if email is not None and await self.user_repo.email_taken(email, exclude_id=user.id):
                errors["email"] = [TAKEN]
            if errors:
                raise ValidationError("Profile update failed", errors)

            if username is not None:
                user.username = username
            if email is not None:
                user.email = email
            if "bio" in changes:
                user.bio = changes["bio"]
            if "image" in changes:
                user.image = changes["image"]
            if password is not None:
                salt = generate_salt()
                user.password_hash = derive_password_hash(password, salt)
                user.password_salt = salt
            await self.user_repo.flush()
            return user

        return await run_in_store(self.session, op, label="update profile")
