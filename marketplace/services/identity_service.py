"""
Identity service - registration, login and bearer tokens.
Challenge: never store plaintext, fail softly on bad tokens so optional-auth routes work.
"""

import logging
import re

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.errors import AuthenticationError, ValidationError
from marketplace.core.security import (
    Identity,
    create_access_token,
    hash_password,
    identity_from_token,
    verify_password,
)
from marketplace.db.base import utcnow
from marketplace.db.models.user import User
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.retry import run_in_store

logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(r"^[a-zA-Z0-9]+$")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")
TAKEN = "is already taken."


def normalize_username(username: str | None) -> str:
    """Lowercased username; raises ValidationError if blank or not alphanumeric."""
    value = (username or "").strip()
    if not value:
        raise ValidationError.for_field("username", "can't be blank")
    if not USERNAME_RE.match(value):
        raise ValidationError.for_field("username", "is invalid")
    return value.lower()


def normalize_email(email: str | None) -> str:
    value = (email or "").strip()
    if not value:
        raise ValidationError.for_field("email", "can't be blank")
    if not EMAIL_RE.fullmatch(value):
        raise ValidationError.for_field("email", "is invalid")
    return value.lower()


def require_password(password: str | None) -> str:
    if not password:
        raise ValidationError.for_field("password", "can't be blank")
    return password


class IdentityService:
    def __init__(self, session: AsyncSession, user_repo: UserRepository | None = None):
        self.session = session
        self.user_repo = user_repo or UserRepository(session)

    async def register(self, username: str, email: str, password: str) -> User:
        """Create a user. Username and email uniqueness is case-insensitive."""
        username = normalize_username(username)
        email = normalize_email(email)
        password = require_password(password)

        async def op() -> User:
            errors: dict[str, list[str]] = {}
            if await self.user_repo.username_taken(username):
                errors["username"] = [TAKEN]
            if await self.user_repo.email_taken(email):
                errors["email"] = [TAKEN]
            if errors:
                raise ValidationError("Registration failed", errors)
            password_hash, salt = hash_password(password)
            user = User(username=username, email=email, password_hash=password_hash, password_salt=salt)
            return await self.user_repo.add(user)

        user = await run_in_store(self.session, op, label="register")
        logger.info("user registered", extra={"user_id": user.id})
        return user

    async def authenticate(self, email: str, password: str) -> Identity:
        """Check credentials. Unknown email and wrong password fail identically."""
        user = await run_in_store(self.session, lambda: self.user_repo.get_by_email((email or "").strip()), label="login")
        if user is None or not verify_password(password or "", user.password_hash, user.password_salt):
            raise AuthenticationError()
        user.last_login = utcnow()
        await self.user_repo.flush()
        return Identity(user_id=user.id, username=user.username)

    def issue_token(self, identity: Identity) -> str:
        return create_access_token(identity.user_id, {"username": identity.username})

    def verify_token(self, token: str | None) -> Identity | None:
        if not token:
            return None
        return identity_from_token(token)

    async def resolve_user(self, identity: Identity | None) -> User:
        """Load the user behind an identity; a token for a vanished user is unauthenticated."""
        if identity is None:
            raise AuthenticationError()
        user = await run_in_store(self.session, lambda: self.user_repo.get_by_id(identity.user_id))
        if user is None:
            raise AuthenticationError()
        return user
