"""
FastAPI dependencies - injection for DB, auth, locks and rate limiting (SOLID: Dependency Inversion).
Challenge: Reusable auth, consistent error responses.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from marketplace.config import get_settings
from marketplace.core.authorization import AuthorizationGuard
from marketplace.core.errors import AuthenticationError
from marketplace.core.locks import KeyedLock
from marketplace.core.rate_limit import RateLimiter
from marketplace.core.security import Identity, identity_from_token
from marketplace.db.repositories.user_repository import UserRepository
from marketplace.db.session import DbSession

# Accepts both "Bearer <jwt>" and the "Token <jwt>" scheme used by older clients
security = HTTPBearer(auto_error=False)


def _raw_token(request: Request, credentials: HTTPAuthorizationCredentials | None) -> str | None:
    if credentials:
        return credentials.credentials
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "token" and token:
        return token.strip()
    return None


async def get_current_identity(
    request: Request,
    session: DbSession,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity:
    """Resolve JWT to an identity. Raises 401 if missing, invalid, or the user is gone."""
    token = _raw_token(request, credentials)
    identity = identity_from_token(token) if token else None
    if identity is None:
        raise AuthenticationError()
    user = await UserRepository(session).get_by_id(identity.user_id)
    if user is None:
        raise AuthenticationError()
    return Identity(user_id=user.id, username=user.username)


# Optional auth: for routes that behave differently when logged in
async def get_optional_identity(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity | None:
    """Return identity if a valid token is present, else None."""
    token = _raw_token(request, credentials)
    return identity_from_token(token) if token else None


def get_guard() -> AuthorizationGuard:
    return AuthorizationGuard(get_settings().comment_delete_policy)


def get_item_locks(request: Request) -> KeyedLock | None:
    if not get_settings().serialize_favorite_updates:
        return None
    return request.app.state.item_locks


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


async def rate_limited(request: Request, limiter: Annotated[RateLimiter, Depends(get_rate_limiter)]) -> None:
    """Count the request against the client's budget (keyed by client address)."""
    client = request.client.host if request.client else "unknown"
    await limiter.hit(f"{request.url.path}:{client}")


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
OptionalIdentity = Annotated[Identity | None, Depends(get_optional_identity)]
Guard = Annotated[AuthorizationGuard, Depends(get_guard)]
ItemLocks = Annotated[KeyedLock | None, Depends(get_item_locks)]
RateLimited = Depends(rate_limited)
