"""
User endpoints - registration, login and the current user (RESTful API).
Challenge: Secure auth, validation, clear status codes.
"""

from fastapi import APIRouter, status

from marketplace.db.session import DbSession
from marketplace.core.dependencies import CurrentIdentity, Guard, RateLimited
from marketplace.schemas.user import LoginRequest, RegisterRequest, UpdateUserRequest, UserEnvelope
from marketplace.services.identity_service import IdentityService
from marketplace.services.user_service import UserService
from marketplace.services.views import to_auth_view

router = APIRouter()


@router.post(
    "/users",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[RateLimited],
)
async def register(session: DbSession, data: RegisterRequest):
    """Create new user. Returns the user with a fresh token, never the password."""
    user = await IdentityService(session).register(data.user.username, data.user.email, data.user.password)
    return UserEnvelope(user=to_auth_view(user))


@router.post("/users/login", response_model=UserEnvelope, dependencies=[RateLimited])
async def login(session: DbSession, data: LoginRequest):
    """Authenticate and return the user with a JWT."""
    svc = IdentityService(session)
    identity = await svc.authenticate(data.user.email, data.user.password)
    user = await svc.resolve_user(identity)
    return UserEnvelope(user=to_auth_view(user))


@router.get("/user", response_model=UserEnvelope)
async def current_user(session: DbSession, identity: CurrentIdentity):
    user = await IdentityService(session).resolve_user(identity)
    return UserEnvelope(user=to_auth_view(user))


@router.put("/user", response_model=UserEnvelope)
async def update_current_user(session: DbSession, identity: CurrentIdentity, guard: Guard, data: UpdateUserRequest):
    """Partial update: only fields present in the body change."""
    changes = data.user.model_dump(exclude_unset=True)
    user = await UserService(session, guard).update(identity, identity.user_id, changes)
    return UserEnvelope(user=to_auth_view(user))
