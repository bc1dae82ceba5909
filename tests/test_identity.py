"""
Identity tests - registration, authentication and token verification.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from marketplace.config import get_settings
from marketplace.core.errors import AuthenticationError, ValidationError
from marketplace.core.security import Identity, hash_password, verify_password
from marketplace.services.identity_service import IdentityService


@pytest.mark.asyncio
async def test_register_stores_salted_hash(session):
    user = await IdentityService(session).register("Dave", "Dave@Example.com", "hunter2")
    assert user.username == "dave"
    assert user.email == "dave@example.com"
    assert user.password_hash != "hunter2"
    assert len(user.password_salt) == 32
    assert verify_password("hunter2", user.password_hash, user.password_salt)


@pytest.mark.asyncio
async def test_register_reports_every_taken_field(session, alice):
    with pytest.raises(ValidationError) as exc:
        await IdentityService(session).register("ALICE", "alice@X.com", "pw")
    assert exc.value.field_errors == {"username": ["is already taken."], "email": ["is already taken."]}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "username,email,password,field",
    [
        ("", "e@x.com", "pw", "username"),
        ("has space", "e@x.com", "pw", "username"),
        ("erin", "not-an-email", "pw", "email"),
        ("erin", "e@x.com", "", "password"),
    ],
)
async def test_register_rejects_bad_input(session, username, email, password, field):
    with pytest.raises(ValidationError) as exc:
        await IdentityService(session).register(username, email, password)
    assert field in exc.value.field_errors


@pytest.mark.asyncio
async def test_authenticate(session, alice):
    identity = await IdentityService(session).authenticate("Alice@x.com", "pw")
    assert identity.user_id == alice.id
    assert identity.username == "alice"
    assert alice.last_login is not None


@pytest.mark.asyncio
@pytest.mark.parametrize("email,password", [("alice@x.com", "wrong"), ("nobody@x.com", "pw")])
async def test_authenticate_failures_look_the_same(session, alice, email, password):
    with pytest.raises(AuthenticationError) as exc:
        await IdentityService(session).authenticate(email, password)
    assert exc.value.message == "Access denied"


@pytest.mark.asyncio
async def test_token_round_trip(session, alice_identity):
    svc = IdentityService(session)
    token = svc.issue_token(alice_identity)
    assert svc.verify_token(token) == alice_identity


def test_verify_token_fails_softly():
    svc = IdentityService(session=None)
    settings = get_settings()
    expired = jwt.encode(
        {"sub": "1", "exp": datetime.now(timezone.utc) - timedelta(seconds=1)},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    forged = jwt.encode({"sub": "1"}, "another-key", algorithm=settings.jwt_algorithm)
    no_subject = jwt.encode({"username": "x"}, settings.secret_key, algorithm=settings.jwt_algorithm)
    for token in (None, "", "garbage", expired, forged, no_subject):
        assert svc.verify_token(token) is None


@pytest.mark.asyncio
async def test_resolve_user_for_vanished_user(session):
    with pytest.raises(AuthenticationError):
        await IdentityService(session).resolve_user(Identity(user_id=999, username="ghost"))


def test_hash_password_uses_fresh_salt():
    first, salt1 = hash_password("same")
    second, salt2 = hash_password("same")
    assert salt1 != salt2
    assert first != second
    assert not verify_password("other", first, salt1)
    assert not verify_password("same", first, "")
