"""
User API tests - registration, login, current user and partial updates.
"""

import pytest
from httpx import AsyncClient

from marketplace.core.security import decode_access_token


@pytest.mark.asyncio
async def test_register_returns_user_with_token(client: AsyncClient):
    response = await client.post(
        "/api/v1/users", json={"user": {"username": "Carol", "email": "Carol@X.com", "password": "secret"}}
    )
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["username"] == "carol"
    assert user["email"] == "carol@x.com"
    assert "password" not in user
    assert decode_access_token(user["token"])["username"] == "carol"


@pytest.mark.asyncio
async def test_register_duplicate_email_is_case_insensitive(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/users", json={"user": {"username": "alice2", "email": "ALICE@x.com", "password": "pw"}}
    )
    assert response.status_code == 422
    assert response.json()["errors"]["details"] == {"email": ["is already taken."]}


@pytest.mark.asyncio
async def test_register_invalid_username(client: AsyncClient):
    response = await client.post(
        "/api/v1/users", json={"user": {"username": "not valid!", "email": "n@x.com", "password": "pw"}}
    )
    assert response.status_code == 422
    assert "username" in response.json()["errors"]["details"]


@pytest.mark.asyncio
async def test_login(client: AsyncClient, alice):
    response = await client.post("/api/v1/users/login", json={"user": {"email": "alice@x.com", "password": "pw"}})
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "alice"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, alice):
    response = await client.post(
        "/api/v1/users/login", json={"user": {"email": "alice@x.com", "password": "nope"}}
    )
    assert response.status_code == 401
    assert response.json()["errors"]["message"] == "Access denied"


@pytest.mark.asyncio
async def test_current_user(client: AsyncClient, auth_headers: dict):
    response = await client.get("/api/v1/user", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "alice@x.com"


@pytest.mark.asyncio
async def test_current_user_rejects_bad_token(client: AsyncClient):
    response = await client.get("/api/v1/user", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_update_only_supplied_fields(client: AsyncClient, auth_headers: dict):
    response = await client.put("/api/v1/user", headers=auth_headers, json={"user": {"bio": "Sells bikes"}})
    assert response.status_code == 200
    user = response.json()["user"]
    assert user["bio"] == "Sells bikes"
    assert user["username"] == "alice"
    assert user["email"] == "alice@x.com"


@pytest.mark.asyncio
async def test_update_password_allows_new_login(client: AsyncClient, auth_headers: dict):
    await client.put("/api/v1/user", headers=auth_headers, json={"user": {"password": "new-pw"}})
    old = await client.post("/api/v1/users/login", json={"user": {"email": "alice@x.com", "password": "pw"}})
    new = await client.post("/api/v1/users/login", json={"user": {"email": "alice@x.com", "password": "new-pw"}})
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_update_to_taken_username(client: AsyncClient, auth_headers: dict, bob):
    response = await client.put("/api/v1/user", headers=auth_headers, json={"user": {"username": "BOB"}})
    assert response.status_code == 422
    assert response.json()["errors"]["details"] == {"username": ["is already taken."]}
