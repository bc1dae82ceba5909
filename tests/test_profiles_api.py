"""
Profile API tests - public profiles and follow/unfollow.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_get_profile_anonymous(client: AsyncClient, alice):
    response = await client.get("/api/v1/profiles/alice")
    assert response.status_code == 200
    assert response.json() == {"profile": {"username": "alice", "bio": None, "image": None, "following": False}}


@pytest.mark.asyncio
async def test_get_unknown_profile(client: AsyncClient):
    response = await client.get("/api/v1/profiles/ghost")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_follow_and_unfollow(client: AsyncClient, auth_headers: dict, bob):
    response = await client.post("/api/v1/profiles/bob/follow", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["profile"]["following"] is True

    seen = await client.get("/api/v1/profiles/bob", headers=auth_headers)
    assert seen.json()["profile"]["following"] is True

    response = await client.delete("/api/v1/profiles/bob/follow", headers=auth_headers)
    assert response.json()["profile"]["following"] is False


@pytest.mark.asyncio
async def test_follow_self_is_rejected(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/v1/profiles/alice/follow", headers=auth_headers)
    assert response.status_code == 422
    assert response.json()["errors"]["details"] == {"profile": ["cannot follow yourself"]}


@pytest.mark.asyncio
async def test_follow_requires_auth(client: AsyncClient, bob):
    response = await client.post("/api/v1/profiles/bob/follow")
    assert response.status_code == 401
