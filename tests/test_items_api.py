"""
Item API tests - REST CRUD, favorites and validation (TDD).
Challenge: Ensure endpoints return correct status codes and shape.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_list_items_empty(client: AsyncClient):
    """GET /api/v1/items returns 200 and an empty envelope."""
    response = await client.get("/api/v1/items")
    assert response.status_code == 200
    assert response.json() == {"items": [], "itemsCount": 0}


@pytest.mark.asyncio
async def test_create_item_requires_auth(client: AsyncClient):
    """POST /api/v1/items without token returns 401."""
    response = await client.post("/api/v1/items", json={"item": {"title": "Foo"}})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"
    assert response.json()["errors"]["code"] == "unauthenticated"


@pytest.mark.asyncio
async def test_create_item_with_auth(client: AsyncClient, auth_headers: dict):
    """POST /api/v1/items with valid token creates item and returns 201."""
    response = await client.post(
        "/api/v1/items",
        headers=auth_headers,
        json={"item": {"title": "Test Item", "description": "Desc", "body": "Body", "tagList": ["a", "b"]}},
    )
    assert response.status_code == 201
    data = response.json()["item"]
    assert data["title"] == "Test Item"
    assert data["slug"].startswith("test-item-")
    assert data["tagList"] == ["a", "b"]
    assert data["favorited"] is False
    assert data["favoritesCount"] == 0
    assert data["author"]["username"] == "alice"


@pytest.mark.asyncio
async def test_create_item_accepts_token_scheme(client: AsyncClient, auth_headers: dict):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    response = await client.post(
        "/api/v1/items", headers={"Authorization": f"Token {token}"}, json={"item": {"title": "Lamp"}}
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_create_item_without_tags(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/v1/items", headers=auth_headers, json={"item": {"title": "Lamp"}})
    assert response.status_code == 201
    data = response.json()["item"]
    assert data["tagList"] == []
    assert data["author"]["username"] == "alice"

    response = await client.get(f"/api/v1/items/{data['slug']}")
    assert response.json()["item"]["tagList"] == []


@pytest.mark.asyncio
async def test_create_item_rejects_blank_title(client: AsyncClient, auth_headers: dict):
    response = await client.post("/api/v1/items", headers=auth_headers, json={"item": {"title": ""}})
    assert response.status_code == 422
    assert response.json()["errors"]["code"] == "validation_error"


@pytest.mark.asyncio
async def test_get_item_by_slug(client: AsyncClient, bike):
    response = await client.get(f"/api/v1/items/{bike.slug}")
    assert response.status_code == 200
    data = response.json()["item"]
    assert data["title"] == "Bike"
    assert data["tagList"] == ["sport", "outdoor"]


@pytest.mark.asyncio
async def test_get_unknown_item_is_404(client: AsyncClient):
    response = await client.get("/api/v1/items/no-such-item")
    assert response.status_code == 404
    assert response.json()["errors"] == {"code": "not_found", "message": "Item not found"}


@pytest.mark.asyncio
async def test_update_item_by_seller_keeps_slug(client: AsyncClient, auth_headers: dict, bike):
    response = await client.put(
        f"/api/v1/items/{bike.slug}",
        headers=auth_headers,
        json={"item": {"title": "Road bike", "tagList": ["road"]}},
    )
    assert response.status_code == 200
    data = response.json()["item"]
    assert data["title"] == "Road bike"
    assert data["slug"] == bike.slug
    assert data["tagList"] == ["road"]
    assert data["description"] == "A red bike"


@pytest.mark.asyncio
async def test_update_item_by_other_user_is_forbidden(client: AsyncClient, bob_headers: dict, bike):
    response = await client.put(
        f"/api/v1/items/{bike.slug}", headers=bob_headers, json={"item": {"title": "Mine now"}}
    )
    assert response.status_code == 403
    assert response.json()["errors"]["message"] == "Access denied"


@pytest.mark.asyncio
async def test_delete_item(client: AsyncClient, auth_headers: dict, bike):
    response = await client.delete(f"/api/v1/items/{bike.slug}", headers=auth_headers)
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/items/{bike.slug}")).status_code == 404


@pytest.mark.asyncio
async def test_delete_item_by_other_user_is_forbidden(client: AsyncClient, bob_headers: dict, bike):
    response = await client.delete(f"/api/v1/items/{bike.slug}", headers=bob_headers)
    assert response.status_code == 403
    assert (await client.get(f"/api/v1/items/{bike.slug}")).status_code == 200


@pytest.mark.asyncio
async def test_favorite_and_unfavorite(client: AsyncClient, bob_headers: dict, bike):
    response = await client.post(f"/api/v1/items/{bike.slug}/favorite", headers=bob_headers)
    assert response.status_code == 200
    data = response.json()["item"]
    assert data["favorited"] is True
    assert data["favoritesCount"] == 1

    # Repeating the toggle is a no-op
    response = await client.post(f"/api/v1/items/{bike.slug}/favorite", headers=bob_headers)
    assert response.json()["item"]["favoritesCount"] == 1

    response = await client.delete(f"/api/v1/items/{bike.slug}/favorite", headers=bob_headers)
    data = response.json()["item"]
    assert data["favorited"] is False
    assert data["favoritesCount"] == 0


@pytest.mark.asyncio
async def test_list_filters(client: AsyncClient, bob_headers: dict, bike):
    await client.post("/api/v1/items", headers=bob_headers, json={"item": {"title": "Helmet", "tagList": ["sport"]}})
    await client.post(f"/api/v1/items/{bike.slug}/favorite", headers=bob_headers)

    by_tag = (await client.get("/api/v1/items", params={"tag": "sport"})).json()
    assert by_tag["itemsCount"] == 2
    assert [i["title"] for i in by_tag["items"]] == ["Helmet", "Bike"]

    by_seller = (await client.get("/api/v1/items", params={"seller": "alice"})).json()
    assert [i["title"] for i in by_seller["items"]] == ["Bike"]

    by_fan = (await client.get("/api/v1/items", params={"favorited": "bob"})).json()
    assert [i["title"] for i in by_fan["items"]] == ["Bike"]

    unknown = (await client.get("/api/v1/items", params={"seller": "nobody"})).json()
    assert unknown == {"items": [], "itemsCount": 0}


@pytest.mark.asyncio
async def test_pagination(client: AsyncClient, auth_headers: dict):
    for n in range(3):
        await client.post("/api/v1/items", headers=auth_headers, json={"item": {"title": f"Item {n}"}})
    page = (await client.get("/api/v1/items", params={"offset": 1, "limit": 1})).json()
    assert page["itemsCount"] == 3
    assert [i["title"] for i in page["items"]] == ["Item 1"]


@pytest.mark.asyncio
async def test_limit_is_bounded(client: AsyncClient):
    response = await client.get("/api/v1/items", params={"limit": 10_000})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_feed_lists_followed_sellers(client: AsyncClient, bob_headers: dict, bike):
    empty = (await client.get("/api/v1/items/feed", headers=bob_headers)).json()
    assert empty["itemsCount"] == 0

    await client.post("/api/v1/profiles/alice/follow", headers=bob_headers)
    feed = (await client.get("/api/v1/items/feed", headers=bob_headers)).json()
    assert [i["slug"] for i in feed["items"]] == [bike.slug]
    assert feed["items"][0]["author"]["following"] is True


@pytest.mark.asyncio
async def test_feed_requires_auth(client: AsyncClient):
    assert (await client.get("/api/v1/items/feed")).status_code == 401


@pytest.mark.asyncio
async def test_tags(client: AsyncClient, bike):
    response = await client.get("/api/v1/tags")
    assert response.status_code == 200
    assert response.json() == {"tags": ["outdoor", "sport"]}
