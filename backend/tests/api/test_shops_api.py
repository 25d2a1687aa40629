import pytest
from httpx import AsyncClient

SHOP_BODY = {
    "username": "acme",
    "email": "owner@acme.lk",
    "password": "secret123",
    "shop_name": "ACME Mobile",
    "owner_name": "Nimal Perera",
    "contact_number": "+94 77 123 4567",
    "address": "12 High Level Road",
    "location": "Nugegoda",
}


async def register_shop(api_client: AsyncClient, **overrides) -> dict:
    response = await api_client.post("/auth/register-shop", json={**SHOP_BODY, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


async def login(api_client: AsyncClient, identifier: str = "acme"):
    return await api_client.post("/auth/login", json={"identifier": identifier, "password": "secret123"})


@pytest.mark.asyncio
async def test_shop_must_be_approved_before_login(api_client: AsyncClient, admin_user, headers_for):
    registered = await register_shop(api_client)
    assert registered["shop"]["status"] == "pending"
    assert registered["shop"]["is_approved"] is False
    assert registered["user"]["role"] == "shop"

    response = await login(api_client)
    assert response.status_code == 403
    assert response.json()["kind"] == "pending_approval"

    shop_id = registered["shop"]["id"]
    admin_headers = headers_for(admin_user)

    async def listed(status: str) -> list[str]:
        response = await api_client.get("/admin/shops", params={"status": status}, headers=admin_headers)
        return [shop["shop_name"] for shop in response.json()["items"]]

    assert await listed("pending") == ["ACME Mobile"]
    response = await api_client.patch(f"/admin/shops/{shop_id}/approve", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["is_approved"] is True
    assert response.json()["approved_by"] == admin_user.id
    assert await listed("pending") == []
    assert await listed("approved") == ["ACME Mobile"]

    response = await login(api_client, "owner@acme.lk")
    assert response.status_code == 200
    body = response.json()
    assert body["user"]["role"] == "shop"
    assert body["shop"]["shop_name"] == "ACME Mobile"
    assert body["token"]


@pytest.mark.asyncio
async def test_second_approval_reports_already_approved(api_client: AsyncClient, admin_user, headers_for):
    shop_id = (await register_shop(api_client))["shop"]["id"]
    headers = headers_for(admin_user)
    assert (await api_client.patch(f"/admin/shops/{shop_id}/approve", headers=headers)).status_code == 200
    response = await api_client.patch(f"/admin/shops/{shop_id}/approve", headers=headers)
    assert response.status_code == 409
    assert response.json()["kind"] == "already_approved"


@pytest.mark.asyncio
async def test_rejected_owner_logs_in_as_regular_user(api_client: AsyncClient, admin_user, headers_for):
    shop_id = (await register_shop(api_client))["shop"]["id"]
    response = await api_client.patch(
        f"/admin/shops/{shop_id}/reject",
        json={"reason": "could not verify business address"},
        headers=headers_for(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"
    assert response.json()["decision_reason"] == "could not verify business address"

    response = await login(api_client)
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "user"
    assert response.json()["shop"] is None

    detail = await api_client.get(f"/admin/shops/{shop_id}", headers=headers_for(admin_user))
    assert detail.json()["shop"]["status"] == "rejected"


@pytest.mark.asyncio
async def test_revoked_shop_cannot_log_in(api_client: AsyncClient, admin_user, headers_for):
    shop_id = (await register_shop(api_client))["shop"]["id"]
    headers = headers_for(admin_user)
    await api_client.patch(f"/admin/shops/{shop_id}/approve", headers=headers)
    response = await api_client.patch(f"/admin/shops/{shop_id}/revoke", headers=headers)
    assert response.json()["status"] == "revoked"

    response = await login(api_client)
    assert response.status_code == 403
    assert response.json()["detail"] == "forbidden"


@pytest.mark.asyncio
async def test_duplicate_shop_name_is_a_conflict(api_client: AsyncClient):
    await register_shop(api_client)
    response = await api_client.post(
        "/auth/register-shop",
        json={**SHOP_BODY, "username": "other", "email": "other@acme.lk", "shop_name": "acme mobile"},
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "shop_name_taken"


@pytest.mark.asyncio
async def test_approved_shop_posts_listing_under_shop_name(api_client: AsyncClient, approved_shop, headers_for, listing_data):
    owner, shop = approved_shop
    response = await api_client.post("/listings", json=listing_data(), headers=headers_for(owner))
    assert response.status_code == 201
    body = response.json()
    assert body["is_shop_created"] is True
    assert body["shop_id"] == shop.id
    assert body["shop_name"] == "ACME Mobile"
    assert body["author_id"] is None

    profile = await api_client.get("/auth/shop-profile", headers=headers_for(owner))
    assert profile.json()["id"] == shop.id
    response = await api_client.put(
        "/auth/shop-profile", json={"description": "Phone repairs and accessories"}, headers=headers_for(owner)
    )
    assert response.json()["description"] == "Phone repairs and accessories"


@pytest.mark.asyncio
async def test_member_has_no_shop_profile(api_client: AsyncClient, member, headers_for):
    response = await api_client.get("/auth/shop-profile", headers=headers_for(member))
    assert response.status_code == 403
    assert response.json() == {"kind": "forbidden", "detail": "forbidden", "request_id": response.headers["x-request-id"]}
