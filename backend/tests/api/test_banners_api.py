import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_admin_banner_lifecycle(api_client: AsyncClient, admin_user, headers_for, storage):
    headers = headers_for(admin_user)
    response = await api_client.post(
        "/admin/banners",
        data={
            "title": "Lost your phone?",
            "button_text": "Report it",
            "button_link": "/listings/new",
            "display_order": "2",
        },
        files={"image": ("hero.png", b"\x89PNGbanner", "image/png")},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    hero = response.json()
    assert hero["display_order"] == 2
    assert hero["is_active"] is True
    assert hero["button_link"] == "/listings/new"
    assert len(storage.objects) == 1

    response = await api_client.post(
        "/admin/banners",
        json={"image_url": "https://cdn.example.lk/shops.jpg", "display_order": 1},
        headers=headers,
    )
    assert response.status_code == 201
    shops = response.json()

    public = await api_client.get("/banners")
    assert public.status_code == 200
    assert [banner["id"] for banner in public.json()] == [shops["id"], hero["id"]]
    assert "image_key" not in public.json()[0]

    response = await api_client.put(f"/admin/banners/{hero['id']}", json={"is_active": False}, headers=headers)
    assert response.json()["is_active"] is False
    assert [banner["id"] for banner in (await api_client.get("/banners")).json()] == [shops["id"]]
    listed = await api_client.get("/admin/banners", headers=headers)
    assert len(listed.json()) == 2

    response = await api_client.delete(f"/admin/banners/{hero['id']}", headers=headers)
    assert response.status_code == 204
    assert storage.objects == {}
    response = await api_client.get(f"/admin/banners/{hero['id']}", headers=headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_banner_without_image_is_rejected(api_client: AsyncClient, admin_user, headers_for):
    response = await api_client.post(
        "/admin/banners", json={"title": "Nothing to show"}, headers=headers_for(admin_user)
    )
    assert response.status_code == 422
    assert [error["field"] for error in response.json()["errors"]] == ["image"]


@pytest.mark.asyncio
async def test_banner_admin_routes_require_admin(api_client: AsyncClient, member, headers_for):
    response = await api_client.get("/admin/banners")
    assert response.status_code == 401
    response = await api_client.post(
        "/admin/banners", json={"image_url": "https://cdn.example.lk/a.jpg"}, headers=headers_for(member)
    )
    assert response.status_code == 403
    assert (await api_client.get("/banners")).json() == []


@pytest.mark.asyncio
async def test_deleting_unknown_banner_is_not_found(api_client: AsyncClient, admin_user, headers_for):
    response = await api_client.delete("/admin/banners/missing", headers=headers_for(admin_user))
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"
