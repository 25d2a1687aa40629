import pytest

from lostphones import container
from lostphones.domain.errors import Forbidden, NotFound, ValidationError
from lostphones.infra.storage import ImageUpload

EXTERNAL_IMAGE = "https://cdn.example.lk/banners/sale.jpg"


def jpeg(size: int = 32) -> ImageUpload:
    return ImageUpload(content_type="image/jpeg", data=b"\xff\xd8" + b"0" * size, filename="banner.jpg")


@pytest.mark.asyncio
async def test_public_list_shows_active_banners_in_display_order(admin):
    service = container.get_banner_service()
    third = await service.create(admin, {"image_url": EXTERNAL_IMAGE, "display_order": 3})
    first = await service.create(admin, {"image_url": EXTERNAL_IMAGE, "display_order": 1, "title": "Found it?"})
    await service.create(admin, {"image_url": EXTERNAL_IMAGE, "display_order": 0, "is_active": False})

    assert [banner.id for banner in await service.list_active()] == [first.id, third.id]
    assert len(await service.list_all(admin)) == 3


@pytest.mark.asyncio
async def test_uploaded_image_is_stored_and_removed_with_the_banner(admin, storage):
    service = container.get_banner_service()
    banner = await service.create(admin, {"title": "Shop week"}, [jpeg()])
    assert banner.image_key in storage.objects
    assert banner.image_url.endswith(banner.image_key)

    await service.delete(admin, banner.id)
    assert storage.objects == {}
    with pytest.raises(NotFound):
        await service.get(admin, banner.id)


@pytest.mark.asyncio
async def test_replacing_the_image_discards_the_old_upload(admin, storage):
    service = container.get_banner_service()
    banner = await service.create(admin, {}, [jpeg()])
    old_key = banner.image_key

    updated = await service.update(admin, banner.id, {"display_order": 4}, [jpeg(64)])
    assert updated.image_key != old_key
    assert list(storage.objects) == [updated.image_key]
    assert updated.display_order == 4

    external = await service.update(admin, banner.id, {"image_url": EXTERNAL_IMAGE})
    assert external.image_key is None
    assert external.image_url == EXTERNAL_IMAGE
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_image_is_required(admin):
    with pytest.raises(ValidationError) as excinfo:
        await container.get_banner_service().create(admin, {"title": "No picture"})
    assert excinfo.value.fields == ["image"]


@pytest.mark.asyncio
async def test_field_and_image_problems_are_reported_together(admin):
    text_file = ImageUpload(content_type="text/plain", data=b"hello", filename="notes.txt")
    with pytest.raises(ValidationError) as excinfo:
        await container.get_banner_service().create(
            admin, {"title": "x" * 101, "display_order": -1, "image_url": "ftp://example.lk/a.jpg"}, [text_file]
        )
    assert set(excinfo.value.fields) == {"title", "display_order", "image_url", "image"}


@pytest.mark.asyncio
async def test_only_one_image_per_banner(admin, storage):
    with pytest.raises(ValidationError) as excinfo:
        await container.get_banner_service().create(admin, {}, [jpeg(), jpeg()])
    assert excinfo.value.fields == ["image"]
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_button_link_needs_button_text(admin):
    service = container.get_banner_service()
    banner = await service.create(admin, {"image_url": EXTERNAL_IMAGE, "button_link": "/listings"})
    assert banner.button_link is None

    banner = await service.update(admin, banner.id, {"button_text": "Browse", "button_link": "/listings"})
    assert (banner.button_text, banner.button_link) == ("Browse", "/listings")

    cleared = await service.update(admin, banner.id, {"button_text": ""})
    assert cleared.button_text is None
    assert cleared.button_link is None


@pytest.mark.asyncio
async def test_members_cannot_manage_banners(member, as_principal, admin):
    service = container.get_banner_service()
    banner = await service.create(admin, {"image_url": EXTERNAL_IMAGE})
    principal = as_principal(member)
    with pytest.raises(Forbidden):
        await service.list_all(principal)
    with pytest.raises(Forbidden):
        await service.create(principal, {"image_url": EXTERNAL_IMAGE})
    with pytest.raises(Forbidden):
        await service.delete(principal, banner.id)
    assert [item.id for item in await service.list_active()] == [banner.id]


@pytest.mark.asyncio
async def test_missing_banner_is_not_found(admin):
    with pytest.raises(NotFound):
        await container.get_banner_service().update(admin, "missing", {"title": "Anything"})
    with pytest.raises(NotFound):
        await container.get_banner_service().delete(admin, "missing")
