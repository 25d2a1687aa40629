import pytest

from lostphones import container
from lostphones.domain.errors import Conflict, Forbidden, NotFound, ValidationError


@pytest.mark.asyncio
async def test_brand_model_color_hierarchy(admin):
    service = container.get_metadata_service()
    apple = await service.create_brand(admin, name=" Apple ")
    samsung = await service.create_brand(admin, name="Samsung")
    iphone = await service.create_model(admin, brand_id=apple.id, name="iPhone 13")
    await service.create_model(admin, brand_id=samsung.id, name="Galaxy S21")
    await service.create_color(admin, model_id=iphone.id, name="Blue", hex_code="#1E4FD8")

    assert [brand.name for brand in await service.list_brands()] == ["Apple", "Samsung"]
    assert [brand.name for brand in await service.list_brands(search="sam")] == ["Samsung"]
    assert [model.name for model in await service.list_models(brand_id=apple.id)] == ["iPhone 13"]
    colors = await service.list_colors(model_id=iphone.id)
    assert [(color.name, color.hex_code) for color in colors] == [("Blue", "#1E4FD8")]


@pytest.mark.asyncio
async def test_names_are_unique_case_insensitively(admin):
    service = container.get_metadata_service()
    apple = await service.create_brand(admin, name="Apple")
    with pytest.raises(Conflict) as excinfo:
        await service.create_brand(admin, name="APPLE")
    assert excinfo.value.detail == "brand_exists"
    await service.create_model(admin, brand_id=apple.id, name="iPhone 13")
    with pytest.raises(Conflict):
        await service.create_model(admin, brand_id=apple.id, name="iphone 13")


@pytest.mark.asyncio
async def test_same_model_name_under_different_brands(admin):
    service = container.get_metadata_service()
    first = await service.create_brand(admin, name="Oppo")
    second = await service.create_brand(admin, name="Vivo")
    await service.create_model(admin, brand_id=first.id, name="X100")
    await service.create_model(admin, brand_id=second.id, name="X100")


@pytest.mark.asyncio
async def test_parents_with_children_cannot_be_deleted(admin):
    service = container.get_metadata_service()
    brand = await service.create_brand(admin, name="Google")
    model = await service.create_model(admin, brand_id=brand.id, name="Pixel 7")
    color = await service.create_color(admin, model_id=model.id, name="Obsidian")
    with pytest.raises(Conflict) as excinfo:
        await service.delete_brand(admin, brand.id)
    assert excinfo.value.detail == "brand_has_models"
    with pytest.raises(Conflict):
        await service.delete_model(admin, model.id)
    await service.delete_color(admin, color.id)
    await service.delete_model(admin, model.id)
    await service.delete_brand(admin, brand.id)
    assert await service.list_brands() == []


@pytest.mark.asyncio
async def test_district_with_towns_is_a_conflict(admin):
    service = container.get_metadata_service()
    colombo = await service.create_district(admin, name="Colombo")
    town = await service.create_town(admin, district_id=colombo.id, name="Nugegoda")
    with pytest.raises(Conflict) as excinfo:
        await service.delete_district(admin, colombo.id)
    assert excinfo.value.detail == "district_has_towns"
    await service.delete_town(admin, town.id)
    await service.delete_district(admin, colombo.id)


@pytest.mark.asyncio
async def test_inactive_locations_are_hidden_from_public_lists(admin):
    service = container.get_metadata_service()
    colombo = await service.create_district(admin, name="Colombo")
    await service.create_district(admin, name="Galle", is_active=False)
    await service.create_town(admin, district_id=colombo.id, name="Nugegoda")
    await service.create_town(admin, district_id=colombo.id, name="Kottawa", is_active=False)
    assert [district.name for district in await service.list_districts()] == ["Colombo"]
    assert len(await service.list_districts(include_inactive=True)) == 2
    assert [town.name for town in await service.list_towns(district_id=colombo.id)] == ["Nugegoda"]


@pytest.mark.asyncio
async def test_missing_parent_is_not_found(admin):
    service = container.get_metadata_service()
    with pytest.raises(NotFound):
        await service.create_model(admin, brand_id="missing", name="Phantom")
    with pytest.raises(NotFound):
        await service.create_town(admin, district_id="missing", name="Nowhere")
    with pytest.raises(NotFound):
        await service.update_brand(admin, "missing", name="Ghost")


@pytest.mark.asyncio
async def test_invalid_names_and_hex_codes(admin):
    service = container.get_metadata_service()
    brand = await service.create_brand(admin, name="Nokia")
    model = await service.create_model(admin, brand_id=brand.id, name="3310")
    with pytest.raises(ValidationError) as excinfo:
        await service.create_color(admin, model_id=model.id, name="", hex_code="blue")
    assert set(excinfo.value.fields) == {"name", "hex_code"}
    with pytest.raises(ValidationError):
        await service.create_brand(admin, name="x" * 51)


@pytest.mark.asyncio
async def test_update_color_clears_hex_with_empty_string(admin):
    service = container.get_metadata_service()
    brand = await service.create_brand(admin, name="Huawei")
    model = await service.create_model(admin, brand_id=brand.id, name="P30")
    color = await service.create_color(admin, model_id=model.id, name="Aurora", hex_code="#abc")
    updated = await service.update_color(admin, color.id, hex_code="")
    assert updated.hex_code is None
    renamed = await service.update_color(admin, color.id, name="Breathing Crystal")
    assert renamed.name == "Breathing Crystal"
    assert renamed.hex_code is None


@pytest.mark.asyncio
async def test_writes_require_admin(member, as_principal):
    with pytest.raises(Forbidden):
        await container.get_metadata_service().create_brand(as_principal(member), name="Apple")
