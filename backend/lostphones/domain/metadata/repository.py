"""Storage contract for the metadata vocabularies."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from lostphones.domain.metadata.models import District, PhoneBrand, PhoneColor, PhoneModel, Town


def normalise_name(name: str) -> str:
    return name.strip().casefold()


def _contains(value: str, needle: Optional[str]) -> bool:
    return not needle or needle.casefold() in value.casefold()


class MetadataRepository(Protocol):
    async def list_brands(self, *, search: Optional[str] = None) -> Sequence[PhoneBrand]:
        ...

    async def get_brand(self, brand_id: str) -> Optional[PhoneBrand]:
        ...

    async def brand_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def save_brand(self, brand: PhoneBrand) -> PhoneBrand:
        ...

    async def delete_brand(self, brand_id: str) -> None:
        ...

    async def list_models(
        self, *, brand_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneModel]:
        ...

    async def get_model(self, model_id: str) -> Optional[PhoneModel]:
        ...

    async def model_name_taken(self, brand_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def save_model(self, model: PhoneModel) -> PhoneModel:
        ...

    async def delete_model(self, model_id: str) -> None:
        ...

    async def count_models(self, brand_id: str) -> int:
        ...

    async def list_colors(
        self, *, model_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneColor]:
        ...

    async def get_color(self, color_id: str) -> Optional[PhoneColor]:
        ...

    async def color_name_taken(self, model_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def save_color(self, color: PhoneColor) -> PhoneColor:
        ...

    async def delete_color(self, color_id: str) -> None:
        ...

    async def count_colors(self, model_id: str) -> int:
        ...

    async def list_districts(self, *, active_only: bool = False) -> Sequence[District]:
        ...

    async def get_district(self, district_id: str) -> Optional[District]:
        ...

    async def district_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def save_district(self, district: District) -> District:
        ...

    async def delete_district(self, district_id: str) -> None:
        ...

    async def list_towns(
        self, *, district_id: Optional[str] = None, active_only: bool = False
    ) -> Sequence[Town]:
        ...

    async def get_town(self, town_id: str) -> Optional[Town]:
        ...

    async def town_name_taken(self, district_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        ...

    async def save_town(self, town: Town) -> Town:
        ...

    async def delete_town(self, town_id: str) -> None:
        ...

    async def count_towns(self, district_id: str) -> int:
        ...


class InMemoryMetadataRepository(MetadataRepository):
    """Dictionary-backed store used by tests and database-less runs."""

    def __init__(self) -> None:
        self.brands: dict[str, PhoneBrand] = {}
        self.models: dict[str, PhoneModel] = {}
        self.colors: dict[str, PhoneColor] = {}
        self.districts: dict[str, District] = {}
        self.towns: dict[str, Town] = {}

    # brands

    async def list_brands(self, *, search: Optional[str] = None) -> Sequence[PhoneBrand]:
        items = [brand for brand in self.brands.values() if _contains(brand.name, search)]
        return sorted(items, key=lambda brand: brand.name.casefold())

    async def get_brand(self, brand_id: str) -> Optional[PhoneBrand]:
        return self.brands.get(brand_id)

    async def brand_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = normalise_name(name)
        return any(
            normalise_name(brand.name) == key and brand.id != exclude_id for brand in self.brands.values()
        )

    async def save_brand(self, brand: PhoneBrand) -> PhoneBrand:
        self.brands[brand.id] = brand
        return brand

    async def delete_brand(self, brand_id: str) -> None:
        self.brands.pop(brand_id, None)

    # models

    async def list_models(
        self, *, brand_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneModel]:
        items = [
            model
            for model in self.models.values()
            if (brand_id is None or model.brand_id == brand_id) and _contains(model.name, search)
        ]
        return sorted(items, key=lambda model: model.name.casefold())

    async def get_model(self, model_id: str) -> Optional[PhoneModel]:
        return self.models.get(model_id)

    async def model_name_taken(self, brand_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = normalise_name(name)
        return any(
            model.brand_id == brand_id and normalise_name(model.name) == key and model.id != exclude_id
            for model in self.models.values()
        )

    async def save_model(self, model: PhoneModel) -> PhoneModel:
        self.models[model.id] = model
        return model

    async def delete_model(self, model_id: str) -> None:
        self.models.pop(model_id, None)

    async def count_models(self, brand_id: str) -> int:
        return sum(1 for model in self.models.values() if model.brand_id == brand_id)

    # colors

    async def list_colors(
        self, *, model_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneColor]:
        items = [
            color
            for color in self.colors.values()
            if (model_id is None or color.model_id == model_id) and _contains(color.name, search)
        ]
        return sorted(items, key=lambda color: color.name.casefold())

    async def get_color(self, color_id: str) -> Optional[PhoneColor]:
        return self.colors.get(color_id)

    async def color_name_taken(self, model_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = normalise_name(name)
        return any(
            color.model_id == model_id and normalise_name(color.name) == key and color.id != exclude_id
            for color in self.colors.values()
        )

    async def save_color(self, color: PhoneColor) -> PhoneColor:
        self.colors[color.id] = color
        return color

    async def delete_color(self, color_id: str) -> None:
        self.colors.pop(color_id, None)

    async def count_colors(self, model_id: str) -> int:
        return sum(1 for color in self.colors.values() if color.model_id == model_id)

    # districts

    async def list_districts(self, *, active_only: bool = False) -> Sequence[District]:
        items = [district for district in self.districts.values() if district.is_active or not active_only]
        return sorted(items, key=lambda district: district.name.casefold())

    async def get_district(self, district_id: str) -> Optional[District]:
        return self.districts.get(district_id)

    async def district_name_taken(self, name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = normalise_name(name)
        return any(
            normalise_name(district.name) == key and district.id != exclude_id
            for district in self.districts.values()
        )

    async def save_district(self, district: District) -> District:
        self.districts[district.id] = district
        return district

    async def delete_district(self, district_id: str) -> None:
        self.districts.pop(district_id, None)

    # towns

    async def list_towns(
        self, *, district_id: Optional[str] = None, active_only: bool = False
    ) -> Sequence[Town]:
        items = [
            town
            for town in self.towns.values()
            if (district_id is None or town.district_id == district_id) and (town.is_active or not active_only)
        ]
        return sorted(items, key=lambda town: town.name.casefold())

    async def get_town(self, town_id: str) -> Optional[Town]:
        return self.towns.get(town_id)

    async def town_name_taken(self, district_id: str, name: str, *, exclude_id: Optional[str] = None) -> bool:
        key = normalise_name(name)
        return any(
            town.district_id == district_id and normalise_name(town.name) == key and town.id != exclude_id
            for town in self.towns.values()
        )

    async def save_town(self, town: Town) -> Town:
        self.towns[town.id] = town
        return town

    async def delete_town(self, town_id: str) -> None:
        self.towns.pop(town_id, None)

    async def count_towns(self, district_id: str) -> int:
        return sum(1 for town in self.towns.values() if town.district_id == district_id)
