"""Brand/model/color and district/town vocabularies."""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence
from uuid import uuid4

from lostphones.domain.access import Principal, require_admin
from lostphones.domain.errors import Conflict, FieldViolation, NotFound, ValidationError
from lostphones.domain.metadata.models import District, PhoneBrand, PhoneColor, PhoneModel, Town
from lostphones.domain.metadata.repository import MetadataRepository

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

BRAND_NAME_MAX = 50
MODEL_NAME_MAX = 100
COLOR_NAME_MAX = 30
PLACE_NAME_MAX = 100


def _clean_name(value: Optional[str], field: str, max_length: int, violations: list[FieldViolation]) -> str:
    cleaned = (value or "").strip()
    if not cleaned or len(cleaned) > max_length:
        violations.append(FieldViolation(field, f"{field} must be between 1 and {max_length} characters"))
    return cleaned


def _raise_if(violations: list[FieldViolation]) -> None:
    if violations:
        raise ValidationError(violations)


class MetadataService:
    """Public lookups and admin maintenance of the metadata hierarchy."""

    def __init__(self, repository: MetadataRepository) -> None:
        self._repo = repository

    # public reads

    async def list_brands(self, *, search: Optional[str] = None) -> Sequence[PhoneBrand]:
        return await self._repo.list_brands(search=search)

    async def list_models(
        self, *, brand_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneModel]:
        return await self._repo.list_models(brand_id=brand_id, search=search)

    async def list_colors(
        self, *, model_id: Optional[str] = None, search: Optional[str] = None
    ) -> Sequence[PhoneColor]:
        return await self._repo.list_colors(model_id=model_id, search=search)

    async def list_districts(self, *, include_inactive: bool = False) -> Sequence[District]:
        return await self._repo.list_districts(active_only=not include_inactive)

    async def list_towns(
        self, *, district_id: Optional[str] = None, include_inactive: bool = False
    ) -> Sequence[Town]:
        return await self._repo.list_towns(district_id=district_id, active_only=not include_inactive)

    # brands

    async def create_brand(self, actor: Principal, *, name: str, logo: Optional[str] = None) -> PhoneBrand:
        require_admin(actor)
        violations: list[FieldViolation] = []
        name = _clean_name(name, "name", BRAND_NAME_MAX, violations)
        _raise_if(violations)
        if await self._repo.brand_name_taken(name):
            raise Conflict("brand_exists")
        brand = await self._repo.save_brand(PhoneBrand(id=str(uuid4()), name=name, logo=logo))
        logger.info("metadata brand created", extra={"brand_id": brand.id, "actor_id": actor.id})
        return brand

    async def update_brand(
        self, actor: Principal, brand_id: str, *, name: Optional[str] = None, logo: Optional[str] = None
    ) -> PhoneBrand:
        require_admin(actor)
        brand = await self._repo.get_brand(brand_id)
        if brand is None:
            raise NotFound("brand")
        if name is not None:
            violations: list[FieldViolation] = []
            name = _clean_name(name, "name", BRAND_NAME_MAX, violations)
            _raise_if(violations)
            if await self._repo.brand_name_taken(name, exclude_id=brand.id):
                raise Conflict("brand_exists")
            brand.name = name
        if logo is not None:
            brand.logo = logo or None
        return await self._repo.save_brand(brand)

    async def delete_brand(self, actor: Principal, brand_id: str) -> None:
        require_admin(actor)
        if await self._repo.get_brand(brand_id) is None:
            raise NotFound("brand")
        if await self._repo.count_models(brand_id) > 0:
            raise Conflict("brand_has_models")
        await self._repo.delete_brand(brand_id)
        logger.info("metadata brand deleted", extra={"brand_id": brand_id, "actor_id": actor.id})

    # models

    async def create_model(
        self, actor: Principal, *, brand_id: str, name: str, image: Optional[str] = None
    ) -> PhoneModel:
        require_admin(actor)
        violations: list[FieldViolation] = []
        name = _clean_name(name, "name", MODEL_NAME_MAX, violations)
        _raise_if(violations)
        if await self._repo.get_brand(brand_id) is None:
            raise NotFound("brand")
        if await self._repo.model_name_taken(brand_id, name):
            raise Conflict("model_exists")
        model = PhoneModel(id=str(uuid4()), name=name, brand_id=brand_id, image=image)
        return await self._repo.save_model(model)

    async def update_model(
        self,
        actor: Principal,
        model_id: str,
        *,
        name: Optional[str] = None,
        brand_id: Optional[str] = None,
        image: Optional[str] = None,
    ) -> PhoneModel:
        require_admin(actor)
        model = await self._repo.get_model(model_id)
        if model is None:
            raise NotFound("model")
        violations: list[FieldViolation] = []
        new_name = _clean_name(name, "name", MODEL_NAME_MAX, violations) if name is not None else model.name
        _raise_if(violations)
        new_brand = brand_id or model.brand_id
        if new_brand != model.brand_id and await self._repo.get_brand(new_brand) is None:
            raise NotFound("brand")
        if await self._repo.model_name_taken(new_brand, new_name, exclude_id=model.id):
            raise Conflict("model_exists")
        model.name = new_name
        model.brand_id = new_brand
        if image is not None:
            model.image = image or None
        return await self._repo.save_model(model)

    async def delete_model(self, actor: Principal, model_id: str) -> None:
        require_admin(actor)
        if await self._repo.get_model(model_id) is None:
            raise NotFound("model")
        if await self._repo.count_colors(model_id) > 0:
            raise Conflict("model_has_colors")
        await self._repo.delete_model(model_id)

    # colors

    @staticmethod
    def _clean_hex(hex_code: Optional[str], violations: list[FieldViolation]) -> Optional[str]:
        if not hex_code:
            return None
        if not HEX_COLOR.match(hex_code):
            violations.append(FieldViolation("hex_code", "hex_code must be a valid hex color code"))
        return hex_code

    async def create_color(
        self, actor: Principal, *, model_id: str, name: str, hex_code: Optional[str] = None
    ) -> PhoneColor:
        require_admin(actor)
        violations: list[FieldViolation] = []
        name = _clean_name(name, "name", COLOR_NAME_MAX, violations)
        hex_code = self._clean_hex(hex_code, violations)
        _raise_if(violations)
        if await self._repo.get_model(model_id) is None:
            raise NotFound("model")
        if await self._repo.color_name_taken(model_id, name):
            raise Conflict("color_exists")
        color = PhoneColor(id=str(uuid4()), name=name, model_id=model_id, hex_code=hex_code)
        return await self._repo.save_color(color)

    async def update_color(
        self,
        actor: Principal,
        color_id: str,
        *,
        name: Optional[str] = None,
        model_id: Optional[str] = None,
        hex_code: Optional[str] = None,
    ) -> PhoneColor:
        """Update a color. An empty ``hex_code`` clears it; ``None`` leaves it alone."""
        require_admin(actor)
        color = await self._repo.get_color(color_id)
        if color is None:
            raise NotFound("color")
        violations: list[FieldViolation] = []
        new_name = _clean_name(name, "name", COLOR_NAME_MAX, violations) if name is not None else color.name
        new_hex = self._clean_hex(hex_code, violations) if hex_code is not None else color.hex_code
        _raise_if(violations)
        new_model = model_id or color.model_id
        if new_model != color.model_id and await self._repo.get_model(new_model) is None:
            raise NotFound("model")
        if await self._repo.color_name_taken(new_model, new_name, exclude_id=color.id):
            raise Conflict("color_exists")
        color.name = new_name
        color.model_id = new_model
        color.hex_code = new_hex
        return await self._repo.save_color(color)

    async def delete_color(self, actor: Principal, color_id: str) -> None:
        require_admin(actor)
        if await self._repo.get_color(color_id) is None:
            raise NotFound("color")
        await self._repo.delete_color(color_id)

    # districts

    async def create_district(self, actor: Principal, *, name: str, is_active: bool = True) -> District:
        require_admin(actor)
        violations: list[FieldViolation] = []
        name = _clean_name(name, "name", PLACE_NAME_MAX, violations)
        _raise_if(violations)
        if await self._repo.district_name_taken(name):
            raise Conflict("district_exists")
        district = await self._repo.save_district(District(id=str(uuid4()), name=name, is_active=is_active))
        logger.info("metadata district created", extra={"district_id": district.id, "actor_id": actor.id})
        return district

    async def update_district(
        self,
        actor: Principal,
        district_id: str,
        *,
        name: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> District:
        require_admin(actor)
        district = await self._repo.get_district(district_id)
        if district is None:
            raise NotFound("district")
        if name is not None:
            violations: list[FieldViolation] = []
            name = _clean_name(name, "name", PLACE_NAME_MAX, violations)
            _raise_if(violations)
            if await self._repo.district_name_taken(name, exclude_id=district.id):
                raise Conflict("district_exists")
            district.name = name
        if is_active is not None:
            district.is_active = is_active
        return await self._repo.save_district(district)

    async def delete_district(self, actor: Principal, district_id: str) -> None:
        require_admin(actor)
        if await self._repo.get_district(district_id) is None:
            raise NotFound("district")
        if await self._repo.count_towns(district_id) > 0:
            raise Conflict("district_has_towns")
        await self._repo.delete_district(district_id)

    # towns

    async def create_town(
        self, actor: Principal, *, district_id: str, name: str, is_active: bool = True
    ) -> Town:
        require_admin(actor)
        violations: list[FieldViolation] = []
        name = _clean_name(name, "name", PLACE_NAME_MAX, violations)
        _raise_if(violations)
        if await self._repo.get_district(district_id) is None:
            raise NotFound("district")
        if await self._repo.town_name_taken(district_id, name):
            raise Conflict("town_exists")
        town = Town(id=str(uuid4()), name=name, district_id=district_id, is_active=is_active)
        return await self._repo.save_town(town)

    async def update_town(
        self,
        actor: Principal,
        town_id: str,
        *,
        name: Optional[str] = None,
        district_id: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Town:
        require_admin(actor)
        town = await self._repo.get_town(town_id)
        if town is None:
            raise NotFound("town")
        violations: list[FieldViolation] = []
        new_name = _clean_name(name, "name", PLACE_NAME_MAX, violations) if name is not None else town.name
        _raise_if(violations)
        new_district = district_id or town.district_id
        if new_district != town.district_id and await self._repo.get_district(new_district) is None:
            raise NotFound("district")
        if await self._repo.town_name_taken(new_district, new_name, exclude_id=town.id):
            raise Conflict("town_exists")
        town.name = new_name
        town.district_id = new_district
        if is_active is not None:
            town.is_active = is_active
        return await self._repo.save_town(town)

    async def delete_town(self, actor: Principal, town_id: str) -> None:
        require_admin(actor)
        if await self._repo.get_town(town_id) is None:
            raise NotFound("town")
        await self._repo.delete_town(town_id)
