"""Home page banners: the public carousel and its admin maintenance.

A banner needs an image, either uploaded (stored through ``ObjectStorage`` and
removed again when replaced or deleted) or given as an external URL. A button
link is only kept together with button text.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence
from uuid import uuid4

from lostphones.domain.access import Principal, require_admin
from lostphones.domain.banners.models import Banner
from lostphones.domain.banners.repository import BannerRepository
from lostphones.domain.banners.schemas import BannerIn, BannerPatch
from lostphones.domain.errors import FieldViolation, NotFound, ValidationError
from lostphones.domain.validation import validate
from lostphones.infra.storage import ImageUpload, ObjectStorage, discard_images, image_violations, upload_images

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("title", "subtitle", "button_text", "button_link")


def _parse(model: type, raw: Mapping[str, Any], images: Sequence[ImageUpload]) -> Any:
    violations: list[FieldViolation] = []
    payload = None
    try:
        payload = validate(model, raw)
    except ValidationError as exc:
        violations.extend(exc.violations)
    violations.extend(image_violations(images, field="image", max_count=1))
    if violations:
        raise ValidationError(violations)
    return payload


class BannerService:
    def __init__(self, repository: BannerRepository, storage: ObjectStorage) -> None:
        self._repo = repository
        self._storage = storage

    async def list_active(self) -> Sequence[Banner]:
        return await self._repo.list_banners(active_only=True)

    async def list_all(self, actor: Principal) -> Sequence[Banner]:
        require_admin(actor)
        return await self._repo.list_banners()

    async def get(self, actor: Principal, banner_id: str) -> Banner:
        require_admin(actor)
        banner = await self._repo.get(banner_id)
        if banner is None:
            raise NotFound("banner")
        return banner

    async def create(
        self, actor: Principal, raw: Mapping[str, Any], images: Sequence[ImageUpload] = ()
    ) -> Banner:
        require_admin(actor)
        payload: BannerIn = _parse(BannerIn, raw, images)
        if not images and payload.image_url is None:
            raise ValidationError.single("image", "an image upload or image_url is required")

        stored = await upload_images(self._storage, images, prefix="banners")
        banner = Banner(
            id=str(uuid4()),
            image_url=stored[0].url if stored else payload.image_url,
            image_key=stored[0].key if stored else None,
            title=payload.title,
            subtitle=payload.subtitle,
            button_text=payload.button_text,
            button_link=payload.button_link if payload.button_text else None,
            is_active=payload.is_active,
            display_order=payload.display_order,
        )
        try:
            created = await self._repo.save(banner)
        except Exception:
            await discard_images(self._storage, stored)
            raise
        logger.info(
            "banner created",
            extra={"banner_id": created.id, "actor_id": actor.id, "uploaded": bool(stored)},
        )
        return created

    async def update(
        self,
        actor: Principal,
        banner_id: str,
        raw: Mapping[str, Any],
        images: Sequence[ImageUpload] = (),
    ) -> Banner:
        banner = await self.get(actor, banner_id)
        payload: BannerPatch = _parse(BannerPatch, raw, images)

        changes: dict[str, Any] = {}
        for key, value in payload.model_dump(exclude_unset=True).items():
            if key in _TEXT_FIELDS or value is not None:
                changes[key] = value
        stored = await upload_images(self._storage, images, prefix="banners")
        if stored:
            changes["image_url"] = stored[0].url
            changes["image_key"] = stored[0].key
        elif changes.get("image_url") is not None:
            changes["image_key"] = None

        updated = replace(banner, **changes, updated_at=datetime.now(timezone.utc))
        if not updated.button_text:
            updated.button_link = None
        try:
            saved = await self._repo.save(updated)
        except Exception:
            await discard_images(self._storage, stored)
            raise

        previous = banner.stored_image
        if previous is not None and previous.key != saved.image_key:
            await discard_images(self._storage, [previous])
        logger.info(
            "banner updated",
            extra={"banner_id": banner_id, "actor_id": actor.id, "fields": sorted(changes)},
        )
        return saved

    async def delete(self, actor: Principal, banner_id: str) -> None:
        banner = await self.get(actor, banner_id)
        if not await self._repo.delete(banner_id):
            raise NotFound("banner")
        previous = banner.stored_image
        if previous is not None:
            await discard_images(self._storage, [previous])
        logger.info("banner deleted", extra={"banner_id": banner_id, "actor_id": actor.id})
