"""Object storage for listing and banner images."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Protocol, Sequence

import ulid

from lostphones.domain.errors import FieldViolation, UpstreamFailure
from lostphones.domain.listings.models import ImageRef
from lostphones.obs import metrics
from lostphones.settings import settings

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
	"image/jpeg": ".jpg",
	"image/png": ".png",
	"image/webp": ".webp",
	"image/gif": ".gif",
}


class StorageError(Exception):
	"""Raised by storage backends when an object cannot be written or removed."""


@dataclass(slots=True, frozen=True)
class ImageUpload:
	content_type: str
	data: bytes
	filename: Optional[str] = None


class ObjectStorage(Protocol):
	async def put(self, key: str, data: bytes, content_type: str) -> str:
		"""Store an object and return its public URL."""
		...

	async def delete(self, key: str) -> None:
		...


def image_violations(uploads: Sequence[ImageUpload], *, field: str, max_count: int) -> list[FieldViolation]:
	"""Check count, type and size; the first problem found is reported against ``field``."""
	if len(uploads) > max_count:
		noun = "image is" if max_count == 1 else "images are"
		return [FieldViolation(field, f"at most {max_count} {noun} allowed")]
	for upload in uploads:
		if upload.content_type.lower() not in ALLOWED_MIME_TYPES:
			return [FieldViolation(field, "only jpeg, png, webp and gif images are allowed")]
		if len(upload.data) > settings.max_image_bytes:
			limit_mb = settings.max_image_bytes // (1024 * 1024)
			return [FieldViolation(field, f"each image must be at most {limit_mb}MB")]
	return []


def new_image_key(prefix: str, content_type: str) -> str:
	ext = ALLOWED_MIME_TYPES.get(content_type.lower(), ".jpg")
	return f"{prefix}/{ulid.new().str}{ext}"


class LocalObjectStorage(ObjectStorage):
	"""Writes objects under ``settings.upload_dir``; served from ``settings.upload_base_url``."""

	def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None) -> None:
		self._root = Path(root or settings.upload_dir)
		self._base_url = (base_url or settings.upload_base_url).rstrip("/")

	def _path(self, key: str) -> Path:
		path = (self._root / key).resolve()
		if self._root.resolve() not in path.parents:
			raise StorageError(f"key escapes storage root: {key}")
		return path

	async def put(self, key: str, data: bytes, content_type: str) -> str:
		path = self._path(key)

		def _write() -> None:
			path.parent.mkdir(parents=True, exist_ok=True)
			path.write_bytes(data)

		try:
			await asyncio.to_thread(_write)
		except OSError as exc:
			raise StorageError(str(exc)) from exc
		return f"{self._base_url}/{key}"

	async def delete(self, key: str) -> None:
		path = self._path(key)
		try:
			await asyncio.to_thread(path.unlink, missing_ok=True)
		except OSError as exc:
			raise StorageError(str(exc)) from exc


class InMemoryObjectStorage(ObjectStorage):
	def __init__(self, base_url: str = "memory://uploads") -> None:
		self.objects: dict[str, tuple[str, bytes]] = {}
		self.base_url = base_url
		self.fail_puts = False

	async def put(self, key: str, data: bytes, content_type: str) -> str:
		if self.fail_puts:
			raise StorageError("storage unavailable")
		self.objects[key] = (content_type, data)
		return f"{self.base_url}/{key}"

	async def delete(self, key: str) -> None:
		self.objects.pop(key, None)


async def upload_images(storage: ObjectStorage, uploads: Sequence[ImageUpload], *, prefix: str) -> list[ImageRef]:
	"""Upload every image or none: a failure removes what was already stored."""
	stored: list[ImageRef] = []
	for upload in uploads:
		key = new_image_key(prefix, upload.content_type)
		try:
			url = await storage.put(key, upload.data, upload.content_type)
		except StorageError as exc:
			metrics.inc_image_upload("error")
			logger.warning("image upload failed", extra={"key": key, "uploaded": len(stored)})
			await discard_images(storage, stored)
			raise UpstreamFailure("image_upload_failed") from exc
		stored.append(ImageRef(url=url, key=key))
	if stored:
		metrics.inc_image_upload("ok", len(stored))
	return stored


async def discard_images(storage: ObjectStorage, images: Iterable[ImageRef]) -> None:
	"""Remove stored images. Failures are logged; the records they belonged to are already gone."""
	for image in images:
		try:
			await storage.delete(image.key)
		except StorageError:
			logger.warning("image cleanup failed", extra={"key": image.key}, exc_info=True)
