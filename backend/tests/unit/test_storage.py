import pytest

from lostphones.domain.errors import UpstreamFailure
from lostphones.infra.storage import (
    ImageUpload,
    InMemoryObjectStorage,
    LocalObjectStorage,
    StorageError,
    discard_images,
    new_image_key,
    upload_images,
)


class FlakyStorage(InMemoryObjectStorage):
    """Accepts the first ``budget`` writes, then fails."""

    def __init__(self, budget: int) -> None:
        super().__init__()
        self.budget = budget

    async def put(self, key: str, data: bytes, content_type: str) -> str:
        if self.budget <= 0:
            raise StorageError("quota exceeded")
        self.budget -= 1
        return await super().put(key, data, content_type)


def uploads(count: int) -> list[ImageUpload]:
    return [ImageUpload(content_type="image/jpeg", data=b"jpeg") for _ in range(count)]


def test_image_keys_are_unique_and_keep_extension():
    first = new_image_key("listings/u1", "image/png")
    second = new_image_key("listings/u1", "image/png")
    assert first != second
    assert first.startswith("listings/u1/") and first.endswith(".png")


@pytest.mark.asyncio
async def test_upload_is_all_or_nothing():
    storage = FlakyStorage(budget=2)
    with pytest.raises(UpstreamFailure):
        await upload_images(storage, uploads(3), prefix="listings/u1")
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_upload_returns_references_in_order():
    storage = InMemoryObjectStorage()
    stored = await upload_images(storage, uploads(2), prefix="listings/u1")
    assert [image.url for image in stored] == [f"memory://uploads/{image.key}" for image in stored]
    await discard_images(storage, stored)
    assert storage.objects == {}


@pytest.mark.asyncio
async def test_local_storage_writes_under_root(tmp_path):
    storage = LocalObjectStorage(str(tmp_path), "http://cdn.test/uploads/")
    url = await storage.put("listings/u1/a.jpg", b"jpeg", "image/jpeg")
    assert url == "http://cdn.test/uploads/listings/u1/a.jpg"
    assert (tmp_path / "listings" / "u1" / "a.jpg").read_bytes() == b"jpeg"
    await storage.delete("listings/u1/a.jpg")
    assert not (tmp_path / "listings" / "u1" / "a.jpg").exists()


@pytest.mark.asyncio
async def test_local_storage_refuses_path_escape(tmp_path):
    storage = LocalObjectStorage(str(tmp_path / "uploads"))
    with pytest.raises(StorageError):
        await storage.put("../outside.jpg", b"x", "image/jpeg")
