import pytest

from lostphones.infra.rate_limit import allow


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
    assert await allow("login", "10.0.0.5", limit=2, window_seconds=60)
    assert await allow("login", "10.0.0.5", limit=2, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    await allow("register", "10.0.0.6", limit=1, window_seconds=60)
    assert not await allow("register", "10.0.0.6", limit=1, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_windows_reset():
    assert await allow("login", "10.0.0.7", limit=1, window_seconds=60, now=1_000.0)
    assert not await allow("login", "10.0.0.7", limit=1, window_seconds=60, now=1_010.0)
    assert await allow("login", "10.0.0.7", limit=1, window_seconds=60, now=1_080.0)


@pytest.mark.asyncio
async def test_zero_limit_always_blocks():
    assert not await allow("login", "10.0.0.8", limit=0)
