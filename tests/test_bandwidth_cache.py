"""Bandwidth cache: freshness window, state transitions, persistence."""

from __future__ import annotations

import json

import pytest

from storj_farmer.bandwidth.cache import FRESHNESS_WINDOW_MS, BandwidthCache, BandwidthState
from storj_farmer.errors import SpeedTestError

from tests.factories import make_sample, write_cache
from tests.mocks import MockSpeedTester


# ── Initial state ─────────────────────────────────────────────────


async def test_missing_file_is_stale(cache):
    sample, fresh = await cache.get_sample()
    assert sample is None
    assert fresh is False
    assert cache.state == BandwidthState.STALE


_GARBAGE = [
    "",
    "not json",
    "[]",
    '{"upload": 1}',
    '{"upload": "x", "download": 2, "timestamp": 3}',
    '{"upload": 1, "download": 2, "timestamp": Infinity}',
    '{"upload": 1, "download": 2, "timestamp": 1e400}',
    '{"upload": 1, "download": 2, "timestamp": NaN}',
]


@pytest.mark.parametrize("content", _GARBAGE)
async def test_unparsable_file_is_stale(cache, cache_path, content):
    cache_path.write_text(content)
    sample, fresh = await cache.get_sample()
    assert sample is None
    assert fresh is False


@pytest.mark.parametrize("content", _GARBAGE[-3:])
async def test_non_finite_timestamp_triggers_speed_test(cache, cache_path, clock, mock_speed_tester, content):
    cache_path.write_text(content)

    sample = await cache.refresh_if_stale()

    assert mock_speed_tester.calls == 1
    assert sample.timestamp == clock.now_ms
    assert json.loads(cache_path.read_text())["timestamp"] == clock.now_ms


def test_state_reflects_disk_before_first_use(cache_path, clock, mock_speed_tester):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms - 1000))
    cache = BandwidthCache(cache_path, mock_speed_tester, clock=clock)
    assert cache.state == BandwidthState.FRESH


def test_state_with_unreadable_file_before_first_use(cache_path, clock, mock_speed_tester):
    cache_path.write_text('{"upload": 1, "download": 2, "timestamp": Infinity}')
    cache = BandwidthCache(cache_path, mock_speed_tester, clock=clock)
    assert cache.state == BandwidthState.STALE


async def test_recent_file_is_fresh(cache, cache_path, clock):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms - 1000))
    sample, fresh = await cache.get_sample()
    assert fresh is True
    assert sample.upload == 100
    assert sample.download == 200
    assert cache.state == BandwidthState.FRESH


# ── Freshness boundary ────────────────────────────────────────────


async def test_age_exactly_at_window_is_stale(cache, cache_path, clock):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms - FRESHNESS_WINDOW_MS))
    _, fresh = await cache.get_sample()
    assert fresh is False
    assert cache.state == BandwidthState.STALE


async def test_age_one_ms_below_window_is_fresh(cache, cache_path, clock):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms - FRESHNESS_WINDOW_MS + 1))
    _, fresh = await cache.get_sample()
    assert fresh is True


async def test_becomes_stale_purely_with_time(cache, cache_path, clock, mock_speed_tester):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms))
    await cache.refresh_if_stale()
    assert mock_speed_tester.calls == 0

    clock.advance(FRESHNESS_WINDOW_MS - 1)
    assert cache.state == BandwidthState.FRESH
    clock.advance(1)
    assert cache.state == BandwidthState.STALE


async def test_future_timestamp_is_stale(cache, cache_path, clock, mock_speed_tester):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms + 60_000))

    _, fresh = await cache.get_sample()
    assert fresh is False
    assert cache.state == BandwidthState.STALE

    sample = await cache.refresh_if_stale()
    assert mock_speed_tester.calls == 1
    assert sample.timestamp == clock.now_ms
    assert cache.state == BandwidthState.FRESH


def test_window_is_25_hours():
    assert FRESHNESS_WINDOW_MS == 25 * 3600 * 1000


# ── Refresh ───────────────────────────────────────────────────────


async def test_fresh_sample_skips_speed_test(cache, cache_path, clock, mock_speed_tester):
    original = write_cache(cache_path, make_sample(timestamp=clock.now_ms))
    sample = await cache.refresh_if_stale()
    assert mock_speed_tester.calls == 0
    assert sample.upload == 100
    assert cache_path.read_bytes() == original


async def test_stale_refresh_writes_cache(cache, cache_path, clock, mock_speed_tester):
    sample = await cache.refresh_if_stale()

    assert mock_speed_tester.calls == 1
    assert sample.upload == mock_speed_tester.upload
    assert sample.download == mock_speed_tester.download
    assert sample.timestamp == clock.now_ms
    assert json.loads(cache_path.read_text()) == {
        "upload": mock_speed_tester.upload,
        "download": mock_speed_tester.download,
        "timestamp": clock.now_ms,
    }
    assert cache.state == BandwidthState.FRESH


async def test_old_sample_is_replaced(cache, cache_path, clock, mock_speed_tester):
    write_cache(cache_path, make_sample(timestamp=clock.now_ms - FRESHNESS_WINDOW_MS - 5))
    sample = await cache.refresh_if_stale()
    assert mock_speed_tester.calls == 1
    assert sample.timestamp == clock.now_ms


async def test_failed_test_leaves_cache_untouched(cache_path, clock):
    original = write_cache(cache_path, make_sample(timestamp=clock.now_ms - FRESHNESS_WINDOW_MS))
    tester = MockSpeedTester(succeed=False, error="speed-test host unreachable")
    cache = BandwidthCache(cache_path, tester, clock=clock)

    with pytest.raises(SpeedTestError, match="speed-test host unreachable"):
        await cache.refresh_if_stale()

    assert tester.calls == 1
    assert cache_path.read_bytes() == original
    assert cache.state == BandwidthState.STALE


async def test_failed_test_without_file_creates_nothing(cache_path, clock):
    cache = BandwidthCache(cache_path, MockSpeedTester(succeed=False), clock=clock)
    with pytest.raises(SpeedTestError):
        await cache.refresh_if_stale()
    assert not cache_path.exists()


async def test_unexpected_tester_error_becomes_speed_test_error(cache_path, clock):
    class Exploding:
        async def test(self):
            raise ConnectionResetError("reset by peer")

    cache = BandwidthCache(cache_path, Exploding(), clock=clock)
    with pytest.raises(SpeedTestError, match="reset by peer"):
        await cache.refresh_if_stale()


async def test_state_is_testing_while_in_flight(cache_path, clock):
    seen = []

    class Observing(MockSpeedTester):
        async def test(self):
            seen.append(cache.state)
            return await super().test()

    cache = BandwidthCache(cache_path, Observing(), clock=clock)
    await cache.refresh_if_stale()
    assert seen == [BandwidthState.TESTING]
    assert cache.state == BandwidthState.FRESH


async def test_refresh_creates_parent_directory(tmp_path, clock, mock_speed_tester):
    path = tmp_path / "nested" / "dir" / "speedtest.json"
    cache = BandwidthCache(path, mock_speed_tester, clock=clock)
    await cache.refresh_if_stale()
    assert path.exists()
