"""Shared fixtures for storj_farmer tests."""

from __future__ import annotations

import json

import pytest
from stellar_sdk import Keypair

from storj_farmer.bandwidth.cache import BandwidthCache
from storj_farmer.models.config import (
    FarmerConfig,
    NetworkConfig,
    StorageConfig,
    StorageUnit,
    TelemetryConfig,
)
from storj_farmer.telemetry.scheduler import TelemetryScheduler

from tests.factories import make_contact
from tests.mocks import FakeClock, MockAggregator, MockSpeedTester, MockTransport

TEST_SECRET = "SBWVJTD3F5ETMVWCNI7MM4HUAPUSCUXXMUEJZJTPRWRJGXW2BF4SVQTK"
TEST_PUBLIC = "GDNAG4KFFVF5HCSGRWZIXZNL2SR2KBGJSHW2A6FI6DZI62XF6IBLO4GD"
TEST_PAYMENT = "1PaymentAddressXYZ"


def make_test_config(tmp_path, **overrides) -> FarmerConfig:
    """Build a FarmerConfig suitable for testing."""
    defaults = dict(
        keypath=str(tmp_path / "id_ecdsa"),
        address=TEST_PAYMENT,
        storage=StorageConfig(path=str(tmp_path / "data"), size=2, unit=StorageUnit.GB),
        network=NetworkConfig(address="10.0.0.5", port=4000),
        telemetry=TelemetryConfig(
            enabled=True,
            service="http://127.0.0.1:9287",
            speedtest_url="http://127.0.0.1:9287",
            speedtest_cache=str(tmp_path / "speedtest.json"),
            interval=1,
        ),
    )
    defaults.update(overrides)
    return FarmerConfig(**defaults)


def write_config_file(datadir, raw: dict) -> None:
    datadir.mkdir(parents=True, exist_ok=True)
    (datadir / "config.json").write_text(json.dumps(raw))


@pytest.fixture
def test_config(tmp_path):
    return make_test_config(tmp_path)


@pytest.fixture
def keypair():
    return Keypair.from_secret(TEST_SECRET)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "speedtest.json"


@pytest.fixture
def mock_speed_tester():
    return MockSpeedTester(succeed=True)


@pytest.fixture
def mock_transport():
    return MockTransport(succeed=True)


@pytest.fixture
def mock_aggregator():
    return MockAggregator(used=5000)


@pytest.fixture
def cache(cache_path, mock_speed_tester, clock):
    return BandwidthCache(cache_path, mock_speed_tester, clock=clock)


@pytest.fixture
def scheduler(cache, mock_aggregator, mock_transport, test_config):
    """TelemetryScheduler with mocked transport and aggregator."""
    return TelemetryScheduler(
        cache=cache,
        aggregator=mock_aggregator,
        transport=mock_transport,
        storage=test_config.storage,
        contact=make_contact(),
        payment=TEST_PAYMENT,
        interval=300,
    )

