"""Bandwidth measurement: speed test transport and freshness cache."""

from storj_farmer.bandwidth.cache import BandwidthCache, BandwidthState
from storj_farmer.bandwidth.speedtest import HttpSpeedTest

__all__ = ["BandwidthCache", "BandwidthState", "HttpSpeedTest"]
