"""Telemetry reporting: periodic scheduler and HTTP delivery."""

from storj_farmer.telemetry.reporter import HttpTelemetryReporter
from storj_farmer.telemetry.scheduler import TelemetryScheduler

__all__ = ["HttpTelemetryReporter", "TelemetryScheduler"]
