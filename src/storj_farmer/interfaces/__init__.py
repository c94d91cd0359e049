"""Protocol interfaces for the collaborators the farmer core drives."""

from storj_farmer.interfaces.node import NetworkNode
from storj_farmer.interfaces.speedtest import SpeedTester
from storj_farmer.interfaces.transport import TelemetryTransport

__all__ = ["NetworkNode", "SpeedTester", "TelemetryTransport"]
