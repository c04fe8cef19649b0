"""
Telemetry module - Vehicle data frames, recording and export.

This module contains:
- TelemetryFrame: Immutable end-of-tick vehicle snapshot
- TelemetryRecorder: Samples frames into channels
- TelemetryChannel: Individual data channel
- TelemetryExporter: Export telemetry to various formats
"""

from vdc.telemetry.frame import TelemetryFrame
from vdc.telemetry.recorder import TelemetryRecorder, RecorderConfig
from vdc.telemetry.channel import TelemetryChannel, ChannelConfig
from vdc.telemetry.exporter import TelemetryExporter, ExporterConfig

__all__ = [
    "TelemetryFrame",
    "TelemetryRecorder",
    "RecorderConfig",
    "TelemetryChannel",
    "ChannelConfig",
    "TelemetryExporter",
    "ExporterConfig",
]
