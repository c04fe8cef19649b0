"""
Telemetry recorder - Samples telemetry frames into named channels.

Provides:
- Standard vehicle dynamics channels
- Custom channels addressed by dotted telemetry paths
- Fixed sample-rate decimation
"""

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple

from vdc.telemetry.channel import TelemetryChannel, ChannelConfig
from vdc.telemetry.frame import TelemetryFrame


def _corner_channels(prefix: str, field_name: str, unit: str, low: float, high: float, precision: int):
    return {
        f"{prefix}_{corner.lower()}": (
            ChannelConfig(f"{prefix}_{corner.lower()}", unit, low, high, precision),
            f"wheels.{corner}.{field_name}",
        )
        for corner in ("FL", "FR", "RL", "RR")
    }


# Channel name -> (config, dotted path into the telemetry frame)
STANDARD_CHANNELS: Dict[str, Tuple[ChannelConfig, str]] = {
    # Motion
    "speed_kph": (ChannelConfig("speed_kph", "km/h", 0, 500, 1), "body.speed_kph"),
    "lateral_g": (ChannelConfig("lateral_g", "g", -5, 5, 3), "body.lateral_g"),
    "longitudinal_g": (ChannelConfig("longitudinal_g", "g", -5, 5, 3), "body.longitudinal_g"),
    "yaw_rate": (ChannelConfig("yaw_rate", "rad/s", -10, 10, 4), "body.yaw_rate"),
    "heading": (ChannelConfig("heading", "rad", -4, 4, 4), "body.heading_rad"),

    # Driver
    "throttle": (ChannelConfig("throttle", "", 0, 1, 3), "inputs.throttle"),
    "brake": (ChannelConfig("brake", "", 0, 1, 3), "inputs.brake"),
    "steering": (ChannelConfig("steering", "deg", -720, 720, 1), "steering.steering_wheel_deg"),

    # Engine and drivetrain
    "rpm": (ChannelConfig("rpm", "rpm", 0, 12000, 0), "engine.rpm"),
    "engine_torque": (ChannelConfig("engine_torque", "Nm", 0, 2000, 1), "engine.torque_nm"),
    "engine_temp": (ChannelConfig("engine_temp", "°C", 0, 200, 1), "engine.temperature_c"),
    "gear": (ChannelConfig("gear", "", -1, 10, 0), "drivetrain.gear"),
    "clutch": (ChannelConfig("clutch", "", 0, 1, 3), "drivetrain.clutch"),

    # Aero
    "drag": (ChannelConfig("drag", "N", 0, 20000, 1), "aero.drag_n"),
    "downforce_front": (ChannelConfig("downforce_front", "N", -20000, 20000, 1), "aero.downforce_front_n"),
    "downforce_rear": (ChannelConfig("downforce_rear", "N", -20000, 20000, 1), "aero.downforce_rear_n"),
}
STANDARD_CHANNELS.update(_corner_channels("slip_ratio", "slip_ratio", "", -1, 1, 4))
STANDARD_CHANNELS.update(_corner_channels("slip_angle", "slip_angle_rad", "rad", -3.2, 3.2, 4))
STANDARD_CHANNELS.update(_corner_channels("load", "load_n", "N", 0, 50000, 1))
STANDARD_CHANNELS.update(_corner_channels("tire_temp", "surface_temp_c", "°C", 0, 200, 1))
STANDARD_CHANNELS.update(_corner_channels("tire_wear", "wear", "", 0, 1, 5))


@dataclass
class RecorderConfig:
    """Recorder configuration."""
    sample_rate_hz: float = 60.0       # Recording frequency
    channels: List[str] | None = None  # Channels to record (None = all standard)
    buffer_size: int = 100000          # Per-channel buffer size


class TelemetryRecorder:
    """Records vehicle telemetry frames over time.

    Each channel reads one numeric value from the frame; booleans are
    stored as 0/1 and missing values are skipped.
    """

    def __init__(self, config: RecorderConfig | None = None):
        """Initialize recorder.

        Args:
            config: Recorder configuration
        """
        self.config = config or RecorderConfig()
        self._channels: Dict[str, TelemetryChannel] = {}
        self._paths: Dict[str, str] = {}
        self._setup_channels()

        self._last_sample_time: Optional[float] = None
        self._sample_interval: float = 1.0 / self.config.sample_rate_hz
        self._frames_seen: int = 0
        self._degraded_frames: int = 0

    def _setup_channels(self) -> None:
        names = self.config.channels or list(STANDARD_CHANNELS.keys())
        for name in names:
            if name in STANDARD_CHANNELS:
                cfg, path = STANDARD_CHANNELS[name]
                cfg = replace(cfg, buffer_size=self.config.buffer_size)
            else:
                cfg, path = ChannelConfig(name=name, buffer_size=self.config.buffer_size), name
            self._channels[name] = TelemetryChannel(cfg)
            self._paths[name] = path

    def add_channel(self, name: str, path: str, unit: str = "", precision: int = 3) -> TelemetryChannel:
        """Record an extra telemetry value.

        Args:
            name: Channel name
            path: Dotted path into the frame, e.g. ``brakes.temperatures_c.0``
            unit: Display unit
            precision: Rounding used in statistics

        Returns:
            The new channel
        """
        channel = TelemetryChannel(ChannelConfig(name, unit, precision=precision, buffer_size=self.config.buffer_size))
        self._channels[name] = channel
        self._paths[name] = path
        return channel

    @property
    def channels(self) -> Dict[str, TelemetryChannel]:
        return self._channels

    @property
    def sample_count(self) -> int:
        """Frames actually sampled."""
        return max((ch.count for ch in self._channels.values()), default=0)

    def get_channel(self, name: str) -> Optional[TelemetryChannel]:
        return self._channels.get(name)

    def record(self, frame: TelemetryFrame | Mapping[str, Any]) -> bool:
        """Sample a frame if the sample interval has elapsed.

        Args:
            frame: Telemetry frame, or a vehicle telemetry dict

        Returns:
            True if the frame was sampled
        """
        if not isinstance(frame, TelemetryFrame):
            frame = TelemetryFrame.capture(dict(frame))
        self._frames_seen += 1
        if frame.degraded:
            self._degraded_frames += 1

        # Small tolerance so a rate matching the step rate never skips
        if self._last_sample_time is not None and frame.time - self._last_sample_time < self._sample_interval - 1e-9:
            return False
        self._last_sample_time = frame.time

        for name, channel in self._channels.items():
            value = frame.get(self._paths[name])
            if isinstance(value, bool):
                value = float(value)
            if isinstance(value, (int, float)):
                channel.record(frame.time, value)
        return True

    def get_current_values(self) -> Dict[str, float]:
        """Most recent value of every channel."""
        return {name: ch.last_value for name, ch in self._channels.items()}

    def get_statistics(self) -> Dict[str, Dict[str, Any]]:
        return {name: ch.get_state() for name, ch in self._channels.items()}

    def clear(self) -> None:
        """Clear all recorded data."""
        for channel in self._channels.values():
            channel.clear()
        self._last_sample_time = None
        self._frames_seen = 0
        self._degraded_frames = 0

    def get_state(self) -> dict:
        """Get recorder state.

        Returns:
            Dictionary containing recorder state
        """
        return {
            "sample_rate_hz": self.config.sample_rate_hz,
            "frames_seen": self._frames_seen,
            "degraded_frames": self._degraded_frames,
            "total_samples": sum(ch.count for ch in self._channels.values()),
            "channels": self.get_statistics(),
        }
