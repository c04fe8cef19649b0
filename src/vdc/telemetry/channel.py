"""
Telemetry channel - One recorded vehicle quantity.

Provides:
- Bounded time-series buffer
- Running statistics over everything recorded
- Time-window queries
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Tuple
import math
import numpy as np


@dataclass
class ChannelConfig:
    """Configuration for a telemetry channel."""
    name: str = "unnamed"
    unit: str = ""
    min_value: float = float('-inf')
    max_value: float = float('inf')
    precision: int = 3
    buffer_size: int = 10000


class TelemetryChannel:
    """Single telemetry data channel.

    Samples beyond buffer_size drop the oldest entries; statistics keep
    covering every sample ever recorded.
    """

    def __init__(self, config: ChannelConfig | None = None, name: str = "channel"):
        """Initialize channel.

        Args:
            config: Channel configuration
            name: Channel name (used if config not provided)
        """
        self.config = config or ChannelConfig(name=name)

        self._times: Deque[float] = deque(maxlen=self.config.buffer_size)
        self._values: Deque[float] = deque(maxlen=self.config.buffer_size)

        self._min: float = float('inf')
        self._max: float = float('-inf')
        self._count: int = 0
        self._mean: float = 0.0
        self._m2: float = 0.0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def unit(self) -> str:
        return self.config.unit

    @property
    def count(self) -> int:
        """Number of samples recorded since the last clear."""
        return self._count

    @property
    def min_value(self) -> float:
        return self._min if self._count > 0 else 0.0

    @property
    def max_value(self) -> float:
        return self._max if self._count > 0 else 0.0

    @property
    def mean(self) -> float:
        return self._mean if self._count > 0 else 0.0

    @property
    def std(self) -> float:
        """Population standard deviation."""
        return math.sqrt(self._m2 / self._count) if self._count > 0 else 0.0

    @property
    def last_value(self) -> float:
        return self._values[-1] if self._values else 0.0

    def record(self, time: float, value: float) -> None:
        """Record a sample, clipped to the channel range.

        Args:
            time: Simulation time in seconds
            value: Sample value
        """
        value = float(np.clip(float(value), self.config.min_value, self.config.max_value))
        self._times.append(float(time))
        self._values.append(value)

        self._min = min(self._min, value)
        self._max = max(self._max, value)
        # Welford update
        self._count += 1
        delta = value - self._mean
        self._mean += delta / self._count
        self._m2 += delta * (value - self._mean)

    def get_values(self) -> np.ndarray:
        return np.array(self._values, dtype=float)

    def get_times(self) -> np.ndarray:
        return np.array(self._times, dtype=float)

    def get_last_n(self, n: int) -> np.ndarray:
        """Most recent n values."""
        if n <= 0:
            return np.array([], dtype=float)
        return self.get_values()[-n:]

    def get_range(self, start_time: float, end_time: float) -> Tuple[np.ndarray, np.ndarray]:
        """Samples with start_time <= t <= end_time.

        Returns:
            Tuple of (times, values) arrays
        """
        times = self.get_times()
        values = self.get_values()
        mask = (times >= start_time) & (times <= end_time)
        return times[mask], values[mask]

    def clear(self) -> None:
        """Clear all recorded data."""
        self._times.clear()
        self._values.clear()
        self._min = float('inf')
        self._max = float('-inf')
        self._count = 0
        self._mean = 0.0
        self._m2 = 0.0

    def get_state(self) -> dict:
        """Channel statistics rounded to the channel precision."""
        digits = self.config.precision
        recorded = self._count > 0
        return {
            "name": self.config.name,
            "unit": self.config.unit,
            "count": self._count,
            "min": round(self._min, digits) if recorded else None,
            "max": round(self._max, digits) if recorded else None,
            "mean": round(self.mean, digits) if recorded else None,
            "std": round(self.std, digits) if recorded else None,
            "last": round(self.last_value, digits) if recorded else None,
        }
