"""
Telemetry exporter - Write recorded channels to files.

Provides:
- CSV export on a common time base
- JSON export with channel statistics
- Compressed NumPy archives
- Channel summary
"""

from dataclasses import dataclass
from typing import List
from pathlib import Path
import csv
import json
import logging
import numpy as np

from vdc.telemetry.recorder import TelemetryRecorder

logger = logging.getLogger(__name__)


class NumpyEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy types."""

    def default(self, obj):
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, np.bool_):
            return bool(obj)
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        return super().default(obj)


@dataclass
class ExporterConfig:
    """Exporter configuration."""
    output_dir: str = "./telemetry_data"
    include_metadata: bool = True
    time_tolerance: float = 1e-6     # Max time mismatch when aligning CSV rows


class TelemetryExporter:
    """Export recorded telemetry for analysis in external tools."""

    def __init__(self, config: ExporterConfig | None = None):
        """Initialize exporter and create the output directory.

        Args:
            config: Exporter configuration
        """
        self.config = config or ExporterConfig()
        self._output_path = Path(self.config.output_dir)
        self._output_path.mkdir(parents=True, exist_ok=True)

    @property
    def output_path(self) -> Path:
        return self._output_path

    def export_csv(
        self,
        recorder: TelemetryRecorder,
        filename: str = "telemetry.csv",
        channels: List[str] | None = None,
    ) -> Path:
        """Export telemetry to a CSV file, one row per sample time.

        Args:
            recorder: Telemetry recorder with data
            filename: Output filename
            channels: Channels to export (None = all)

        Returns:
            Path to exported file
        """
        output_file = self._output_path / filename
        names = [name for name in (channels or list(recorder.channels)) if name in recorder.channels]

        series = {name: (recorder.channels[name].get_times(), recorder.channels[name].get_values()) for name in names}
        all_times = np.unique(np.concatenate([t for t, _ in series.values()])) if series else np.array([])

        with open(output_file, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(["time"] + names)
            for t in all_times:
                row = [f"{t:.4f}"]
                for name in names:
                    times, values = series[name]
                    idx = int(np.searchsorted(times, t))
                    if idx < len(times) and abs(times[idx] - t) <= self.config.time_tolerance:
                        row.append(f"{values[idx]:.6g}")
                    else:
                        row.append("")
                writer.writerow(row)

        logger.info(f"Exported {len(all_times)} telemetry rows to {output_file}")
        return output_file

    def export_json(
        self,
        recorder: TelemetryRecorder,
        filename: str = "telemetry.json",
    ) -> Path:
        """Export telemetry to a JSON file.

        Args:
            recorder: Telemetry recorder with data
            filename: Output filename

        Returns:
            Path to exported file
        """
        output_file = self._output_path / filename
        data = {
            "metadata": recorder.get_state() if self.config.include_metadata else {},
            "channels": {
                name: {
                    "unit": channel.unit,
                    "times": channel.get_times(),
                    "values": channel.get_values(),
                }
                for name, channel in recorder.channels.items()
            },
        }
        with open(output_file, 'w') as f:
            json.dump(data, f, indent=2, cls=NumpyEncoder)

        logger.info(f"Exported telemetry JSON to {output_file}")
        return output_file

    def export_numpy(
        self,
        recorder: TelemetryRecorder,
        filename: str = "telemetry.npz",
    ) -> Path:
        """Export telemetry to a compressed NumPy archive.

        Each channel becomes ``<name>_times`` and ``<name>_values`` arrays.

        Returns:
            Path to exported file
        """
        output_file = self._output_path / filename
        arrays = {}
        for name, channel in recorder.channels.items():
            arrays[f"{name}_times"] = channel.get_times()
            arrays[f"{name}_values"] = channel.get_values()
        np.savez_compressed(output_file, **arrays)

        logger.info(f"Exported telemetry archive to {output_file}")
        return output_file

    def export_summary(
        self,
        recorder: TelemetryRecorder,
        filename: str = "summary.json",
    ) -> Path:
        """Export per-channel min, max, mean and standard deviation.

        Returns:
            Path to exported file
        """
        output_file = self._output_path / filename
        summary = {
            "samples": recorder.sample_count,
            "channels": recorder.get_statistics(),
        }
        with open(output_file, 'w') as f:
            json.dump(summary, f, indent=2, cls=NumpyEncoder)

        logger.info(f"Exported telemetry summary to {output_file}")
        return output_file
