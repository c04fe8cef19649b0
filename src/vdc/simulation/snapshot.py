"""
Snapshots - Versioned record of complete vehicle state.

Provides:
- Capture and restore of a Vehicle's mutable state
- JSON persistence

Restoring a snapshot and stepping continues the simulation exactly as
the original would have.
"""

from copy import deepcopy
from pathlib import Path
from typing import Any, Dict
import json
import logging

from vdc.errors import SnapshotVersionError
from vdc.telemetry.exporter import NumpyEncoder

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


def capture_snapshot(vehicle) -> Dict[str, Any]:
    """Capture the vehicle's complete mutable state.

    Args:
        vehicle: Vehicle to capture

    Returns:
        Snapshot record of plain data
    """
    return {
        "version": SNAPSHOT_VERSION,
        "config": vehicle.config.to_dict(),
        "state": deepcopy(vehicle.export_state()),
    }


def restore_snapshot(vehicle, snapshot: Dict[str, Any]) -> None:
    """Restore a vehicle from a snapshot.

    The vehicle must have been built from the same configuration.

    Raises:
        SnapshotVersionError: if the snapshot format is not supported
    """
    version = snapshot.get("version")
    if version != SNAPSHOT_VERSION:
        raise SnapshotVersionError(f"Unsupported snapshot version {version!r}, expected {SNAPSHOT_VERSION}")
    vehicle.import_state(deepcopy(snapshot["state"]))


def save_snapshot(snapshot: Dict[str, Any], path: str | Path) -> Path:
    """Write a snapshot to a JSON file.

    Floats are written with full round-trip precision.

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(snapshot, f, cls=NumpyEncoder)
    logger.info(f"Saved snapshot to {path}")
    return path


def load_snapshot(path: str | Path) -> Dict[str, Any]:
    """Read a snapshot written by save_snapshot.

    Raises:
        SnapshotVersionError: if the snapshot format is not supported
    """
    with open(path) as f:
        snapshot = json.load(f)
    if snapshot.get("version") != SNAPSHOT_VERSION:
        raise SnapshotVersionError(f"Unsupported snapshot version {snapshot.get('version')!r} in {path}")
    return snapshot
