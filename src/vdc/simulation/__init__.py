"""
Simulation module - World queries, stepping and snapshots.

This module contains:
- World: Ground, surface and obstacle queries
- Snapshot: Versioned vehicle state capture and restore
- Simulator: Fixed-step loop with degeneracy recovery
"""

from vdc.simulation.world import (
    SurfaceKind,
    GroundSample,
    Obstacle,
    Environment,
    WorldQuery,
    FlatWorld,
    PatchWorld,
    SurfacePatch,
    EmptyWorld,
)
from vdc.simulation.snapshot import capture_snapshot, restore_snapshot, save_snapshot, load_snapshot
from vdc.simulation.simulator import Simulator, SimulatorConfig

__all__ = [
    "SurfaceKind",
    "GroundSample",
    "Obstacle",
    "Environment",
    "WorldQuery",
    "FlatWorld",
    "PatchWorld",
    "SurfacePatch",
    "EmptyWorld",
    "capture_snapshot",
    "restore_snapshot",
    "save_snapshot",
    "load_snapshot",
    "Simulator",
    "SimulatorConfig",
]
