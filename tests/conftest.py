"""Shared fixtures for the vehicle dynamics tests."""

import pytest

from vdc.config import VehicleConfig
from vdc.simulation.world import FlatWorld
from vdc.vehicle.vehicle import Vehicle


@pytest.fixture
def dt() -> float:
    return 1.0 / 120.0


@pytest.fixture
def vehicle() -> Vehicle:
    """Default car resting on flat dry asphalt."""
    return Vehicle()


@pytest.fixture
def ice_vehicle() -> Vehicle:
    return Vehicle(world=FlatWorld("ice"))


@pytest.fixture
def config_record() -> dict:
    """Partial camelCase configuration record as a game would ship it."""
    return {
        "mass": 1250.0,
        "cgToFront": 1.1,
        "frontalArea": 2.0,
        "dragCoefficient": 0.30,
        "engine": {"maxTorque": 350.0, "idleRpm": 900.0},
        "drivetrain": {"layout": "FWD", "shiftTimeSeconds": 0.2},
        "brakes": {"bias": 0.7, "absEnabled": False},
        "suspension": {
            "front": {"springRate": 40000.0},
            "rear": {"springRate": 30000.0},
        },
    }


@pytest.fixture
def default_config() -> VehicleConfig:
    return VehicleConfig()
