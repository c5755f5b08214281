"""Shared fixtures: small deterministic worlds."""

import copy

import numpy as np
import pytest

from src.gridlife import create_config
from src.gridlife.grid import WorldGrid
from src.gridlife.types import GridConfig, ResourceConfig

# Static food, no mutation, nothing seeded
BASE_CONFIG = {
    "seed": 0,
    "grid": {"height": 5, "width": 5, "edge": "torus", "topology": 4},
    "resource": {"layout": "uniform", "cap": 20.0, "initial": 10.0, "regrowth": "linear", "rate": 0.0},
    "mutation": {"rate": 0.0},
    "population": {"initial_size": 0},
}


def _merge(base: dict, overrides: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def make_config(**overrides):
    """BASE_CONFIG with per-section overrides, e.g. make_config(grid={"height": 3})."""
    return create_config(_merge(BASE_CONFIG, overrides))


def make_grid(height=5, width=5, edge="torus", topology=4, initial=10.0, cap=20.0,
              regrowth="linear", rate=0.5, timescale=10.0) -> WorldGrid:
    resource_config = ResourceConfig(cap=cap, initial=initial, regrowth=regrowth,
                                     rate=rate, timescale=timescale)
    return WorldGrid(
        GridConfig(height=height, width=width, edge=edge, topology=topology),
        resource_config,
        np.full((height, width), initial),
        np.full((height, width), cap),
    )


@pytest.fixture
def grid() -> WorldGrid:
    return make_grid()
