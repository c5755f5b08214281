"""Configuration loading and validation.

Configs are yaml files shaped like the dataclasses in types.py:

    seed: 0
    grid: {height: 64, width: 64, edge: torus, topology: 4}
    energy: {max_energy: 100.0, cost_move: 1.0, ...}
    resource: {cap: 20.0, layout: gaussian, regrowth: linear, rate: 0.5}
    genome: {max_length: 64, ancestor: [sense 0, jz 2, move, eat, reproduce]}
    mutation: {rate: 0.01}
    reproduction: {energy_fraction: 0.5, search_radius: 2}
    population: {initial_size: 32, placement: random}

Missing keys fall back to dataclass defaults. Invalid values are rejected
before any tick runs; nothing is silently corrected.
"""

from dataclasses import fields

import yaml

from src.gridlife.genome import parse_genome
from src.gridlife.types import (
    SimConfig, GridConfig, EnergyConfig, ResourceConfig, GenomeConfig,
    MutationConfig, ReproductionConfig, PopulationConfig,
    EDGE_POLICIES, TOPOLOGIES,
)
from src.gridlife.worlds import WORLD_TYPES

SECTIONS = {
    "grid": GridConfig,
    "energy": EnergyConfig,
    "resource": ResourceConfig,
    "genome": GenomeConfig,
    "mutation": MutationConfig,
    "reproduction": ReproductionConfig,
    "population": PopulationConfig,
}

REGROWTH_RULES = ("linear", "relax")
PLACEMENTS = ("random", "center", "explicit")

# Fields that index arrays or count cells
INT_FIELDS = {
    "grid": ("height", "width", "topology"),
    "genome": ("min_length", "max_length", "random_length"),
    "reproduction": ("search_radius",),
    "population": ("initial_size",),
}


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def load_config(path: str) -> dict:
    """Load YAML config file."""
    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def _build_section(name: str, cls, values: dict):
    if values is None:
        values = {}
    if not isinstance(values, dict):
        raise ValueError(f"FATAL: config section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ValueError(f"FATAL: unknown keys in '{name}': {sorted(unknown)}")

    kwargs = dict(values)
    if name == "genome" and kwargs.get("ancestor") is not None:
        kwargs["ancestor"] = tuple(str(line) for line in kwargs["ancestor"])
    if name == "population" and "positions" in kwargs:
        positions = kwargs["positions"] or ()
        if not all(isinstance(pos, (list, tuple)) for pos in positions):
            raise ValueError(f"FATAL: initial positions must be [y, x] pairs, got {positions}")
        kwargs["positions"] = tuple(tuple(pos) for pos in positions)
    return cls(**kwargs)


def create_config(config: dict) -> SimConfig:
    """Create a validated SimConfig from a yaml-shaped dict."""
    config = config or {}
    top_level = set(SECTIONS) | {"seed", "start_paused"}
    unknown = set(config) - top_level
    if unknown:
        raise ValueError(f"FATAL: unknown config keys: {sorted(unknown)}")

    sections = {name: _build_section(name, cls, config.get(name)) for name, cls in SECTIONS.items()}
    sim_config = SimConfig(
        seed=config.get("seed", 0),
        start_paused=bool(config.get("start_paused", False)),
        **sections,
    )
    validate_config(sim_config)
    return sim_config


def validate_config(config: SimConfig):
    """Reject invalid configuration.

    Raises:
        ValueError: On the first invalid value found
    """
    if not _is_int(config.seed):
        raise ValueError(f"FATAL: seed must be an integer, got {config.seed!r}")
    for name in SECTIONS:
        section = getattr(config, name)
        for f in fields(section):
            value = getattr(section, f.name)
            if f.name in INT_FIELDS.get(name, ()):
                if not _is_int(value):
                    raise ValueError(f"FATAL: {name}.{f.name} must be an integer, got {value!r}")
            elif isinstance(f.default, float) and not _is_number(value):
                raise ValueError(f"FATAL: {name}.{f.name} must be a number, got {value!r}")

    g = config.grid
    if g.height <= 0 or g.width <= 0:
        raise ValueError(f"FATAL: grid dimensions must be positive, got {g.height}x{g.width}")
    if g.edge not in EDGE_POLICIES:
        raise ValueError(f"FATAL: unknown edge policy '{g.edge}'. Available: {EDGE_POLICIES}")
    if g.topology not in TOPOLOGIES:
        raise ValueError(f"FATAL: unknown topology {g.topology}. Available: {TOPOLOGIES}")

    e = config.energy
    if e.max_energy <= 0:
        raise ValueError(f"FATAL: max_energy must be positive, got {e.max_energy}")
    if not 0 < e.initial_energy <= e.max_energy:
        raise ValueError(f"FATAL: initial_energy must be in (0, {e.max_energy}], got {e.initial_energy}")
    if e.eat_max < 0:
        raise ValueError(f"FATAL: eat_max must be non-negative, got {e.eat_max}")
    for f in fields(e):
        if f.name.startswith("cost_") and getattr(e, f.name) < 0:
            raise ValueError(f"FATAL: {f.name} must be non-negative, got {getattr(e, f.name)}")

    r = config.resource
    if r.cap < 0:
        raise ValueError(f"FATAL: resource cap must be non-negative, got {r.cap}")
    if not 0 <= r.initial <= r.cap:
        raise ValueError(f"FATAL: initial resource must be in [0, {r.cap}], got {r.initial}")
    if r.layout not in WORLD_TYPES:
        raise ValueError(f"FATAL: unknown resource layout '{r.layout}'. Available: {list(WORLD_TYPES)}")
    if r.regrowth not in REGROWTH_RULES:
        raise ValueError(f"FATAL: unknown regrowth rule '{r.regrowth}'. Available: {REGROWTH_RULES}")
    if r.rate < 0 or r.timescale < 0:
        raise ValueError("FATAL: regrowth rate and timescale must be non-negative")
    if r.length_scale <= 0:
        raise ValueError(f"FATAL: length_scale must be positive, got {r.length_scale}")

    gc = config.genome
    if gc.min_length < 1:
        raise ValueError(f"FATAL: min_length must be at least 1, got {gc.min_length}")
    if gc.max_length < gc.min_length:
        raise ValueError(f"FATAL: max_length {gc.max_length} is below min_length {gc.min_length}")
    if gc.ancestor is not None:
        try:
            parse_genome(gc.ancestor, gc.max_length, gc.min_length)
        except ValueError as err:
            raise ValueError(f"FATAL: invalid ancestor genome: {err}") from err
    elif not gc.min_length <= gc.random_length <= gc.max_length:
        raise ValueError(
            f"FATAL: random_length {gc.random_length} outside [{gc.min_length}, {gc.max_length}]"
        )

    m = config.mutation
    if not 0.0 <= m.rate <= 1.0:
        raise ValueError(f"FATAL: mutation rate must be in [0, 1], got {m.rate}")
    weights = (m.weight_substitute, m.weight_insert, m.weight_delete)
    if min(weights) < 0 or sum(weights) <= 0:
        raise ValueError(f"FATAL: mutation weights must be non-negative and not all zero, got {weights}")

    rp = config.reproduction
    if not 0.0 < rp.energy_fraction < 1.0:
        raise ValueError(f"FATAL: energy_fraction must be in (0, 1), got {rp.energy_fraction}")
    if rp.search_radius < 1:
        raise ValueError(f"FATAL: search_radius must be at least 1, got {rp.search_radius}")

    p = config.population
    if p.initial_size < 0:
        raise ValueError(f"FATAL: initial_size must be non-negative, got {p.initial_size}")
    if p.initial_size > g.height * g.width:
        raise ValueError(f"FATAL: initial_size {p.initial_size} exceeds {g.height * g.width} cells")
    if p.placement not in PLACEMENTS:
        raise ValueError(f"FATAL: unknown placement '{p.placement}'. Available: {PLACEMENTS}")
    if p.placement == "explicit":
        if len(p.positions) != p.initial_size:
            raise ValueError(
                f"FATAL: explicit placement needs {p.initial_size} positions, got {len(p.positions)}"
            )
        for pos in p.positions:
            if len(pos) != 2 or not all(_is_int(v) for v in pos):
                raise ValueError(f"FATAL: initial position {pos} is not a pair of integers")
        if len(set(p.positions)) != len(p.positions):
            raise ValueError("FATAL: duplicate initial positions")
        for y, x in p.positions:
            if not (0 <= y < g.height and 0 <= x < g.width):
                raise ValueError(f"FATAL: initial position ({y}, {x}) is off the grid")
