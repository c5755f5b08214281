"""Core types for the gridlife simulation."""

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

import numpy as np


# Instruction op codes (closed set)
NOP = 0
MOVE = 1
TURN_LEFT = 2
TURN_RIGHT = 3
EAT = 4
SENSE = 5
COPY = 6
JUMP_IF_ZERO = 7
REPRODUCE = 8

NUM_OPS = 9
OP_NAMES = ["nop", "move", "left", "right", "eat", "sense", "copy", "jz", "reproduce"]

# Ops that read their immediate operand; all others carry 0
OPERAND_OPS = (SENSE, COPY, JUMP_IF_ZERO)

# SENSE operand values
SENSE_FRONT_OCCUPIED = 0
SENSE_FRONT_RESOURCE = 1
SENSE_OWN_RESOURCE = 2
NUM_SENSORS = 3

# Action kinds returned by the VM
IDLE_ACTION = 0
MOVE_ACTION = 1
TURN_ACTION = 2
EAT_ACTION = 3
REPRODUCE_ACTION = 4
STARVE_ACTION = 5

ACTION_NAMES = ["idle", "move", "turn", "eat", "reproduce", "starve"]

# Scheduler states
IDLE = "idle"
RUNNING = "running"
PAUSED = "paused"
STEPPING = "stepping"

# Edge policies and topologies
TORUS = "torus"
BOUNDED = "bounded"
EDGE_POLICIES = (TORUS, BOUNDED)
TOPOLOGIES = (4, 8)


class Instruction(NamedTuple):
    """One genome site: op code plus at most one immediate operand."""
    op: int
    operand: int = 0


class Action(NamedTuple):
    """Outcome of one VM step, applied to the grid by the scheduler."""
    kind: int
    direction: int = 0  # facing for MOVE/TURN


class WorldView(NamedTuple):
    """Read-only neighbourhood snapshot handed to the VM.

    cells[d] is (occupied, resource) for the neighbour in direction d,
    or None when that neighbour lies off a bounded grid.
    """
    own_resource: float
    cells: tuple


class OrganismInfo(NamedTuple):
    """Debug view of a single organism."""
    id: int
    position: tuple
    energy: float
    age: int
    facing: int
    ip: int
    register: int
    genome: tuple
    parent_id: int
    generation: int


class GridSnapshot(NamedTuple):
    """Side-effect-free copy of the observable world state."""
    tick: int
    occupied: np.ndarray    # (height, width) bool
    resource: np.ndarray    # (height, width) float64
    selected: tuple         # OrganismInfo for each selected live organism


class Metrics(NamedTuple):
    """Per-tick counters, recorded at the end of every tick."""
    num_alive: int
    births: int
    deaths: int
    starved: int
    failed_reproductions: int
    blocked_moves: int
    eaten: float
    action_counts: tuple  # indexed by action kind


@dataclass(frozen=True)
class GridConfig:
    """Grid dimensions and neighbour topology."""
    height: int = 64
    width: int = 64
    edge: str = TORUS
    topology: int = 4


@dataclass(frozen=True)
class EnergyConfig:
    """Energy bounds and per-instruction costs."""
    max_energy: float = 100.0
    initial_energy: float = 50.0
    eat_max: float = 10.0         # largest bite per EAT
    cost_nop: float = 0.5
    cost_move: float = 1.0
    cost_turn: float = 0.5
    cost_eat: float = 0.5
    cost_sense: float = 0.5
    cost_copy: float = 0.5
    cost_jump: float = 0.5
    cost_reproduce: float = 5.0


@dataclass(frozen=True)
class ResourceConfig:
    """Resource field layout and regrowth rule."""
    cap: float = 20.0
    initial: float = 10.0
    layout: str = "uniform"       # uniform | gaussian
    length_scale: float = 16.0    # gaussian layout only
    regrowth: str = "linear"      # linear | relax
    rate: float = 0.5             # linear: units per cell per tick
    timescale: float = 50.0       # relax: ticks to close the gap


@dataclass(frozen=True)
class GenomeConfig:
    """Genome length bounds and founder genome."""
    min_length: int = 1
    max_length: int = 64
    ancestor: Optional[tuple] = None  # text form, e.g. ("move", "jz -2")
    random_length: int = 8            # used when ancestor is None


@dataclass(frozen=True)
class MutationConfig:
    """Per-site mutation rate and relative operator weights."""
    rate: float = 0.01
    weight_substitute: float = 0.6
    weight_insert: float = 0.2
    weight_delete: float = 0.2


@dataclass(frozen=True)
class ReproductionConfig:
    """Offspring energy split and placement search."""
    energy_fraction: float = 0.5
    search_radius: int = 2


@dataclass(frozen=True)
class PopulationConfig:
    """Initial seeding."""
    initial_size: int = 32
    placement: str = "random"     # random | center | explicit
    positions: tuple = ()         # explicit placement, ((y, x), ...)
    random_facing: bool = False


@dataclass(frozen=True)
class SimConfig:
    """Full configuration consumed by the simulation core."""
    grid: GridConfig = field(default_factory=GridConfig)
    energy: EnergyConfig = field(default_factory=EnergyConfig)
    resource: ResourceConfig = field(default_factory=ResourceConfig)
    genome: GenomeConfig = field(default_factory=GenomeConfig)
    mutation: MutationConfig = field(default_factory=MutationConfig)
    reproduction: ReproductionConfig = field(default_factory=ReproductionConfig)
    population: PopulationConfig = field(default_factory=PopulationConfig)
    seed: int = 0
    start_paused: bool = False
