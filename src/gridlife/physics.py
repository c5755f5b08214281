"""Physics helpers: directions, turning, instruction costs, resource regrowth."""

import numpy as np

from src.gridlife.types import (
    EnergyConfig,
    NOP, MOVE, TURN_LEFT, TURN_RIGHT, EAT, SENSE, COPY, JUMP_IF_ZERO, REPRODUCE,
)

# Direction deltas (dy, dx), clockwise from north. y grows southward.
_DELTAS_4 = np.array([[-1, 0], [0, 1], [1, 0], [0, -1]], dtype=np.int64)
_DELTAS_8 = np.array([
    [-1, 0], [-1, 1], [0, 1], [1, 1],
    [1, 0], [1, -1], [0, -1], [-1, -1],
], dtype=np.int64)

NORTH = 0


def get_direction_deltas(topology: int) -> np.ndarray:
    """Direction deltas: 4 -> N,E,S,W; 8 -> N,NE,E,SE,S,SW,W,NW."""
    if topology == 4:
        return _DELTAS_4
    if topology == 8:
        return _DELTAS_8
    raise ValueError(f"Unsupported topology {topology}")


def compute_new_facing(facing: int, op: int, topology: int) -> int:
    """Update facing for a turn op (left = counter-clockwise)."""
    if op == TURN_LEFT:
        return (facing - 1) % topology
    if op == TURN_RIGHT:
        return (facing + 1) % topology
    return facing


def ring_offsets(radius: int, topology: int) -> list:
    """Offsets at exactly `radius` steps from the origin, clockwise from north.

    4-connected uses the Manhattan diamond, 8-connected the Chebyshev square.
    Ring 1 matches get_direction_deltas order.
    """
    r = radius
    if topology == 4:
        ring = [(-r + i, i) for i in range(r)]          # N -> E
        ring += [(i, r - i) for i in range(r)]          # E -> S
        ring += [(r - i, -i) for i in range(r)]         # S -> W
        ring += [(-i, -r + i) for i in range(r)]        # W -> N
        return ring
    ring = [(-r, i) for i in range(0, r)]                # top edge, centre -> right
    ring += [(i, r) for i in range(-r, r)]               # right edge
    ring += [(r, i) for i in range(r, -r, -1)]           # bottom edge
    ring += [(i, -r) for i in range(r, -r, -1)]          # left edge
    ring += [(-r, i) for i in range(-r, 0)]              # top edge, left -> centre
    return ring


def get_instruction_costs(config: EnergyConfig) -> dict:
    """Build op -> energy cost table from config."""
    return {
        NOP: config.cost_nop,
        MOVE: config.cost_move,
        TURN_LEFT: config.cost_turn,
        TURN_RIGHT: config.cost_turn,
        EAT: config.cost_eat,
        SENSE: config.cost_sense,
        COPY: config.cost_copy,
        JUMP_IF_ZERO: config.cost_jump,
        REPRODUCE: config.cost_reproduce,
    }


def regenerate_resources(
    resource: np.ndarray,
    resource_base: np.ndarray,
    rule: str,
    rate: float,
    timescale: float,
    cap: float,
) -> np.ndarray:
    """Regrow resources toward the base field, clipped to [0, cap].

    linear: +rate per tick, never past the base level.
    relax: close a 1 - exp(-1/timescale) fraction of the gap to base per tick.
    """
    if rule == "linear":
        grown = np.where(resource < resource_base,
                         np.minimum(resource + rate, resource_base), resource)
    elif rule == "relax":
        if timescale <= 0:
            grown = resource
        else:
            rate = 1.0 - np.exp(-1.0 / timescale)
            grown = resource + (resource_base - resource) * rate
    else:
        raise ValueError(f"Unknown regrowth rule '{rule}'")
    return np.clip(grown, 0.0, cap)
