"""World grid: cell occupancy, resources and spatial queries.

The grid is the authoritative holder of organisms. Occupancy lives in a
(height, width) id array (0 = empty) with a secondary id -> position index.
`place` and `remove` are the only occupancy mutators.
"""

from typing import Optional

import numpy as np

from src.gridlife.organism import Organism
from src.gridlife.physics import get_direction_deltas, regenerate_resources, ring_offsets
from src.gridlife.types import GridConfig, ResourceConfig, WorldView, TORUS

EMPTY = 0


class WorldGrid:
    """Bounded 2D grid with a fixed neighbour topology and edge policy."""

    def __init__(self, grid_config: GridConfig, resource_config: ResourceConfig,
                 resource: np.ndarray, resource_base: np.ndarray):
        self.height = grid_config.height
        self.width = grid_config.width
        self.torus = grid_config.edge == TORUS
        self.topology = grid_config.topology
        self.deltas = get_direction_deltas(self.topology)
        self.resource_config = resource_config

        shape = (self.height, self.width)
        if resource.shape != shape or resource_base.shape != shape:
            raise ValueError(f"Resource fields must have shape {shape}")

        self.occupancy = np.zeros(shape, dtype=np.int64)
        self.resource = np.clip(np.asarray(resource, dtype=np.float64), 0.0, resource_config.cap)
        self.resource_base = np.clip(np.asarray(resource_base, dtype=np.float64), 0.0, resource_config.cap)

        self.organisms = {}  # id -> Organism
        self.positions = {}  # id -> (y, x)

    @property
    def num_cells(self) -> int:
        return self.height * self.width

    def __len__(self) -> int:
        return len(self.organisms)

    def _wrap(self, y: int, x: int) -> Optional[tuple]:
        if self.torus:
            return (y % self.height, x % self.width)
        if 0 <= y < self.height and 0 <= x < self.width:
            return (y, x)
        return None

    def in_bounds(self, position: tuple) -> bool:
        y, x = position
        return 0 <= y < self.height and 0 <= x < self.width

    # ------------------------------------------------------------------
    # Spatial queries
    # ------------------------------------------------------------------

    def offset(self, position: tuple, direction: int) -> Optional[tuple]:
        """Neighbour of position in a direction, or None off a bounded grid."""
        dy, dx = self.deltas[direction]
        return self._wrap(position[0] + int(dy), position[1] + int(dx))

    def neighbors(self, position: tuple) -> list:
        """Neighbours in topology order (clockwise from north)."""
        result = []
        for d in range(self.topology):
            pos = self.offset(position, d)
            if pos is not None and pos != position and pos not in result:
                result.append(pos)
        return result

    def occupant(self, position: tuple) -> Optional[int]:
        oid = int(self.occupancy[position])
        return None if oid == EMPTY else oid

    def organism_at(self, position: tuple) -> Optional[Organism]:
        oid = self.occupant(position)
        return None if oid is None else self.organisms[oid]

    def get(self, organism_id: int) -> Optional[Organism]:
        return self.organisms.get(organism_id)

    def position_of(self, organism_id: int) -> Optional[tuple]:
        return self.positions.get(organism_id)

    def is_free(self, position: tuple) -> bool:
        return self.occupancy[position] == EMPTY

    def find_free_cell(self, origin: tuple, radius: Optional[int] = None) -> Optional[tuple]:
        """First free cell in rings of growing radius around origin.

        Within a ring, cells are visited clockwise from north. radius=None
        searches until the whole grid has been covered.
        """
        # Farthest ring that can still hold an unseen cell
        if self.topology == 4:
            max_radius = (self.height - 1) + (self.width - 1)
        else:
            max_radius = max(self.height, self.width) - 1
        if radius is None or radius > max_radius:
            radius = max_radius
        seen = {origin}
        for r in range(1, radius + 1):
            for dy, dx in ring_offsets(r, self.topology):
                pos = self._wrap(origin[0] + dy, origin[1] + dx)
                if pos is None or pos in seen:
                    continue
                seen.add(pos)
                if self.occupancy[pos] == EMPTY:
                    return pos
        return None

    def free_cells(self) -> list:
        """All free cells in row-major order."""
        ys, xs = np.nonzero(self.occupancy == EMPTY)
        return [(int(y), int(x)) for y, x in zip(ys, xs)]

    # ------------------------------------------------------------------
    # Occupancy mutation
    # ------------------------------------------------------------------

    def place(self, position: tuple, organism: Organism) -> bool:
        """Put organism into an empty cell. Returns False if occupied."""
        assert organism.id not in self.organisms, f"organism {organism.id} already placed"
        assert organism.id != EMPTY, "organism id 0 is reserved for empty cells"
        if self.occupancy[position] != EMPTY:
            return False
        self.occupancy[position] = organism.id
        self.organisms[organism.id] = organism
        self.positions[organism.id] = position
        return True

    def remove(self, position: tuple) -> Optional[Organism]:
        """Take the occupant out of a cell. Returns it, or None if empty."""
        oid = int(self.occupancy[position])
        if oid == EMPTY:
            return None
        self.occupancy[position] = EMPTY
        del self.positions[oid]
        return self.organisms.pop(oid)

    def move(self, src: tuple, dst: tuple) -> bool:
        """Move the occupant of src to dst if dst is free."""
        if src == dst or self.occupancy[dst] != EMPTY:
            return False
        organism = self.remove(src)
        assert organism is not None, f"no organism at {src}"
        placed = self.place(dst, organism)
        assert placed
        return True

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def resource_at(self, position: tuple) -> float:
        return float(self.resource[position])

    def take_resource(self, position: tuple, amount: float) -> float:
        """Drain up to amount from a cell. Returns what was taken."""
        taken = min(max(amount, 0.0), float(self.resource[position]))
        self.resource[position] -= taken
        return taken

    def replenish_resources(self):
        rc = self.resource_config
        self.resource = regenerate_resources(
            self.resource, self.resource_base, rc.regrowth, rc.rate, rc.timescale, rc.cap
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def build_view(self, position: tuple) -> WorldView:
        """Occupancy and resource of every neighbour, indexed by direction."""
        cells = []
        for d in range(self.topology):
            pos = self.offset(position, d)
            if pos is None:
                cells.append(None)
            else:
                cells.append((bool(self.occupancy[pos] != EMPTY), float(self.resource[pos])))
        return WorldView(own_resource=float(self.resource[position]), cells=tuple(cells))

    def check_invariants(self):
        """Assert occupancy/index consistency and resource bounds."""
        occupied = np.count_nonzero(self.occupancy)
        assert occupied == len(self.organisms) == len(self.positions), \
            f"occupancy {occupied} vs index {len(self.organisms)}/{len(self.positions)}"
        for oid, pos in self.positions.items():
            assert int(self.occupancy[pos]) == oid, f"organism {oid} not at {pos}"
        assert np.all(self.resource >= 0.0), "negative resource"
        assert np.all(self.resource <= self.resource_config.cap + 1e-9), "resource above cap"
