"""Tick scheduler - drives every organism forward one instruction per tick.

A tick is atomic: the live-organism order is snapshotted, each organism
executes one VM step whose Action is applied to the grid in that order,
dead organisms are reaped, resources regrow and the clock advances. The
driver only ever observes state between ticks.
"""

import time
from typing import Callable, Optional

import jax
import numpy as np
from jax import random

from src.utils import make_key, split_key
from src.gridlife.config import validate_config
from src.gridlife.genome import format_genome, make_genome, parse_genome, random_genome
from src.gridlife.grid import WorldGrid
from src.gridlife.mutation import ReproductionPipeline
from src.gridlife.organism import Organism, feed, step as vm_step
from src.gridlife.physics import NORTH, get_instruction_costs
from src.gridlife.types import (
    GridSnapshot, Metrics, OrganismInfo, SimConfig, ACTION_NAMES,
    IDLE_ACTION, MOVE_ACTION, TURN_ACTION, EAT_ACTION, REPRODUCE_ACTION, STARVE_ACTION,
    IDLE, RUNNING, PAUSED, STEPPING,
)
from src.gridlife.worlds import create_world

# Global timing accumulator
_TIMINGS = {}
_DEBUG = False

def set_debug(enabled: bool):
    global _DEBUG
    _DEBUG = enabled

def reset_timings():
    global _TIMINGS
    _TIMINGS = {}

def get_timings():
    return _TIMINGS.copy()

def _record(name, elapsed):
    if not _DEBUG:
        return
    if name not in _TIMINGS:
        _TIMINGS[name] = []
    _TIMINGS[name].append(elapsed)


class Simulation:
    """Single-threaded, tick-synchronous simulation engine.

    States: idle (nothing seeded) -> running <-> paused, with stepping as
    the transient state of a single tick taken while paused.

    Organisms are processed in ascending id order. Ids are handed out
    monotonically, so this is also birth order; children born during a
    tick first act on the following tick.
    """

    def __init__(self, config: SimConfig, debug: bool = False):
        """Initialize simulation from a configuration.

        Raises:
            ValueError: If the configuration is invalid
        """
        validate_config(config)
        self.config = config
        self.debug = debug
        set_debug(debug)

        self.costs = get_instruction_costs(config.energy)
        self.max_energy = config.energy.max_energy
        self.topology = config.grid.topology

        k_world, k_seed, k_mutation = random.split(make_key(config.seed), 3)
        self._seed_key = k_seed
        self._random_cells = []

        world = create_world(k_world, config)
        self.grid = WorldGrid(config.grid, config.resource, world["resource"], world["resource_base"])
        self.pipeline = ReproductionPipeline(
            self.grid, config.genome, config.mutation, config.reproduction, k_mutation
        )

        self.live_ids = []
        self.next_id = 1
        self.tick = 0
        self.state = IDLE
        self._start_paused = config.start_paused
        self.selected = []
        self.metrics: Optional[Metrics] = None

        self.total_births = 0
        self.total_deaths = 0

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def _next_seed_key(self) -> jax.Array:
        self._seed_key, sub = split_key(self._seed_key)
        return sub

    def _leave_idle(self):
        if self.state == IDLE:
            self.state = PAUSED if self._start_paused else RUNNING

    def add_organism(self, genome, position: tuple, energy: Optional[float] = None,
                     facing: int = NORTH) -> Organism:
        """Place a founder organism.

        genome may be instruction strings ("move", "jz -2") or
        (op, operand) pairs.

        Raises:
            ValueError: If the genome is invalid or the cell is unusable
        """
        gc = self.config.genome
        genome = list(genome)
        if genome and isinstance(genome[0], str):
            genome = parse_genome(genome, gc.max_length, gc.min_length)
        else:
            genome = make_genome(genome, gc.max_length, gc.min_length)

        position = (int(position[0]), int(position[1]))
        if not self.grid.in_bounds(position):
            raise ValueError(f"Position {position} is off the grid")
        if not 0 <= facing < self.topology:
            raise ValueError(f"Facing {facing} invalid for topology {self.topology}")
        if energy is None:
            energy = self.config.energy.initial_energy
        if not 0 < energy <= self.max_energy:
            raise ValueError(f"Energy must be in (0, {self.max_energy}], got {energy}")

        organism = Organism(id=self.next_id, genome=genome, energy=float(energy), facing=facing)
        if not self.grid.place(position, organism):
            raise ValueError(f"Cell {position} is already occupied")
        self.next_id += 1
        self.live_ids.append(organism.id)
        self._leave_idle()
        return organism

    def _initial_position(self, index: int) -> tuple:
        pc = self.config.population
        if pc.placement == "explicit":
            return tuple(pc.positions[index])
        if pc.placement == "center":
            # Spiral outward from the centre in ring order
            center = (self.grid.height // 2, self.grid.width // 2)
            if self.grid.is_free(center):
                return center
            return self.grid.find_free_cell(center)
        return self._random_cells[index]

    def seed_population(self) -> list:
        """Place the configured initial population. Returns the organisms.

        Raises:
            ValueError: If there are not enough free cells
        """
        pc = self.config.population
        gc = self.config.genome
        n = pc.initial_size
        free = self.grid.free_cells()
        if n > len(free):
            raise ValueError(f"FATAL: cannot seed {n} organisms into {len(free)} free cells")

        if pc.placement == "random":
            picks = np.asarray(random.permutation(self._next_seed_key(), len(free)))[:n]
            self._random_cells = [free[int(i)] for i in picks]
        if pc.random_facing:
            facings = np.asarray(random.randint(self._next_seed_key(), (n,), 0, self.topology)).tolist()
        else:
            facings = [NORTH] * n

        founders = []
        for i in range(n):
            if gc.ancestor is not None:
                genome = list(gc.ancestor)
            else:
                genome = random_genome(self._next_seed_key(), gc.random_length)
            position = self._initial_position(i)
            founders.append(self.add_organism(genome, position, facing=int(facings[i])))

        print(f"Seeded {len(founders)} organisms on a {self.grid.height}x{self.grid.width} "
              f"{self.config.grid.edge} grid")
        return founders

    # ------------------------------------------------------------------
    # Driver interface
    # ------------------------------------------------------------------

    def is_paused(self) -> bool:
        return self.state in (PAUSED, STEPPING) or (self.state == IDLE and self._start_paused)

    def pause(self):
        """Hold the simulation between ticks."""
        if self.state == IDLE:
            self._start_paused = True
        elif self.state == RUNNING:
            self.state = PAUSED

    def resume(self):
        if self.state == IDLE:
            self._start_paused = False
        elif self.state == PAUSED:
            self.state = RUNNING

    def step(self) -> Metrics:
        """Execute exactly one tick. While paused, stays paused afterwards.

        Raises:
            RuntimeError: If nothing has been seeded yet
        """
        if self.state == IDLE:
            raise RuntimeError("FATAL: simulation has no organisms; seed it before stepping")
        if self.state == PAUSED:
            self.state = STEPPING
            try:
                return self._tick()
            finally:
                self.state = PAUSED
        return self._tick()

    def step_n(self, count: int, should_stop: Optional[Callable[[], bool]] = None) -> int:
        """Fast-forward `count` ticks without yielding to the driver.

        should_stop is polled between ticks only, so a cancelled batch
        always ends on a tick boundary. Returns the number of ticks run.
        """
        done = 0
        for _ in range(count):
            if should_stop is not None and should_stop():
                break
            self.step()
            done += 1
        return done

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _apply_move(self, position: tuple, direction: int) -> bool:
        target = self.grid.offset(position, direction)
        if target is None or not self.grid.is_free(target):
            return False
        return self.grid.move(position, target)

    def _apply_eat(self, organism: Organism, position: tuple) -> float:
        bite = min(self.config.energy.eat_max, self.max_energy - organism.energy)
        taken = self.grid.take_resource(position, bite)
        feed(organism, taken, self.max_energy)
        return taken

    def _tick(self) -> Metrics:
        t0 = time.time()
        order = list(self.live_ids)
        action_counts = [0] * len(ACTION_NAMES)
        births = starved = blocked = 0
        eaten = 0.0
        failures_before = self.pipeline.failures
        dead = []

        for oid in order:
            organism = self.grid.get(oid)
            if organism is None or organism.is_dead:
                continue
            position = self.grid.position_of(oid)
            view = self.grid.build_view(position)
            action = vm_step(organism, view, self.costs, self.topology)
            action_counts[action.kind] += 1

            if action.kind == MOVE_ACTION:
                if not self._apply_move(position, action.direction):
                    blocked += 1
            elif action.kind == TURN_ACTION:
                organism.facing = action.direction
            elif action.kind == EAT_ACTION:
                eaten += self._apply_eat(organism, position)
            elif action.kind == REPRODUCE_ACTION:
                if not organism.is_dead:
                    child = self.pipeline.reproduce(organism, self.next_id)
                    if child is not None:
                        self.next_id += 1
                        self.live_ids.append(child.id)
                        births += 1
            elif action.kind == STARVE_ACTION:
                starved += 1
            else:
                assert action.kind == IDLE_ACTION, f"unknown action {action.kind}"

            if organism.is_dead:
                dead.append(oid)
        _record("organisms", time.time() - t0)

        t0 = time.time()
        self._reap(dead)
        _record("reap", time.time() - t0)

        t0 = time.time()
        self.grid.replenish_resources()
        _record("replenish", time.time() - t0)

        self.tick += 1
        self.total_births += births
        self.total_deaths += len(dead)
        self.metrics = Metrics(
            num_alive=len(self.live_ids),
            births=births,
            deaths=len(dead),
            starved=starved,
            failed_reproductions=self.pipeline.failures - failures_before,
            blocked_moves=blocked,
            eaten=eaten,
            action_counts=tuple(action_counts),
        )

        if self.debug:
            self.grid.check_invariants()
            assert len(self.grid) == len(self.live_ids)
            self._print_selected()
        return self.metrics

    def _reap(self, dead: list):
        if not dead:
            return
        dead_set = set(dead)
        for oid in dead:
            removed = self.grid.remove(self.grid.position_of(oid))
            assert removed is not None and removed.id == oid
        self.live_ids = [oid for oid in self.live_ids if oid not in dead_set]
        self.selected = [oid for oid in self.selected if oid not in dead_set]

    # ------------------------------------------------------------------
    # Observation (side-effect free)
    # ------------------------------------------------------------------

    def toggle_select(self, position: tuple) -> Optional[bool]:
        """Toggle debug selection of the organism at position.

        Returns True if now selected, False if deselected, None if the
        cell is empty.
        """
        oid = self.grid.occupant(position)
        if oid is None:
            return None
        if oid in self.selected:
            self.selected.remove(oid)
            return False
        self.selected.append(oid)
        return True

    def selected_ids(self) -> list:
        return list(self.selected)

    def describe(self, position: tuple) -> Optional[OrganismInfo]:
        organism = self.grid.organism_at(position)
        if organism is None:
            return None
        return organism.info(position)

    def organisms(self) -> list:
        """OrganismInfo for every live organism, in processing order."""
        return [self.grid.get(oid).info(self.grid.position_of(oid)) for oid in self.live_ids]

    def snapshot(self) -> GridSnapshot:
        selected = tuple(
            self.grid.get(oid).info(self.grid.position_of(oid)) for oid in self.selected
        )
        return GridSnapshot(
            tick=self.tick,
            occupied=self.grid.occupancy != 0,
            resource=self.grid.resource.copy(),
            selected=selected,
        )

    def total_energy(self) -> float:
        return float(sum(self.grid.get(oid).energy for oid in self.live_ids))

    def get_stats(self) -> dict:
        """Summary stats for logging."""
        stats = {
            "step": self.tick,
            "state": self.state,
            "num_alive": len(self.live_ids),
            "total_births": self.total_births,
            "total_deaths": self.total_deaths,
            "total_resource": float(self.grid.resource.sum()),
        }
        if self.live_ids:
            live = [self.grid.get(oid) for oid in self.live_ids]
            energies = np.array([o.energy for o in live])
            ages = np.array([o.age for o in live])
            stats.update({
                "mean_energy": float(energies.mean()),
                "max_energy": float(energies.max()),
                "min_energy": float(energies.min()),
                "mean_age": float(ages.mean()),
                "max_age": int(ages.max()),
                "mean_genome_length": float(np.mean([len(o.genome) for o in live])),
                "max_generation": int(max(o.generation for o in live)),
            })
        else:
            stats.update({
                "mean_energy": 0.0, "max_energy": 0.0, "min_energy": 0.0,
                "mean_age": 0.0, "max_age": 0, "mean_genome_length": 0.0,
                "max_generation": 0,
            })

        if self.metrics is not None:
            m = self.metrics
            stats.update({
                "births": m.births,
                "deaths": m.deaths,
                "starved": m.starved,
                "failed_reproductions": m.failed_reproductions,
                "blocked_moves": m.blocked_moves,
            })
            for i, name in enumerate(ACTION_NAMES):
                stats[f"action_{name}"] = m.action_counts[i]
        return stats

    @staticmethod
    def format_info(info: OrganismInfo) -> str:
        return (f"#{info.id} @{info.position} E={info.energy:.2f} age={info.age} "
                f"facing={info.facing} ip={info.ip} reg={info.register} "
                f"gen={info.generation} parent={info.parent_id} [{format_genome(info.genome)}]")

    def _print_selected(self):
        if not self.selected:
            return
        print(f"--- tick {self.tick} ---")
        for info in self.snapshot().selected:
            print(self.format_info(info))

    def debug_print_organisms(self):
        for info in self.organisms():
            print(self.format_info(info))
