"""Tests for the reproduction / mutation pipeline."""

import numpy as np
import pytest

from conftest import make_grid
from src.gridlife.genome import make_genome, random_genome
from src.gridlife.mutation import ReproductionPipeline
from src.gridlife.organism import Organism
from src.gridlife.types import (
    GenomeConfig, MutationConfig, ReproductionConfig,
    MOVE, EAT, REPRODUCE, TURN_LEFT,
)
from src.utils import make_key, split_key

PARENT_OPS = [(MOVE, 0), (REPRODUCE, 0), (TURN_LEFT, 0), (EAT, 0)]


def make_pipeline(grid, rate=0.0, seed=0, max_length=16, min_length=1,
                  weights=(0.6, 0.2, 0.2), fraction=0.5, radius=2):
    return ReproductionPipeline(
        grid,
        GenomeConfig(min_length=min_length, max_length=max_length),
        MutationConfig(rate=rate, weight_substitute=weights[0],
                       weight_insert=weights[1], weight_delete=weights[2]),
        ReproductionConfig(energy_fraction=fraction, search_radius=radius),
        make_key(seed),
    )


def place_parent(grid, position=(2, 2), energy=40.0, ops=PARENT_OPS):
    parent = Organism(id=1, genome=make_genome(ops, max_length=16), energy=energy, generation=3)
    assert grid.place(position, parent)
    return parent


def test_reproduce_places_child_north_with_energy_split():
    grid = make_grid()
    parent = place_parent(grid)
    pipeline = make_pipeline(grid)

    child = pipeline.reproduce(parent, child_id=2)

    assert child is not None
    assert grid.position_of(2) == (1, 2)
    assert child.genome == parent.genome
    assert child.energy == pytest.approx(20.0)
    assert parent.energy == pytest.approx(20.0)
    assert child.age == 0
    assert child.facing == 0
    assert child.parent_id == 1
    assert child.generation == 4
    assert pipeline.births == 1
    grid.check_invariants()


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 17])
def test_zero_rate_copies_genome_exactly(seed):
    grid = make_grid()
    pipeline = make_pipeline(grid, rate=0.0, seed=seed, max_length=40)
    genome = random_genome(make_key(seed + 100), 40)
    for _ in range(3):
        assert pipeline.mutate_genome(genome) == genome


def test_same_seed_same_child():
    results = []
    for _ in range(2):
        grid = make_grid()
        parent = place_parent(grid)
        pipeline = make_pipeline(grid, rate=0.5, seed=42)
        child = pipeline.reproduce(parent, child_id=2)
        results.append((child.genome, grid.position_of(2), child.energy))
    assert results[0] == results[1]


def test_mutation_changes_genome_at_full_rate():
    grid = make_grid()
    pipeline = make_pipeline(grid, rate=1.0, weights=(1.0, 0.0, 0.0), max_length=40)
    genome = random_genome(make_key(5), 40)
    child = pipeline.mutate_genome(genome)
    assert len(child) == len(genome)
    assert child != genome
    # Substitutes are valid instructions
    assert make_genome(child, max_length=40) == child


def test_insertion_growth_is_truncated():
    grid = make_grid()
    pipeline = make_pipeline(grid, rate=1.0, weights=(0.0, 1.0, 0.0), max_length=6)
    genome = make_genome(PARENT_OPS, max_length=16)
    child = pipeline.mutate_genome(genome)
    assert len(child) == 6
    # Each original site is kept, followed by its insertion
    assert child[0] == genome[0]
    assert child[2] == genome[1]
    assert child[4] == genome[2]


def test_deleting_everything_rejects_child():
    grid = make_grid()
    parent = place_parent(grid)
    pipeline = make_pipeline(grid, rate=1.0, weights=(0.0, 0.0, 1.0))

    assert pipeline.mutate_genome(parent.genome) is None
    assert pipeline.reproduce(parent, child_id=2) is None
    assert parent.energy == pytest.approx(40.0)
    assert pipeline.failures == 1
    assert len(grid) == 1


def test_no_free_cell_fails_silently():
    grid = make_grid(height=1, width=1)
    parent = place_parent(grid, position=(0, 0))
    pipeline = make_pipeline(grid)

    assert pipeline.reproduce(parent, child_id=2) is None
    assert parent.energy == pytest.approx(40.0)
    assert pipeline.attempts == 1
    assert pipeline.failures == 1
    assert pipeline.births == 0


def test_child_placed_beyond_full_ring():
    grid = make_grid()
    parent = place_parent(grid)
    for i, pos in enumerate(grid.neighbors((2, 2))):
        assert grid.place(pos, Organism(id=10 + i, genome=parent.genome, energy=1.0))
    pipeline = make_pipeline(grid, radius=2)

    child = pipeline.reproduce(parent, child_id=2)
    assert grid.position_of(child.id) == (0, 2)


def test_search_radius_limits_placement():
    grid = make_grid()
    parent = place_parent(grid)
    for i, pos in enumerate(grid.neighbors((2, 2))):
        grid.place(pos, Organism(id=10 + i, genome=parent.genome, energy=1.0))
    pipeline = make_pipeline(grid, radius=1)
    assert pipeline.reproduce(parent, child_id=2) is None


def test_split_key_is_deterministic_and_advances():
    key = make_key(0)
    next_key, sub = split_key(key)
    assert not np.array_equal(np.asarray(next_key), np.asarray(sub))
    assert np.array_equal(np.asarray(split_key(key)[1]), np.asarray(sub))
