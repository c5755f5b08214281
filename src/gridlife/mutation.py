"""Reproduction and mutation pipeline.

Copies a parent genome site by site, mutating each site independently with
probability `rate`. The random source is a jax PRNG key owned by the
pipeline and split on every draw, so a fixed seed gives identical children.
"""

from typing import Optional

import jax
import jax.numpy as jnp
import numpy as np
from jax import random

from src.gridlife.genome import random_genome
from src.gridlife.grid import WorldGrid
from src.gridlife.organism import Organism
from src.gridlife.physics import NORTH
from src.gridlife.types import GenomeConfig, MutationConfig, ReproductionConfig
from src.utils import split_key

# Mutation operators
SUBSTITUTE = 0
INSERT = 1
DELETE = 2


class ReproductionPipeline:
    """Builds children from parents and places them on the grid."""

    def __init__(
        self,
        grid: WorldGrid,
        genome_config: GenomeConfig,
        mutation_config: MutationConfig,
        reproduction_config: ReproductionConfig,
        key: jax.Array,
    ):
        self.grid = grid
        self.genome_config = genome_config
        self.mutation = mutation_config
        self.reproduction = reproduction_config
        self.key = key

        weights = jnp.array([
            mutation_config.weight_substitute,
            mutation_config.weight_insert,
            mutation_config.weight_delete,
        ], dtype=jnp.float32)
        self.operator_probs = weights / weights.sum()

        self.attempts = 0
        self.births = 0
        self.failures = 0

    def _next_key(self) -> jax.Array:
        self.key, sub = split_key(self.key)
        return sub

    def mutate_genome(self, genome: tuple) -> Optional[tuple]:
        """Copy genome with point substitutions, insertions and deletions.

        Growth past max_length is truncated. A result shorter than
        min_length (e.g. everything deleted) is rejected with None.
        """
        n = len(genome)
        k_site, k_kind, k_new = random.split(self._next_key(), 3)

        hits = np.asarray(random.uniform(k_site, (n,)) < self.mutation.rate)
        if not hits.any():
            return tuple(genome)

        kinds = np.asarray(random.choice(k_kind, 3, (n,), p=self.operator_probs))
        fresh = random_genome(k_new, n)

        child = []
        for i, inst in enumerate(genome):
            if not hits[i]:
                child.append(inst)
            elif kinds[i] == SUBSTITUTE:
                child.append(fresh[i])
            elif kinds[i] == INSERT:
                child.append(inst)
                child.append(fresh[i])
            # DELETE drops the site

        child = child[:self.genome_config.max_length]
        if len(child) < self.genome_config.min_length:
            return None
        return tuple(child)

    def reproduce(self, parent: Organism, child_id: int) -> Optional[Organism]:
        """Try to create and place a child next to parent.

        The child takes energy_fraction of the parent's current energy. On
        any failure (no viable genome, no free cell, nothing to give) the
        parent keeps its energy and None is returned.
        """
        self.attempts += 1

        child_genome = self.mutate_genome(parent.genome)
        if child_genome is None:
            self.failures += 1
            return None

        origin = self.grid.position_of(parent.id)
        assert origin is not None, f"parent {parent.id} is not on the grid"
        target = self.grid.find_free_cell(origin, self.reproduction.search_radius)
        if target is None:
            self.failures += 1
            return None

        child_energy = parent.energy * self.reproduction.energy_fraction
        if child_energy <= 0:
            self.failures += 1
            return None

        child = Organism(
            id=child_id,
            genome=child_genome,
            energy=child_energy,
            facing=NORTH,
            parent_id=parent.id,
            generation=parent.generation + 1,
        )
        placed = self.grid.place(target, child)
        assert placed, f"free cell {target} rejected child"
        parent.energy -= child_energy
        self.births += 1
        return child
