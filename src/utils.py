#!/usr/bin/env python3
"""Utility functions shared across the project."""

import jax


def make_key(seed: int) -> jax.Array:
    """Create PRNG key."""
    return jax.random.PRNGKey(seed)


def split_key(key: jax.Array) -> tuple:
    """Split key into (next key, subkey)."""
    key, sub = jax.random.split(key)
    return key, sub
