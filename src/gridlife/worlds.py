"""Resource layouts.

Each layout is a `create(key, config)` function returning a dict with
numpy `resource` and `resource_base` fields of shape (height, width).
The layout is chosen by config.resource.layout.
"""

import jax
import jax.numpy as jnp
import numpy as np
from jax import random

from src.gridlife.types import SimConfig
from src.utils import split_key


def generate_gaussian_field(key: jax.Array, height: int, width: int, length_scale: float) -> jax.Array:
    """Generate a field with visible features using 1/f^beta power spectrum."""
    noise_key, phase_key = split_key(key)

    fy, fx = jnp.meshgrid(jnp.fft.fftfreq(height), jnp.fft.fftfreq(width), indexing="ij")
    freq_magnitude = jnp.sqrt(fx**2 + fy**2)

    # 1/f^beta spectrum with cutoffs for blob-like features
    beta = 4.0
    min_freq = 1.0 / length_scale
    max_freq = 10.0 / length_scale

    power_spectrum = jnp.where(
        freq_magnitude > 0,
        1.0 / (freq_magnitude ** beta + 1e-10),
        0.0
    )
    low_pass = jnp.exp(-0.5 * (freq_magnitude / max_freq) ** 4)
    high_pass = 1.0 - jnp.exp(-0.5 * (freq_magnitude / min_freq) ** 4)
    power_spectrum = power_spectrum * low_pass * high_pass

    noise_real = random.normal(noise_key, (height, width))
    noise_imag = random.normal(phase_key, (height, width))
    noise_complex = noise_real + 1j * noise_imag

    filtered = noise_complex * jnp.sqrt(power_spectrum)
    field = jnp.real(jnp.fft.ifft2(filtered))

    field = (field - field.min()) / (field.max() - field.min() + 1e-8)
    return field


def create_uniform(key: jax.Array, config: SimConfig) -> dict:
    """Flat field: every cell starts at `initial` and regrows to `cap`."""
    shape = (config.grid.height, config.grid.width)
    return {
        "resource": np.full(shape, config.resource.initial, dtype=np.float64),
        "resource_base": np.full(shape, config.resource.cap, dtype=np.float64),
    }


def create_gaussian(key: jax.Array, config: SimConfig) -> dict:
    """Patchy field: base level follows a smooth random field in [0, cap]."""
    rc = config.resource
    field = generate_gaussian_field(key, config.grid.height, config.grid.width, rc.length_scale)
    base = np.asarray(field, dtype=np.float64) * rc.cap
    base = np.clip(base, 0.0, rc.cap)
    return {
        "resource": np.minimum(base, rc.initial),
        "resource_base": base,
    }


# Registry of layouts -> creator functions
WORLD_TYPES = {
    "uniform": create_uniform,
    "gaussian": create_gaussian,
}


def create_world(key: jax.Array, config: SimConfig) -> dict:
    """Create resource fields based on config.resource.layout.

    Raises:
        ValueError: If layout is not registered
    """
    layout = config.resource.layout
    if layout not in WORLD_TYPES:
        available = ", ".join(WORLD_TYPES.keys())
        raise ValueError(f"Unknown resource layout '{layout}'. Available: {available}")
    return WORLD_TYPES[layout](key, config)


def register_world(name: str, creator_fn):
    """Register a new layout under config.resource.layout name."""
    WORLD_TYPES[name] = creator_fn
