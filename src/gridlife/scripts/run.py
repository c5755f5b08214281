"""Batch runner for gridlife simulations.

Usage:
    python src/gridlife/scripts/run.py configs/gridlife/default.yaml --steps 5000
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

from tqdm import tqdm

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from src.gridlife import Simulation, create_config, load_config
from src.gridlife.simulation import get_timings, reset_timings


def parse_position(text: str) -> tuple:
    try:
        y, x = (int(v) for v in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected Y,X, got '{text}'")
    return (y, x)


def run(sim: Simulation, max_steps: int, log_interval: int) -> dict:
    """Fast-forward in batches of log_interval ticks until max_steps or extinction."""
    stats = sim.get_stats()
    pbar = tqdm(total=max_steps, desc="Simulating", unit="tick")
    while sim.tick < max_steps:
        batch = min(log_interval, max_steps - sim.tick)
        # Extinction is checked at tick boundaries only
        done = sim.step_n(batch, should_stop=lambda: not sim.live_ids)
        pbar.update(done)

        stats = sim.get_stats()
        pbar.set_postfix({
            "alive": stats["num_alive"],
            "avg_E": f"{stats['mean_energy']:.1f}",
            "gen": stats["max_generation"],
        })
        if stats["num_alive"] == 0:
            tqdm.write(f"All organisms died at tick {sim.tick}")
            break
    pbar.close()
    return stats


def main(config_path: str, steps: int = None, seed: int = None,
         select: list = None, log_interval: int = 100, debug: bool = False):
    try:
        config = create_config(load_config(config_path))
        if seed is not None:
            config = replace(config, seed=seed)
        sim = Simulation(config, debug=debug)
    except ValueError as err:
        print(f"Config error: {err}")
        sys.exit(1)

    max_steps = steps if steps is not None else 1000

    print(f"Config: {config_path}")
    print(f"Grid: {config.grid.height}x{config.grid.width} ({config.grid.edge}, {config.grid.topology}-connected)")
    print(f"Resource layout: {config.resource.layout}")
    print(f"Initial organisms: {config.population.initial_size}")
    print(f"Max steps: {max_steps}")
    print(f"Seed: {config.seed}")
    print()

    sim.seed_population()
    for position in select or []:
        if sim.toggle_select(position) is None:
            print(f"No organism at {position} to select")

    reset_timings()
    stats = run(sim, max_steps, log_interval)

    print(f"\nFinal: {stats['num_alive']} organisms alive at tick {stats['step']}")
    print(f"Births: {stats['total_births']}  Deaths: {stats['total_deaths']}  "
          f"Max generation: {stats['max_generation']}  "
          f"Mean genome length: {stats['mean_genome_length']:.1f}")
    for info in sim.snapshot().selected:
        print(Simulation.format_info(info))

    if debug:
        for name, values in get_timings().items():
            print(f"{name}: {sum(values) / len(values) * 1000:.3f} ms/tick")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Gridlife digital organism simulation")
    parser.add_argument("config_path", type=str, help="Path to YAML config")
    parser.add_argument("--steps", type=int, default=None, help="Number of ticks to run")
    parser.add_argument("--seed", type=int, default=None, help="Override config seed")
    parser.add_argument("--select", type=parse_position, action="append",
                        help="Select organism at Y,X for debug output (repeatable)")
    parser.add_argument("--log-interval", type=int, default=100, help="Ticks per progress update")
    parser.add_argument("--debug", action="store_true", help="Enable debug timing and invariant checks")
    args = parser.parse_args()

    main(args.config_path, args.steps, args.seed, args.select,
         args.log_interval, args.debug)
