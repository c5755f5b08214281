# gridlife: genome-VM organisms on a grid

from src.gridlife.types import (
    SimConfig, GridConfig, EnergyConfig, ResourceConfig, GenomeConfig,
    MutationConfig, ReproductionConfig, PopulationConfig,
    Instruction, Action, WorldView, OrganismInfo, GridSnapshot, Metrics,
    NOP, MOVE, TURN_LEFT, TURN_RIGHT, EAT, SENSE, COPY, JUMP_IF_ZERO, REPRODUCE,
    OP_NAMES, ACTION_NAMES,
    IDLE, RUNNING, PAUSED, STEPPING,
)
from src.gridlife.config import load_config, create_config, validate_config
from src.gridlife.genome import (
    decode, advance, make_genome, parse_genome, format_genome, random_genome,
)
from src.gridlife.organism import Organism, step, feed
from src.gridlife.grid import WorldGrid
from src.gridlife.mutation import ReproductionPipeline
from src.gridlife.simulation import Simulation

__all__ = [
    # Types
    "SimConfig", "GridConfig", "EnergyConfig", "ResourceConfig", "GenomeConfig",
    "MutationConfig", "ReproductionConfig", "PopulationConfig",
    "Instruction", "Action", "WorldView", "OrganismInfo", "GridSnapshot", "Metrics",
    "NOP", "MOVE", "TURN_LEFT", "TURN_RIGHT", "EAT", "SENSE", "COPY", "JUMP_IF_ZERO", "REPRODUCE",
    "OP_NAMES", "ACTION_NAMES",
    "IDLE", "RUNNING", "PAUSED", "STEPPING",
    # Config
    "load_config", "create_config", "validate_config",
    # Genome
    "decode", "advance", "make_genome", "parse_genome", "format_genome", "random_genome",
    # Organism / VM
    "Organism", "step", "feed",
    # World
    "WorldGrid",
    # Reproduction
    "ReproductionPipeline",
    # Simulation
    "Simulation",
]
