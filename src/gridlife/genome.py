"""Genome storage and instruction decoding - pure definitions, no world state."""

import jax
import numpy as np
from jax import random

from src.gridlife.types import (
    Instruction, NUM_OPS, NUM_SENSORS, OP_NAMES, OPERAND_OPS,
    NOP, MOVE, TURN_LEFT, TURN_RIGHT, SENSE, COPY, JUMP_IF_ZERO,
)

# Offsets for COPY / JUMP_IF_ZERO are drawn from [-MAX_OFFSET, MAX_OFFSET]
MAX_OFFSET = 4

# Long-form names accepted by parse_instruction
_ALIASES = {
    "no-op": NOP,
    "move-forward": MOVE,
    "turn-left": TURN_LEFT,
    "turn-right": TURN_RIGHT,
    "sense-neighbor": SENSE,
    "copy-forward": COPY,
    "jump-if-zero": JUMP_IF_ZERO,
}


def decode(genome: tuple, pointer: int) -> Instruction:
    """Return the instruction at pointer."""
    assert 0 <= pointer < len(genome), f"pointer {pointer} outside genome of length {len(genome)}"
    return genome[pointer]


def advance(pointer: int, genome_length: int) -> int:
    """Next pointer, wrapping to 0 past the end."""
    return (pointer + 1) % genome_length


def jump(pointer: int, offset: int, genome_length: int) -> int:
    """Relative jump, wrapping in both directions."""
    return (pointer + offset) % genome_length


def _check_instruction(inst: Instruction):
    if not 0 <= inst.op < NUM_OPS:
        raise ValueError(f"Unknown op code {inst.op}")
    if inst.op not in OPERAND_OPS and inst.operand != 0:
        raise ValueError(f"'{OP_NAMES[inst.op]}' takes no operand, got {inst.operand}")
    if inst.op == SENSE and not 0 <= inst.operand < NUM_SENSORS:
        raise ValueError(f"Unknown sensor {inst.operand}")


def make_genome(instructions, max_length: int, min_length: int = 1) -> tuple:
    """Validate instructions and freeze them into a genome.

    Raises:
        ValueError: If the genome is empty, out of length bounds, or holds
            an unknown instruction
    """
    genome = tuple(Instruction(int(op), int(operand)) for op, operand in instructions)
    if len(genome) == 0:
        raise ValueError("Genome must not be empty")
    if len(genome) < min_length:
        raise ValueError(f"Genome length {len(genome)} below minimum {min_length}")
    if len(genome) > max_length:
        raise ValueError(f"Genome length {len(genome)} exceeds maximum {max_length}")
    for inst in genome:
        _check_instruction(inst)
    return genome


def parse_instruction(text: str) -> Instruction:
    """Parse 'name [operand]', e.g. 'move', 'jz -2', 'sense 1'."""
    parts = text.strip().lower().split()
    if not parts or len(parts) > 2:
        raise ValueError(f"Cannot parse instruction '{text}'")
    name = parts[0]
    if name in OP_NAMES:
        op = OP_NAMES.index(name)
    elif name in _ALIASES:
        op = _ALIASES[name]
    else:
        raise ValueError(f"Unknown instruction '{name}'")
    operand = int(parts[1]) if len(parts) == 2 else 0
    inst = Instruction(op, operand)
    _check_instruction(inst)
    return inst


def parse_genome(lines, max_length: int, min_length: int = 1) -> tuple:
    """Parse a sequence of instruction strings into a validated genome."""
    return make_genome([parse_instruction(line) for line in lines], max_length, min_length)


def format_instruction(inst: Instruction) -> str:
    name = OP_NAMES[inst.op]
    if inst.op in OPERAND_OPS:
        return f"{name} {inst.operand}"
    return name


def format_genome(genome: tuple) -> str:
    return "; ".join(format_instruction(inst) for inst in genome)


def random_genome(key: jax.Array, length: int) -> tuple:
    """Draw a genome of uniformly random instructions."""
    k_op, k_off, k_sense = random.split(key, 3)
    ops = np.asarray(random.randint(k_op, (length,), 0, NUM_OPS))
    offsets = np.asarray(random.randint(k_off, (length,), -MAX_OFFSET, MAX_OFFSET + 1))
    sensors = np.asarray(random.randint(k_sense, (length,), 0, NUM_SENSORS))

    operands = np.where(ops == SENSE, sensors, 0)
    operands = np.where((ops == COPY) | (ops == JUMP_IF_ZERO), offsets, operands)
    return tuple(Instruction(int(op), int(arg)) for op, arg in zip(ops, operands))


def random_instruction(key: jax.Array) -> Instruction:
    return random_genome(key, 1)[0]
