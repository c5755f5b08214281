"""Organism state and the genome virtual machine.

The VM executes exactly one instruction per tick against the organism's own
state and a read-only WorldView. It never touches the grid: anything that
affects the world comes back as an Action for the scheduler to apply.
"""

from dataclasses import dataclass

from src.gridlife.genome import advance, decode, jump
from src.gridlife.physics import compute_new_facing
from src.gridlife.types import (
    Action, Instruction, OrganismInfo, WorldView,
    NOP, MOVE, TURN_LEFT, TURN_RIGHT, EAT, SENSE, COPY, JUMP_IF_ZERO, REPRODUCE,
    SENSE_FRONT_OCCUPIED, SENSE_FRONT_RESOURCE, SENSE_OWN_RESOURCE,
    IDLE_ACTION, MOVE_ACTION, TURN_ACTION, EAT_ACTION, REPRODUCE_ACTION, STARVE_ACTION,
)


@dataclass(eq=False)
class Organism:
    """A living agent. The grid owns it once placed."""
    id: int
    genome: tuple
    energy: float
    facing: int = 0
    ip: int = 0
    age: int = 0
    register: int = 0
    parent_id: int = -1
    generation: int = 0

    @property
    def is_dead(self) -> bool:
        return self.energy <= 0

    def info(self, position: tuple) -> OrganismInfo:
        return OrganismInfo(
            id=self.id,
            position=position,
            energy=self.energy,
            age=self.age,
            facing=self.facing,
            ip=self.ip,
            register=self.register,
            genome=self.genome,
            parent_id=self.parent_id,
            generation=self.generation,
        )


def _sense(view: WorldView, facing: int, sensor: int) -> int:
    front = view.cells[facing]
    if sensor == SENSE_FRONT_OCCUPIED:
        # Off-grid reads as blocked
        return 1 if front is None or front[0] else 0
    if sensor == SENSE_FRONT_RESOURCE:
        return 0 if front is None else int(front[1])
    assert sensor == SENSE_OWN_RESOURCE, f"unknown sensor {sensor}"
    return int(view.own_resource)


def step(organism: Organism, view: WorldView, costs: dict, topology: int) -> Action:
    """Execute one instruction and return the resulting Action.

    Age increments unconditionally. If the instruction's cost would drive
    energy negative the instruction is skipped and the organism starves.
    """
    organism.age += 1

    genome = organism.genome
    n = len(genome)
    inst: Instruction = decode(genome, organism.ip)

    cost = costs[inst.op]
    if organism.energy - cost < 0:
        organism.energy = 0.0
        return Action(STARVE_ACTION)
    organism.energy -= cost

    next_ip = advance(organism.ip, n)
    action = Action(IDLE_ACTION)

    op = inst.op
    if op == NOP:
        pass
    elif op == MOVE:
        action = Action(MOVE_ACTION, organism.facing)
    elif op == TURN_LEFT or op == TURN_RIGHT:
        action = Action(TURN_ACTION, compute_new_facing(organism.facing, op, topology))
    elif op == EAT:
        action = Action(EAT_ACTION)
    elif op == SENSE:
        organism.register = _sense(view, organism.facing, inst.operand)
    elif op == COPY:
        organism.register = genome[jump(organism.ip, inst.operand, n)].op
    elif op == JUMP_IF_ZERO:
        if organism.register == 0:
            next_ip = jump(organism.ip, inst.operand, n)
    elif op == REPRODUCE:
        action = Action(REPRODUCE_ACTION)
    else:
        raise AssertionError(f"unhandled op {op}")

    organism.ip = next_ip
    return action


def feed(organism: Organism, amount: float, max_energy: float) -> float:
    """Add energy, clamped at max_energy. Returns the amount absorbed."""
    absorbed = max(0.0, min(amount, max_energy - organism.energy))
    organism.energy += absorbed
    return absorbed
