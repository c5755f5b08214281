"""Tests for the genome virtual machine."""

import pytest

from src.gridlife.genome import make_genome
from src.gridlife.organism import Organism, feed, step
from src.gridlife.physics import get_instruction_costs
from src.gridlife.types import (
    Action, EnergyConfig, WorldView,
    NOP, MOVE, TURN_LEFT, TURN_RIGHT, EAT, SENSE, COPY, JUMP_IF_ZERO, REPRODUCE,
    IDLE_ACTION, MOVE_ACTION, TURN_ACTION, EAT_ACTION, REPRODUCE_ACTION, STARVE_ACTION,
)

COSTS = get_instruction_costs(EnergyConfig())
FREE = (False, 0.0)
EMPTY_VIEW = WorldView(own_resource=0.0, cells=(FREE, FREE, FREE, FREE))


def make_organism(ops, energy=50.0, facing=0, register=0):
    genome = make_genome(ops, max_length=32)
    return Organism(id=1, genome=genome, energy=energy, facing=facing, register=register)


def test_move_returns_move_action_and_pays_cost():
    org = make_organism([(MOVE, 0), (NOP, 0)], energy=10.0, facing=2)
    action = step(org, EMPTY_VIEW, COSTS, 4)
    assert action == Action(MOVE_ACTION, 2)
    assert org.energy == pytest.approx(10.0 - COSTS[MOVE])
    assert org.ip == 1
    assert org.age == 1


def test_pointer_wraps_to_start():
    org = make_organism([(NOP, 0), (NOP, 0)])
    step(org, EMPTY_VIEW, COSTS, 4)
    step(org, EMPTY_VIEW, COSTS, 4)
    assert org.ip == 0
    assert org.age == 2


def test_insufficient_energy_starves_and_skips():
    org = make_organism([(REPRODUCE, 0), (NOP, 0)], energy=COSTS[REPRODUCE] - 0.1)
    action = step(org, EMPTY_VIEW, COSTS, 4)
    assert action.kind == STARVE_ACTION
    assert org.energy == 0.0
    assert org.ip == 0
    assert org.age == 1
    assert org.is_dead


def test_energy_equal_to_cost_executes_then_dead():
    org = make_organism([(MOVE, 0)], energy=COSTS[MOVE])
    action = step(org, EMPTY_VIEW, COSTS, 4)
    assert action.kind == MOVE_ACTION
    assert org.energy == 0.0
    assert org.is_dead


@pytest.mark.parametrize("op,topology,facing,expected", [
    (TURN_LEFT, 4, 0, 3),
    (TURN_RIGHT, 4, 0, 1),
    (TURN_RIGHT, 4, 3, 0),
    (TURN_LEFT, 8, 0, 7),
    (TURN_RIGHT, 8, 2, 3),
])
def test_turn_actions(op, topology, facing, expected):
    org = make_organism([(op, 0)], facing=facing)
    view = WorldView(own_resource=0.0, cells=(FREE,) * topology)
    action = step(org, view, COSTS, topology)
    assert action == Action(TURN_ACTION, expected)
    # The scheduler applies the new facing
    assert org.facing == facing


def test_eat_and_reproduce_are_signalled():
    org = make_organism([(EAT, 0), (REPRODUCE, 0)])
    assert step(org, EMPTY_VIEW, COSTS, 4).kind == EAT_ACTION
    assert step(org, EMPTY_VIEW, COSTS, 4).kind == REPRODUCE_ACTION


def test_sense_front_occupancy():
    view = WorldView(own_resource=0.0, cells=((True, 0.0), FREE, FREE, FREE))
    org = make_organism([(SENSE, 0)], facing=0)
    assert step(org, view, COSTS, 4).kind == IDLE_ACTION
    assert org.register == 1

    org = make_organism([(SENSE, 0)], facing=1, register=5)
    step(org, view, COSTS, 4)
    assert org.register == 0


def test_sense_off_grid_reads_blocked():
    view = WorldView(own_resource=0.0, cells=(None, FREE, FREE, FREE))
    org = make_organism([(SENSE, 0), (SENSE, 1)], facing=0)
    step(org, view, COSTS, 4)
    assert org.register == 1
    step(org, view, COSTS, 4)
    assert org.register == 0


def test_sense_resources():
    view = WorldView(own_resource=3.7, cells=(FREE, (False, 7.9), FREE, FREE))
    org = make_organism([(SENSE, 1), (SENSE, 2)], facing=1)
    step(org, view, COSTS, 4)
    assert org.register == 7
    step(org, view, COSTS, 4)
    assert org.register == 3


def test_jump_if_zero_taken_when_register_zero():
    org = make_organism([(NOP, 0), (JUMP_IF_ZERO, -1), (EAT, 0)])
    org.ip = 1
    step(org, EMPTY_VIEW, COSTS, 4)
    assert org.ip == 0


def test_jump_if_zero_falls_through_when_register_set():
    org = make_organism([(NOP, 0), (JUMP_IF_ZERO, -1), (EAT, 0)], register=1)
    org.ip = 1
    step(org, EMPTY_VIEW, COSTS, 4)
    assert org.ip == 2


def test_copy_reads_op_ahead():
    org = make_organism([(COPY, 2), (NOP, 0), (EAT, 0)])
    step(org, EMPTY_VIEW, COSTS, 4)
    assert org.register == EAT
    assert org.ip == 1


def test_copy_wraps_backwards():
    org = make_organism([(MOVE, 0), (COPY, -1)])
    org.ip = 1
    step(org, EMPTY_VIEW, COSTS, 4)
    assert org.register == MOVE


def test_vm_does_not_touch_view():
    cells = ((True, 1.0), FREE, FREE, FREE)
    view = WorldView(own_resource=2.0, cells=cells)
    org = make_organism([(MOVE, 0), (EAT, 0), (SENSE, 1)])
    for _ in range(3):
        step(org, view, COSTS, 4)
    assert view == WorldView(own_resource=2.0, cells=cells)


def test_feed_clamps_to_max():
    org = make_organism([(NOP, 0)], energy=95.0)
    absorbed = feed(org, 10.0, 100.0)
    assert absorbed == pytest.approx(5.0)
    assert org.energy == pytest.approx(100.0)
    assert feed(org, 3.0, 100.0) == 0.0
