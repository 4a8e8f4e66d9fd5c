"""Shared fixtures: deterministic random sources and ready-made sessions."""

import random
from dataclasses import replace

import pytest

from session.engine import SessionEngine
from session.rules import Role
from session.state import make_lobby


class MidpointRandom(random.Random):
    """
    random() always returns 0.5.

    uniform(a, b) is then the midpoint: noise multipliers are exactly 1,
    ambient paranoia weights are 0, misinterpretation (p < 0.05) never fires
    and every rumor is suspicious. choice()/shuffle() still use the seed.
    """

    def random(self):
        return 0.5


NAMES = ["Alice", "Bob", "Carol", "Dave", "Eve", "Frank", "Grace", "Henry", "Ivy"]

# player_0..player_4
FIVE_ROLES = [Role.MAFIA, Role.DOCTOR, Role.DETECTIVE, Role.VILLAGER, Role.VILLAGER]


@pytest.fixture
def engine():
    """Engine whose belief updates are exact (no noise, no misinterpretation)."""
    return SessionEngine(rng=MidpointRandom(7))


@pytest.fixture
def seeded_engine():
    return SessionEngine(rng=random.Random(1234))


@pytest.fixture
def make_game(engine):
    """Factory: started game with the given roles in roster order, at t=0."""

    def _make(roles=None, names=None):
        roles = roles or FIVE_ROLES
        lobby = make_lobby("g1", (names or NAMES)[: len(roles)])
        return engine.initialize_game(lobby, role_assignments=roles, now=0.0)

    return _make


def advance_to(engine, lobby, phase):
    """Advance at each phase deadline, with no submissions, until lobby is in phase."""
    while lobby.game.phase != phase:
        lobby = engine.advance(lobby, now=lobby.game.phase_end_time)
    return lobby


def with_suspicion(lobby, observer_id, target_id, value):
    """Copy of lobby with one suspicion cell overwritten."""
    builder = lobby.game.suspicion.evolve()
    builder.set(observer_id, target_id, value)
    return replace(lobby, game=replace(lobby.game, suspicion=builder.freeze()))
