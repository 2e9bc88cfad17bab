"""
Pytest fixtures shared by the gameplay and progression tests.
"""

import pytest

from wave_survivor.ecs import World
from wave_survivor.game_map import GameMap
from wave_survivor.persistence import MemoryRepository, Profile
from wave_survivor.player import create_player


@pytest.fixture
def world():
    return World()


@pytest.fixture
def player(world):
    """Player entity at the origin."""
    return create_player(world, 0, 0)


@pytest.fixture
def open_map():
    """A map with no walls in the active set."""
    return GameMap()


@pytest.fixture
def repository():
    return MemoryRepository()


@pytest.fixture
def profile(repository):
    """Fresh profile backed by an in-memory repository."""
    p = Profile(repository, 'tester')
    p.load()
    return p


@pytest.fixture
def fixed_random(monkeypatch):
    """Pin random.random() to a value; returns a setter."""
    import random

    def pin(value):
        monkeypatch.setattr(random, 'random', lambda: value)
    return pin
