"""
Tests for the shared geometry helpers.
"""
import pytest

from wave_survivor.components import Health, Position
from wave_survivor.systems import collides, get_direction_to, get_distance, health_ratio


class TestGeometry:
    """Distances, directions and overlap."""

    def test_distance(self):
        """Euclidean distance between two points."""
        assert get_distance(Position(0, 0), Position(3, 4)) == 5

    def test_direction_is_unit_vector(self):
        """Directions are normalised."""
        dx, dy = get_direction_to(Position(10, 10), Position(13, 6))
        assert (dx, dy) == (pytest.approx(0.6), pytest.approx(-0.8))

    def test_direction_to_self(self):
        """Coincident points have no direction."""
        assert get_direction_to(Position(1, 1), Position(1, 1)) == (0.0, 0.0)

    def test_touching_boxes_do_not_collide(self):
        """Overlap is strict."""
        assert not collides(Position(0, 0), 10, Position(10, 0), 10)
        assert collides(Position(0, 0), 10, Position(9.5, 0), 10)


class TestHealthRatio:
    """HUD health fraction."""

    def test_fraction(self, world):
        """Current over maximum."""
        e = world.create_entity()
        world.add_component(e, Health(25, 100))
        assert health_ratio(world, e) == 0.25

    def test_overkill_floors_at_zero(self, world):
        """Negative HP shows as an empty bar."""
        e = world.create_entity()
        world.add_component(e, Health(-12, 100))
        assert health_ratio(world, e) == 0.0

    def test_missing_health(self, world):
        """Entities without Health read as empty."""
        assert health_ratio(world, world.create_entity()) == 0.0
