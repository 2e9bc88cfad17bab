"""
Tests for contact damage and the dead-enemy sweep.
"""
import pytest

from wave_survivor.collisions import contact_damage_system, death_system
from wave_survivor.components import (
    EnemyStats, EnemyTag, EnemyType, Explosion, Health, JumpState, PlayerStats,
)
from wave_survivor.enemies import apply_slow, create_enemy


class TestContactDamage:
    """Enemies touching the player."""

    def test_contact_hits_player(self, world, player):
        """Touching enemies deal their damage."""
        enemy = create_enemy(world, 10, 0, EnemyType.CHASER)
        events = contact_damage_system(world, player, 0.1)

        assert world.get_component(player, Health).current == 90
        assert events == [{'type': 'player_hit', 'damage': 10, 'source': enemy}]

    def test_iframes_limit_to_one_hit(self, world, player):
        """Two touching enemies in one frame hit only once."""
        create_enemy(world, 10, 0, EnemyType.CHASER)
        create_enemy(world, -10, 0, EnemyType.TANK)
        contact_damage_system(world, player, 0.1)
        assert world.get_component(player, Health).current == 90

    def test_slowed_enemies_hit_softer(self, world, player):
        """Frost-slowed enemies deal 70%."""
        enemy = create_enemy(world, 10, 0, EnemyType.CHASER)
        apply_slow(world, enemy, 2.0)
        contact_damage_system(world, player, 0.1)
        assert world.get_component(player, Health).current == pytest.approx(93)

    def test_airborne_enemies_skip(self, world, player):
        """Jumping enemies pass over the player."""
        enemy = create_enemy(world, 10, 0, EnemyType.CHASER)
        world.get_component(enemy, JumpState).is_jumping = True
        assert contact_damage_system(world, player, 0.1) == []
        assert world.get_component(player, Health).current == 100

    def test_thorns_even_during_iframes(self, world, player):
        """Thorns hurt every touching enemy, hit landed or not."""
        world.get_component(player, PlayerStats).thorns_damage = 15
        a = create_enemy(world, 10, 0, EnemyType.CHASER)
        b = create_enemy(world, -10, 0, EnemyType.CHASER)

        contact_damage_system(world, player, 0.1)

        assert world.get_component(a, Health).current == pytest.approx(28.5)
        assert world.get_component(b, Health).current == pytest.approx(28.5)


class TestDeathSystem:
    """Dead-enemy sweep."""

    def test_kill_rewards(self, world):
        """Each kill reports floor(xp * multiplier) gold and its xp."""
        enemy = create_enemy(world, 0, 0, EnemyType.CHASER)
        world.get_component(enemy, Health).current = 0

        events = death_system(world, None, gold_multiplier=1.55)

        assert len(events) == 1
        assert events[0]['gold'] == 15
        assert events[0]['xp'] == 10
        assert not world.is_alive(enemy)
        assert world.count(Explosion) == 1

    def test_living_enemies_untouched(self, world):
        """Enemies above zero HP stay."""
        enemy = create_enemy(world, 0, 0, EnemyType.CHASER)
        world.get_component(enemy, Health).current = 0.5
        assert death_system(world, None) == []
        assert world.is_alive(enemy)

    def test_newest_first(self, world):
        """The sweep walks newest to oldest."""
        first = create_enemy(world, 0, 0, EnemyType.CHASER)
        second = create_enemy(world, 0, 0, EnemyType.CHASER)
        for e in (first, second):
            world.get_component(e, Health).current = -1

        events = death_system(world, None)
        assert [e['entity'] for e in events] == [second, first]

    def test_zero_xp_counts_as_one(self, world):
        """An enemy with no xp still pays one."""
        enemy = create_enemy(world, 0, 0, EnemyType.CHASER)
        world.get_component(enemy, EnemyStats).xp_value = 0
        world.get_component(enemy, Health).current = 0
        assert death_system(world, None)[0]['gold'] == 1

    def test_splitter_spawns_children(self, world):
        """Dead splitters leave swarm children behind."""
        enemy = create_enemy(world, 0, 0, EnemyType.SPLITTER)
        world.get_component(enemy, Health).current = 0

        with world.staged():
            events = death_system(world, None)
        world.process_dead_entities()

        assert len(events[0]['children']) == 2
        types = [tag.enemy_type for _, tag in world.query(EnemyTag)]
        assert types == [EnemyType.SWARM, EnemyType.SWARM]
