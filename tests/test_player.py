"""
Tests for the player: input, damage and i-frames, firing.
"""
import math

import pytest
from blessed.keyboard import Keystroke

from wave_survivor.components import (
    FireAura, Health, Invulnerable, Orbitals, PlayerStats, Position, Projectile, Velocity,
)
from wave_survivor.components import EnemyType
from wave_survivor.enemies import create_enemy
from wave_survivor.player import (
    InputHandler, MIN_FIRE_RATE, damage_player, find_nearest_enemy, player_system,
    shoot, update_fire_rate,
)


class TestInputHandler:
    """Key-hold simulation."""

    def test_movement_key_held_then_released(self):
        """A press holds the direction until the hold time runs out."""
        handler = InputHandler(hold_duration=0.2)
        handler.process_key(Keystroke('d'))
        assert handler.get_axis() == (1.0, 0.0)

        handler.update(0.25)
        assert handler.get_axis() == (0.0, 0.0)

    def test_diagonal_is_normalised(self):
        """Two held directions give a unit vector."""
        handler = InputHandler()
        handler.process_key(Keystroke('w'))
        handler.process_key(Keystroke('a'))
        dx, dy = handler.get_axis()
        assert math.hypot(dx, dy) == pytest.approx(1.0)
        assert dx < 0 and dy < 0

    def test_arrow_keys(self):
        """Arrow keys map like WASD."""
        handler = InputHandler()
        handler.process_key(Keystroke('\x1b[B', code=258, name='KEY_DOWN'))
        assert handler.get_axis() == (0.0, 1.0)

    def test_actions_are_consumed_once(self):
        """Quit, pause and FPS toggles fire a single time."""
        handler = InputHandler()
        handler.process_key(Keystroke('p'))
        handler.process_key(Keystroke('f'))
        handler.process_key(Keystroke('q'))

        assert handler.consume_pause()
        assert not handler.consume_pause()
        assert handler.consume_toggle_fps()
        assert handler.consume_quit()
        assert not handler.consume_quit()


class TestDamage:
    """Damage, i-frames and fire rate."""

    def test_iframes_block_second_hit(self, world, player):
        """After a hit, further damage is ignored until i-frames run out."""
        health = world.get_component(player, Health)
        health.current = 10

        assert damage_player(world, player, 5)
        assert health.current == 5
        assert not damage_player(world, player, 5)
        assert health.current == 5

        player_system(world, player, 1.5, (0, 0), None)
        assert damage_player(world, player, 5)
        assert health.current == 0

    def test_hp_not_clamped(self, world, player):
        """Overkill damage leaves HP below zero."""
        damage_player(world, player, 150)
        assert world.get_component(player, Health).current == -50

    def test_regen_caps_at_maximum(self, world, player):
        """Regen never overheals."""
        stats = world.get_component(player, PlayerStats)
        health = world.get_component(player, Health)
        stats.regen_rate = 5
        health.current = 98
        player_system(world, player, 1.0, (0, 0), None)
        assert health.current == 100

    def test_fire_rate_has_floor(self):
        """Huge bonuses cannot push the interval under the floor."""
        stats = PlayerStats()
        stats.fire_rate_bonus = 1.0
        update_fire_rate(stats)
        assert stats.fire_rate == pytest.approx(0.25)

        stats.fire_rate_bonus = 100
        update_fire_rate(stats)
        assert stats.fire_rate == MIN_FIRE_RATE


class TestFiring:
    """Targeting and volleys."""

    def test_nearest_enemy_strictly_in_range(self, world):
        """Enemies at exactly max range are ignored."""
        far = create_enemy(world, 400, 0, EnemyType.CHASER)
        near = create_enemy(world, 0, 300, EnemyType.CHASER)
        assert find_nearest_enemy(world, Position(0, 0), 400) == near

        world.destroy_entity(near)
        assert find_nearest_enemy(world, Position(0, 0), 400) is None
        assert find_nearest_enemy(world, Position(0, 0), 401) == far

    def test_volley_is_parallel(self, world, player):
        """Multishot bullets are spread perpendicular and fly the same way."""
        world.get_component(player, PlayerStats).projectile_count = 3
        bullets = shoot(world, player, Position(100, 0))

        assert len(bullets) == 3
        ys = sorted(world.get_component(b, Position).y for b in bullets)
        assert ys == pytest.approx([-12, 0, 12])
        for b in bullets:
            vel = world.get_component(b, Velocity)
            assert vel.x == pytest.approx(600)
            assert vel.y == pytest.approx(0, abs=1e-9)

    def test_crit_doubles_whole_volley(self, world, player, fixed_random):
        """One crit roll covers every bullet of the volley."""
        stats = world.get_component(player, PlayerStats)
        stats.projectile_count = 2
        stats.crit_chance = 50
        fixed_random(0.1)

        bullets = shoot(world, player, Position(100, 0))
        assert [world.get_component(b, Projectile).damage for b in bullets] == [20, 20]

    def test_no_crit_without_chance(self, world, player, fixed_random):
        """Zero crit chance never crits."""
        fixed_random(0.0)
        bullet = shoot(world, player, Position(100, 0))[0]
        assert world.get_component(bullet, Projectile).damage == 10

    def test_auto_fire_waits_for_target(self, world, player):
        """No enemy in range means no bullet and the timer stays ready."""
        player_system(world, player, 0.1, (0, 0), None)
        assert world.count(Projectile) == 0

        create_enemy(world, 100, 0, EnemyType.CHASER)
        player_system(world, player, 0.1, (0, 0), None)
        assert world.count(Projectile) == 1
        assert world.get_component(player, PlayerStats).fire_timer == pytest.approx(0.5)


class TestAbilities:
    """Fire aura and orbitals."""

    def test_fire_aura_pulses(self, world, player):
        """The aura hits enemies in range once per interval."""
        aura = world.get_component(player, FireAura)
        aura.active = True
        aura.damage = 25
        close = create_enemy(world, 50, 0, EnemyType.TANK)
        far = create_enemy(world, 300, 0, EnemyType.TANK)

        player_system(world, player, 0.01, (0, 0), None)
        assert world.get_component(close, Health).current == 55
        assert world.get_component(far, Health).current == 80

        player_system(world, player, 0.01, (0, 0), None)
        assert world.get_component(close, Health).current == 55

    def test_orbitals_damage_on_contact(self, world, player):
        """An enemy sitting on an orbital takes damage per second."""
        orbitals = world.get_component(player, Orbitals)
        orbitals.count = 1
        orbitals.damage = 60
        orbitals.spin_speed = 0
        enemy = create_enemy(world, 60, 0, EnemyType.TANK)

        player_system(world, player, 0.5, (0, 0), None)
        assert world.get_component(enemy, Health).current == pytest.approx(80 - 60)

    def test_invulnerable_flashes(self, world, player):
        """Flashing is only on while i-frames run."""
        damage_player(world, player, 1)
        invuln = world.get_component(player, Invulnerable)
        player_system(world, player, 0.01, (0, 0), None)
        assert invuln.time_remaining > 0
        player_system(world, player, 2.0, (0, 0), None)
        player_system(world, player, 0.01, (0, 0), None)
        assert not invuln.flashing
