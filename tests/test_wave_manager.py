"""
Tests for the wave director: counts, boss waves, modifiers, challenges
and completion.
"""
import pytest

from wave_survivor.components import EnemyStats, EnemyTag, EnemyType, Health, Position
from wave_survivor.enemies import create_enemy
from wave_survivor.game_map import GameMap, Wall
from wave_survivor.wave_manager import (
    CHALLENGES, WaveManager, WavePhase, has_modifier, pick_enemy_type,
)
from wave_survivor.worlds import WorldConfig, get_world_by_id


def _challenge(challenge_id):
    return next(c for c in CHALLENGES if c.id == challenge_id)


class TestWaveSetup:
    """start_wave numbers."""

    def test_first_wave(self, world, player):
        """Wave 1 spawns 8 enemies at 0.9s with no extras."""
        manager = WaveManager(world, None, get_world_by_id('tech'))
        manager.start_wave()

        assert manager.phase == WavePhase.ACTIVE
        assert manager.enemies_to_spawn == 8
        assert manager.spawn_rate == pytest.approx(0.9)
        assert manager.challenge is None
        assert manager.modifier is None
        assert not manager.is_boss_wave

    def test_spawn_rate_floor(self, world, player):
        """Late waves spawn no faster than every half second."""
        manager = WaveManager(world, None)
        manager.wave = 12
        manager.start_wave()
        assert manager.spawn_rate == 0.5

    @pytest.mark.parametrize('wave, expected', [
        (1, False), (3, True), (4, False), (5, False), (6, True), (9, True), (15, False),
    ])
    def test_modifier_schedule(self, wave, expected):
        """Every third wave from 3 has a modifier unless it is a boss wave."""
        assert has_modifier(wave) is expected

    @pytest.mark.parametrize('wave, roll, expected', [
        (1, 0.0, EnemyType.CHASER),
        (4, 0.8, EnemyType.SHOOTER),
        (4, 0.9, EnemyType.CHASER),
        (6, 0.6, EnemyType.TANK),
        (7, 0.4, EnemyType.SWARM),
        (9, 0.3, EnemyType.HEALER),
        (12, 0.2, EnemyType.SPLITTER),
        (15, 0.05, EnemyType.TELEPORTER),
    ])
    def test_enemy_mix(self, wave, roll, expected):
        """Enemy types unlock with the wave number."""
        assert pick_enemy_type(wave, roll) == expected


class TestBossWave:
    """Boss waves."""

    def test_wave_five_boss(self, world, player, fixed_random):
        """Wave 5 spawns the boss first with tripled HP, then escorts."""
        fixed_random(0.0)
        manager = WaveManager(world, None, get_world_by_id('tech'))
        manager.wave = 5
        manager.start_wave()

        assert manager.is_boss_wave
        assert manager.modifier is None
        assert manager.enemies_to_spawn == 13

        assert manager.update(0.01) is None
        boss = next(world.get_entities_with(EnemyTag))
        assert world.get_component(boss, EnemyTag).enemy_type == EnemyType.BOSS
        assert world.get_component(boss, Health).maximum == 5681
        assert world.get_component(boss, EnemyStats).damage == 34
        assert world.get_component(boss, Position).x == pytest.approx(700)
        assert manager.enemies_to_spawn == 12

        manager.update(0.5)
        escort = [e for e, tag in world.query(EnemyTag) if tag.enemy_type != EnemyType.BOSS]
        assert len(escort) == 1
        assert world.get_component(escort[0], EnemyTag).enemy_type == EnemyType.SHOOTER
        assert world.get_component(escort[0], Health).maximum == 227

    def test_swarm_comes_in_clusters(self, world, player, fixed_random):
        """A swarm spawn brings extra swarm outside the budget."""
        fixed_random(0.0)
        manager = WaveManager(world, None)
        manager.wave = 7

        assert manager.spawn_enemy()
        assert world.count(EnemyTag) == 3


class TestSpawning:
    """Spawn placement."""

    def test_blocked_spawn_retries(self, world, player):
        """With no clear point the spawn is retried shortly, budget kept."""
        game_map = GameMap()
        game_map.walls = [Wall(-5000, -5000, 10000, 10000)]
        manager = WaveManager(world, game_map)
        manager.start_wave()

        manager.update(0.01)

        assert manager.enemies_to_spawn == 8
        assert manager.spawn_timer == pytest.approx(0.1)
        assert world.count(EnemyTag) == 0

    def test_no_player_no_spawn(self, world):
        """Spawning needs a player to measure from."""
        manager = WaveManager(world, None)
        assert not manager.spawn_enemy()


class TestCompletion:
    """Wave end conditions."""

    def test_needs_empty_budget_and_no_enemies(self, world, player):
        """A wave ends only when nothing is left to spawn and nothing is alive."""
        manager = WaveManager(world, None)
        manager.start_wave()
        manager.enemies_to_spawn = 0
        enemy = create_enemy(world, 500, 500, EnemyType.CHASER)

        assert manager.update(0.1) is None
        assert manager.remaining_enemies() == 1

        world.destroy_entity(enemy)
        world.process_dead_entities()
        result = manager.update(0.1)
        assert result is not None
        assert result.wave == 1
        assert manager.is_complete

    def test_budget_left_keeps_wave_open(self, world, player):
        """An empty arena with spawns still pending is not a clear."""
        manager = WaveManager(world, None)
        manager.start_wave()
        manager.spawn_timer = 100
        assert manager.update(0.1) is None
        assert manager.wave_active

    def test_world_cleared_on_last_wave(self, world, player):
        """Clearing the world's final wave flags the world as cleared."""
        stage = WorldConfig('test', 'TEST', 2, 0)
        manager = WaveManager(world, None, stage)
        manager.wave = 2
        manager.start_wave()
        manager.enemies_to_spawn = 0

        assert manager.update(0.1).world_cleared

    def test_inactive_manager_ignores_update(self, world):
        """Before start_wave nothing happens."""
        assert WaveManager(world, None).update(1.0) is None


class TestChallenges:
    """Bonus challenge scoring."""

    def _finish(self, world, challenge_id):
        manager = WaveManager(world, None)
        manager.start_wave()
        manager.challenge = _challenge(challenge_id)
        manager.enemies_to_spawn = 0
        return manager

    def test_speed_run(self, world, player):
        """Finishing with 15s or more left succeeds."""
        manager = self._finish(world, 'SPEED')
        result = manager.update(1.0)
        assert result.challenge.id == 'SPEED'
        assert result.success

    def test_speed_run_too_slow(self, world, player):
        """Finishing late fails."""
        manager = self._finish(world, 'SPEED')
        manager.timer = 10
        assert not manager.update(1.0).success

    def test_flawless(self, world, player):
        """No HP lost means flawless."""
        manager = self._finish(world, 'FLAWLESS')
        assert manager.update(0.1).success

    def test_flawless_broken(self, world, player):
        """Any damage breaks flawless."""
        manager = self._finish(world, 'FLAWLESS')
        world.get_component(player, Health).current -= 1
        assert not manager.update(0.1).success

    def test_survivor(self, world, player):
        """Ending at 90% HP or more succeeds."""
        manager = self._finish(world, 'SURVIVOR')
        world.get_component(player, Health).current = 90
        assert manager.update(0.1).success

        manager = self._finish(world, 'SURVIVOR')
        world.get_component(player, Health).current = 89
        assert not manager.update(0.1).success

    def test_early_waves_have_no_challenge(self, world, player, fixed_random):
        """Challenges start from wave 3."""
        fixed_random(0.0)
        manager = WaveManager(world, None)
        manager.wave = 2
        manager.start_wave()
        assert manager.challenge is None

        manager.wave = 4
        manager.start_wave()
        assert manager.challenge is not None
