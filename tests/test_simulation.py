"""
End-to-end run tests: frame order, shop flow, death and victory, and
run-end rewards against a profile.
"""
import threading

import pytest

from wave_survivor.components import EnemyType, Health, PlayerStats, Position
from wave_survivor.enemies import create_enemy
from wave_survivor.persistence import MemoryRepository, Profile, ProfileWriter
from wave_survivor.simulation import RunPhase, Simulation, roll_free_crate
from wave_survivor.wave_manager import CHALLENGES


def _started(profile=None, world_id='tech'):
    """Started run with the walls around the origin cleared."""
    sim = Simulation(profile)
    sim.start(world_id)
    for key in sim.game_map.chunks:
        sim.game_map.chunks[key] = []
    sim.game_map.walls = []
    return sim


def _health(sim):
    return sim.world.get_component(sim.player_id, Health)


class TestLifecycle:
    """Start, pause and quit."""

    def test_start(self):
        """A run starts on wave 1 with a full-health player at the origin."""
        sim = _started()
        assert sim.phase == RunPhase.PLAYING
        assert sim.wave == 1
        assert sim.running
        assert _health(sim).current == 100
        pos = sim.world.get_component(sim.player_id, Position)
        assert (pos.x, pos.y) == (0, 0)

    def test_pause_freezes_time(self):
        """Paused runs ignore steps."""
        sim = _started()
        sim.toggle_pause()
        assert sim.phase == RunPhase.PAUSED
        assert sim.step(0.1) == []
        assert sim.time == 0

        sim.toggle_pause()
        sim.step(0.1)
        assert sim.time == pytest.approx(0.1)

    def test_large_steps_are_clamped(self):
        """A long frame only advances the clamp."""
        sim = _started()
        sim.step(5.0)
        assert sim.time == pytest.approx(0.1)

    def test_nan_position_reset(self):
        """A NaN position is reset to the origin."""
        sim = _started()
        pos = sim.world.get_component(sim.player_id, Position)
        pos.x = float('nan')
        sim.step(0.01)
        assert pos.x == 0

    def test_quit_ends_run(self):
        """Quitting counts as a defeat."""
        sim = _started()
        summary = sim.quit()
        assert sim.phase == RunPhase.GAME_OVER
        assert not summary.victory
        assert sim.quit() is summary


class TestFrame:
    """Per-frame behaviour."""

    def test_kill_pays_gold_and_score(self):
        """Dead enemies add their gold and xp to the run."""
        sim = _started()
        enemy = create_enemy(sim.world, 3000, 3000, EnemyType.CHASER)
        sim.world.get_component(enemy, Health).current = 0

        events = sim.step(0.01)

        kills = [e for e in events if e['type'] == 'enemy_killed']
        assert len(kills) == 1
        assert sim.gold == 10
        assert sim.score == 10

    def test_gold_multiplier(self):
        """The player's gold multiplier scales kill gold."""
        sim = _started()
        sim.world.get_component(sim.player_id, PlayerStats).gold_multiplier = 2.0
        enemy = create_enemy(sim.world, 3000, 3000, EnemyType.CHASER)
        sim.world.get_component(enemy, Health).current = 0
        sim.step(0.01)
        assert sim.gold == 20

    def test_camera_follows_player(self):
        """The camera is centred on the player after a step."""
        sim = _started()
        sim.step(0.01, (1.0, 0.0))
        pos = sim.world.get_component(sim.player_id, Position)
        assert sim.camera.x == pytest.approx(pos.x - sim.camera.width / 2)
        assert sim.camera.y == pytest.approx(pos.y - sim.camera.height / 2)

    def test_death_ends_run(self):
        """Reaching 0 HP ends the run before the wave ticks."""
        sim = _started()
        _health(sim).current = 0
        events = sim.step(0.01)
        assert events[-1] == {'type': 'player_died', 'wave': 1}
        assert sim.phase == RunPhase.GAME_OVER
        assert sim.step(0.01) == []


class TestWaveFlow:
    """Wave clear, shop and next wave."""

    def _clear_wave(self, sim):
        sim.wave_manager.enemies_to_spawn = 0
        for entity_id, _ in list(sim.world.query(Health)):
            if entity_id != sim.player_id:
                sim.world.destroy_entity(entity_id)
        sim.world.process_dead_entities()
        return sim.step(0.01)

    def test_clear_opens_shop(self):
        """A cleared wave opens the shop with three options."""
        sim = _started()
        events = self._clear_wave(sim)
        assert events[-1]['type'] == 'wave_complete'
        assert sim.phase == RunPhase.SHOP
        assert len(sim.shop_options) == 3
        assert sim.step(0.01) == []

    def test_pick_starts_next_wave(self):
        """Picking an option applies it and starts the next wave."""
        sim = _started()
        self._clear_wave(sim)
        picked = sim.shop_options[0]

        assert sim.choose_shop_option(0)
        assert sim.phase == RunPhase.PLAYING
        assert sim.wave == 2
        assert sim.world.get_component(sim.player_id, PlayerStats).shop_picks == [picked]

    def test_bad_pick_rejected(self):
        """Out-of-range picks do nothing."""
        sim = _started()
        self._clear_wave(sim)
        assert not sim.choose_shop_option(5)
        assert sim.phase == RunPhase.SHOP

    def test_skip_shop(self):
        """Closing the shop without a pick still advances."""
        sim = _started()
        self._clear_wave(sim)
        sim.close_shop()
        assert sim.wave == 2

    def test_challenge_bonus(self):
        """A met challenge is worth 50 gold."""
        sim = _started()
        sim.wave_manager.challenge = next(c for c in CHALLENGES if c.id == 'SPEED')
        self._clear_wave(sim)
        assert sim.last_wave_result.success
        assert sim.gold == 50

    def test_last_wave_is_victory(self, profile):
        """Clearing the final wave wins and unlocks the next world."""
        sim = _started(profile)
        sim.wave_manager.wave = sim.stage.waves
        self._clear_wave(sim)

        assert sim.phase == RunPhase.VICTORY
        assert sim.summary.victory
        assert sim.summary.unlocked_world == 'magma'
        assert 'magma' in profile.data['unlockedWorlds']


class TestRunEnd:
    """Rewards paid into the profile."""

    def test_rewards(self, profile):
        """Gold, high score and tokens are credited at run end."""
        sim = _started(profile)
        sim.gold = 120
        sim.score = 300

        summary = sim.quit()

        assert profile.data['gold'] == 120
        assert profile.data['highScores'][0]['score'] == 300
        assert summary.tokens == 2
        assert profile.data['shopTokens'] == 2
        assert profile.data['storeXP'] == 2

    def test_run_dividend(self, profile):
        """The run dividend node adds bonus gold."""
        profile.data['storeUpgrades']['run_dividend'] = 2
        sim = _started(profile)
        sim.gold = 100

        summary = sim.quit()

        assert summary.bonus_gold == 10
        assert profile.data['gold'] == 110

    def test_upgrades_applied_at_start(self, profile):
        """Owned permanent upgrades shape the new player."""
        profile.data['upgrades'] = {'hp_c': 2, 'dmg_c': 1}
        sim = _started(profile)
        assert _health(sim).current == 120
        assert sim.world.get_component(sim.player_id, PlayerStats).damage == 12

    def test_no_profile_no_rewards(self):
        """Without a profile the summary only reports the run."""
        sim = _started()
        sim.gold = 40
        summary = sim.quit()
        assert summary.gold == 40
        assert summary.tokens == 0

    def test_free_crate_table(self, fixed_random):
        """Free crates only drop on listed waves and when the roll hits."""
        fixed_random(0.4)
        assert roll_free_crate(30) == 'GOLD_CRATE'
        assert roll_free_crate(10) == 'BASIC_CRATE'
        assert roll_free_crate(5) is None
        assert roll_free_crate(7) is None


class _GatedRepository(MemoryRepository):
    """Saves block until released, like a profile server that is down."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()
        self.saves = 0

    def save(self, data):
        self.release.wait(5)
        self.saves += 1
        super().save(data)


class TestBackgroundSaves:
    """Run-end saves never hold up the frame."""

    def test_death_step_does_not_wait_for_storage(self):
        """The dying frame returns while the repository is still blocked."""
        repository = _GatedRepository()
        writer = ProfileWriter(repository)
        profile = Profile(repository, 'tester', writer)
        profile.load()
        sim = _started(profile)
        sim.gold = 75
        _health(sim).current = 0

        try:
            sim.step(1 / 60)

            assert sim.phase == RunPhase.GAME_OVER
            assert 'tester' not in repository.profiles

            repository.release.set()
            assert writer.flush(timeout=5)
            assert 1 <= repository.saves <= 2
            assert repository.profiles['tester']['gold'] == 75
            assert repository.profiles['tester'] == profile.data
        finally:
            repository.release.set()
            writer.close(timeout=5)
