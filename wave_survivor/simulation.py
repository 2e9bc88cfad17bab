"""
Run Simulation
==============
One run of the game: owns the ECS world, the map, the wave director and
the camera, and advances them one frame at a time in a fixed order:

1. player (movement, firing, aura, orbitals), camera follow, map streaming
2. enemy AI (may spawn enemy bullets and minions)
3. player-vs-enemy contact damage
4. projectiles and their hits
5. explosion/particle ticking and the dead-enemy sweep
6. player death check
7. wave director (spawns, wave completion)

Entities spawned during a pass are staged so the pass never sees them,
but every later pass in the same frame does.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from . import config
from .ecs import World
from .components import Health, PlayerStats, Position
from .collisions import contact_damage_system, death_system
from .enemies import enemy_ai_system
from .game_map import GameMap
from .gacha import GachaSystem
from .items import FREE_CRATE_REWARDS
from .particles import explosion_system
from .player import create_player, player_system
from .projectiles import projectile_system
from .shop import apply_shop_upgrade, generate_options
from .store_tree import StoreUpgradeTree
from .upgrades import prepare_player
from .wave_manager import WaveManager, WaveResult
from .worlds import WORLDS, WorldConfig, get_next_world, get_world_by_id

logger = logging.getLogger(__name__)

CHALLENGE_BONUS_GOLD = 50
TOKENS_PER_WAVE = 2


class RunPhase(Enum):
    PLAYING = 'playing'
    PAUSED = 'paused'
    SHOP = 'shop'
    GAME_OVER = 'game_over'
    VICTORY = 'victory'


@dataclass
class Camera:
    """Top-left corner of the view in world units, centred on a target."""
    width: float
    height: float
    x: float = 0.0
    y: float = 0.0

    def follow(self, target: Position) -> None:
        self.x = target.x - self.width / 2
        self.y = target.y - self.height / 2


@dataclass
class RunSummary:
    victory: bool
    wave: int
    score: int
    gold: int
    bonus_gold: int = 0
    tokens: int = 0
    crate: Optional[str] = None
    crate_items: List[dict] = field(default_factory=list)
    unlocked_world: Optional[str] = None


def roll_free_crate(wave: int) -> Optional[str]:
    """Crate dropped for ending a run on exactly this wave, if the roll hits."""
    reward = FREE_CRATE_REWARDS.get(wave)
    if reward is None:
        return None
    crate, chance = reward
    return crate if random.random() < chance else None


class Simulation:
    """A single run from start() to game over or victory."""

    def __init__(self, profile=None, view_width: float = config.VIEW_WIDTH,
                 view_height: float = config.VIEW_HEIGHT):
        self.profile = profile
        self.tree = StoreUpgradeTree(profile) if profile is not None else None

        self.world = World()
        self.game_map: Optional[GameMap] = None
        self.wave_manager: Optional[WaveManager] = None
        self.player_id: Optional[int] = None
        self.camera = Camera(view_width, view_height)
        self.stage: WorldConfig = WORLDS[0]
        self.kill_effect = 'default'

        self.phase: Optional[RunPhase] = None
        self.gold = 0
        self.score = 0
        self.time = 0.0
        self.shop_options: List[str] = []
        self.last_wave_result: Optional[WaveResult] = None
        self.summary: Optional[RunSummary] = None

    @property
    def wave(self) -> int:
        return self.wave_manager.wave if self.wave_manager else 0

    @property
    def running(self) -> bool:
        return self.phase in (RunPhase.PLAYING, RunPhase.PAUSED, RunPhase.SHOP)

    # ==================================================================
    # Lifecycle
    # ==================================================================

    def start(self, world_id: str = 'tech') -> None:
        """Fresh world, map and player; wave 1 begins immediately."""
        self.stage = get_world_by_id(world_id)
        self.world = World()
        self.game_map = GameMap()
        self.player_id = create_player(self.world, 0, 0)

        levels, gems = {}, []
        if self.profile is not None:
            levels = self.profile.data['upgrades']
            gems = self.profile.get_equipped_gems()
            effect = self.profile.get_equipped('killEffect')
            self.kill_effect = effect['id'] if effect else 'default'
        prepare_player(self.world, self.player_id, levels, gems)

        self.game_map.update(0, 0)
        self.camera.follow(Position(0, 0))

        self.gold = 0
        self.score = 0
        self.time = 0.0
        self.shop_options = []
        self.last_wave_result = None
        self.summary = None

        self.wave_manager = WaveManager(self.world, self.game_map, self.stage)
        self.wave_manager.start_wave()
        self.phase = RunPhase.PLAYING
        logger.info("Run started in %s", self.stage.name)

    def pause(self) -> None:
        if self.phase == RunPhase.PLAYING:
            self.phase = RunPhase.PAUSED

    def resume(self) -> None:
        if self.phase == RunPhase.PAUSED:
            self.phase = RunPhase.PLAYING

    def toggle_pause(self) -> None:
        if self.phase == RunPhase.PAUSED:
            self.resume()
        else:
            self.pause()

    def quit(self) -> Optional[RunSummary]:
        """Abandon the run; rewards are paid out as for a death."""
        if not self.running:
            return self.summary
        return self._finish_run(victory=False)

    # ==================================================================
    # Frame update
    # ==================================================================

    def step(self, dt: float, axis: Tuple[float, float] = (0.0, 0.0)) -> List[dict]:
        """Advance one frame. Returns the frame's gameplay events."""
        if self.phase != RunPhase.PLAYING:
            return []
        world = self.world
        player_id = self.player_id
        if player_id is None or self.game_map is None or not world.is_alive(player_id):
            return []

        dt = min(dt, config.MAX_FRAME_DT)
        if dt <= 0:
            return []
        self.time += dt
        events: List[dict] = []

        pos = world.get_component(player_id, Position)
        if math.isnan(pos.x) or math.isnan(pos.y):
            logger.warning("Player position became NaN, resetting to origin")
            pos.x = 0.0
            pos.y = 0.0

        with world.staged():
            player_system(world, player_id, dt, axis, self.game_map)
        self.camera.follow(pos)
        self.game_map.update(pos.x, pos.y)

        with world.staged():
            events.extend(enemy_ai_system(world, pos, self.game_map, dt, self.wave))

        events.extend(contact_damage_system(world, player_id, dt))

        with world.staged():
            events.extend(projectile_system(world, self.game_map, player_id, dt))

        explosion_system(world, dt)

        stats = world.get_component(player_id, PlayerStats)
        with world.staged():
            kills = death_system(world, self.game_map, stats.gold_multiplier, self.kill_effect)
        for kill in kills:
            self.gold += kill['gold']
            self.score += kill['xp']
        events.extend(kills)

        world.process_dead_entities()

        if world.get_component(player_id, Health).current <= 0:
            events.append({'type': 'player_died', 'wave': self.wave})
            self._finish_run(victory=False)
            return events

        result = self.wave_manager.update(dt)
        if result is not None:
            events.append({'type': 'wave_complete', 'result': result})
            self._on_wave_end(result)

        return events

    def _on_wave_end(self, result: WaveResult) -> None:
        self.last_wave_result = result
        if result.world_cleared:
            self._finish_run(victory=True)
            return
        if result.success:
            self.gold += CHALLENGE_BONUS_GOLD
            logger.info("Challenge bonus: +%d gold", CHALLENGE_BONUS_GOLD)
        self.shop_options = generate_options()
        self.phase = RunPhase.SHOP

    # ==================================================================
    # In-run shop
    # ==================================================================

    def choose_shop_option(self, index: int) -> bool:
        """Apply the picked option and start the next wave."""
        if self.phase != RunPhase.SHOP or not 0 <= index < len(self.shop_options):
            return False
        upgrade_id = self.shop_options[index]
        apply_shop_upgrade(self.world, self.player_id, upgrade_id)
        logger.info("Shop pick: %s", upgrade_id)
        self.close_shop()
        return True

    def close_shop(self) -> None:
        if self.phase != RunPhase.SHOP:
            return
        self.shop_options = []
        self.wave_manager.wave += 1
        self.wave_manager.start_wave()
        self.phase = RunPhase.PLAYING

    # ==================================================================
    # Run end
    # ==================================================================

    def _finish_run(self, victory: bool) -> RunSummary:
        self.phase = RunPhase.VICTORY if victory else RunPhase.GAME_OVER
        wave = self.wave
        summary = RunSummary(victory=victory, wave=wave, score=self.score, gold=self.gold)

        if self.profile is not None:
            summary.bonus_gold = math.floor(self.gold * self.tree.get_run_gold_bonus())
            self.profile.add_gold(self.gold + summary.bonus_gold)
            self.profile.add_high_score(wave, self.score)
            summary.tokens = self.profile.add_shop_tokens(math.floor(wave * TOKENS_PER_WAVE))

            summary.crate = roll_free_crate(wave)
            if summary.crate:
                summary.crate_items = GachaSystem(self.profile, self.tree).open_crate(summary.crate)

            if victory:
                next_world = get_next_world(self.stage.id)
                if next_world is not None and self.profile.unlock_world(next_world.id):
                    summary.unlocked_world = next_world.id

        logger.info("Run over (%s): wave %d, score %d, gold %d (+%d dividend)",
                    'victory' if victory else 'defeat', wave, self.score,
                    self.gold, summary.bonus_gold)
        self.summary = summary
        return summary
