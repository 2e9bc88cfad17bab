"""
Wave Manager
=============
Paces enemy spawns for the current wave, picks the enemy mix, scales
stats with the wave number, rolls wave modifiers and bonus challenges,
and reports when a wave (or the whole world) has been cleared.

Phases: INACTIVE -> ACTIVE -> COMPLETE. The caller bumps `wave` and
calls start_wave() again to begin the next one.
"""

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .ecs import World
from .components import EnemyTag, EnemyType, EnemyStats, Health, Position
from .enemies import (
    create_enemy, scale_enemy, wave_hp_multiplier, wave_damage_multiplier,
    wave_xp_multiplier, SPAWN_PROBE_SIZE,
)
from .game_map import GameMap
from .player import get_player_entity
from .worlds import WorldConfig

logger = logging.getLogger(__name__)


WAVE_TIME = 30.0
SPAWN_ATTEMPTS = 10
SPAWN_RETRY_DELAY = 0.1
SPAWN_DISTANCE_MIN = 700
SPAWN_DISTANCE_SPREAD = 100
BOSS_WAVE_INTERVAL = 5
BOSS_HP_MULTIPLIER = 3.0
CHALLENGE_CHANCE = 0.4


class WavePhase(Enum):
    INACTIVE = 'inactive'
    ACTIVE = 'active'
    COMPLETE = 'complete'


@dataclass(frozen=True)
class WaveModifier:
    key: str
    name: str
    description: str
    speed_mult: float
    hp_mult: float
    count_mult: float


@dataclass(frozen=True)
class WaveChallenge:
    id: str
    label: str
    description: str


@dataclass
class WaveResult:
    """Outcome reported when a wave ends."""
    wave: int
    challenge: Optional[WaveChallenge] = None
    success: bool = False
    world_cleared: bool = False


WAVE_MODIFIERS: Dict[str, WaveModifier] = {
    'SPEED': WaveModifier('SPEED', 'SPEED WAVE', 'Enemies move faster.', 1.4, 1.0, 1.0),
    'HORDE': WaveModifier('HORDE', 'HORDE WAVE', 'More, weaker enemies.', 1.0, 0.7, 1.5),
    'ARMORED': WaveModifier('ARMORED', 'ARMORED WAVE', 'Fewer, tankier enemies.', 0.8, 1.8, 1.0),
    'ELITE': WaveModifier('ELITE', 'ELITE WAVE', 'Fewer, much stronger enemies.', 1.0, 2.5, 0.5),
}

CHALLENGES: List[WaveChallenge] = [
    WaveChallenge('FLAWLESS', 'FLAWLESS', 'Take NO damage this wave.'),
    WaveChallenge('SPEED', 'SPEED RUN', 'Finish with > 15s remaining.'),
    WaveChallenge('SURVIVOR', 'SURVIVOR', 'End wave with > 90% HP.'),
]

# (minimum wave, roll below) checked in order; the first match wins
ENEMY_UNLOCKS = [
    (15, 0.1, EnemyType.TELEPORTER),
    (12, 0.25, EnemyType.SPLITTER),
    (9, 0.35, EnemyType.HEALER),
    (7, 0.5, EnemyType.SWARM),
    (6, 0.7, EnemyType.TANK),
    (4, 0.85, EnemyType.SHOOTER),
]


def has_modifier(wave: int) -> bool:
    """Every third wave from 3 on gets a modifier, except boss waves."""
    return wave >= 3 and wave % 3 == 0 and wave % BOSS_WAVE_INTERVAL != 0


def pick_enemy_type(wave: int, roll: float) -> EnemyType:
    """Non-boss enemy type for a uniform roll in [0, 1)."""
    for min_wave, threshold, enemy_type in ENEMY_UNLOCKS:
        if wave >= min_wave and roll < threshold:
            return enemy_type
    return EnemyType.CHASER


class WaveManager:
    """Per-run spawn director. Spawns straight into the ECS world."""

    def __init__(self, world: World, game_map: Optional[GameMap],
                 stage: Optional[WorldConfig] = None):
        self.world = world
        self.game_map = game_map
        self.stage: Optional[WorldConfig] = None
        self.difficulty_offset = 0

        self.wave = 1
        self.wave_time = WAVE_TIME
        self.timer = self.wave_time
        self.phase = WavePhase.INACTIVE

        self.enemies_to_spawn = 0
        self.total_enemies = 0
        self.enemies_spawned_this_wave = 0
        self.spawn_timer = 0.0
        self.spawn_rate = 1.0

        self.modifier: Optional[WaveModifier] = None
        self.challenge: Optional[WaveChallenge] = None
        self.player_hp_at_wave_start = 100.0
        self.is_boss_wave = False
        self.last_result: Optional[WaveResult] = None

        if stage is not None:
            self.set_world(stage)

    def set_world(self, stage: WorldConfig) -> None:
        self.stage = stage
        self.difficulty_offset = stage.difficulty_offset

    @property
    def wave_active(self) -> bool:
        return self.phase == WavePhase.ACTIVE

    @property
    def is_complete(self) -> bool:
        return self.phase == WavePhase.COMPLETE

    def live_enemy_count(self) -> int:
        return self.world.count(EnemyTag)

    def remaining_enemies(self) -> int:
        """Enemies still to spawn plus those alive."""
        return self.enemies_to_spawn + self.live_enemy_count()

    def _player_health(self) -> Optional[Health]:
        player_id = get_player_entity(self.world)
        if player_id is None:
            return None
        return self.world.get_component(player_id, Health)

    # -------------------------------------------------------------------------
    # Phase transitions
    # -------------------------------------------------------------------------

    def start_wave(self) -> None:
        """INACTIVE/COMPLETE -> ACTIVE for the current wave number."""
        self.phase = WavePhase.ACTIVE
        self.timer = self.wave_time
        self.last_result = None

        health = self._player_health()
        self.player_hp_at_wave_start = health.current if health else 100

        self.challenge = None
        if self.wave > 2 and random.random() < CHALLENGE_CHANCE:
            self.challenge = random.choice(CHALLENGES)
            logger.info("Wave challenge: %s", self.challenge.label)

        self.modifier = None
        if has_modifier(self.wave):
            self.modifier = random.choice(list(WAVE_MODIFIERS.values()))
            logger.info("%s!", self.modifier.name)

        count = 5 + math.floor(self.wave * 3)
        if self.modifier is not None:
            count = math.floor(count * self.modifier.count_mult)
        self.enemies_to_spawn = count
        self.total_enemies = count
        self.spawn_rate = max(0.5, 1.0 - self.wave * 0.1)
        self.enemies_spawned_this_wave = 0

        self.is_boss_wave = self.wave % BOSS_WAVE_INTERVAL == 0
        if self.is_boss_wave:
            self.enemies_to_spawn = 1 + (12 + math.floor(random.random() * 4))
            self.total_enemies = self.enemies_to_spawn
            self.modifier = None
            logger.info("BOSS WAVE %d!", self.wave)

        logger.info("Starting wave %d: %d enemies, rate %.2f%s", self.wave,
                    self.enemies_to_spawn, self.spawn_rate,
                    f" [{self.modifier.name}]" if self.modifier else '')

    def update(self, dt: float) -> Optional[WaveResult]:
        """Tick spawning. Returns the result on the frame the wave ends."""
        if self.phase != WavePhase.ACTIVE:
            return None

        # Cosmetic countdown, only read by the SPEED challenge
        self.timer -= dt

        if self.enemies_to_spawn > 0:
            self.spawn_timer -= dt
            if self.spawn_timer <= 0:
                if self.spawn_enemy():
                    self.spawn_timer = self.spawn_rate
                    self.enemies_to_spawn -= 1
                else:
                    self.spawn_timer = SPAWN_RETRY_DELAY

        if self.enemies_to_spawn <= 0 and self.live_enemy_count() == 0:
            return self.end_wave()
        return None

    def end_wave(self) -> WaveResult:
        """ACTIVE -> COMPLETE, scoring the challenge if one was rolled."""
        self.phase = WavePhase.COMPLETE
        logger.info("Wave %d cleared", self.wave)

        result = WaveResult(wave=self.wave)
        health = self._player_health()
        if self.challenge is not None:
            result.challenge = self.challenge
            result.success = self._challenge_met(self.challenge, health)
            logger.info("Challenge %s: %s", self.challenge.label,
                        'COMPLETE' if result.success else 'FAILED')

        if self.stage is not None and self.wave >= self.stage.waves:
            result.world_cleared = True
            logger.info("World %s cleared", self.stage.name)

        self.last_result = result
        return result

    def _challenge_met(self, challenge: WaveChallenge, health: Optional[Health]) -> bool:
        if challenge.id == 'SPEED':
            return self.timer >= 15
        if health is None:
            return False
        if challenge.id == 'FLAWLESS':
            # Healing back to the starting HP counts as flawless
            return health.current >= self.player_hp_at_wave_start
        if challenge.id == 'SURVIVOR':
            return health.current >= health.maximum * 0.9
        return False

    # -------------------------------------------------------------------------
    # Spawning
    # -------------------------------------------------------------------------

    def spawn_enemy(self) -> bool:
        """
        Try up to 10 random points 700-800 units from the player.
        Returns False if none was clear; the spawn budget is untouched then.
        """
        player_id = get_player_entity(self.world)
        player_pos = self.world.get_component(player_id, Position) if player_id is not None else None
        if player_pos is None:
            return False

        for _ in range(SPAWN_ATTEMPTS):
            angle = random.random() * math.pi * 2
            distance = SPAWN_DISTANCE_MIN + random.random() * SPAWN_DISTANCE_SPREAD
            x = player_pos.x + math.cos(angle) * distance
            y = player_pos.y + math.sin(angle) * distance
            if self._blocked(x, y, SPAWN_PROBE_SIZE):
                continue

            if self.is_boss_wave and self.enemies_spawned_this_wave == 0:
                enemy_type = EnemyType.BOSS
            else:
                enemy_type = pick_enemy_type(self.wave, random.random())

            entity_id = create_enemy(self.world, x, y, enemy_type)
            scale_enemy(
                self.world, entity_id, self.wave,
                boss_multiplier=BOSS_HP_MULTIPLIER if self.is_boss_wave else 1.0,
                modifier_hp=self.modifier.hp_mult if self.modifier else None,
                modifier_speed=self.modifier.speed_mult if self.modifier else None,
            )

            if enemy_type == EnemyType.SWARM:
                self._spawn_swarm_cluster(x, y)

            self.enemies_spawned_this_wave += 1
            return True

        logger.warning("No clear spawn point found for wave %d, retrying", self.wave)
        return False

    def _spawn_swarm_cluster(self, x: float, y: float) -> List[int]:
        """2-4 extra SWARM around a SWARM spawn, outside the spawn budget."""
        extras = []
        for _ in range(2 + math.floor(random.random() * 3)):
            angle = random.random() * math.pi * 2
            dist = 30 + random.random() * 40
            sx = x + math.cos(angle) * dist
            sy = y + math.sin(angle) * dist
            if self._blocked(sx, sy, 10):
                continue

            entity_id = create_enemy(self.world, sx, sy, EnemyType.SWARM)
            health = self.world.get_component(entity_id, Health)
            stats = self.world.get_component(entity_id, EnemyStats)
            health.current = math.floor(health.current * wave_hp_multiplier(self.wave))
            health.maximum = health.current
            stats.damage = math.floor(stats.damage * wave_damage_multiplier(self.wave))
            stats.xp_value = math.floor(stats.xp_value * wave_xp_multiplier(self.wave))
            extras.append(entity_id)
        return extras

    def _blocked(self, x: float, y: float, size: float) -> bool:
        return self.game_map is not None and self.game_map.check_collision(x, y, size) is not None
