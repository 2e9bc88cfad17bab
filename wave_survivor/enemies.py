"""
Enemy Archetypes
=================
Eight closed archetypes. Each one's base stats, extra components and
per-frame behaviour live together in its section below; the dispatch
table at the bottom is checked to cover every EnemyType at import.

Behaviour functions decide whether the enemy keeps walking this frame.
Shared movement (pursuit, wall jumps, slow) is handled by
enemy_ai_system.
"""

import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .ecs import World
from .components import (
    Position, CollisionBox, Renderable, Health, EnemyTag, EnemyType,
    EnemyStats, JumpState, RangedAttack, BossPhases, HealAura, Splitter,
    Teleporter,
)
from .engine import (
    NEON_RED, NEON_ORANGE, NEON_MAGENTA, NEON_GREEN, NEON_YELLOW, NEON_PURPLE,
    NEON_PINK, NEON_CYAN,
)
from .game_map import GameMap
from .projectiles import spawn_projectile
from .systems import get_direction_to, get_distance


SLOW_FACTOR = 0.5
JUMP_VELOCITY = 350.0
GRAVITY = 800.0
SPAWN_PROBE_SIZE = 20  # Clearance checked for minion and wave spawns


@dataclass(frozen=True)
class Archetype:
    """Unscaled stats and look of an enemy type."""
    hp: int
    speed: int
    damage: int
    xp_value: int
    size: int
    char: str
    color: int


@dataclass
class AIContext:
    """Everything a behaviour may read or spawn into during one frame."""
    world: World
    game_map: Optional[GameMap]
    player_pos: Position
    wave: int
    dt: float
    events: List[dict]


def wave_hp_multiplier(wave: int) -> float:
    """Exponential HP curve shared by wave spawns and boss minions."""
    return (1 + wave * 0.4) * math.pow(1.06, wave - 1)


def wave_damage_multiplier(wave: int) -> float:
    return math.pow(1.08, wave - 1)


def wave_xp_multiplier(wave: int) -> float:
    return (1 + wave * 0.15) * math.pow(1.05, wave - 1)


# =============================================================================
# CHASER / TANK / SWARM: pursuit only
# =============================================================================

def _pursue(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> bool:
    return True


# =============================================================================
# SHOOTER / BOSS: ranged attack
# =============================================================================

def _fire_if_ready(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> None:
    ranged = ctx.world.get_component(entity_id, RangedAttack)
    stats = ctx.world.get_component(entity_id, EnemyStats)
    ranged.timer -= ctx.dt
    if ranged.timer <= 0 and dist < ranged.max_distance:
        ranged.timer = ranged.cooldown
        spawn_projectile(ctx.world, pos.x, pos.y, ctx.player_pos.x, ctx.player_pos.y,
                         stats.damage, is_enemy=True)


def _shooter_behavior(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> bool:
    """Advance until in range, then hold and fire."""
    _fire_if_ready(ctx, entity_id, pos, dist)
    ranged = ctx.world.get_component(entity_id, RangedAttack)
    return not (ranged.hold_range is not None and dist < ranged.hold_range)


def _boss_behavior(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> bool:
    """Fire, summon minions at each HP threshold once, enrage at half HP."""
    _fire_if_ready(ctx, entity_id, pos, dist)

    world = ctx.world
    phases = world.get_component(entity_id, BossPhases)
    health = world.get_component(entity_id, Health)
    stats = world.get_component(entity_id, EnemyStats)
    hp_percent = health.current / health.maximum

    for index, threshold in enumerate(phases.thresholds):
        if hp_percent <= threshold and index not in phases.triggered:
            phases.triggered.append(index)
            spawned = _summon_minions(ctx, pos, phases.minions_per_phase)
            ctx.events.append({
                'type': 'boss_phase', 'entity': entity_id,
                'threshold': threshold, 'minions': spawned,
            })

    if hp_percent <= phases.enrage_threshold and not phases.is_enraged:
        phases.is_enraged = True
        stats.base_speed = math.floor(stats.base_speed * 1.2)
        stats.speed = stats.base_speed
        ctx.events.append({'type': 'boss_enraged', 'entity': entity_id})

    return True


def _summon_minions(ctx: AIContext, pos: Position, count: int) -> List[int]:
    spawned = []
    if ctx.game_map is None:
        return spawned
    for _ in range(count):
        angle = random.random() * math.pi * 2
        dist = 80 + random.random() * 40
        x = pos.x + math.cos(angle) * dist
        y = pos.y + math.sin(angle) * dist
        if ctx.game_map.check_collision(x, y, SPAWN_PROBE_SIZE):
            continue

        minion_type = EnemyType.CHASER if random.random() < 0.5 else EnemyType.SHOOTER
        minion_id = create_enemy(ctx.world, x, y, minion_type)
        health = ctx.world.get_component(minion_id, Health)
        stats = ctx.world.get_component(minion_id, EnemyStats)
        health.current = math.floor(health.current * wave_hp_multiplier(ctx.wave))
        health.maximum = health.current
        stats.damage = math.floor(stats.damage * wave_damage_multiplier(ctx.wave))
        spawned.append(minion_id)
    return spawned


# =============================================================================
# HEALER
# =============================================================================

def _healer_behavior(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> bool:
    """Keep some distance and top up wounded allies every interval."""
    aura = ctx.world.get_component(entity_id, HealAura)
    aura.timer += ctx.dt
    if aura.timer >= aura.interval:
        aura.timer = 0
        for other_id, other_pos, other_health, _ in ctx.world.query(Position, Health, EnemyTag):
            if other_id == entity_id or other_health.current >= other_health.maximum:
                continue
            if get_distance(pos, other_pos) < aura.radius:
                other_health.current = min(other_health.maximum, other_health.current + aura.rate)
    return dist >= aura.hold_distance


# =============================================================================
# SPLITTER (pursuit only; splits when the dead-enemy sweep removes it)
# =============================================================================

def split_enemy(world: World, game_map: Optional[GameMap], entity_id: int) -> List[int]:
    """Spawn weakened SWARM children around a dead splitter."""
    splitter = world.get_component(entity_id, Splitter)
    if splitter is None or not splitter.can_split:
        return []

    pos = world.get_component(entity_id, Position)
    health = world.get_component(entity_id, Health)
    stats = world.get_component(entity_id, EnemyStats)

    children = []
    for _ in range(splitter.children):
        angle = random.random() * math.pi * 2
        dist = 40 + random.random() * 20
        x = pos.x + math.cos(angle) * dist
        y = pos.y + math.sin(angle) * dist
        if game_map is not None and game_map.check_collision(x, y, 10):
            continue

        child_id = create_enemy(world, x, y, EnemyType.SWARM)
        child_health = world.get_component(child_id, Health)
        child_stats = world.get_component(child_id, EnemyStats)
        child_health.current = math.floor(health.maximum * 0.3)
        child_health.maximum = child_health.current
        child_stats.damage = math.floor(stats.damage * 0.5)
        child_stats.xp_value = math.floor(stats.xp_value * 0.2)
        children.append(child_id)
    return children


# =============================================================================
# TELEPORTER
# =============================================================================

def _teleporter_behavior(ctx: AIContext, entity_id: int, pos: Position, dist: float) -> bool:
    """Blink 200-300 units toward the player when off cooldown."""
    tele = ctx.world.get_component(entity_id, Teleporter)
    tele.timer -= ctx.dt
    if tele.flash > 0:
        tele.flash -= ctx.dt

    if tele.timer <= 0 and dist > tele.min_distance:
        tele.timer = tele.cooldown
        jump = 200 + random.random() * 100
        angle = math.atan2(ctx.player_pos.y - pos.y, ctx.player_pos.x - pos.x)
        new_x = pos.x + math.cos(angle) * jump
        new_y = pos.y + math.sin(angle) * jump
        size = ctx.world.get_component(entity_id, CollisionBox).size
        if ctx.game_map is not None and not ctx.game_map.check_collision(new_x, new_y, size):
            pos.x = new_x
            pos.y = new_y
            tele.flash = 0.3
    return True


# =============================================================================
# ARCHETYPE TABLE & DISPATCH
# =============================================================================

ARCHETYPES: Dict[EnemyType, Archetype] = {
    EnemyType.CHASER: Archetype(30, 100, 10, 10, 24, 'c', NEON_RED),
    EnemyType.SHOOTER: Archetype(20, 80, 10, 15, 24, 's', NEON_ORANGE),
    EnemyType.TANK: Archetype(80, 50, 20, 25, 30, 'T', NEON_PURPLE),
    EnemyType.BOSS: Archetype(500, 60, 25, 500, 50, 'B', NEON_MAGENTA),
    EnemyType.SWARM: Archetype(15, 150, 8, 8, 10, ',', NEON_YELLOW),
    EnemyType.HEALER: Archetype(40, 60, 5, 30, 24, '+', NEON_GREEN),
    EnemyType.SPLITTER: Archetype(35, 90, 10, 20, 24, '%', NEON_PINK),
    EnemyType.TELEPORTER: Archetype(25, 100, 10, 18, 24, '?', NEON_CYAN),
}

Behavior = Callable[[AIContext, int, Position, float], bool]

BEHAVIORS: Dict[EnemyType, Behavior] = {
    EnemyType.CHASER: _pursue,
    EnemyType.SHOOTER: _shooter_behavior,
    EnemyType.TANK: _pursue,
    EnemyType.BOSS: _boss_behavior,
    EnemyType.SWARM: _pursue,
    EnemyType.HEALER: _healer_behavior,
    EnemyType.SPLITTER: _pursue,
    EnemyType.TELEPORTER: _teleporter_behavior,
}

_missing = set(EnemyType) - set(ARCHETYPES) | set(EnemyType) - set(BEHAVIORS)
if _missing:
    raise RuntimeError(f"Enemy types without stats or behaviour: {sorted(t.name for t in _missing)}")


def create_enemy(world: World, x: float, y: float, enemy_type: EnemyType) -> int:
    """Create an unscaled enemy of the given archetype."""
    arch = ARCHETYPES[enemy_type]
    entity_id = world.create_entity()

    world.add_component(entity_id, Position(x, y))
    world.add_component(entity_id, CollisionBox(arch.size))
    world.add_component(entity_id, Renderable(char=arch.char, color=arch.color, layer=2))
    world.add_component(entity_id, Health(current=arch.hp, maximum=arch.hp))
    world.add_component(entity_id, EnemyTag(enemy_type))
    world.add_component(entity_id, EnemyStats(
        speed=arch.speed, base_speed=arch.speed,
        damage=arch.damage, xp_value=arch.xp_value,
    ))
    world.add_component(entity_id, JumpState())

    if enemy_type == EnemyType.SHOOTER:
        world.add_component(entity_id, RangedAttack(cooldown=2.5, timer=2.0, hold_range=300.0))
    elif enemy_type == EnemyType.BOSS:
        world.add_component(entity_id, RangedAttack(cooldown=1.5, timer=1.5, hold_range=None))
        world.add_component(entity_id, BossPhases())
    elif enemy_type == EnemyType.HEALER:
        world.add_component(entity_id, HealAura())
    elif enemy_type == EnemyType.SPLITTER:
        world.add_component(entity_id, Splitter())
    elif enemy_type == EnemyType.TELEPORTER:
        world.add_component(entity_id, Teleporter())

    return entity_id


def scale_enemy(world: World, entity_id: int, wave: int, boss_multiplier: float = 1.0,
                modifier_hp: Optional[float] = None,
                modifier_speed: Optional[float] = None) -> None:
    """
    Apply the wave curve to a freshly created enemy.

    boss_multiplier stacks on the HP curve during boss waves. A wave
    modifier, when active, multiplies HP and speed again afterwards.
    """
    health = world.get_component(entity_id, Health)
    stats = world.get_component(entity_id, EnemyStats)

    hp = math.floor(health.current * wave_hp_multiplier(wave) * boss_multiplier)
    stats.damage = math.floor(stats.damage * wave_damage_multiplier(wave))
    if modifier_hp is not None:
        hp = math.floor(hp * modifier_hp)
    if modifier_speed is not None:
        stats.speed = math.floor(stats.speed * modifier_speed)
        stats.base_speed = stats.speed
    stats.xp_value = math.floor(stats.xp_value * wave_xp_multiplier(wave))
    health.current = hp
    health.maximum = hp


def apply_slow(world: World, entity_id: int, duration: float) -> None:
    stats = world.get_component(entity_id, EnemyStats)
    if stats is not None:
        stats.slow_timer = duration


# =============================================================================
# AI SYSTEM
# =============================================================================

def enemy_ai_system(world: World, player_pos: Optional[Position], game_map: Optional[GameMap],
                    dt: float, wave: int = 1) -> List[dict]:
    """Run one frame of behaviour and movement for every enemy."""
    events = []
    if player_pos is None:
        return events

    ctx = AIContext(world, game_map, player_pos, wave, dt, events)

    for entity_id, pos, tag, stats, jump, box in world.query(
            Position, EnemyTag, EnemyStats, JumpState, CollisionBox):
        stats.speed = stats.base_speed
        if stats.slow_timer > 0:
            stats.slow_timer -= dt
            stats.speed *= SLOW_FACTOR

        dist = get_distance(pos, player_pos)
        ux, uy = get_direction_to(pos, player_pos)

        should_move = BEHAVIORS[tag.enemy_type](ctx, entity_id, pos, dist)

        if should_move and dist > 0:
            next_x = pos.x + ux * stats.speed * dt
            next_y = pos.y + uy * stats.speed * dt

            if game_map is not None and not jump.is_jumping:
                if game_map.check_collision(next_x, next_y, box.size):
                    jump.is_jumping = True
                    jump.vz = JUMP_VELOCITY
                    jump.z = 1

            pos.x = next_x
            pos.y = next_y

            if game_map is not None and jump.z <= 0:
                game_map.resolve_collision(pos, box.size)

        if jump.is_jumping:
            jump.z += jump.vz * dt
            jump.vz -= GRAVITY * dt
            if jump.z <= 0:
                jump.z = 0
                jump.vz = 0
                jump.is_jumping = False

        stats.speed = stats.base_speed

    return events
