"""
Player Entity & Input
======================
Player creation, input handling with key-hold simulation, and the
per-frame player update: i-frames, regen, movement, auto-fire, fire
aura and orbitals.
"""

import math
import random
from typing import List, Optional, Tuple

from .ecs import World
from .components import (
    Position, CollisionBox, Renderable, Health, Invulnerable, PlayerStats,
    FireAura, Orbitals, PlayerTag, EnemyTag,
)
from .engine import NEON_GREEN
from .game_map import GameMap
from .projectiles import spawn_projectile
from .systems import get_distance


PLAYER_SIZE = 28
INVULNERABILITY_TIME = 1.0
MIN_FIRE_RATE = 0.05
CRIT_MULTIPLIER = 2.0
MULTISHOT_SPACING = 12
AIM_LEAD = 100  # Parallel shots aim this far ahead of their own spawn point


def create_player(world: World, x: float, y: float) -> int:
    """Create the player entity with base stats."""
    entity_id = world.create_entity()

    world.add_component(entity_id, Position(x, y))
    world.add_component(entity_id, CollisionBox(PLAYER_SIZE))
    world.add_component(entity_id, Renderable(char='@', color=NEON_GREEN, layer=10))
    world.add_component(entity_id, Health(current=100, maximum=100))
    world.add_component(entity_id, Invulnerable())
    world.add_component(entity_id, PlayerStats())
    world.add_component(entity_id, FireAura())
    world.add_component(entity_id, Orbitals())
    world.add_component(entity_id, PlayerTag())

    return entity_id


class InputHandler:
    """
    Handles player input with key hold detection.

    Terminals don't report key-up events, so a movement key counts as
    held for `hold_duration` seconds after its last press or repeat.
    """

    MOVE_KEYS = {
        'w': 'up', 'a': 'left', 's': 'down', 'd': 'right',
        'KEY_UP': 'up', 'KEY_LEFT': 'left', 'KEY_DOWN': 'down', 'KEY_RIGHT': 'right',
    }

    def __init__(self, hold_duration: float = 0.2):
        self.keys_held: dict = {}  # direction -> seconds remaining
        self.hold_duration = hold_duration

        # Actions triggered this frame (consumed on read)
        self._quit_triggered = False
        self._pause_triggered = False
        self._toggle_fps = False

    def process_key(self, key) -> None:
        """Process a single key press from blessed's inkey()."""
        if key is None or not key:
            return

        key_str = key.lower() if not key.is_sequence else ''

        if key_str == 'q' or key.name == 'KEY_ESCAPE':
            self._quit_triggered = True
            return

        direction = self.MOVE_KEYS.get(key.name) or self.MOVE_KEYS.get(key_str)
        if direction:
            self.keys_held[direction] = self.hold_duration
        elif key_str == 'p':
            self._pause_triggered = True
        elif key_str == 'f':
            self._toggle_fps = True

    def update(self, dt: float) -> None:
        """Update key hold timers."""
        for direction in list(self.keys_held):
            self.keys_held[direction] -= dt
            if self.keys_held[direction] <= 0:
                del self.keys_held[direction]

    def release_all(self) -> None:
        self.keys_held.clear()

    def get_axis(self) -> Tuple[float, float]:
        """Current movement direction, normalised on diagonals."""
        dx, dy = 0.0, 0.0
        if 'up' in self.keys_held:
            dy -= 1
        if 'down' in self.keys_held:
            dy += 1
        if 'left' in self.keys_held:
            dx -= 1
        if 'right' in self.keys_held:
            dx += 1

        if dx != 0 and dy != 0:
            length = math.sqrt(dx * dx + dy * dy)
            dx /= length
            dy /= length

        return dx, dy

    def consume_quit(self) -> bool:
        triggered = self._quit_triggered
        self._quit_triggered = False
        return triggered

    def consume_pause(self) -> bool:
        triggered = self._pause_triggered
        self._pause_triggered = False
        return triggered

    def consume_toggle_fps(self) -> bool:
        triggered = self._toggle_fps
        self._toggle_fps = False
        return triggered


# =============================================================================
# STATS & DAMAGE
# =============================================================================

def update_fire_rate(stats: PlayerStats) -> None:
    """Additive bonus with diminishing returns, floored at 20 shots/sec."""
    stats.fire_rate = max(MIN_FIRE_RATE, stats.base_fire_rate / (1 + stats.fire_rate_bonus))


def damage_player(world: World, player_id: int, amount: float) -> bool:
    """
    Apply damage unless the player is in i-frames.

    HP is not clamped at zero. Returns True if the damage landed.
    """
    invuln = world.get_component(player_id, Invulnerable)
    health = world.get_component(player_id, Health)
    if health is None:
        return False
    if invuln is not None and invuln.time_remaining > 0:
        return False

    health.current -= amount
    if invuln is not None:
        invuln.time_remaining = INVULNERABILITY_TIME
    return True


def on_kill(world: World, player_id: int) -> None:
    """Lifesteal: a chance to recover 1 HP per kill."""
    stats = world.get_component(player_id, PlayerStats)
    health = world.get_component(player_id, Health)
    if stats is None or health is None:
        return
    if stats.lifesteal_chance > 0 and random.random() < stats.lifesteal_chance:
        health.current = min(health.current + 1, health.maximum)


# =============================================================================
# TARGETING & FIRING
# =============================================================================

def find_nearest_enemy(world: World, origin: Position, max_range: float) -> Optional[int]:
    """Closest enemy strictly inside max_range; earlier spawns win ties."""
    nearest = None
    min_dist = max_range
    for entity_id, pos, _ in world.query(Position, EnemyTag):
        dist = get_distance(origin, pos)
        if dist < min_dist:
            min_dist = dist
            nearest = entity_id
    return nearest


def shoot(world: World, player_id: int, target: Position) -> List[int]:
    """
    Fire a volley of `projectile_count` parallel bullets at the target.

    Bullets are fanned out perpendicular to the aim, 12 units apart, and
    all travel along the base aim direction. One crit roll covers the
    whole volley.
    """
    pos = world.get_component(player_id, Position)
    stats = world.get_component(player_id, PlayerStats)

    base_angle = math.atan2(target.y - pos.y, target.x - pos.x)
    count = stats.projectile_count

    damage = stats.damage
    if random.random() * 100 < stats.crit_chance:
        damage *= CRIT_MULTIPLIER

    bullets = []
    for i in range(count):
        offset = (i - (count - 1) / 2) * MULTISHOT_SPACING
        sx = pos.x + math.cos(base_angle + math.pi / 2) * offset
        sy = pos.y + math.sin(base_angle + math.pi / 2) * offset
        tx = sx + math.cos(base_angle) * AIM_LEAD
        ty = sy + math.sin(base_angle) * AIM_LEAD

        bullets.append(spawn_projectile(
            world, sx, sy, tx, ty, damage,
            is_frost=stats.has_frost_shot,
            is_explosive=stats.has_explosive_shots,
            ricochet_count=stats.ricochet_count,
        ))
    return bullets


# =============================================================================
# PER-FRAME UPDATE
# =============================================================================

def player_system(world: World, player_id: int, dt: float, axis: Tuple[float, float],
                  game_map: Optional[GameMap]) -> None:
    """Advance the player one frame."""
    pos = world.get_component(player_id, Position)
    box = world.get_component(player_id, CollisionBox)
    health = world.get_component(player_id, Health)
    stats = world.get_component(player_id, PlayerStats)
    invuln = world.get_component(player_id, Invulnerable)
    if pos is None or stats is None or health is None:
        return

    # I-frames
    if invuln.time_remaining > 0:
        invuln.time_remaining -= dt
        invuln.flashing = math.floor(invuln.time_remaining * 10) % 2 == 0
    else:
        invuln.flashing = False

    # Regen
    if stats.regen_rate > 0 and health.current < health.maximum:
        health.current = min(health.maximum, health.current + stats.regen_rate * dt)

    # Movement: X then Y, each resolved separately so the player slides along walls
    pos.x += axis[0] * stats.speed * dt
    if game_map is not None:
        game_map.resolve_collision(pos, box.size)
    pos.y += axis[1] * stats.speed * dt
    if game_map is not None:
        game_map.resolve_collision(pos, box.size)

    # Auto-fire
    stats.fire_timer -= dt
    if stats.fire_timer <= 0:
        target_id = find_nearest_enemy(world, pos, stats.range)
        if target_id is not None:
            shoot(world, player_id, world.get_component(target_id, Position))
            stats.fire_timer = stats.fire_rate

    _fire_aura_tick(world, player_id, pos, dt)
    _orbital_tick(world, player_id, pos, dt)


def _fire_aura_tick(world: World, player_id: int, pos: Position, dt: float) -> None:
    aura = world.get_component(player_id, FireAura)
    if aura is None or not aura.active:
        return
    aura.timer -= dt
    if aura.timer > 0:
        return
    aura.timer = aura.interval
    for _, enemy_pos, enemy_health, _ in world.query(Position, Health, EnemyTag):
        if get_distance(pos, enemy_pos) < aura.range:
            enemy_health.current -= aura.damage


def _orbital_tick(world: World, player_id: int, pos: Position, dt: float) -> None:
    orbitals = world.get_component(player_id, Orbitals)
    if orbitals is None or orbitals.count <= 0:
        return

    orbitals.angle += orbitals.spin_speed * dt
    step = math.pi * 2 / orbitals.count
    for i in range(orbitals.count):
        angle = orbitals.angle + i * step
        orb = Position(pos.x + math.cos(angle) * orbitals.radius,
                       pos.y + math.sin(angle) * orbitals.radius)
        for _, enemy_pos, enemy_health, _ in world.query(Position, Health, EnemyTag):
            if get_distance(orb, enemy_pos) < orbitals.hit_radius:
                enemy_health.current -= orbitals.damage * dt * 2


def get_player_entity(world: World) -> Optional[int]:
    """Find the player entity ID."""
    for entity_id, _ in world.query(PlayerTag):
        return entity_id
    return None
