"""
Shared Systems
===============
Geometry helpers used by every system, and the render system that
draws a read-only view of the arena.
"""

import math
from typing import Dict, Optional, Tuple

from .ecs import World
from .components import (
    Position, CollisionBox, Renderable, Health, Invulnerable, JumpState,
    Projectile, Explosion, Particle, FireAura, Orbitals, PlayerTag,
    EnemyTag, Teleporter, EnemyStats,
)
from .engine import GameRenderer, NEON_ORANGE, ICE_BLUE, NEON_PURPLE, WHITE
from .game_map import GameMap


# =============================================================================
# COLLISION UTILITIES
# =============================================================================

def collides(pos1: Position, size1: float, pos2: Position, size2: float) -> bool:
    """Strict AABB overlap between two squares centred on their positions."""
    half1 = size1 / 2
    half2 = size2 / 2
    return (
        pos1.x - half1 < pos2.x + half2 and
        pos1.x + half1 > pos2.x - half2 and
        pos1.y - half1 < pos2.y + half2 and
        pos1.y + half1 > pos2.y - half2
    )


def entities_collide(world: World, a: int, b: int) -> bool:
    """AABB test between two entities that both have Position and CollisionBox."""
    pos_a = world.get_component(a, Position)
    pos_b = world.get_component(b, Position)
    box_a = world.get_component(a, CollisionBox)
    box_b = world.get_component(b, CollisionBox)
    if not (pos_a and pos_b and box_a and box_b):
        return False
    return collides(pos_a, box_a.size, pos_b, box_b.size)


def get_direction_to(from_pos: Position, to_pos: Position) -> Tuple[float, float]:
    """Get normalized direction vector between two positions."""
    dx = to_pos.x - from_pos.x
    dy = to_pos.y - from_pos.y
    dist = math.sqrt(dx * dx + dy * dy)
    if dist > 0:
        return dx / dist, dy / dist
    return 0.0, 0.0


def get_distance(pos1: Position, pos2: Position) -> float:
    """Get Euclidean distance between two positions."""
    dx = pos2.x - pos1.x
    dy = pos2.y - pos1.y
    return math.sqrt(dx * dx + dy * dy)


def is_airborne(world: World, entity_id: int) -> bool:
    jump = world.get_component(entity_id, JumpState)
    return jump is not None and jump.is_jumping


# =============================================================================
# RENDERING
# =============================================================================

def render_system(world: World, renderer: GameRenderer, game_map: Optional[GameMap],
                  colors: Dict[str, int]) -> None:
    """Draw walls, then entities by layer, then visual-only effects."""
    view_w, view_h = renderer.view_size
    left, top = renderer.camera_x, renderer.camera_y

    if game_map is not None:
        for wall in game_map.walls:
            if (wall.x > left + view_w or wall.x + wall.w < left or
                    wall.y > top + view_h or wall.y + wall.h < top):
                continue
            renderer.fill_world_rect(wall.x, wall.y, wall.w, wall.h, '#',
                                     colors.get('wallTop', WHITE), colors.get('wall'))

    drawables = []
    for entity_id, pos, rend in world.query(Position, Renderable):
        if rend.visible:
            drawables.append((rend.layer, entity_id, pos, rend))
    drawables.sort(key=lambda item: (item[0], item[1]))

    for _, entity_id, pos, rend in drawables:
        if world.has_component(entity_id, Explosion):
            explosion = world.get_component(entity_id, Explosion)
            renderer.ring_world(pos.x, pos.y, explosion.size, explosion.color)
            continue

        char = rend.char
        color = rend.color

        if world.has_component(entity_id, PlayerTag):
            invuln = world.get_component(entity_id, Invulnerable)
            if invuln and invuln.flashing:
                continue
            _render_player_abilities(world, renderer, entity_id, pos)

        elif world.has_component(entity_id, EnemyTag):
            if is_airborne(world, entity_id):
                char = '^'
            stats = world.get_component(entity_id, EnemyStats)
            if stats and stats.slow_timer > 0:
                color = ICE_BLUE
            teleporter = world.get_component(entity_id, Teleporter)
            if teleporter and teleporter.flash > 0:
                color = WHITE

        elif world.has_component(entity_id, Projectile):
            proj = world.get_component(entity_id, Projectile)
            if proj.is_frost:
                color = ICE_BLUE
            elif proj.is_explosive:
                color = NEON_ORANGE

        elif world.has_component(entity_id, Particle):
            renderer.dot_world(pos.x, pos.y, color)
            continue

        renderer.put_world(pos.x, pos.y, char, color)


def _render_player_abilities(world: World, renderer: GameRenderer, player_id: int,
                             pos: Position) -> None:
    aura = world.get_component(player_id, FireAura)
    if aura and aura.active:
        renderer.ring_world(pos.x, pos.y, aura.range, NEON_ORANGE)

    orbitals = world.get_component(player_id, Orbitals)
    if orbitals and orbitals.count > 0:
        step = math.pi * 2 / orbitals.count
        for i in range(orbitals.count):
            angle = orbitals.angle + i * step
            renderer.put_world(
                pos.x + math.cos(angle) * orbitals.radius,
                pos.y + math.sin(angle) * orbitals.radius,
                'o', NEON_PURPLE,
            )


def health_ratio(world: World, entity_id: int) -> float:
    health = world.get_component(entity_id, Health)
    if health is None or health.maximum <= 0:
        return 0.0
    return max(0.0, health.current / health.maximum)
