"""
Projectile System
==================
Straight-line bullets. Player bullets hit enemies and may ricochet off
walls; enemy bullets hit the player and die on walls.
"""

import math
from typing import List, Optional

from .ecs import World
from .components import (
    Position, Velocity, CollisionBox, Renderable, Lifetime, Projectile,
    EnemyTag, Health,
)
from .engine import NEON_YELLOW, NEON_ORANGE, NEON_RED, ICE_BLUE
from .game_map import GameMap, Wall
from .systems import entities_collide, get_distance, is_airborne


PROJECTILE_SIZE = 8
PLAYER_PROJECTILE_SPEED = 600.0
ENEMY_PROJECTILE_SPEED = 300.0
PROJECTILE_LIFETIME = 2.0
WALL_PROBE_SIZE = 4  # Walls are tested with a smaller box than the hitbox
BOUNCE_HALF_SIZE = 4

EXPLOSION_RADIUS = 150.0
EXPLOSION_DAMAGE_RATIO = 0.8
FROST_SLOW_DURATION = 2.0


def spawn_projectile(world: World, x: float, y: float, target_x: float, target_y: float,
                     damage: float = 10, is_frost: bool = False, is_explosive: bool = False,
                     is_enemy: bool = False, ricochet_count: int = 0) -> int:
    """Create a bullet flying from (x, y) toward the target point."""
    speed = ENEMY_PROJECTILE_SPEED if is_enemy else PLAYER_PROJECTILE_SPEED

    dx = target_x - x
    dy = target_y - y
    dist = math.sqrt(dx * dx + dy * dy)
    if dist > 0:
        vx = dx / dist * speed
        vy = dy / dist * speed
    else:
        vx = speed
        vy = 0.0

    if is_enemy:
        char, color = '*', NEON_ORANGE
    elif is_explosive:
        char, color = '.', NEON_RED
    elif is_frost:
        char, color = '.', ICE_BLUE
    else:
        char, color = '.', NEON_YELLOW

    entity_id = world.create_entity()
    world.add_component(entity_id, Position(x, y))
    world.add_component(entity_id, Velocity(vx, vy))
    world.add_component(entity_id, CollisionBox(PROJECTILE_SIZE))
    world.add_component(entity_id, Renderable(char=char, color=color, layer=3))
    world.add_component(entity_id, Lifetime(PROJECTILE_LIFETIME))
    world.add_component(entity_id, Projectile(
        damage=damage if damage else 10,
        is_enemy=is_enemy,
        is_frost=is_frost,
        is_explosive=is_explosive,
        ricochet_count=ricochet_count,
    ))
    return entity_id


def bounce_projectile(pos: Position, vel: Velocity, proj: Projectile, wall: Wall) -> bool:
    """
    Reflect off a wall, spending one ricochet.

    Only the velocity component of the least-penetrated axis is negated,
    and the bullet is pushed back out along that axis. Returns False when
    no ricochets are left.
    """
    if proj.ricochet_count <= 0:
        return False

    proj.ricochet_count -= 1

    overlap_left = (pos.x + BOUNCE_HALF_SIZE) - wall.x
    overlap_right = (wall.x + wall.w) - (pos.x - BOUNCE_HALF_SIZE)
    overlap_top = (pos.y + BOUNCE_HALF_SIZE) - wall.y
    overlap_bottom = (wall.y + wall.h) - (pos.y - BOUNCE_HALF_SIZE)
    smallest = min(overlap_left, overlap_right, overlap_top, overlap_bottom)

    if smallest == overlap_left or smallest == overlap_right:
        vel.x = -vel.x
        if smallest == overlap_left:
            pos.x -= overlap_left
        else:
            pos.x += overlap_right
    else:
        vel.y = -vel.y
        if smallest == overlap_top:
            pos.y -= overlap_top
        else:
            pos.y += overlap_bottom

    return True


def projectile_system(world: World, game_map: Optional[GameMap], player_id: Optional[int],
                      dt: float) -> List[dict]:
    """
    Move every bullet, then resolve it against its targets and walls.

    A bullet that expired or already hit something this frame is still
    resolved for the rest of the frame; it is removed with the other dead
    entities afterwards.

    Returns event dicts ('player_hit', 'enemy_hit', 'explosion').
    """
    from .player import damage_player, on_kill
    from .enemies import apply_slow
    from .particles import spawn_explosion

    events = []
    enemies = [eid for eid, _ in world.query(EnemyTag)]

    for entity_id, pos, vel, proj, lifetime in world.query(Position, Velocity, Projectile, Lifetime):
        pos.x += vel.x * dt
        pos.y += vel.y * dt
        lifetime.seconds -= dt
        if lifetime.seconds <= 0:
            world.destroy_entity(entity_id)

        if proj.is_enemy:
            if player_id is not None and entities_collide(world, entity_id, player_id):
                if damage_player(world, player_id, proj.damage):
                    events.append({'type': 'player_hit', 'damage': proj.damage})
                world.destroy_entity(entity_id)
            if game_map is not None and game_map.check_collision(pos.x, pos.y, WALL_PROBE_SIZE):
                world.destroy_entity(entity_id)
            continue

        for enemy_id in enemies:
            if is_airborne(world, enemy_id) or not entities_collide(world, entity_id, enemy_id):
                continue
            health = world.get_component(enemy_id, Health)
            health.current -= proj.damage
            events.append({'type': 'enemy_hit', 'entity': enemy_id, 'damage': proj.damage})

            if proj.is_frost:
                apply_slow(world, enemy_id, FROST_SLOW_DURATION)
            if proj.is_explosive:
                with world.staged():
                    spawn_explosion(world, pos.x, pos.y)
                events.append({'type': 'explosion', 'x': pos.x, 'y': pos.y})
                _apply_splash(world, enemies, pos, proj.damage * EXPLOSION_DAMAGE_RATIO)

            world.destroy_entity(entity_id)

            if health.current <= 0 and player_id is not None:
                on_kill(world, player_id)

        if game_map is not None:
            wall = game_map.check_collision(pos.x, pos.y, WALL_PROBE_SIZE)
            if wall is not None and not bounce_projectile(pos, vel, proj, wall):
                world.destroy_entity(entity_id)

    return events


def _apply_splash(world: World, enemies: List[int], center: Position, damage: float) -> None:
    """Flat damage to every enemy within the blast radius, airborne or not."""
    for enemy_id in enemies:
        enemy_pos = world.get_component(enemy_id, Position)
        if enemy_pos is not None and get_distance(center, enemy_pos) < EXPLOSION_RADIUS:
            world.get_component(enemy_id, Health).current -= damage

