"""
Collision & Death Resolution
=============================
The cross-cutting per-frame passes that are not owned by any single
entity: player-vs-enemy contact and the dead-enemy sweep.
Projectile hits are resolved in projectiles.projectile_system.
"""

import math
from typing import List, Optional

from .ecs import World
from .components import (
    Position, Health, EnemyTag, EnemyStats, PlayerStats, EnemyType,
)
from .enemies import split_enemy
from .game_map import GameMap
from .particles import spawn_kill_effect
from .player import damage_player
from .systems import entities_collide, is_airborne


SLOWED_CONTACT_FACTOR = 0.7


def contact_damage_system(world: World, player_id: Optional[int], dt: float) -> List[dict]:
    """
    Enemies touching the player deal contact damage.

    Airborne enemies are skipped, frost-slowed ones hit 30% softer, and
    thorns hurt every enemy in contact whether or not the hit landed.
    """
    events = []
    if player_id is None:
        return events
    stats = world.get_component(player_id, PlayerStats)

    for entity_id, health, enemy_stats in world.query(Health, EnemyStats):
        if is_airborne(world, entity_id) or not entities_collide(world, entity_id, player_id):
            continue

        factor = SLOWED_CONTACT_FACTOR if enemy_stats.slow_timer > 0 else 1.0
        amount = enemy_stats.damage * factor
        if damage_player(world, player_id, amount):
            events.append({'type': 'player_hit', 'damage': amount, 'source': entity_id})

        if stats is not None and stats.thorns_damage > 0:
            health.current -= stats.thorns_damage * dt

    return events


def death_system(world: World, game_map: Optional[GameMap], gold_multiplier: float = 1.0,
                 kill_effect: str = 'default') -> List[dict]:
    """
    Sweep enemies at or below 0 HP, newest first.

    Each kill is worth floor(xp * gold_multiplier) gold; splitters break
    apart and every kill leaves a visual burst. Returns one
    'enemy_killed' event per removed enemy.
    """
    events = []
    dead = [
        (entity_id, tag.enemy_type)
        for entity_id, health, tag in world.query(Health, EnemyTag)
        if health.current <= 0
    ]

    for entity_id, enemy_type in reversed(dead):
        pos = world.get_component(entity_id, Position)
        stats = world.get_component(entity_id, EnemyStats)
        xp_value = stats.xp_value or 1
        gold = math.floor(xp_value * gold_multiplier)

        children = []
        if enemy_type == EnemyType.SPLITTER:
            children = split_enemy(world, game_map, entity_id)

        spawn_kill_effect(world, pos.x, pos.y, kill_effect)

        events.append({
            'type': 'enemy_killed', 'entity': entity_id, 'enemy_type': enemy_type,
            'x': pos.x, 'y': pos.y, 'gold': gold, 'xp': xp_value,
            'children': children,
        })
        world.destroy_entity(entity_id)

    return events
