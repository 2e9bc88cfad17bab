"""
Permanent Upgrades
===================
Gold-bought upgrades that persist between runs, and the run-start step
that folds them (plus equipped stat gems) into a fresh player.
"""

import math
from typing import Dict, Iterable, Optional

from .ecs import World
from .components import PlayerStats, Health
from .player import update_fire_rate


def _upgrade(category, name, rarity, base_cost, scale, stat, val, desc):
    return {
        'category': category, 'name': name, 'rarity': rarity,
        'base_cost': base_cost, 'scale': scale, 'stat': stat, 'val': val, 'desc': desc,
    }


PERM_UPGRADES = {
    # --- Offense ---
    'dmg_c': _upgrade('OFFENSE', 'Iron Bullets', 'COMMON', 100, 1.5, 'damage', 2, '+2 Damage'),
    'dmg_r': _upgrade('OFFENSE', 'Steel Slugs', 'RARE', 500, 1.6, 'damage', 5, '+5 Damage'),
    'dmg_e': _upgrade('OFFENSE', 'Plasma Cores', 'EPIC', 2500, 1.7, 'damage', 15, '+15 Damage'),
    'dmg_l': _upgrade('OFFENSE', 'God Killers', 'LEGENDARY', 10000, 2.0, 'damage', 40, '+40 Damage'),
    'spd_c': _upgrade('OFFENSE', 'Greased Trigger', 'COMMON', 150, 1.5, 'fireRate', 0.02, '+2% Atk Speed'),
    'spd_r': _upgrade('OFFENSE', 'Recoil Dampener', 'RARE', 600, 1.6, 'fireRate', 0.05, '+5% Atk Speed'),
    'spd_e': _upgrade('OFFENSE', 'Auto-Loader', 'EPIC', 3000, 1.7, 'fireRate', 0.12, '+12% Atk Speed'),
    'spd_l': _upgrade('OFFENSE', 'Minigun Motor', 'LEGENDARY', 15000, 2.0, 'fireRate', 0.30, '+30% Atk Speed'),
    # --- Defense ---
    'hp_c': _upgrade('DEFENSE', 'Thick Skin', 'COMMON', 100, 1.5, 'maxHp', 10, '+10 HP'),
    'hp_r': _upgrade('DEFENSE', 'Mesh Armor', 'RARE', 500, 1.6, 'maxHp', 30, '+30 HP'),
    'hp_e': _upgrade('DEFENSE', 'Forcefield', 'EPIC', 2000, 1.7, 'maxHp', 80, '+80 HP'),
    'hp_l': _upgrade('DEFENSE', 'Titan Soul', 'LEGENDARY', 10000, 2.0, 'maxHp', 250, '+250 HP'),
    'reg_c': _upgrade('DEFENSE', 'Bandages', 'COMMON', 300, 1.5, 'regen', 0.2, '+0.2 HP/s'),
    'reg_r': _upgrade('DEFENSE', 'Bio-Gel', 'RARE', 1200, 1.6, 'regen', 0.5, '+0.5 HP/s'),
    'reg_e': _upgrade('DEFENSE', 'Nanobots', 'EPIC', 5000, 1.7, 'regen', 1.5, '+1.5 HP/s'),
    'reg_l': _upgrade('DEFENSE', 'Phoenix Blood', 'LEGENDARY', 25000, 2.0, 'regen', 5.0, '+5.0 HP/s'),
    # --- Utility ---
    'mov_c': _upgrade('UTILITY', 'Light Shoes', 'COMMON', 150, 1.5, 'speed', 5, '+5 Speed'),
    'mov_r': _upgrade('UTILITY', 'Jet Boots', 'RARE', 800, 1.6, 'speed', 15, '+15 Speed'),
    'mov_e': _upgrade('UTILITY', 'Teleport Module', 'EPIC', 3500, 1.7, 'speed', 40, '+40 Speed'),
    'mov_l': _upgrade('UTILITY', 'Time Warp', 'LEGENDARY', 15000, 2.0, 'speed', 100, '+100 Speed'),
    'gold_c': _upgrade('UTILITY', 'Pocket Change', 'COMMON', 200, 1.5, 'gold', 0.05, '+5% Gold'),
    'gold_r': _upgrade('UTILITY', 'Investment', 'RARE', 1000, 1.6, 'gold', 0.15, '+15% Gold'),
    'gold_e': _upgrade('UTILITY', 'Midas Touch', 'EPIC', 4000, 1.7, 'gold', 0.35, '+35% Gold'),
    'gold_l': _upgrade('UTILITY', 'Banker', 'LEGENDARY', 20000, 2.0, 'gold', 1.00, '+100% Gold'),
}

# Upgrade stat -> PlayerStats field it adds to ('maxHp' goes to Health)
STAT_FIELDS = {
    'damage': 'damage',
    'fireRate': 'fire_rate_bonus',
    'regen': 'regen_rate',
    'speed': 'speed',
    'gold': 'gold_multiplier',
}


def upgrade_cost(upgrade_id: str, level: int) -> int:
    """Price of the next level when `level` levels are already owned."""
    data = PERM_UPGRADES[upgrade_id]
    return math.floor(data['base_cost'] * math.pow(data['scale'], level))


def purchase_upgrade(profile, upgrade_id: str) -> dict:
    """Buy the next level of a permanent upgrade with profile gold."""
    if upgrade_id not in PERM_UPGRADES:
        return {'success': False, 'error': 'Unknown upgrade'}
    level = profile.data['upgrades'].get(upgrade_id, 0)
    cost = upgrade_cost(upgrade_id, level)
    if not profile.buy_upgrade(upgrade_id, cost):
        return {'success': False, 'error': f'Not enough gold. Need {cost} gold.'}
    return {'success': True, 'cost': cost, 'level': level + 1}


def apply_permanent_upgrades(world: World, player_id: int, levels: Dict[str, int]) -> None:
    """Add `val * level` of every owned upgrade to the player."""
    stats = world.get_component(player_id, PlayerStats)
    health = world.get_component(player_id, Health)
    for upgrade_id, level in levels.items():
        data = PERM_UPGRADES.get(upgrade_id)
        if data is None or level <= 0:
            continue
        bonus = data['val'] * level
        if data['stat'] == 'maxHp':
            health.maximum += bonus
        else:
            field_name = STAT_FIELDS[data['stat']]
            setattr(stats, field_name, getattr(stats, field_name) + bonus)


def apply_stat_gems(world: World, player_id: int, gems: Iterable[Optional[dict]]) -> None:
    """Equipped gems: damage and speed are percentages, HP and crit are flat."""
    stats = world.get_component(player_id, PlayerStats)
    health = world.get_component(player_id, Health)
    for gem in gems:
        if not gem or not gem.get('stats'):
            continue
        gem_stats = gem['stats']
        if gem_stats.get('damage'):
            stats.damage *= 1 + gem_stats['damage'] / 100
        if gem_stats.get('speed'):
            stats.speed *= 1 + gem_stats['speed'] / 100
        if gem_stats.get('maxHp'):
            health.maximum += gem_stats['maxHp']
        if gem_stats.get('critChance'):
            stats.crit_chance += gem_stats['critChance']


def prepare_player(world: World, player_id: int, levels: Dict[str, int],
                   gems: Iterable[Optional[dict]]) -> None:
    """Run-start setup: upgrades, then gems, then fire rate and a full heal."""
    apply_permanent_upgrades(world, player_id, levels)
    apply_stat_gems(world, player_id, gems)
    update_fire_rate(world.get_component(player_id, PlayerStats))
    health = world.get_component(player_id, Health)
    health.current = health.maximum
