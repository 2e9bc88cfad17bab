"""
In-Run Shop
============
Between waves the player picks one of three random upgrades. Each
entry names the PlayerStats field it changes and how; health, aura
and orbital upgrades touch other components and are special-cased.
"""

import random
from typing import List

from .ecs import World
from .components import PlayerStats, Health, FireAura, Orbitals
from .player import update_fire_rate


SHOP_OPTION_COUNT = 3

# op: 'add' adds value, 'mul' multiplies, 'set' assigns
SHOP_UPGRADES = {
    # --- Damage ---
    'dmg_common': {'name': 'Damage Boost', 'description': 'Increases damage by 5.',
                   'rarity': 'COMMON', 'stat': 'damage', 'op': 'add', 'value': 5},
    'dmg_rare': {'name': 'Heavy Rounds', 'description': 'Increases damage by 12.',
                 'rarity': 'RARE', 'stat': 'damage', 'op': 'add', 'value': 12},
    'dmg_epic': {'name': 'High Caliber', 'description': 'Increases damage by 25.',
                 'rarity': 'EPIC', 'stat': 'damage', 'op': 'add', 'value': 25},
    'dmg_legendary': {'name': 'God Slayer', 'description': 'Increases damage by 60.',
                      'rarity': 'LEGENDARY', 'stat': 'damage', 'op': 'add', 'value': 60},
    # --- Fire rate ---
    'rate_common': {'name': 'Gloves of Haste', 'description': 'Shoot 10% faster.',
                    'rarity': 'COMMON', 'stat': 'fire_rate_bonus', 'op': 'add', 'value': 0.10},
    'rate_rare': {'name': 'Rapid Fire', 'description': 'Shoot 20% faster.',
                  'rarity': 'RARE', 'stat': 'fire_rate_bonus', 'op': 'add', 'value': 0.20},
    'rate_epic': {'name': 'Machine Gun', 'description': 'Shoot 35% faster.',
                  'rarity': 'EPIC', 'stat': 'fire_rate_bonus', 'op': 'add', 'value': 0.35},
    'rate_legendary': {'name': 'Bullet Storm', 'description': 'Shoot 60% faster!',
                       'rarity': 'LEGENDARY', 'stat': 'fire_rate_bonus', 'op': 'add', 'value': 0.60},
    # --- Health (handled in apply_shop_upgrade) ---
    'hp_common': {'name': 'Healthy Snack', 'description': '+20 Max HP and Heal.',
                  'rarity': 'COMMON', 'stat': None, 'op': 'heal', 'value': 20},
    'hp_rare': {'name': 'Hearty Meal', 'description': '+50 Max HP and Heal.',
                'rarity': 'RARE', 'stat': None, 'op': 'heal', 'value': 50},
    'hp_epic': {'name': 'Life Elixir', 'description': '+100 Max HP and Full Heal.',
                'rarity': 'EPIC', 'stat': None, 'op': 'full_heal', 'value': 100},
    'hp_legendary': {'name': "Titan's Blood", 'description': '+250 Max HP and Full Heal.',
                     'rarity': 'LEGENDARY', 'stat': None, 'op': 'full_heal', 'value': 250},
    # --- Movement ---
    'speed_common': {'name': 'Light Boots', 'description': 'Move 5% faster.',
                     'rarity': 'COMMON', 'stat': 'speed', 'op': 'mul', 'value': 1.05},
    'speed_rare': {'name': 'Running Shoes', 'description': 'Move 12% faster.',
                   'rarity': 'RARE', 'stat': 'speed', 'op': 'mul', 'value': 1.12},
    'speed_epic': {'name': 'Turbo Engine', 'description': 'Move 25% faster.',
                   'rarity': 'EPIC', 'stat': 'speed', 'op': 'mul', 'value': 1.25},
    'speed_legendary': {'name': 'Teleport Step', 'description': 'Move 50% faster.',
                        'rarity': 'LEGENDARY', 'stat': 'speed', 'op': 'mul', 'value': 1.50},
    # --- Range ---
    'range_common': {'name': 'Lens', 'description': '+50 Range.',
                     'rarity': 'COMMON', 'stat': 'range', 'op': 'add', 'value': 50},
    'range_rare': {'name': 'Scope', 'description': '+125 Range.',
                   'rarity': 'RARE', 'stat': 'range', 'op': 'add', 'value': 125},
    'range_epic': {'name': 'Sniper Kit', 'description': '+250 Range.',
                   'rarity': 'EPIC', 'stat': 'range', 'op': 'add', 'value': 250},
    # --- Crit ---
    'crit_common': {'name': 'Sharp Lens', 'description': '+5% Crit Chance.',
                    'rarity': 'COMMON', 'stat': 'crit_chance', 'op': 'add', 'value': 5},
    'crit_rare': {'name': 'Targeting Sys', 'description': '+10% Crit Chance.',
                  'rarity': 'RARE', 'stat': 'crit_chance', 'op': 'add', 'value': 10},
    'crit_epic': {'name': 'Assassin', 'description': '+20% Crit Chance.',
                  'rarity': 'EPIC', 'stat': 'crit_chance', 'op': 'add', 'value': 20},
    # --- Economy ---
    'greed_rare': {'name': 'Lucky Coin', 'description': '+20% Gold Gain.',
                   'rarity': 'RARE', 'stat': 'gold_multiplier', 'op': 'add', 'value': 0.2},
    'greed_epic': {'name': 'Midas Touch', 'description': '+50% Gold Gain.',
                   'rarity': 'EPIC', 'stat': 'gold_multiplier', 'op': 'add', 'value': 0.5},
    # --- Projectile mods ---
    'ricochet_rare': {'name': 'Bouncy Walls', 'description': 'Bullets bounce +1 time.',
                      'rarity': 'RARE', 'stat': 'ricochet_count', 'op': 'add', 'value': 1},
    'ricochet_epic': {'name': 'Rubber Room', 'description': 'Bullets bounce +3 times.',
                      'rarity': 'EPIC', 'stat': 'ricochet_count', 'op': 'add', 'value': 3},
    'multishot_epic': {'name': 'Twin Shot', 'description': 'Fire +1 projectile.',
                       'rarity': 'EPIC', 'stat': 'projectile_count', 'op': 'add', 'value': 1},
    'multishot_legendary': {'name': 'Barrage', 'description': 'Fire +2 projectiles.',
                            'rarity': 'LEGENDARY', 'stat': 'projectile_count', 'op': 'add', 'value': 2},
    'frost_rare': {'name': 'Frost Shot',
                   'description': 'Slow enemies on hit. Slowed enemies deal -30% damage.',
                   'rarity': 'RARE', 'stat': 'has_frost_shot', 'op': 'set', 'value': True},
    'explosive_legendary': {'name': 'Explosive Rounds', 'description': 'Bullets explode on impact.',
                            'rarity': 'LEGENDARY', 'stat': 'has_explosive_shots', 'op': 'set',
                            'value': True},
    # --- Sustain ---
    'regen_rare': {'name': 'Troll Blood', 'description': '+1 HP/sec regen.',
                   'rarity': 'RARE', 'stat': 'regen_rate', 'op': 'add', 'value': 1},
    'regen_epic': {'name': 'Hydra Gene', 'description': '+3 HP/sec regen.',
                   'rarity': 'EPIC', 'stat': 'regen_rate', 'op': 'add', 'value': 3},
    'thorns_rare': {'name': 'Spiked Armor', 'description': 'Deal 15 contact damage.',
                    'rarity': 'RARE', 'stat': 'thorns_damage', 'op': 'add', 'value': 15},
    'thorns_epic': {'name': 'Blazing Armor', 'description': 'Deal 40 contact damage.',
                    'rarity': 'EPIC', 'stat': 'thorns_damage', 'op': 'add', 'value': 40},
    'vamp_legendary': {'name': 'Vampirism', 'description': '15% chance to heal 1 HP on kill.',
                       'rarity': 'LEGENDARY', 'stat': 'lifesteal_chance', 'op': 'add', 'value': 0.15},
    # --- Abilities (handled in apply_shop_upgrade) ---
    'fireaura_epic': {'name': 'Fire Aura', 'description': 'Burn nearby enemies (25 DPS).',
                      'rarity': 'EPIC', 'stat': None, 'op': 'aura', 'value': 25},
    'orbitals_epic': {'name': 'Orbitals', 'description': 'Spawns 2 defensive shields (60 DPS contact).',
                      'rarity': 'EPIC', 'stat': None, 'op': 'orbitals', 'value': 2},
}


def generate_options(count: int = SHOP_OPTION_COUNT) -> List[str]:
    """Pick `count` distinct upgrade ids at random."""
    return random.sample(list(SHOP_UPGRADES), min(count, len(SHOP_UPGRADES)))


def apply_shop_upgrade(world: World, player_id: int, upgrade_id: str) -> None:
    """Apply one shop pick to the live player. Unknown ids raise KeyError."""
    data = SHOP_UPGRADES[upgrade_id]
    stats = world.get_component(player_id, PlayerStats)
    if stats is None:
        return

    op = data['op']
    value = data['value']

    if op == 'add':
        setattr(stats, data['stat'], getattr(stats, data['stat']) + value)
    elif op == 'mul':
        setattr(stats, data['stat'], getattr(stats, data['stat']) * value)
    elif op == 'set':
        setattr(stats, data['stat'], value)
    elif op in ('heal', 'full_heal'):
        health = world.get_component(player_id, Health)
        health.maximum += value
        if op == 'heal':
            health.current += value
        else:
            health.current = health.maximum
    elif op == 'aura':
        aura = world.get_component(player_id, FireAura)
        aura.active = True
        aura.damage += value
    elif op == 'orbitals':
        orbitals = world.get_component(player_id, Orbitals)
        orbitals.count += value
        orbitals.damage = 60

    if data['stat'] == 'fire_rate_bonus':
        update_fire_rate(stats)

    stats.shop_picks.append(upgrade_id)
