"""
Item Catalogue
==============
Rarity tiers, crate definitions and every collectible item.
"""

RARITY_ORDER = ['COMMON', 'RARE', 'EPIC', 'LEGENDARY', 'MYTHIC']

# chance is a percentage, goldValue is what a promoted item sells for
RARITY_TIERS = {
    'COMMON': {'color': 245, 'chance': 50, 'goldValue': 50},
    'RARE': {'color': 33, 'chance': 30, 'goldValue': 150},
    'EPIC': {'color': 129, 'chance': 15, 'goldValue': 500},
    'LEGENDARY': {'color': 220, 'chance': 4.5, 'goldValue': 2000},
    'MYTHIC': {'color': 196, 'chance': 0.5, 'goldValue': 10000},
}

SELL_VALUES = {
    'COMMON': 20,
    'RARE': 100,
    'EPIC': 400,
    'LEGENDARY': 1500,
    'MYTHIC': 5000,
}

CRATE_TYPES = {
    'BASIC_CRATE': {
        'name': 'Basic Crate', 'cost': 100, 'items': 1,
        'weights': {'COMMON': 70, 'RARE': 25, 'EPIC': 4.9, 'LEGENDARY': 0, 'MYTHIC': 0.1},
    },
    'SILVER_CRATE': {
        'name': 'Silver Crate', 'cost': 500, 'items': 3,
        'weights': {'COMMON': 40, 'RARE': 40, 'EPIC': 15, 'LEGENDARY': 4.5, 'MYTHIC': 0.5},
    },
    'GOLD_CRATE': {
        'name': 'Gold Crate', 'cost': 2000, 'items': 5,
        'weights': {'COMMON': 10, 'RARE': 30, 'EPIC': 40, 'LEGENDARY': 18, 'MYTHIC': 2.0},
    },
    'LEGENDARY_CRATE': {
        'name': 'Legendary Crate', 'cost': 10000, 'items': 5,
        'weights': {'COMMON': 0, 'RARE': 0, 'EPIC': 30, 'LEGENDARY': 60, 'MYTHIC': 10},
    },
}

WEAPON_SKIN = 'WEAPON_SKIN'
CHARACTER_SKIN = 'CHARACTER_SKIN'
KILL_EFFECT = 'KILL_EFFECT'
AURA_EFFECT = 'AURA_EFFECT'
STAT_GEM = 'STAT_GEM'

ITEM_CATEGORIES = (WEAPON_SKIN, CHARACTER_SKIN, KILL_EFFECT, AURA_EFFECT, STAT_GEM)


def _item(item_id, name, category, rarity, desc, stats=None, variance=None):
    item = {
        'id': item_id, 'name': name, 'category': category, 'rarity': rarity,
        'desc': desc, 'sellPrice': SELL_VALUES[rarity],
    }
    if stats is not None:
        item['stats'] = stats
        item['variance'] = variance
    return item


ITEMS = [
    # Weapon skins
    _item('w_plasma', 'Plasma Blaster', WEAPON_SKIN, 'COMMON', 'A standard plasma finish.'),
    _item('w_golden', 'Golden Gun', WEAPON_SKIN, 'LEGENDARY', 'Pure gold plating.'),
    _item('w_neon', 'Neon Tracer', WEAPON_SKIN, 'RARE', 'Leaves a bright trail.'),
    _item('w_pixel', 'Pixel Destroyer', WEAPON_SKIN, 'EPIC', 'Glitchy visual effects.'),
    _item('w_void', 'Void Beam', WEAPON_SKIN, 'MYTHIC', 'Shoots pure darkness.'),
    # Character skins
    _item('c_marine', 'Space Marine', CHARACTER_SKIN, 'COMMON', 'Standard issue armor.'),
    _item('c_ninja', 'Cyber Ninja', CHARACTER_SKIN, 'RARE', 'Stealthy and sleek.'),
    _item('c_robot', 'Retro Robot', CHARACTER_SKIN, 'EPIC', 'Beep boop.'),
    _item('c_knight', 'Golden Knight', CHARACTER_SKIN, 'LEGENDARY', 'Shining armor.'),
    _item('c_voidwalker', 'Void Walker', CHARACTER_SKIN, 'MYTHIC', 'One with the abyss.'),
    # Kill effects
    _item('k_pixel', 'Pixel Explosion', KILL_EFFECT, 'COMMON', 'Standard pop.'),
    _item('k_confetti', 'Confetti Pop', KILL_EFFECT, 'RARE', 'Party time!'),
    _item('k_gold', 'Gold Coins', KILL_EFFECT, 'LEGENDARY', 'Rains money.'),
    _item('k_blackhole', 'Black Hole', KILL_EFFECT, 'MYTHIC', 'Sucks them into nothingness.'),
    # Auras
    _item('a_sparkles', 'Rainbow Sparkles', AURA_EFFECT, 'RARE', 'Fabulous.'),
    _item('a_fire', 'Fire Ring', AURA_EFFECT, 'EPIC', 'Burning intensity.'),
    _item('a_void', 'Void Particles', AURA_EFFECT, 'MYTHIC', 'Dark matter floats around you.'),
    # Stat gems roll each stat within +/- variance
    _item('g_dmg_s', 'Ruby Shard', STAT_GEM, 'COMMON', '+~2% Damage', {'damage': 2}, 0.2),
    _item('g_spd_s', 'Sapphire Shard', STAT_GEM, 'COMMON', '+~5% Speed', {'speed': 5}, 0.2),
    _item('g_hp_s', 'Emerald Shard', STAT_GEM, 'COMMON', '+~10 HP', {'maxHp': 10}, 0.2),
    _item('g_dmg_m', 'Ruby Gem', STAT_GEM, 'RARE', '+~5% Damage', {'damage': 5}, 0.15),
    _item('g_spd_m', 'Sapphire Gem', STAT_GEM, 'RARE', '+~10% Speed', {'speed': 10}, 0.15),
    _item('g_dmg_l', 'Perfect Ruby', STAT_GEM, 'EPIC', '+~10% Damage', {'damage': 10}, 0.1),
    _item('g_crit_l', 'Diamond', STAT_GEM, 'LEGENDARY', '+~5% Crit Chance', {'critChance': 5}, 0.1),
]

# Wave reached at run end -> (crate, chance); exact match only
FREE_CRATE_REWARDS = {
    5: ('BASIC_CRATE', 0.3),
    10: ('BASIC_CRATE', 0.5),
    15: ('SILVER_CRATE', 0.3),
    20: ('SILVER_CRATE', 0.5),
    30: ('GOLD_CRATE', 1.0),
}


def get_item_def(item_id):
    for item in ITEMS:
        if item['id'] == item_id:
            return item
    return None


def describe_stats(stats):
    """'+5% DAMAGE, +12 HP MAXHP' style summary of rolled gem stats."""
    parts = []
    for key, value in stats.items():
        unit = ''
        if key in ('damage', 'speed', 'critChance'):
            unit = '%'
        elif key == 'maxHp':
            unit = ' HP'
        parts.append(f'+{value:g}{unit} {key.upper()}')
    return ', '.join(parts)
