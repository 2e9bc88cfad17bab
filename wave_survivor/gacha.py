"""
Gacha System
============
Weighted rarity rolls, item instancing with stat variance, and crates.
"""

import logging
import math
import random
import uuid
from typing import Dict, List, Optional

from .items import CRATE_TYPES, ITEMS, RARITY_ORDER, STAT_GEM, describe_stats
from .store_rank import get_rank_for_feature, is_crate_unlocked
from .store_tree import StoreUpgradeTree

logger = logging.getLogger(__name__)


def roll_stat_value(base: float, variance: float, stability: float = 0.0) -> float:
    """One varied stat: base * (1 +/- variance), with the bottom `stability` of the range cut off."""
    r = random.random()
    if stability > 0:
        r = stability + r * (1 - stability)
    value = base * (1 + (r * variance * 2 - variance))
    if value > 10:
        return math.floor(value + 0.5)
    return round(value, 1)


def roll_stats(item_def: dict, stability: float = 0.0) -> Dict[str, float]:
    return {
        key: roll_stat_value(base, item_def['variance'], stability)
        for key, base in item_def['stats'].items()
    }


def generate_item_instance(item_def: dict, stability: float = 0.0) -> dict:
    """A fresh inventory entry for an item definition, stats rolled if varied."""
    instance = {
        'id': item_def['id'],
        'uid': str(uuid.uuid4()),
        'name': item_def['name'],
        'category': item_def['category'],
        'rarity': item_def['rarity'],
        'desc': item_def['desc'],
        'sellPrice': item_def['sellPrice'],
        'stats': dict(item_def['stats']) if item_def.get('stats') else None,
        'isNew': True,
        'count': 1,
    }
    if item_def.get('variance') and instance['stats']:
        instance['stats'] = roll_stats(item_def, stability)
        instance['desc'] = describe_stats(instance['stats'])
    return instance


def roll_rarity(weights: Dict[str, float], mythic_boost: float = 0.0) -> str:
    """Pick a rarity from a weight table; mythic_boost is a fraction added as weight."""
    if mythic_boost:
        weights = dict(weights)
        weights['MYTHIC'] = weights.get('MYTHIC', 0) + mythic_boost * 100
    # Rolled against the table's own total, not a fixed 100: the mythic boost
    # adds weight, and every crate table sums to 100 without it.
    total = sum(weights.values())
    roll = random.random() * total
    cumulative = 0.0
    for rarity, weight in weights.items():
        cumulative += weight
        if roll < cumulative:
            return rarity
    return 'COMMON'


def roll_item(rarity: str) -> dict:
    pool = [item for item in ITEMS if item['rarity'] == rarity]
    if not pool:
        return ITEMS[0]
    return random.choice(pool)


class GachaSystem:
    """Crate opening and inventory stacking against a Profile."""

    def __init__(self, profile, tree: Optional[StoreUpgradeTree] = None):
        self.profile = profile
        self.tree = tree or StoreUpgradeTree(profile)

    roll_rarity = staticmethod(roll_rarity)
    roll_item = staticmethod(roll_item)

    def generate_item_instance(self, item_def: dict) -> dict:
        stability = self.tree.get_stat_stability() if item_def['category'] == STAT_GEM else 0.0
        return generate_item_instance(item_def, stability)

    def add_to_inventory(self, item: dict) -> int:
        """Stack or append an item. Returns shop tokens paid out by duplicate insurance."""
        items = self.profile.data['inventory']['items']
        existing = None
        for owned in items:
            if owned['id'] == item['id'] and owned.get('stats') == item.get('stats'):
                existing = owned
                break

        if existing is None:
            item['isDuplicate'] = False
            items.append(item)
            return 0

        existing['count'] += 1
        item['isDuplicate'] = True

        tokens = 0
        insurance = self.tree.get_duplicate_insurance()
        if insurance and existing['count'] > insurance['threshold']:
            excess = existing['count'] - insurance['threshold']
            existing['count'] = insurance['threshold']
            tokens = self.profile.add_shop_tokens(excess * insurance['tokens'])
            logger.info("Duplicate insurance: %d %s converted to %d tokens",
                        excess, item['id'], tokens)
        item['count'] = existing['count']
        return tokens

    def _roll_crate_rarities(self, crate_key: str) -> List[str]:
        crate = CRATE_TYPES[crate_key]
        boost = self.tree.get_mythic_boost(crate_key)
        rarities = [roll_rarity(crate['weights'], boost) for _ in range(crate['items'])]

        floor_rarity = self.tree.get_rarity_floor(crate_key)
        if floor_rarity:
            floor_index = RARITY_ORDER.index(floor_rarity)
            indices = [RARITY_ORDER.index(r) for r in rarities]
            if max(indices) < floor_index:
                rarities[indices.index(min(indices))] = floor_rarity
        return rarities

    def open_crate(self, crate_key: str) -> List[dict]:
        """Roll every item in a crate into the inventory. Raises KeyError for unknown crates."""
        rewards = []
        for rarity in self._roll_crate_rarities(crate_key):
            instance = self.generate_item_instance(roll_item(rarity))
            self.add_to_inventory(instance)
            rewards.append(instance)
        logger.info("Opened %s: %s", crate_key, ', '.join(r['id'] for r in rewards))
        self.profile.save()
        return rewards

    def crate_cost(self, crate_key: str) -> int:
        return math.floor(CRATE_TYPES[crate_key]['cost'] * (1 - self.tree.get_crate_discount()))

    def purchase_crate(self, crate_key: str) -> dict:
        if crate_key not in CRATE_TYPES:
            return {'success': False, 'error': 'Unknown crate'}
        if not is_crate_unlocked(self.profile.data['storeRank'], crate_key):
            rank = get_rank_for_feature('CRATE', crate_key)
            return {'success': False, 'error': f'Crate locked. Reach Store Rank {rank}.'}
        cost = self.crate_cost(crate_key)
        if not self.profile.spend_gold(cost):
            return {'success': False, 'error': f'Not enough gold. Need {cost} gold.'}
        return {'success': True, 'cost': cost, 'items': self.open_crate(crate_key)}
