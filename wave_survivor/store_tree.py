"""
Store Upgrade Tree
==================
Three branches of three rank-gated nodes bought with upgrade points.
The tree reads and writes levels through a Profile; every derived
multiplier is a pure function of the levels it finds there.
"""

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

ECONOMY = 'ECONOMY'
LOOT_QUALITY = 'LOOT_QUALITY'
SERVICES = 'SERVICES'
BRANCHES = (ECONOMY, LOOT_QUALITY, SERVICES)

# Service id -> tree node that unlocks and enhances it
SERVICE_NODES = {
    'REFORGE': 'reforge_specialist',
    'FUSION': 'fusion_lab',
    'RARITY_PROMOTION': 'rarity_promotion',
}


def _node(node_id, branch, row, name, description, unlock_rank, effects, conflicts=()):
    return {
        'id': node_id, 'branch': branch, 'row': row, 'name': name,
        'description': description, 'max_level': len(effects), 'point_cost': 1,
        'unlock_rank': unlock_rank, 'conflicts': list(conflicts), 'effects': effects,
    }


STORE_UPGRADES = [
    # Economy
    _node('better_sell_prices', ECONOMY, 1, 'Better Sell Prices',
          'Increase gold earned from selling items', 2, [
              {'level': 1, 'sell_price_bonus': 0.10, 'desc': '+10% sell price'},
              {'level': 2, 'sell_price_bonus': 0.20, 'desc': '+20% sell price'},
              {'level': 3, 'sell_price_bonus': 0.30, 'desc': '+30% sell price'},
          ]),
    _node('crate_discounts', ECONOMY, 2, 'Crate Discounts',
          'Reduce the cost of all crates', 5, [
              {'level': 1, 'crate_discount': 0.03, 'desc': '-3% crate cost'},
              {'level': 2, 'crate_discount': 0.06, 'desc': '-6% crate cost'},
              {'level': 3, 'crate_discount': 0.10, 'desc': '-10% crate cost'},
          ], conflicts=['better_sell_prices']),
    _node('run_dividend', ECONOMY, 3, 'Run Dividend',
          'Earn bonus gold after each run', 7, [
              {'level': 1, 'run_gold_bonus': 0.05, 'desc': '+5% bonus gold after runs'},
              {'level': 2, 'run_gold_bonus': 0.10, 'desc': '+10% bonus gold after runs'},
              {'level': 3, 'run_gold_bonus': 0.15, 'desc': '+15% bonus gold after runs'},
          ]),
    # Loot quality
    _node('rarity_floor', LOOT_QUALITY, 1, 'Rarity Floor',
          'Guarantee minimum rarities in crates', 2, [
              {'level': 1, 'guaranteed_rarity': 'RARE', 'crate_type': 'BASIC_CRATE',
               'desc': 'Basic Crates guarantee at least 1 Rare'},
              {'level': 2, 'guaranteed_rarity': 'EPIC', 'crate_type': 'SILVER_CRATE',
               'desc': 'Silver Crates guarantee at least 1 Epic'},
              {'level': 3, 'mythic_boost': 0.01,
               'desc': '+1% Mythic chance in Gold/Legendary Crates'},
          ]),
    _node('stat_stability', LOOT_QUALITY, 2, 'Stat Stability',
          'Improve stat roll ranges on gems', 5, [
              {'level': 1, 'exclude_bottom_percent': 0.25, 'desc': 'Exclude bottom 25% of stat rolls'},
              {'level': 2, 'exclude_bottom_percent': 0.40, 'desc': 'Exclude bottom 40% of stat rolls'},
          ]),
    _node('duplicate_insurance', LOOT_QUALITY, 3, 'Duplicate Insurance',
          'Convert excess duplicates into Shop Tokens', 7, [
              {'level': 1, 'dupe_threshold': 5, 'token_per_dupe': 10,
               'desc': 'Dupes beyond 5 stack give 10 tokens each'},
              {'level': 2, 'dupe_threshold': 4, 'token_per_dupe': 15,
               'desc': 'Dupes beyond 4 stack give 15 tokens each'},
              {'level': 3, 'dupe_threshold': 3, 'token_per_dupe': 25,
               'desc': 'Dupes beyond 3 stack give 25 tokens each'},
          ]),
    # Services
    _node('reforge_specialist', SERVICES, 1, 'Reforge Specialist',
          'Unlock and enhance the Reforge service', 2, [
              {'level': 1, 'unlock_service': 'REFORGE', 'base_cost': 100,
               'desc': 'Unlock Reforge service'},
              {'level': 2, 'cost_reduction': 0.25, 'desc': '-25% Reforge cost'},
              {'level': 3, 'double_roll': True, 'desc': 'Reforge rolls twice, keeps better result'},
          ]),
    _node('fusion_lab', SERVICES, 2, 'Fusion Lab',
          'Unlock and enhance the Fusion service', 5, [
              {'level': 1, 'unlock_service': 'FUSION', 'fusion_count': 3,
               'desc': 'Combine 3 items into stronger version'},
              {'level': 2, 'rarity_upgrade_chance': 0.20, 'desc': '20% chance to upgrade rarity'},
              {'level': 3, 'mixed_rarity_fusion': True,
               'desc': 'Can fuse mixed rarities (2 Rare + 1 Epic)'},
          ]),
    _node('rarity_promotion', SERVICES, 3, 'Rarity Promotion',
          'Unlock service to upgrade item rarity', 7, [
              {'level': 1, 'unlock_service': 'RARITY_PROMOTION', 'daily_limit': 1,
               'base_cost': 500, 'desc': 'Upgrade 1 item rarity/day (500g)'},
              {'level': 2, 'cost_reduction': 0.30, 'daily_limit': 2,
               'desc': '-30% cost, 2 uses/day'},
          ]),
]


def get_upgrade(upgrade_id: str) -> Optional[dict]:
    for node in STORE_UPGRADES:
        if node['id'] == upgrade_id:
            return node
    return None


def get_upgrades_by_branch(branch: str) -> List[dict]:
    return [node for node in STORE_UPGRADES if node['branch'] == branch]


class StoreUpgradeTree:
    """Upgrade tree view over a profile's store progress."""

    def __init__(self, profile):
        self.profile = profile

    @property
    def data(self) -> dict:
        return self.profile.data

    def get_level(self, upgrade_id: str) -> int:
        return self.data['storeUpgrades'].get(upgrade_id, 0)

    def is_unlocked(self, upgrade_id: str) -> bool:
        node = get_upgrade(upgrade_id)
        if node is None:
            return False
        return self.data['storeRank'] >= node['unlock_rank']

    def can_purchase(self, upgrade_id: str) -> dict:
        node = get_upgrade(upgrade_id)
        if node is None:
            return {'can': False, 'reason': 'Upgrade not found'}
        if not self.is_unlocked(upgrade_id):
            return {'can': False, 'reason': f"Requires Store Rank {node['unlock_rank']}"}
        if self.get_level(upgrade_id) >= node['max_level']:
            return {'can': False, 'reason': 'Already at max level'}
        if self.data['storeUpgradePoints'] < node['point_cost']:
            return {'can': False, 'reason': 'Not enough Upgrade Points'}
        for conflict_id in node['conflicts']:
            conflict = get_upgrade(conflict_id)
            if self.get_level(conflict_id) >= conflict['max_level']:
                return {'can': False, 'reason': f"Conflicts with {conflict['name']}"}
        return {'can': True, 'reason': ''}

    def purchase(self, upgrade_id: str) -> bool:
        check = self.can_purchase(upgrade_id)
        if not check['can']:
            logger.info("Cannot purchase %s: %s", upgrade_id, check['reason'])
            return False
        node = get_upgrade(upgrade_id)
        if not self.profile.buy_store_upgrade(upgrade_id, node['point_cost']):
            return False
        logger.info("Purchased %s level %d", node['name'], self.get_level(upgrade_id))
        return True

    def get_active_effect(self, upgrade_id: str) -> Optional[dict]:
        node = get_upgrade(upgrade_id)
        if node is None:
            return None
        level = self.get_level(upgrade_id)
        if level == 0:
            return None
        return node['effects'][level - 1]

    def get_all_active_effects(self) -> Dict[str, dict]:
        effects = {}
        for node in STORE_UPGRADES:
            effect = self.get_active_effect(node['id'])
            if effect:
                effects[node['id']] = effect
        return effects

    # ==================================================================
    # Derived multipliers
    # ==================================================================

    def _effect_value(self, upgrade_id, key, default=0.0):
        effect = self.get_active_effect(upgrade_id)
        return effect[key] if effect else default

    def get_sell_price_bonus(self) -> float:
        return self._effect_value('better_sell_prices', 'sell_price_bonus')

    def get_crate_discount(self) -> float:
        return self._effect_value('crate_discounts', 'crate_discount')

    def get_run_gold_bonus(self) -> float:
        return self._effect_value('run_dividend', 'run_gold_bonus')

    def get_stat_stability(self) -> float:
        """Fraction of the bottom of the stat roll range that is excluded."""
        return self._effect_value('stat_stability', 'exclude_bottom_percent')

    def get_duplicate_insurance(self) -> Optional[dict]:
        effect = self.get_active_effect('duplicate_insurance')
        if effect is None:
            return None
        return {'threshold': effect['dupe_threshold'], 'tokens': effect['token_per_dupe']}

    def get_rarity_floor(self, crate_key: str) -> Optional[str]:
        """Minimum rarity guaranteed for one item of this crate, if any."""
        level = self.get_level('rarity_floor')
        node = get_upgrade('rarity_floor')
        for effect in node['effects'][:level]:
            if effect.get('crate_type') == crate_key:
                return effect['guaranteed_rarity']
        return None

    def get_mythic_boost(self, crate_key: str) -> float:
        """Extra mythic chance (fraction) for gold and legendary crates."""
        if crate_key not in ('GOLD_CRATE', 'LEGENDARY_CRATE'):
            return 0.0
        if self.get_level('rarity_floor') < 3:
            return 0.0
        return get_upgrade('rarity_floor')['effects'][2]['mythic_boost']

    # ==================================================================
    # Services
    # ==================================================================

    def is_service_unlocked(self, service_id: str) -> bool:
        node_id = SERVICE_NODES.get(service_id)
        if node_id is None:
            return False
        return self.get_level(node_id) >= 1

    def get_service_enhancements(self, service_id: str) -> Optional[dict]:
        """Level plus every effect owned so far for a service node."""
        node_id = SERVICE_NODES.get(service_id)
        if node_id is None:
            return None
        level = self.get_level(node_id)
        return {'level': level, 'effects': get_upgrade(node_id)['effects'][:level]}

    def get_tree_display(self) -> Dict[str, List[dict]]:
        display = {branch: [] for branch in BRANCHES}
        for node in STORE_UPGRADES:
            level = self.get_level(node['id'])
            check = self.can_purchase(node['id'])
            entry = dict(node)
            entry.update({
                'current_level': level,
                'is_unlocked': self.is_unlocked(node['id']),
                'can_purchase': check['can'],
                'can_purchase_reason': check['reason'],
                'next_effect': node['effects'][level] if level < node['max_level'] else None,
            })
            display[node['branch']].append(entry)
        for entries in display.values():
            entries.sort(key=lambda e: e['row'])
        return display
