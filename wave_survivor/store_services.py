"""
Store Services
==============
Reforge, fusion and rarity promotion. Every call returns a result dict
with `success` and, on failure, a player-facing `error`.
"""

import datetime
import logging
import random
from typing import Callable, List, Optional

from .items import ITEMS, RARITY_ORDER, RARITY_TIERS, STAT_GEM, describe_stats, get_item_def
from .gacha import GachaSystem, generate_item_instance, roll_stats
from .store_tree import StoreUpgradeTree

logger = logging.getLogger(__name__)

PROMOTION_MATERIALS = 3
FUSION_COUNT = 3


def _fail(error):
    return {'success': False, 'error': error}


class StoreServices:

    def __init__(self, profile, tree: Optional[StoreUpgradeTree] = None,
                 today: Callable[[], datetime.date] = datetime.date.today):
        self.profile = profile
        self.tree = tree or StoreUpgradeTree(profile)
        self.gacha = GachaSystem(profile, self.tree)
        self.today = today

    @property
    def data(self):
        return self.profile.data

    def _effects(self, service_id):
        return self.tree.get_service_enhancements(service_id)['effects']

    def _service_cost(self, service_id):
        effects = self._effects(service_id)
        cost = effects[0]['base_cost']
        for effect in effects:
            if 'cost_reduction' in effect:
                cost = int(cost * (1 - effect['cost_reduction']))
        return cost

    def _daily_limit(self):
        limit = 0
        for effect in self._effects('RARITY_PROMOTION'):
            limit = effect.get('daily_limit', limit)
        return limit

    def _reset_daily_counter(self):
        services = self.data['services']
        today = self.today().isoformat()
        if services.get('lastResetDate') != today:
            services['lastResetDate'] = today
            services['rarityPromotionsUsed'] = 0

    def _consume(self, uids):
        for uid in uids:
            self.profile.unequip_by_uid(uid)
            self.profile.remove_item(uid)

    # ==================================================================
    # Reforge
    # ==================================================================

    def reforge_item(self, uid: str) -> dict:
        """Re-roll a stat gem's stats within its definition's variance."""
        if not self.tree.is_service_unlocked('REFORGE'):
            return _fail('Reforge service not unlocked. Upgrade Reforge Specialist to unlock.')
        item = self.profile.get_item_by_uid(uid)
        if item is None:
            return _fail('Item not found')
        if item['category'] != STAT_GEM:
            return _fail('Only stat gems can be reforged')
        if not item.get('stats'):
            return _fail('Item has no stats to reforge')
        item_def = get_item_def(item['id'])
        if item_def is None or not item_def.get('variance'):
            return _fail('Item definition not found or has no variance')

        cost = self._service_cost('REFORGE')
        if not self.profile.spend_gold(cost):
            return _fail(f'Not enough gold. Need {cost} gold.')

        stability = self.tree.get_stat_stability()
        new_stats = roll_stats(item_def, stability)
        if any(effect.get('double_roll') for effect in self._effects('REFORGE')):
            second = roll_stats(item_def, stability)
            if sum(second.values()) > sum(new_stats.values()):
                new_stats = second

        old_stats = dict(item['stats'])
        item['stats'] = new_stats
        item['desc'] = describe_stats(new_stats)
        self.profile.save()
        logger.info("Reforged %s: %s -> %s", item['id'], old_stats, new_stats)
        return {'success': True, 'cost': cost, 'old_stats': old_stats,
                'new_stats': new_stats, 'item': item}

    # ==================================================================
    # Fusion
    # ==================================================================

    def fuse_items(self, uids: List[str]) -> dict:
        """Turn three items into one of the same category and averaged rarity."""
        if not self.tree.is_service_unlocked('FUSION'):
            return _fail('Fusion service not unlocked. Upgrade Fusion Lab to unlock.')
        if not uids or len(uids) != FUSION_COUNT or len(set(uids)) != FUSION_COUNT:
            return _fail('Fusion requires exactly 3 items')
        items = [self.profile.get_item_by_uid(uid) for uid in uids]
        if any(item is None for item in items):
            return _fail('One or more items not found')

        effects = self._effects('FUSION')
        mixed = any(effect.get('mixed_rarity_fusion') for effect in effects)
        if mixed:
            if len({item['category'] for item in items}) != 1:
                return _fail('All items must be of the same category for mixed fusion')
        elif len({item['id'] for item in items}) != 1:
            return _fail('All items must be identical for fusion '
                         '(unlock mixed rarity fusion at level 3)')

        avg_index = sum(RARITY_ORDER.index(item['rarity']) for item in items) // len(items)
        result_index = avg_index
        for effect in effects:
            chance = effect.get('rarity_upgrade_chance')
            if chance and random.random() < chance:
                result_index = min(avg_index + 1, len(RARITY_ORDER) - 1)
        result_rarity = RARITY_ORDER[result_index]
        category = items[0]['category']

        candidates = [d for d in ITEMS if d['rarity'] == result_rarity and d['category'] == category]
        if not candidates:
            return _fail(f'No items available for rarity {result_rarity} in category {category}')

        result = generate_item_instance(random.choice(candidates))
        consumed = [dict(item) for item in items]
        self._consume(uids)
        self.gacha.add_to_inventory(result)
        self.profile.save()
        logger.info("Fused %s into %s (%s)", [i['id'] for i in consumed], result['id'], result_rarity)
        return {'success': True, 'consumed': consumed, 'result': result}

    # ==================================================================
    # Rarity promotion
    # ==================================================================

    def promote_rarity(self, uid: str, material_uids: List[str]) -> dict:
        """Raise an item one tier by sacrificing three others."""
        if not self.tree.is_service_unlocked('RARITY_PROMOTION'):
            return _fail('Rarity Promotion not unlocked. Upgrade Rarity Promotion to unlock.')
        item = self.profile.get_item_by_uid(uid)
        if item is None:
            return _fail('Item not found')
        rarity_index = RARITY_ORDER.index(item['rarity'])
        if rarity_index == len(RARITY_ORDER) - 1:
            return _fail('Item is already maximum rarity (Mythic)')

        self._reset_daily_counter()
        limit = self._daily_limit()
        services = self.data['services']
        if services['rarityPromotionsUsed'] >= limit:
            return _fail(f'Daily limit reached ({limit} promotions per day)')

        cost = self._service_cost('RARITY_PROMOTION')
        if self.data['gold'] < cost:
            return _fail(f'Not enough gold. Need {cost} gold.')

        if not material_uids or len(material_uids) != PROMOTION_MATERIALS:
            return _fail(f'Requires {PROMOTION_MATERIALS} material items')
        if uid in material_uids or len(set(material_uids)) != PROMOTION_MATERIALS:
            return _fail('One or more material items not found')
        if any(self.profile.get_item_by_uid(m) is None for m in material_uids):
            return _fail('One or more material items not found')

        self.profile.spend_gold(cost)
        self._consume(material_uids)

        old_rarity = item['rarity']
        item['rarity'] = RARITY_ORDER[rarity_index + 1]
        item['sellPrice'] = RARITY_TIERS[item['rarity']]['goldValue']
        services['rarityPromotionsUsed'] += 1
        self.profile.save()
        logger.info("Promoted %s %s -> %s", item['id'], old_rarity, item['rarity'])
        return {
            'success': True, 'cost': cost, 'old_rarity': old_rarity,
            'new_rarity': item['rarity'], 'item': item,
            'materials_consumed': PROMOTION_MATERIALS,
            'remaining_uses': limit - services['rarityPromotionsUsed'],
        }

    def get_service_info(self, service_id: str) -> dict:
        unlocked = self.tree.is_service_unlocked(service_id)
        enhancements = self.tree.get_service_enhancements(service_id)
        info = {
            'id': service_id,
            'unlocked': unlocked,
            'level': enhancements['level'] if enhancements else 0,
            'effects': enhancements['effects'] if enhancements else [],
        }
        if not unlocked:
            return info

        if service_id == 'REFORGE':
            info['cost'] = self._service_cost('REFORGE')
            info['has_double_roll'] = any(e.get('double_roll') for e in info['effects'])
        elif service_id == 'RARITY_PROMOTION':
            services = self.data['services']
            used = 0
            if services.get('lastResetDate') == self.today().isoformat():
                used = services.get('rarityPromotionsUsed', 0)
            info['cost'] = self._service_cost('RARITY_PROMOTION')
            info['daily_limit'] = self._daily_limit()
            info['used_today'] = used
            info['remaining_uses'] = info['daily_limit'] - used
        return info
