"""
Rotating Offers
===============
Three deals drawn by weight from a fixed pool, refreshed on demand.
"""

import logging
import random
import time
from typing import List, Optional

from .items import ITEMS
from .gacha import GachaSystem

logger = logging.getLogger(__name__)

OFFER_SLOTS = 3
REFRESH_COST = {'gold': 50, 'shopTokens': 20}

OFFER_POOL = [
    {
        'id': 'epic_gem_bundle', 'name': 'Epic Gem Bundle',
        'description': 'Random Epic-rarity stat gem at a discount',
        'cost': {'gold': 400}, 'weight': 10,
        'reward': {'type': 'RANDOM_ITEM', 'rarity': 'EPIC', 'category': ['STAT_GEM']},
    },
    {
        'id': 'legendary_gem_bundle', 'name': 'Legendary Gem Bundle',
        'description': 'Random Legendary-rarity stat gem',
        'cost': {'gold': 1500}, 'weight': 5,
        'reward': {'type': 'RANDOM_ITEM', 'rarity': 'LEGENDARY', 'category': ['STAT_GEM']},
    },
    {
        'id': 'damage_focus_crate', 'name': 'Damage Focus Crate',
        'description': '3 stat gems focused on damage',
        'cost': {'gold': 350}, 'weight': 8,
        'reward': {'type': 'FILTERED_ITEMS', 'category': 'STAT_GEM', 'stat_key': 'damage', 'count': 3},
    },
    {
        'id': 'defense_focus_crate', 'name': 'Defense Focus Crate',
        'description': '3 stat gems focused on HP/survivability',
        'cost': {'gold': 350}, 'weight': 8,
        'reward': {'type': 'FILTERED_ITEMS', 'category': 'STAT_GEM', 'stat_key': 'maxHp', 'count': 3},
    },
    {
        'id': 'token_boost_pack', 'name': 'Token Boost Pack',
        'description': '100 Shop Tokens + 1 Silver Crate',
        'cost': {'gold': 600}, 'weight': 7,
        'reward': {'type': 'BUNDLE', 'items': [
            {'type': 'SHOP_TOKENS', 'amount': 100},
            {'type': 'CRATE', 'crate': 'SILVER_CRATE'},
        ]},
    },
    {
        'id': 'store_xp_boost', 'name': 'Store XP Boost',
        'description': '200 Store XP to rank up faster',
        'cost': {'shopTokens': 50}, 'weight': 6,
        'reward': {'type': 'STORE_XP', 'amount': 200},
    },
    {
        'id': 'starter_pack', 'name': "Adventurer's Starter Pack",
        'description': '2 Basic Crates + 50 Shop Tokens',
        'cost': {'gold': 150}, 'weight': 12,
        'reward': {'type': 'BUNDLE', 'items': [
            {'type': 'CRATE', 'crate': 'BASIC_CRATE'},
            {'type': 'CRATE', 'crate': 'BASIC_CRATE'},
            {'type': 'SHOP_TOKENS', 'amount': 50},
        ]},
    },
    {
        'id': 'gold_saver_pack', 'name': 'Economy Pack',
        'description': '1 Silver Crate + 1 Gold Crate at 15% discount',
        'cost': {'gold': 2100}, 'weight': 9,
        'reward': {'type': 'BUNDLE', 'items': [
            {'type': 'CRATE', 'crate': 'SILVER_CRATE'},
            {'type': 'CRATE', 'crate': 'GOLD_CRATE'},
        ]},
    },
    {
        'id': 'random_cosmetic', 'name': 'Mystery Cosmetic',
        'description': 'Random weapon or character skin',
        'cost': {'gold': 300}, 'weight': 10,
        'reward': {'type': 'RANDOM_ITEM', 'rarity': 'RANDOM',
                   'category': ['WEAPON_SKIN', 'CHARACTER_SKIN']},
    },
    {
        'id': 'jackpot_bundle', 'name': 'Jackpot Bundle',
        'description': '1 Legendary Crate + 200 Shop Tokens',
        'cost': {'gold': 9500}, 'weight': 3,
        'reward': {'type': 'BUNDLE', 'items': [
            {'type': 'CRATE', 'crate': 'LEGENDARY_CRATE'},
            {'type': 'SHOP_TOKENS', 'amount': 200},
        ]},
    },
]


def select_weighted_offers(count: int, pool: Optional[List[dict]] = None) -> List[dict]:
    """Weighted sampling without replacement."""
    pool = list(OFFER_POOL if pool is None else pool)
    selected = []
    while pool and len(selected) < count:
        roll = random.random() * sum(offer['weight'] for offer in pool)
        chosen = pool[-1]
        for offer in pool:
            roll -= offer['weight']
            if roll <= 0:
                chosen = offer
                break
        selected.append(dict(chosen))
        pool.remove(chosen)
    return selected


class RotatingOffers:

    def __init__(self, profile, gacha: Optional[GachaSystem] = None):
        self.profile = profile
        self.gacha = gacha or GachaSystem(profile)

    @property
    def state(self) -> dict:
        return self.profile.data['rotatingOffers']

    def init(self):
        """Roll a first set of offers if none are stored."""
        if not self.state['currentOffers']:
            self.refresh(free=True)

    def get_current_offers(self) -> List[dict]:
        return self.state['currentOffers']

    def can_refresh(self) -> dict:
        if not self.state['freeRefreshUsed']:
            return {'can': True, 'is_free': True}
        data = self.profile.data
        if data['gold'] >= REFRESH_COST['gold'] or data['shopTokens'] >= REFRESH_COST['shopTokens']:
            return {'can': True, 'is_free': False, 'cost': dict(REFRESH_COST)}
        return {
            'can': False,
            'reason': (f"Need {REFRESH_COST['gold']} gold OR "
                       f"{REFRESH_COST['shopTokens']} Shop Tokens to refresh"),
        }

    def refresh(self, free: bool = False) -> dict:
        """Draw new offers. A player refresh uses the free one first, then gold, then tokens."""
        paid = None
        if not free:
            check = self.can_refresh()
            if not check['can']:
                return {'success': False, 'error': check['reason']}
            if check['is_free']:
                self.state['freeRefreshUsed'] = True
            elif self.profile.data['gold'] >= REFRESH_COST['gold']:
                self.profile.data['gold'] -= REFRESH_COST['gold']
                paid = {'gold': REFRESH_COST['gold']}
            else:
                self.profile.data['shopTokens'] -= REFRESH_COST['shopTokens']
                paid = {'shopTokens': REFRESH_COST['shopTokens']}

        offers = select_weighted_offers(OFFER_SLOTS)
        self.state['currentOffers'] = offers
        self.state['lastRefresh'] = time.time()
        self.profile.save()
        return {'success': True, 'offers': offers, 'cost': paid}

    def reset_free_refresh(self):
        self.state['freeRefreshUsed'] = False
        self.profile.save()

    def purchase(self, offer_id: str) -> dict:
        offers = self.state['currentOffers']
        offer = next((o for o in offers if o['id'] == offer_id), None)
        if offer is None:
            return {'success': False, 'error': 'Offer not found or expired'}

        data = self.profile.data
        cost = offer['cost']
        if data['gold'] < cost.get('gold', 0) or data['shopTokens'] < cost.get('shopTokens', 0):
            return {'success': False, 'error': 'Not enough gold/tokens'}
        data['gold'] -= cost.get('gold', 0)
        data['shopTokens'] -= cost.get('shopTokens', 0)

        rewards = self._grant_reward(offer['reward'])
        offers.remove(offer)
        self.profile.save()
        logger.info("Bought offer %s", offer_id)
        return {'success': True, 'cost': cost, 'rewards': rewards}

    def _grant_item(self, pool, granted):
        instance = self.gacha.generate_item_instance(random.choice(pool))
        self.gacha.add_to_inventory(instance)
        granted.append(instance)

    def _grant_reward(self, reward: dict) -> List[dict]:
        granted = []
        kind = reward['type']
        if kind == 'RANDOM_ITEM':
            pool = [i for i in ITEMS if i['category'] in reward['category']]
            if reward['rarity'] != 'RANDOM':
                pool = [i for i in pool if i['rarity'] == reward['rarity']]
            if pool:
                self._grant_item(pool, granted)
        elif kind == 'FILTERED_ITEMS':
            pool = [i for i in ITEMS if i['category'] == reward['category']
                    and (i.get('stats') or {}).get(reward['stat_key'])]
            for _ in range(reward['count'] if pool else 0):
                self._grant_item(pool, granted)
        elif kind == 'BUNDLE':
            for entry in reward['items']:
                if entry['type'] == 'CRATE':
                    granted.extend(self.gacha.open_crate(entry['crate']))
                elif entry['type'] == 'SHOP_TOKENS':
                    self.profile.add_shop_tokens(entry['amount'])
                    granted.append({'type': 'tokens', 'amount': entry['amount']})
        elif kind == 'STORE_XP':
            self.profile.add_store_xp(reward['amount'])
            granted.append({'type': 'xp', 'amount': reward['amount']})
        return granted
