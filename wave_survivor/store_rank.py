"""
Store Rank
==========
XP thresholds, rank titles and the features each rank unlocks.
"""

import re
from typing import List, Optional

MAX_RANK = 10


def _rank(rank, xp, name, description, points, unlocks):
    return {
        'rank': rank, 'xp_required': xp, 'name': name,
        'description': description, 'upgrade_points': points, 'unlocks': unlocks,
    }


def _unlock(kind, unlock_id, name, value=None):
    unlock = {'type': kind, 'id': unlock_id, 'name': name}
    if value is not None:
        unlock['value'] = value
    return unlock


STORE_RANKS = [
    _rank(1, 0, 'Novice Merchant', 'Your journey begins', 0, [
        _unlock('CRATE', 'BASIC_CRATE', 'Basic Crate'),
    ]),
    _rank(2, 100, 'Apprentice Trader', 'Learning the ropes', 1, [
        _unlock('CRATE', 'SILVER_CRATE', 'Silver Crate'),
        _unlock('SERVICE', 'REFORGE', 'Reforge Service'),
        _unlock('UPGRADES', 'ROW_1', 'First Row of Upgrades'),
    ]),
    _rank(3, 300, 'Skilled Vendor', 'Building your empire', 1, [
        _unlock('FEATURE', 'ROTATING_DEALS', 'Rotating Deals Panel'),
    ]),
    _rank(4, 600, 'Master Merchant', 'A force in the market', 1, [
        _unlock('CRATE', 'GOLD_CRATE', 'Gold Crate'),
    ]),
    _rank(5, 1000, 'Elite Broker', 'Deals of legend', 2, [
        _unlock('UPGRADES', 'ROW_2', 'Second Row of Upgrades'),
    ]),
    _rank(6, 1500, 'Arcane Artisan', 'Crafting the impossible', 1, [
        _unlock('SERVICE', 'FUSION', 'Fusion Service'),
    ]),
    _rank(7, 2100, 'Legendary Dealer', 'Tales are told of your wares', 1, [
        _unlock('UPGRADES', 'ROW_3', 'Third Row of Upgrades'),
    ]),
    _rank(8, 2800, 'Mythic Curator', 'Only the finest for your shop', 1, [
        _unlock('CRATE', 'LEGENDARY_CRATE', 'Legendary Crate'),
    ]),
    _rank(9, 3600, 'Cosmic Merchant', 'Beyond mortal commerce', 1, []),
    _rank(10, 4500, 'Transcendent Tycoon', 'Master of all trades', 2, [
        _unlock('BONUS', 'TOKEN_BOOST', '+5% Shop Token Gain', value=0.05),
    ]),
]

_ROW_PATTERN = re.compile(r'ROW_(\d+)')


def get_rank_config(rank: int) -> dict:
    for config in STORE_RANKS:
        if config['rank'] == rank:
            return config
    return STORE_RANKS[0]


def get_current_rank(xp: int) -> int:
    for config in reversed(STORE_RANKS):
        if xp >= config['xp_required']:
            return config['rank']
    return 1


def get_xp_for_next_rank(rank: int) -> Optional[int]:
    """XP threshold of the following rank, None at max rank."""
    if rank >= MAX_RANK:
        return None
    return get_rank_config(rank + 1)['xp_required']


def get_progress_to_next_rank(xp: int, rank: int) -> float:
    """Percentage (0-100) of the way from this rank to the next."""
    next_xp = get_xp_for_next_rank(rank)
    if next_xp is None:
        return 100.0
    base_xp = get_rank_config(rank)['xp_required']
    return min(100.0, (xp - base_xp) / (next_xp - base_xp) * 100)


def get_unlocks_up_to_rank(rank: int) -> List[dict]:
    unlocks = []
    for config in STORE_RANKS:
        if config['rank'] > rank:
            break
        unlocks.extend(config['unlocks'])
    return unlocks


def is_feature_unlocked(rank: int, kind: str, unlock_id: str) -> bool:
    return any(u['type'] == kind and u['id'] == unlock_id
               for u in get_unlocks_up_to_rank(rank))


def is_crate_unlocked(rank: int, crate_key: str) -> bool:
    return is_feature_unlocked(rank, 'CRATE', crate_key)


def is_service_unlocked(rank: int, service_id: str) -> bool:
    return is_feature_unlocked(rank, 'SERVICE', service_id)


def get_rank_for_feature(kind: str, unlock_id: str) -> Optional[int]:
    for config in STORE_RANKS:
        for unlock in config['unlocks']:
            if unlock['type'] == kind and unlock['id'] == unlock_id:
                return config['rank']
    return None


def get_total_upgrade_points(rank: int) -> int:
    return sum(c['upgrade_points'] for c in STORE_RANKS if c['rank'] <= rank)


def get_token_bonus(rank: int) -> float:
    for unlock in get_unlocks_up_to_rank(rank):
        if unlock['type'] == 'BONUS' and unlock['id'] == 'TOKEN_BOOST':
            return unlock['value']
    return 0.0


def get_unlocked_crates(rank: int) -> List[str]:
    return [u['id'] for u in get_unlocks_up_to_rank(rank) if u['type'] == 'CRATE']


def get_unlocked_services(rank: int) -> List[str]:
    return [u['id'] for u in get_unlocks_up_to_rank(rank) if u['type'] == 'SERVICE']


def get_unlocked_upgrade_rows(rank: int) -> int:
    """Highest upgrade tree row available at this rank (0 if none)."""
    rows = [0]
    for unlock in get_unlocks_up_to_rank(rank):
        if unlock['type'] != 'UPGRADES':
            continue
        match = _ROW_PATTERN.match(unlock['id'])
        if match:
            rows.append(int(match.group(1)))
    return max(rows)


def format_rank_display(xp: int, rank: int) -> str:
    config = get_rank_config(rank)
    next_xp = get_xp_for_next_rank(rank)
    if next_xp is None:
        return f"Rank {rank} {config['name']} (MAX) - {xp} XP"
    progress = get_progress_to_next_rank(xp, rank)
    return f"Rank {rank} {config['name']} - {xp}/{next_xp} XP ({progress:.0f}%)"
