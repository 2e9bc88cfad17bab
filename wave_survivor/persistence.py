"""
Profile Persistence
===================
Versioned player profile, pure schema migrations and pluggable storage.

A profile is a plain JSON-compatible dict. `Profile` owns one and writes
a snapshot after every mutation, either straight to a `ProfileRepository`
or through a `ProfileWriter` that does the I/O on a background thread so
the frame loop never waits on disk or network. Storage failures are
logged and never reach the game loop.
"""

import copy
import json
import logging
import math
import os
import threading
import time
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

import requests

from . import config
from .gacha import generate_item_instance
from .items import STAT_GEM, get_item_def
from .store_rank import STORE_RANKS, get_current_rank, get_token_bonus

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2
MAX_HIGH_SCORES = 10
GEM_SLOTS = 3

# Item category -> loadout slot
LOADOUT_SLOTS = {
    'WEAPON_SKIN': 'weaponSkin',
    'CHARACTER_SKIN': 'characterSkin',
    'KILL_EFFECT': 'killEffect',
    'AURA_EFFECT': 'auraEffect',
}

STORAGE_ERRORS = (OSError, ValueError, requests.RequestException)


def default_profile(username: str = config.DEFAULT_USERNAME) -> dict:
    return {
        'schemaVersion': SCHEMA_VERSION,
        'username': username,
        'gold': 0,
        'shopTokens': 0,
        'highScores': [],
        'upgrades': {},
        'inventory': {'items': []},
        'loadout': {
            'weaponSkin': None,
            'characterSkin': None,
            'killEffect': None,
            'auraEffect': None,
            'statGems': [None] * GEM_SLOTS,
        },
        'unlockedWorlds': ['tech'],
        'storeRank': 1,
        'storeXP': 0,
        'storeUpgradePoints': 0,
        'storeUpgrades': {},
        'services': {'lastResetDate': None, 'rarityPromotionsUsed': 0},
        'rotatingOffers': {'currentOffers': [], 'freeRefreshUsed': False, 'lastRefresh': None},
    }


# ======================================================================
# Migrations
# ======================================================================

def _migrate_v0_to_v1(data: dict) -> dict:
    """Rebuild id-only inventory entries as instances and point the loadout at uids."""
    data = copy.deepcopy(data)
    inventory = data.setdefault('inventory', {'items': []})
    items = inventory.setdefault('items', [])

    if any('uid' not in item or 'count' not in item for item in items):
        rebuilt = []
        for old in items:
            item_def = get_item_def(old.get('id'))
            if item_def is None:
                continue
            instance = generate_item_instance(item_def)
            if old.get('count'):
                instance['count'] = old['count']
            rebuilt.append(instance)
        inventory['items'] = rebuilt

    uids = {item['uid'] for item in inventory['items']}

    def to_uid(ref):
        if not ref or ref in uids:
            return ref
        for item in inventory['items']:
            if item['id'] == ref:
                return item['uid']
        return None

    loadout = data.setdefault('loadout', default_profile()['loadout'])
    for slot in LOADOUT_SLOTS.values():
        loadout[slot] = to_uid(loadout.get(slot))
    gems = loadout.get('statGems') or [None] * GEM_SLOTS
    loadout['statGems'] = [to_uid(ref) for ref in gems]
    data['schemaVersion'] = 1
    return data


def _migrate_v1_to_v2(data: dict) -> dict:
    """Add store progression, services, offers and world unlocks."""
    data = copy.deepcopy(data)
    defaults = default_profile(data.get('username', config.DEFAULT_USERNAME))
    for key in ('shopTokens', 'storeRank', 'storeXP', 'storeUpgradePoints',
                'storeUpgrades', 'services', 'rotatingOffers', 'unlockedWorlds'):
        data.setdefault(key, defaults[key])
    data['schemaVersion'] = 2
    return data


MIGRATIONS: Dict[int, Callable[[dict], dict]] = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def migrate(data: dict) -> dict:
    """Bring a stored profile of any known version up to SCHEMA_VERSION."""
    version = data.get('schemaVersion', 0)
    while version < SCHEMA_VERSION:
        data = MIGRATIONS[version](data)
        version = data['schemaVersion']
    return data


# ======================================================================
# Repositories
# ======================================================================

class ProfileRepository(ABC):

    @abstractmethod
    def load(self, username: str) -> Optional[dict]:
        """Stored profile for a user, or None if there is none."""

    @abstractmethod
    def save(self, data: dict) -> None:
        """Store a profile under data['username']."""


class MemoryRepository(ProfileRepository):

    def __init__(self):
        self.profiles: Dict[str, dict] = {}

    def load(self, username):
        stored = self.profiles.get(username)
        return copy.deepcopy(stored) if stored is not None else None

    def save(self, data):
        self.profiles[data['username']] = copy.deepcopy(data)


class JsonFileRepository(ProfileRepository):
    """All profiles in one JSON file keyed by username."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.get_settings().save_file

    def _read_all(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def load(self, username):
        return self._read_all().get(username)

    def save(self, data):
        profiles = self._read_all()
        profiles[data['username']] = data
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + '.tmp'
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(profiles, f, indent=2)
        os.replace(tmp_path, self.path)


class HttpRepository(ProfileRepository):
    """Profile server: GET {api}/load?username=..., POST {api}/save."""

    def __init__(self, api_url: Optional[str] = None, timeout: Optional[float] = None):
        settings = config.get_settings()
        self.api_url = (api_url or settings.api_url).rstrip('/')
        self.timeout = settings.request_timeout if timeout is None else timeout

    def load(self, username):
        resp = requests.get(f"{self.api_url}/load", params={'username': username},
                            timeout=self.timeout)
        resp.raise_for_status()
        payload = resp.json()
        return payload.get('data') if payload else None

    def save(self, data):
        resp = requests.post(f"{self.api_url}/save", json=data, timeout=self.timeout)
        resp.raise_for_status()


def create_repository(kind: Optional[str] = None) -> ProfileRepository:
    """Repository for a store kind; defaults to the configured store."""
    kind = kind or config.get_settings().store
    if kind == 'memory':
        return MemoryRepository()
    if kind == 'http':
        return HttpRepository()
    if kind == 'file':
        return JsonFileRepository()
    raise ValueError(f"Unknown profile store: {kind}")


class ProfileWriter:
    """
    Writes profile snapshots to a repository on one background thread.

    Snapshots submitted while a write is in flight replace each other, so
    a burst of saves (the end of a run) costs at most two writes and the
    newest data always lands last.
    """

    def __init__(self, repository: ProfileRepository):
        self.repository = repository
        self.failures = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='profile-writer')
        self._lock = threading.Lock()
        self._pending: Optional[dict] = None
        self._scheduled = False
        self._idle = threading.Event()
        self._idle.set()

    def submit(self, snapshot: dict) -> None:
        with self._lock:
            self._pending = snapshot
            if self._scheduled:
                return
            self._scheduled = True
            self._idle.clear()
            future = self._executor.submit(self._drain)
        future.add_done_callback(self._on_done)

    def _drain(self) -> None:
        while True:
            with self._lock:
                snapshot, self._pending = self._pending, None
                if snapshot is None:
                    self._scheduled = False
                    self._idle.set()
                    return
            try:
                self.repository.save(snapshot)
            except STORAGE_ERRORS as e:
                self.failures += 1
                logger.warning("Background save failed for %s: %s", snapshot.get('username'), e)

    def _on_done(self, future: Future) -> None:
        error = future.exception()
        if error is None:
            return
        logger.error("Profile writer crashed", exc_info=error)
        with self._lock:
            self._pending = None
            self._scheduled = False
            self._idle.set()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Wait until every submitted snapshot is written. False on timeout."""
        return self._idle.wait(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        if not self.flush(timeout):
            logger.warning("Profile writer still busy at shutdown; last save may be lost")
        self._executor.shutdown(wait=False)


# ======================================================================
# Profile
# ======================================================================

class Profile:
    """A player's persistent data plus the mutators the game uses on it."""

    def __init__(self, repository: ProfileRepository, username: str = config.DEFAULT_USERNAME,
                 writer: Optional[ProfileWriter] = None):
        self.repository = repository
        self.username = username
        self.writer = writer
        self.data = default_profile(username)

    def load(self) -> dict:
        try:
            stored = self.repository.load(self.username)
        except STORAGE_ERRORS as e:
            logger.warning("Profile load failed for %s: %s", self.username, e)
            return self.data

        if not stored:
            logger.info("No stored profile for %s, starting fresh", self.username)
            return self.data

        version = stored.get('schemaVersion', 0)
        merged = default_profile(self.username)
        merged.update(stored)
        if version < SCHEMA_VERSION:
            merged['schemaVersion'] = version
            merged = migrate(merged)
        self.data = merged
        logger.info("Loaded profile %s (schema v%d)", self.username, version)
        if version < SCHEMA_VERSION:
            logger.info("Migrated profile %s to schema v%d", self.username, SCHEMA_VERSION)
            self.save()
        return self.data

    def save(self) -> bool:
        """Write a snapshot. With a writer this only queues it and returns True."""
        snapshot = copy.deepcopy(self.data)
        if self.writer is not None:
            self.writer.submit(snapshot)
            return True
        try:
            self.repository.save(snapshot)
        except STORAGE_ERRORS as e:
            logger.warning("Profile save failed for %s: %s", self.username, e)
            return False
        return True

    # ------------------------------------------------------------------
    # Currency
    # ------------------------------------------------------------------

    def add_gold(self, amount: int):
        self.data['gold'] += amount
        self.save()

    def spend_gold(self, amount: int) -> bool:
        if self.data['gold'] < amount:
            return False
        self.data['gold'] -= amount
        self.save()
        return True

    def add_shop_tokens(self, amount: int) -> int:
        """Grant tokens (plus the rank token bonus) and the same amount of store XP."""
        bonus = math.floor(amount * get_token_bonus(self.data['storeRank']))
        total = amount + bonus
        self.data['shopTokens'] += total
        self.add_store_xp(total)
        return total

    def add_store_xp(self, amount: int) -> int:
        """Add store XP, granting upgrade points for every rank crossed. Returns ranks gained."""
        old_rank = self.data['storeRank']
        self.data['storeXP'] += amount
        new_rank = get_current_rank(self.data['storeXP'])
        if new_rank > old_rank:
            points = sum(c['upgrade_points'] for c in STORE_RANKS
                         if old_rank < c['rank'] <= new_rank)
            self.data['storeUpgradePoints'] += points
            self.data['storeRank'] = new_rank
            logger.info("Store rank %d -> %d (+%d upgrade points)", old_rank, new_rank, points)
        self.save()
        return new_rank - old_rank

    def add_high_score(self, wave: int, score: int):
        scores = self.data['highScores']
        scores.append({'wave': wave, 'score': score, 'date': time.time(),
                       'name': self.data['username']})
        scores.sort(key=lambda s: s['wave'], reverse=True)
        del scores[MAX_HIGH_SCORES:]
        self.save()

    # ------------------------------------------------------------------
    # Upgrades and unlocks
    # ------------------------------------------------------------------

    def buy_upgrade(self, upgrade_id: str, cost: int) -> bool:
        if self.data['gold'] < cost:
            return False
        self.data['gold'] -= cost
        upgrades = self.data['upgrades']
        upgrades[upgrade_id] = upgrades.get(upgrade_id, 0) + 1
        self.save()
        return True

    def buy_store_upgrade(self, upgrade_id: str, point_cost: int) -> bool:
        if self.data['storeUpgradePoints'] < point_cost:
            return False
        self.data['storeUpgradePoints'] -= point_cost
        levels = self.data['storeUpgrades']
        levels[upgrade_id] = levels.get(upgrade_id, 0) + 1
        self.save()
        return True

    def unlock_world(self, world_id: str) -> bool:
        worlds = self.data['unlockedWorlds']
        if world_id in worlds:
            return False
        worlds.append(world_id)
        self.save()
        return True

    # ------------------------------------------------------------------
    # Inventory
    # ------------------------------------------------------------------

    def get_item_by_uid(self, uid: Optional[str]) -> Optional[dict]:
        if not uid:
            return None
        for item in self.data['inventory']['items']:
            if item['uid'] == uid:
                return item
        return None

    def remove_item(self, uid: str) -> Optional[dict]:
        items = self.data['inventory']['items']
        for i, item in enumerate(items):
            if item['uid'] == uid:
                return items.pop(i)
        return None

    def equip_item(self, uid: str, gem_slot: Optional[int] = None) -> bool:
        item = self.get_item_by_uid(uid)
        if item is None:
            return False
        loadout = self.data['loadout']
        if item['category'] == STAT_GEM:
            gems = loadout['statGems']
            if uid in gems:
                return True
            if gem_slot is None:
                gem_slot = gems.index(None) if None in gems else 0
            gems[gem_slot] = uid
        else:
            loadout[LOADOUT_SLOTS[item['category']]] = uid
        self.save()
        return True

    def unequip_by_uid(self, uid: str):
        loadout = self.data['loadout']
        for slot in LOADOUT_SLOTS.values():
            if loadout.get(slot) == uid:
                loadout[slot] = None
        loadout['statGems'] = [None if ref == uid else ref for ref in loadout['statGems']]

    def sell_item(self, uid: str, sell_bonus: float = 0.0) -> dict:
        """Sell one copy of an item; the last copy also leaves the loadout."""
        item = self.get_item_by_uid(uid)
        if item is None:
            return {'success': False, 'error': 'Item not found'}
        price = math.floor(item['sellPrice'] * (1 + sell_bonus))
        if item.get('count', 1) > 1:
            item['count'] -= 1
        else:
            self.unequip_by_uid(uid)
            self.remove_item(uid)
        self.data['gold'] += price
        self.save()
        return {'success': True, 'gold': price}

    def get_equipped(self, slot: str) -> Optional[dict]:
        return self.get_item_by_uid(self.data['loadout'].get(slot))

    def get_equipped_gems(self) -> List[dict]:
        gems = (self.get_item_by_uid(ref) for ref in self.data['loadout']['statGems'])
        return [gem for gem in gems if gem is not None]
