"""
Tests for rarity rolls, item instances, stacking and crates.
"""
import pytest

from wave_survivor.gacha import (
    GachaSystem, generate_item_instance, roll_item, roll_rarity, roll_stat_value,
)
from wave_survivor.items import CRATE_TYPES, ITEMS, RARITY_ORDER, get_item_def


class TestRolls:
    """Pure roll helpers."""

    def test_rarity_bounds(self, fixed_random):
        """The lowest roll picks the first weighted rarity."""
        weights = CRATE_TYPES['BASIC_CRATE']['weights']
        fixed_random(0.0)
        assert roll_rarity(weights) == 'COMMON'
        fixed_random(0.99999)
        assert roll_rarity(weights) == 'MYTHIC'

    def test_zero_weight_never_rolls(self, fixed_random):
        """A zero-weight tier is skipped."""
        fixed_random(0.6)
        assert roll_rarity({'COMMON': 0, 'RARE': 1}) == 'RARE'

    def test_mythic_boost_adds_weight(self, fixed_random):
        """The boost adds to the mythic weight."""
        fixed_random(0.999)
        weights = {'COMMON': 99, 'MYTHIC': 0}
        assert roll_rarity(weights) == 'COMMON'
        assert roll_rarity(weights, mythic_boost=0.01) == 'MYTHIC'
        assert weights['MYTHIC'] == 0

    def test_crate_tables_sum_to_100(self):
        """Unboosted crate weights are percentages."""
        for crate in CRATE_TYPES.values():
            assert sum(crate['weights'].values()) == pytest.approx(100)

    def test_boosted_roll_covers_whole_table(self, fixed_random):
        """With a boost the roll spans the enlarged total, so the top of it is mythic."""
        fixed_random(0.995)
        assert roll_rarity({'COMMON': 100}, mythic_boost=0.01) == 'MYTHIC'

    def test_roll_item_matches_rarity(self):
        """Items come from the requested tier."""
        for rarity in RARITY_ORDER:
            assert roll_item(rarity)['rarity'] == rarity

    def test_roll_item_empty_pool(self):
        """An unknown tier falls back to the first item."""
        assert roll_item('SUPREME') is ITEMS[0]

    @pytest.mark.parametrize('r, expected', [(0.0, 16), (0.5, 20), (1.0, 24)])
    def test_stat_variance_large(self, fixed_random, r, expected):
        """Values above 10 round to whole numbers."""
        fixed_random(r)
        assert roll_stat_value(20, 0.2) == expected

    def test_stat_variance_small(self, fixed_random):
        """Small values keep one decimal."""
        fixed_random(0.0)
        assert roll_stat_value(2, 0.2) == 1.6

    def test_stability_cuts_bottom(self, fixed_random):
        """Stability remaps the lowest roll upward."""
        fixed_random(0.0)
        assert roll_stat_value(20, 0.2, stability=0.5) == 20


class TestInstances:
    """Item instances."""

    def test_instance_fields(self):
        """Instances carry a uid, count and copied fields."""
        item = generate_item_instance(get_item_def('w_plasma'))
        assert item['id'] == 'w_plasma'
        assert item['count'] == 1
        assert item['isNew']
        assert item['stats'] is None
        assert item['sellPrice'] == 20
        assert item['uid'] != generate_item_instance(get_item_def('w_plasma'))['uid']

    def test_gem_stats_vary(self, fixed_random):
        """Gem stats are rolled and the description follows."""
        fixed_random(1.0)
        gem = generate_item_instance(get_item_def('g_hp_s'))
        assert gem['stats'] == {'maxHp': 12}
        assert gem['desc'] == '+12 HP MAXHP'
        assert get_item_def('g_hp_s')['stats'] == {'maxHp': 10}


class TestInventory:
    """Stacking and duplicate insurance."""

    def test_duplicates_stack(self, profile):
        """Identical items stack into one entry."""
        gacha = GachaSystem(profile)
        first = generate_item_instance(get_item_def('w_neon'))
        second = generate_item_instance(get_item_def('w_neon'))
        gacha.add_to_inventory(first)
        gacha.add_to_inventory(second)

        items = profile.data['inventory']['items']
        assert len(items) == 1
        assert items[0]['count'] == 2
        assert second['isDuplicate']

    def test_different_stats_do_not_stack(self, profile):
        """Gems with different rolls are separate entries."""
        gacha = GachaSystem(profile)
        a = generate_item_instance(get_item_def('g_dmg_s'))
        b = dict(a, uid='other', stats={'damage': 99})
        gacha.add_to_inventory(a)
        gacha.add_to_inventory(b)
        assert len(profile.data['inventory']['items']) == 2

    def test_duplicate_insurance(self, profile):
        """Copies beyond the threshold turn into tokens."""
        profile.data['storeUpgrades']['duplicate_insurance'] = 3
        gacha = GachaSystem(profile)
        tokens = [gacha.add_to_inventory(generate_item_instance(get_item_def('w_neon')))
                  for _ in range(5)]

        assert tokens == [0, 0, 0, 25, 25]
        assert profile.data['inventory']['items'][0]['count'] == 3
        assert profile.data['shopTokens'] == 50


class TestCrates:
    """Opening and buying crates."""

    def test_open_crate_adds_items(self, profile):
        """A silver crate yields three items into the inventory."""
        rewards = GachaSystem(profile).open_crate('SILVER_CRATE')
        assert len(rewards) == 3
        total = sum(item['count'] for item in profile.data['inventory']['items'])
        assert total == 3

    def test_unknown_crate_raises(self, profile):
        """Opening an unknown crate is a programming error."""
        with pytest.raises(KeyError):
            GachaSystem(profile).open_crate('NOPE')

    def test_rarity_floor(self, profile, fixed_random):
        """The floor upgrades the worst roll when nothing reached it."""
        profile.data['storeUpgrades']['rarity_floor'] = 1
        fixed_random(0.0)
        rewards = GachaSystem(profile).open_crate('BASIC_CRATE')
        assert rewards[0]['rarity'] == 'RARE'

    def test_purchase(self, profile):
        """Buying spends gold and opens the crate."""
        profile.add_gold(150)
        result = GachaSystem(profile).purchase_crate('BASIC_CRATE')
        assert result['success']
        assert result['cost'] == 100
        assert len(result['items']) == 1
        assert profile.data['gold'] == 50

    def test_purchase_discount(self, profile):
        """Crate discounts lower the price."""
        profile.data['storeUpgrades']['crate_discounts'] = 3
        assert GachaSystem(profile).crate_cost('SILVER_CRATE') == 450

    def test_purchase_locked(self, profile):
        """Crates above the store rank are locked."""
        profile.add_gold(5000)
        result = GachaSystem(profile).purchase_crate('GOLD_CRATE')
        assert result == {'success': False, 'error': 'Crate locked. Reach Store Rank 4.'}

    def test_purchase_poor(self, profile):
        """Not enough gold is reported with the price."""
        result = GachaSystem(profile).purchase_crate('BASIC_CRATE')
        assert result['error'] == 'Not enough gold. Need 100 gold.'

    def test_purchase_unknown(self, profile):
        """Unknown crates are rejected, not raised."""
        assert GachaSystem(profile).purchase_crate('NOPE')['error'] == 'Unknown crate'
