"""
Tests for the store upgrade tree.
"""
import pytest

from wave_survivor.store_tree import (
    BRANCHES, STORE_UPGRADES, StoreUpgradeTree, get_upgrade, get_upgrades_by_branch,
)


@pytest.fixture
def tree(profile):
    profile.data['storeRank'] = 10
    profile.data['storeUpgradePoints'] = 20
    return StoreUpgradeTree(profile)


class TestCatalogue:
    """Static node table."""

    def test_three_by_three(self):
        """Three branches of three rows."""
        for branch in BRANCHES:
            assert [n['row'] for n in get_upgrades_by_branch(branch)] == [1, 2, 3]
        assert len(STORE_UPGRADES) == 9

    def test_max_level_matches_effects(self):
        """A node has one level per effect."""
        assert get_upgrade('stat_stability')['max_level'] == 2
        assert get_upgrade('run_dividend')['max_level'] == 3


class TestPurchase:
    """Buying nodes."""

    def test_purchase_spends_point(self, tree, profile):
        """A purchase raises the level and costs one point."""
        assert tree.purchase('better_sell_prices')
        assert tree.get_level('better_sell_prices') == 1
        assert profile.data['storeUpgradePoints'] == 19
        assert tree.get_sell_price_bonus() == pytest.approx(0.10)

    def test_rank_gate(self, profile):
        """Nodes above the store rank are locked."""
        profile.data['storeUpgradePoints'] = 5
        tree = StoreUpgradeTree(profile)
        assert tree.can_purchase('better_sell_prices') == {
            'can': False, 'reason': 'Requires Store Rank 2'}
        assert not tree.purchase('better_sell_prices')

    def test_points_needed(self, tree, profile):
        """No points, no purchase."""
        profile.data['storeUpgradePoints'] = 0
        assert tree.can_purchase('run_dividend')['reason'] == 'Not enough Upgrade Points'

    def test_max_level(self, tree):
        """Maxed nodes cannot be bought again."""
        for _ in range(2):
            assert tree.purchase('stat_stability')
        assert tree.can_purchase('stat_stability')['reason'] == 'Already at max level'

    def test_conflict_once_maxed(self, tree):
        """Crate discounts lock out once Better Sell Prices is maxed."""
        tree.purchase('better_sell_prices')
        assert tree.can_purchase('crate_discounts')['can']

        tree.purchase('better_sell_prices')
        tree.purchase('better_sell_prices')
        assert tree.can_purchase('crate_discounts') == {
            'can': False, 'reason': 'Conflicts with Better Sell Prices'}

    def test_unknown(self, tree):
        """Unknown nodes are reported."""
        assert tree.can_purchase('nope')['reason'] == 'Upgrade not found'
        assert not tree.is_unlocked('nope')


class TestEffects:
    """Derived values."""

    def test_defaults(self, tree):
        """Nothing bought means neutral values."""
        assert tree.get_crate_discount() == 0.0
        assert tree.get_run_gold_bonus() == 0.0
        assert tree.get_stat_stability() == 0.0
        assert tree.get_duplicate_insurance() is None
        assert tree.get_rarity_floor('BASIC_CRATE') is None
        assert tree.get_all_active_effects() == {}

    def test_rarity_floor_levels(self, tree, profile):
        """Each floor level covers its own crate; level 3 adds mythic chance."""
        profile.data['storeUpgrades']['rarity_floor'] = 2
        assert tree.get_rarity_floor('BASIC_CRATE') == 'RARE'
        assert tree.get_rarity_floor('SILVER_CRATE') == 'EPIC'
        assert tree.get_rarity_floor('GOLD_CRATE') is None
        assert tree.get_mythic_boost('GOLD_CRATE') == 0.0

        profile.data['storeUpgrades']['rarity_floor'] = 3
        assert tree.get_mythic_boost('GOLD_CRATE') == 0.01
        assert tree.get_mythic_boost('LEGENDARY_CRATE') == 0.01
        assert tree.get_mythic_boost('BASIC_CRATE') == 0.0

    def test_duplicate_insurance(self, tree, profile):
        """Insurance reports the active threshold and payout."""
        profile.data['storeUpgrades']['duplicate_insurance'] = 2
        assert tree.get_duplicate_insurance() == {'threshold': 4, 'tokens': 15}

    def test_services(self, tree, profile):
        """Service nodes unlock at level 1 and list owned effects."""
        assert not tree.is_service_unlocked('REFORGE')
        profile.data['storeUpgrades']['reforge_specialist'] = 2
        assert tree.is_service_unlocked('REFORGE')
        enhancements = tree.get_service_enhancements('REFORGE')
        assert enhancements['level'] == 2
        assert len(enhancements['effects']) == 2
        assert not tree.is_service_unlocked('BOGUS')

    def test_tree_display(self, tree):
        """The display groups nodes per branch with purchase state."""
        display = tree.get_tree_display()
        assert set(display) == set(BRANCHES)
        first = display['ECONOMY'][0]
        assert first['id'] == 'better_sell_prices'
        assert first['current_level'] == 0
        assert first['can_purchase']
        assert first['next_effect']['level'] == 1
