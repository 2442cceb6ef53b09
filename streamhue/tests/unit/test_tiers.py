"""
Unit tests for the tier resolver.
"""

import pytest
from streamhue.core.errors import NoMatchingTier
from streamhue.core.tiers import resolve
from streamhue.core.types import EffectSpec, Tier

A = EffectSpec(color="#0000FF")
B = EffectSpec(color="#00FF00")
C = EffectSpec(color="#FF0000")


@pytest.fixture
def tiers():
    return [Tier(0, A), Tier(5, B), Tier(50, C)]


class TestResolve:
    """Tests for resolve."""

    def test_below_next_threshold(self, tiers):
        assert resolve(tiers, 49) is B

    def test_exact_threshold(self, tiers):
        assert resolve(tiers, 50) is C

    def test_above_highest(self, tiers):
        assert resolve(tiers, 10_000) is C

    def test_negative_uses_zero_tier(self, tiers):
        assert resolve(tiers, -1) is A

    def test_negative_without_zero_tier_raises(self):
        with pytest.raises(NoMatchingTier):
            resolve([Tier(5, B), Tier(50, C)], -1)

    def test_below_every_threshold_raises(self):
        with pytest.raises(NoMatchingTier) as exc_info:
            resolve([Tier(5, B)], 4.99)
        assert exc_info.value.magnitude == 4.99

    def test_unsorted_input(self):
        assert resolve([Tier(50, C), Tier(0, A), Tier(5, B)], 7) is B

    def test_tie_goes_to_last_declared(self):
        first = EffectSpec(color="#111111")
        second = EffectSpec(color="#222222")
        assert resolve([Tier(10, first), Tier(0, A), Tier(10, second)], 10) is second

    def test_empty_tiers_raise(self):
        with pytest.raises(NoMatchingTier):
            resolve([], 100)

    def test_nan_raises(self, tiers):
        with pytest.raises(NoMatchingTier):
            resolve(tiers, float("nan"))

    def test_donation_tiers(self):
        small, medium, large = (EffectSpec(color=c) for c in ("#0000FF", "#00FF00", "#FF0000"))
        tiers = [Tier(5, small), Tier(50, medium), Tier(100, large)]
        assert resolve(tiers, 75) is medium
