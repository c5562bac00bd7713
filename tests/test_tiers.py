# tests/test_tiers.py
from __future__ import annotations

from decimal import Decimal

import pytest

from earnings.core.tiers import BASE_TIER, CommissionTier, next_tier, resolve_tier


@pytest.mark.parametrize(
    "sales, expected_name, expected_rate",
    [
        ("0", "Bronze", "5"),
        ("4999.99", "Bronze", "5"),
        ("5000", "Silver", "10"),
        ("14999.99", "Silver", "10"),
        ("15000", "Gold", "15"),
        ("16000", "Gold", "15"),
        ("30000", "Platinum", "20"),
        ("250000", "Platinum", "20"),
    ],
)
def test_resolve_tier_thresholds(sales, expected_name, expected_rate):
    tier = resolve_tier(Decimal(sales))
    assert tier.name == expected_name
    assert tier.rate == Decimal(expected_rate)


def test_below_all_thresholds_is_base_tier():
    assert resolve_tier(Decimal("10")) is BASE_TIER


def test_custom_tier_list_is_evaluated_top_down_regardless_of_order():
    tiers = (
        CommissionTier(name="Low", threshold=Decimal("100"), rate=Decimal("6")),
        CommissionTier(name="High", threshold=Decimal("1000"), rate=Decimal("8")),
    )
    assert resolve_tier(Decimal("5000"), tiers=tiers).name == "High"
    assert resolve_tier(Decimal("500"), tiers=tiers).name == "Low"


def test_downgrade_allowed_follows_sales():
    assert next_tier("Gold", Decimal("6000"), allow_downgrade=True).name == "Silver"


def test_ratchet_keeps_higher_current_tier():
    assert next_tier("Gold", Decimal("6000"), allow_downgrade=False).name == "Gold"
    assert next_tier("Silver", Decimal("31000"), allow_downgrade=False).name == "Platinum"


def test_unknown_current_tier_is_treated_as_base():
    assert next_tier("legacy", Decimal("0"), allow_downgrade=False).name == "Bronze"
