# tests/test_vendor_split.py
from __future__ import annotations

from decimal import Decimal

import pytest

from earnings.core.vendor_split import split_vendor_payout


def test_quarter_store_cut():
    split = split_vendor_payout(Decimal("500"), Decimal("25"))
    assert split.store_cut == Decimal("125.00")
    assert split.net_payout == Decimal("375.00")
    assert split.vendor_share_percent == Decimal("75")


def test_zero_rate_pays_vendor_everything():
    split = split_vendor_payout(Decimal("180.50"), Decimal("0"))
    assert split.store_cut == Decimal("0.00")
    assert split.net_payout == Decimal("180.50")


@pytest.mark.parametrize("rate", ["100", "150", "1000"])
def test_rate_at_or_above_hundred_nets_exactly_zero(rate):
    split = split_vendor_payout(Decimal("500"), Decimal(rate))
    assert split.net_payout == Decimal("0.00")
    assert split.vendor_share_percent == Decimal("0")


def test_cut_is_rounded_half_up():
    # 10.05 x 12.5% = 1.25625
    split = split_vendor_payout(Decimal("10.05"), Decimal("12.5"))
    assert split.store_cut == Decimal("1.26")
    assert split.net_payout == Decimal("8.79")


@pytest.mark.parametrize("gross, rate", [("-1", "10"), ("100", "-0.01"), ("100", "1000.01")])
def test_out_of_range_inputs_are_rejected(gross, rate):
    with pytest.raises(ValueError):
        split_vendor_payout(Decimal(gross), Decimal(rate))
