# earnings/core/vendor_split.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from earnings.core.money import ZERO, quantize_money, to_decimal

# Bounds accepted for a store's commission on vendor sales (percent)
MIN_STORE_COMMISSION_RATE = Decimal("0")
MAX_STORE_COMMISSION_RATE = Decimal("1000")


@dataclass(frozen=True)
class VendorSplit:
    gross_amount: Decimal
    commission_rate: Decimal
    store_cut: Decimal
    net_payout: Decimal

    @property
    def vendor_share_percent(self) -> Decimal:
        if self.commission_rate >= 100:
            return Decimal("0")
        return Decimal("100") - self.commission_rate


def split_vendor_payout(gross_amount, commission_rate) -> VendorSplit:
    """
    Split a vendor's gross payout between the hosting store and the vendor.

    store cut = gross x rate / 100; vendor net = gross - store cut, never
    below zero (a rate >= 100% leaves the vendor exactly 0.00).
    """
    gross = to_decimal(gross_amount)
    rate = to_decimal(commission_rate)
    if gross < 0:
        raise ValueError("gross_amount must be >= 0")
    if rate < MIN_STORE_COMMISSION_RATE or rate > MAX_STORE_COMMISSION_RATE:
        raise ValueError(
            f"commission_rate must be between {MIN_STORE_COMMISSION_RATE} and {MAX_STORE_COMMISSION_RATE}"
        )

    store_cut = quantize_money(gross * rate / Decimal("100"))
    net = quantize_money(gross) - store_cut
    if net < ZERO:
        net = ZERO

    return VendorSplit(
        gross_amount=quantize_money(gross),
        commission_rate=rate,
        store_cut=store_cut,
        net_payout=net,
    )
