# earnings/core/tiers.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence


@dataclass(frozen=True)
class CommissionTier:
    name: str
    threshold: Decimal  # current-month attributed sales needed (inclusive)
    rate: Decimal       # percent


# Evaluated top-down: first threshold the monthly sales meet or exceed wins.
# Adding a tier is a data change only.
COMMISSION_TIERS: tuple[CommissionTier, ...] = (
    CommissionTier(name="Platinum", threshold=Decimal("30000"), rate=Decimal("20")),
    CommissionTier(name="Gold", threshold=Decimal("15000"), rate=Decimal("15")),
    CommissionTier(name="Silver", threshold=Decimal("5000"), rate=Decimal("10")),
)

# Below every threshold
BASE_TIER = CommissionTier(name="Bronze", threshold=Decimal("0"), rate=Decimal("5"))


def _ordered(tiers: Sequence[CommissionTier]) -> list[CommissionTier]:
    return sorted(tiers, key=lambda t: t.threshold, reverse=True)


def resolve_tier(
    monthly_sales: Decimal,
    *,
    tiers: Sequence[CommissionTier] = COMMISSION_TIERS,
    base: CommissionTier = BASE_TIER,
) -> CommissionTier:
    """
    Highest tier whose threshold <= monthly_sales; `base` when below all.
    """
    for tier in _ordered(tiers):
        if monthly_sales >= tier.threshold:
            return tier
    return base


def tier_by_name(
    name: str | None,
    *,
    tiers: Sequence[CommissionTier] = COMMISSION_TIERS,
    base: CommissionTier = BASE_TIER,
) -> CommissionTier | None:
    n = normalize_tier(name)
    for tier in (*tiers, base):
        if normalize_tier(tier.name) == n:
            return tier
    return None


def normalize_tier(value: str | None) -> str:
    return (value or "").strip().lower()


def next_tier(
    current_tier: str | None,
    monthly_sales: Decimal,
    *,
    allow_downgrade: bool = True,
    tiers: Sequence[CommissionTier] = COMMISSION_TIERS,
    base: CommissionTier = BASE_TIER,
) -> CommissionTier:
    """
    Tier the partner should hold after evaluating `monthly_sales`.

    With allow_downgrade=False a partner keeps a higher current tier even when
    sales fall below its threshold (ratchet-up within the period). Unknown
    current tiers are treated as base.
    """
    computed = resolve_tier(monthly_sales, tiers=tiers, base=base)
    if allow_downgrade:
        return computed

    current = tier_by_name(current_tier, tiers=tiers, base=base) or base
    if current.threshold > computed.threshold:
        return current
    return computed
