# tests/test_sale_created.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from earnings.core.commission import (
    SALE_DUPLICATE,
    SALE_NO_REFERRAL,
    SALE_RECORDED,
    SALE_UNATTRIBUTED,
    process_sale_created,
)
from earnings.core.money import period_key
from earnings.models.commission_record import CommissionRecord
from earnings.models.partner import Partner, PartnerMonthlySales
from earnings.models.referral_click import ReferralClick
from earnings.models.seasonal_campaign import SeasonalCampaign


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


async def count_commissions(db, sale_id: str) -> int:
    return await db.scalar(select(func.count()).select_from(CommissionRecord).where(CommissionRecord.sale_id == sale_id))


async def reload(db, model, obj_id):
    stmt = select(model).where(model.id == obj_id).execution_options(populate_existing=True)
    return (await db.execute(stmt)).scalar_one()


@pytest.mark.asyncio
async def test_sale_with_referral_creates_pending_commission(db, make_partner):
    partner = await make_partner(code="VIDEO1", rate="5", video_bonus="0.5")

    outcome = await process_sale_created(db, sale_id="sale-1", total=Decimal("1000"), referral_code="VIDEO1")
    assert outcome == SALE_RECORDED

    record = (await db.execute(select(CommissionRecord).where(CommissionRecord.sale_id == "sale-1"))).scalar_one()
    assert record.partner_id == partner.id
    assert record.status == "pending"
    assert record.base_rate == Decimal("5")
    assert record.effective_rate == Decimal("7.5")
    assert record.commission_amount == Decimal("75.00")
    assert Decimal(record.bonus_multipliers["video_content"]) == Decimal("0.5")
    assert record.bonus_multipliers["campaign_id"] is None


@pytest.mark.asyncio
async def test_duplicate_event_creates_one_commission_and_counts_volume_once(db, make_partner):
    partner = await make_partner(code="DUPE01")

    first = await process_sale_created(db, sale_id="sale-dup", total=Decimal("200"), referral_code="DUPE01")
    second = await process_sale_created(db, sale_id="sale-dup", total=Decimal("200"), referral_code="DUPE01")

    assert first == SALE_RECORDED
    assert second == SALE_DUPLICATE
    assert await count_commissions(db, "sale-dup") == 1

    p = await reload(db, Partner, partner.id)
    assert p.total_revenue == Decimal("200.00")
    assert p.total_orders == 1

    monthly = (
        await db.execute(
            select(PartnerMonthlySales)
            .where(PartnerMonthlySales.partner_id == partner.id)
            .where(PartnerMonthlySales.period == period_key())
        )
    ).scalar_one()
    assert monthly.amount == Decimal("200.00")
    assert monthly.order_count == 1


@pytest.mark.asyncio
async def test_monthly_sales_accumulate_across_sales(db, make_partner):
    partner = await make_partner(code="ACCUM1")

    await process_sale_created(db, sale_id="a", total=Decimal("100.25"), referral_code="ACCUM1")
    await process_sale_created(db, sale_id="b", total=Decimal("99.75"), referral_code="accum1")

    monthly = (
        await db.execute(
            select(PartnerMonthlySales)
            .where(PartnerMonthlySales.partner_id == partner.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert monthly.amount == Decimal("200.00")
    assert monthly.order_count == 2


@pytest.mark.asyncio
async def test_sale_without_code_is_a_noop(db):
    assert await process_sale_created(db, sale_id="plain", total=Decimal("50")) == SALE_NO_REFERRAL
    assert await process_sale_created(db, sale_id="plain", total=Decimal("50"), referral_code="  ") == SALE_NO_REFERRAL
    assert await count_commissions(db, "plain") == 0


@pytest.mark.asyncio
async def test_unknown_or_inactive_code_is_a_noop(db, make_partner):
    await make_partner(code="GONE01", status="inactive")

    assert await process_sale_created(db, sale_id="s1", total=Decimal("50"), referral_code="NOPE99") == SALE_UNATTRIBUTED
    assert await process_sale_created(db, sale_id="s2", total=Decimal("50"), referral_code="GONE01") == SALE_UNATTRIBUTED
    assert await count_commissions(db, "s1") == 0
    assert await count_commissions(db, "s2") == 0


@pytest.mark.asyncio
async def test_oldest_unconverted_click_is_converted(db, make_partner):
    partner = await make_partner(code="CLICK1")
    now = utcnow()
    older = ReferralClick(partner_id=partner.id, customer_id="cust-1", clicked_at=now - timedelta(days=2))
    newer = ReferralClick(partner_id=partner.id, customer_id="cust-1", clicked_at=now - timedelta(hours=1))
    other = ReferralClick(partner_id=partner.id, customer_id="cust-2", clicked_at=now - timedelta(days=3))
    db.add_all([older, newer, other])
    await db.commit()

    await process_sale_created(
        db, sale_id="conv-1", total=Decimal("300"), referral_code="CLICK1", customer_id="cust-1"
    )

    older = await reload(db, ReferralClick, older.id)
    newer = await reload(db, ReferralClick, newer.id)
    other = await reload(db, ReferralClick, other.id)
    assert older.converted is True
    assert older.sale_id == "conv-1"
    assert older.conversion_amount == Decimal("300.00")
    assert older.converted_at is not None
    assert newer.converted is False
    assert other.converted is False


@pytest.mark.asyncio
async def test_redelivered_sale_converts_only_one_click(db, make_partner):
    partner = await make_partner(code="REDLV1")
    now = utcnow()
    first = ReferralClick(partner_id=partner.id, customer_id="c1", clicked_at=now - timedelta(days=2))
    second = ReferralClick(partner_id=partner.id, customer_id="c1", clicked_at=now - timedelta(days=1))
    db.add_all([first, second])
    await db.commit()

    assert await process_sale_created(
        db, sale_id="dup-1", total=Decimal("250"), referral_code="REDLV1", customer_id="c1"
    ) == SALE_RECORDED
    assert await process_sale_created(
        db, sale_id="dup-1", total=Decimal("250"), referral_code="REDLV1", customer_id="c1"
    ) == SALE_DUPLICATE

    converted = await db.scalar(
        select(func.count()).select_from(ReferralClick).where(ReferralClick.sale_id == "dup-1")
    )
    assert converted == 1

    second = await reload(db, ReferralClick, second.id)
    assert second.converted is False
    assert second.sale_id is None


@pytest.mark.asyncio
async def test_commission_is_created_without_any_click(db, make_partner):
    await make_partner(code="NOCLIK")
    outcome = await process_sale_created(
        db, sale_id="no-click", total=Decimal("80"), referral_code="NOCLIK", customer_id="cust-9"
    )
    assert outcome == SALE_RECORDED
    assert await count_commissions(db, "no-click") == 1


@pytest.mark.asyncio
async def test_highest_active_campaign_bonus_applies(db, make_partner):
    await make_partner(code="SEASON", rate="10")
    now = utcnow()
    db.add_all(
        [
            SeasonalCampaign(
                name="Spring",
                is_active=True,
                starts_at=now - timedelta(days=5),
                ends_at=now + timedelta(days=5),
                bonus_multiplier=Decimal("0.10"),
            ),
            SeasonalCampaign(
                name="Heritage",
                is_active=True,
                starts_at=now - timedelta(days=1),
                ends_at=now + timedelta(days=1),
                bonus_multiplier=Decimal("0.50"),
            ),
            SeasonalCampaign(
                name="Switched off",
                is_active=False,
                starts_at=now - timedelta(days=1),
                ends_at=now + timedelta(days=1),
                bonus_multiplier=Decimal("2.00"),
            ),
            SeasonalCampaign(
                name="Expired",
                is_active=True,
                starts_at=now - timedelta(days=30),
                ends_at=now - timedelta(days=20),
                bonus_multiplier=Decimal("3.00"),
            ),
        ]
    )
    await db.commit()

    await process_sale_created(db, sale_id="seasonal-1", total=Decimal("1000"), referral_code="SEASON")

    record = (await db.execute(select(CommissionRecord).where(CommissionRecord.sale_id == "seasonal-1"))).scalar_one()
    assert record.effective_rate == Decimal("15")
    assert record.commission_amount == Decimal("150.00")
    assert Decimal(record.bonus_multipliers["seasonal"]) == Decimal("0.5")
    assert record.bonus_multipliers["campaign_id"] is not None


@pytest.mark.asyncio
async def test_rate_change_does_not_alter_recorded_commission(db, make_partner):
    partner = await make_partner(code="SNAP01", rate="5")
    await process_sale_created(db, sale_id="snap", total=Decimal("1000"), referral_code="SNAP01")

    partner.commission_rate = Decimal("20")
    await db.commit()

    record = (
        await db.execute(
            select(CommissionRecord)
            .where(CommissionRecord.sale_id == "snap")
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert record.base_rate == Decimal("5")
    assert record.commission_amount == Decimal("50.00")


@pytest.mark.asyncio
async def test_sale_created_endpoint_always_accepts(client, make_user, make_partner, auth_headers):
    admin = await make_user(admin_role="STAFF")
    await make_partner(code="HTTP01")

    ok = await client.post(
        "/api/v1/events/sale-created",
        json={"sale_id": "web-1", "total": "120.00", "referral_code": "http01"},
        headers=auth_headers(admin),
    )
    assert ok.status_code == 202
    assert ok.json()["status"] == SALE_RECORDED

    bad_total = await client.post(
        "/api/v1/events/sale-created",
        json={"sale_id": "web-2", "total": "-5", "referral_code": "HTTP01"},
        headers=auth_headers(admin),
    )
    assert bad_total.status_code == 202
    assert bad_total.json()["status"] == "failed"


@pytest.mark.asyncio
async def test_sale_created_endpoint_requires_platform_admin(client, make_user, auth_headers):
    user = await make_user()

    anon = await client.post("/api/v1/events/sale-created", json={"sale_id": "x", "total": "1"})
    assert anon.status_code == 401
    assert anon.json()["detail"]["code"] == "UNAUTHENTICATED"

    forbidden = await client.post(
        "/api/v1/events/sale-created",
        json={"sale_id": "x", "total": "1"},
        headers=auth_headers(user),
    )
    assert forbidden.status_code == 403
