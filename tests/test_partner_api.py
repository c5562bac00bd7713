# tests/test_partner_api.py
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from earnings.core.commission import process_sale_created
from earnings.core.finalizer import finalize_commission


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@pytest.mark.asyncio
async def test_partner_stats_aggregates(client, db, make_user, make_partner, auth_headers):
    owner = await make_user()
    partner = await make_partner(user=owner, code="STATS1", rate="10")

    for customer in ("c1", "c2", "c3", "c4"):
        r = await client.post("/api/v1/partners/clicks", json={"referral_code": "stats1", "customer_id": customer})
        assert r.status_code == 201

    await process_sale_created(db, sale_id="st-1", total=Decimal("1000"), referral_code="STATS1", customer_id="c1")
    await process_sale_created(db, sale_id="st-2", total=Decimal("500"), referral_code="STATS1", customer_id="c2")
    await finalize_commission(db, "st-1")

    resp = await client.get(f"/api/v1/partners/{partner.id}/stats", headers=auth_headers(owner))
    assert resp.status_code == 200
    body = resp.json()

    assert body["partner"]["referral_code"] == "STATS1"
    assert body["commission_count"] == 2
    assert Decimal(body["total_commissions"]) == Decimal("150.00")
    assert Decimal(body["pending_commissions"]) == Decimal("50.00")
    assert Decimal(body["completed_commissions"]) == Decimal("100.00")
    assert body["total_clicks"] == 4
    assert body["conversions"] == 2
    assert Decimal(body["conversion_rate"]) == Decimal("50.00")
    assert body["tier"] == "Bronze"
    assert Decimal(body["current_period_sales"]) == Decimal("1500.00")
    assert Decimal(body["pending_balance"]) == Decimal("100.00")
    assert Decimal(body["total_earned"]) == Decimal("100.00")


@pytest.mark.asyncio
async def test_partner_stats_access_rules(client, make_user, make_partner, auth_headers):
    owner = await make_user()
    stranger = await make_user()
    admin = await make_user(admin_role="STAFF")
    partner = await make_partner(user=owner)

    assert (await client.get(f"/api/v1/partners/{partner.id}/stats")).status_code == 401
    assert (await client.get(f"/api/v1/partners/{partner.id}/stats", headers=auth_headers(stranger))).status_code == 403
    assert (await client.get(f"/api/v1/partners/{partner.id}/stats", headers=auth_headers(admin))).status_code == 200

    missing = await client.get(f"/api/v1/partners/{uuid.uuid4()}/stats", headers=auth_headers(admin))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "PARTNER_NOT_FOUND"

    malformed = await client.get("/api/v1/partners/not-a-uuid/stats", headers=auth_headers(admin))
    assert malformed.status_code == 400
    assert malformed.json()["detail"]["code"] == "INVALID_PARTNER_ID"


@pytest.mark.asyncio
async def test_click_with_unknown_code_is_not_found(client):
    resp = await client.post("/api/v1/partners/clicks", json={"referral_code": "ZZZZZZ", "customer_id": "c"})
    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "REFERRAL_CODE_NOT_FOUND"


@pytest.mark.asyncio
async def test_admin_registers_partner_with_generated_code(client, make_user, auth_headers):
    admin = await make_user(admin_role="SUPER_ADMIN")

    resp = await client.post(
        "/api/v1/platform/partners",
        json={"email": "Creator@Example.com", "display_name": "Creator", "video_content_bonus": "0.5"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert len(body["referral_code"]) == 6
    assert body["referral_code"] == body["referral_code"].upper()
    assert body["tier"] == "Bronze"
    assert Decimal(body["commission_rate"]) == Decimal("5")
    assert body["status"] == "active"

    dup = await client.post(
        "/api/v1/platform/partners",
        json={"email": "creator@example.com"},
        headers=auth_headers(admin),
    )
    assert dup.status_code == 409

    both = await client.post(
        "/api/v1/platform/partners",
        json={"email": "x@example.com", "user_id": str(uuid.uuid4())},
        headers=auth_headers(admin),
    )
    assert both.status_code == 400

    listed = await client.get("/api/v1/platform/partners", headers=auth_headers(admin))
    assert listed.status_code == 200
    assert listed.json()["total"] == 1


@pytest.mark.asyncio
async def test_admin_rotates_code_and_deactivates(client, make_user, make_partner, auth_headers):
    admin = await make_user(admin_role="STAFF")
    partner = await make_partner(code="OLDCOD")

    rotated = await client.post(f"/api/v1/platform/partners/{partner.id}/rotate-code", headers=auth_headers(admin))
    assert rotated.status_code == 200
    assert rotated.json()["referral_code"] != "OLDCOD"

    patched = await client.patch(
        f"/api/v1/platform/partners/{partner.id}", json={"status": "inactive"}, headers=auth_headers(admin)
    )
    assert patched.status_code == 200
    assert patched.json()["status"] == "inactive"

    click = await client.post(
        "/api/v1/partners/clicks", json={"referral_code": rotated.json()["referral_code"], "customer_id": "c"}
    )
    assert click.status_code == 404


@pytest.mark.asyncio
async def test_platform_routes_require_admin(client, make_user, auth_headers):
    user = await make_user()
    assert (await client.get("/api/v1/platform/partners", headers=auth_headers(user))).status_code == 403
    assert (await client.get("/api/v1/platform/campaigns", headers=auth_headers(user))).status_code == 403


@pytest.mark.asyncio
async def test_campaign_lifecycle(client, make_user, auth_headers):
    admin = await make_user(admin_role="STAFF")
    now = utcnow()

    created = await client.post(
        "/api/v1/platform/campaigns",
        json={
            "name": "Heritage Month",
            "starts_at": (now - timedelta(days=1)).isoformat(),
            "ends_at": (now + timedelta(days=30)).isoformat(),
            "bonus_multiplier": "0.25",
        },
        headers=auth_headers(admin),
    )
    assert created.status_code == 201
    campaign_id = created.json()["id"]
    assert created.json()["is_active"] is True

    bad_window = await client.post(
        "/api/v1/platform/campaigns",
        json={
            "name": "Backwards",
            "starts_at": now.isoformat(),
            "ends_at": (now - timedelta(days=1)).isoformat(),
            "bonus_multiplier": "0.1",
        },
        headers=auth_headers(admin),
    )
    assert bad_window.status_code == 422

    deactivated = await client.post(
        f"/api/v1/platform/campaigns/{campaign_id}/deactivate", headers=auth_headers(admin)
    )
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    active = await client.get("/api/v1/platform/campaigns?active_only=true", headers=auth_headers(admin))
    assert active.json()["total"] == 0
