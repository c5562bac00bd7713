# tests/test_scheduled.py
from __future__ import annotations

from decimal import Decimal

import pytest

from earnings.core.commission import process_sale_created
from earnings.core.config import settings
from earnings.core.errors import FeatureNotImplemented
from earnings.core.money import period_key
from earnings.core.scheduled import process_batch_payouts, reset_monthly_sales


@pytest.mark.asyncio
async def test_jobs_are_disabled_by_default(db):
    with pytest.raises(FeatureNotImplemented) as exc:
        await reset_monthly_sales(db)
    assert exc.value.code == "FEATURE_DISABLED"

    with pytest.raises(FeatureNotImplemented):
        await process_batch_payouts(db)


@pytest.mark.asyncio
async def test_batch_payouts_stay_unimplemented_when_enabled(db, monkeypatch):
    monkeypatch.setattr(settings, "FEATURE_BATCH_PAYOUTS", True)
    with pytest.raises(FeatureNotImplemented) as exc:
        await process_batch_payouts(db)
    assert exc.value.code == "NOT_IMPLEMENTED"


@pytest.mark.asyncio
async def test_monthly_rollover_reports_current_period(db, make_partner, monkeypatch):
    monkeypatch.setattr(settings, "FEATURE_MONTHLY_SALES_RESET", True)
    await make_partner(code="ROLL01")
    await make_partner(code="ROLL02")
    await process_sale_created(db, sale_id="r1", total=Decimal("10"), referral_code="ROLL01")
    await process_sale_created(db, sale_id="r2", total=Decimal("10"), referral_code="ROLL01")

    summary = await reset_monthly_sales(db)
    assert summary.period == period_key()
    assert summary.partners_with_sales == 1

    empty = await reset_monthly_sales(db, period="1999-01")
    assert empty.partners_with_sales == 0


@pytest.mark.asyncio
async def test_job_endpoint(client, make_user, auth_headers, monkeypatch):
    admin = await make_user(admin_role="SUPER_ADMIN")
    user = await make_user()

    disabled = await client.post("/api/v1/platform/jobs/reset-monthly-sales", headers=auth_headers(admin))
    assert disabled.status_code == 501
    assert disabled.json()["detail"]["code"] == "FEATURE_DISABLED"

    batch = await client.post("/api/v1/platform/jobs/process-batch-payouts", headers=auth_headers(admin))
    assert batch.status_code == 501

    unknown = await client.post("/api/v1/platform/jobs/reindex", headers=auth_headers(admin))
    assert unknown.status_code == 400
    assert unknown.json()["detail"]["code"] == "UNKNOWN_JOB"

    forbidden = await client.post("/api/v1/platform/jobs/reset-monthly-sales", headers=auth_headers(user))
    assert forbidden.status_code == 403

    monkeypatch.setattr(settings, "FEATURE_MONTHLY_SALES_RESET", True)
    enabled = await client.post("/api/v1/platform/jobs/reset-monthly-sales", headers=auth_headers(admin))
    assert enabled.status_code == 200
    body = enabled.json()
    assert body["job"] == "reset-monthly-sales"
    assert body["status"] == "completed"
    assert body["result"] == {"period": period_key(), "partners_with_sales": 0}
