# tests/test_payouts.py
from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from earnings.core.errors import FailedPrecondition, InvalidArgument
from earnings.core.ledger import credit_available, debit_withdrawal, ensure_account, get_account
from earnings.core.payouts import (
    BankDetails,
    approve_payout,
    mark_payout_paid,
    reject_payout,
    submit_payout_request,
)
from earnings.models.payout_request import PayoutRequest

BANK = BankDetails(
    account_holder="Thandi Mokoena",
    bank_name="First National Bank",
    account_number="62012345678",
    branch_code="250655",
    account_type="cheque",
)


async def fund(db, actor_type: str, actor_id: uuid.UUID, amount: str, reference: str = "seed"):
    account = await ensure_account(db, actor_type, actor_id)
    await credit_available(db, account.id, Decimal(amount), reference=reference)
    await db.commit()
    return account


async def payout_count(db) -> int:
    return await db.scalar(select(func.count()).select_from(PayoutRequest))


@pytest.mark.asyncio
async def test_partner_request_within_balance_is_pending(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "800")

    payout = await submit_payout_request(
        db, actor_type="partner", actor_id=actor_id, amount=Decimal("600"), bank=BANK
    )

    assert payout.status == "pending"
    assert payout.requested_amount == Decimal("600.00")
    assert payout.payable_amount == Decimal("600.00")
    assert payout.gross_amount is None

    # submission does not move money
    account = await get_account(db, "partner", actor_id)
    assert account.available_balance == Decimal("800.00")
    assert account.total_withdrawn == Decimal("0.00")


@pytest.mark.asyncio
async def test_below_minimum_is_rejected_and_not_persisted(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "10000")

    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("499.99"), bank=BANK)

    assert exc.value.code == "BELOW_MINIMUM_PAYOUT"
    assert exc.value.context["minimum"] == Decimal("500")
    assert await payout_count(db) == 0


@pytest.mark.asyncio
async def test_minimum_depends_on_actor_type(db):
    vendor_id = uuid.uuid4()
    await fund(db, "vendor", vendor_id, "1000")

    # 150 gross at 0% => 150 net, above the vendor minimum of 100
    payout = await submit_payout_request(
        db,
        actor_type="vendor",
        actor_id=vendor_id,
        amount=Decimal("150"),
        bank=BANK,
        store_commission_rate=Decimal("0"),
    )
    assert payout.payable_amount == Decimal("150.00")


@pytest.mark.asyncio
async def test_exceeding_available_balance_is_rejected(db):
    actor_id = uuid.uuid4()
    await fund(db, "staff", actor_id, "700")

    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(db, actor_type="staff", actor_id=actor_id, amount=Decimal("700.01"), bank=BANK)

    assert exc.value.code == "INSUFFICIENT_AVAILABLE_BALANCE"
    assert await payout_count(db) == 0


@pytest.mark.asyncio
async def test_actor_without_account_has_no_balance(db):
    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(db, actor_type="partner", actor_id=uuid.uuid4(), amount=Decimal("600"), bank=BANK)
    assert exc.value.code == "INSUFFICIENT_AVAILABLE_BALANCE"


@pytest.mark.asyncio
async def test_incomplete_bank_details_name_missing_fields(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "900")

    partial = BankDetails(account_holder="Thandi Mokoena", bank_name="FNB", account_number="  ")
    with pytest.raises(InvalidArgument) as exc:
        await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("600"), bank=partial)

    assert exc.value.code == "INCOMPLETE_BANK_DETAILS"
    assert exc.value.context["missing"] == ["account_number", "branch_code", "account_type"]
    assert await payout_count(db) == 0


@pytest.mark.asyncio
async def test_rules_are_checked_in_order(db):
    # below minimum AND no balance AND no bank details => minimum is reported
    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(
            db, actor_type="partner", actor_id=uuid.uuid4(), amount=Decimal("10"), bank=BankDetails()
        )
    assert exc.value.code == "BELOW_MINIMUM_PAYOUT"


@pytest.mark.asyncio
async def test_vendor_split_is_recorded_and_net_is_payable(db):
    vendor_id = uuid.uuid4()
    await fund(db, "vendor", vendor_id, "400")

    payout = await submit_payout_request(
        db,
        actor_type="vendor",
        actor_id=vendor_id,
        amount=Decimal("500"),
        bank=BANK,
        store_id="store-7",
        store_commission_rate=Decimal("25"),
    )

    assert payout.gross_amount == Decimal("500.00")
    assert payout.store_commission_rate == Decimal("25")
    assert payout.store_cut == Decimal("125.00")
    assert payout.net_payout == Decimal("375.00")
    assert payout.payable_amount == Decimal("375.00")
    assert payout.store_id == "store-7"


@pytest.mark.asyncio
async def test_vendor_uses_default_store_rate(db):
    vendor_id = uuid.uuid4()
    await fund(db, "vendor", vendor_id, "1000")

    payout = await submit_payout_request(db, actor_type="vendor", actor_id=vendor_id, amount=Decimal("200"), bank=BANK)
    assert payout.store_commission_rate == Decimal("10")
    assert payout.net_payout == Decimal("180.00")


@pytest.mark.asyncio
async def test_vendor_full_store_cut_is_below_minimum(db):
    vendor_id = uuid.uuid4()
    await fund(db, "vendor", vendor_id, "1000")

    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(
            db,
            actor_type="vendor",
            actor_id=vendor_id,
            amount=Decimal("500"),
            bank=BANK,
            store_commission_rate=Decimal("100"),
        )
    assert exc.value.code == "BELOW_MINIMUM_PAYOUT"


@pytest.mark.asyncio
async def test_vendor_store_rate_out_of_range(db):
    with pytest.raises(InvalidArgument) as exc:
        await submit_payout_request(
            db,
            actor_type="vendor",
            actor_id=uuid.uuid4(),
            amount=Decimal("500"),
            bank=BANK,
            store_commission_rate=Decimal("1000.5"),
        )
    assert exc.value.code == "INVALID_STORE_COMMISSION_RATE"


@pytest.mark.asyncio
async def test_unknown_actor_type(db):
    with pytest.raises(InvalidArgument):
        await submit_payout_request(db, actor_type="driver", actor_id=uuid.uuid4(), amount=Decimal("600"), bank=BANK)


@pytest.mark.asyncio
async def test_approve_then_paid_debits_available(db):
    actor_id = uuid.uuid4()
    admin_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "1000")
    payout = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("600"), bank=BANK)

    approved = await approve_payout(db, payout.id, decided_by=admin_id)
    assert approved.status == "approved"
    assert approved.approved_at is not None
    assert approved.decided_by == admin_id

    paid = await mark_payout_paid(db, payout.id, decided_by=admin_id, payment_reference="EFT-001")
    assert paid.status == "paid"
    assert paid.payment_reference == "EFT-001"

    account = await get_account(db, "partner", actor_id)
    assert account.available_balance == Decimal("400.00")
    assert account.total_withdrawn == Decimal("600.00")

    # repeating the transition is a no-op
    again = await mark_payout_paid(db, payout.id, decided_by=admin_id)
    assert again.status == "paid"
    account = await get_account(db, "partner", actor_id)
    assert account.available_balance == Decimal("400.00")
    assert account.total_withdrawn == Decimal("600.00")


@pytest.mark.asyncio
async def test_pending_cannot_jump_to_paid(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "1000")
    payout = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("500"), bank=BANK)

    with pytest.raises(FailedPrecondition) as exc:
        await mark_payout_paid(db, payout.id, decided_by=uuid.uuid4())
    assert exc.value.code == "INVALID_PAYOUT_TRANSITION"


@pytest.mark.asyncio
async def test_reject_requires_reason_and_blocks_payment(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "1000")
    payout = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("500"), bank=BANK)

    with pytest.raises(InvalidArgument):
        await reject_payout(db, payout.id, decided_by=uuid.uuid4(), reason="  ")

    rejected = await reject_payout(db, payout.id, decided_by=uuid.uuid4(), reason="Account name mismatch")
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "Account name mismatch"

    with pytest.raises(FailedPrecondition):
        await approve_payout(db, payout.id, decided_by=uuid.uuid4())

    account = await get_account(db, "partner", actor_id)
    assert account.available_balance == Decimal("1000.00")


@pytest.mark.asyncio
async def test_second_request_cannot_claim_the_same_balance(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "800")

    first = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("800"), bank=BANK)
    assert first.status == "pending"

    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("800"), bank=BANK)
    assert exc.value.code == "INSUFFICIENT_AVAILABLE_BALANCE"
    assert exc.value.context["reserved"] == Decimal("800.00")
    assert exc.value.context["available"] == Decimal("0.00")
    assert await payout_count(db) == 1


@pytest.mark.asyncio
async def test_open_requests_reduce_what_can_be_requested(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "1200")

    first = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("700"), bank=BANK)
    await approve_payout(db, first.id, decided_by=uuid.uuid4())

    # approved but unpaid still holds its 700
    with pytest.raises(FailedPrecondition):
        await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("600"), bank=BANK)

    second = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("500"), bank=BANK)
    assert second.status == "pending"
    assert await payout_count(db) == 2


@pytest.mark.asyncio
async def test_rejected_and_paid_requests_release_their_hold(db):
    actor_id = uuid.uuid4()
    await fund(db, "partner", actor_id, "1000")

    rejected = await submit_payout_request(
        db, actor_type="partner", actor_id=actor_id, amount=Decimal("1000"), bank=BANK
    )
    await reject_payout(db, rejected.id, decided_by=uuid.uuid4(), reason="Wrong branch code")

    paid = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("600"), bank=BANK)
    await approve_payout(db, paid.id, decided_by=uuid.uuid4())
    await mark_payout_paid(db, paid.id, decided_by=uuid.uuid4())

    # 400 left after the debit; nothing open
    with pytest.raises(FailedPrecondition) as exc:
        await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("500"), bank=BANK)
    assert exc.value.context["available"] == Decimal("400.00")
    assert exc.value.context["reserved"] == Decimal("0.00")


@pytest.mark.asyncio
async def test_paid_fails_when_balance_no_longer_covers(db):
    actor_id = uuid.uuid4()
    account = await fund(db, "partner", actor_id, "1000")
    payout = await submit_payout_request(db, actor_type="partner", actor_id=actor_id, amount=Decimal("800"), bank=BANK)
    await approve_payout(db, payout.id, decided_by=uuid.uuid4())

    # another withdrawal drains the balance between approval and payment
    await debit_withdrawal(db, account.id, Decimal("300"), reference="manual:ops-1")
    await db.commit()

    with pytest.raises(FailedPrecondition) as exc:
        await mark_payout_paid(db, payout.id, decided_by=uuid.uuid4())
    assert exc.value.code == "INSUFFICIENT_AVAILABLE_BALANCE"

    stuck = (
        await db.execute(
            select(PayoutRequest).where(PayoutRequest.id == payout.id).execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert stuck.status == "approved"

    account = await get_account(db, "partner", actor_id)
    assert account.available_balance == Decimal("700.00")
    assert account.total_withdrawn == Decimal("300.00")
