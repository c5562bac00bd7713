"""create earnings ledger tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _money(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.Numeric(12, 2),
        nullable=nullable,
        server_default=sa.text("0") if default else None,
    )


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Identity (owned by the account collaborator)
    # -----------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "platform_memberships",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.String(length=32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
    )
    op.create_index("ix_platform_memberships_user_id", "platform_memberships", ["user_id"], unique=True)

    # -----------------------------------------------------
    # 2) Partners and their per-period sales
    # -----------------------------------------------------
    op.create_table(
        "partners",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("display_name", sa.String(length=200), nullable=True),
        sa.Column("referral_code", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("commission_rate", sa.Numeric(7, 4), nullable=False, server_default=sa.text("5")),
        sa.Column("video_content_bonus", sa.Numeric(8, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("community_bonus", sa.Numeric(8, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("tier", sa.String(length=30), nullable=False, server_default="Bronze"),
        _ts("tier_updated_at", nullable=True),
        _money("total_revenue"),
        sa.Column("total_orders", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_partners_user_id", "partners", ["user_id"], unique=True)
    op.create_index("ix_partners_referral_code", "partners", ["referral_code"], unique=True)

    op.create_table(
        "partner_monthly_sales",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "partner_id",
            sa.Uuid(),
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("period", sa.String(length=7), nullable=False),
        _money("amount"),
        sa.Column("order_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts("updated_at"),
        sa.UniqueConstraint("partner_id", "period", name="uq_partner_monthly_sales_partner_period"),
    )
    op.create_index("ix_partner_monthly_sales_partner_id", "partner_monthly_sales", ["partner_id"])

    # -----------------------------------------------------
    # 3) Commission inputs and records
    # -----------------------------------------------------
    op.create_table(
        "seasonal_campaigns",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("starts_at"),
        _ts("ends_at"),
        sa.Column("bonus_multiplier", sa.Numeric(8, 4), nullable=False, server_default=sa.text("0")),
        _ts("created_at"),
    )
    op.create_index("ix_seasonal_campaigns_starts_at", "seasonal_campaigns", ["starts_at"])
    op.create_index("ix_seasonal_campaigns_ends_at", "seasonal_campaigns", ["ends_at"])

    op.create_table(
        "referral_clicks",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "partner_id",
            sa.Uuid(),
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("customer_id", sa.String(length=128), nullable=True),
        sa.Column("converted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("sale_id", sa.String(length=128), nullable=True),
        _money("conversion_amount", nullable=True, default=False),
        _ts("converted_at", nullable=True),
        _ts("clicked_at"),
        sa.UniqueConstraint("sale_id", name="uq_referral_clicks_sale_id"),
    )
    op.create_index("ix_referral_clicks_partner_id", "referral_clicks", ["partner_id"])
    op.create_index(
        "ix_referral_clicks_partner_customer_converted",
        "referral_clicks",
        ["partner_id", "customer_id", "converted"],
    )

    op.create_table(
        "commission_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "partner_id",
            sa.Uuid(),
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sale_id", sa.String(length=128), nullable=False),
        sa.Column("store_id", sa.String(length=128), nullable=True),
        sa.Column("customer_id", sa.String(length=128), nullable=True),
        _money("sale_total", default=False),
        sa.Column("base_rate", sa.Numeric(7, 4), nullable=False),
        sa.Column("effective_rate", sa.Numeric(7, 4), nullable=False),
        _money("commission_amount", default=False),
        sa.Column("bonus_multipliers", sa.JSON(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="ZAR"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        _ts("created_at"),
        _ts("completed_at", nullable=True),
        # at most one commission per sale
        sa.UniqueConstraint("sale_id", name="uq_commission_records_sale_id"),
    )
    op.create_index("ix_commission_records_partner_id", "commission_records", ["partner_id"])
    op.create_index("ix_commission_records_partner_created", "commission_records", ["partner_id", "created_at"])
    op.create_index("ix_commission_records_status", "commission_records", ["status"])

    op.create_table(
        "tier_history",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "partner_id",
            sa.Uuid(),
            sa.ForeignKey("partners.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("previous_tier", sa.String(length=30), nullable=True),
        sa.Column("new_tier", sa.String(length=30), nullable=False),
        sa.Column("previous_rate", sa.Numeric(7, 4), nullable=True),
        sa.Column("new_rate", sa.Numeric(7, 4), nullable=False),
        _money("monthly_sales", default=False),
        sa.Column("period", sa.String(length=7), nullable=False),
        _ts("changed_at"),
    )
    op.create_index("ix_tier_history_partner_id", "tier_history", ["partner_id"])

    # -----------------------------------------------------
    # 4) Earnings ledger
    # -----------------------------------------------------
    op.create_table(
        "earnings_accounts",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("actor_type", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("store_id", sa.String(length=128), nullable=True),
        _money("pending_balance"),
        _money("available_balance"),
        _money("total_earned"),
        _money("total_withdrawn"),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("actor_type", "actor_id", name="uq_earnings_accounts_actor"),
    )
    op.create_index("ix_earnings_accounts_actor_id", "earnings_accounts", ["actor_id"])

    op.create_table(
        "ledger_entries",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "account_id",
            sa.Uuid(),
            sa.ForeignKey("earnings_accounts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("entry_type", sa.String(length=40), nullable=False),
        _money("amount", default=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="ZAR"),
        sa.Column("reference", sa.String(length=128), nullable=False),
        sa.Column("memo", sa.String(length=255), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        _ts("occurred_at"),
        sa.UniqueConstraint("account_id", "entry_type", "reference", name="uq_ledger_entries_account_type_ref"),
    )
    op.create_index("ix_ledger_entries_account_id", "ledger_entries", ["account_id"])
    op.create_index("ix_ledger_entries_entry_type", "ledger_entries", ["entry_type"])
    op.create_index("ix_ledger_entries_account_occurred", "ledger_entries", ["account_id", "occurred_at"])

    # -----------------------------------------------------
    # 5) Payout requests
    # -----------------------------------------------------
    op.create_table(
        "payout_requests",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("actor_type", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column(
            "account_id",
            sa.Uuid(),
            sa.ForeignKey("earnings_accounts.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        _money("requested_amount", default=False),
        _money("payable_amount", default=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="ZAR"),
        sa.Column("account_holder", sa.String(length=200), nullable=False),
        sa.Column("bank_name", sa.String(length=120), nullable=False),
        sa.Column("account_number", sa.String(length=40), nullable=False),
        sa.Column("branch_code", sa.String(length=20), nullable=False),
        sa.Column("account_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("store_id", sa.String(length=128), nullable=True),
        _money("gross_amount", nullable=True, default=False),
        sa.Column("store_commission_rate", sa.Numeric(7, 4), nullable=True),
        _money("store_cut", nullable=True, default=False),
        _money("net_payout", nullable=True, default=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("rejection_reason", sa.String(length=500), nullable=True),
        sa.Column("payment_reference", sa.String(length=128), nullable=True),
        sa.Column("decided_by", sa.Uuid(), nullable=True),
        _ts("requested_at"),
        _ts("approved_at", nullable=True),
        _ts("rejected_at", nullable=True),
        _ts("paid_at", nullable=True),
        _ts("updated_at"),
    )
    op.create_index("ix_payout_requests_account_id", "payout_requests", ["account_id"])
    op.create_index("ix_payout_requests_actor", "payout_requests", ["actor_type", "actor_id"])
    op.create_index("ix_payout_requests_status_requested", "payout_requests", ["status", "requested_at"])


def downgrade() -> None:
    op.drop_table("payout_requests")
    op.drop_table("ledger_entries")
    op.drop_table("earnings_accounts")
    op.drop_table("tier_history")
    op.drop_table("commission_records")
    op.drop_table("referral_clicks")
    op.drop_table("seasonal_campaigns")
    op.drop_table("partner_monthly_sales")
    op.drop_table("partners")
    op.drop_table("platform_memberships")
    op.drop_table("users")
