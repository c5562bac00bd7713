# Import models here so Alembic can discover metadata.
from earnings.models.user import User  # noqa: F401
from earnings.models.platform_membership import PlatformMembership  # noqa: F401

# Referral partners
from earnings.models.partner import Partner, PartnerMonthlySales  # noqa: F401
from earnings.models.referral_click import ReferralClick  # noqa: F401
from earnings.models.seasonal_campaign import SeasonalCampaign  # noqa: F401
from earnings.models.commission_record import CommissionRecord  # noqa: F401
from earnings.models.tier_history import TierHistoryEntry  # noqa: F401

# Earnings ledger & payouts
from earnings.models.earnings_account import EarningsAccount  # noqa: F401
from earnings.models.ledger_entry import LedgerEntry  # noqa: F401
from earnings.models.payout_request import PayoutRequest  # noqa: F401
