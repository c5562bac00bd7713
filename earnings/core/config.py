# earnings/core/config.py

from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    DATABASE_URL_ASYNC: str = "sqlite+aiosqlite:///./earnings.db"
    DATABASE_URL_SYNC: str = "sqlite:///./earnings.db"

    # -----------------------------
    # JWT
    # -----------------------------
    # Keep a dev default, but enforce stronger requirements outside dev.
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # -----------------------------
    # Money
    # -----------------------------
    CURRENCY: str = "ZAR"

    # percent; applied to partners created without an explicit rate
    DEFAULT_PARTNER_COMMISSION_RATE: Decimal = Decimal("5")

    # percent; store cut for vendors when the request does not carry one
    DEFAULT_STORE_COMMISSION_RATE: Decimal = Decimal("10")

    # Minimum payout per actor type
    MIN_PAYOUT_PARTNER: Decimal = Decimal("500")
    MIN_PAYOUT_VENDOR: Decimal = Decimal("100")
    MIN_PAYOUT_STAFF: Decimal = Decimal("500")

    # -----------------------------
    # Policy switches
    # -----------------------------
    # False => tiers only ratchet upward within a period
    TIER_ALLOW_DOWNGRADE: bool = True

    # Scheduled operations (feature-gated)
    FEATURE_MONTHLY_SALES_RESET: bool = False
    FEATURE_BATCH_PAYOUTS: bool = False

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    def minimum_payout_for(self, actor_type: str) -> Decimal:
        thresholds = {
            "partner": self.MIN_PAYOUT_PARTNER,
            "vendor": self.MIN_PAYOUT_VENDOR,
            "staff": self.MIN_PAYOUT_STAFF,
        }
        key = (actor_type or "").strip().lower()
        if key not in thresholds:
            raise ValueError(f"Unknown actor_type={actor_type!r}")
        return thresholds[key]

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        env = (self.ENVIRONMENT or "").strip().lower()

        # Enforce that we never run staging/production with a placeholder secret.
        if env in {"staging", "production"}:
            if not self.JWT_SECRET or self.JWT_SECRET.strip() == "dev-secret-change-me":
                raise ValueError("JWT_SECRET must be set to a strong value in staging/production.")
            if len(self.JWT_SECRET.strip()) < 32:
                raise ValueError("JWT_SECRET is too short; use at least 32 characters in staging/production.")

        # Light sanity checks (all envs)
        if self.JWT_ALGORITHM not in {"HS256"}:
            raise ValueError(f"Unsupported JWT_ALGORITHM={self.JWT_ALGORITHM!r}. Allowed: HS256")

        for name in ("MIN_PAYOUT_PARTNER", "MIN_PAYOUT_VENDOR", "MIN_PAYOUT_STAFF"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive.")


# this must exist for: `from earnings.core.config import settings`
settings = Settings()
