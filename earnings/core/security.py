from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import HTTPBearer
from jose import JWTError, jwt

from earnings.core.config import settings
from earnings.core.errors import Unauthenticated

# auto_error=False: a missing header must surface as our UNAUTHENTICATED error
bearer_scheme = HTTPBearer(auto_error=False)


def _normalize_token(token: str) -> str:
    """
    Make token decoding resilient to common Swagger / copy-paste issues:
    - Leading/trailing whitespace/newlines
    - Surrounding quotes
    - Accidentally including the 'Bearer ' prefix in the token field
    """
    if token is None:
        return ""

    t = token.strip()

    if (t.startswith('"') and t.endswith('"')) or (t.startswith("'") and t.endswith("'")):
        t = t[1:-1].strip()

    if t.lower().startswith("bearer "):
        t = t[7:].strip()

    return t


def create_access_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    expire_dt = now + timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "exp": int(expire_dt.timestamp()),
        "iat": int(now.timestamp()),
    }

    return jwt.encode(
        to_encode,
        settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> str:
    """Returns the token subject (user id) or raises Unauthenticated."""
    token = _normalize_token(token)
    if not token:
        raise Unauthenticated("Invalid token")

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require_sub": True, "require_exp": True},
        )
    except JWTError:
        # expired signature, bad format, bad signature, wrong algorithm, ...
        raise Unauthenticated("Invalid token")

    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated("Invalid token")
    return str(sub)
