# earnings/core/errors.py
"""
Domain error taxonomy.

Core modules raise these; the API layer maps them onto HTTP responses
(see earnings.main). Every error carries a stable machine `code` plus a
human `message`, and optional structured `context` that is returned to the
caller verbatim.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class LedgerError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        super().__init__(self.message)

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"code": self.code, "message": self.message}
        for k, v in self.context.items():
            detail[k] = str(v) if not isinstance(v, (int, bool, list, dict, type(None), str)) else v
        return detail


class Unauthenticated(LedgerError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "UNAUTHENTICATED"


class PermissionDenied(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN
    default_code = "PERMISSION_DENIED"


class InvalidArgument(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "INVALID_ARGUMENT"


class NotFound(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "NOT_FOUND"


class FailedPrecondition(LedgerError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "FAILED_PRECONDITION"


class Internal(LedgerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL"


class FeatureNotImplemented(LedgerError):
    status_code = status.HTTP_501_NOT_IMPLEMENTED
    default_code = "NOT_IMPLEMENTED"
