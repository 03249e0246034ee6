"""
Domain errors for ReliefLine
============================

Services raise these instead of HTTPException so the same operations can be
driven from routers, scripts and tests. ``main.py`` turns every
``ReliefError`` into a JSON response using ``status_code`` and ``to_dict()``.

Usage:
    from errors import NotFoundError, UnauthorizedError

    if need is None:
        raise NotFoundError("needs", need_id)
"""

from typing import Any, Dict, Optional


class ReliefError(Exception):
    """Base exception for all ReliefLine errors"""

    status_code = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "detail": self.message,
            "details": self.details
        }


# ============================================
# Lookup & authorization
# ============================================

class NotFoundError(ReliefError):
    """Referenced record is absent"""

    status_code = 404

    def __init__(self, collection: str, record_id: Any):
        super().__init__(
            "Post not found.",
            code="NOT_FOUND",
            details={"collection": collection, "id": record_id}
        )


class UnauthorizedError(ReliefError):
    """PIN missing on the record or not matching"""

    status_code = 403

    def __init__(self, message: str = "Incorrect PIN."):
        super().__init__(message, code="UNAUTHORIZED")


# ============================================
# Need lifecycle
# ============================================

class AlreadyFulfilledError(ReliefError):
    """Pledge attempted on a need that is already at or over its target"""

    status_code = 409

    def __init__(self, need_id: Any):
        super().__init__(
            "This request is already fully pledged.",
            code="ALREADY_FULFILLED",
            details={"id": need_id}
        )


class ReopenTooEarlyError(ReliefError):
    """Reopen attempted before the pledge cool-off elapsed"""

    status_code = 409

    def __init__(self, need_id: Any, hours_left: float):
        super().__init__(
            f"This request can be reopened in {hours_left:.1f} hours.",
            code="REOPEN_TOO_EARLY",
            details={"id": need_id, "hours_left": round(hours_left, 2)}
        )


# ============================================
# Store & input
# ============================================

class ConflictError(ReliefError):
    """Transaction kept losing races against concurrent writers"""

    status_code = 409

    def __init__(self, collection: str, record_id: Any, attempts: int):
        super().__init__(
            "The record was busy. Please try again.",
            code="CONFLICT",
            details={"collection": collection, "id": record_id, "attempts": attempts}
        )


class InvalidInputError(ReliefError):
    """Malformed input rejected before touching the store"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="INVALID_INPUT", details=details)
