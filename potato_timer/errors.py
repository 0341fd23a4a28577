"""
Typed failures raised by the core operations.

Every failure carries a stable ``kind`` so callers can tell, for example,
"already liked" (conflict) apart from a store outage.
"""

from typing import Optional

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)


class CoreError(Exception):
    """Base class for every failure the core reports."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class ValidationError(CoreError):
    """Malformed or missing input. Raised before the store is touched."""

    kind = "validation_error"
    status_code = 400


class NotFoundError(CoreError):
    """Entity absent, or not owned by the caller. Both look the same."""

    kind = "not_found"
    status_code = 404


class ForbiddenError(CoreError):
    """Entity exists but its visibility denies access."""

    kind = "forbidden"
    status_code = 403


class ConflictError(CoreError):
    """A uniqueness invariant would be violated."""

    kind = "conflict"
    status_code = 409


class StoreError(CoreError):
    """Underlying persistence failure."""

    kind = "store_error"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable

    @property
    def status_code(self) -> int:
        return 503 if self.retryable else 500

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> "StoreError":
        """Classify a SQLAlchemy failure as transient or permanent."""
        retryable: Optional[bool] = None
        if isinstance(exc, IntegrityError):
            retryable = False
        elif isinstance(exc, (OperationalError, PoolTimeoutError, DisconnectionError)):
            retryable = True
        elif isinstance(exc, DBAPIError):
            retryable = bool(exc.connection_invalidated)
        return cls(f"store failure: {exc.__class__.__name__}", retryable=bool(retryable))
