"""
Result values for company/membership operations.

Store-level failures are returned as `Result` objects carrying an `ErrorKind`
instead of being raised, so the reconciliation sweep can isolate a failing
profile and the HTTP layer can map each kind to a status code.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    NOT_FOUND = "NOT_FOUND"
    INVALID_INPUT = "INVALID_INPUT"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Result(Generic[T]):
    value: T | None = None
    error: ErrorKind | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: ErrorKind, detail: str | None = None) -> "Result[T]":
        return cls(error=error, detail=detail)

    def cast(self) -> "Result":
        """Re-type a failure so it can be returned from a caller with a different value type."""
        return Result(error=self.error, detail=self.detail)


class Deadline:
    """
    Monotonic deadline checked before each store round trip.

    `Deadline(None)` never expires.
    """

    def __init__(self, seconds: float | None) -> None:
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @classmethod
    def from_timeout(cls, seconds: float | None) -> "Deadline | None":
        return cls(seconds) if seconds is not None else None

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())


def store_call(
    db: Session,
    fn: Callable[[], T],
    *,
    step: str,
    deadline: Deadline | None = None,
) -> Result[T]:
    """
    Run one store round trip.

    - Expired deadline: nothing is executed, work flushed earlier in the same
      transaction is rolled back, CANCELLED is returned.
    - SQLAlchemy error: the session is rolled back, STORE_UNAVAILABLE is returned.
    """
    if deadline is not None and deadline.expired:
        db.rollback()
        return Result.failure(ErrorKind.CANCELLED, f"deadline expired before {step}")
    try:
        return Result.success(fn())
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Store call failed", extra={"step": step})
        return Result.failure(ErrorKind.STORE_UNAVAILABLE, str(e)[:500])
