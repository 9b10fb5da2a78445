"""
Error taxonomy shared by the tournament and match services.

Every failure surfaced by a service is a TournamentError carrying a kind,
a message and, when a storage error caused it, the original exception.
Raw SQLAlchemy exceptions are translated at the store boundary by
translate_db_error(); services never inspect driver error strings.
"""

import logging
from enum import Enum
from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    CONSTRAINT = "constraint"
    CONNECTION = "connection"
    TRANSACTION = "transaction"
    QUERY = "query"


class TournamentError(Exception):
    kind: ErrorKind = ErrorKind.QUERY

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def retryable(self) -> bool:
        return self.kind == ErrorKind.CONNECTION

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.kind.value}] {self.message}: {self.cause}"
        return f"[{self.kind.value}] {self.message}"


class ValidationError(TournamentError):
    kind = ErrorKind.VALIDATION


class InvalidMatchResultError(ValidationError):
    """Submitted score/winner combination is inconsistent."""


class MatchAlreadyCompletedError(ValidationError):
    """Result submitted for a match that is already completed."""


class NotFoundError(TournamentError):
    kind = ErrorKind.NOT_FOUND


class DuplicateError(TournamentError):
    kind = ErrorKind.DUPLICATE


class ConstraintError(TournamentError):
    kind = ErrorKind.CONSTRAINT


class StoreConnectionError(TournamentError):
    kind = ErrorKind.CONNECTION


class TransactionError(TournamentError):
    kind = ErrorKind.TRANSACTION


class QueryError(TournamentError):
    kind = ErrorKind.QUERY


_CONNECTION_MARKERS = (
    "timeout",
    "timed out",
    "database is locked",
    "could not connect",
    "connection refused",
    "server closed the connection",
    "connection",
)


def translate_db_error(exc: SQLAlchemyError, operation: str, during_commit: bool = False) -> TournamentError:
    """Map a SQLAlchemy exception onto the error taxonomy."""
    text = str(getattr(exc, "orig", None) or exc).lower()

    if isinstance(exc, IntegrityError):
        if "unique" in text or "duplicate" in text:
            return DuplicateError(f"{operation}: duplicate record", exc)
        if "foreign key" in text or "check constraint" in text or "violates check" in text:
            return ConstraintError(f"{operation}: constraint violated", exc)
        if "not null" in text or "cannot be null" in text:
            return ValidationError(f"{operation}: required field is empty", exc)
        return ConstraintError(f"{operation}: constraint violated", exc)

    if "data too long" in text or "value too long" in text:
        return ValidationError(f"{operation}: value too long", exc)

    if isinstance(exc, PoolTimeoutError):
        return StoreConnectionError(f"{operation}: connection pool timeout", exc)
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return StoreConnectionError(f"{operation}: connection lost", exc)
    if isinstance(exc, OperationalError) and any(marker in text for marker in _CONNECTION_MARKERS):
        return StoreConnectionError(f"{operation}: database connection error", exc)

    if during_commit:
        return TransactionError(f"{operation}: transaction failed", exc)
    return QueryError(f"{operation}: query failed", exc)
