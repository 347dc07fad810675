"""Exception hierarchy for querybench.

Every database failure raised while seeding is wrapped in one of the
``SeedError`` subclasses so the CLI can report what went wrong without
parsing driver messages itself.
"""
from typing import Any, Dict, Optional

from sqlalchemy import exc as sa_exc


class QueryBenchError(Exception):
    """Base exception for all querybench errors.

    Attributes:
        message: Human-readable error message
        context: Additional context for debugging
        original_error: Original exception if wrapped
    """

    def __init__(
        self,
        message: str,
        *,
        context: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.original_error = original_error

    def __str__(self) -> str:
        base = self.message
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base = f"{base} ({ctx_str})"
        if self.original_error is not None:
            base = f"{base} [caused by: {type(self.original_error).__name__}]"
        return base


class SeedError(QueryBenchError):
    """Seeding aborted."""


class ConstraintViolationError(SeedError):
    """A row broke a unique or foreign-key constraint."""


class BackendCapacityError(SeedError):
    """A statement would exceed the backend's bind-parameter limit."""


class BackendConnectionError(SeedError):
    """The backend could not be reached or dropped the connection."""


# Driver messages that mean "too many bind parameters in one statement".
_CAPACITY_MARKERS = (
    "too many sql variables",
    "too many terms in compound select",
    "number of parameters must be between",
    "extended protocol limited to",
)


def classify_database_error(
    error: sa_exc.SQLAlchemyError,
    context: Optional[Dict[str, Any]] = None,
) -> SeedError:
    """Map a SQLAlchemy error to the matching SeedError subclass."""
    message = str(getattr(error, "orig", None) or error)
    lowered = message.lower()

    if isinstance(error, sa_exc.IntegrityError):
        return ConstraintViolationError(
            f"Constraint violation: {message}", context=context, original_error=error
        )
    if any(marker in lowered for marker in _CAPACITY_MARKERS):
        return BackendCapacityError(
            f"Batch exceeds backend limits: {message}", context=context, original_error=error
        )
    if isinstance(error, (sa_exc.OperationalError, sa_exc.InterfaceError)):
        return BackendConnectionError(
            f"Backend unavailable: {message}", context=context, original_error=error
        )
    return SeedError(f"Database error: {message}", context=context, original_error=error)
