"""Error taxonomy shared by every GameSoul component."""

from __future__ import annotations


class GameSoulError(Exception):
    """Base class for all errors raised deliberately by GameSoul."""


class ValidationError(GameSoulError):
    """Malformed or incomplete input (missing answers, out-of-range values)."""


class DatabaseError(GameSoulError):
    """A datastore query or write failed.

    Args:
        message: Human-readable description.
        variant: Name of the query variant or port operation that failed,
            when known.  Carried so callers can log which tier broke.
    """

    def __init__(self, message: str, variant: str | None = None) -> None:
        super().__init__(message)
        self.variant = variant


class NotFoundError(GameSoulError):
    """A user or profile lookup found nothing."""


class InternalError(GameSoulError):
    """Anything unexpected."""
