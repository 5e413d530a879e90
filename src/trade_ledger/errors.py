# src/trade_ledger/errors.py
"""Exception hierarchy for the trade ledger."""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class RecordValidationError(LedgerError):
    """An input record is missing required fields or carries invalid values."""


class ConflictError(LedgerError):
    """A create or rename would duplicate an owner-scoped unique value."""


class NotFoundError(LedgerError):
    """A referenced trade, strategy or rule does not exist for the owner."""


class DuplicateKeyError(LedgerError):
    """Raised by a store when a write violates a uniqueness constraint.

    Attributes:
        key: Name of the violated constraint.
    """

    def __init__(self, key: str, message: str | None = None) -> None:
        self.key = key
        super().__init__(message or f"Duplicate key for constraint '{key}'")


class ApiKeyError(LedgerError):
    """The sync API-key channel is misconfigured or the key is unknown."""
