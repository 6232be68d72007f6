"""Ledger error hierarchy.

Every failure surfaced to callers derives from LedgerError. It subclasses
ValueError so callers that already guard user input with ``except ValueError``
keep working.
"""

from __future__ import annotations

import json


class LedgerError(ValueError):
    """Base error for all ledger operations."""

    kind = "LedgerError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_payload(self) -> bytes:
        """Render the structured error payload returned to callers."""
        body = {"Error": self.kind, "message": self.message}
        if self.details:
            body["details"] = {k: str(v) for k, v in self.details.items()}
        return json.dumps(body, ensure_ascii=False).encode("utf-8")


class InvalidArgumentCount(LedgerError):
    kind = "InvalidArgumentCount"


class InvalidArgumentValue(LedgerError):
    kind = "InvalidArgumentValue"


class UnknownFunction(LedgerError):
    kind = "UnknownFunction"


class NotFound(LedgerError):
    kind = "NotFound"


class AlreadyExists(LedgerError):
    kind = "AlreadyExists"


class AlreadyPurchased(LedgerError):
    kind = "AlreadyPurchased"


class PolicyNotOwned(LedgerError):
    kind = "PolicyNotOwned"


class AlreadyClaimed(LedgerError):
    kind = "AlreadyClaimed"


class InsufficientFunds(LedgerError):
    kind = "InsufficientFunds"


class DecodeError(LedgerError):
    """Stored bytes exist but are not a well-formed record."""

    kind = "DecodeError"


class WriteConflict(LedgerError):
    """A conditional write lost against a concurrent writer."""

    kind = "WriteConflict"


class StoreError(LedgerError):
    """The underlying store failed to read or write."""

    kind = "StoreError"


def to_error_payload(error: LedgerError) -> bytes:
    """Return the JSON error payload for a ledger error."""
    return error.to_payload()
