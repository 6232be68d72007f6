"""Premium payment domain model."""

from __future__ import annotations

from dataclasses import dataclass

PAYMENT_PREFIX = "pay:"


def payment_key(policy_number: int) -> str:
    """Return the ledger key of a premium payment."""
    return PAYMENT_PREFIX + str(policy_number)


@dataclass
class PremiumPayment:
    """A premium payment scheduled against a policy number."""

    policy_number: int
    date_of_birth: int
    email: str
    contact_number: str
    name: str
    due_date: int
    amount: int
