"""Account domain model."""

from __future__ import annotations

from dataclasses import dataclass, field

ACCOUNT_PREFIX = "acct:"


def account_key(account_id: str) -> str:
    """Return the ledger key of an account."""
    return ACCOUNT_PREFIX + account_id


@dataclass
class Account:
    """A user account holding a balance and the policies it bought."""

    id: str
    date_of_birth: int
    email: str
    balance: int = 0
    policies: list[str] = field(default_factory=list)

    def owns(self, policy_number: str) -> bool:
        return policy_number in self.policies
