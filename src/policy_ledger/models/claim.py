"""Insurance claim domain model."""

from __future__ import annotations

from dataclasses import dataclass

CLAIM_PREFIX = "claim:"


def claim_key(policy_number: int | str) -> str:
    """Return the ledger key of the claim filed for a policy number."""
    return CLAIM_PREFIX + str(policy_number)


@dataclass
class ClaimInsurance:
    """A claim filed once against an owned policy."""

    account_id: str
    policy_number: int
    type_of_claim: str
    document_verified: bool
    amount: int
