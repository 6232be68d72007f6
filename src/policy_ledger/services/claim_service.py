"""Claim service."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict

from policy_ledger.core.errors import AlreadyClaimed, NotFound, PolicyNotOwned
from policy_ledger.core.validation import (
    normalize_lower,
    validate_bool,
    validate_integer,
    validate_required_text,
)
from policy_ledger.models.account import Account, account_key
from policy_ledger.models.claim import ClaimInsurance, claim_key
from policy_ledger.models.codec import encode
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.ledger_store import LedgerStore, read_record

logger = logging.getLogger(__name__)


class ClaimService:
    """Files claims at most once per owned policy number."""

    def __init__(self, store: LedgerStore, audit_repo: AuditRepository):
        self._store = store
        self._audit_repo = audit_repo

    def file_claim(
        self,
        account_id: str,
        policy_number: str,
        claim_type: str,
        doc_verified: str,
        amount: str,
    ) -> ClaimInsurance:
        """File a claim for a policy the account owns.

        An existing claim slot blocks filing only when it holds a decodable
        claim; undecodable bytes are overwritten.
        """
        validate_required_text(account_id, "AccID")
        policy = validate_required_text(policy_number, "PolicyNumber")
        validate_required_text(claim_type, "Type")
        validate_required_text(doc_verified, "DocVerified")
        validate_required_text(amount, "Amount")

        claim = ClaimInsurance(
            account_id=normalize_lower(account_id, "AccID"),
            policy_number=validate_integer(policy, "PolicyNumber"),
            type_of_claim=normalize_lower(claim_type, "Type"),
            document_verified=validate_bool(doc_verified, "DocVerified"),
            amount=validate_integer(amount, "Amount"),
        )

        acct_key = account_key(claim.account_id)
        account_result = read_record(self._store, acct_key, Account)
        if account_result.is_absent:
            raise NotFound(f"No account found for ID --> {claim.account_id}", {"key": acct_key})
        if account_result.is_corrupt:
            logger.error("account reading problem key=%s error=%s", acct_key, account_result.error)
            raise account_result.error
        if not account_result.record.owns(policy):
            logger.warning(
                "claim rejected, policy not bought account=%s policy=%s",
                claim.account_id,
                policy,
            )
            raise PolicyNotOwned(f"Policy Not bought for - {policy}", {"account": claim.account_id})

        # The slot uses the policy string as given, matching the ownership check.
        key = claim_key(policy)
        existing = read_record(self._store, key, ClaimInsurance)
        if existing.is_valid:
            logger.warning("claim rejected, already claimed key=%s", key)
            raise AlreadyClaimed(f"Already Claimed for policynumber {policy}", {"key": key})
        if existing.is_corrupt:
            logger.warning(
                "claim slot undecodable, overwriting key=%s error=%s",
                key,
                existing.error,
            )

        self._store.put(key, encode(claim), expected_version=existing.version)
        logger.info("filed claim key=%s amount=%d", key, claim.amount)
        self._audit_repo.add_log(
            "CREATE",
            "claim",
            key,
            json.dumps({"event": "claim filed", "after": asdict(claim)}, ensure_ascii=False),
        )
        return claim

    def get_claim(self, policy_number: str) -> bytes:
        """Return the raw stored claim bytes."""
        policy = validate_required_text(policy_number, "PolicyNumber")
        return self._store.get(claim_key(policy))
