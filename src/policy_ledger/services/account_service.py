"""Account service: creation, balance top-ups and policy purchases."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict

from policy_ledger.core.errors import AlreadyExists, AlreadyPurchased, NotFound
from policy_ledger.core.validation import (
    normalize_lower,
    validate_integer,
    validate_non_negative_integer,
    validate_required_text,
)
from policy_ledger.models.account import Account, account_key
from policy_ledger.models.codec import ReadResult, encode
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.ledger_store import LedgerStore, read_record

logger = logging.getLogger(__name__)


class AccountService:
    """Coordinates account use cases."""

    def __init__(self, store: LedgerStore, audit_repo: AuditRepository):
        self._store = store
        self._audit_repo = audit_repo

    def create_account(
        self,
        username: str,
        dob: str,
        email: str,
        initial_balance: str,
    ) -> Account:
        """Create an account with a zero balance.

        ``initial_balance`` must be non-empty but its value is ignored: every
        account starts at 0 and is funded through add_balance. An existing key
        whose bytes do not decode is treated as a free slot and overwritten.
        """
        account_id = normalize_lower(username, "UserName")
        validate_required_text(dob, "DOB")
        normalized_email = normalize_lower(email, "Email")
        validate_required_text(initial_balance, "Balance")
        date_of_birth = validate_integer(dob, "DOB")

        account = Account(id=account_id, date_of_birth=date_of_birth, email=normalized_email)
        key = account_key(account_id)
        logger.debug("create_account start key=%s", key)

        existing = read_record(self._store, key, Account)
        if existing.is_valid:
            logger.warning("create_account rejected, account exists key=%s", key)
            raise AlreadyExists(f"Can't reinitialize existing user {account_id}", {"key": key})
        if existing.is_corrupt:
            logger.warning(
                "create_account overwriting undecodable account key=%s error=%s",
                key,
                existing.error,
            )

        self._store.put(key, encode(account), expected_version=existing.version)
        logger.info("created account key=%s", key)
        self._audit("CREATE", key, {"event": "account created", "after": asdict(account)})
        return account

    def add_balance(self, username: str, amount: str) -> Account:
        """Add a non-negative amount to an existing account balance."""
        account_id = normalize_lower(username, "UserName")
        validate_required_text(amount, "Balance")
        increment = validate_non_negative_integer(amount, "Balance")

        key = account_key(account_id)
        result = self._load(key, account_id)
        account = result.record
        before = account.balance
        account.balance = before + increment

        self._store.put(key, encode(account), expected_version=result.version)
        logger.info("added balance key=%s amount=%d balance=%d", key, increment, account.balance)
        self._audit(
            "UPDATE",
            key,
            {
                "event": "balance added",
                "changes": {"balance": {"before": before, "after": account.balance}},
            },
        )
        return account

    def buy_policy(self, username: str, policy_number: str) -> Account:
        """Append a policy number to the account's purchased policies."""
        account_id = normalize_lower(username, "AccID")
        policy = validate_required_text(policy_number, "PolicyNumber")

        key = account_key(account_id)
        result = self._load(key, account_id)
        account = result.record
        if account.owns(policy):
            logger.warning("buy_policy rejected, already bought key=%s policy=%s", key, policy)
            raise AlreadyPurchased(
                "policy already bought",
                {"account": account_id, "policy": policy},
            )

        account.policies.append(policy)
        self._store.put(key, encode(account), expected_version=result.version)
        logger.info("bought policy key=%s policy=%s", key, policy)
        self._audit("UPDATE", key, {"event": "policy bought", "policy_number": policy})
        return account

    def get_balance(self, username: str) -> bytes:
        """Return the raw stored account bytes."""
        account_id = normalize_lower(username, "UserName")
        return self._store.get(account_key(account_id))

    def get_account(self, username: str) -> Account:
        """Return the decoded account record."""
        account_id = normalize_lower(username, "UserName")
        return self._load(account_key(account_id), account_id).record

    def _load(self, key: str, account_id: str) -> ReadResult:
        """Read an account that must exist and decode."""
        result = read_record(self._store, key, Account)
        if result.is_absent:
            raise NotFound(f"No account found for ID --> {account_id}", {"key": key})
        if result.is_corrupt:
            logger.error("account reading problem key=%s error=%s", key, result.error)
            raise result.error
        return result

    def _audit(self, action: str, key: str, detail: dict) -> None:
        self._audit_repo.add_log(action, "account", key, json.dumps(detail, ensure_ascii=False))
