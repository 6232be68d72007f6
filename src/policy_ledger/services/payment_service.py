"""Premium payment service."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict

from policy_ledger.core.errors import InsufficientFunds
from policy_ledger.core.validation import (
    normalize_lower,
    validate_integer,
    validate_required_text,
)
from policy_ledger.models.account import Account, account_key
from policy_ledger.models.codec import encode
from policy_ledger.models.payment import PremiumPayment, payment_key
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.ledger_store import LedgerStore, read_record

logger = logging.getLogger(__name__)

SENTINEL_ACCOUNT_KEY = "account"


class PaymentService:
    """Checks funds for a premium payment and records it.

    The balance check reads a reference account chosen by ``balance_source``:
    ``"sentinel"`` reads the bare ``account`` key, ``"policy"`` reads the
    account whose id is the policy number. A missing or undecodable reference
    account counts as a zero balance. The balance is never debited.
    """

    def __init__(
        self,
        store: LedgerStore,
        audit_repo: AuditRepository,
        balance_source: str = "sentinel",
    ):
        if balance_source not in ("sentinel", "policy"):
            raise ValueError(f"Unsupported payment balance source: {balance_source}")
        self._store = store
        self._audit_repo = audit_repo
        self._balance_source = balance_source

    def _reference_key(self, policy_number: int) -> str:
        if self._balance_source == "policy":
            return account_key(str(policy_number))
        return SENTINEL_ACCOUNT_KEY

    def initiate_payment(
        self,
        policy_number: str,
        dob: str,
        email: str,
        contact_number: str,
        name: str,
        due_date: str,
        amount: str,
    ) -> PremiumPayment:
        """Validate funds and write the payment record, overwriting any prior one."""
        validate_required_text(policy_number, "Policy Number")
        validate_required_text(dob, "DOB")
        validate_required_text(email, "Email")
        validate_required_text(contact_number, "ContactNumber")
        validate_required_text(name, "Name")
        validate_required_text(due_date, "DueDate")
        validate_required_text(amount, "Amount")

        payment = PremiumPayment(
            policy_number=validate_integer(policy_number, "PolicyNumber"),
            date_of_birth=validate_integer(dob, "DOB"),
            email=normalize_lower(email, "Email"),
            contact_number=normalize_lower(contact_number, "ContactNumber"),
            name=normalize_lower(name, "Name"),
            due_date=validate_integer(due_date, "DueDate"),
            amount=validate_integer(amount, "Amount"),
        )

        reference_key = self._reference_key(payment.policy_number)
        reference = read_record(self._store, reference_key, Account)
        balance = reference.record.balance if reference.is_valid else 0
        if reference.is_corrupt:
            logger.warning(
                "reference account undecodable, using zero balance key=%s error=%s",
                reference_key,
                reference.error,
            )

        if balance < payment.amount:
            logger.warning(
                "not enough balance for policy=%d balance=%d amount=%d",
                payment.policy_number,
                balance,
                payment.amount,
            )
            raise InsufficientFunds(
                "Transaction Cancelled",
                {"policy": payment.policy_number, "balance": balance, "amount": payment.amount},
            )

        key = payment_key(payment.policy_number)
        self._store.put(key, encode(payment))
        logger.info("recorded premium payment key=%s amount=%d", key, payment.amount)
        self._audit_repo.add_log(
            "CREATE",
            "payment",
            key,
            json.dumps(
                {"event": "payment initiated", "after": asdict(payment)},
                ensure_ascii=False,
            ),
        )
        return payment

    def get_payment(self, policy_number: str) -> bytes:
        """Return the raw stored payment bytes."""
        number = validate_integer(policy_number, "PolicyNumber")
        return self._store.get(payment_key(number))
