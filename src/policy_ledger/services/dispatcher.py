"""Maps named ledger functions and positional string arguments to services."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from policy_ledger.core.errors import UnknownFunction
from policy_ledger.core.validation import validate_arg_count
from policy_ledger.repositories.ledger_store import LedgerStore
from policy_ledger.services.account_service import AccountService
from policy_ledger.services.claim_service import ClaimService
from policy_ledger.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

INIT_KEY = "hello_world"


@dataclass(frozen=True)
class Operation:
    arg_count: int
    usage: str
    handler: Callable[..., object]


class LedgerDispatcher:
    """Entry point for invoke (state-changing) and query (read-only) calls."""

    def __init__(
        self,
        store: LedgerStore,
        account_service: AccountService,
        payment_service: PaymentService,
        claim_service: ClaimService,
    ):
        self._store = store
        self._invoke_ops: dict[str, Operation] = {
            "init": Operation(1, "value", self._init),
            "write": Operation(2, "key, value", self._write),
            "create_account": Operation(
                4, "username, dob, email, initial_balance", account_service.create_account
            ),
            "add_balance": Operation(2, "username, amount", account_service.add_balance),
            "buy_policy": Operation(2, "account_id, policy_number", account_service.buy_policy),
            "init_payment": Operation(
                7,
                "policy_number, dob, email, contact, name, due_date, amount",
                payment_service.initiate_payment,
            ),
            "claim_insurance": Operation(
                5,
                "account_id, policy_number, type, doc_verified, amount",
                claim_service.file_claim,
            ),
        }
        self._query_ops: dict[str, Operation] = {
            "read": Operation(1, "key", store.get),
            "get_balance": Operation(1, "account id", account_service.get_balance),
            "get_claim": Operation(1, "policy number", claim_service.get_claim),
            "get_payment": Operation(1, "policy number", payment_service.get_payment),
        }

    @property
    def invoke_functions(self) -> list[str]:
        return sorted(self._invoke_ops)

    @property
    def query_functions(self) -> list[str]:
        return sorted(self._query_ops)

    def invoke(self, function: str, args: Sequence[str]) -> bytes:
        """Run a state-changing function. Success carries an empty payload."""
        logger.debug("invoke is running %s", function)
        operation = self._invoke_ops.get(function)
        if operation is None:
            raise UnknownFunction(f"Received unknown function invocation: {function}")
        validate_arg_count(args, operation.arg_count, operation.usage)
        operation.handler(*args)
        return b""

    def query(self, function: str, args: Sequence[str]) -> bytes:
        """Run a read-only function and return the stored bytes."""
        logger.debug("query is running %s", function)
        operation = self._query_ops.get(function)
        if operation is None:
            raise UnknownFunction(f"Received unknown function query: {function}")
        validate_arg_count(args, operation.arg_count, operation.usage)
        return operation.handler(*args)

    def _init(self, value: str) -> None:
        self._store.put(INIT_KEY, value.encode("utf-8"))

    def _write(self, key: str, value: str) -> None:
        self._store.put(key, value.encode("utf-8"))
