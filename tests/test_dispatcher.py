"""Tests for the named-function dispatch layer."""

from __future__ import annotations

import json

import pytest

from policy_ledger.core.errors import (
    AlreadyExists,
    InvalidArgumentCount,
    NotFound,
    UnknownFunction,
    to_error_payload,
)
from policy_ledger.repositories.ledger_store import InMemoryLedgerStore
from policy_ledger.services.account_service import AccountService
from policy_ledger.services.claim_service import ClaimService
from policy_ledger.services.dispatcher import LedgerDispatcher
from policy_ledger.services.payment_service import PaymentService


class FakeAuditRepository:
    def __init__(self):
        self.logs = []

    def add_log(self, action, entity, entity_key, detail):
        self.logs.append((action, entity, entity_key, detail))


def build_dispatcher():
    store = InMemoryLedgerStore()
    audit = FakeAuditRepository()
    dispatcher = LedgerDispatcher(
        store,
        AccountService(store, audit),
        PaymentService(store, audit),
        ClaimService(store, audit),
    )
    return store, dispatcher


def test_invoke_and_query_round_trip() -> None:
    _, dispatcher = build_dispatcher()

    assert dispatcher.invoke("create_account", ["alice", "19900101", "a@x.com", "500"]) == b""
    assert dispatcher.invoke("add_balance", ["alice", "500"]) == b""
    assert dispatcher.invoke("buy_policy", ["alice", "1001"]) == b""
    assert dispatcher.invoke("claim_insurance", ["alice", "1001", "health", "true", "200"]) == b""

    account = json.loads(dispatcher.query("get_balance", ["ALICE"]))
    assert account["balance"] == 500
    assert account["policies"] == ["1001"]
    assert json.loads(dispatcher.query("get_claim", ["1001"]))["type"] == "health"


def test_write_and_read_are_raw_passthrough() -> None:
    store, dispatcher = build_dispatcher()

    dispatcher.invoke("write", ["color", "blue"])
    dispatcher.invoke("init", ["hi"])

    assert dispatcher.query("read", ["color"]) == b"blue"
    assert store.get("hello_world") == b"hi"


def test_init_payment_through_dispatcher() -> None:
    store, dispatcher = build_dispatcher()
    reference = '{"id":"x","dob":0,"email":"","balance":10,"policies":[]}'
    dispatcher.invoke("write", ["account", reference])

    dispatcher.invoke("init_payment", ["5", "1", "a@x.com", "555", "a", "2", "10"])

    assert json.loads(dispatcher.query("get_payment", ["5"]))["amount"] == 10
    assert store.keys() == ["account", "pay:5"]


def test_wrong_argument_count() -> None:
    _, dispatcher = build_dispatcher()

    with pytest.raises(InvalidArgumentCount):
        dispatcher.invoke("create_account", ["alice", "1", "a@x.com"])
    with pytest.raises(InvalidArgumentCount):
        dispatcher.query("get_claim", [])


def test_unknown_functions() -> None:
    _, dispatcher = build_dispatcher()

    with pytest.raises(UnknownFunction):
        dispatcher.invoke("delete_account", ["alice"])
    with pytest.raises(UnknownFunction):
        dispatcher.query("create_account", ["alice", "1", "a@x.com", "0"])


def test_error_payload_is_structured() -> None:
    _, dispatcher = build_dispatcher()
    dispatcher.invoke("create_account", ["alice", "1", "a@x.com", "0"])

    with pytest.raises(AlreadyExists) as excinfo:
        dispatcher.invoke("create_account", ["alice", "1", "a@x.com", "0"])
    payload = json.loads(to_error_payload(excinfo.value))
    assert payload["Error"] == "AlreadyExists"
    assert payload["details"] == {"key": "acct:alice"}

    with pytest.raises(NotFound):
        dispatcher.query("read", ["missing"])
