"""Integration-like tests for account, payment and claim services."""

from __future__ import annotations

import json

import pytest

from policy_ledger.core.config import StoreConfig
from policy_ledger.core.errors import (
    AlreadyClaimed,
    AlreadyExists,
    AlreadyPurchased,
    DecodeError,
    InsufficientFunds,
    InvalidArgumentValue,
    NotFound,
    PolicyNotOwned,
)
from policy_ledger.models.account import Account
from policy_ledger.models.codec import decode, encode
from policy_ledger.models.payment import PremiumPayment
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.db_pool import ThreadLocalConnection
from policy_ledger.repositories.ledger_store import SqliteLedgerStore
from policy_ledger.repositories.schema import initialize_schema
from policy_ledger.services.account_service import AccountService
from policy_ledger.services.claim_service import ClaimService
from policy_ledger.services.payment_service import PaymentService


def build_services(tmp_path, monkeypatch, balance_source: str = "sentinel"):
    monkeypatch.setenv("POLICY_LEDGER_DB_KEY", "test-key")
    pool = ThreadLocalConnection(
        StoreConfig(
            backend="sqlite",
            path=str(tmp_path / "test.db"),
            key_env="POLICY_LEDGER_DB_KEY",
            allow_sqlite_fallback=True,
        )
    )
    initialize_schema(pool)

    store = SqliteLedgerStore(pool)
    audit_repo = AuditRepository(pool)
    return (
        store,
        audit_repo,
        AccountService(store, audit_repo),
        PaymentService(store, audit_repo, balance_source),
        ClaimService(store, audit_repo),
    )


def test_alice_walkthrough(tmp_path, monkeypatch) -> None:
    store, audit_repo, accounts, _, claims = build_services(tmp_path, monkeypatch)

    accounts.create_account("Alice", "19900101", "A@X.com", "1000")
    alice = accounts.get_account("alice")
    assert alice.balance == 0
    assert alice.email == "a@x.com"

    accounts.add_balance("alice", "500")
    assert accounts.get_account("alice").balance == 500

    accounts.buy_policy("alice", "1001")
    assert accounts.get_account("alice").policies == ["1001"]

    with pytest.raises(AlreadyPurchased):
        accounts.buy_policy("alice", "1001")
    assert accounts.get_account("alice").policies == ["1001"]

    claim = claims.file_claim("alice", "1001", "Health", "true", "200")
    assert claim.type_of_claim == "health"
    assert claim.document_verified is True

    with pytest.raises(AlreadyClaimed):
        claims.file_claim("alice", "1001", "health", "true", "200")
    assert accounts.get_account("alice").policies == ["1001"]

    stored = json.loads(claims.get_claim("1001"))
    assert stored == {
        "accountID": "alice",
        "policynumber": 1001,
        "type": "health",
        "docverified": True,
        "amount": 200,
    }
    assert [log["action"] for log in audit_repo.list_logs(entity_key="acct:alice")] == [
        "UPDATE",
        "UPDATE",
        "CREATE",
    ]


def test_create_account_twice_fails(tmp_path, monkeypatch) -> None:
    _, _, accounts, _, _ = build_services(tmp_path, monkeypatch)

    accounts.create_account("bob", "1", "b@x.com", "0")
    with pytest.raises(AlreadyExists):
        accounts.create_account("BOB", "2", "other@x.com", "0")


def test_create_account_overwrites_undecodable_record(tmp_path, monkeypatch) -> None:
    store, _, accounts, _, _ = build_services(tmp_path, monkeypatch)
    store.put("acct:carol", b"")

    accounts.create_account("carol", "3", "c@x.com", "99")

    assert decode(Account, store.get("acct:carol")).id == "carol"


def test_create_account_validates_before_writing(tmp_path, monkeypatch) -> None:
    store, _, accounts, _, _ = build_services(tmp_path, monkeypatch)

    with pytest.raises(InvalidArgumentValue):
        accounts.create_account("dave", "not-a-date", "d@x.com", "0")
    with pytest.raises(InvalidArgumentValue):
        accounts.create_account("dave", "1", "d@x.com", "")
    assert store.get_versioned("acct:dave") == (None, None)


def test_add_balance_errors(tmp_path, monkeypatch) -> None:
    store, _, accounts, _, _ = build_services(tmp_path, monkeypatch)

    with pytest.raises(NotFound):
        accounts.add_balance("ghost", "10")

    accounts.create_account("erin", "1", "e@x.com", "0")
    with pytest.raises(InvalidArgumentValue):
        accounts.add_balance("erin", "-10")

    store.put("acct:frank", b"garbage")
    with pytest.raises(DecodeError):
        accounts.add_balance("frank", "10")


def test_buy_policy_requires_account(tmp_path, monkeypatch) -> None:
    _, _, accounts, _, _ = build_services(tmp_path, monkeypatch)

    with pytest.raises(NotFound):
        accounts.buy_policy("ghost", "1001")


def test_buy_policy_preserves_insertion_order(tmp_path, monkeypatch) -> None:
    _, _, accounts, _, _ = build_services(tmp_path, monkeypatch)
    accounts.create_account("gina", "1", "g@x.com", "0")

    for policy in ("30", "10", "20"):
        accounts.buy_policy("gina", policy)

    assert accounts.get_account("gina").policies == ["30", "10", "20"]


def test_claim_for_unowned_policy_fails(tmp_path, monkeypatch) -> None:
    store, _, accounts, _, claims = build_services(tmp_path, monkeypatch)
    accounts.create_account("hank", "1", "h@x.com", "0")
    accounts.buy_policy("hank", "1")

    with pytest.raises(PolicyNotOwned):
        claims.file_claim("hank", "2", "auto", "false", "0")
    assert store.get_versioned("claim:2") == (None, None)


def test_claim_requires_account(tmp_path, monkeypatch) -> None:
    _, _, _, _, claims = build_services(tmp_path, monkeypatch)

    with pytest.raises(NotFound):
        claims.file_claim("ghost", "1", "auto", "true", "10")


def test_claim_validates_fields(tmp_path, monkeypatch) -> None:
    _, _, accounts, _, claims = build_services(tmp_path, monkeypatch)
    accounts.create_account("ivy", "1", "i@x.com", "0")
    accounts.buy_policy("ivy", "5")

    with pytest.raises(InvalidArgumentValue):
        claims.file_claim("ivy", "5", "auto", "maybe", "10")
    with pytest.raises(InvalidArgumentValue):
        claims.file_claim("ivy", "5", "auto", "true", "ten")


def test_claim_overwrites_undecodable_slot(tmp_path, monkeypatch) -> None:
    store, _, accounts, _, claims = build_services(tmp_path, monkeypatch)
    accounts.create_account("jack", "1", "j@x.com", "0")
    accounts.buy_policy("jack", "77")
    store.put("claim:77", b"{broken")

    claims.file_claim("jack", "77", "fire", "1", "300")

    assert json.loads(store.get("claim:77"))["amount"] == 300


def test_payment_insufficient_funds_writes_nothing(tmp_path, monkeypatch) -> None:
    store, _, _, payments, _ = build_services(tmp_path, monkeypatch)
    store.put("account", encode(Account(id="account", date_of_birth=0, email="", balance=100)))

    with pytest.raises(InsufficientFunds):
        payments.initiate_payment("1001", "19900101", "a@x.com", "555", "Alice", "20260101", "101")

    assert store.get_versioned("pay:1001") == (None, None)


def test_payment_without_reference_account_uses_zero_balance(tmp_path, monkeypatch) -> None:
    store, _, _, payments, _ = build_services(tmp_path, monkeypatch)
    store.put("account", b"not an account")

    with pytest.raises(InsufficientFunds):
        payments.initiate_payment("1", "1", "a@x.com", "555", "a", "1", "1")
    payments.initiate_payment("1", "1", "a@x.com", "555", "a", "1", "0")

    assert store.get_versioned("pay:1")[1] == 1


def test_payment_is_recorded_under_its_own_prefix(tmp_path, monkeypatch) -> None:
    store, _, accounts, payments, _ = build_services(tmp_path, monkeypatch)
    store.put("account", encode(Account(id="account", date_of_birth=0, email="", balance=500)))
    store.put("1001", b"unrelated bare key")
    accounts.create_account("kim", "1", "k@x.com", "0")
    accounts.buy_policy("kim", "1001")

    payment = payments.initiate_payment(
        "1001", "19900101", "K@X.com", "Phone-1", "Kim LEE", "20260101", "300"
    )

    assert payment.email == "k@x.com"
    assert payment.contact_number == "phone-1"
    assert payment.name == "kim lee"
    assert decode(PremiumPayment, payments.get_payment("1001")) == payment
    assert store.get("1001") == b"unrelated bare key"
    assert store.get_versioned("claim:1001") == (None, None)
    assert decode(Account, store.get("account")).balance == 500


def test_payment_overwrites_previous_record(tmp_path, monkeypatch) -> None:
    store, _, _, payments, _ = build_services(tmp_path, monkeypatch)
    store.put("account", encode(Account(id="account", date_of_birth=0, email="", balance=500)))

    payments.initiate_payment("9", "1", "a@x.com", "555", "a", "1", "100")
    payments.initiate_payment("9", "1", "a@x.com", "555", "a", "2", "200")

    stored = decode(PremiumPayment, store.get("pay:9"))
    assert stored.due_date == 2
    assert stored.amount == 200


def test_payment_policy_balance_source(tmp_path, monkeypatch) -> None:
    store, _, accounts, payments, _ = build_services(tmp_path, monkeypatch, "policy")
    accounts.create_account("4242", "1", "p@x.com", "0")
    accounts.add_balance("4242", "50")

    payments.initiate_payment("4242", "1", "p@x.com", "555", "p", "1", "50")
    with pytest.raises(InsufficientFunds):
        payments.initiate_payment("4242", "1", "p@x.com", "555", "p", "1", "51")

    assert accounts.get_account("4242").balance == 50


def test_payment_rejects_unknown_balance_source(tmp_path, monkeypatch) -> None:
    store, audit_repo, _, _, _ = build_services(tmp_path, monkeypatch)

    with pytest.raises(ValueError):
        PaymentService(store, audit_repo, "bank")
