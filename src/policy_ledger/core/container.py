"""Application dependency container."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from policy_ledger.core.config import AppConfig, ensure_runtime_keys, load_config
from policy_ledger.repositories.audit_repository import AuditRepository
from policy_ledger.repositories.db_pool import MEMORY_PATH, ThreadLocalConnection
from policy_ledger.repositories.ledger_store import (
    InMemoryLedgerStore,
    LedgerStore,
    SqliteLedgerStore,
)
from policy_ledger.repositories.schema import initialize_schema
from policy_ledger.services.account_service import AccountService
from policy_ledger.services.claim_service import ClaimService
from policy_ledger.services.csv_import_service import CsvImportService
from policy_ledger.services.dispatcher import LedgerDispatcher
from policy_ledger.services.payment_service import PaymentService


@dataclass
class ServiceContainer:
    """Wires the store, repositories and services."""

    config: AppConfig
    store: LedgerStore
    account_service: AccountService
    payment_service: PaymentService
    claim_service: ClaimService
    csv_import_service: CsvImportService
    dispatcher: LedgerDispatcher
    audit_repo: AuditRepository


def build_container(
    config: AppConfig | None = None,
    config_path: Path | None = None,
) -> ServiceContainer:
    """Build dependencies and initialize schema."""
    config = config or load_config(config_path)
    ensure_runtime_keys(config)

    store_config = config.store
    if store_config.backend == "memory":
        # Audit rows still need a database; keep one in-process for all threads.
        store_config = replace(store_config, path=MEMORY_PATH)

    pool = ThreadLocalConnection(store_config)
    initialize_schema(pool)

    audit_repo = AuditRepository(pool)
    store: LedgerStore
    if config.store.backend == "memory":
        store = InMemoryLedgerStore()
    else:
        store = SqliteLedgerStore(pool)

    account_service = AccountService(store, audit_repo)
    payment_service = PaymentService(store, audit_repo, config.payments.balance_source)
    claim_service = ClaimService(store, audit_repo)

    return ServiceContainer(
        config=config,
        store=store,
        account_service=account_service,
        payment_service=payment_service,
        claim_service=claim_service,
        csv_import_service=CsvImportService(account_service),
        dispatcher=LedgerDispatcher(store, account_service, payment_service, claim_service),
        audit_repo=audit_repo,
    )
