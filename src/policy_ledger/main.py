"""Command-line entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from policy_ledger.core.config import load_config
from policy_ledger.core.container import build_container
from policy_ledger.core.errors import LedgerError, to_error_payload
from policy_ledger.core.logging_setup import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="policy-ledger", description="Insurance policy ledger.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to ledger YAML config. Defaults to config/ledger.yaml.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    invoke = commands.add_parser("invoke", help="Run a state-changing ledger function.")
    invoke.add_argument("function")
    invoke.add_argument("args", nargs=argparse.REMAINDER)

    query = commands.add_parser("query", help="Run a read-only ledger function.")
    query.add_argument("function")
    query.add_argument("args", nargs=argparse.REMAINDER)

    import_accounts = commands.add_parser("import-accounts", help="Create accounts from CSV.")
    import_accounts.add_argument("csv_path")

    import_policies = commands.add_parser("import-policies", help="Buy policies from CSV.")
    import_policies.add_argument("csv_path")

    audit = commands.add_parser("audit", help="Print recent audit log entries.")
    audit.add_argument("--limit", type=int, default=20)
    audit.add_argument("--offset", type=int, default=0)
    audit.add_argument("--action", default=None, help="Only CREATE or UPDATE entries.")
    audit.add_argument("--entity", default=None, help="Only account, payment or claim entries.")
    audit.add_argument("--key", default=None, help="Only entries for this ledger key.")
    return parser


def run(argv: list[str] | None = None) -> int:
    """Run one CLI command and return the process exit code."""
    args = build_parser().parse_args(argv)
    config = load_config(Path(args.config) if args.config else None)
    configure_logging(config.logging)

    container = build_container(config)
    removed = container.audit_repo.cleanup_old_logs(config.logging.retention_days)
    if removed:
        logger.info("Cleaned old audit logs: %d", removed)

    try:
        if args.command == "invoke":
            container.dispatcher.invoke(args.function, args.args)
        elif args.command == "query":
            payload = container.dispatcher.query(args.function, args.args)
            sys.stdout.write(payload.decode("utf-8", errors="replace") + "\n")
        elif args.command == "import-accounts":
            result = container.csv_import_service.import_accounts(args.csv_path)
            print(f"created={result.created_count} failed={result.failed_count}")
            for message in result.error_messages:
                print(f"  {message}")
        elif args.command == "import-policies":
            result = container.csv_import_service.import_policies(args.csv_path)
            print(f"created={result.created_count} failed={result.failed_count}")
            for message in result.error_messages:
                print(f"  {message}")
        elif args.command == "audit":
            entries = container.audit_repo.list_logs(
                limit=args.limit,
                offset=args.offset,
                action=args.action,
                entity=args.entity,
                entity_key=args.key,
            )
            for entry in entries:
                print(json.dumps(entry, ensure_ascii=False))
    except LedgerError as error:
        sys.stderr.write(to_error_payload(error).decode("utf-8") + "\n")
        return 1
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
