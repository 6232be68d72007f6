"""CSV import service for accounts and policy purchases."""

from __future__ import annotations

import csv
from dataclasses import dataclass

from policy_ledger.services.account_service import AccountService

ACCOUNT_CSV_HEADERS = [
    "username",
    "dob",
    "email",
    "initial_balance",
]

POLICY_CSV_HEADERS = [
    "username",
    "policy_number",
]


@dataclass
class CsvImportResult:
    """Result summary for CSV imports."""

    created_count: int
    failed_count: int
    error_messages: list[str]


class CsvImportService:
    """Imports rows from CSV and delegates each one to the account service."""

    def __init__(self, account_service: AccountService):
        self._account_service = account_service

    @staticmethod
    def _validate_headers(fieldnames: list[str] | None, required: list[str]) -> None:
        if fieldnames is None:
            raise ValueError("CSV header row is missing")
        missing = [header for header in required if header not in fieldnames]
        if missing:
            raise ValueError(f"CSV headers missing: {', '.join(missing)}")

    def import_accounts(self, file_path: str) -> CsvImportResult:
        """Create one account per row and return success/failure counts."""
        created_count = 0
        failed_count = 0
        errors: list[str] = []

        with open(file_path, "r", encoding="utf-8-sig", newline="") as csv_file:
            reader = csv.DictReader(csv_file)
            self._validate_headers(reader.fieldnames, ACCOUNT_CSV_HEADERS)

            for row_index, row in enumerate(reader, start=2):
                try:
                    self._account_service.create_account(
                        row["username"] or "",
                        row["dob"] or "",
                        row["email"] or "",
                        row["initial_balance"] or "",
                    )
                    created_count += 1
                except (ValueError, KeyError, TypeError) as error:
                    failed_count += 1
                    if len(errors) < 10:
                        errors.append(f"row {row_index}: {error}")

        return CsvImportResult(
            created_count=created_count,
            failed_count=failed_count,
            error_messages=errors,
        )

    def import_policies(self, file_path: str) -> CsvImportResult:
        """Record one policy purchase per row and return success/failure counts."""
        created_count = 0
        failed_count = 0
        errors: list[str] = []

        with open(file_path, "r", encoding="utf-8-sig", newline="") as csv_file:
            reader = csv.DictReader(csv_file)
            self._validate_headers(reader.fieldnames, POLICY_CSV_HEADERS)

            for row_index, row in enumerate(reader, start=2):
                try:
                    self._account_service.buy_policy(
                        row["username"] or "",
                        row["policy_number"] or "",
                    )
                    created_count += 1
                except (ValueError, KeyError, TypeError) as error:
                    failed_count += 1
                    if len(errors) < 10:
                        errors.append(f"row {row_index}: {error}")

        return CsvImportResult(
            created_count=created_count,
            failed_count=failed_count,
            error_messages=errors,
        )
