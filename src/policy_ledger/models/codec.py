"""Record codec: deterministic JSON bytes for ledger records.

Each record kind has a fixed field table mapping its wire tag to the dataclass
attribute and the expected JSON type. Encoding walks the table in order with
compact separators, so bytes produced here always decode and re-encode to the
same bytes.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from policy_ledger.core.errors import DecodeError
from policy_ledger.models.account import Account
from policy_ledger.models.claim import ClaimInsurance
from policy_ledger.models.payment import PremiumPayment

Record = Union[Account, PremiumPayment, ClaimInsurance]

# (wire tag, attribute, type)
FIELD_TABLES: dict[type, list[tuple[str, str, type]]] = {
    Account: [
        ("id", "id", str),
        ("dob", "date_of_birth", int),
        ("email", "email", str),
        ("balance", "balance", int),
        ("policies", "policies", list),
    ],
    PremiumPayment: [
        ("policynumber", "policy_number", int),
        ("dob", "date_of_birth", int),
        ("email", "email", str),
        ("contactnumber", "contact_number", str),
        ("name", "name", str),
        ("duedate", "due_date", int),
        ("amount", "amount", int),
    ],
    ClaimInsurance: [
        ("accountID", "account_id", str),
        ("policynumber", "policy_number", int),
        ("type", "type_of_claim", str),
        ("docverified", "document_verified", bool),
        ("amount", "amount", int),
    ],
}


def _fields_for(kind: type) -> list[tuple[str, str, type]]:
    try:
        return FIELD_TABLES[kind]
    except KeyError:
        raise TypeError(f"Not a ledger record type: {kind!r}") from None


def encode(record: Record) -> bytes:
    """Serialize a record into its canonical bytes."""
    body = {tag: getattr(record, attr) for tag, attr, _ in _fields_for(type(record))}
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _check_type(kind: type, tag: str, value: Any, expected: type) -> Any:
    if expected is list:
        # A nil slice in older records is stored as null.
        if value is None:
            return []
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise DecodeError(f"{kind.__name__}.{tag} must be a list of strings")
        return list(value)
    if expected is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodeError(f"{kind.__name__}.{tag} must be an integer")
        return value
    if not isinstance(value, expected):
        raise DecodeError(f"{kind.__name__}.{tag} must be {expected.__name__}")
    return value


def decode(kind: type, data: bytes) -> Record:
    """Parse bytes into a record of ``kind`` or raise DecodeError."""
    fields = _fields_for(kind)
    if not data:
        raise DecodeError(f"{kind.__name__} payload is empty")
    try:
        raw = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as error:
        raise DecodeError(f"{kind.__name__} payload is not valid JSON: {error}") from error
    if not isinstance(raw, dict):
        raise DecodeError(f"{kind.__name__} payload must be a JSON object")

    values: dict[str, Any] = {}
    for tag, attr, expected in fields:
        if tag not in raw:
            raise DecodeError(f"{kind.__name__} payload is missing '{tag}'")
        values[attr] = _check_type(kind, tag, raw[tag], expected)
    return kind(**values)


class ReadState(Enum):
    ABSENT = "absent"
    VALID = "valid"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class ReadResult:
    """Outcome of reading one key: absent, a valid record, or corrupt bytes."""

    state: ReadState
    record: Record | None = None
    raw: bytes | None = None
    error: DecodeError | None = None
    version: int | None = None

    @property
    def is_absent(self) -> bool:
        return self.state is ReadState.ABSENT

    @property
    def is_valid(self) -> bool:
        return self.state is ReadState.VALID

    @property
    def is_corrupt(self) -> bool:
        return self.state is ReadState.CORRUPT


def classify(kind: type, raw: bytes | None, version: int | None = None) -> ReadResult:
    """Turn the bytes found at a key into a tri-state read result."""
    if raw is None:
        return ReadResult(state=ReadState.ABSENT)
    try:
        record = decode(kind, raw)
    except DecodeError as error:
        return ReadResult(state=ReadState.CORRUPT, raw=raw, error=error, version=version)
    return ReadResult(state=ReadState.VALID, record=record, raw=raw, version=version)
