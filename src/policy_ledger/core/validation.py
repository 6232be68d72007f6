"""Argument validation rules for ledger operations."""

from __future__ import annotations

import re
from typing import Sequence

from policy_ledger.core.errors import InvalidArgumentCount, InvalidArgumentValue

INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
TRUE_VALUES = {"1", "t", "T", "TRUE", "true", "True"}
FALSE_VALUES = {"0", "f", "F", "FALSE", "false", "False"}


def validate_arg_count(args: Sequence[str], expected: int, usage: str) -> None:
    """Reject calls that do not carry exactly ``expected`` arguments."""
    if len(args) != expected:
        raise InvalidArgumentCount(
            f"Incorrect number of arguments. Expecting {expected}: {usage}",
            {"received": len(args)},
        )


def validate_required_text(value: str, field_name: str) -> str:
    """Validate a non-empty argument. The value is returned unchanged."""
    if value is None or len(value) == 0:
        raise InvalidArgumentValue(f"{field_name} must be non-empty")
    return value


def validate_integer(value: str, field_name: str) -> int:
    """Parse a decimal-integer string."""
    validate_required_text(value, field_name)
    if not INTEGER_PATTERN.fullmatch(value):
        raise InvalidArgumentValue(f"{field_name} must be a numeric string", {"value": value})
    return int(value)


def validate_non_negative_integer(value: str, field_name: str) -> int:
    """Parse a decimal-integer string that must be zero or greater."""
    number = validate_integer(value, field_name)
    if number < 0:
        raise InvalidArgumentValue(f"{field_name} must not be negative", {"value": value})
    return number


def validate_bool(value: str, field_name: str) -> bool:
    """Parse the boolean spellings accepted by the ledger wire format."""
    validate_required_text(value, field_name)
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise InvalidArgumentValue(f"{field_name} must be a bool string", {"value": value})


def normalize_lower(value: str, field_name: str) -> str:
    """Validate non-empty text and lowercase it."""
    return validate_required_text(value, field_name).lower()
