"""Parsing helpers for loosely typed JSON/query input.

Clients send ids and quantities as numbers or numeric strings; every helper
here either returns a clean Python value or raises ``InvalidInput`` with a
stable code.
"""
from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from canteen.core.constants import MAX_PAGE_SIZE
from canteen.core.errors import InvalidInput

_INT_RE = re.compile(r"^\s*[+-]?\d+\s*$")
_CENTS = Decimal("0.01")
# Numeric(10, 2)
_MAX_PRICE = Decimal("100000000")
# Upper bound of a 32-bit Integer column
MAX_INT = 2_147_483_647


def coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_RE.match(value):
        return int(value)
    return None


def is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_id(
    value: Any,
    *,
    field: str,
    invalid_code: str,
    missing_code: str | None = None,
) -> int:
    if is_missing(value):
        if missing_code:
            raise InvalidInput(f"{field} is required", missing_code)
        raise InvalidInput(f"Valid {field} is required", invalid_code)
    parsed = coerce_int(value)
    if parsed is None or not 0 < parsed <= MAX_INT:
        raise InvalidInput(f"Valid {field} is required", invalid_code)
    return parsed


def parse_quantity(value: Any, *, missing_code: str | None = None) -> int:
    if value is None and missing_code:
        raise InvalidInput("Quantity is required", missing_code)
    parsed = coerce_int(value)
    if parsed is None or not 0 < parsed <= MAX_INT:
        raise InvalidInput("Quantity must be a positive integer", "INVALID_QUANTITY")
    return parsed


def parse_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInput("Price must be a positive number", "INVALID_PRICE")
    try:
        price = Decimal(str(value).strip()).quantize(_CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError) as exc:
        raise InvalidInput("Price must be a positive number", "INVALID_PRICE") from exc
    # NaN survives quantize and cannot be ordered
    if not price.is_finite() or price <= 0 or price >= _MAX_PRICE:
        raise InvalidInput("Price must be a positive number", "INVALID_PRICE")
    return price


def parse_choice(value: Any, choices: tuple[str, ...], *, field: str, code: str) -> str:
    if not isinstance(value, str) or value not in choices:
        raise InvalidInput(f"{field} must be one of: {', '.join(choices)}", code)
    return value


def parse_pagination(limit: Any, offset: Any, *, default_limit: int) -> tuple[int, int]:
    parsed_limit = default_limit if is_missing(limit) else coerce_int(limit)
    parsed_offset = 0 if is_missing(offset) else coerce_int(offset)
    if parsed_limit is None or parsed_limit < 1:
        raise InvalidInput("limit must be a positive integer", "INVALID_LIMIT")
    if parsed_offset is None or not 0 <= parsed_offset <= MAX_INT:
        raise InvalidInput("offset must be a non-negative integer", "INVALID_OFFSET")
    return min(parsed_limit, MAX_PAGE_SIZE), parsed_offset


def clean_optional_text(value: Any, *, field: str, code: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInput(f"{field} must be a string", code)
    cleaned = value.strip()
    return cleaned or None
