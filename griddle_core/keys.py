from __future__ import annotations

import math
import numbers
import unicodedata
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple

TUPLE_PART_SEPARATOR = "|"
TUPLE_VALUE_SEPARATOR = "="
_ESCAPE = "\\"


def _number_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def canonicalize(value: object) -> str:
    """Stable string key for a raw field value ("" for blank)."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, Decimal) and value.is_nan():
        return "NaN"
    if isinstance(value, (numbers.Real, Decimal)):
        return _number_text(float(value))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def collation_key(value: str) -> Tuple[str, str, str]:
    """Sort key approximating root-locale collation.

    Compares base letters first (accents and case ignored), then accents, then
    case with lowercase ahead of uppercase.
    """
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), decomposed.casefold(), value.swapcase()


def _escape(text: str) -> str:
    return (
        text.replace(_ESCAPE, _ESCAPE * 2)
        .replace(TUPLE_PART_SEPARATOR, _ESCAPE + TUPLE_PART_SEPARATOR)
        .replace(TUPLE_VALUE_SEPARATOR, _ESCAPE + TUPLE_VALUE_SEPARATOR)
    )


def encode_tuple_key(keys: Iterable[str], values: Mapping[str, str]) -> str:
    """Composite ``key=value|key=value`` string for a tuple.

    Backslash, ``|`` and ``=`` inside keys or values are escaped with a
    backslash, so two different tuples over the same key list never share an
    encoding.
    """
    return TUPLE_PART_SEPARATOR.join(
        f"{_escape(k)}{TUPLE_VALUE_SEPARATOR}{_escape(values.get(k, ''))}" for k in keys
    )


def cell_key(row_index: int, col_index: int) -> str:
    return f"{row_index}:{col_index}"


def parse_cell_key(key: str) -> Optional[Tuple[int, int]]:
    row, sep, col = key.partition(":")
    if not sep:
        return None
    try:
        return int(row), int(col)
    except ValueError:
        return None
