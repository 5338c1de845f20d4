"""Typed access to record payloads.

Record ``data`` is an open key -> value mapping with no binding to the schema
on write. Reads go through here so that measure parsing, flag truthiness and
per-type coercion happen in one place.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Union

import pandas as pd

from griddle_core.keys import canonicalize
from griddle_core.model import DatasetSchema, FieldDef, FieldType, RecordEntity

Scalar = Union[str, float, bool, date, None]


def measure_value(raw: object) -> Optional[float]:
    """Numeric contribution of a raw measure value, or None if it has none."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal) and raw.is_nan():
        return None
    if isinstance(raw, (numbers.Real, Decimal)):
        out = float(raw)
        return out if math.isfinite(out) else None
    if isinstance(raw, str):
        s = raw.strip()
        if not s or "_" in s:
            return None
        try:
            out = float(s)
        except ValueError:
            return None
        return out if math.isfinite(out) else None
    return None


def flag_value(raw: object) -> bool:
    return raw is True


@dataclass(frozen=True)
class FieldValue:
    """A record value tagged with the type it was read as."""

    type: FieldType
    value: Scalar

    @property
    def is_blank(self) -> bool:
        return self.value is None or self.value == ""


def coerce_value(raw: object, field_type: FieldType) -> FieldValue:
    if field_type == "number":
        return FieldValue("number", measure_value(raw))
    if field_type == "boolean":
        if isinstance(raw, bool) or raw is None:
            return FieldValue("boolean", raw)
        return FieldValue("boolean", None)
    if field_type == "date":
        if raw is None or raw == "":
            return FieldValue("date", None)
        ts = pd.to_datetime(canonicalize(raw), errors="coerce")
        return FieldValue("date", None if pd.isna(ts) else ts.date())
    return FieldValue("string", None if raw is None else canonicalize(raw))


class RecordReader:
    """Schema-driven accessor for record fields.

    The engine reads record payloads only through a reader. Without a schema
    every field reads as a string.
    """

    def __init__(self, schema: Optional[DatasetSchema] = None):
        self._fields: Dict[str, FieldDef] = {f.key: f for f in schema.fields} if schema is not None else {}

    def raw(self, record: RecordEntity, key: str) -> object:
        return record.data.get(key)

    def key_part(self, record: RecordEntity, key: str) -> str:
        return canonicalize(record.data.get(key))

    def is_blank(self, record: RecordEntity, key: str) -> bool:
        value = record.data.get(key)
        return value is None or value == ""

    def measure(self, record: RecordEntity, key: str) -> Optional[float]:
        return measure_value(record.data.get(key))

    def flag(self, record: RecordEntity, key: str) -> bool:
        return flag_value(record.data.get(key))

    def typed(self, record: RecordEntity, key: str) -> FieldValue:
        fd = self._fields.get(key)
        return coerce_value(record.data.get(key), fd.type if fd else "string")


def reader_or_default(reader: Optional[RecordReader]) -> RecordReader:
    return reader if reader is not None else _PLAIN_READER


_PLAIN_READER = RecordReader()
