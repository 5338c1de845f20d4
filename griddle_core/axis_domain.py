from __future__ import annotations

from datetime import date
from typing import Iterator, List, Optional, Sequence

import pandas as pd

from griddle_core.model import AxisDomain, FieldDef


def parse_day(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()


def iter_dates(start: date, end: date, include_weekends: bool = True) -> Iterator[str]:
    """Yield ``YYYY-MM-DD`` strings from start to end inclusive."""
    days = pd.date_range(start, end, freq="D")
    if not include_weekends:
        days = days[days.dayofweek < 5]
    for day in days:
        yield day.strftime("%Y-%m-%d")


def axis_domain_values(domain: Optional[AxisDomain], enum_values: Optional[Sequence[str]] = None) -> List[str]:
    """Ordered members an axis must show for a declared domain.

    ``list`` returns the declared values, ``enum`` the field's enumeration and
    ``dateRange`` every calendar day between the bounds. Missing or unparseable
    bounds give an empty list rather than an error.
    """
    if domain is None:
        return []
    if domain.kind == "enum":
        return list(enum_values or [])
    if domain.kind == "list":
        return list(domain.values)
    if domain.kind == "dateRange":
        start = parse_day(domain.start)
        end = parse_day(domain.end)
        if start is None or end is None:
            return []
        return list(iter_dates(start, end, domain.include_weekends))
    return []


def field_axis_members(field: Optional[FieldDef]) -> List[str]:
    """Domain members for a field that opts into showing empty axis items."""
    if field is None or field.pivot is None or not field.pivot.include_empty_axis_items:
        return []
    return axis_domain_values(field.pivot.axis_domain, field.enum)
