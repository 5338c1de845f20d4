from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from griddle_core.model import AxisTuple


@dataclass(frozen=True)
class HeaderSpan:
    label: str
    span: int  # number of leaf columns covered


@dataclass(frozen=True)
class HeaderRow:
    key: str  # column dimension key
    spans: List[HeaderSpan] = field(default_factory=list)


def _same_run(a: AxisTuple, b: AxisTuple, keys: Sequence[str]) -> bool:
    return all(a.get(k, "") == b.get(k, "") for k in keys)


def build_column_header_rows(col_keys: Sequence[str], col_tuples: Sequence[AxisTuple]) -> List[HeaderRow]:
    """One header row per column dimension with contiguous (label, span) runs.

    A run at depth ``d`` continues while the values at levels ``0..d`` all
    match the run's first tuple. Relies on ``col_tuples`` being sorted so a
    group never re-opens once closed.
    """
    rows: List[HeaderRow] = []
    for depth, key in enumerate(col_keys):
        prefix = list(col_keys[: depth + 1])
        spans: List[HeaderSpan] = []
        i = 0
        while i < len(col_tuples):
            start = i
            base = col_tuples[i]
            i += 1
            while i < len(col_tuples) and _same_run(col_tuples[i], base, prefix):
                i += 1
            spans.append(HeaderSpan(label=base.get(key, ""), span=i - start))
        rows.append(HeaderRow(key=key, spans=spans))
    return rows
