"""Pivot computation over flat records.

Rules:
- row/column tuples are the distinct combinations of the configured keys
  (plus forced members for fields that opt into empty axis items)
- only SUM aggregation of ``measure_key``
- missing or non-numeric measure values do not contribute (not even as zero)
- cells are keyed ``"{row}:{col}"`` by position in the sorted tuple lists
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from griddle_core.axis_domain import field_axis_members
from griddle_core.filters import filter_records, value_admitted
from griddle_core.keys import cell_key, collation_key
from griddle_core.model import (
    AxisTuple,
    DatasetSchema,
    FilterSet,
    PivotCell,
    PivotConfig,
    PivotResult,
    RecordEntity,
)
from griddle_core.values import RecordReader, reader_or_default

logger = logging.getLogger(__name__)

TupleValues = Tuple[str, ...]


def build_tuple(keys: Sequence[str], record: RecordEntity, reader: Optional[RecordReader] = None) -> AxisTuple:
    reader = reader_or_default(reader)
    return {k: reader.key_part(record, k) for k in keys}


def tuple_values(keys: Sequence[str], tup: Mapping[str, str]) -> TupleValues:
    return tuple(tup.get(k, "") for k in keys)


def sort_tuples(keys: Sequence[str], tuples: Iterable[AxisTuple]) -> List[AxisTuple]:
    """Sort by each key left to right; equal tuples keep discovery order."""
    return sorted(tuples, key=lambda t: tuple(collation_key(t.get(k, "")) for k in keys))


@dataclass(frozen=True)
class TupleIndex:
    keys: List[str]
    tuples: List[AxisTuple] = field(default_factory=list)
    positions: Dict[TupleValues, int] = field(default_factory=dict)

    def index_of(self, record: RecordEntity, reader: Optional[RecordReader] = None) -> Optional[int]:
        reader = reader_or_default(reader)
        return self.positions.get(tuple(reader.key_part(record, k) for k in self.keys))

    def __len__(self) -> int:
        return len(self.tuples)


@dataclass(frozen=True)
class GroupedAxes:
    rows: TupleIndex
    cols: TupleIndex


def _merge_domain_members(
    keys: Sequence[str], seen: Dict[TupleValues, AxisTuple], domains: Mapping[str, Sequence[str]]
) -> None:
    opted = [k for k in keys if domains.get(k)]
    if not opted:
        return

    if not seen and len(opted) == len(keys):
        for combo in itertools.product(*(domains[k] for k in keys)):
            seen.setdefault(combo, dict(zip(keys, combo)))
        return

    for key in opted:
        pos = list(keys).index(key)
        if len(keys) == 1:
            projections: List[TupleValues] = [()]
        else:
            projections = list(dict.fromkeys(vals[:pos] + vals[pos + 1 :] for vals in seen))
        for proj in projections:
            for member in domains[key]:
                vals = proj[:pos] + (member,) + proj[pos:]
                seen.setdefault(vals, dict(zip(keys, vals)))


def group_tuples(
    records: Iterable[RecordEntity],
    keys: Sequence[str],
    domains: Optional[Mapping[str, Sequence[str]]] = None,
    reader: Optional[RecordReader] = None,
) -> TupleIndex:
    keys = list(keys)
    seen: Dict[TupleValues, AxisTuple] = {}
    for r in records:
        t = build_tuple(keys, r, reader)
        seen.setdefault(tuple_values(keys, t), t)

    if domains:
        _merge_domain_members(keys, seen, domains)

    ordered = sort_tuples(keys, seen.values())
    positions = {tuple_values(keys, t): i for i, t in enumerate(ordered)}
    return TupleIndex(keys=keys, tuples=ordered, positions=positions)


def group_records(
    records: Sequence[RecordEntity],
    row_keys: Sequence[str],
    col_keys: Sequence[str],
    row_domains: Optional[Mapping[str, Sequence[str]]] = None,
    col_domains: Optional[Mapping[str, Sequence[str]]] = None,
    reader: Optional[RecordReader] = None,
) -> GroupedAxes:
    return GroupedAxes(
        rows=group_tuples(records, row_keys, row_domains, reader),
        cols=group_tuples(records, col_keys, col_domains, reader),
    )


def axis_domains(
    schema: DatasetSchema,
    keys: Sequence[str],
    config: PivotConfig,
    filter_set: Optional[FilterSet] = None,
) -> Dict[str, List[str]]:
    """Forced members per axis key, minus members the active filters reject."""
    out: Dict[str, List[str]] = {}
    for k in keys:
        members = [
            m for m in dict.fromkeys(field_axis_members(schema.get_field(k)))
            if value_admitted(k, m, config, filter_set)
        ]
        if members:
            out[k] = members
    return out


class _CellAccumulator:
    __slots__ = ("value", "record_ids", "flag_summary")

    def __init__(self, flag_keys: Sequence[str]):
        self.value: Optional[float] = None
        self.record_ids: List[str] = []
        self.flag_summary: Dict[str, int] = {fk: 0 for fk in flag_keys}

    def add(self, record: RecordEntity, measure_key: str, flag_keys: Sequence[str], reader: RecordReader) -> None:
        self.record_ids.append(record.id)
        for fk in flag_keys:
            if reader.flag(record, fk):
                self.flag_summary[fk] += 1
        m = reader.measure(record, measure_key)
        if m is not None:
            self.value = m if self.value is None else self.value + m

    def freeze(self) -> PivotCell:
        return PivotCell(value=self.value, record_ids=self.record_ids, flag_summary=self.flag_summary)


def aggregate_cells(
    records: Iterable[RecordEntity],
    rows: TupleIndex,
    cols: TupleIndex,
    measure_key: str,
    flag_keys: Sequence[str],
    reader: Optional[RecordReader] = None,
) -> Dict[str, PivotCell]:
    reader = reader_or_default(reader)
    acc: Dict[Tuple[int, int], _CellAccumulator] = {}
    for r in records:
        ri = rows.index_of(r, reader)
        ci = cols.index_of(r, reader)
        if ri is None or ci is None:
            continue
        cell = acc.get((ri, ci))
        if cell is None:
            cell = acc[(ri, ci)] = _CellAccumulator(flag_keys)
        cell.add(r, measure_key, flag_keys, reader)
    return {cell_key(ri, ci): cell.freeze() for (ri, ci), cell in sorted(acc.items())}


def compute_pivot(
    records: Sequence[RecordEntity],
    schema: DatasetSchema,
    config: PivotConfig,
    filter_set: Optional[FilterSet] = None,
) -> PivotResult:
    reader = RecordReader(schema)
    admitted = filter_records(records, config, filter_set, reader)
    axes = group_records(
        admitted,
        config.row_keys,
        config.col_keys,
        row_domains=axis_domains(schema, config.row_keys, config, filter_set),
        col_domains=axis_domains(schema, config.col_keys, config, filter_set),
        reader=reader,
    )
    cells = aggregate_cells(admitted, axes.rows, axes.cols, config.measure_key, schema.flag_keys, reader)
    logger.debug(
        "pivot: %d/%d records admitted, %d rows x %d cols, %d cells",
        len(admitted),
        len(records),
        len(axes.rows),
        len(axes.cols),
        len(cells),
    )
    return PivotResult(row_tuples=axes.rows.tuples, col_tuples=axes.cols.tuples, cells=cells)
