from __future__ import annotations

from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence, Set

from griddle_core.keys import canonicalize, collation_key
from griddle_core.model import (
    DatasetSchema,
    DimensionFilter,
    FilterSet,
    PivotConfig,
    RecordEntity,
)
from griddle_core.values import RecordReader, reader_or_default


def _is_unset(desired: object) -> bool:
    if desired is None or desired == "":
        return True
    return isinstance(desired, (list, tuple, set, frozenset)) and len(desired) == 0


def _key_set(values: Iterable[object]) -> Set[str]:
    return {canonicalize(v) for v in values}


def _slicer_admits(desired: object, actual: str) -> bool:
    if _is_unset(desired):
        return True
    if isinstance(desired, (list, tuple, set, frozenset)):
        return actual in _key_set(desired)
    return actual == canonicalize(desired)


def _filter_admits(dim_filter: DimensionFilter, actual: str) -> bool:
    if not dim_filter.values:
        return True
    included = actual in _key_set(dim_filter.values)
    return not included if dim_filter.mode == "exclude" else included


def record_matches_slicers(record: RecordEntity, config: PivotConfig, reader: Optional[RecordReader] = None) -> bool:
    reader = reader_or_default(reader)
    for k in config.slicer_keys:
        if not _slicer_admits(config.slicers.get(k), reader.key_part(record, k)):
            return False
    return True


def record_matches_row_filters(
    record: RecordEntity, config: PivotConfig, reader: Optional[RecordReader] = None
) -> bool:
    reader = reader_or_default(reader)
    for k, allowed in (config.row_filters or {}).items():
        if not allowed:
            continue
        if reader.key_part(record, k) not in _key_set(allowed):
            return False
    return True


def record_matches_filter(
    record: RecordEntity, dim_filter: DimensionFilter, reader: Optional[RecordReader] = None
) -> bool:
    return _filter_admits(dim_filter, reader_or_default(reader).key_part(record, dim_filter.dimension_key))


def record_matches_filter_set(
    record: RecordEntity, filter_set: Optional[FilterSet], reader: Optional[RecordReader] = None
) -> bool:
    if filter_set is None:
        return True
    return all(record_matches_filter(record, f, reader) for f in filter_set.filters)


def record_matches(
    record: RecordEntity,
    config: PivotConfig,
    filter_set: Optional[FilterSet] = None,
    reader: Optional[RecordReader] = None,
) -> bool:
    """Slicers, row filters and the named filter set must all admit the record."""
    return (
        record_matches_slicers(record, config, reader)
        and record_matches_row_filters(record, config, reader)
        and record_matches_filter_set(record, filter_set, reader)
    )


def filter_records(
    records: Iterable[RecordEntity],
    config: PivotConfig,
    filter_set: Optional[FilterSet] = None,
    reader: Optional[RecordReader] = None,
) -> List[RecordEntity]:
    reader = reader_or_default(reader)
    return [r for r in records if record_matches(r, config, filter_set, reader)]


def value_admitted(key: str, value: str, config: PivotConfig, filter_set: Optional[FilterSet] = None) -> bool:
    """Whether a member value for ``key`` passes the constraints placed on that key."""
    if key in config.slicer_keys and not _slicer_admits(config.slicers.get(key), value):
        return False
    allowed = (config.row_filters or {}).get(key)
    if allowed and value not in _key_set(allowed):
        return False
    if filter_set is not None:
        for f in filter_set.filters:
            if f.dimension_key == key and not _filter_admits(f, value):
                return False
    return True


# ---------------- Filter-set helpers ----------------
def filter_set_active_count(filter_set: Optional[FilterSet]) -> int:
    if filter_set is None:
        return 0
    return sum(1 for f in filter_set.filters if f.values)


def apply_filter_set(records: Sequence[RecordEntity], filter_set: Optional[FilterSet]) -> List[RecordEntity]:
    if filter_set is None or not filter_set_active_count(filter_set):
        return list(records)
    return [r for r in records if record_matches_filter_set(r, filter_set)]


def get_filter(filter_set: FilterSet, dimension_key: str) -> DimensionFilter:
    for f in filter_set.filters:
        if f.dimension_key == dimension_key:
            return f
    return DimensionFilter(dimension_key=dimension_key)


def upsert_filter(filter_set: FilterSet, next_filter: DimensionFilter) -> FilterSet:
    kept = [f for f in filter_set.filters if f.dimension_key != next_filter.dimension_key]
    return replace(filter_set, filters=kept + [next_filter])


def remove_filter(filter_set: FilterSet, dimension_key: str) -> FilterSet:
    return replace(filter_set, filters=[f for f in filter_set.filters if f.dimension_key != dimension_key])


def dimension_label(schema: DatasetSchema, key: str) -> str:
    fd = schema.get_field(key)
    return fd.label if fd else key


def dimension_keys_eligible_for_filtering(schema: DatasetSchema) -> List[str]:
    # Measures are excluded; every other field can be filtered on.
    return [f.key for f in schema.fields if not f.has_role("measure")]


def unique_dimension_values(
    records: Iterable[RecordEntity], dimension_key: str, reader: Optional[RecordReader] = None
) -> List[str]:
    reader = reader_or_default(reader)
    values = {reader.key_part(r, dimension_key) for r in records}
    return sorted(values, key=collation_key)


def normalize_filter_set(raw: Optional[dict]) -> Optional[FilterSet]:
    if not raw:
        return None
    filters: List[DimensionFilter] = []
    for item in raw.get("filters") or []:
        if not isinstance(item, dict):
            continue
        key = item.get("dimensionKey", item.get("dimension_key"))
        if not isinstance(key, str) or not key:
            continue
        mode = "exclude" if item.get("mode") == "exclude" else "include"
        values: Any = item.get("values") or []
        if not isinstance(values, (list, tuple)):
            values = [values]
        filters.append(DimensionFilter(dimension_key=key, mode=mode, values=list(values)))
    name = raw.get("name") or "Default"
    return FilterSet(name=str(name), filters=filters)
