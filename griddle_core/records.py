from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from griddle_core.model import AxisTuple, DatasetFile, DatasetSchema, FieldDef, PivotConfig, RecordEntity


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _blank(value: object) -> bool:
    return value is None or value == ""


def measure_fields(schema: DatasetSchema) -> List[FieldDef]:
    return schema.fields_with_role("measure")


def flag_fields(schema: DatasetSchema) -> List[FieldDef]:
    return schema.fields_with_role("flag")


def dimension_keys_from_config(config: PivotConfig) -> List[str]:
    return list(dict.fromkeys([*config.row_keys, *config.col_keys, *config.slicer_keys]))


def create_record_for_cell(
    schema: DatasetSchema,
    config: PivotConfig,
    row: AxisTuple,
    col: AxisTuple,
    *,
    measure_values: Optional[Mapping[str, Any]] = None,
    flags: Optional[Mapping[str, bool]] = None,
    details: Optional[Mapping[str, Any]] = None,
    now: Optional[str] = None,
) -> RecordEntity:
    """New record that lands in the (row, col) cell of the current view."""
    measure_values = measure_values or {}
    flags = flags or {}
    data: Dict[str, Any] = {}

    for k in dimension_keys_from_config(config):
        v = row.get(k, col.get(k))
        if not _blank(v):
            data[k] = v

    # Default unset slicer dimensions to the active slicer so the record stays visible.
    for k in config.slicer_keys:
        if not _blank(data.get(k)):
            continue
        desired = config.slicers.get(k)
        if isinstance(desired, (list, tuple)):
            first = next((x for x in desired if not _blank(x)), None)
            if first is not None:
                data[k] = first
        elif not _blank(desired):
            data[k] = desired

    for f in measure_fields(schema):
        mv = measure_values.get(f.key)
        if not _blank(mv):
            data[f.key] = mv

    for f in flag_fields(schema):
        data[f.key] = bool(flags.get(f.key))

    for k, v in (details or {}).items():
        if not _blank(v):
            data[k] = v

    stamp = now or _now_iso()
    return RecordEntity(id=f"r_{uuid.uuid4().hex}", created_at=stamp, updated_at=stamp, data=data)


def set_flag(record: RecordEntity, flag_key: str, value: bool, *, now: Optional[str] = None) -> RecordEntity:
    return replace(record, updated_at=now or _now_iso(), data={**record.data, flag_key: value})


def bulk_set_flag(records: Sequence[RecordEntity], flag_key: str, value: bool) -> List[RecordEntity]:
    stamp = _now_iso()
    return [set_flag(r, flag_key, value, now=stamp) for r in records]


def upsert_records(dataset: DatasetFile, updated: Sequence[RecordEntity]) -> DatasetFile:
    by_id = {r.id: r for r in updated}
    existing = {r.id for r in dataset.records}
    records = [by_id.get(r.id, r) for r in dataset.records]
    records.extend(r for r in updated if r.id not in existing)
    return replace(dataset, records=records)


def remove_records(dataset: DatasetFile, ids: Sequence[str]) -> DatasetFile:
    drop = set(ids)
    return replace(dataset, records=[r for r in dataset.records if r.id not in drop])


# ---------------- Schema migration ----------------
@dataclass(frozen=True)
class SchemaMigration:
    dataset: DatasetFile
    pivot_config: PivotConfig
    renames: Dict[str, str] = field(default_factory=dict)


def _field_signature(f: FieldDef) -> Tuple[str, str]:
    return f.label, f.type


def find_renamed_keys(prev: DatasetSchema, nxt: DatasetSchema) -> Dict[str, str]:
    """Old key -> new key for fields whose key changed but label and type did not.

    Only unambiguous renames count: the (label, type) signature must belong to
    exactly one field of the previous schema.
    """
    by_signature: Dict[Tuple[str, str], List[FieldDef]] = {}
    for f in prev.fields:
        by_signature.setdefault(_field_signature(f), []).append(f)

    renames: Dict[str, str] = {}
    for nf in nxt.fields:
        candidates = by_signature.get(_field_signature(nf), [])
        if len(candidates) != 1 or candidates[0].key == nf.key:
            continue
        renames[candidates[0].key] = nf.key
    return renames


def _migrate_data(data: Mapping[str, Any], renames: Mapping[str, str], keep: set) -> Dict[str, Any]:
    out = dict(data)
    for old, new in renames.items():
        # never overwrite a value already stored under the new key
        if old in out and new not in out:
            out[new] = out.pop(old)
    return {k: v for k, v in out.items() if k in keep}


def migrate_dataset_on_schema_change(
    dataset: DatasetFile, next_schema: DatasetSchema, config: PivotConfig
) -> SchemaMigration:
    """Carry records and the pivot config over to an edited schema.

    Values move to renamed keys, keys the new schema lacks are dropped from
    record data, and config keys are remapped then pruned to the new schema.
    """
    renames = find_renamed_keys(dataset.schema, next_schema)
    keep = {f.key for f in next_schema.fields}

    def migrate_key(k: str) -> str:
        return renames.get(k, k)

    def migrate_keys(keys: Sequence[str]) -> List[str]:
        return [mk for mk in (migrate_key(k) for k in keys) if mk in keep]

    records = [replace(r, data=_migrate_data(r.data, renames, keep)) for r in dataset.records]
    measure_key = migrate_key(config.measure_key)
    next_config = replace(
        config,
        row_keys=migrate_keys(config.row_keys),
        col_keys=migrate_keys(config.col_keys),
        slicer_keys=migrate_keys(config.slicer_keys),
        slicers={migrate_key(k): v for k, v in config.slicers.items() if migrate_key(k) in keep},
        row_filters={migrate_key(k): v for k, v in config.row_filters.items() if migrate_key(k) in keep},
        measure_key=measure_key if measure_key in keep else config.measure_key,
    )
    return SchemaMigration(
        dataset=replace(dataset, schema=next_schema, records=records),
        pivot_config=next_config,
        renames=renames,
    )
