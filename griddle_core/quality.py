from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

import pandas as pd

from griddle_core.config import pivot_config_to_dict
from griddle_core.model import DatasetFile, DatasetSchema, PivotConfig, RecordEntity
from griddle_core.records import dimension_keys_from_config
from griddle_core.values import RecordReader, reader_or_default

OrphanKind = Literal["missingDimension", "missingMeasure"]


@dataclass(frozen=True)
class OrphanIssue:
    kind: OrphanKind
    record_id: str
    missing_keys: List[str] = field(default_factory=list)


def orphan_issues_for_record(
    record: RecordEntity, schema: DatasetSchema, config: PivotConfig, reader: Optional[RecordReader] = None
) -> List[OrphanIssue]:
    """Records that will not show up where a user expects them in the pivot."""
    reader = reader_or_default(reader)
    issues: List[OrphanIssue] = []
    missing_dims = [k for k in dimension_keys_from_config(config) if reader.is_blank(record, k)]
    if missing_dims:
        issues.append(OrphanIssue("missingDimension", record.id, missing_dims))

    m_keys = schema.measure_keys
    if not any(reader.measure(record, k) is not None for k in m_keys):
        issues.append(OrphanIssue("missingMeasure", record.id, m_keys))
    return issues


def find_orphaned_records(dataset: DatasetFile, config: PivotConfig) -> Dict[str, Any]:
    reader = RecordReader(dataset.schema)
    issues: List[OrphanIssue] = []
    for r in dataset.records:
        issues.extend(orphan_issues_for_record(r, dataset.schema, config, reader))
    record_ids = list(dict.fromkeys(i.record_id for i in issues))
    return {"record_ids": record_ids, "issues": issues}


def compute_quality(dataset: DatasetFile, config: PivotConfig) -> Dict[str, Any]:
    orphans = find_orphaned_records(dataset, config)
    issues = pd.DataFrame([asdict(i) for i in orphans["issues"]], columns=["kind", "record_id", "missing_keys"])

    payload: Dict[str, Any] = {
        "config": pivot_config_to_dict(config),
        "row_counts": {
            "records": int(len(dataset.records)),
            "orphaned_records": int(len(orphans["record_ids"])),
        },
        "issue_counts": {},
        "blank_counts": {},
        "issues": issues.to_dict(orient="records"),
    }
    if not issues.empty:
        payload["issue_counts"] = {str(k): int(v) for k, v in issues["kind"].value_counts().items()}

    dim_keys = dimension_keys_from_config(config)
    if dim_keys and dataset.records:
        reader = RecordReader(dataset.schema)
        frame = pd.DataFrame([{k: reader.raw(r, k) for k in dim_keys} for r in dataset.records], columns=dim_keys)
        blanks = frame.isna() | frame.eq("")
        payload["blank_counts"] = {k: int(blanks[k].sum()) for k in dim_keys}
    return payload
