from __future__ import annotations

import json
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd

from griddle_core.filters import dimension_label
from griddle_core.keys import canonicalize
from griddle_core.model import DatasetFile, DatasetSchema, PivotConfig, PivotResult
from griddle_core.values import RecordReader

COLUMN_LABEL_SEPARATOR = " / "


def _csv_cell(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, (str, bool, int, float, date)):
        return canonicalize(value)
    return json.dumps(value, default=str)


def column_labels(pivot: PivotResult, config: PivotConfig) -> List[str]:
    if not config.col_keys:
        return [config.measure_key or "value" for _ in pivot.col_tuples]
    return [COLUMN_LABEL_SEPARATOR.join(t.get(k, "") for k in config.col_keys) for t in pivot.col_tuples]


def pivot_to_frame(pivot: PivotResult, config: PivotConfig, schema: Optional[DatasetSchema] = None) -> pd.DataFrame:
    """Wide table: row-dimension columns followed by one column per column tuple."""
    row_headers = [dimension_label(schema, k) if schema is not None else k for k in config.row_keys]
    col_headers = column_labels(pivot, config)

    rows: List[List[Any]] = []
    for ri, rt in enumerate(pivot.row_tuples):
        values = [pivot.cell_at(ri, ci).value for ci in range(len(pivot.col_tuples))]
        rows.append([rt.get(k, "") for k in config.row_keys] + values)

    return pd.DataFrame(rows, columns=row_headers + col_headers)


def records_to_frame(dataset: DatasetFile) -> pd.DataFrame:
    keys = [f.key for f in dataset.schema.fields]
    reader = RecordReader(dataset.schema)
    rows: List[Dict[str, str]] = []
    for r in dataset.records:
        row = {"id": r.id, "createdAt": r.created_at, "updatedAt": r.updated_at}
        row.update({k: _csv_cell(reader.raw(r, k)) for k in keys})
        rows.append(row)
    return pd.DataFrame(rows, columns=["id", "createdAt", "updatedAt", *keys])


def pivot_to_csv(pivot: PivotResult, config: PivotConfig, schema: Optional[DatasetSchema] = None) -> str:
    return pivot_to_frame(pivot, config, schema).to_csv(index=False)


def records_to_csv(dataset: DatasetFile) -> str:
    return records_to_frame(dataset).to_csv(index=False)
