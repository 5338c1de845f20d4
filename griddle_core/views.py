from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, Optional

from griddle_core.charts import pivot_heatmap, to_vega_spec
from griddle_core.config import pivot_config_to_dict
from griddle_core.filters import filter_set_active_count
from griddle_core.headers import build_column_header_rows
from griddle_core.keys import encode_tuple_key
from griddle_core.model import DatasetFile, FilterSet, PivotConfig, PivotResult
from griddle_core.pivot import compute_pivot
from griddle_core.selection import GridRange, record_ids_for_ranges
from griddle_core.styling import compute_coverage, pick_cell_style


def _cells_payload(dataset: DatasetFile, pivot: PivotResult) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, cell in pivot.cells.items():
        style = pick_cell_style(dataset.schema, cell)
        out[key] = {
            "value": cell.value,
            "recordIds": list(cell.record_ids),
            "flagSummary": dict(cell.flag_summary),
            "coverage": compute_coverage(dataset.schema, cell),
            "style": None if style.is_empty else asdict(style),
        }
    return out


def compute_pivot_view(
    dataset: DatasetFile, config: PivotConfig, filter_set: Optional[FilterSet] = None
) -> Dict[str, Any]:
    pivot = compute_pivot(dataset.records, dataset.schema, config, filter_set)
    header_rows = build_column_header_rows(config.col_keys, pivot.col_tuples)
    return {
        "dataset": dataset.name,
        "config": pivot_config_to_dict(config),
        "activeFilters": filter_set_active_count(filter_set),
        "rowTuples": pivot.row_tuples,
        "colTuples": pivot.col_tuples,
        # stable string ids for tuples, independent of their sorted position
        "rowIds": [encode_tuple_key(config.row_keys, t) for t in pivot.row_tuples],
        "colIds": [encode_tuple_key(config.col_keys, t) for t in pivot.col_tuples],
        "headerRows": [asdict(h) for h in header_rows],
        "cells": _cells_payload(dataset, pivot),
    }


def compute_selection(
    dataset: DatasetFile,
    config: PivotConfig,
    ranges: Iterable[GridRange],
    filter_set: Optional[FilterSet] = None,
) -> Dict[str, Any]:
    pivot = compute_pivot(dataset.records, dataset.schema, config, filter_set)
    summary = record_ids_for_ranges(pivot, config, ranges)
    return {"recordIds": summary.record_ids, "cellCount": summary.cell_count}


def compute_chart(
    dataset: DatasetFile, config: PivotConfig, filter_set: Optional[FilterSet] = None
) -> Dict[str, Any]:
    pivot = compute_pivot(dataset.records, dataset.schema, config, filter_set)
    return {"dataset": dataset.name, "charts": {"heatmap": to_vega_spec(pivot_heatmap(pivot, config))}}
