from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from griddle_core.model import DatasetSchema, PivotConfig

DATA_DIR = Path(os.environ.get("GRIDDLE_DATA_DIR", Path(__file__).resolve().parents[1]))
FILE_GLOBS = ("*.griddle.json", "*.dataset.json")
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("GRIDDLE_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]


def _pick(raw: dict, *names: str) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def _as_key_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values or isinstance(values, str):
        return []
    out: List[str] = []
    for v in values:
        if isinstance(v, str) and v and v not in out:
            out.append(v)
    return out


def _as_row_filters(raw: object) -> Dict[str, List[Any]]:
    if not isinstance(raw, dict):
        return {}
    out: Dict[str, List[Any]] = {}
    for k, allowed in raw.items():
        if not isinstance(k, str):
            continue
        if isinstance(allowed, (list, tuple)):
            out[k] = list(allowed)
    return out


def normalize_pivot_config(raw: Optional[dict], *, schema: Optional[DatasetSchema] = None) -> PivotConfig:
    """Build a PivotConfig from a loose mapping (camelCase or snake_case keys)."""
    raw = raw or {}

    row_keys = _as_key_list(_pick(raw, "rowKeys", "row_keys"))
    col_keys = _as_key_list(_pick(raw, "colKeys", "col_keys"))
    slicer_keys = _as_key_list(_pick(raw, "slicerKeys", "slicer_keys"))

    slicers = _pick(raw, "slicers")
    slicers = {k: v for k, v in slicers.items() if isinstance(k, str)} if isinstance(slicers, dict) else {}

    measure_key = _pick(raw, "measureKey", "measure_key")
    if not isinstance(measure_key, str) or not measure_key:
        measure_key = schema.measure_keys[0] if schema is not None and schema.measure_keys else ""

    return PivotConfig(
        row_keys=row_keys,
        col_keys=col_keys,
        slicer_keys=slicer_keys,
        slicers=slicers,
        measure_key=measure_key,
        row_filters=_as_row_filters(_pick(raw, "rowFilters", "row_filters")),
    )


def pivot_config_to_dict(config: PivotConfig) -> Dict[str, Any]:
    return {
        "rowKeys": list(config.row_keys),
        "colKeys": list(config.col_keys),
        "rowFilters": {k: list(v) for k, v in config.row_filters.items()},
        "slicerKeys": list(config.slicer_keys),
        "slicers": dict(config.slicers),
        "measureKey": config.measure_key,
    }
