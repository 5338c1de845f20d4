from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import Literal, Optional, Tuple

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from griddle_api.schemas import PivotRequest, SelectionRequest
from griddle_core import config as settings
from griddle_core.config import normalize_pivot_config
from griddle_core.data import list_datasets, load_dataset
from griddle_core.dataset_io import DatasetIoError, field_def_to_dict
from griddle_core.export import pivot_to_csv, records_to_csv
from griddle_core.filters import filter_records, normalize_filter_set, unique_dimension_values
from griddle_core.model import FilterSet, GriddleFile, PivotConfig
from griddle_core.pivot import compute_pivot
from griddle_core.quality import compute_quality
from griddle_core.selection import GridRange
from griddle_core.views import compute_chart, compute_pivot_view, compute_selection

app = FastAPI(title="Griddle Pivot API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class UnknownDataset(LookupError):
    pass


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, status_code: int = 500) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": str(exc), "type": type(exc).__name__})


def _handle(exc: Exception, endpoint: str) -> JSONResponse:
    if isinstance(exc, UnknownDataset):
        return _error(exc, 404)
    if isinstance(exc, DatasetIoError):
        logger.warning("%s: %s", endpoint, exc)
        return _error(exc, 400)
    logger.exception("%s failed", endpoint)
    return _error(exc)


def _dataset(name: str) -> GriddleFile:
    file = load_dataset(name)
    if file is None:
        raise UnknownDataset(f"Unknown dataset: {name}")
    return file


def _resolve(req: PivotRequest) -> Tuple[GriddleFile, PivotConfig, Optional[FilterSet]]:
    file = _dataset(req.dataset)
    if req.config is None:
        cfg = file.pivot_config
    else:
        cfg = normalize_pivot_config(req.config.model_dump(by_alias=True), schema=file.dataset.schema)
    fs = normalize_filter_set(req.filter_set.model_dump(by_alias=True)) if req.filter_set else None
    return file, cfg, fs


@app.get("/meta/datasets")
def meta_datasets():
    try:
        return _json({"datasets": sorted(list_datasets())})
    except Exception as exc:
        return _handle(exc, "meta_datasets")


@app.get("/meta/fields")
def meta_fields(dataset: str = Query(...)):
    try:
        file = _dataset(dataset)
        return _json({"fields": [field_def_to_dict(f) for f in file.dataset.schema.fields]})
    except Exception as exc:
        return _handle(exc, "meta_fields")


@app.get("/meta/values")
def meta_values(dataset: str = Query(...), key: str = Query(...)):
    try:
        file = _dataset(dataset)
        return _json({"values": unique_dimension_values(file.dataset.records, key)})
    except Exception as exc:
        return _handle(exc, "meta_values")


@app.post("/pivot")
def pivot(req: PivotRequest):
    try:
        file, cfg, fs = _resolve(req)
        return _json(compute_pivot_view(file.dataset, cfg, fs))
    except Exception as exc:
        return _handle(exc, "pivot")


@app.post("/selection")
def selection(req: SelectionRequest):
    try:
        file, cfg, fs = _resolve(req)
        ranges = [GridRange(x=r.x, y=r.y, width=r.width, height=r.height) for r in req.ranges]
        return _json(compute_selection(file.dataset, cfg, ranges, fs))
    except Exception as exc:
        return _handle(exc, "selection")


@app.post("/quality")
def quality(req: PivotRequest):
    try:
        file, cfg, _ = _resolve(req)
        return _json(compute_quality(file.dataset, cfg))
    except Exception as exc:
        return _handle(exc, "quality")


@app.post("/chart")
def chart(req: PivotRequest):
    try:
        file, cfg, fs = _resolve(req)
        return _json(compute_chart(file.dataset, cfg, fs))
    except Exception as exc:
        return _handle(exc, "chart")


@app.post("/export/{kind}")
def export(kind: Literal["pivot", "records"], req: PivotRequest):
    try:
        file, cfg, fs = _resolve(req)
        if kind == "pivot":
            result = compute_pivot(file.dataset.records, file.dataset.schema, cfg, fs)
            csv_text = pivot_to_csv(result, cfg, file.dataset.schema)
        else:
            visible = filter_records(file.dataset.records, cfg, fs)
            csv_text = records_to_csv(replace(file.dataset, records=visible))
    except Exception as exc:
        return _handle(exc, "export")

    filename = f"{file.dataset.name}-{kind}.csv"
    return Response(
        content=csv_text.encode("utf-8"),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
