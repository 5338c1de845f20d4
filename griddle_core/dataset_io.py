"""JSON (de)serialization of dataset and griddle files.

Documents use camelCase keys on the wire and are validated with pydantic
before being turned into the core dataclasses. Anything malformed surfaces as
``DatasetIoError``; the pivot engine never sees unvalidated input from here.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from griddle_core.config import normalize_pivot_config, pivot_config_to_dict
from griddle_core.model import (
    AxisDomain,
    ColorRule,
    DatasetFile,
    DatasetSchema,
    FieldDef,
    FlagSettings,
    FlagStyleRules,
    GriddleFile,
    PivotAxisSettings,
    RecordEntity,
)


class DatasetIoError(ValueError):
    pass


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ColorRuleModel(_WireModel):
    enabled: bool = False
    some: Optional[str] = None
    all: Optional[str] = None


class StyleRulesModel(_WireModel):
    bg: Optional[ColorRuleModel] = None
    text: Optional[ColorRuleModel] = None


class FlagStyleModel(_WireModel):
    cell_class: Optional[str] = Field(default=None, alias="cellClass")
    priority: Optional[float] = None


class FlagModel(_WireModel):
    style: Optional[FlagStyleModel] = None
    style_rules: Optional[StyleRulesModel] = Field(default=None, alias="styleRules")


class MeasureModel(_WireModel):
    format: Optional[str] = None

    @field_validator("format")
    @classmethod
    def _known_format(cls, v: Optional[str]) -> Optional[str]:
        # Unknown formats are dropped rather than rejected.
        return v if v in {"decimal", "integer", "currency"} else None


class AxisDomainModel(_WireModel):
    kind: Literal["enum", "list", "dateRange"]
    values: List[str] = Field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None
    include_weekends: bool = Field(default=True, alias="includeWeekends")


class PivotAxisModel(_WireModel):
    include_empty_axis_items: bool = Field(default=False, alias="includeEmptyAxisItems")
    axis_domain: Optional[AxisDomainModel] = Field(default=None, alias="axisDomain")


class FieldDefModel(_WireModel):
    key: str
    label: str
    type: Literal["string", "number", "boolean", "date"]
    roles: List[Literal["rowDim", "colDim", "slicer", "measure", "flag"]]
    enum: Optional[List[str]] = None
    measure: Optional[MeasureModel] = None
    flag: Optional[FlagModel] = None
    pivot: Optional[PivotAxisModel] = None


class SchemaModel(_WireModel):
    version: Literal[1]
    fields: List[FieldDefModel]


class RecordModel(_WireModel):
    id: str
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    data: Dict[str, Any]


class DatasetFileModel(_WireModel):
    version: Literal[1]
    name: str
    dataset_schema: SchemaModel = Field(alias="schema")
    records: List[RecordModel]


class GriddleFileModel(_WireModel):
    file_type: Literal["griddle"] = Field(alias="fileType")
    version: Literal[1]
    dataset: DatasetFileModel
    pivot_config: Dict[str, Any] = Field(alias="pivotConfig")


# ---------------- wire -> core ----------------
def _color_rule(m: Optional[ColorRuleModel]) -> Optional[ColorRule]:
    return ColorRule(enabled=m.enabled, some=m.some, all=m.all) if m is not None else None


def _field_def(m: FieldDefModel) -> FieldDef:
    flag = None
    if m.flag is not None:
        rules = m.flag.style_rules
        flag = FlagSettings(
            priority=(m.flag.style.priority if m.flag.style and m.flag.style.priority is not None else 0),
            cell_class=m.flag.style.cell_class if m.flag.style else None,
            style_rules=FlagStyleRules(bg=_color_rule(rules.bg), text=_color_rule(rules.text)) if rules else None,
        )
    pivot = None
    if m.pivot is not None:
        d = m.pivot.axis_domain
        pivot = PivotAxisSettings(
            include_empty_axis_items=m.pivot.include_empty_axis_items,
            axis_domain=(
                AxisDomain(kind=d.kind, values=list(d.values), start=d.start, end=d.end, include_weekends=d.include_weekends)
                if d is not None
                else None
            ),
        )
    return FieldDef(
        key=m.key,
        label=m.label,
        type=m.type,
        roles=tuple(m.roles),
        enum=list(m.enum) if m.enum is not None else None,
        measure_format=m.measure.format if m.measure else None,
        flag=flag,
        pivot=pivot,
    )


def _dataset(m: DatasetFileModel) -> DatasetFile:
    schema = DatasetSchema(fields=[_field_def(f) for f in m.dataset_schema.fields])
    records = [RecordEntity(id=r.id, created_at=r.created_at, updated_at=r.updated_at, data=r.data) for r in m.records]
    return DatasetFile(name=m.name, schema=schema, records=records)


def _validation_message(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg', 'invalid value')}" if loc else str(err.get("msg", "invalid value"))


def _load_json(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise DatasetIoError("Invalid JSON") from exc


def ensure_dataset(data: Any) -> DatasetFile:
    if not isinstance(data, dict):
        raise DatasetIoError("Expected dataset JSON to be an object")
    try:
        return _dataset(DatasetFileModel.model_validate(data))
    except ValidationError as exc:
        raise DatasetIoError(_validation_message(exc)) from exc


def ensure_griddle_file(data: Any) -> GriddleFile:
    if not isinstance(data, dict):
        raise DatasetIoError("Expected griddle file to be an object")
    if data.get("fileType") != "griddle":
        raise DatasetIoError('Not a griddle file (missing fileType="griddle")')
    try:
        model = GriddleFileModel.model_validate(data)
    except ValidationError as exc:
        raise DatasetIoError(_validation_message(exc)) from exc
    dataset = _dataset(model.dataset)
    return GriddleFile(dataset=dataset, pivot_config=normalize_pivot_config(model.pivot_config, schema=dataset.schema))


def parse_dataset_json(text: str) -> DatasetFile:
    return ensure_dataset(_load_json(text))


def parse_griddle_json(text: str) -> GriddleFile:
    return ensure_griddle_file(_load_json(text))


# ---------------- core -> wire ----------------
def _color_rule_dict(rule: Optional[ColorRule]) -> Optional[Dict[str, Any]]:
    if rule is None:
        return None
    return {"enabled": rule.enabled, "some": rule.some, "all": rule.all}


def field_def_to_dict(f: FieldDef) -> Dict[str, Any]:
    out: Dict[str, Any] = {"key": f.key, "label": f.label, "type": f.type, "roles": list(f.roles)}
    if f.enum is not None:
        out["enum"] = list(f.enum)
    if f.measure_format is not None:
        out["measure"] = {"format": f.measure_format}
    if f.flag is not None:
        out["flag"] = {"style": {"cellClass": f.flag.cell_class, "priority": f.flag.priority}}
        if f.flag.style_rules is not None:
            out["flag"]["styleRules"] = {
                "bg": _color_rule_dict(f.flag.style_rules.bg),
                "text": _color_rule_dict(f.flag.style_rules.text),
            }
    if f.pivot is not None:
        out["pivot"] = {"includeEmptyAxisItems": f.pivot.include_empty_axis_items}
        d = f.pivot.axis_domain
        if d is not None:
            out["pivot"]["axisDomain"] = {
                "kind": d.kind,
                "values": list(d.values),
                "start": d.start,
                "end": d.end,
                "includeWeekends": d.include_weekends,
            }
    return out


def dataset_to_dict(dataset: DatasetFile) -> Dict[str, Any]:
    return {
        "version": 1,
        "name": dataset.name,
        "schema": {"version": 1, "fields": [field_def_to_dict(f) for f in dataset.schema.fields]},
        "records": [
            {"id": r.id, "createdAt": r.created_at, "updatedAt": r.updated_at, "data": dict(r.data)}
            for r in dataset.records
        ],
    }


def serialize_dataset(dataset: DatasetFile) -> str:
    return json.dumps(dataset_to_dict(dataset), indent=2, default=str) + "\n"


def serialize_griddle_file(file: GriddleFile) -> str:
    doc = {
        "fileType": "griddle",
        "version": 1,
        "dataset": dataset_to_dict(file.dataset),
        "pivotConfig": pivot_config_to_dict(file.pivot_config),
    }
    return json.dumps(doc, indent=2, default=str) + "\n"


def validate_dataset(dataset: DatasetFile) -> List[str]:
    """Non-fatal health warnings for a loaded dataset."""
    warnings: List[str] = []

    keys = [f.key for f in dataset.schema.fields]
    dupes = list(dict.fromkeys(k for i, k in enumerate(keys) if k in keys[:i]))
    if dupes:
        warnings.append(f"Duplicate field keys in schema: {', '.join(dupes)}")

    if not dataset.schema.measure_keys:
        warnings.append("Schema has no measure fields (role=measure).")

    for r in dataset.records:
        if not r.id:
            warnings.append("Record with missing id")
        for k, v in r.data.items():
            if isinstance(v, float) and not math.isfinite(v):
                warnings.append(f"Record {r.id} has a non-finite value for {k}")
    return warnings
