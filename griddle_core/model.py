from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from griddle_core.keys import cell_key

FieldRole = Literal["rowDim", "colDim", "slicer", "measure", "flag"]
FieldType = Literal["string", "number", "boolean", "date"]
MeasureFormat = Literal["decimal", "integer", "currency"]
AxisDomainKind = Literal["enum", "list", "dateRange"]
FilterMode = Literal["include", "exclude"]

FIELD_ROLES: Tuple[str, ...] = ("rowDim", "colDim", "slicer", "measure", "flag")
FIELD_TYPES: Tuple[str, ...] = ("string", "number", "boolean", "date")
SCHEMA_VERSION = 1

# One member combination on an axis: dimension key -> canonical string value.
AxisTuple = Dict[str, str]


@dataclass(frozen=True)
class ColorRule:
    enabled: bool = False
    some: Optional[str] = None
    all: Optional[str] = None


@dataclass(frozen=True)
class FlagStyleRules:
    bg: Optional[ColorRule] = None
    text: Optional[ColorRule] = None


@dataclass(frozen=True)
class FlagSettings:
    priority: float = 0
    cell_class: Optional[str] = None
    style_rules: Optional[FlagStyleRules] = None


@dataclass(frozen=True)
class AxisDomain:
    kind: AxisDomainKind
    values: List[str] = field(default_factory=list)
    start: Optional[str] = None
    end: Optional[str] = None
    include_weekends: bool = True


@dataclass(frozen=True)
class PivotAxisSettings:
    include_empty_axis_items: bool = False
    axis_domain: Optional[AxisDomain] = None


@dataclass(frozen=True)
class FieldDef:
    key: str
    label: str
    type: FieldType = "string"
    roles: Tuple[FieldRole, ...] = ()
    enum: Optional[List[str]] = None
    measure_format: Optional[MeasureFormat] = None
    flag: Optional[FlagSettings] = None
    pivot: Optional[PivotAxisSettings] = None

    def has_role(self, role: FieldRole) -> bool:
        return role in self.roles


@dataclass(frozen=True)
class DatasetSchema:
    fields: List[FieldDef] = field(default_factory=list)
    version: int = SCHEMA_VERSION

    def get_field(self, key: str) -> Optional[FieldDef]:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def fields_with_role(self, role: FieldRole) -> List[FieldDef]:
        return [f for f in self.fields if f.has_role(role)]

    @property
    def flag_keys(self) -> List[str]:
        return [f.key for f in self.fields_with_role("flag")]

    @property
    def measure_keys(self) -> List[str]:
        return [f.key for f in self.fields_with_role("measure")]


@dataclass(frozen=True)
class RecordEntity:
    id: str
    created_at: str = ""
    updated_at: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PivotConfig:
    row_keys: List[str] = field(default_factory=list)
    col_keys: List[str] = field(default_factory=list)
    slicer_keys: List[str] = field(default_factory=list)
    slicers: Dict[str, Any] = field(default_factory=dict)
    measure_key: str = ""
    row_filters: Dict[str, List[Any]] = field(default_factory=dict)


@dataclass(frozen=True)
class DimensionFilter:
    dimension_key: str
    mode: FilterMode = "include"
    values: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class FilterSet:
    name: str = "Default"
    filters: List[DimensionFilter] = field(default_factory=list)


@dataclass(frozen=True)
class PivotCell:
    value: Optional[float] = None
    record_ids: List[str] = field(default_factory=list)
    flag_summary: Dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class PivotResult:
    row_tuples: List[AxisTuple] = field(default_factory=list)
    col_tuples: List[AxisTuple] = field(default_factory=list)
    cells: Dict[str, PivotCell] = field(default_factory=dict)

    def cell_at(self, row_index: int, col_index: int) -> PivotCell:
        """Cell at the given position; positions with no records read as an empty cell."""
        return self.cells.get(cell_key(row_index, col_index)) or PivotCell()


@dataclass(frozen=True)
class DatasetFile:
    name: str
    schema: DatasetSchema = field(default_factory=DatasetSchema)
    records: List[RecordEntity] = field(default_factory=list)
    version: int = SCHEMA_VERSION


@dataclass(frozen=True)
class GriddleFile:
    dataset: DatasetFile
    pivot_config: PivotConfig = field(default_factory=PivotConfig)
    version: int = SCHEMA_VERSION
