from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PivotConfigModel(_RequestModel):
    row_keys: List[str] = Field(default_factory=list, alias="rowKeys")
    col_keys: List[str] = Field(default_factory=list, alias="colKeys")
    row_filters: Dict[str, List[Any]] = Field(default_factory=dict, alias="rowFilters")
    slicer_keys: List[str] = Field(default_factory=list, alias="slicerKeys")
    slicers: Dict[str, Any] = Field(default_factory=dict)
    measure_key: str = Field(default="", alias="measureKey")


class DimensionFilterModel(_RequestModel):
    dimension_key: str = Field(alias="dimensionKey")
    mode: Literal["include", "exclude"] = "include"
    values: List[Any] = Field(default_factory=list)


class FilterSetModel(_RequestModel):
    name: str = "Default"
    filters: List[DimensionFilterModel] = Field(default_factory=list)


class PivotRequest(_RequestModel):
    dataset: str
    # None falls back to the pivot config saved with the dataset.
    config: Optional[PivotConfigModel] = None
    filter_set: Optional[FilterSetModel] = Field(default=None, alias="filterSet")


class GridRangeModel(BaseModel):
    x: int
    y: int
    width: int = 1
    height: int = 1


class SelectionRequest(PivotRequest):
    ranges: List[GridRangeModel] = Field(default_factory=list)
