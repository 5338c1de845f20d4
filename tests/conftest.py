from __future__ import annotations

from typing import Any, List

import pytest

from griddle_core.model import (
    AxisDomain,
    ColorRule,
    DatasetFile,
    DatasetSchema,
    FieldDef,
    FlagSettings,
    FlagStyleRules,
    PivotAxisSettings,
    PivotConfig,
    RecordEntity,
)


def rec(record_id: str, **data: Any) -> RecordEntity:
    return RecordEntity(id=record_id, created_at="t", updated_at="t", data=data)


@pytest.fixture
def xy_records() -> List[RecordEntity]:
    return [
        rec("a", x="X1", y="Y1", m=2),
        rec("b", x="X1", y="Y1", m=3),
        rec("c", x="X2", y="Y1", m=5),
    ]


@pytest.fixture
def xy_config() -> PivotConfig:
    return PivotConfig(row_keys=["x"], col_keys=["y"], measure_key="m")


@pytest.fixture
def empty_schema() -> DatasetSchema:
    return DatasetSchema(fields=[])


@pytest.fixture
def flag_schema() -> DatasetSchema:
    return DatasetSchema(
        fields=[
            FieldDef(key="x", label="Product", roles=("rowDim",)),
            FieldDef(key="y", label="Week", roles=("colDim",)),
            FieldDef(key="m", label="Hours", type="number", roles=("measure",)),
            FieldDef(
                key="billed",
                label="Billed",
                type="boolean",
                roles=("flag",),
                flag=FlagSettings(
                    priority=1,
                    style_rules=FlagStyleRules(bg=ColorRule(enabled=True, some="#bg-some", all="#bg-all")),
                ),
            ),
            FieldDef(
                key="urgent",
                label="Urgent",
                type="boolean",
                roles=("flag",),
                flag=FlagSettings(
                    priority=5,
                    style_rules=FlagStyleRules(text=ColorRule(enabled=True, some="#tx-some", all="#tx-all")),
                ),
            ),
        ]
    )


@pytest.fixture
def weekday_schema() -> DatasetSchema:
    return DatasetSchema(
        fields=[
            FieldDef(key="x", label="Product", roles=("rowDim",)),
            FieldDef(
                key="day",
                label="Day",
                type="date",
                roles=("colDim",),
                pivot=PivotAxisSettings(
                    include_empty_axis_items=True,
                    axis_domain=AxisDomain(kind="dateRange", start="2026-01-01", end="2026-01-03", include_weekends=False),
                ),
            ),
            FieldDef(key="m", label="Hours", type="number", roles=("measure",)),
        ]
    )


@pytest.fixture
def sample_dataset(flag_schema: DatasetSchema) -> DatasetFile:
    return DatasetFile(
        name="timesheet",
        schema=flag_schema,
        records=[
            rec("a", x="X1", y="Y1", m=2, billed=True, urgent=False),
            rec("b", x="X1", y="Y1", m=3, billed=False, urgent=False),
            rec("c", x="X2", y="Y1", m=5, billed=True, urgent=True),
            rec("d", x="X2", y="Y2", m="", billed=False),
        ],
    )
