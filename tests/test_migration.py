from __future__ import annotations

import pytest

from griddle_core.model import DatasetFile, DatasetSchema, FieldDef, PivotConfig
from griddle_core.records import find_renamed_keys, migrate_dataset_on_schema_change

from tests.conftest import rec

PLANT = FieldDef(key="a", label="A", type="string", roles=("rowDim",))
TONS = FieldDef(key="tons", label="Tons", type="number", roles=("measure",))


@pytest.fixture
def dataset() -> DatasetFile:
    return DatasetFile(name="t", schema=DatasetSchema(fields=[PLANT, TONS]), records=[rec("r1", a="foo", tons=1)])


@pytest.fixture
def config() -> PivotConfig:
    return PivotConfig(row_keys=["a"], measure_key="tons")


def test_removed_fields_are_dropped_from_records(dataset, config):
    out = migrate_dataset_on_schema_change(dataset, DatasetSchema(fields=[TONS]), config)
    assert out.dataset.records[0].data == {"tons": 1}
    assert out.dataset.schema.fields == [TONS]
    assert out.pivot_config.row_keys == []
    assert out.renames == {}


def test_rename_moves_values_and_config_keys(dataset):
    cfg = PivotConfig(
        row_keys=["a"],
        slicer_keys=["a"],
        slicers={"a": "foo"},
        row_filters={"a": ["foo"]},
        measure_key="tons",
    )
    renamed = FieldDef(key="plant", label="A", type="string", roles=("rowDim",))
    out = migrate_dataset_on_schema_change(dataset, DatasetSchema(fields=[renamed, TONS]), cfg)

    assert out.renames == {"a": "plant"}
    assert out.dataset.records[0].data == {"plant": "foo", "tons": 1}
    assert out.pivot_config.row_keys == ["plant"]
    assert out.pivot_config.slicer_keys == ["plant"]
    assert out.pivot_config.slicers == {"plant": "foo"}
    assert out.pivot_config.row_filters == {"plant": ["foo"]}
    assert out.pivot_config.measure_key == "tons"
    # inputs are left untouched
    assert dataset.records[0].data == {"a": "foo", "tons": 1}


def test_renamed_measure_key_follows(dataset, config):
    weight = FieldDef(key="weight", label="Tons", type="number", roles=("measure",))
    out = migrate_dataset_on_schema_change(dataset, DatasetSchema(fields=[PLANT, weight]), config)
    assert out.pivot_config.measure_key == "weight"
    assert out.dataset.records[0].data == {"a": "foo", "weight": 1}


def test_ambiguous_signature_is_not_renamed():
    prev = DatasetSchema(
        fields=[
            FieldDef(key="a1", label="Site", type="string"),
            FieldDef(key="a2", label="Site", type="string"),
        ]
    )
    nxt = DatasetSchema(fields=[FieldDef(key="site", label="Site", type="string")])
    assert find_renamed_keys(prev, nxt) == {}

    ds = DatasetFile(name="t", schema=prev, records=[rec("r1", a1="x", a2="y")])
    out = migrate_dataset_on_schema_change(ds, nxt, PivotConfig(row_keys=["a1"]))
    assert out.dataset.records[0].data == {}
    assert out.pivot_config.row_keys == []


def test_type_change_is_not_a_rename():
    prev = DatasetSchema(fields=[FieldDef(key="a", label="A", type="string")])
    nxt = DatasetSchema(fields=[FieldDef(key="b", label="A", type="number")])
    assert find_renamed_keys(prev, nxt) == {}


def test_rename_does_not_overwrite_existing_value(dataset, config):
    renamed = FieldDef(key="plant", label="A", type="string", roles=("rowDim",))
    ds = DatasetFile(name="t", schema=dataset.schema, records=[rec("r1", a="old", plant="kept", tons=1)])
    out = migrate_dataset_on_schema_change(ds, DatasetSchema(fields=[renamed, TONS]), config)
    assert out.dataset.records[0].data == {"plant": "kept", "tons": 1}


def test_unknown_measure_key_is_kept(dataset):
    cfg = PivotConfig(row_keys=["a"], measure_key="gone")
    out = migrate_dataset_on_schema_change(dataset, DatasetSchema(fields=[PLANT]), cfg)
    assert out.pivot_config.measure_key == "gone"
