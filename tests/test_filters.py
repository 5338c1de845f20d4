from __future__ import annotations

from griddle_core.filters import (
    apply_filter_set,
    dimension_keys_eligible_for_filtering,
    dimension_label,
    filter_records,
    filter_set_active_count,
    get_filter,
    normalize_filter_set,
    record_matches,
    record_matches_filter,
    record_matches_row_filters,
    record_matches_slicers,
    remove_filter,
    unique_dimension_values,
    upsert_filter,
    value_admitted,
)
from griddle_core.model import DimensionFilter, FilterSet, PivotConfig

from tests.conftest import rec


def _ids(records):
    return [r.id for r in records]


def test_scalar_slicer(xy_records):
    cfg = PivotConfig(slicer_keys=["x"], slicers={"x": "X2"})
    assert _ids(filter_records(xy_records, cfg)) == ["c"]


def test_list_slicer_and_canonical_match():
    records = [rec("a", n=1), rec("b", n=2), rec("c", n="3")]
    cfg = PivotConfig(slicer_keys=["n"], slicers={"n": [1, 3]})
    assert _ids(filter_records(records, cfg)) == ["a", "c"]


def test_unset_slicers_impose_nothing(xy_records):
    for desired in (None, "", []):
        cfg = PivotConfig(slicer_keys=["x"], slicers={"x": desired})
        assert all(record_matches_slicers(r, cfg) for r in xy_records)


def test_slicer_values_ignored_for_keys_not_listed(xy_records):
    cfg = PivotConfig(slicer_keys=[], slicers={"x": "X2"})
    assert len(filter_records(xy_records, cfg)) == 3


def test_row_filters(xy_records):
    cfg = PivotConfig(row_filters={"x": ["X1"], "y": []})
    assert [record_matches_row_filters(r, cfg) for r in xy_records] == [True, True, False]


def test_blank_values_match_empty_member():
    records = [rec("a", x="X1"), rec("b")]
    cfg = PivotConfig(row_filters={"x": [""]})
    assert _ids(filter_records(records, cfg)) == ["b"]


def test_filter_include_and_exclude(xy_records):
    include = DimensionFilter(dimension_key="x", mode="include", values=["X1"])
    exclude = DimensionFilter(dimension_key="x", mode="exclude", values=["X1"])
    empty = DimensionFilter(dimension_key="x", mode="exclude", values=[])
    assert [record_matches_filter(r, include) for r in xy_records] == [True, True, False]
    assert [record_matches_filter(r, exclude) for r in xy_records] == [False, False, True]
    assert all(record_matches_filter(r, empty) for r in xy_records)


def test_all_constraint_families_conjunct():
    records = [
        rec("a", x="X1", y="Y1", z="Z1"),
        rec("b", x="X1", y="Y2", z="Z1"),
        rec("c", x="X1", y="Y1", z="Z2"),
        rec("d", x="X2", y="Y1", z="Z1"),
    ]
    cfg = PivotConfig(slicer_keys=["x"], slicers={"x": "X1"}, row_filters={"y": ["Y1"]})
    fs = FilterSet(filters=[DimensionFilter(dimension_key="z", mode="exclude", values=["Z2"])])
    assert [record_matches(r, cfg, fs) for r in records] == [True, False, False, False]


def test_value_admitted_checks_constraints_on_its_key():
    cfg = PivotConfig(slicer_keys=["d"], slicers={"d": ["2026-01-01", "2026-01-02"]}, row_filters={"r": ["A"]})
    fs = FilterSet(filters=[DimensionFilter(dimension_key="d", mode="exclude", values=["2026-01-02"])])
    assert value_admitted("d", "2026-01-01", cfg, fs)
    assert not value_admitted("d", "2026-01-02", cfg, fs)
    assert not value_admitted("d", "2026-01-03", cfg, fs)
    assert not value_admitted("r", "B", cfg)
    assert value_admitted("other", "anything", cfg, fs)


def test_filter_set_helpers():
    fs = FilterSet(name="Mine", filters=[DimensionFilter(dimension_key="x", values=["X1"])])
    assert filter_set_active_count(fs) == 1
    assert filter_set_active_count(None) == 0
    assert get_filter(fs, "x").values == ["X1"]
    assert get_filter(fs, "y") == DimensionFilter(dimension_key="y")

    fs2 = upsert_filter(fs, DimensionFilter(dimension_key="x", mode="exclude", values=["X2"]))
    assert len(fs2.filters) == 1 and fs2.filters[0].mode == "exclude"
    assert fs.filters[0].mode == "include"

    fs3 = upsert_filter(fs2, DimensionFilter(dimension_key="y", values=["Y1"]))
    assert [f.dimension_key for f in fs3.filters] == ["x", "y"]
    assert [f.dimension_key for f in remove_filter(fs3, "x").filters] == ["y"]


def test_apply_filter_set(xy_records):
    assert apply_filter_set(xy_records, None) == xy_records
    inactive = FilterSet(filters=[DimensionFilter(dimension_key="x", values=[])])
    assert apply_filter_set(xy_records, inactive) == xy_records
    active = FilterSet(filters=[DimensionFilter(dimension_key="x", mode="exclude", values=["X2"])])
    assert _ids(apply_filter_set(xy_records, active)) == ["a", "b"]


def test_schema_helpers(flag_schema):
    assert dimension_label(flag_schema, "x") == "Product"
    assert dimension_label(flag_schema, "nope") == "nope"
    assert "m" not in dimension_keys_eligible_for_filtering(flag_schema)
    assert "billed" in dimension_keys_eligible_for_filtering(flag_schema)


def test_unique_dimension_values_sorted():
    records = [rec("a", c="beta"), rec("b", c="Alpha"), rec("c"), rec("d", c="beta")]
    assert unique_dimension_values(records, "c") == ["", "Alpha", "beta"]


def test_normalize_filter_set():
    raw = {
        "name": "Open items",
        "filters": [
            {"dimensionKey": "x", "mode": "exclude", "values": ["X1"]},
            {"dimension_key": "y", "mode": "weird", "values": "Y1"},
            {"mode": "include", "values": ["ignored"]},
            "junk",
        ],
    }
    fs = normalize_filter_set(raw)
    assert fs.name == "Open items"
    assert fs.filters == [
        DimensionFilter(dimension_key="x", mode="exclude", values=["X1"]),
        DimensionFilter(dimension_key="y", mode="include", values=["Y1"]),
    ]
    assert normalize_filter_set(None) is None


def test_unique_dimension_values_collate_accents():
    records = [rec("a", c="Zoe"), rec("b", c="Émile"), rec("c", c="eve"), rec("d", c="Eve")]
    assert unique_dimension_values(records, "c") == ["Émile", "eve", "Eve", "Zoe"]
