from __future__ import annotations

from griddle_core.model import PivotConfig
from griddle_core.pivot import compute_pivot
from griddle_core.records import (
    bulk_set_flag,
    create_record_for_cell,
    dimension_keys_from_config,
    remove_records,
    set_flag,
    upsert_records,
)
from griddle_core.selection import GridRange, record_ids_for_ranges, records_for_cell

from tests.conftest import rec


def _pivot(sample_dataset):
    cfg = PivotConfig(row_keys=["x"], col_keys=["y"], measure_key="m")
    return cfg, compute_pivot(sample_dataset.records, sample_dataset.schema, cfg)


def test_range_over_value_columns(sample_dataset):
    cfg, p = _pivot(sample_dataset)
    # column 0 holds row labels, so value columns start at x=1
    summary = record_ids_for_ranges(p, cfg, [GridRange(x=1, y=0, width=2, height=2)])
    assert summary.record_ids == ["a", "b", "c", "d"]
    assert summary.cell_count == 3


def test_row_label_columns_and_out_of_bounds_are_ignored(sample_dataset):
    cfg, p = _pivot(sample_dataset)
    assert record_ids_for_ranges(p, cfg, [GridRange(x=0, y=0)]).record_ids == []
    assert record_ids_for_ranges(p, cfg, [GridRange(x=1, y=5, width=3, height=3)]).cell_count == 0


def test_overlapping_ranges_dedupe_ids(sample_dataset):
    cfg, p = _pivot(sample_dataset)
    ranges = [GridRange(x=1, y=0), GridRange(x=1, y=0, width=1, height=2)]
    assert record_ids_for_ranges(p, cfg, ranges).record_ids == ["a", "b", "c"]
    assert GridRange(x=1, y=0).is_single_cell


def test_records_for_cell_keeps_dataset_order(sample_dataset):
    _, p = _pivot(sample_dataset)
    assert [r.id for r in records_for_cell(sample_dataset.records, p.cells["0:0"])] == ["a", "b"]


def test_create_record_lands_in_target_cell(sample_dataset):
    cfg = PivotConfig(row_keys=["x"], col_keys=["y"], measure_key="m", slicer_keys=["region"], slicers={"region": ["", "EU"]})
    new = create_record_for_cell(
        sample_dataset.schema,
        cfg,
        {"x": "X9"},
        {"y": "Y3"},
        measure_values={"m": 7},
        flags={"urgent": True},
        details={"note": "hi", "blank": ""},
        now="2026-01-01T00:00:00.000Z",
    )
    assert new.id.startswith("r_")
    assert new.created_at == new.updated_at == "2026-01-01T00:00:00.000Z"
    assert new.data == {"x": "X9", "y": "Y3", "region": "EU", "m": 7, "billed": False, "urgent": True, "note": "hi"}

    p = compute_pivot([*sample_dataset.records, new], sample_dataset.schema, cfg)
    ri = p.row_tuples.index({"x": "X9"})
    ci = p.col_tuples.index({"y": "Y3"})
    assert p.cells[f"{ri}:{ci}"].record_ids == [new.id]


def test_dimension_keys_from_config_dedupes():
    cfg = PivotConfig(row_keys=["a", "b"], col_keys=["b", "c"], slicer_keys=["a", "d"])
    assert dimension_keys_from_config(cfg) == ["a", "b", "c", "d"]


def test_flag_updates_touch_timestamp_only_on_changed_record():
    r = rec("a", billed=False)
    updated = set_flag(r, "billed", True, now="later")
    assert updated.data["billed"] is True and updated.updated_at == "later"
    assert r.data["billed"] is False

    both = bulk_set_flag([rec("a"), rec("b")], "billed", True)
    assert [x.data["billed"] for x in both] == [True, True]
    assert both[0].updated_at == both[1].updated_at


def test_upsert_and_remove(sample_dataset):
    changed = set_flag(sample_dataset.records[0], "billed", False, now="later")
    added = rec("e", x="X3", y="Y1", m=1)
    ds = upsert_records(sample_dataset, [changed, added])
    assert [r.id for r in ds.records] == ["a", "b", "c", "d", "e"]
    assert ds.records[0].data["billed"] is False

    assert [r.id for r in remove_records(ds, ["b", "e", "zz"]).records] == ["a", "c", "d"]
    assert len(sample_dataset.records) == 4
