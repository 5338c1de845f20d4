from __future__ import annotations

from typing import Any, Dict, List

import altair as alt
import pandas as pd

from griddle_core.export import column_labels
from griddle_core.keys import parse_cell_key
from griddle_core.model import PivotConfig, PivotResult

alt.data_transformers.disable_max_rows()

ROW_LABEL_SEPARATOR = " / "


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def pivot_cells_frame(pivot: PivotResult, config: PivotConfig) -> pd.DataFrame:
    """Long table of non-empty cells: one row per (row tuple, column tuple)."""
    col_names = column_labels(pivot, config)
    rows: List[Dict[str, Any]] = []
    for key, cell in pivot.cells.items():
        position = parse_cell_key(key)
        if position is None or not cell.record_ids:
            continue
        ri, ci = position
        rows.append(
            {
                "row": ROW_LABEL_SEPARATOR.join(pivot.row_tuples[ri].get(k, "") for k in config.row_keys),
                "col": col_names[ci],
                "value": cell.value,
                "records": len(cell.record_ids),
            }
        )
    return pd.DataFrame(rows, columns=["row", "col", "value", "records"])


def pivot_heatmap(pivot: PivotResult, config: PivotConfig) -> alt.Chart:
    df = pivot_cells_frame(pivot, config)
    row_order = [ROW_LABEL_SEPARATOR.join(t.get(k, "") for k in config.row_keys) for t in pivot.row_tuples]
    col_order = column_labels(pivot, config)
    measure_title = config.measure_key or "Value"

    return (
        alt.Chart(df)
        .mark_rect()
        .encode(
            x=alt.X("col:O", title=None, sort=col_order),
            y=alt.Y("row:O", title=None, sort=row_order),
            color=alt.Color("value:Q", title=measure_title),
            tooltip=[
                alt.Tooltip("row:N", title="Row"),
                alt.Tooltip("col:N", title="Column"),
                alt.Tooltip("value:Q", title=measure_title, format=","),
                alt.Tooltip("records:Q", title="Records"),
            ],
        )
    )
