from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from griddle_core.keys import cell_key
from griddle_core.model import PivotCell, PivotConfig, PivotResult, RecordEntity


@dataclass(frozen=True)
class GridRange:
    """A rectangle of grid cells; columns ``0..len(row_keys)-1`` hold row labels."""

    x: int
    y: int
    width: int = 1
    height: int = 1

    @property
    def is_single_cell(self) -> bool:
        return self.width == 1 and self.height == 1


@dataclass(frozen=True)
class SelectionSummary:
    record_ids: List[str] = field(default_factory=list)
    cell_count: int = 0


def record_ids_for_ranges(pivot: PivotResult, config: PivotConfig, ranges: Iterable[GridRange]) -> SelectionSummary:
    row_dim_cols = len(config.row_keys)
    ids: dict = {}
    cells = 0
    for r in ranges:
        for y in range(r.y, r.y + r.height):
            if y < 0 or y >= len(pivot.row_tuples):
                continue
            for x in range(r.x, r.x + r.width):
                ci = x - row_dim_cols
                if ci < 0 or ci >= len(pivot.col_tuples):
                    continue
                cell = pivot.cells.get(cell_key(y, ci))
                if cell is None:
                    continue
                cells += 1
                for rid in cell.record_ids:
                    ids.setdefault(rid, None)
    return SelectionSummary(record_ids=list(ids), cell_count=cells)


def records_for_cell(records: Sequence[RecordEntity], cell: PivotCell) -> List[RecordEntity]:
    wanted = set(cell.record_ids)
    return [r for r in records if r.id in wanted]
