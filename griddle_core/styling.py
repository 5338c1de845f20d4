from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Literal, Optional

from griddle_core.model import ColorRule, DatasetSchema, FlagSettings, FlagStyleRules, PivotCell

Coverage = Literal["none", "some", "all"]

# Default palettes for quick setup: (some, all) per flag position.
DEFAULT_BG_PALETTE = [
    ("#eef2ff", "#e0e7ff"),  # indigo
    ("#ecfeff", "#cffafe"),  # cyan
    ("#f0fdf4", "#dcfce7"),  # green
    ("#fff7ed", "#ffedd5"),  # orange
    ("#fdf2f8", "#fce7f3"),  # pink
]
DEFAULT_TEXT_PALETTE = [
    ("#1e40af", "#1e3a8a"),
    ("#0e7490", "#155e75"),
    ("#166534", "#14532d"),
    ("#9a3412", "#7c2d12"),
    ("#9d174d", "#831843"),
]


@dataclass(frozen=True)
class CellStyle:
    bg: Optional[str] = None
    text: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.bg is None and self.text is None


def coverage_state(true_count: int, total: int) -> Coverage:
    if total <= 0 or true_count <= 0:
        return "none"
    if true_count >= total:
        return "all"
    return "some"


def compute_coverage(schema: DatasetSchema, cell: PivotCell) -> Dict[str, Coverage]:
    n = len(cell.record_ids)
    return {fk: coverage_state(cell.flag_summary.get(fk, 0), n) for fk in schema.flag_keys}


def _rule_color(rule: Optional[ColorRule], cov: Coverage) -> Optional[str]:
    if rule is None or not rule.enabled or cov == "none":
        return None
    return rule.all if cov == "all" else rule.some


def pick_cell_style(schema: DatasetSchema, cell: PivotCell) -> CellStyle:
    """Style from the highest-priority flag whose rule colors the cell's coverage.

    The first matching flag wins outright; lower-priority flags are never
    blended in. Cells without records are not styled.
    """
    n = len(cell.record_ids)
    if n == 0:
        return CellStyle()

    flags = sorted(
        schema.fields_with_role("flag"),
        key=lambda f: -(f.flag.priority if f.flag is not None else 0),
    )
    for f in flags:
        rules = f.flag.style_rules if f.flag is not None else None
        if rules is None:
            continue
        cov = coverage_state(cell.flag_summary.get(f.key, 0), n)
        bg = _rule_color(rules.bg, cov)
        text = _rule_color(rules.text, cov)
        if bg or text:
            return CellStyle(bg=bg or None, text=text or None)
    return CellStyle()


def ensure_default_flag_rules(schema: DatasetSchema) -> DatasetSchema:
    """Give every flag field without enabled rules a palette from the defaults."""
    flag_keys: List[str] = schema.flag_keys
    fields = []
    for f in schema.fields:
        if not f.has_role("flag"):
            fields.append(f)
            continue
        existing = f.flag.style_rules if f.flag is not None else None
        if existing is not None and (
            (existing.bg is not None and existing.bg.enabled) or (existing.text is not None and existing.text.enabled)
        ):
            fields.append(f)
            continue

        idx = flag_keys.index(f.key)
        bg_some, bg_all = DEFAULT_BG_PALETTE[idx % len(DEFAULT_BG_PALETTE)]
        text_some, text_all = DEFAULT_TEXT_PALETTE[idx % len(DEFAULT_TEXT_PALETTE)]
        rules = FlagStyleRules(
            bg=ColorRule(enabled=True, some=bg_some, all=bg_all),
            # text colors stay off until the user enables them
            text=ColorRule(enabled=False, some=text_some, all=text_all),
        )
        settings = f.flag or FlagSettings()
        fields.append(replace(f, flag=replace(settings, style_rules=rules)))
    return replace(schema, fields=fields)
