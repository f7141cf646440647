# homesync/ops/folding.py

from __future__ import annotations

import logging

from homesync.config import Settings
from homesync.names import is_closed, is_setting_wait, is_valid_project_name
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks

log = logging.getLogger(__name__)

# rows r+1..r+7 fold; r+8 always stays visible
FOLD_FIRST = 1
FOLD_LAST = 7
SETTING_WAIT_ROWS = ((1, 4), (7, 7))


def merge_intervals(intervals: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Merges overlapping or adjacent inclusive (start, end) row intervals."""
    out: list[tuple[int, int]] = []
    for s, e in sorted(intervals):
        if out and s <= out[-1][1] + 1:
            out[-1] = (out[-1][0], max(out[-1][1], e))
        else:
            out.append((s, e))
    return out


def _span(start: int, first: int, last: int, last_row: int) -> list[tuple[int, int]]:
    s, e = start + first, min(start + last, last_row)
    return [(s, e)] if s <= e else []


def _apply(table, shows: list[tuple[int, int]], hides: list[tuple[int, int]]) -> int:
    for s, e in merge_intervals(shows):
        table.show_rows(s, e - s + 1)
    hidden = 0
    for s, e in merge_intervals(hides):
        table.hide_rows(s, e - s + 1)
        hidden += e - s + 1
    return hidden


def toggle_folding(table, settings: Settings) -> BatchResult:
    """Folds blocks by status, or unfolds everything when anything is folded."""
    layout = settings.layout
    if not has_data(table, layout):
        return empty_result()

    last = table.last_row()
    views = [v for v in iter_blocks(table, layout) if is_valid_project_name(v.name, layout.names)]

    folded = any(
        table.is_row_hidden(r)
        for v in views
        for s, e in _span(v.row, FOLD_FIRST, FOLD_LAST, last)
        for r in range(s, e + 1)
    )

    shows: list[tuple[int, int]] = []
    hides: list[tuple[int, int]] = []
    for v in views:
        shows.extend(_span(v.row, FOLD_FIRST, FOLD_LAST, last))
        if folded:
            continue
        status = v.value("status")
        if is_closed(status):
            hides.extend(_span(v.row, FOLD_FIRST, FOLD_LAST, last))
        elif is_setting_wait(status):
            for first, last_off in SETTING_WAIT_ROWS:
                hides.extend(_span(v.row, first, last_off, last))

    hidden = _apply(table, shows, hides)
    summary = f"펼치기 {len(views)}개 블록" if folded else f"접기 {hidden}행"
    log.info("folding: %s", summary)
    return BatchResult(summary=summary, counts={"blocks": len(views), "hidden_rows": hidden})
