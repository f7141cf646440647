# homesync/ops/calendar.py

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional

from homesync.blocks import BlockView
from homesync.config import Settings
from homesync.names import is_closed_block, is_valid_project_name
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks

log = logging.getLogger(__name__)

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
NO_ITEMS = "금주 일정 없음"


def week_window(today: date) -> tuple[date, date]:
    """Sunday-to-Saturday week containing today."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return None


def week_items(view: BlockView, start: date, end: date) -> dict[int, list[str]]:
    """Day index (0 = Sunday) -> labels scheduled that day, in sheet order."""
    table = view.table
    items: dict[int, list[str]] = defaultdict(list)
    for tc in view.layout.task_columns:
        for row in view.column_rows(tc.label_col):
            label = table.display(row, tc.label_col)
            day = _as_date(table.raw(row, tc.date_col))
            if not label or day is None or not start <= day <= end:
                continue
            if tc.prefix and not label.startswith(tc.prefix):
                label = tc.prefix + label
            items[(day - start).days].append(label)
    return items


def build_weekly_calendar(workbook, settings: Settings, today: Optional[date] = None) -> BatchResult:
    layout = settings.layout
    source = workbook.table(layout.sheets.main)
    cal = workbook.ensure_table(layout.sheets.calendar)
    cal.clear()
    if not has_data(source, layout):
        return empty_result()

    start, end = week_window(today or date.today())
    title = f"📅 금주 일정표 (일요일 시작)  {start:%m/%d} ~ {end:%m/%d}"
    header = ["프로젝트"] + [f"{start + timedelta(days=i):%m/%d} ({DAY_NAMES[i]})" for i in range(7)]

    rows = []
    for view in iter_blocks(source, layout):
        if not is_valid_project_name(view.name, layout.names):
            continue
        if is_closed_block(view.value("status"), view.header_row()):
            continue
        items = week_items(view, start, end)
        if not items:
            continue
        rows.append([view.name] + ["\n".join(items.get(i, [])) for i in range(7)])

    cal.write_rows(1, [[title], header])
    cal.bold_row(1, 1)
    cal.bold_row(2, len(header))
    if rows:
        cal.write_rows(3, rows)
        cal.freeze(2)
    else:
        cal.write_rows(3, [[NO_ITEMS]])

    summary = f"금주 일정 {len(rows)}건 ({start:%m/%d} ~ {end:%m/%d})"
    log.info("calendar: %s", summary)
    return BatchResult(summary=summary, counts={"projects": len(rows)})
