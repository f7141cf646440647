# homesync/ops/db_sync.py

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from homesync.blocks import BlockView
from homesync.config import Layout, Settings
from homesync.names import is_db_inactive
from homesync.reconcile import DB_COLUMNS, ReconciliationLog, stamp
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks
from homesync.skip import SkipPolicy, invalid_name
from homesync.text import fmt_month_day, join_address, url_from_cell

log = logging.getLogger(__name__)

MAX_SHEET_NAME = 90

# (stage, keywords); the first matching label row fills a stage, later ones are ignored
STAGES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("measure", ("실측",)),
    ("consult", ("상담", "줌", "미팅", "zoom")),
    ("design", ("디자인",)),
    ("excel", ("엑셀", "excel")),
    ("setting", ("세팅", "세팅일자")),
)

DB_POLICY = SkipPolicy(invalid_name)


def sanitize_sheet_name(name: str) -> str:
    s = re.sub(r"[\\/?*\[\]:]", "_", name or "")
    s = re.sub(r"\s+", " ", s).strip()
    s = s[:MAX_SHEET_NAME].strip()
    return s or "DB"


def db_sheet_name(workbook, layout: Layout, today: Optional[date] = None) -> str:
    """Configured name, else the existing DB_<main>_* sheet, else a new dated name."""
    fixed = layout.sheets.db.strip()
    if fixed:
        return fixed

    names = workbook.table_names()
    prefix = sanitize_sheet_name(f"DB_{layout.sheets.main}") + "_"
    for name in names:
        if name.startswith(prefix):
            return name

    today = today or date.today()
    base = sanitize_sheet_name(f"DB_{layout.sheets.main}_{today:%Y%m%d}")
    name, n = base, 2
    while name in names:
        name = sanitize_sheet_name(f"{base} ({n})")
        n += 1
    return name


def _stage_matches(label: str, keywords: tuple[str, ...]) -> bool:
    t = re.sub(r"\s+", "", label).lower()
    return any(re.sub(r"\s+", "", k).lower() in t for k in keywords)


def collect_stage_dates(view: BlockView) -> dict[str, tuple[str, str]]:
    """stage -> (plan, done) as MM/dd, or the cell text when it is not a date."""
    table = view.table
    label_off = view.layout.offset("stage_label")
    plan_col = view.layout.offset("plan_date").col
    done_col = view.layout.offset("done_date").col

    out: dict[str, tuple[str, str]] = {stage: ("", "") for stage, _ in STAGES}
    for row in view.column_rows(label_off.col, first_offset=label_off.row):
        label = table.display(row, label_off.col)
        if not label:
            continue
        for stage, keywords in STAGES:
            if any(out[stage]):
                continue
            if _stage_matches(label, keywords):
                out[stage] = (
                    fmt_month_day(table.raw(row, plan_col), table.display(row, plan_col)),
                    fmt_month_day(table.raw(row, done_col), table.display(row, done_col)),
                )
    return out


def _link(view: BlockView, row: int, col: int) -> str:
    return view.table.display(row, col) or url_from_cell(view.table.cell(row, col))


def project_record(view: BlockView) -> list:
    layout = view.layout
    url_off = layout.offset("folder_url")
    first = view.row + url_off.row
    folders = [_link(view, r, url_off.col) for r in range(first, first + 4)]
    file_row, file_col = view.pos("file")

    stages = collect_stage_dates(view)
    stage_values = [v for stage, _ in STAGES for v in stages[stage]]

    return [
        view.key,
        view.number,
        view.name,
        view.status(),
        join_address(view.value("address"), view.value("address_extra")),
        view.value("map"),
        *folders,
        _link(view, file_row, file_col),
        *stage_values,
        stamp(),
    ]


def sync_project_db(workbook, settings: Settings, include_all: bool = False, today: Optional[date] = None) -> BatchResult:
    layout = settings.layout
    table = workbook.table(layout.sheets.main)
    if not has_data(table, layout):
        return empty_result()

    name = db_sheet_name(workbook, layout, today)
    db = ReconciliationLog.open(workbook, name, DB_COLUMNS)

    skipped = failed = 0
    failed_list: list[str] = []

    try:
        for view in iter_blocks(table, layout):
            if DB_POLICY.evaluate(view) is not None:
                continue
            try:
                if not include_all and is_db_inactive(view.status()):
                    skipped += 1
                    continue
                db.upsert(view.key, project_record(view))
            except Exception as e:
                failed += 1
                failed_list.append(f"{view.label} ({e})")
                log.warning("db record failed for %s: %s", view.label, e)
    finally:
        updated, appended = db.flush()

    summary = f"업데이트 {updated} / 신규 {appended}\nDB 시트: {name}"
    log.info("db: %s", summary.replace("\n", " "))
    return BatchResult(
        summary=summary,
        failed_list=failed_list,
        counts={"updated": updated, "created": appended, "skip": skipped, "fail": failed},
    )
