# homesync/ops/drive_check.py

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from homesync.blocks import BlockView
from homesync.config import Settings
from homesync.names import is_active_for_drive_check, is_valid_project_name, project_name_in_row, status_in_row
from homesync.reconcile import DRIVE_RUN_LOG_COLUMNS, DriveCache, now, stamp
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks
from homesync.services.drive import has_real_files
from homesync.sheets.table import WHITE
from homesync.text import extract_id_from_url, is_drive_url, url_from_cell

log = logging.getLogger(__name__)

NAME_SCAN_COLS = 40
LEGACY_FOLDER_LABEL = "[폴더]"


@dataclass(frozen=True)
class LinkCell:
    row: int
    col: int
    url: str


def _cell_url(table, row: int, col: int) -> str:
    return table.display(row, col) or url_from_cell(table.cell(row, col))


def find_folder_url_cell(view: BlockView) -> Optional[LinkCell]:
    """The block's folder link cell.

    Order: a labeled row's link, then any Drive link in the link column,
    then the legacy "[폴더]" label on the header row, then any Drive URL on
    the header row.
    """
    table = view.table
    label_col = view.layout.offset("folder_label").col
    url_col = view.layout.offset("folder_url").col
    rows = view.column_rows(url_col)

    for row in rows:
        if not table.display(row, label_col):
            continue
        url = _cell_url(table, row, url_col)
        if is_drive_url(url):
            return LinkCell(row, url_col, url)

    for row in rows:
        url = _cell_url(table, row, url_col)
        if is_drive_url(url):
            return LinkCell(row, url_col, url)

    header = view.header_row()
    for c, value in enumerate(header, start=1):
        if value == LEGACY_FOLDER_LABEL and c < len(header):
            return LinkCell(view.row, c + 1, _cell_url(table, view.row, c + 1))

    for c, value in enumerate(header, start=1):
        if is_drive_url(value):
            return LinkCell(view.row, c, value)
    return None


def check_drive_files(
    workbook,
    settings: Settings,
    storage,
    include_all: bool = False,
    force_refresh: bool = False,
    at: Optional[datetime] = None,
) -> BatchResult:
    """Colors each project's folder link by whether the folder holds real files.

    include_all=False only checks active statuses and trusts fresh cache
    entries; force_refresh ignores the cache. When a live check raises, the
    cell keeps whatever background it had.
    """
    layout = settings.layout
    opts = layout.drive
    table = workbook.table(layout.sheets.main)
    if not has_data(table, layout):
        return empty_result()

    cache = DriveCache.open(workbook, layout.sheets.drive_cache, opts.cache_hours)
    run_log = workbook.ensure_table(layout.sheets.drive_run_log, DRIVE_RUN_LOG_COLUMNS)
    run_id = str(uuid.uuid4())
    at = at or now()
    log_rows: list[list] = []

    def record(row: int, status: str, url: str, result: str, details: str) -> None:
        log_rows.append([run_id, stamp(at), row, status, url, result, details])

    updated = skipped = errors = 0
    failed_list: list[str] = []

    try:
        for view in iter_blocks(table, layout):
            header = view.header_row()
            if not is_valid_project_name(project_name_in_row(header[:NAME_SCAN_COLS], layout.names.row_hints), layout.names):
                continue

            status = status_in_row(header)
            if not include_all and not is_active_for_drive_check(status):
                skipped += 1
                record(view.row, status, "", "SKIP_STATUS", "진행만 대상 아님")
                continue

            link = find_folder_url_cell(view)
            if link is None:
                skipped += 1
                record(view.row, status, "", "SKIP_NO_URL", "R/S에서 링크를 찾지 못함")
                continue

            if not is_drive_url(link.url):
                table.set_background(link.row, link.col, WHITE)
                record(view.row, status, link.url, "SKIP_BAD_URL", "drive URL 아님")
                continue

            folder_id = extract_id_from_url(link.url)
            if not folder_id:
                table.set_background(link.row, link.col, WHITE)
                record(view.row, status, link.url, "SKIP_NO_ID", "폴더 ID 추출 실패")
                continue

            try:
                cached = None if force_refresh else cache.lookup(folder_id, at)
                if cached is not None:
                    has_files, source = cached, "CACHE"
                else:
                    has_files = has_real_files(storage, folder_id, opts.depth, opts.excluded_keywords)
                    cache.store(folder_id, has_files, at)
                    source = "SCAN"

                table.set_background(link.row, link.col, opts.has_files_color if has_files else WHITE)
                updated += 1
                record(view.row, status, link.url, "UPDATED", f"{'HAS_FILES' if has_files else 'NO_FILES'} / {source}")
            except Exception as e:
                # leave the cell as it was
                errors += 1
                failed_list.append(f"{view.label} ({e})")
                log.warning("drive check failed for row %s: %s", view.row, e)
                record(view.row, status, link.url, "ERROR", str(e))
    finally:
        cache.flush()
        run_log.append_rows(log_rows)

    summary = f"업데이트 {updated} / 스킵 {skipped} / 오류 {errors}"
    log.info("drive check: %s", summary)
    return BatchResult(
        summary=summary,
        failed_list=failed_list,
        counts={"updated": updated, "skip": skipped, "error": errors},
    )
