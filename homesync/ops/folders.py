# homesync/ops/folders.py

from __future__ import annotations

import logging
from typing import Optional

from homesync.blocks import BlockView
from homesync.config import Settings
from homesync.scan import BatchResult, empty_result, has_data, iter_blocks
from homesync.services.drive import StorageError, folder_url
from homesync.skip import DEFAULT_POLICY
from homesync.text import cell_text, date_prefix, is_drive_url, is_google_file_url, url_from_cell

log = logging.getLogger(__name__)


def project_folder_name(view: BlockView) -> str:
    prefix = date_prefix(view.raw("date"), view.value("date"))
    return cell_text(f"{prefix} {view.name}")


def _current_url(view: BlockView, row: int, col: int) -> str:
    display = view.table.display(row, col)
    return display or url_from_cell(view.table.cell(row, col))


def _file_url(item: dict) -> str:
    return item.get("webViewLink") or f"https://docs.google.com/spreadsheets/d/{item['id']}/edit"


class _Provisioner:
    """Folder work for one block; the project folder is resolved on first use."""

    def __init__(self, storage, parent_id: str, view: BlockView):
        self.storage = storage
        self.parent_id = parent_id
        self.view = view
        self.name = project_folder_name(view)
        self._project_id: Optional[str] = None

    @property
    def project_id(self) -> str:
        if self._project_id is None:
            self._project_id, created = self.storage.ensure_folder(self.parent_id, self.name)
            if created:
                log.info("project folder created: %s", self.name)
        return self._project_id

    def folder_for(self, label: str) -> str:
        folder_id, _ = self.storage.ensure_folder(self.project_id, label)
        return folder_id


def stamp_value(workbook, settings: Settings) -> Optional[str]:
    """Value read from the configured source cell, or None to stamp each project label."""
    tmpl = settings.layout.template
    if not tmpl.source_sheet:
        return None
    try:
        return workbook.read_cell(tmpl.source_sheet, tmpl.source_cell or tmpl.stamp_cell)
    except Exception as e:
        log.warning("stamp source %s unreadable: %s", tmpl.source_sheet, e)
        return None


def _copy_template(
    workbook, storage, settings: Settings, prov: _Provisioner, force: bool, stamp: Optional[str] = None
) -> Optional[str]:
    """Copies the item-list template into the project folder. Returns its name when written."""
    tmpl = settings.layout.template
    view = prov.view
    row, col = view.pos("file")
    if not force and is_google_file_url(_current_url(view, row, col)):
        return None

    copy_name = f"{prov.name} {tmpl.name_suffix}"
    existing = storage.find_file(prov.project_id, copy_name)
    if existing and not force:
        item = existing
    else:
        item = storage.copy_file(tmpl.file_id, prov.project_id, copy_name)
        try:
            workbook.stamp(item["id"], tmpl.stamp_cell, view.label if stamp is None else stamp)
        except Exception as e:
            log.warning("could not stamp %s: %s", copy_name, e)

    view.set("file", _file_url(item))
    return copy_name


def provision_folders(workbook, settings: Settings, storage, force: bool = False) -> BatchResult:
    """Creates the project folder and its labeled sub-folders for every open block.

    A label row whose link already points at Drive is kept unless force is set.
    Folders are matched by exact name inside their parent, so reruns reuse them.
    """
    layout = settings.layout
    table = workbook.table(layout.sheets.main)
    if not has_data(table, layout):
        return empty_result()

    try:
        parent_id = storage.parent_folder_id(workbook.file_id)
    except StorageError as e:
        log.error("no parent folder for the workbook: %s", e)
        return BatchResult(summary=f"⚠️ 상위 폴더를 찾을 수 없음\n{e}", aborted=True)

    label_off = layout.offset("folder_label")
    url_col = layout.offset("folder_url").col
    stamp = stamp_value(workbook, settings) if layout.template.file_id else None

    created = skipped = failed = 0
    success_list: list[str] = []
    failed_list: list[str] = []

    for view in iter_blocks(table, layout):
        decision = DEFAULT_POLICY.evaluate(view)
        if decision is not None:
            if decision.counted:
                skipped += 1
            continue

        prov = _Provisioner(storage, parent_id, view)
        try:
            rows = view.column_rows(label_off.col, first_offset=label_off.row, count=layout.folder_rows)
            for row in rows:
                label = table.display(row, label_off.col)
                if not label:
                    continue
                if not force and is_drive_url(_current_url(view, row, url_col)):
                    skipped += 1
                    continue

                table.set_value(row, url_col, folder_url(prov.folder_for(label)))
                created += 1
                success_list.append(f"{view.label} / {label}")

            if layout.template.file_id:
                copied = _copy_template(workbook, storage, settings, prov, force, stamp)
                if copied:
                    success_list.append(f"{view.label} / {copied}")
        except Exception as e:
            failed += 1
            failed_list.append(f"{view.label} ({e})")
            log.warning("folder provisioning failed for %s: %s", view.label, e)

    summary = f"생성 {created}건 / 건너뜀 {skipped}건 / 실패 {failed}건"
    log.info("folders: %s", summary)
    return BatchResult(
        summary=summary,
        failed_list=failed_list,
        success_list=success_list,
        counts={"created": created, "skip": skipped, "fail": failed},
    )
