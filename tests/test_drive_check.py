from datetime import datetime, timedelta

from conftest import FakeDrive, add_block
from homesync.blocks import Block, BlockView
from homesync.ops.drive_check import LinkCell, check_drive_files, find_folder_url_cell

NOW = datetime(2024, 3, 9, 12, 0, 0)
YELLOW = "#ffff00"


def _project(table, layout, k, folder_id, status="진행"):
    start = add_block(table, layout, k, number=str(k + 1), name=f"멱살반 고객{k}님", status=status)
    table.put(start + 1, 18, "메인")
    table.put(start + 1, 19, f"https://drive.google.com/drive/folders/{folder_id}")
    return start + 1


def test_find_folder_url_cell_order(main_table, layout):
    start = add_block(main_table, layout, 0, number="1", name="멱살반 가님")
    main_table.put(start + 3, 19, "https://drive.google.com/drive/folders/LOOSE")
    view = BlockView(main_table, Block(start, 9), layout)
    assert find_folder_url_cell(view) == LinkCell(start + 3, 19, "https://drive.google.com/drive/folders/LOOSE")

    main_table.put(start + 2, 18, "Before")
    main_table.put(start + 2, 19, "", hyperlink="https://drive.google.com/drive/folders/LABELED")
    assert find_folder_url_cell(view) == LinkCell(start + 2, 19, "https://drive.google.com/drive/folders/LABELED")


def test_find_folder_url_cell_legacy_header(main_table, layout):
    start = add_block(main_table, layout, 0, number="1", name="멱살반 가님")
    main_table.put(start, 30, "[폴더]")
    main_table.put(start, 31, "폴더열기", hyperlink="https://drive.google.com/drive/folders/OLD")
    view = BlockView(main_table, Block(start, 9), layout)
    assert find_folder_url_cell(view) == LinkCell(start, 31, "폴더열기")


def test_colors_by_real_files(workbook, main_table, settings, layout):
    drive = FakeDrive()
    drive.add("HAS", "사진.jpg")
    drive.add("EMPTY", "240309 물품리스트")
    sub = drive.add("DEEP", "시공", folder=True)
    drive.add(sub, "도면.pdf")
    rows = [_project(main_table, layout, k, fid) for k, fid in enumerate(("HAS", "EMPTY", "DEEP"))]

    result = check_drive_files(workbook, settings, drive, at=NOW)

    assert result.summary == "업데이트 3 / 스킵 0 / 오류 0"
    assert [main_table.cell(r, 19).background for r in rows] == [YELLOW, "#ffffff", YELLOW]
    run_log = workbook.table(layout.sheets.drive_run_log).data_rows()
    assert [r[5] for r in run_log] == ["UPDATED"] * 3
    assert run_log[0][6] == "HAS_FILES / SCAN"


def test_cache_is_used_until_stale_or_forced(workbook, main_table, settings, layout):
    drive = FakeDrive()
    drive.add("F1", "사진.jpg")
    _project(main_table, layout, 0, "F1")

    check_drive_files(workbook, settings, drive, at=NOW)
    calls = len(drive.list_calls)

    check_drive_files(workbook, settings, drive, at=NOW + timedelta(hours=1))
    assert len(drive.list_calls) == calls

    check_drive_files(workbook, settings, drive, at=NOW + timedelta(hours=7))
    assert len(drive.list_calls) == calls + 1

    check_drive_files(workbook, settings, drive, include_all=True, force_refresh=True, at=NOW + timedelta(hours=7))
    assert len(drive.list_calls) == calls + 2

    assert len(workbook.table(layout.sheets.drive_cache).data_rows()) == 1
    details = [r[6] for r in workbook.table(layout.sheets.drive_run_log).data_rows()]
    assert details == ["HAS_FILES / SCAN", "HAS_FILES / CACHE", "HAS_FILES / SCAN", "HAS_FILES / SCAN"]


def test_error_preserves_background(workbook, main_table, settings, layout):
    drive = FakeDrive()
    drive.broken.add("BROKEN")
    drive.add("OK", "사진.jpg")
    broken_row = _project(main_table, layout, 0, "BROKEN")
    main_table.cell(broken_row, 19).background = YELLOW
    ok_row = _project(main_table, layout, 1, "OK")

    result = check_drive_files(workbook, settings, drive, at=NOW)

    assert main_table.cell(broken_row, 19).background == YELLOW
    assert ("bg", broken_row, 19, "#ffffff") not in main_table.writes
    assert main_table.cell(ok_row, 19).background == YELLOW
    assert result.counts == {"updated": 1, "skip": 0, "error": 1}
    assert result.failed_list == ["1 멱살반 고객0님 (403 rate limit exceeded)"]


def test_status_gate_and_missing_links(workbook, main_table, settings, layout):
    drive = FakeDrive()
    _project(main_table, layout, 0, "DONE", status="완료")
    add_block(main_table, layout, 1, number="2", name="멱살반 무링크님", status="진행")
    start = add_block(main_table, layout, 2, number="3", name="멱살반 외부님", status="진행")
    main_table.put(start, 30, "[폴더]")
    main_table.put(start, 31, "폴더열기", background=YELLOW)

    result = check_drive_files(workbook, settings, drive, at=NOW)

    assert result.counts == {"updated": 0, "skip": 2, "error": 0}
    assert drive.list_calls == []
    results = [r[5] for r in workbook.table(layout.sheets.drive_run_log).data_rows()]
    assert results == ["SKIP_STATUS", "SKIP_NO_URL", "SKIP_BAD_URL"]
    assert main_table.cell(start, 31).background == "#ffffff"


def test_include_all_checks_closed(workbook, main_table, settings, layout):
    drive = FakeDrive()
    drive.add("DONE", "사진.jpg")
    row = _project(main_table, layout, 0, "DONE", status="완료")
    check_drive_files(workbook, settings, drive, include_all=True, at=NOW)
    assert main_table.cell(row, 19).background == YELLOW
