from dataclasses import replace
from datetime import date, datetime

from conftest import FakeTable, FakeWorkbook, add_block
from homesync.blocks import Block, BlockView
from homesync.config import SheetNames
from homesync.ops.db_sync import collect_stage_dates, db_sheet_name, sanitize_sheet_name, sync_project_db
from homesync.reconcile import DB_COLUMNS

TODAY = date(2024, 3, 9)
DB_NAME = "DB_통합관리시트_20240309"


def test_sanitize_sheet_name():
    assert sanitize_sheet_name("DB/a:b [c]") == "DB_a_b _c_"
    assert sanitize_sheet_name("  ") == "DB"
    assert len(sanitize_sheet_name("x" * 200)) == 90


def test_db_sheet_name_reuses_existing(layout):
    wb = FakeWorkbook(FakeTable("통합관리시트"), FakeTable("DB_통합관리시트_20230101"))
    assert db_sheet_name(wb, layout, TODAY) == "DB_통합관리시트_20230101"


def test_db_sheet_name_new_and_configured(layout):
    wb = FakeWorkbook(FakeTable("통합관리시트"))
    assert db_sheet_name(wb, layout, TODAY) == DB_NAME
    fixed = replace(layout, sheets=SheetNames(db="프로젝트DB"))
    assert db_sheet_name(wb, fixed, TODAY) == "프로젝트DB"


def test_collect_stage_dates_first_match_wins(layout):
    table = FakeTable()
    table.put(4, 7, "진행")
    table.put(5, 7, "실측")
    table.put(5, 8, datetime(2024, 3, 4))
    table.put(5, 9, datetime(2024, 3, 5))
    table.put(6, 7, "Zoom 상담")
    table.put(6, 8, "미정")
    table.put(7, 7, "실측 재방문")
    table.put(7, 8, datetime(2024, 4, 1))
    table.put(8, 7, "세팅일자")
    table.put(8, 9, datetime(2024, 5, 20))
    view = BlockView(table, Block(4, 9), layout)

    stages = collect_stage_dates(view)

    assert stages["measure"] == ("03/04", "03/05")
    assert stages["consult"] == ("미정", "")
    assert stages["design"] == ("", "")
    assert stages["setting"] == ("", "05/20")


def test_sync_appends_then_updates(workbook, main_table, settings, layout):
    start = add_block(
        main_table, layout, 0, number="1", name="멱살반 가님", status="진행", address="역삼동 1", address_extra="101호"
    )
    main_table.put(start + 1, 19, "https://drive.google.com/drive/folders/MAIN")
    add_block(main_table, layout, 1, number="2", name="멱살반 나님", status="완료")

    first = sync_project_db(workbook, settings, today=TODAY)
    assert first.summary == f"업데이트 0 / 신규 1\nDB 시트: {DB_NAME}"

    db = workbook.table(DB_NAME)
    assert db.row_values(1) == DB_COLUMNS
    row = db.data_rows()[0]
    assert row[:7] == ["1|멱살반 가님", "1", "멱살반 가님", "진행", "역삼동 1 101호", "", "https://drive.google.com/drive/folders/MAIN"]

    second = sync_project_db(workbook, settings, include_all=True, today=TODAY)
    assert second.summary == f"업데이트 1 / 신규 1\nDB 시트: {DB_NAME}"
    assert [r[0] for r in db.data_rows()] == ["1|멱살반 가님", "2|멱살반 나님"]


def test_status_falls_back_to_row_scan(workbook, main_table, settings, layout):
    start = add_block(main_table, layout, 0, number="1", name="멱살반 가님")
    main_table.put(start, 15, "세팅 대기")
    result = sync_project_db(workbook, settings, today=TODAY)
    assert result.counts["skip"] == 1
    assert result.counts["created"] == 0
