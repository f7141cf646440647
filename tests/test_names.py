from homesync.config import NameRules
from homesync.names import (
    block_status,
    is_active_for_drive_check,
    is_closed,
    is_closed_block,
    is_setting_wait,
    is_valid_project_name,
    project_name_in_row,
    status_in_row,
)


def test_valid_project_name_rule_table():
    assert is_valid_project_name("멱살반 홍길동님")
    assert is_valid_project_name("스타일링대행 김철수")
    assert is_valid_project_name("홍길동님")
    assert not is_valid_project_name("홍길동")
    assert not is_valid_project_name("")
    assert not is_valid_project_name(None)
    assert not is_valid_project_name("#N/A")


def test_allow_any_accepts_non_empty():
    rules = NameRules(allow_any=True)
    assert is_valid_project_name("아무거나", rules)
    assert not is_valid_project_name("", rules)
    assert not is_valid_project_name("#N/A", rules)


def test_configured_prefixes_replace_defaults():
    rules = NameRules(prefixes=("VIP",))
    assert is_valid_project_name("VIP 홍길동", rules)
    assert not is_valid_project_name("멱살반 홍길동", rules)


def test_required_suffix():
    rules = NameRules(require_suffix=True)
    assert not is_valid_project_name("멱살반 홍길동", rules)
    assert is_valid_project_name("멱살반 홍길동님", rules)


def test_status_in_row_uses_rank_not_position():
    assert status_in_row(["", "진행", "x", "완료"]) == "완료"
    assert status_in_row(["세팅 대기", "대기"]) == "대기"
    assert status_in_row(["진행중"]) == ""


def test_block_status_prefers_fixed_cell():
    assert block_status("디자인 작업", ["완료"]) == "디자인 작업"
    assert block_status("", ["", "취소"]) == "취소"


def test_closed_checks():
    assert is_closed("완료")
    assert is_closed(" 취소 ")
    assert not is_closed("진행")
    assert is_closed_block("", ["멱살반 A님", "완료"])
    assert not is_closed_block("진행", ["진행"])


def test_drive_check_statuses():
    assert is_active_for_drive_check("세팅 대기")
    assert not is_active_for_drive_check("대기")
    assert not is_active_for_drive_check("완료")


def test_setting_wait_ignores_whitespace():
    assert is_setting_wait("세팅 대기")
    assert is_setting_wait("세팅대기")
    assert is_setting_wait("세팅완료 (에비대기)")
    assert not is_setting_wait("대기")


def test_project_name_in_row_prefers_hints():
    assert project_name_in_row(["", "12", "멱살반 홍길동님"]) == "멱살반 홍길동님"
    assert project_name_in_row(["", "12", "홍길동"]) == "12"
    assert project_name_in_row(["", ""]) == ""
