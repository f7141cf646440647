# homesync/ops/diagnostics.py

from __future__ import annotations

from homesync.blocks import block_height
from homesync.config import Settings
from homesync.names import is_active_for_drive_check, is_closed_block, is_valid_project_name, status_in_row
from homesync.scan import iter_blocks


def diagnose(workbook, settings: Settings) -> str:
    """Why a batch "did nothing": block counts as the scanners see them."""
    layout = settings.layout
    table = workbook.table(layout.sheets.main)
    start = layout.start_row
    last = table.last_row()
    height = block_height(table, layout)

    if last < start:
        return f"ℹ️ 진단 결과\n데이터가 없습니다.\n시작행: {start} / 마지막행: {last}"

    total = valid = invalid = empty_name = closed = active = 0
    for view in iter_blocks(table, layout, height):
        total += 1
        header = view.header_row()
        if not view.name:
            empty_name += 1
        if is_valid_project_name(view.name, layout.names):
            valid += 1
        else:
            invalid += 1
        if is_closed_block(view.value("status"), header):
            closed += 1
        if is_active_for_drive_check(status_in_row(header)):
            active += 1

    return "\n".join(
        [
            "✅ 진단 요약",
            f"- 시트명: {layout.sheets.main}",
            f"- 시작행/블록높이: {start} / {height}",
            f"- 총 블록: {total}",
            f"- 유효 프로젝트명: {valid} (무효 {invalid})",
            f"- 프로젝트명 빈칸 블록: {empty_name}",
            f"- 완료/취소 블록: {closed}",
            f"- 진행 상태(드라이브 체크 대상): {active}",
            f"- 카카오키 상태: {'OK' if settings.has_geocoding_key else '⚠️ 확인 필요'}",
        ]
    )
