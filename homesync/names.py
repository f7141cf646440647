# homesync/names.py

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from homesync.config import NameRules
from homesync.text import cell_text

ERROR_MARKER = "#N/A"
DEFAULT_SUFFIX = "님"
_DEFAULT_PREFIX_RE = re.compile(r"^(멱살반|반멱살|스타일링대행|단기)\b")

CLOSED_STATUSES = frozenset({"완료", "취소"})

# first match by this rank wins, regardless of column position
RANKED_STATUSES = (
    "취소",
    "완료",
    "세팅완료(에비대기)",
    "대기",
    "세팅 대기",
    "엑셀 작업",
    "디자인 작업",
    "실측대기",
    "진행",
)

DRIVE_CHECK_ACTIVE = frozenset({"진행", "실측대기", "디자인 작업", "엑셀 작업", "세팅 대기"})
DB_INACTIVE = frozenset({"완료", "취소", "대기", "세팅 대기", "세팅완료(에비대기)"})
SETTING_WAIT = frozenset({"세팅대기", "세팅완료(에비대기)"})


def is_valid_project_name(value: Any, rules: Optional[NameRules] = None) -> bool:
    rules = rules or NameRules()
    s = cell_text(value)
    if not s or s == ERROR_MARKER:
        return False
    if rules.allow_any:
        return True

    prefixes = [p.strip() for p in rules.prefixes if p and p.strip()]
    if prefixes:
        has_prefix = any(s.startswith(p) for p in prefixes)
    else:
        has_prefix = bool(_DEFAULT_PREFIX_RE.match(s))

    suffix = rules.suffix or DEFAULT_SUFFIX
    has_suffix = suffix in s

    if rules.require_suffix and not has_suffix:
        return False
    return has_prefix or has_suffix


def status_from_cell(value: Any) -> str:
    return cell_text(value)


def status_in_row(values: Iterable[Any]) -> str:
    cells = {cell_text(v) for v in values}
    for candidate in RANKED_STATUSES:
        if candidate in cells:
            return candidate
    return ""


def block_status(fixed_value: Any, row_values: Iterable[Any]) -> str:
    return status_from_cell(fixed_value) or status_in_row(row_values)


def is_closed(status: Any) -> bool:
    return cell_text(status) in CLOSED_STATUSES


def is_closed_block(fixed_value: Any, row_values: Iterable[Any]) -> bool:
    """Closed if the status cell says so, or the header row carries a closed keyword."""
    if is_closed(fixed_value):
        return True
    return is_closed(status_in_row(row_values))


def is_active_for_drive_check(status: Any) -> bool:
    return cell_text(status) in DRIVE_CHECK_ACTIVE


def is_db_inactive(status: Any) -> bool:
    return cell_text(status) in DB_INACTIVE


def is_setting_wait(status: Any) -> bool:
    return re.sub(r"\s+", "", cell_text(status)) in SETTING_WAIT


def project_name_in_row(values: Iterable[Any], hints: Iterable[str] = ("멱살", "스타일")) -> str:
    """Project name from a whole header row: a hinted cell first, else the first non-empty."""
    cells = [cell_text(v) for v in values]
    for s in cells:
        if s and any(h in s for h in hints):
            return s
    return next((s for s in cells if s), "")
