# homesync/reconcile.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from homesync.text import cell_text, parse_timestamp, truthy

log = logging.getLogger(__name__)

CONTACT_LOG_COLUMNS: list[str] = [
    "PHONE",
    "NAME",
    "PROJECT",
    "ADDRESS",
    "MAP_URL",
    "RESULT",
    "CONTACT_EXISTED",
    "SOURCE_ROW",
    "SYNC_AT",
]

DRIVE_CACHE_COLUMNS: list[str] = ["FOLDER_ID", "HAS_FILES", "LAST_CHECK_AT"]

DRIVE_RUN_LOG_COLUMNS: list[str] = ["RUN_ID", "TIME", "BLOCK_ROW", "STATUS", "URL", "RESULT", "DETAILS"]

DB_COLUMNS: list[str] = [
    "KEY",
    "NO",
    "프로젝트명",
    "상태",
    "주소",
    "지도URL",
    "메인폴더",
    "Before폴더",
    "시공폴더",
    "After폴더",
    "물품리스트",
    "실측_예정",
    "실측_완료",
    "상담_예정",
    "상담_완료",
    "디자인_예정",
    "디자인_완료",
    "엑셀작업_예정",
    "엑셀작업_완료",
    "세팅_예정",
    "세팅_완료",
    "UPDATED_AT",
]

RESULT_OK = "ok"
RESULT_CACHED = "cached_skip"
RESULT_MISSING = "missing_in_contacts"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# pending appends are reserved under this row number
_PENDING = -1


def now() -> datetime:
    return datetime.now().replace(microsecond=0)


def stamp(ts: Optional[datetime] = None) -> str:
    return (ts or now()).strftime(TIMESTAMP_FORMAT)


def skip_tag(reason: str) -> str:
    return f"skip:{reason}"


def fail_tag(message: Any) -> str:
    return f"fail:{message}"


@dataclass
class LogEntry:
    row: int
    values: list[Any]


class ReconciliationLog:
    """Keyed log table: one row per key, updated in place, never duplicated.

    upsert() only queues; flush() applies all updates, then one bulk append.
    """

    def __init__(self, table, columns: list[str], key_column: int = 0):
        self.table = table
        self.columns = list(columns)
        self.key_column = key_column
        self.index: dict[str, int] = {}
        self._rows: dict[str, list[Any]] = {}
        self._updates: dict[int, list[Any]] = {}
        self._appends: list[list[Any]] = []
        self._append_pos: dict[str, int] = {}

    @classmethod
    def open(cls, workbook, name: str, columns: list[str], key_column: int = 0) -> "ReconciliationLog":
        log_ = cls(workbook.ensure_table(name, columns), columns, key_column=key_column)
        log_.load()
        return log_

    def load(self) -> dict[str, int]:
        self.index = {}
        self._rows = {}
        width = len(self.columns)
        for r in range(2, self.table.last_row() + 1):
            key = self.table.display(r, self.key_column + 1)
            if not key:
                continue
            self.index[key] = r
            self._rows[key] = [self.table.raw(r, c) for c in range(1, width + 1)]
        log.debug("loaded %d keys from %s", len(self.index), self.table.title)
        return dict(self.index)

    def __contains__(self, key: str) -> bool:
        return key in self.index

    def __len__(self) -> int:
        return len(self.index)

    def keys(self) -> list[str]:
        return list(self.index)

    def get(self, key: str) -> Optional[LogEntry]:
        row = self.index.get(key)
        if row is None:
            return None
        return LogEntry(row, list(self._rows.get(key) or []))

    def value(self, key: str, column: str) -> Any:
        entry = self.get(key)
        if entry is None:
            return None
        j = self.columns.index(column)
        return entry.values[j] if j < len(entry.values) else None

    def is_pending(self, key: str) -> bool:
        return self.index.get(key) == _PENDING

    def upsert(self, key: str, values: list[Any]) -> str:
        """Queues an update for a known key, else an append. Returns "update" or "append"."""
        key = cell_text(key)
        if not key:
            raise ValueError("log key must be non-empty")
        row = _fit(values, len(self.columns))
        row[self.key_column] = key

        hit = self.index.get(key)
        if hit is None:
            self.index[key] = _PENDING
            self._append_pos[key] = len(self._appends)
            self._appends.append(row)
            self._rows[key] = row
            return "append"
        if hit == _PENDING:
            # same key twice in one batch: last write wins, still one row
            self._appends[self._append_pos[key]] = row
            self._rows[key] = row
            return "append"

        self._updates[hit] = row
        self._rows[key] = row
        return "update"

    def flush(self) -> tuple[int, int]:
        updates = sorted(self._updates.items())
        appends = list(self._appends)

        for row_num, values in updates:
            self.table.update_row(row_num, values)

        if appends:
            start = self.table.last_row() + 1
            self.table.append_rows(appends)
            for key, pos in self._append_pos.items():
                self.index[key] = start + pos

        self._updates = {}
        self._appends = []
        self._append_pos = {}
        log.debug("flushed %s: %d updated, %d appended", self.table.title, len(updates), len(appends))
        return len(updates), len(appends)


class DriveCache:
    """Folder id -> (has real files, last checked), fresh for ttl_hours."""

    def __init__(self, log_: ReconciliationLog, ttl_hours: float):
        self.log = log_
        self.ttl = timedelta(hours=ttl_hours)

    @classmethod
    def open(cls, workbook, name: str, ttl_hours: float) -> "DriveCache":
        return cls(ReconciliationLog.open(workbook, name, DRIVE_CACHE_COLUMNS), ttl_hours)

    def lookup(self, folder_id: str, at: Optional[datetime] = None) -> Optional[bool]:
        """Cached flag if present and fresh, else None."""
        if folder_id not in self.log:
            return None
        checked = parse_timestamp(self.log.value(folder_id, "LAST_CHECK_AT"))
        if checked is None:
            return None
        if (at or now()) - checked > self.ttl:
            return None
        return truthy(self.log.value(folder_id, "HAS_FILES"))

    def store(self, folder_id: str, has_files: bool, at: Optional[datetime] = None) -> None:
        self.log.upsert(folder_id, [folder_id, has_files, stamp(at)])

    def flush(self) -> tuple[int, int]:
        return self.log.flush()


def _fit(values: list[Any], width: int) -> list[Any]:
    out = ["" if v is None else v for v in values]
    if len(out) < width:
        out.extend([""] * (width - len(out)))
    return out[:width]
