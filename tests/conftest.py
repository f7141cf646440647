"""In-memory stand-ins for the sheet, Drive, the address book and the geocoder."""

from __future__ import annotations

import itertools
from datetime import date, datetime
from typing import Any, Optional

import pytest
from gspread.utils import a1_to_rowcol

from homesync.config import Layout, Settings
from homesync.services.drive import FOLDER_MIME, StorageError
from homesync.sheets.table import MAX_SNAPSHOT_COLS, WHITE, Cell, SheetTable
from homesync.text import phone_digits

MAIN = "통합관리시트"


class FakeTable(SheetTable):
    """SheetTable over a dict of cells; writes are recorded instead of sent."""

    def __init__(self, title: str = MAIN):
        self._title = title
        self.max_cols = MAX_SNAPSHOT_COLS
        self._cells = {}
        self._hidden = set()
        self.writes: list[tuple] = []
        self.frozen = 0
        self._last_row = self._last_col = 0

    @property
    def title(self) -> str:
        return self._title

    def refresh(self) -> None:
        pass

    def put(self, row: int, col: int, value: Any, hyperlink: str = "", formula: str = "", background: str = WHITE) -> Cell:
        if isinstance(value, (datetime, date)):
            display = value.strftime("%Y-%m-%d")
        else:
            display = "" if value is None else str(value)
        cell = Cell(display=display, raw=value, hyperlink=hyperlink, formula=formula, background=background)
        self._cells[(row, col)] = cell
        self._touched(row, col)
        return cell

    def set_value(self, row: int, col: int, value: Any) -> None:
        self.writes.append(("set", row, col, value))
        cell = self._cells.setdefault((row, col), Cell())
        cell.display = "" if value is None else str(value)
        cell.raw = value
        self._touched(row, col)

    def set_background(self, row: int, col: int, color: Optional[str]) -> None:
        self.writes.append(("bg", row, col, color))
        self._cells.setdefault((row, col), Cell()).background = (color or WHITE).lower()

    def update_row(self, row: int, values: list[Any]) -> None:
        self.writes.append(("update_row", row))
        self._mirror_row(row, values)

    def append_rows(self, rows: list[list[Any]]) -> None:
        if not rows:
            return
        self.writes.append(("append_rows", len(rows)))
        start = self.last_row() + 1
        for i, values in enumerate(rows):
            self._mirror_row(start + i, values)

    def write_rows(self, start_row: int, rows: list[list[Any]]) -> None:
        if not rows:
            return
        self.writes.append(("write_rows", start_row, len(rows)))
        for i, values in enumerate(rows):
            self._mirror_row(start_row + i, values)

    def clear(self) -> None:
        self.writes.append(("clear",))
        self._cells = {}
        self._recount()

    def hide_rows(self, start: int, count: int) -> None:
        self.writes.append(("hide", start, count))
        self._hidden.update(range(start, start + count))

    def show_rows(self, start: int, count: int) -> None:
        self.writes.append(("show", start, count))
        self._hidden.difference_update(range(start, start + count))

    def bold_row(self, row: int, width: int) -> None:
        pass

    def freeze(self, rows: int) -> None:
        self.frozen = rows

    def data_rows(self) -> list[list[str]]:
        """Display values of rows 2..last, header excluded."""
        width = self.last_column()
        return [[self.display(r, c) for c in range(1, width + 1)] for r in range(2, self.last_row() + 1)]


class FakeWorkbook:
    def __init__(self, *tables: FakeTable, file_id: str = "sheet-file"):
        self.tables = {t.title: t for t in tables}
        self.file_id = file_id
        self.stamps: list[tuple[str, str, str]] = []

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            raise RuntimeError(f"Worksheet not found: {name}")
        return self.tables[name]

    def has_table(self, name: str) -> bool:
        return name in self.tables

    def table_names(self) -> list[str]:
        return list(self.tables)

    def ensure_table(self, name: str, headers: Optional[list[str]] = None) -> FakeTable:
        table = self.tables.setdefault(name, FakeTable(name))
        if headers and table.last_row() == 0:
            table.write_rows(1, [list(headers)])
        return table

    def read_cell(self, name: str, a1: str) -> str:
        return self.table(name).display(*a1_to_rowcol(a1))

    def stamp(self, file_id: str, a1: str, value: str) -> None:
        self.stamps.append((file_id, a1, value))


class FakeDrive:
    """Folders and files by id; list_children raises for ids in `broken`."""

    def __init__(self, parent_id: Optional[str] = "parent"):
        self.parent_id = parent_id
        self.items: dict[str, dict] = {}
        self.broken: set[str] = set()
        self.list_calls: list[str] = []
        self._ids = itertools.count(1)

    def add(self, parent: Optional[str], name: str, folder: bool = False, item_id: Optional[str] = None) -> str:
        item_id = item_id or f"id{next(self._ids)}"
        self.items[item_id] = {
            "id": item_id,
            "name": name,
            "parent": parent,
            "mimeType": FOLDER_MIME if folder else "application/pdf",
        }
        return item_id

    def parent_folder_id(self, file_id: str) -> str:
        if not self.parent_id:
            raise StorageError(f"No parent folder for file {file_id}")
        return self.parent_id

    def _children(self, parent_id: str) -> list[dict]:
        return [i for i in self.items.values() if i["parent"] == parent_id]

    def find_folder(self, parent_id: str, name: str) -> Optional[str]:
        for item in self._children(parent_id):
            if item["name"] == name and item["mimeType"] == FOLDER_MIME:
                return item["id"]
        return None

    def ensure_folder(self, parent_id: str, name: str) -> tuple[str, bool]:
        existing = self.find_folder(parent_id, name)
        if existing:
            return existing, False
        return self.add(parent_id, name, folder=True), True

    def find_file(self, parent_id: str, name: str) -> Optional[dict]:
        for item in self._children(parent_id):
            if item["name"] == name and item["mimeType"] != FOLDER_MIME:
                return item
        return None

    def copy_file(self, file_id: str, parent_id: str, name: str) -> dict:
        new_id = self.add(parent_id, name)
        return {"id": new_id, "name": name, "webViewLink": f"https://docs.google.com/spreadsheets/d/{new_id}/edit"}

    def list_children(self, folder_id: str) -> list[dict]:
        self.list_calls.append(folder_id)
        if folder_id in self.broken:
            raise RuntimeError("403 rate limit exceeded")
        return self._children(folder_id)


class FakeDirectory:
    def __init__(self, *phones: str):
        self.contacts: dict[str, str] = {phone_digits(p): f"people/c{i}" for i, p in enumerate(phones)}
        self.created: list[tuple[str, str, str]] = []
        self.addresses: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self.address_warning: Optional[str] = None

    def find_by_phone(self, phone: str) -> Optional[str]:
        return self.contacts.get(phone_digits(phone))

    def create_contact(self, name: str, phone: str, notes: str = "") -> str:
        if phone in self.failing:
            raise RuntimeError("quota exceeded")
        resource = f"people/new{len(self.created)}"
        self.created.append((name, phone, notes))
        self.contacts[phone_digits(phone)] = resource
        return resource

    def add_address(self, resource_name: str, address: str) -> Optional[str]:
        self.addresses.append((resource_name, address))
        return self.address_warning


class FakeGeocoder:
    """Answers from a dict keyed by base query; exceptions in the dict are raised."""

    def __init__(self, answers: Optional[dict] = None):
        self.answers = answers or {}
        self.queries: list[str] = []

    def lookup(self, query: str):
        self.queries.append(query)
        answer = self.answers.get(query)
        if isinstance(answer, Exception):
            raise answer
        return answer


def block_start(k: int, layout: Layout) -> int:
    return layout.start_row + k * (layout.block_height or layout.default_block_height)


def add_block(table: FakeTable, layout: Layout, k: int, **fields: Any) -> int:
    """Writes named fields into block k. Returns the block's first row."""
    start = block_start(k, layout)
    for name, value in fields.items():
        off = layout.offset(name)
        table.put(start + off.row, off.col, value)
    return start


@pytest.fixture
def layout() -> Layout:
    return Layout()


@pytest.fixture
def settings(layout: Layout) -> Settings:
    return Settings(spreadsheet_id="sheet-file", credentials_path="", kakao_api_key="test-key", layout=layout)


@pytest.fixture
def main_table() -> FakeTable:
    return FakeTable(MAIN)


@pytest.fixture
def workbook(main_table: FakeTable) -> FakeWorkbook:
    return FakeWorkbook(main_table)
