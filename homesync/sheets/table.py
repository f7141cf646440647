# homesync/sheets/table.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

import gspread
from gspread.utils import rowcol_to_a1

log = logging.getLogger(__name__)

WHITE = "#ffffff"
MAX_SNAPSHOT_COLS = 220

_SERIAL_EPOCH = datetime(1899, 12, 30)
_DATE_FORMATS = {"DATE", "DATE_TIME"}

_GRID_FIELDS = (
    "sheets(data(startRow,startColumn,"
    "rowData(values(formattedValue,effectiveValue,userEnteredValue,hyperlink,"
    "effectiveFormat(backgroundColor,numberFormat(type)))),"
    "rowMetadata(hiddenByUser)))"
)


@dataclass
class Cell:
    display: str = ""
    raw: Any = None
    hyperlink: str = ""
    formula: str = ""
    background: str = WHITE


def serial_to_datetime(serial: float) -> datetime:
    return _SERIAL_EPOCH + timedelta(days=float(serial))


def color_to_hex(color: Optional[dict]) -> str:
    # an empty color object is black; only a missing one is the default white
    if color is None:
        return WHITE
    parts = [int(round(float(color.get(k, 0.0)) * 255)) for k in ("red", "green", "blue")]
    return "#" + "".join(f"{p:02x}" for p in parts)


def hex_to_color(hex_color: str) -> dict[str, float]:
    h = (hex_color or WHITE).lstrip("#")
    if len(h) != 6:
        h = "ffffff"
    return {
        "red": int(h[0:2], 16) / 255.0,
        "green": int(h[2:4], 16) / 255.0,
        "blue": int(h[4:6], 16) / 255.0,
    }


def _cell_from_grid(value: dict) -> Cell:
    effective = value.get("effectiveValue") or {}
    fmt = value.get("effectiveFormat") or {}
    number_type = ((fmt.get("numberFormat") or {}).get("type") or "").upper()

    raw: Any = None
    if "numberValue" in effective:
        raw = effective["numberValue"]
        if number_type in _DATE_FORMATS:
            raw = serial_to_datetime(raw)
    elif "stringValue" in effective:
        raw = effective["stringValue"]
    elif "boolValue" in effective:
        raw = effective["boolValue"]

    return Cell(
        display=str(value.get("formattedValue") or ""),
        raw=raw,
        hyperlink=str(value.get("hyperlink") or ""),
        formula=str((value.get("userEnteredValue") or {}).get("formulaValue") or ""),
        background=color_to_hex(fmt.get("backgroundColor")),
    )


def _filled(cell: Cell) -> bool:
    return cell.display != "" or cell.raw not in (None, "")


class SheetTable:
    """Row/column addressed view of one worksheet.

    Reads come from a snapshot taken by refresh(); writes go to the sheet
    immediately and are mirrored into the snapshot.
    """

    def __init__(self, worksheet: gspread.Worksheet, max_cols: int = MAX_SNAPSHOT_COLS):
        self.ws = worksheet
        self.max_cols = max_cols
        self._cells: dict[tuple[int, int], Cell] = {}
        self._hidden: set[int] = set()
        self._last_row = self._last_col = 0
        self.refresh()

    @property
    def title(self) -> str:
        return self.ws.title

    def refresh(self) -> None:
        rows = max(1, self.ws.row_count)
        cols = max(1, min(self.ws.col_count, self.max_cols))
        rng = f"'{self.ws.title}'!A1:{rowcol_to_a1(rows, cols)}"
        meta = self.ws.spreadsheet.fetch_sheet_metadata(
            params={"includeGridData": "true", "ranges": rng, "fields": _GRID_FIELDS}
        )

        self._cells = {}
        self._hidden = set()
        for sheet in meta.get("sheets", []):
            for data in sheet.get("data", []):
                r0 = int(data.get("startRow", 0))
                c0 = int(data.get("startColumn", 0))
                for i, row in enumerate(data.get("rowData", [])):
                    for j, value in enumerate(row.get("values", [])):
                        if value:
                            self._cells[(r0 + i + 1, c0 + j + 1)] = _cell_from_grid(value)
                for i, md in enumerate(data.get("rowMetadata", [])):
                    if md.get("hiddenByUser"):
                        self._hidden.add(r0 + i + 1)
        self._recount()
        log.debug("snapshot %s: %d cells", self.title, len(self._cells))

    # ---- reads ----

    def cell(self, row: int, col: int) -> Cell:
        return self._cells.get((row, col)) or Cell()

    def display(self, row: int, col: int) -> str:
        return self.cell(row, col).display.strip()

    def raw(self, row: int, col: int) -> Any:
        return self.cell(row, col).raw

    def last_row(self) -> int:
        return self._last_row

    def last_column(self) -> int:
        return self._last_col

    def row_values(self, row: int, max_cols: Optional[int] = None) -> list[str]:
        width = min(self.last_column(), max_cols or self.max_cols)
        return [self.display(row, c) for c in range(1, width + 1)]

    def column_values(self, col: int, start_row: int, count: int) -> list[str]:
        return [self.display(r, col) for r in range(start_row, start_row + count)]

    def is_row_hidden(self, row: int) -> bool:
        return row in self._hidden

    # ---- writes ----

    def set_value(self, row: int, col: int, value: Any) -> None:
        self.ws.update_cell(row, col, value)
        cell = self._cells.setdefault((row, col), Cell())
        cell.display = "" if value is None else str(value)
        cell.raw = value
        cell.formula = str(value) if str(value).startswith("=") else ""
        self._touched(row, col)

    def set_background(self, row: int, col: int, color: Optional[str]) -> None:
        color = color or WHITE
        self.ws.format(rowcol_to_a1(row, col), {"backgroundColor": hex_to_color(color)})
        self._cells.setdefault((row, col), Cell()).background = color.lower()

    def update_row(self, row: int, values: list[Any]) -> None:
        self.ws.update(range_name=f"A{row}", values=[values], value_input_option="USER_ENTERED")
        self._mirror_row(row, values)

    def append_rows(self, rows: list[list[Any]]) -> None:
        if not rows:
            return
        start = self.last_row() + 1
        self.ws.append_rows(rows, value_input_option="USER_ENTERED")
        for i, values in enumerate(rows):
            self._mirror_row(start + i, values)

    def write_rows(self, start_row: int, rows: list[list[Any]]) -> None:
        if not rows:
            return
        self.ws.update(range_name=f"A{start_row}", values=rows, value_input_option="USER_ENTERED")
        for i, values in enumerate(rows):
            self._mirror_row(start_row + i, values)

    def clear(self) -> None:
        self.ws.clear()
        self._cells = {}
        self._recount()

    def hide_rows(self, start: int, count: int) -> None:
        # gspread takes 0-based [start, end)
        self.ws.hide_rows(start - 1, start - 1 + count)
        self._hidden.update(range(start, start + count))

    def show_rows(self, start: int, count: int) -> None:
        self.ws.unhide_rows(start - 1, start - 1 + count)
        self._hidden.difference_update(range(start, start + count))

    def bold_row(self, row: int, width: int) -> None:
        self.ws.format(f"A{row}:{rowcol_to_a1(row, max(1, width))}", {"textFormat": {"bold": True}})

    def freeze(self, rows: int) -> None:
        self.ws.freeze(rows=rows)

    def _mirror_row(self, row: int, values: list[Any]) -> None:
        for j, v in enumerate(values, start=1):
            cell = self._cells.setdefault((row, j), Cell())
            cell.display = "" if v is None else str(v)
            cell.raw = v
            self._touched(row, j)

    def _touched(self, row: int, col: int) -> None:
        if _filled(self.cell(row, col)):
            self._last_row = max(self._last_row, row)
            self._last_col = max(self._last_col, col)
        elif row >= self._last_row or col >= self._last_col:
            self._recount()

    def _recount(self) -> None:
        filled = [key for key, cell in self._cells.items() if _filled(cell)]
        self._last_row = max((r for r, _ in filled), default=0)
        self._last_col = max((c for _, c in filled), default=0)
