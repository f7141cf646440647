"""Project blocks: fixed-height row ranges in the main table.

A block starts at ``start_row + k * height`` and every field of a project is
read at a fixed (row offset, column) from that start.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Optional

from homesync.config import Layout
from homesync.names import block_status, is_valid_project_name
from homesync.text import cell_text

log = logging.getLogger(__name__)

DETECT_MAX_ROWS = 500
DETECT_MIN_DELTA = 4
DETECT_MAX_DELTA = 30


@dataclass(frozen=True)
class Block:
    start_row: int
    height: int

    @property
    def end_row(self) -> int:
        return self.start_row + self.height - 1


def detect_block_height(table, layout: Layout) -> int:
    """Most frequent spacing between valid project names.

    Deltas outside [4, 30] are ignored; ties go to the delta seen first.
    Falls back to the configured default with fewer than two names.
    """
    start = layout.start_row
    last = table.last_row()
    if last < start + 10:
        return layout.default_block_height

    name_col = layout.offset("name").col
    check_rows = min(last - start + 1, DETECT_MAX_ROWS)
    names = table.column_values(name_col, start, check_rows)

    starts = [i for i, v in enumerate(names) if is_valid_project_name(v, layout.names)]
    if len(starts) < 2:
        return layout.default_block_height

    freq = Counter(
        d for d in (b - a for a, b in zip(starts, starts[1:])) if DETECT_MIN_DELTA <= d <= DETECT_MAX_DELTA
    )

    best, best_count = layout.default_block_height, 0
    for delta, count in freq.items():  # first-seen order; strict > keeps the earlier delta on ties
        if count > best_count:
            best, best_count = delta, count
    log.debug("detected block height %s (%s occurrences)", best, best_count)
    return best


def block_height(table, layout: Layout) -> int:
    if layout.block_height:
        return layout.block_height
    return detect_block_height(table, layout)


def block_start_row(row: int, height: int, layout: Layout) -> Optional[int]:
    start = layout.start_row
    if row < start:
        return None
    return start + ((row - start) // height) * height


class BlockView:
    """Named-field access into one block of the main table."""

    def __init__(self, table, block: Block, layout: Layout):
        self.table = table
        self.block = block
        self.layout = layout

    @property
    def row(self) -> int:
        return self.block.start_row

    def pos(self, field: str) -> tuple[int, int]:
        off = self.layout.offset(field)
        return self.block.start_row + off.row, off.col

    def cell(self, field: str):
        return self.table.cell(*self.pos(field))

    def value(self, field: str) -> str:
        return self.table.display(*self.pos(field))

    def raw(self, field: str) -> Any:
        return self.table.raw(*self.pos(field))

    def set(self, field: str, value: Any) -> None:
        self.table.set_value(*self.pos(field), value)

    @property
    def number(self) -> str:
        return self.value("number")

    @property
    def name(self) -> str:
        return self.value("name")

    @property
    def label(self) -> str:
        return cell_text(f"{self.number} {self.name}")

    @property
    def key(self) -> str:
        return f"{self.number}|{self.name}"

    def header_row(self) -> list[str]:
        return self.table.row_values(self.block.start_row)

    def status(self) -> str:
        """Fixed status cell, or the ranked keyword scan of the header row when blank."""
        return block_status(self.value("status"), self.header_row())

    def column_rows(self, col: int, first_offset: int = 0, count: Optional[int] = None) -> list[int]:
        """Sheet rows of the block from first_offset, clipped to the table's last row."""
        count = self.block.height - first_offset if count is None else count
        last = self.table.last_row()
        first = self.block.start_row + first_offset
        return [r for r in range(first, first + count) if r <= last]
