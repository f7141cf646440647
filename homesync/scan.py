# homesync/scan.py

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from homesync.blocks import Block, BlockView, block_height
from homesync.config import Layout

log = logging.getLogger(__name__)

NO_DATA = "데이터 없음"


class ScanState(enum.Enum):
    SCANNING = "scanning"
    STOPPED = "stopped"


class ScanController:
    """Stops a scan after N consecutive blocks with both number and name empty.

    One controller per scan; STOPPED is final.
    """

    def __init__(self, layout: Layout):
        self.layout = layout
        self.threshold = layout.empty_block_threshold
        self.streak = 0
        self.state = ScanState.SCANNING

    def check(self, table, start_row: int) -> bool:
        """True when the scan must stop before processing the block at start_row."""
        if self.state is ScanState.STOPPED:
            return True
        if start_row < self.layout.start_row:
            return False

        no_off = self.layout.offset("number")
        name_off = self.layout.offset("name")
        number = table.display(start_row + no_off.row, no_off.col)
        name = table.display(start_row + name_off.row, name_off.col)

        if not number and not name:
            self.streak += 1
        else:
            self.streak = 0

        if self.streak >= self.threshold:
            self.state = ScanState.STOPPED
            log.debug("scan stopped at row %s after %s empty blocks", start_row, self.streak)
            return True
        return False


def iter_blocks(table, layout: Layout, height: Optional[int] = None) -> Iterator[BlockView]:
    """Blocks in ascending row order until the last row or the empty-streak stop."""
    height = height or block_height(table, layout)
    last = table.last_row()
    controller = ScanController(layout)

    for r in range(layout.start_row, last + 1, height):
        if controller.check(table, r):
            break
        yield BlockView(table, Block(r, height), layout)


@dataclass
class BatchResult:
    summary: str
    failed_list: list[str] = field(default_factory=list)
    success_list: list[str] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    aborted: bool = False

    def report(self, title: str = "") -> str:
        lines = []
        if title:
            lines.append(f"✅ [{title}]")
        lines.append(self.summary)
        if self.success_list:
            lines.append("✨ 신규 세팅:")
            lines.extend(self.success_list)
        if self.failed_list:
            lines.append("❌ 실패:")
            lines.extend(self.failed_list)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "failedList": list(self.failed_list),
            "successList": list(self.success_list),
            **self.counts,
        }


def empty_result() -> BatchResult:
    return BatchResult(summary=NO_DATA)


def has_data(table, layout: Layout) -> bool:
    return table.last_row() >= layout.start_row
