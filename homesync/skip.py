# homesync/skip.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from homesync.blocks import BlockView
from homesync.names import is_closed_block, is_valid_project_name


@dataclass(frozen=True)
class Skip:
    reason: str
    counted: bool = True


Check = Callable[[BlockView], Optional[Skip]]

INVALID_NAME = Skip("invalid_name", counted=False)
CLOSED = Skip("closed")


def invalid_name(view: BlockView) -> Optional[Skip]:
    if is_valid_project_name(view.name, view.layout.names):
        return None
    return INVALID_NAME


def closed(view: BlockView) -> Optional[Skip]:
    if is_closed_block(view.value("status"), view.header_row()):
        return CLOSED
    return None


class SkipPolicy:
    """Ordered checks; the first one that fires decides the skip."""

    def __init__(self, *checks: Check):
        self.checks = list(checks)

    def then(self, *checks: Check) -> "SkipPolicy":
        return SkipPolicy(*self.checks, *checks)

    def evaluate(self, view: BlockView) -> Optional[Skip]:
        for check in self.checks:
            decision = check(view)
            if decision is not None:
                return decision
        return None


DEFAULT_POLICY = SkipPolicy(invalid_name, closed)
