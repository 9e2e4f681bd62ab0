"""Task records extracted from markdown lines."""

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Tuple


@dataclass(frozen=True)
class RawMatch:
    """One candidate line handed over by the scanner."""
    path: str
    line_number: int
    text: str


@dataclass(frozen=True)
class Marker:
    """A state-change annotation such as ``::start [[2026-02-17]] 15:17``."""
    kind: str
    date: date
    time: str = ""


@dataclass(frozen=True)
class Task:
    """A single task line.

    ``due_time`` is only ever set together with ``due_date``; ``duration``
    keeps the unit (``"30m"``). Tags and markers keep authored order and
    duplicates.
    """

    source_path: str
    source_line: int
    body: str
    status: str
    due_date: Optional[date] = None
    due_time: str = ""
    duration: str = ""
    tags: Tuple[str, ...] = field(default_factory=tuple)
    markers: Tuple[Marker, ...] = field(default_factory=tuple)

    @property
    def is_dated(self) -> bool:
        return self.due_date is not None

    @property
    def location(self) -> str:
        """``path:line`` reference for jump-to-location tooling."""
        return f"{self.source_path}:{self.source_line}"

    def markers_of(self, kind: str) -> Tuple[Marker, ...]:
        return tuple(m for m in self.markers if m.kind == kind)

    def with_tags(self, tags) -> "Task":
        return replace(self, tags=tuple(tags))
