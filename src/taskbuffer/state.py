"""The running task, persisted between invocations."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from .config import DEFAULT_STATE_DIR
from .errors import StateError

logger = logging.getLogger(__name__)

STATE_FILE = "current_task"


@dataclass(frozen=True)
class CurrentTask:
    """A started task: when it started, its body and where it lives."""
    start_time: int
    name: str
    path: str
    line_number: int

    @property
    def started_at(self) -> datetime:
        return datetime.fromtimestamp(self.start_time)

    def to_line(self) -> str:
        name = self.name.replace("\t", " ")
        return f"{self.start_time}\t{name}\t{self.path}\t{self.line_number}\n"

    @classmethod
    def from_line(cls, line: str) -> "CurrentTask":
        line = line.rstrip("\r\n")
        parts = line.split("\t", 3)
        if len(parts) < 4:
            raise StateError(f"malformed current_task: {line!r}")
        try:
            start_time = int(parts[0])
        except ValueError as e:
            raise StateError(f"bad timestamp in current_task: {parts[0]!r}") from e
        try:
            line_number = int(parts[3])
        except ValueError as e:
            raise StateError(f"bad line number in current_task: {parts[3]!r}") from e
        return cls(start_time, parts[1], parts[2], line_number)


class StateStore:
    """Reads and writes ``<state_dir>/current_task``."""

    def __init__(self, state_dir: Optional[str] = None):
        self.state_dir = Path(os.path.expanduser(state_dir or DEFAULT_STATE_DIR))

    @property
    def path(self) -> Path:
        return self.state_dir / STATE_FILE

    def read(self) -> Optional[CurrentTask]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                content = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StateError(f"reading {self.path}: {e}") from e
        return CurrentTask.from_line(content)

    def write(self, task: CurrentTask) -> None:
        self.state_dir.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(task.to_line())
        logger.debug(f"Saved current task to {self.path}")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
