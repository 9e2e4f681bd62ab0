"""Single-line rewrites of note files.

Every operation reads the file once, rewrites one line in memory and writes
the file back once. Other lines, including their ``\\r\\n`` endings, are
left byte-for-byte intact. Validation happens before the write, so a
refused rewrite leaves the file untouched.
"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Tuple

from .errors import MutationError
from .syntax import DEFAULT_MARKER_PREFIX, CompiledMatchers, default_matchers
from .utils.datetime import add_days, format_date, format_time, now_local

logger = logging.getLogger(__name__)


def format_marker(kind: str, now: datetime, prefix: str = DEFAULT_MARKER_PREFIX) -> str:
    """Marker text such as ``::start [[2026-02-17]] 15:17``."""
    return f"{prefix}{kind} [[{format_date(now.date())}]] {format_time(now)}"


# Pure line helpers. ``line`` never includes its line ending.

def append_text(line: str, text: str) -> str:
    return line.rstrip(" \t") + " " + text


def replace_checkbox(line: str, old: str, new: str,
                     matchers: Optional[CompiledMatchers] = None) -> str:
    """Swap the line's leading checkbox ``old`` for ``new``.

    Only the checkbox the line starts with counts; the same text further
    along in the body is never touched.
    """
    if not old or not new:
        raise MutationError("checkbox text must not be empty")
    matchers = matchers or default_matchers()
    match = matchers.status_pattern.match(line)
    if match is None or match.group(1) != old:
        found = match.group(1) if match else None
        raise MutationError(f"expected checkbox {old!r}, line starts with {found!r}")
    start, end = match.span(1)
    return line[:start] + new + line[end:]


def strip_last_marker(line: str, kind: str, prefix: str = DEFAULT_MARKER_PREFIX) -> str:
    pattern = re.compile(
        r"\s*" + re.escape(prefix + kind) + r"\s+\[\[\d{4}-\d{2}-\d{2}\]\]\s*(?:\d{2}:\d{2})?"
    )
    spans = [m.span() for m in pattern.finditer(line)]
    if not spans:
        return line
    start, end = spans[-1]
    return (line[:start] + line[end:]).rstrip(" \t")


def replace_due_date(line: str, new_day, matchers: CompiledMatchers) -> Tuple[str, date]:
    """Rewrite the date inside the first date group.

    ``new_day`` is either a ``date`` or a callable taking the current due
    date and returning the new one.
    """
    match = matchers.date_group_pattern.search(line)
    if match is None:
        raise MutationError("line has no due date")
    if callable(new_day):
        try:
            current = datetime.strptime(match.group(1), "%Y-%m-%d").date()
        except ValueError as e:
            raise MutationError(f"invalid due date {match.group(1)!r}") from e
        new_day = new_day(current)
    start, end = match.span(1)
    return line[:start] + format_date(new_day) + line[end:], new_day


# File access

class _LineFile:
    """A text file split into lines with their endings kept apart."""

    def __init__(self, path):
        self.path = Path(path)
        try:
            with open(self.path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except OSError as e:
            raise MutationError(f"reading {self.path}: {e}") from e
        self.lines: List[str] = content.split("\n")
        self.trailing_newline = content.endswith("\n")
        if self.trailing_newline:
            self.lines.pop()

    def _index(self, line_number: int) -> int:
        if line_number < 1 or line_number > len(self.lines):
            raise MutationError(f"line {line_number} out of range (file has {len(self.lines)} lines)")
        return line_number - 1

    def get(self, line_number: int) -> str:
        return self.lines[self._index(line_number)].rstrip("\r")

    def set(self, line_number: int, text: str) -> None:
        index = self._index(line_number)
        ending = "\r" if self.lines[index].endswith("\r") else ""
        self.lines[index] = text + ending

    def save(self) -> None:
        content = "\n".join(self.lines)
        if self.trailing_newline:
            content += "\n"
        with open(self.path, "w", encoding="utf-8", newline="") as f:
            f.write(content)


def _rewrite(path, line_number: int, edit) -> str:
    """Apply ``edit`` to one line and save. Returns the new line."""
    doc = _LineFile(path)
    new_line = edit(doc.get(line_number))
    doc.set(line_number, new_line)
    doc.save()
    return new_line


def read_line(path, line_number: int) -> str:
    return _LineFile(path).get(line_number)


def append_to_line(path, line_number: int, text: str) -> str:
    return _rewrite(path, line_number, lambda line: append_text(line, text))


def change_checkbox(path, line_number: int, old: str, new: str,
                    matchers: Optional[CompiledMatchers] = None) -> str:
    if not old or not new:
        raise MutationError("checkbox text must not be empty")
    return _rewrite(path, line_number, lambda line: replace_checkbox(line, old, new, matchers))


def remove_last_marker(path, line_number: int, kind: str, prefix: str = DEFAULT_MARKER_PREFIX) -> str:
    return _rewrite(path, line_number, lambda line: strip_last_marker(line, kind, prefix))


def shift_due_date(path, line_number: int, days: int,
                   matchers: Optional[CompiledMatchers] = None) -> date:
    """Move a task's due date by ``days`` and return the new date."""
    matchers = matchers or default_matchers()
    result = {}

    def edit(line):
        new_line, result["day"] = replace_due_date(line, lambda d: add_days(d, days), matchers)
        return new_line

    _rewrite(path, line_number, edit)
    return result["day"]


def set_due_date(path, line_number: int, day: date,
                 matchers: Optional[CompiledMatchers] = None) -> date:
    matchers = matchers or default_matchers()
    _rewrite(path, line_number, lambda line: replace_due_date(line, day, matchers)[0])
    return day


def _ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def append_to_file(path, text: str) -> None:
    """Append one line, creating the file and its directory when missing."""
    path = Path(path)
    if not path.exists():
        _ensure_parent(path)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text + "\n")
        return

    with open(path, "r", encoding="utf-8", newline="") as f:
        content = f.read()
    if content and not content.endswith("\n"):
        content += "\n"
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content + text + "\n")


def insert_after_header(path, header: str, text: str) -> None:
    """Insert ``text`` on the line below ``header``.

    A missing header is appended to the end of the file, followed by the text.
    """
    path = Path(path)
    if not path.exists():
        _ensure_parent(path)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(f"{header}\n{text}\n")
        return

    with open(path, "r", encoding="utf-8", newline="") as f:
        content = f.read()
    lines = content.split("\n")
    for index, line in enumerate(lines):
        if line.strip() == header.strip():
            lines.insert(index + 1, text)
            new_content = "\n".join(lines)
            break
    else:
        if content and not content.endswith("\n"):
            content += "\n"
        new_content = content + f"\n{header}\n{text}\n"

    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(new_content)


# Task state transitions

def _literal(matchers: CompiledMatchers, status: str) -> str:
    literal = matchers.checkbox_for(status)
    if not literal:
        raise MutationError(f"no checkbox configured for status '{status}'")
    return literal


def _mark(path, line_number: int, status: str, now: Optional[datetime],
          matchers: Optional[CompiledMatchers]) -> str:
    matchers = matchers or default_matchers()
    now = now or now_local()
    old = _literal(matchers, "open")
    new = _literal(matchers, status)
    marker = format_marker(status, now, matchers.marker_prefix)
    return _rewrite(path, line_number,
                    lambda line: append_text(replace_checkbox(line, old, new, matchers), marker))


def defer(path, line_number: int, now: Optional[datetime] = None,
          matchers: Optional[CompiledMatchers] = None) -> str:
    """Record a deferral, keeping the first due date as an ``original`` marker."""
    matchers = matchers or default_matchers()
    now = now or now_local()
    prefix = matchers.marker_prefix

    def edit(line):
        if prefix + "original" not in line:
            match = matchers.date_group_pattern.search(line)
            if match:
                line = append_text(line, f"{prefix}original [[{match.group(1)}]]")
        return append_text(line, format_marker("deferral", now, prefix))

    return _rewrite(path, line_number, edit)


def irrelevant(path, line_number: int, now: Optional[datetime] = None,
               matchers: Optional[CompiledMatchers] = None) -> str:
    return _mark(path, line_number, "irrelevant", now, matchers)


def partial(path, line_number: int, now: Optional[datetime] = None,
            matchers: Optional[CompiledMatchers] = None) -> str:
    return _mark(path, line_number, "partial", now, matchers)


def unset(path, line_number: int, matchers: Optional[CompiledMatchers] = None) -> Optional[str]:
    """Undo ``irrelevant`` or ``partial``. Returns the new line, or None if nothing was undone."""
    matchers = matchers or default_matchers()
    prefix = matchers.marker_prefix
    line = read_line(path, line_number)

    for status in ("irrelevant", "partial"):
        if prefix + status not in line:
            continue
        old = _literal(matchers, status)
        new = _literal(matchers, "open")
        return _rewrite(path, line_number,
                        lambda text: replace_checkbox(strip_last_marker(text, status, prefix), old, new, matchers))

    logger.debug(f"Nothing to unset on {path}:{line_number}")
    return None


def check(path, line_number: int, matchers: Optional[CompiledMatchers] = None) -> str:
    """Check a task off without adding a marker."""
    matchers = matchers or default_matchers()
    return change_checkbox(path, line_number, _literal(matchers, "open"), _literal(matchers, "done"),
                           matchers)


def complete_at(path, line_number: int, now: Optional[datetime] = None,
                matchers: Optional[CompiledMatchers] = None) -> str:
    """Add a ``complete`` marker and check the task off."""
    matchers = matchers or default_matchers()
    now = now or now_local()
    old = _literal(matchers, "open")
    new = _literal(matchers, "done")
    marker = format_marker("complete", now, matchers.marker_prefix)
    return _rewrite(path, line_number,
                    lambda line: append_text(replace_checkbox(line, old, new, matchers), marker))
