"""Line parser: turn one raw markdown line into a Task."""

import logging
from datetime import date
from typing import Iterable, List, Optional, Tuple

from .errors import InvalidDate, NoMatch, ParseError, UnknownCheckbox
from .syntax import CompiledMatchers, default_matchers
from .task import Marker, RawMatch, Task

logger = logging.getLogger(__name__)


def _strict_date(text: str) -> date:
    """Parse ``YYYY-MM-DD`` with full calendar validation."""
    year, month, day = text.split("-")
    return date(int(year), int(month), int(day))


def _marker_region_start(line: str, matchers: CompiledMatchers, date_end: Optional[int]) -> Optional[int]:
    if date_end is not None:
        return date_end
    boundary = matchers.marker_boundary_pattern.search(line)
    return boundary.start() if boundary else None


def parse_markers(region: str, matchers: Optional[CompiledMatchers] = None) -> Tuple[Marker, ...]:
    """Parse marker segments out of the tail of a task line.

    The region is split on the marker prefix; segments that do not follow
    the ``kind [[YYYY-MM-DD]] [HH:MM]`` grammar are dropped.
    """
    matchers = matchers or default_matchers()
    markers: List[Marker] = []
    for segment in region.split(matchers.marker_prefix):
        segment = segment.strip()
        if not segment:
            continue
        match = matchers.marker_pattern.search(segment)
        if match is None:
            continue
        try:
            day = _strict_date(match.group(2))
        except ValueError:
            logger.debug(f"Dropping marker with invalid date: {segment}")
            continue
        markers.append(Marker(kind=match.group(1), date=day, time=match.group(3) or ""))
    return tuple(markers)


def parse_line(text: str, matchers: Optional[CompiledMatchers] = None,
               path: str = "", line_number: int = 0) -> Task:
    """Parse a single line of text into a Task.

    Args:
        text: Raw line, possibly indented and newline-terminated
        matchers: Compiled syntax; the default syntax when omitted
        path: Source file the line came from
        line_number: 1-based line number within ``path``

    Returns:
        The parsed Task

    Raises:
        NoMatch: The line does not start with a configured checkbox
        UnknownCheckbox: The matched checkbox has no status name
        InvalidDate: The due date is not a real calendar date
    """
    matchers = matchers or default_matchers()
    line = text.lstrip(" \t").rstrip("\r\n")

    status_match = matchers.status_pattern.match(line)
    if status_match is None:
        raise NoMatch("no checkbox found", line=line, path=path, line_number=line_number)
    literal = status_match.group(1)
    status = matchers.status_lookup.get(literal)
    if status is None:
        raise UnknownCheckbox(f"unknown checkbox {literal!r}", line=line, path=path,
                              line_number=line_number)
    checkbox_end = status_match.end()

    due_date = None
    due_time = ""
    date_start = date_end = None
    date_match = matchers.date_group_pattern.search(line, checkbox_end)
    if date_match:
        try:
            due_date = _strict_date(date_match.group(1))
        except ValueError as e:
            raise InvalidDate(f"invalid date {date_match.group(1)!r}: {e}", line=line, path=path,
                              line_number=line_number) from e
        due_time = date_match.group(2) or ""
        date_start, date_end = date_match.span()

    duration_match = matchers.duration_pattern.search(line, checkbox_end)
    duration = f"{duration_match.group(1)}m" if duration_match else ""

    region_start = _marker_region_start(line, matchers, date_end)
    markers = parse_markers(line[region_start:], matchers) if region_start is not None else ()

    tags = tuple(m.group(1) for m in matchers.tag_pattern.finditer(line))

    if date_start is not None:
        body_end = date_start
    elif region_start is not None:
        body_end = region_start
    else:
        body_end = len(line)
    body = line[checkbox_end:body_end]
    if duration_match:
        body = body.replace(duration_match.group(0), "", 1)
    body = matchers.tag_pattern.sub("", body).strip()

    return Task(
        source_path=path,
        source_line=line_number,
        body=body,
        status=status,
        due_date=due_date,
        due_time=due_time,
        duration=duration,
        tags=tags,
        markers=markers,
    )


def parse_task(raw: RawMatch, matchers: Optional[CompiledMatchers] = None) -> Task:
    return parse_line(raw.text, matchers, path=raw.path, line_number=raw.line_number)


def parse_tasks(raws: Iterable[RawMatch], matchers: Optional[CompiledMatchers] = None) -> List[Task]:
    """Parse a batch of scanned lines, skipping any line that is not a task."""
    matchers = matchers or default_matchers()
    tasks = []
    for raw in raws:
        try:
            tasks.append(parse_task(raw, matchers))
        except ParseError as e:
            logger.debug(f"Skipping {raw.path}:{raw.line_number}: {e}")
    return tasks
