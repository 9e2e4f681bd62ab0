"""Horizon report: bucket tasks by due date and render the columnar text.

Each task line starts with a ``path:line:1:`` location so the report can be
loaded into any quickfix-style viewer.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple, Union

from .horizons import (
    DEFAULT_UNDATED_LABEL,
    OVERLAP_FIRST_MATCH,
    OVERLAP_NARROWEST,
    OVERLAP_SORTED,
    ResolvedHorizon,
    resolve_horizons,
)
from .syntax import DEFAULT_MARKER_PREFIX, DEFAULT_TAG_PREFIX
from .task import Task
from .utils.datetime import format_date, start_of_day

logger = logging.getLogger(__name__)

_LOCATION_RE = re.compile(r"^(.*?):(\d+):1:")

DATE_PLACEHOLDER = " " * 10
EMPTY_TIME_FIELD = "\t |       |"
EMPTY_DURATION_FIELD = "     |"


@dataclass
class ReportOptions:
    """Rendering options for ``build_report``."""
    show_markers: bool = False
    ignore_undated: bool = False
    tag_filter: Tuple[str, ...] = field(default_factory=tuple)
    horizons: Optional[List[ResolvedHorizon]] = None
    overlap: str = OVERLAP_SORTED
    tag_prefix: str = DEFAULT_TAG_PREFIX
    marker_prefix: str = DEFAULT_MARKER_PREFIX
    week_start: int = 0


def format_task_line(task: Task, options: Optional[ReportOptions] = None) -> str:
    """Render one task as a fixed-width report line.

    Layout, with ``\\t`` for tabs::

        path:line:1:\\t[[YYYY-MM-DD]] | HH:MM |  30m |\\t body \\t #tag ::kind [[date]] HH:MM
    """
    options = options or ReportOptions()
    parts = [f"{task.source_path}:{task.source_line}:1:"]

    if task.due_date is not None:
        parts.append(f"\t[[{format_date(task.due_date)}]]")
    else:
        parts.append("\t" + DATE_PLACEHOLDER)

    if task.due_time:
        parts.append(f" | {task.due_time} |")
    else:
        parts.append(EMPTY_TIME_FIELD)

    if task.duration:
        padding = max(0, 4 - len(task.duration))
        parts.append(" " * padding + task.duration + " |")
    else:
        parts.append(EMPTY_DURATION_FIELD)

    parts.append(f"\t {task.body} \t")

    if task.tags:
        parts.append(" " + " ".join(options.tag_prefix + tag for tag in task.tags))

    if options.show_markers:
        for marker in task.markers:
            parts.append(f" {options.marker_prefix}{marker.kind} [[{format_date(marker.date)}]]")
            if marker.time:
                parts.append(f" {marker.time}")

    return "".join(parts)


def parse_report_location(line: str) -> Optional[Tuple[str, int]]:
    """Extract ``(path, line)`` from a report line, or None for headers."""
    match = _LOCATION_RE.match(line)
    if match is None:
        return None
    return match.group(1), int(match.group(2))


def _in_horizon(day: date, index: int, horizons: Sequence[ResolvedHorizon]) -> bool:
    if day < horizons[index].cutoff:
        return False
    if index == len(horizons) - 1:
        return True
    return day < horizons[index + 1].cutoff


def _sorted_horizon(day: date, current: int, horizons: Sequence[ResolvedHorizon]) -> int:
    for index in range(current, len(horizons)):
        if _in_horizon(day, index, horizons):
            return index
    return current


def _first_match_horizon(day: date, horizons: Sequence[ResolvedHorizon]) -> int:
    for index, horizon in enumerate(horizons):
        if horizon.cutoff <= day:
            return index
    return len(horizons) - 1


def _narrowest_horizon(day: date, horizons: Sequence[ResolvedHorizon]) -> int:
    best_index = None
    best_span = None
    for index in range(len(horizons)):
        if not _in_horizon(day, index, horizons):
            continue
        if index == len(horizons) - 1:
            # unbounded, only wins when nothing narrower contains the date
            span = float("inf")
        else:
            span = (horizons[index + 1].cutoff - horizons[index].cutoff).days
        if best_span is None or span < best_span:
            best_index, best_span = index, span
    if best_index is None:
        return len(horizons) - 1
    return best_index


def _matches_tags(task: Task, tag_filter: Sequence[str]) -> bool:
    return any(tag in tag_filter for tag in task.tags)


def build_report(tasks: Sequence[Task], now: Union[datetime, date, None] = None,
                 options: Optional[ReportOptions] = None) -> str:
    """Build the horizon report for a set of tasks.

    Args:
        tasks: Parsed tasks, in any order
        now: Reference instant; only used to resolve default horizons
        options: Rendering and bucketing options

    Returns:
        Report text, one line per task plus section headers; empty when
        there is nothing to show
    """
    options = options or ReportOptions()

    if options.tag_filter:
        tasks = [t for t in tasks if _matches_tags(t, options.tag_filter)]

    horizons = options.horizons
    if not horizons:
        horizons = resolve_horizons(None, now, options.week_start, OVERLAP_SORTED)

    dated_horizons = [h for h in horizons if not h.undated]
    undated_horizons = [h for h in horizons if h.undated]
    if not dated_horizons:
        logger.warning("No dated horizons supplied, bucketing with the built-in horizons")
        dated_horizons = [h for h in resolve_horizons(None, now, options.week_start) if not h.undated]

    dated = sorted((t for t in tasks if t.is_dated),
                   key=lambda t: (t.due_date, t.source_path, t.source_line))
    undated = sorted((t for t in tasks if not t.is_dated),
                     key=lambda t: (t.source_path, t.source_line))

    lines: List[str] = []
    interval = 0
    last_interval = None
    for task in dated:
        day = start_of_day(task.due_date)
        if options.overlap == OVERLAP_FIRST_MATCH:
            interval = _first_match_horizon(day, dated_horizons)
        elif options.overlap == OVERLAP_NARROWEST:
            interval = _narrowest_horizon(day, dated_horizons)
        else:
            interval = _sorted_horizon(day, interval, dated_horizons)

        if interval != last_interval:
            if last_interval is not None:
                lines.append("")
            lines.append(dated_horizons[interval].label)
            last_interval = interval
        lines.append(format_task_line(task, options))

    if undated and not options.ignore_undated:
        label = undated_horizons[0].label if undated_horizons else DEFAULT_UNDATED_LABEL
        if lines:
            lines.append("")
        lines.append(label)
        lines.extend(format_task_line(task, options) for task in undated)

    if not lines:
        return ""
    return "\n".join(lines) + "\n"
