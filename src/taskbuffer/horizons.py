"""Horizon resolution: turn horizon specifications into concrete cutoffs.

A horizon is a named time bucket. Its ``after`` value is one of

* an integer day offset from today (``0`` is today, ``1`` tomorrow),
* a duration string ``-?N[dwmy]`` using fixed units (d=1, w=7, m=30, y=365),
* a calendar keyword such as ``end_of_week`` or ``past``.

Cutoffs are the start of a local calendar day and act as inclusive lower
bounds: a date equal to a cutoff belongs to that horizon.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Union

from fuzzywuzzy import fuzz, process

from .errors import HorizonResolutionError, UnsupportedAfterType
from .utils.datetime import (
    add_days,
    first_of_next_month,
    first_of_next_quarter,
    first_of_next_year,
    now_local,
    shift_calendar,
    start_of_day,
)

logger = logging.getLogger(__name__)

OVERLAP_SORTED = "sorted"
OVERLAP_FIRST_MATCH = "first_match"
OVERLAP_NARROWEST = "narrowest"
OVERLAP_POLICIES = (OVERLAP_SORTED, OVERLAP_FIRST_MATCH, OVERLAP_NARROWEST)

CALENDAR_KEYWORDS = (
    "past",
    "yesterday",
    "end_of_week",
    "end_of_month",
    "end_of_quarter",
    "end_of_year",
)

DURATION_UNITS = {"d": 1, "w": 7, "m": 30, "y": 365}
_DURATION_RE = re.compile(r"^(-?\d+)([dwmy])$")

DEFAULT_UNDATED_LABEL = "# Someday"


@dataclass(frozen=True)
class HorizonSpec:
    """One horizon as written in the configuration."""

    label: str
    after: Any = None
    undated: bool = False
    order: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HorizonSpec":
        order = data.get("order")
        if isinstance(order, bool) or not isinstance(order, int):
            order = None
        label = str(data.get("label", ""))
        undated = data.get("undated")
        if undated is None:
            undated = False
        elif not isinstance(undated, bool):
            logger.warning(f"Horizon '{label}': undated must be true or false, got {undated!r}; treating as dated")
            undated = False
        return cls(
            label=label,
            after=data.get("after"),
            undated=undated,
            order=order,
        )


@dataclass(frozen=True)
class ResolvedHorizon:
    label: str
    cutoff: Optional[date] = None
    undated: bool = False
    order: int = 0


DEFAULT_HORIZON_SPECS = (
    HorizonSpec("# Overdue", after="past"),
    HorizonSpec("# Today", after=0),
    HorizonSpec("# Tomorrow", after=1),
    HorizonSpec("# This Week", after=2),
    HorizonSpec("# This Month", after=8),
    HorizonSpec("# This Year", after="31d"),
    HorizonSpec("# Far Off", after="366d"),
    HorizonSpec(DEFAULT_UNDATED_LABEL, undated=True),
)


# Tagged forms of the polymorphic ``after`` value.

@dataclass(frozen=True)
class DayOffset:
    days: int


@dataclass(frozen=True)
class RelativeDuration:
    amount: int
    unit: str

    @property
    def days(self) -> int:
        return self.amount * DURATION_UNITS[self.unit]


@dataclass(frozen=True)
class CalendarKeyword:
    keyword: str


AfterValue = Union[DayOffset, RelativeDuration, CalendarKeyword]


def parse_duration(text: str) -> RelativeDuration:
    """Parse ``"2d"``, ``"1w"``, ``"-3m"`` and the like.

    Raises:
        HorizonResolutionError: ``text`` is not a duration string
    """
    match = _DURATION_RE.match(text)
    if match is None:
        raise HorizonResolutionError(f"invalid duration string: {text!r}", value=text)
    return RelativeDuration(int(match.group(1)), match.group(2))


def _keyword_hint(keyword: str) -> str:
    matches = process.extractBests(keyword, CALENDAR_KEYWORDS, scorer=fuzz.ratio,
                                   score_cutoff=70, limit=1)
    if matches:
        return f" (did you mean '{matches[0][0]}'?)"
    return ""


def classify_after(value: Any) -> AfterValue:
    """Convert a raw ``after`` value into its tagged form.

    Raises:
        UnsupportedAfterType: ``value`` is not an integer or a string
        HorizonResolutionError: a string that is neither a duration nor a
            known calendar keyword
    """
    # bool is an int subclass but ``after: true`` is a configuration mistake
    if value is None or isinstance(value, bool):
        raise UnsupportedAfterType(f"unsupported after value: {value!r}", value=value)
    if isinstance(value, int):
        return DayOffset(value)
    if isinstance(value, float):
        if value.is_integer():
            return DayOffset(int(value))
        raise UnsupportedAfterType(f"day offset must be a whole number: {value!r}", value=value)
    if isinstance(value, str):
        text = value.strip()
        if _DURATION_RE.match(text):
            return parse_duration(text)
        if text in CALENDAR_KEYWORDS:
            return CalendarKeyword(text)
        raise HorizonResolutionError(f"unknown calendar keyword: {value!r}{_keyword_hint(text)}",
                                     value=value)
    raise UnsupportedAfterType(f"unsupported after type: {type(value).__name__}", value=value)


def resolve_calendar_keyword(keyword: str, today: date, week_start: int = 0) -> date:
    """Resolve a calendar keyword to the first day past the named period.

    Args:
        keyword: One of ``CALENDAR_KEYWORDS``
        today: Reference calendar day
        week_start: First day of the week, 0 for Monday through 6 for Sunday

    Returns:
        The cutoff date
    """
    if keyword == "past":
        return shift_calendar(today, years=-100)
    if keyword == "yesterday":
        return add_days(today, -1)
    if keyword == "end_of_week":
        week_end = (week_start - 1) % 7
        days_until_end = (week_end - today.weekday()) % 7
        if days_until_end == 0:
            days_until_end = 7
        return add_days(today, days_until_end + 1)
    if keyword == "end_of_month":
        return first_of_next_month(today)
    if keyword == "end_of_quarter":
        return first_of_next_quarter(today)
    if keyword == "end_of_year":
        return first_of_next_year(today)
    raise HorizonResolutionError(f"unknown calendar keyword: {keyword!r}{_keyword_hint(keyword)}",
                                 value=keyword)


def parse_after_value(value: Any, now: Union[datetime, date], week_start: int = 0) -> date:
    """Resolve a raw ``after`` value relative to the start of ``now``'s day."""
    today = start_of_day(now)
    after = classify_after(value)
    if isinstance(after, DayOffset):
        return add_days(today, after.days)
    if isinstance(after, RelativeDuration):
        return add_days(today, after.days)
    return resolve_calendar_keyword(after.keyword, today, week_start)


def resolve_horizons(specs: Optional[Sequence[HorizonSpec]] = None,
                     now: Optional[Union[datetime, date]] = None,
                     week_start: int = 0,
                     overlap: str = OVERLAP_SORTED) -> List[ResolvedHorizon]:
    """Resolve horizon specs into an ordered list of cutoffs.

    Dated horizons come first, in policy order, followed by undated ones.
    A spec that fails to resolve is dropped with a warning; when that
    leaves no dated horizon the built-in defaults are used instead.

    Args:
        specs: Horizon specs; ``None`` or empty means the built-in defaults
        now: Reference instant, the current local time when omitted
        week_start: First weekday for ``end_of_week``, 0 is Monday
        overlap: ``sorted``, ``first_match`` or ``narrowest``

    Returns:
        List of ResolvedHorizon
    """
    if now is None:
        now = now_local()
    if overlap not in OVERLAP_POLICIES:
        logger.warning(f"Unknown overlap policy '{overlap}', using '{OVERLAP_SORTED}'")
        overlap = OVERLAP_SORTED

    using_defaults = not specs
    if using_defaults:
        specs = DEFAULT_HORIZON_SPECS

    dated: List[ResolvedHorizon] = []
    undated: List[ResolvedHorizon] = []
    for index, spec in enumerate(specs):
        if spec.undated:
            order = spec.order if spec.order is not None else len(specs) + index
            undated.append(ResolvedHorizon(spec.label, None, True, order))
            continue
        try:
            cutoff = parse_after_value(spec.after, now, week_start)
        except HorizonResolutionError as e:
            logger.warning(f"Ignoring horizon '{spec.label}': {e}")
            continue
        order = spec.order if spec.order is not None else index
        dated.append(ResolvedHorizon(spec.label, cutoff, False, order))

    if not dated:
        if using_defaults:
            raise HorizonResolutionError("built-in horizons failed to resolve")
        logger.warning("No usable dated horizons configured, falling back to the built-in horizons")
        return resolve_horizons(None, now, week_start, overlap)

    if overlap == OVERLAP_SORTED:
        dated.sort(key=lambda h: (h.cutoff, h.order))
        dated = [ResolvedHorizon(h.label, h.cutoff, False, i) for i, h in enumerate(dated)]
    else:
        dated.sort(key=lambda h: h.order)

    undated.sort(key=lambda h: h.order)
    if len(undated) > 1:
        logger.warning(f"Multiple undated horizons configured, using '{undated[0].label}'")

    return dated + undated
