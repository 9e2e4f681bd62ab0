"""Compile a user-supplied task syntax into reusable regex matchers.

A syntax configuration names the literal checkbox text for each status, the
tag prefix, the marker prefix and the pair of delimiters wrapped around due
dates. ``compile_syntax`` turns it into a ``CompiledMatchers`` value that is
built once per invocation and shared read-only by every parse call.

Every configured literal is passed through ``re.escape`` before it is embedded
in a pattern. Checkbox literals are tried longest first because Python's
``|`` alternation takes the first alternative that matches, not the longest.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CHECKBOXES: Mapping[str, str] = MappingProxyType({
    "open": "- [ ]",
    "done": "- [x]",
    "irrelevant": "- [-]",
    "partial": "- [~]",
})
DEFAULT_TAG_PREFIX = "#"
DEFAULT_MARKER_PREFIX = "::"
DEFAULT_DATE_WRAPPER: Tuple[str, str] = ("(@[[", "]])")

# Markers keep wiki-link dates whatever the due-date wrapper is.
MARKER_DATE_OPEN = "[["
MARKER_DATE_CLOSE = "]]"

_ISO_DATE = r"(\d{4}-\d{2}-\d{2})"
_CLOCK = r"(\d{2}:\d{2})"
# Optional "alias|" and "folder/" parts of a wiki link in front of the date.
_LINK_PREFIX = r"(?:[^|\]]*\|)?(?:[^|\]]*/)?"
_TAG_NAME = r"([A-Za-z_][\w-]*)"
_NEVER = r"(?!)"

DURATION_RE = re.compile(r"<(\d+)m>")


@dataclass(frozen=True)
class SyntaxConfig:
    """User-facing task syntax. Every field falls back to a default."""

    checkbox: Optional[Mapping[str, str]] = None
    tag_prefix: str = DEFAULT_TAG_PREFIX
    marker_prefix: str = DEFAULT_MARKER_PREFIX
    date_wrapper: Tuple[str, str] = DEFAULT_DATE_WRAPPER

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SyntaxConfig":
        """Build from the ``formats`` section of the YAML configuration."""
        data = data or {}
        wrapper = data.get("date_wrapper")
        return cls(
            checkbox=data.get("checkbox") or None,
            tag_prefix=data.get("tag_prefix") or DEFAULT_TAG_PREFIX,
            marker_prefix=data.get("marker_prefix") or DEFAULT_MARKER_PREFIX,
            date_wrapper=tuple(wrapper) if isinstance(wrapper, (list, tuple)) else DEFAULT_DATE_WRAPPER,
        )


@dataclass(frozen=True)
class CompiledMatchers:
    """Immutable matcher set derived from a ``SyntaxConfig``."""

    checkboxes: Mapping[str, str]
    status_lookup: Mapping[str, str]
    tag_prefix: str
    marker_prefix: str
    date_wrapper: Tuple[str, str]
    status_pattern: Pattern
    tag_pattern: Pattern
    date_group_pattern: Pattern
    marker_pattern: Pattern
    marker_boundary_pattern: Pattern
    duration_pattern: Pattern = field(default=DURATION_RE)

    def checkbox_for(self, status: str) -> str:
        """Literal checkbox text for ``status``, or ``""`` when unconfigured."""
        return self.checkboxes.get(status, "")

    @property
    def literals(self) -> Tuple[str, ...]:
        """Distinct checkbox literals in match-priority order."""
        return _order_literals(self.checkboxes.values())


def _valid_checkboxes(checkbox: Optional[Mapping[str, str]]) -> Dict[str, str]:
    if not checkbox:
        return dict(DEFAULT_CHECKBOXES)

    valid = {}
    for status, literal in checkbox.items():
        if not isinstance(literal, str) or not literal.strip():
            logger.warning(f"Ignoring checkbox for status '{status}': empty or whitespace-only text matches every line")
            continue
        valid[str(status)] = literal
    if not valid:
        logger.warning("No usable checkbox entries configured; no line will parse as a task")
    return valid


def _order_literals(literals) -> Tuple[str, ...]:
    """Deduplicate and order longest first, ties lexicographically."""
    return tuple(sorted(set(literals), key=lambda text: (-len(text), text)))


def _build_status_lookup(checkboxes: Mapping[str, str]) -> Dict[str, str]:
    lookup: Dict[str, str] = {}
    for status in sorted(checkboxes):
        literal = checkboxes[status]
        current = lookup.get(literal)
        if current is None or status < current:
            lookup[literal] = status
    return lookup


def _valid_wrapper(wrapper) -> Tuple[str, str]:
    if (
        isinstance(wrapper, (list, tuple))
        and len(wrapper) == 2
        and all(isinstance(part, str) and part for part in wrapper)
    ):
        return wrapper[0], wrapper[1]
    logger.warning(f"Ignoring date wrapper {wrapper!r}: expected two non-empty strings")
    return DEFAULT_DATE_WRAPPER


def _date_group_regex(opening: str, closing: str) -> str:
    """Regex for a wrapped due date with an optional ``HH:MM``.

    When the closing delimiter starts with a wiki-link ``]]`` the time sits
    between the link and the rest of the delimiter, as in
    ``(@[[2026-02-17]] 15:00)``. Otherwise it sits just inside the closing
    delimiter, as in ``{2026-02-17 15:00}``.
    """
    head = re.escape(opening) + _LINK_PREFIX + _ISO_DATE
    if closing.startswith(MARKER_DATE_CLOSE):
        rest = closing[len(MARKER_DATE_CLOSE):]
        return head + re.escape(MARKER_DATE_CLOSE) + r"\s*" + _CLOCK + "?" + re.escape(rest)
    return head + r"(?:\s+" + _CLOCK + r")?\s*" + re.escape(closing)


def _warn_on_collisions(tag_prefix: str, marker_prefix: str) -> None:
    if tag_prefix == marker_prefix:
        logger.warning(f"Tag prefix and marker prefix are both '{tag_prefix}'; marker keywords will also be read as tags")
    if tag_prefix.startswith("["):
        logger.warning(f"Tag prefix '{tag_prefix}' collides with wiki-link syntax; linked note names will be read as tags")


def compile_syntax(config: Optional[SyntaxConfig] = None) -> CompiledMatchers:
    """Compile a syntax configuration into matchers.

    Never fails for structurally valid input. Empty or whitespace-only
    checkbox literals are dropped with a warning instead of producing a
    pattern that matches every line.

    Args:
        config: Syntax to compile; ``None`` means the defaults

    Returns:
        CompiledMatchers shared by all parse calls of one invocation
    """
    config = config or SyntaxConfig()
    tag_prefix = config.tag_prefix or DEFAULT_TAG_PREFIX
    marker_prefix = config.marker_prefix or DEFAULT_MARKER_PREFIX
    opening, closing = _valid_wrapper(config.date_wrapper)
    _warn_on_collisions(tag_prefix, marker_prefix)

    checkboxes = _valid_checkboxes(config.checkbox)
    literals = _order_literals(checkboxes.values())
    if literals:
        alternation = "|".join(re.escape(text) for text in literals)
    else:
        alternation = _NEVER
    status_pattern = re.compile(r"^\s*(" + alternation + ")")

    marker_date = (
        re.escape(MARKER_DATE_OPEN) + _LINK_PREFIX + _ISO_DATE + re.escape(MARKER_DATE_CLOSE)
    )

    return CompiledMatchers(
        checkboxes=MappingProxyType(checkboxes),
        status_lookup=MappingProxyType(_build_status_lookup(checkboxes)),
        tag_prefix=tag_prefix,
        marker_prefix=marker_prefix,
        date_wrapper=(opening, closing),
        status_pattern=status_pattern,
        tag_pattern=re.compile(re.escape(tag_prefix) + _TAG_NAME, re.ASCII),
        date_group_pattern=re.compile(_date_group_regex(opening, closing)),
        marker_pattern=re.compile(r"(\w+)\s+" + marker_date + r"\s*" + _CLOCK + "?", re.ASCII),
        marker_boundary_pattern=re.compile(
            re.escape(marker_prefix) + r"\s*\w+\s+" + re.escape(MARKER_DATE_OPEN), re.ASCII
        ),
    )


@lru_cache(maxsize=1)
def default_matchers() -> CompiledMatchers:
    """Matchers for the default syntax, compiled once per process."""
    return compile_syntax(SyntaxConfig())
