"""YAML frontmatter of note files: file-level tags and project notes."""

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import frontmatter
import yaml

from .task import Task
from .utils.datetime import ISO_DATE_FORMAT

logger = logging.getLogger(__name__)

PROJECT_TAG = "project"
FINISHED_STATUSES = ("completed", "done")


@dataclass(frozen=True)
class Frontmatter:
    """The frontmatter fields taskbuffer cares about."""
    tags: List[str] = field(default_factory=list)
    due: str = ""
    status: str = ""


def _normalize_tags(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(tag) for tag in value if tag is not None]
    return [str(value)]


def _normalize_due(value) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(f"{ISO_DATE_FORMAT} %H:%M")
    if isinstance(value, date):
        return value.strftime(ISO_DATE_FORMAT)
    return str(value).strip()


class FrontmatterCache:
    """Per-path cache of parsed frontmatter.

    Safe to share between threads. Files without frontmatter, with an empty
    block or with malformed YAML are cached as ``None``.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._cache: Dict[str, Optional[Frontmatter]] = {}

    def get(self, path: str) -> Optional[Frontmatter]:
        with self._lock:
            if path in self._cache:
                return self._cache[path]

        parsed = self._load(path)

        with self._lock:
            self._cache[path] = parsed
        return parsed

    def reset(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    @staticmethod
    def _load(path: str) -> Optional[Frontmatter]:
        try:
            post = frontmatter.load(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Cannot read frontmatter of {path}: {e}")
            return None
        except (yaml.YAMLError, ValueError) as e:
            logger.debug(f"Malformed frontmatter in {path}: {e}")
            return None

        metadata = post.metadata
        if not metadata or not isinstance(metadata, dict):
            return None
        return Frontmatter(
            tags=_normalize_tags(metadata.get("tags")),
            due=_normalize_due(metadata.get("due")),
            status=str(metadata.get("status") or ""),
        )


def merge_frontmatter_tags(tasks: Iterable[Task], cache: FrontmatterCache) -> List[Task]:
    """Append each file's frontmatter tags to its tasks.

    Frontmatter tags already present on a task are skipped; duplicates among
    the inline tags themselves are left alone.
    """
    merged = []
    for task in tasks:
        meta = cache.get(task.source_path)
        if meta is None or not meta.tags:
            merged.append(task)
            continue
        tags = list(task.tags)
        seen = set(tags)
        for tag in meta.tags:
            if tag not in seen:
                tags.append(tag)
                seen.add(tag)
        merged.append(task.with_tags(tags))
    return merged


def _parse_due(due: str):
    day_text, _, time_text = due.partition(" ")
    try:
        day = datetime.strptime(day_text, ISO_DATE_FORMAT).date()
    except ValueError:
        return None, ""
    return day, time_text.strip()


def project_tasks(paths: Iterable[str], cache: FrontmatterCache) -> List[Task]:
    """Turn unfinished, dated project notes into open tasks.

    A project note carries the ``project`` tag and a ``due`` value in its
    frontmatter. The task sits at line 1 and its body is the file stem.
    """
    tasks = []
    for path in paths:
        meta = cache.get(path)
        if meta is None or PROJECT_TAG not in meta.tags or not meta.due:
            continue
        if meta.status.lower() in FINISHED_STATUSES:
            continue
        due_date, due_time = _parse_due(meta.due)
        if due_date is None:
            logger.debug(f"Skipping project note {path}: bad due value {meta.due!r}")
            continue
        tasks.append(Task(
            source_path=path,
            source_line=1,
            body=Path(path).stem,
            status="open",
            due_date=due_date,
            due_time=due_time,
            tags=tuple(meta.tags),
        ))
    return tasks

