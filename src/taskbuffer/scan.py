"""Find candidate task lines under the notes directories with ripgrep."""

import glob
import json
import logging
import os
import subprocess
from typing import Iterable, List, Optional

from .errors import ScanError
from .syntax import CompiledMatchers, default_matchers
from .task import RawMatch

logger = logging.getLogger(__name__)

RG = "rg"
PROJECT_NEEDLE = "- project"


def deduplicate_paths(paths: Iterable[str]) -> List[str]:
    """Resolve symlinks and drop paths nested in (or equal to) another one.

    ``/notes`` and ``/notes/work`` collapse to ``/notes`` so no file is
    searched twice.
    """
    resolved = sorted((os.path.realpath(p) for p in paths), key=len)
    kept: List[str] = []
    for path in resolved:
        if any(path == k or path.startswith(k.rstrip(os.sep) + os.sep) for k in kept):
            continue
        kept.append(path)
    return kept


def expand_globs(paths: Iterable[str]) -> List[str]:
    """Expand ``*``/``?`` patterns, keep plain paths, then deduplicate."""
    result = []
    for path in paths:
        path = os.path.expanduser(path)
        if "*" in path or "?" in path:
            result.extend(sorted(glob.glob(path)))
        else:
            result.append(path)
    return deduplicate_paths(result)


def _run_rg(args: List[str]) -> subprocess.CompletedProcess:
    try:
        return subprocess.run([RG] + args, capture_output=True, text=True, encoding="utf-8",
                              errors="replace")
    except FileNotFoundError as e:
        raise ScanError("rg (ripgrep) not found on PATH") from e


def _no_matches(result: subprocess.CompletedProcess) -> bool:
    # 1: nothing matched. 2 without stderr: nothing searchable (empty dir)
    return result.returncode == 1 or (result.returncode == 2 and not result.stderr.strip())


def _parse_rg_json(output: str) -> List[RawMatch]:
    matches = []
    for line in output.splitlines():
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            continue
        if message.get("type") != "match":
            continue
        data = message.get("data", {})
        text = data.get("lines", {}).get("text")
        path = data.get("path", {}).get("text")
        if text is None or path is None:
            continue
        matches.append(RawMatch(path=path, line_number=data.get("line_number", 0), text=text))
    return matches


def scan(paths: Iterable[str], matchers: Optional[CompiledMatchers] = None) -> List[RawMatch]:
    """Return every line under ``paths`` containing a configured checkbox.

    Raises:
        ScanError: ripgrep is missing or failed
    """
    matchers = matchers or default_matchers()
    roots = expand_globs(paths)
    literals = matchers.literals
    if not roots or not literals:
        return []

    args = ["--json", "-F"]
    args += [f"--regexp={literal}" for literal in literals]
    args += ["--"] + roots

    result = _run_rg(args)
    if result.returncode != 0:
        if _no_matches(result):
            return []
        raise ScanError(f"rg exited with status {result.returncode}: {result.stderr.strip()}")

    matches = _parse_rg_json(result.stdout)
    logger.debug(f"Scanned {len(roots)} path(s), {len(matches)} candidate line(s)")
    return matches


def find_project_notes(paths: Iterable[str]) -> List[str]:
    """List markdown files that mention a ``- project`` tag entry."""
    roots = expand_globs(paths)
    if not roots:
        return []

    result = _run_rg(["-l", "-F", f"--regexp={PROJECT_NEEDLE}", "--glob", "*.md", "--"] + roots)
    if result.returncode != 0:
        if _no_matches(result):
            return []
        raise ScanError(f"rg project scan exited with status {result.returncode}: {result.stderr.strip()}")
    return sorted(line.strip() for line in result.stdout.splitlines() if line.strip())
