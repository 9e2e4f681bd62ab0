"""taskbuffer - collect markdown tasks from a notes vault into a horizon report."""

__version__ = "0.3.0"
__author__ = "taskbuffer developers"

from .task import Marker, RawMatch, Task
from .syntax import CompiledMatchers, SyntaxConfig, compile_syntax
from .parser import parse_line, parse_task, parse_tasks
from .horizons import HorizonSpec, ResolvedHorizon, resolve_horizons
from .report import ReportOptions, build_report, format_task_line

__all__ = [
    "Task",
    "Marker",
    "RawMatch",
    "SyntaxConfig",
    "CompiledMatchers",
    "compile_syntax",
    "parse_line",
    "parse_task",
    "parse_tasks",
    "HorizonSpec",
    "ResolvedHorizon",
    "resolve_horizons",
    "ReportOptions",
    "build_report",
    "format_task_line",
    "__version__",
]
