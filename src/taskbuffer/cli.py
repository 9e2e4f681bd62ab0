"""Command-line interface for taskbuffer."""

import functools
import logging
import sys
from pathlib import Path
from typing import List, Sequence

import click
from rich.prompt import IntPrompt
from rich.table import Table

from . import __version__
from . import mutate
from .config import CONFIG_ENV_VAR, Config, ConfigModel
from .errors import TaskbufferError
from .frontmatter import FrontmatterCache, merge_frontmatter_tags, project_tasks
from .horizons import OVERLAP_POLICIES, resolve_horizons
from .parser import parse_tasks
from .report import ReportOptions, build_report
from .scan import find_project_notes, scan
from .state import CurrentTask, StateStore
from .syntax import CompiledMatchers, compile_syntax
from .task import Task
from .theme import get_themed_console, setup_logging
from .utils.datetime import format_date, now_local

logger = logging.getLogger(__name__)


def get_console():
    """Get a themed console for confirmations and prompts."""
    return get_themed_console()


def fail(message: str) -> None:
    get_themed_console(stderr=True).print(f"[error]Error: {message}[/error]")
    sys.exit(1)


def handle_errors(func):
    """Turn taskbuffer errors into a red message and exit status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TaskbufferError as e:
            fail(str(e))
    return wrapper


def gather_tasks(sources: Sequence[str], matchers: CompiledMatchers,
                 cache: FrontmatterCache, include_projects: bool = True) -> List[Task]:
    """Scan, parse and enrich every task under ``sources``."""
    tasks = parse_tasks(scan(sources, matchers), matchers)
    tasks = merge_frontmatter_tags(tasks, cache)
    if include_projects:
        tasks.extend(project_tasks(find_project_notes(sources), cache))
    return tasks


def _open_tasks(tasks: Sequence[Task]) -> List[Task]:
    return [t for t in tasks if t.status == "open"]


def _config(ctx) -> ConfigModel:
    return ctx.obj['config']


def _stop_running(ctx, kind: str) -> None:
    """Close the running task with a ``kind`` marker."""
    config = _config(ctx)
    matchers = ctx.obj['matchers']
    store = StateStore(config.state_dir)
    current = store.read()
    if current is None:
        get_console().print("[muted]No task running.[/muted]")
        return

    if kind == "complete":
        mutate.complete_at(current.path, current.line_number, now_local(), matchers)
    else:
        marker = mutate.format_marker(kind, now_local(), matchers.marker_prefix)
        mutate.append_to_line(current.path, current.line_number, marker)
    store.clear()

    verb = "Completed" if kind == "complete" else "Stopped"
    get_console().print(f"[success]{verb}: {current.name}[/success]")


@click.group(invoke_without_command=True)
@click.option("--source", "-s", "sources", multiple=True,
              help="Notes directory or glob to scan (repeatable)")
@click.option("--config", type=click.Path(exists=True, dir_okay=False), envvar=CONFIG_ENV_VAR,
              help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(__version__, prog_name="taskbuffer")
@click.pass_context
def main(ctx, sources, config, verbose):
    """taskbuffer - markdown tasks bucketed into time horizons."""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)

    loaded = Config.reload(Path(config) if config else None)
    ctx.obj['config'] = loaded
    ctx.obj['sources'] = loaded.resolve_sources(sources)
    ctx.obj['matchers'] = compile_syntax(loaded.syntax_config())
    ctx.obj['frontmatter'] = FrontmatterCache()

    if ctx.invoked_subcommand is None:
        ctx.invoke(list_tasks)


@main.command(name="list")
@click.option("--tag", "-t", "tags", multiple=True, help="Only tasks with this tag (repeatable, OR)")
@click.option("--markers/--no-markers", default=None, help="Show :: markers")
@click.option("--ignore-undated", is_flag=True, help="Leave out tasks without a due date")
@click.option("--overlap", type=click.Choice(OVERLAP_POLICIES), default=None,
              help="How to pick a horizon when several contain a date")
@click.pass_context
@handle_errors
def list_tasks(ctx, tags, markers, ignore_undated, overlap):
    """Print open tasks grouped by horizon."""
    config = _config(ctx)
    matchers = ctx.obj['matchers']
    now = now_local()
    overlap = overlap or config.overlap
    week_start = config.week_start_index()

    tasks = _open_tasks(gather_tasks(ctx.obj['sources'], matchers, ctx.obj['frontmatter']))
    options = ReportOptions(
        show_markers=config.show_markers if markers is None else markers,
        ignore_undated=ignore_undated or not config.show_undated,
        tag_filter=tuple(tags),
        horizons=resolve_horizons(config.horizon_specs(), now, week_start, overlap),
        overlap=overlap,
        tag_prefix=matchers.tag_prefix,
        marker_prefix=matchers.marker_prefix,
        week_start=week_start,
    )
    # plain echo so the location prefixes stay parseable
    click.echo(build_report(tasks, now, options), nl=False)


@main.command()
@click.pass_context
@handle_errors
def tags(ctx):
    """List every tag used by an open task."""
    tasks = _open_tasks(gather_tasks(ctx.obj['sources'], ctx.obj['matchers'], ctx.obj['frontmatter']))
    for tag in sorted({tag for task in tasks for tag in task.tags}):
        click.echo(tag)


@main.command()
@click.pass_context
@handle_errors
def do(ctx):
    """Pick a task due today and start it."""
    config = _config(ctx)
    matchers = ctx.obj['matchers']
    store = StateStore(config.state_dir)

    if store.read() is not None:
        _stop_running(ctx, "stop")

    now = now_local()
    today = now.date()
    tasks = gather_tasks(ctx.obj['sources'], matchers, ctx.obj['frontmatter'], include_projects=False)
    todays = sorted(
        (t for t in _open_tasks(tasks) if t.due_date == today),
        key=lambda t: (t.due_time or "99:99", t.source_path, t.source_line),
    )
    if not todays:
        get_console().print("[muted]No tasks due today.[/muted]")
        return

    console = get_console()
    table = Table(title=f"Due {format_date(today)}", show_header=True, header_style="primary")
    table.add_column("#", justify="right", style="muted")
    table.add_column("Time", style="date")
    table.add_column("Task")
    for number, task in enumerate(todays, start=1):
        table.add_row(str(number), task.due_time, task.body)
    console.print(table)

    choice = IntPrompt.ask("Start task", console=console,
                           choices=[str(n) for n in range(1, len(todays) + 1)])
    task = todays[choice - 1]

    mutate.append_to_line(task.source_path, task.source_line,
                          mutate.format_marker("start", now, matchers.marker_prefix))
    store.write(CurrentTask(int(now.timestamp()), task.body, task.source_path, task.source_line))
    console.print(f"[success]Started: {task.body}[/success]")


@main.command()
@click.pass_context
@handle_errors
def stop(ctx):
    """Stop the running task."""
    _stop_running(ctx, "stop")


@main.command()
@click.pass_context
@handle_errors
def complete(ctx):
    """Complete the running task."""
    _stop_running(ctx, "complete")


@main.command()
@click.pass_context
@handle_errors
def current(ctx):
    """Print the running task's name, if any."""
    task = StateStore(_config(ctx).state_dir).read()
    if task is not None:
        click.echo(task.name)


main.add_command(do, name="start")
main.add_command(stop, name="pause")
main.add_command(complete, name="done")


# Edits addressed by file and line, as printed in the report

LINE = click.argument("line_number", metavar="LINE", type=click.IntRange(min=1))
PATH = click.argument("path", type=click.Path(exists=True, dir_okay=False))


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def defer(ctx, path, line_number):
    """Record a deferral, keeping the original due date."""
    mutate.defer(path, line_number, now_local(), ctx.obj['matchers'])
    get_console().print(f"[success]Deferred {path}:{line_number}[/success]")


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def irrelevant(ctx, path, line_number):
    """Mark a task irrelevant."""
    mutate.irrelevant(path, line_number, now_local(), ctx.obj['matchers'])
    get_console().print(f"[success]Marked irrelevant {path}:{line_number}[/success]")


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def partial(ctx, path, line_number):
    """Mark a task partially done."""
    mutate.partial(path, line_number, now_local(), ctx.obj['matchers'])
    get_console().print(f"[success]Marked partial {path}:{line_number}[/success]")


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def unset(ctx, path, line_number):
    """Undo irrelevant or partial."""
    if mutate.unset(path, line_number, ctx.obj['matchers']) is None:
        get_console().print("[muted]Nothing to undo.[/muted]")
    else:
        get_console().print(f"[success]Reopened {path}:{line_number}[/success]")


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def check(ctx, path, line_number):
    """Check a task off without a marker."""
    mutate.check(path, line_number, ctx.obj['matchers'])
    get_console().print(f"[success]Checked {path}:{line_number}[/success]")


@main.command(name="complete-at")
@PATH
@LINE
@click.pass_context
@handle_errors
def complete_at(ctx, path, line_number):
    """Complete a task that is not the running one."""
    mutate.complete_at(path, line_number, now_local(), ctx.obj['matchers'])
    get_console().print(f"[success]Completed {path}:{line_number}[/success]")


@main.command(context_settings={"ignore_unknown_options": True})
@PATH
@LINE
@click.argument("days", type=int)
@click.pass_context
@handle_errors
def shift(ctx, path, line_number, days):
    """Move a task's due date by DAYS (may be negative)."""
    day = mutate.shift_due_date(path, line_number, days, ctx.obj['matchers'])
    get_console().print(f"[success]Due {format_date(day)}[/success]")


@main.command()
@PATH
@LINE
@click.pass_context
@handle_errors
def today(ctx, path, line_number):
    """Set a task's due date to today."""
    day = mutate.set_due_date(path, line_number, now_local().date(), ctx.obj['matchers'])
    get_console().print(f"[success]Due {format_date(day)}[/success]")


@main.command()
@click.option("--file", "-f", "target", type=click.Path(dir_okay=False),
              help="Target file (defaults to the configured inbox)")
@click.option("--header", "-H", help="Insert below this markdown header")
@click.argument("body", nargs=-1, required=True)
@click.pass_context
@handle_errors
def create(ctx, target, header, body):
    """Add a new open task."""
    config = _config(ctx)
    target = target or config.inbox_file
    if not target:
        fail("no target file specified (use --file or configure inbox.file)")
    header = header or config.inbox_header

    open_literal = ctx.obj['matchers'].checkbox_for("open")
    if not open_literal:
        fail("no checkbox configured for status 'open'")
    line = f"{open_literal} {' '.join(body)}"

    target = str(Path(target).expanduser())
    if header:
        mutate.insert_after_header(target, header, line)
    else:
        mutate.append_to_file(target, line)
    get_console().print(f"[success]Added to {target}[/success]")


if __name__ == "__main__":
    main()
