"""Command-line interface for tasklines."""

import logging
import re
import sys
from pathlib import Path
from typing import Iterable, List, Optional

import click
from rich.console import Console
from rich.table import Table

from .config import Config, get_config, load_config, save_config
from .display import is_overdue, relative_day_label
from .document import tasks_from_markdown, toggle_task_at_line
from .exceptions import ConfigError, TaskNotFoundError
from .query import Query
from .task import Status, Task

console = Console()

# A bare ";" may be part of a clause, e.g. "description includes a;b".
CLAUSE_SEPARATOR_RE = re.compile(r";(?:\s+|$)")

STATUS_EMOJI = {
    Status.TODO: "⏳",
    Status.DONE: "✅",
}


def iter_markdown_files(paths: Iterable[str]) -> List[Path]:
    """Expand files and directories into a sorted list of markdown files."""
    files = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(path.rglob("*.md")))
        else:
            files.append(path)
    return files


def collect_tasks(paths: Iterable[str], global_filter: str) -> List[Task]:
    tasks = []
    for path in iter_markdown_files(paths):
        text = path.read_text(encoding="utf-8")
        tasks.extend(tasks_from_markdown(text, path=str(path), global_filter=global_filter))
    return tasks


def format_dates(task: Task, start, stop) -> str:
    if start is None:
        return ""
    label = relative_day_label(start, stop)
    if start == task.due_start and is_overdue(task):
        return f"[red]{label}[/red]"
    return label


def build_task_table(tasks: List[Task]) -> Table:
    """Render tasks as a rich table."""
    config = get_config()
    table = Table(show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Due", style="magenta", no_wrap=True)
    table.add_column("Scheduled", style="blue", no_wrap=True)
    table.add_column("Task", min_width=24)
    table.add_column("Location", style="dim", overflow="fold")

    for task in tasks:
        text = task.to_display_string(config)
        if task.status == Status.DONE:
            text = f"[dim]{text}[/dim]"
        location = task.path
        if task.preceding_header:
            location += f" > {task.preceding_header}"
        table.add_row(
            STATUS_EMOJI[task.status],
            format_dates(task, task.due_start, task.due_stop),
            format_dates(task, task.scheduled_start, task.scheduled_stop),
            text,
            location,
        )
    return table


@click.group()
@click.option("--config", "config_path", type=click.Path(), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, config_path, verbose):
    """tasklines - query and toggle markdown checkbox tasks."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    Config.reset()
    try:
        load_config(ctx.obj["config_path"], strict=bool(config_path))
    except ConfigError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
@click.option("--query", "-q", "query_text",
              help="Query clauses, separated by newlines or '; ' (a semicolon and a space)")
@click.option("--query-file", type=click.Path(exists=True, dir_okay=False), help="File holding the query")
def query(paths, query_text, query_file):
    """List the tasks in PATHS that match a query."""
    if query_file:
        source = Path(query_file).read_text(encoding="utf-8")
    else:
        source = CLAUSE_SEPARATOR_RE.sub("\n", query_text or "")

    parsed = Query.parse(source)
    if parsed.error is not None:
        console.print(f"[red]Tasks query: {parsed.error}[/red]")
        sys.exit(1)

    config = get_config()
    tasks = parsed.apply(collect_tasks(paths, config.global_filter))
    if not tasks:
        console.print("[dim]no tasks in query[/dim]")
        return

    console.print(build_task_table(tasks))
    console.print(f"[dim]{len(tasks)} task{'s' if len(tasks) != 1 else ''}[/dim]")


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
def toggle(path, line):
    """Toggle the task on LINE (1-based) of the file at PATH."""
    config = get_config()
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8")

    try:
        new_text, new_tasks = toggle_task_at_line(
            text, line - 1, path=str(file_path), global_filter=config.global_filter
        )
    except TaskNotFoundError as e:
        raise click.ClickException(str(e))

    file_path.write_text(new_text, encoding="utf-8")
    for task in new_tasks:
        console.print(f"{STATUS_EMOJI[task.status]} {task.to_file_line_string()}")


@main.group(name="config")
def config_group():
    """Show or change settings."""


@config_group.command(name="show")
def config_show():
    """Print the current settings."""
    config = get_config()
    console.print(f"global_filter: {config.global_filter!r}")
    console.print(f"remove_global_filter: {config.remove_global_filter}")


@config_group.command(name="set-filter")
@click.argument("token")
@click.option("--remove/--keep", default=None, help="Hide the filter token when displaying tasks")
@click.pass_context
def config_set_filter(ctx, token, remove: Optional[bool]):
    """Set the global filter TOKEN a line must contain to be a task."""
    config = get_config()
    config.global_filter = token
    if remove is not None:
        config.remove_global_filter = remove
    written = save_config(config, ctx.obj.get("config_path"))
    console.print(f"[green]Saved settings to {written}[/green]")


if __name__ == "__main__":
    main()
