"""Epoch CLI - calendar task planner."""

import logging
import sys

import click

from . import PACKAGE_NAME, __version__
from .adapters.json_store import JsonStateStore
from .adapters.pypi import PyPIUpdateChecker
from .config import load_config
from .core.errors import EpochError
from .core.recurrence import EditScope
from .core.tasks import Frequency, RecurrencePattern, Task, TaskState
from .core.timeline import format_event
from .ports.update_checker import UpdateChecker
from .workflows import Planner

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

WEEKDAYS = {"mon": 0, "tue": 1, "wed": 2, "thu": 3, "fri": 4, "sat": 5, "sun": 6}

STATE_MARKERS = {
    TaskState.TODO: " ",
    TaskState.COMPLETED: "x",
    TaskState.DELEGATED: ">",
    TaskState.DELAYED: "~",
}

SCOPE_OPTION = click.option(
    "--scope",
    type=click.Choice(["this", "all", "from-today"]),
    default="this",
    show_default=True,
    help="Which occurrences of a recurring task to change",
)
DATE_OPTION = click.option(
    "--date", "-d", "target_date", default=None,
    help="Date (YYYY-MM-DD), defaults to today",
)


def _scope(value: str) -> EditScope:
    return EditScope(value.replace("-", "_"))


def _parse_weekdays(value: str) -> set[int]:
    days = set()
    for part in value.split(","):
        part = part.strip().lower()[:3]
        if part not in WEEKDAYS:
            raise click.BadParameter(f"Unknown weekday: {part}", param_hint="--weekly")
        days.add(WEEKDAYS[part])
    return days


def _fail(error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(1)


def _planner(ctx: click.Context) -> Planner:
    if "planner" not in ctx.obj:
        config = ctx.obj["config"]
        state_store = JsonStateStore(ctx.obj["data_file"] or config.data_file)
        try:
            planner = Planner(state_store, undo_depth=config.undo_depth)
        except EpochError as e:
            _fail(e)
        # Persisted in settings with the next change
        planner.settings["theme"] = config.theme
        ctx.obj["planner"] = planner
    return ctx.obj["planner"]


def _task_at(planner: Planner, target_date: str | None, number: int) -> Task:
    rows = planner.flat_tasks_for_date(target_date)
    if not 1 <= number <= len(rows):
        raise click.BadParameter(f"No task #{number} (list has {len(rows)})", param_hint="N")
    return rows[number - 1][0]


def _format_row(number: int, task: Task, depth: int) -> str:
    marker = "*" if task.in_progress else STATE_MARKERS[task.state]
    recurring = " (r)" if task.is_recurring and depth == 0 else ""
    return f"{number:>3}. {'  ' * depth}[{marker}] {task.title}{recurring}"


@click.group()
@click.version_option(__version__, package_name=PACKAGE_NAME)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--data-file", envvar="EPOCH_DATA_FILE", default=None,
              help="Path to the data file (overrides config)")
@click.pass_context
def main(ctx: click.Context, debug: bool, data_file: str | None):
    """Epoch - calendar task planner."""
    config = load_config()
    if debug:
        logging.basicConfig(format=LOG_FORMAT, level=logging.DEBUG)
    elif config.log_file:
        logging.basicConfig(filename=config.log_file, format=LOG_FORMAT, level=logging.INFO)

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["data_file"] = data_file


@main.command()
@click.argument("title")
@DATE_OPTION
@click.option("--daily", is_flag=True, help="Repeat every day")
@click.option("--weekly", default=None, help="Repeat on weekdays, e.g. mon,wed,fri")
@click.option("--monthly", is_flag=True, help="Repeat on the same weekday of the month")
@click.option("--until", default=None, help="Last date of the repetition (YYYY-MM-DD)")
@click.pass_context
def add(ctx, title, target_date, daily, weekly, monthly, until):
    """Add a task."""
    chosen = [f for f, on in (
        (Frequency.DAILY, daily),
        (Frequency.WEEKLY, weekly is not None),
        (Frequency.MONTHLY_BY_WEEKDAY, monthly),
    ) if on]
    if len(chosen) > 1:
        raise click.UsageError("Choose only one of --daily, --weekly, --monthly")
    if until and not chosen:
        raise click.UsageError("--until needs --daily, --weekly or --monthly")

    days = _parse_weekdays(weekly) if weekly else set()
    planner = _planner(ctx)
    try:
        pattern = None
        if chosen:
            pattern = RecurrencePattern(frequency=chosen[0], days_of_week=days, end_date=until)
        task = planner.add_task(title, target_date, pattern)
    except EpochError as e:
        _fail(e)
    click.echo(f"Added: {task.title} ({task.date})")


@main.command("list")
@DATE_OPTION
@click.pass_context
def list_tasks(ctx, target_date):
    """List tasks for a date."""
    planner = _planner(ctx)
    try:
        rows = planner.flat_tasks_for_date(target_date)
    except EpochError as e:
        _fail(e)

    day = target_date or planner.today.isoformat()
    if not rows:
        click.echo(f"No tasks for {day}.")
        return

    click.echo(f"Tasks for {day}\n")
    for number, (task, depth) in enumerate(rows, start=1):
        click.echo(_format_row(number, task, depth))

    stats = planner.stats_for_date(target_date)
    click.echo(f"\n{stats.completed}/{stats.total} completed ({stats.percentage}%)")


@main.command()
@click.argument("number", metavar="N", type=int)
@click.argument("title")
@DATE_OPTION
@SCOPE_OPTION
@click.pass_context
def edit(ctx, number, title, target_date, scope):
    """Rename task N."""
    planner = _planner(ctx)
    try:
        task = planner.edit_task(_task_at(planner, target_date, number).id, title, _scope(scope))
    except EpochError as e:
        _fail(e)
    click.echo(f"Renamed: {task.title}")


def _state_command(name: str, state: TaskState, help_text: str):
    @main.command(name, help=help_text)
    @click.argument("number", metavar="N", type=int)
    @DATE_OPTION
    @click.pass_context
    def command(ctx, number, target_date):
        planner = _planner(ctx)
        try:
            task = planner.change_state(_task_at(planner, target_date, number).id, state)
        except EpochError as e:
            _fail(e)
        click.echo(f"{task.title}: {task.state.value}")

    return command


done = _state_command("done", TaskState.COMPLETED, "Mark task N completed.")
delegate = _state_command("delegate", TaskState.DELEGATED, "Mark task N delegated.")
delay = _state_command("delay", TaskState.DELAYED, "Mark task N delayed.")
todo = _state_command("todo", TaskState.TODO, "Move task N back to todo.")


@main.command()
@click.argument("number", metavar="N", type=int)
@DATE_OPTION
@click.pass_context
def start(ctx, number, target_date):
    """Start working on task N."""
    planner = _planner(ctx)
    try:
        task = planner.start_task(_task_at(planner, target_date, number).id)
    except EpochError as e:
        _fail(e)
    click.echo(f"Started: {task.title} at {task.start_time.strftime('%H:%M')}")


@main.command()
@click.argument("number", metavar="N", type=int)
@DATE_OPTION
@click.pass_context
def unstart(ctx, number, target_date):
    """Undo starting task N."""
    planner = _planner(ctx)
    try:
        task = planner.unstart_task(_task_at(planner, target_date, number).id)
    except EpochError as e:
        _fail(e)
    click.echo(f"Not started: {task.title}")


@main.command()
@click.argument("number", metavar="N", type=int)
@click.argument("title")
@DATE_OPTION
@SCOPE_OPTION
@click.pass_context
def sub(ctx, number, title, target_date, scope):
    """Add a subtask under task N."""
    planner = _planner(ctx)
    try:
        subtask = planner.add_subtask(_task_at(planner, target_date, number).id, title, _scope(scope))
    except EpochError as e:
        _fail(e)
    click.echo(f"Added subtask: {subtask.title}")


@main.command()
@click.argument("number", metavar="N", type=int)
@DATE_OPTION
@SCOPE_OPTION
@click.pass_context
def rm(ctx, number, target_date, scope):
    """Delete task N and its subtasks."""
    planner = _planner(ctx)
    try:
        task = _task_at(planner, target_date, number)
        planner.delete_task(task.id, _scope(scope))
    except EpochError as e:
        _fail(e)
    click.echo(f"Deleted: {task.title}")


@main.command()
@click.argument("number", metavar="N", type=int)
@DATE_OPTION
@click.pass_context
def skip(ctx, number, target_date):
    """Skip this date of recurring task N."""
    planner = _planner(ctx)
    try:
        task = _task_at(planner, target_date, number)
        planner.exclude_occurrence(task.id)
    except EpochError as e:
        _fail(e)
    click.echo(f"Skipped {task.title} on {task.date}")


@main.command()
@DATE_OPTION
@click.option("--clear", is_flag=True, help="Clear this date's timeline")
@click.pass_context
def timeline(ctx, target_date, clear):
    """Show the activity timeline for a date."""
    planner = _planner(ctx)
    day = target_date or planner.today.isoformat()
    try:
        if clear:
            planner.clear_timeline(day)
            click.echo(f"Cleared timeline for {day}.")
            return
        events = planner.timeline_for_date(day)
    except EpochError as e:
        _fail(e)

    if not events:
        click.echo(f"No activity on {day}.")
        return

    click.echo(f"Timeline for {day}\n")
    for event in events:
        click.echo(f"  {format_event(event)}")


@main.command()
@click.pass_context
def undo(ctx):
    """Undo the last change."""
    planner = _planner(ctx)
    try:
        action = planner.undo()
    except EpochError as e:
        _fail(e)
    if action is None:
        click.echo("Nothing to undo.")
        return
    click.echo(f"Undid {action.value.replace('_', ' ')}.")


@main.command("check-update")
@click.pass_context
def check_update(ctx):
    """Check PyPI for a newer release."""
    if not ctx.obj["config"].check_updates:
        click.echo("Update checks are disabled in config.")
        return

    checker: UpdateChecker = PyPIUpdateChecker()
    info = checker.check()
    if info.has_update:
        click.echo(f"Update available: {info.current_version} -> {info.latest_version}")
        click.echo(f"Run 'pip install -U {PACKAGE_NAME}' to update.")
    else:
        click.echo(f"Epoch {info.current_version} is up to date.")


if __name__ == "__main__":
    main()
