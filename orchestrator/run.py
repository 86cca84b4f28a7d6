# -*- coding: utf-8 -*-
import asyncio
import json
import logging
import typing as t
from datetime import datetime

import click
from rich.console import Console
from rich.json import JSON
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from orchestrator.config import StudyConfig
from orchestrator.errors import StudyAssistantError
from orchestrator.service import StudyService
from study_state.models import Priority, Task

console = Console()

PRIORITY_STYLES = {
    Priority.LOW: "green",
    Priority.MEDIUM: "yellow",
    Priority.HIGH: "red",
    Priority.URGENT: "bold magenta",
}


def format_datetime_human(value: datetime) -> str:
    """Format a datetime as a concise local string (e.g. 'Mon 1/15 2:30 PM')."""
    return value.astimezone().strftime("%a %-m/%-d %-I:%M %p")


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_task_table(title: str, tasks: t.Sequence[Task]) -> Table:
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", style="cyan", width=4)
    table.add_column("Title", style="white")
    table.add_column("Course", style="green")
    table.add_column("Due", style="yellow")
    table.add_column("Priority")
    for index, task in enumerate(tasks, 1):
        table.add_row(
            str(index),
            truncate_title(task.title),
            task.course,
            format_datetime_human(task.due_date),
            f"[{PRIORITY_STYLES[task.priority]}]{task.priority.value}[/]",
        )
    return table


def _run(service: StudyService, operation: t.Awaitable[t.Any]) -> t.Any:
    """Run one service coroutine, printing the status line either way."""
    try:
        result = asyncio.run(operation)
    except StudyAssistantError as e:
        console.print(f"[red]❌ {service.status_message or e.status}[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓[/green] {service.status_message}")
    return result


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Study assistant: import coursework, analyze syllabi, plan your week."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.obj = StudyService.from_config(StudyConfig.from_env())


@main.command()
@click.option("--token", envvar="CANVAS_API_TOKEN", default="", help="Canvas API token.")
@click.pass_obj
def scan(service: StudyService, token: str) -> None:
    """List importable Canvas courses."""
    courses = _run(service, service.scan_courses(token))
    table = Table(title="📚 Canvas Courses", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Code", style="green")
    for course in courses:
        table.add_row(str(course.id), course.name or "", course.course_code or "")
    console.print(table)


@main.command("import-courses")
@click.option("--token", envvar="CANVAS_API_TOKEN", default="", help="Canvas API token.")
@click.argument("course_ids", nargs=-1, type=int)
@click.pass_obj
def import_courses(service: StudyService, token: str, course_ids: tuple[int, ...]) -> None:
    """Import assignments from the given Canvas courses (all valid courses if none given)."""
    if not course_ids:
        _run(service, service.sync_with_canvas(token))
        return
    courses = _run(service, service.scan_courses(token))
    selected = [course for course in courses if course.id in set(course_ids)]
    _run(service, service.import_courses(selected, token))


@main.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--course", "course_name", default=None, help="Add derived tasks to this course.")
@click.pass_obj
def analyze(service: StudyService, pdf: str, course_name: t.Optional[str]) -> None:
    """Analyze a syllabus PDF."""
    analysis = _run(service, service.analyze_syllabus(pdf, course_name))
    console.print(Panel(JSON(analysis.model_dump_json(by_alias=True, indent=2)), title="📄 Syllabus Analysis"))


@main.command()
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False))
@click.argument("question")
@click.pass_obj
def ask(service: StudyService, pdf: str, question: str) -> None:
    """Ask a question about a PDF document."""
    answer = _run(service, service.ask_document(question, pdf))
    console.print(Panel(answer, title="💬 Answer", border_style="blue"))


@main.command()
@click.pass_obj
def plan(service: StudyService) -> None:
    """Generate a weekly study plan from pending tasks."""
    weekly_plan = _run(service, service.generate_weekly_plan())
    for day in weekly_plan.daily_plans:
        table = Table(title=f"📅 {day.date} ({day.total_hours:g}h)", show_header=True, header_style="bold magenta")
        table.add_column("Start", style="cyan")
        table.add_column("Task", style="white")
        table.add_column("Minutes", style="yellow")
        table.add_column("Type", style="green")
        for session in day.sessions:
            table.add_row(session.start_time, truncate_title(session.task), str(session.duration), session.type)
        console.print(table)
    for tip in weekly_plan.tips:
        console.print(f"  • {tip}")
    console.print(f"[bold]Total:[/bold] {weekly_plan.total_week_hours:g} hour(s)")


@main.command()
@click.pass_obj
def push(service: StudyService) -> None:
    """Back up local tasks and courses."""
    _run(service, service.backup_courses())
    _run(service, service.backup_tasks())


@main.command()
@click.pass_obj
def pull(service: StudyService) -> None:
    """Restore tasks and courses from the backup store."""
    _run(service, service.restore_from_backup())


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print tasks as JSON.")
@click.pass_obj
def tasks(service: StudyService, as_json: bool) -> None:
    """Show upcoming and overdue tasks."""
    state = service.state
    if as_json:
        payload = [
            {"title": task.title, "course": task.course, "due": task.due_date.isoformat(), "priority": task.priority.value}
            for task in state.upcoming_tasks + state.overdue_tasks
        ]
        console.print(JSON(json.dumps(payload)))
        return
    if state.overdue_tasks:
        console.print(create_task_table("⚠️ Overdue", state.overdue_tasks))
    console.print(create_task_table("📋 Upcoming", state.upcoming_tasks))
    console.print(
        f"Completed this week: [bold green]{len(state.completed_tasks_this_week)}[/bold green]  "
        f"Study time this week: [bold green]{state.study_time_this_week}[/bold green]"
    )


@main.command()
@click.option("--watch", is_flag=True, help="Keep running and deliver notifications on every interval.")
@click.pass_obj
def notify(service: StudyService, watch: bool) -> None:
    """Deliver due notifications."""
    scheduler = service.scheduler
    scheduler.on_delivered = lambda n: console.print(f"🔔 [bold]{n.title}[/bold]: {n.message}")
    if not watch:
        delivered = scheduler.tick()
        console.print(f"Delivered {len(delivered)} notification(s)")
        return
    try:
        asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


if __name__ == "__main__":
    main()
