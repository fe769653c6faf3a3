"""
CLI Main - Typer command-line interface.
========================================

Commands:
- login: Log in through the SSO and keep the session
- logout: Forget the stored session
- profile: Show the logged-in student
- courses: List enrolled courses
- course: Show a course and its topics
- topic: Show a topic's contents and tasks
- period: Show or change the active academic period
- submit: Submit an answer to a task
- delete: Delete a submitted answer
"""

from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Iterator, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from spotifier.shared.logging import get_logger

if TYPE_CHECKING:
    from spotifier.client import SpotifierClient

logger = get_logger(__name__)

app = typer.Typer(
    name="spotifier",
    help="""SPOT client for the UPI student portal.

Logs in through sso.upi.edu, reads courses, topics and tasks from
spot.upi.edu, and submits or deletes task answers.

QUICK START:

  spotifier login                 # Prompts for NIM and password
  spotifier courses               # Enrolled courses of the active period
  spotifier course 123            # Topics of course 123
  spotifier topic 123 456         # Contents and tasks of a topic
  spotifier submit 123 456 789 -t "My answer"

Credentials may also come from SPOT_NIM and SPOT_PASSWORD.
""",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _session_file() -> Path:
    from spotifier.shared.config import get_settings

    return get_settings().resolved_paths.session_file


@contextmanager
def _client(require_session: bool = True) -> Iterator["SpotifierClient"]:
    """Open a client with the stored session; exit with an error on client failures."""
    from spotifier.client import SpotifierClient
    from spotifier.shared.exceptions import SessionExpired, SpotifierError

    session_file = _session_file()
    client = SpotifierClient()
    try:
        restored = client.load_cookies(session_file)
        if require_session and not restored:
            console.print("[yellow]Not logged in. Run 'spotifier login' first.[/yellow]")
            raise typer.Exit(1)
        yield client
        if restored:
            client.save_cookies(session_file)
    except SessionExpired:
        console.print("[yellow]Session expired. Run 'spotifier login' again.[/yellow]")
        raise typer.Exit(1)
    except SpotifierError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    finally:
        client.close()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs."),
):
    """Configure logging from settings before any command runs."""
    from spotifier.shared.config import get_settings
    from spotifier.shared.logging import setup_logging

    settings = get_settings()
    setup_logging(
        level="DEBUG" if verbose else settings.get_effective_log_level(),
        use_rich=settings.logging.rich_console,
        log_file=settings.logging.file or None,
        log_format=settings.logging.format,
        force=True,
    )


def _fmt(value) -> str:  # type: ignore[no-untyped-def]
    if value is None:
        return "-"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d %H:%M")
    return str(value)


# ─────────────────────────────────────────────────────────────────────────────
# Session Commands
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def login(
    nim: Optional[str] = typer.Option(None, "--nim", "-u", help="Student number (defaults to SPOT_NIM)."),
    password: Optional[str] = typer.Option(
        None, "--password", "-p", help="Password (defaults to SPOT_PASSWORD)."
    ),
):
    """
    Log in through the SSO and store the session cookies.

    Examples:
        spotifier login
        spotifier login -u 2101234
    """
    from spotifier.shared.config import get_settings

    settings = get_settings()
    nim = nim or settings.nim or typer.prompt("NIM")
    password = password or settings.password or typer.prompt("Password", hide_input=True)

    with _client(require_session=False) as client:
        with console.status("Logging in..."):
            client.login(nim, password)
            user = client.get_user_profile()
        client.save_cookies(_session_file())

    console.print(f"[green]✓ Logged in as {user.name} ({user.nim})[/green]")


@app.command()
def logout():
    """Forget the stored session."""
    from spotifier.auth.session_store import delete_session

    if delete_session(_session_file()):
        console.print("[green]✓ Session removed[/green]")
    else:
        console.print("[dim]No stored session[/dim]")


@app.command()
def profile():
    """Show the logged-in student."""
    with _client() as client:
        user = client.get_user_profile()
    console.print(Panel(f"[bold]{user.name}[/bold]\nNIM: {user.nim}", title="Profile"))


# ─────────────────────────────────────────────────────────────────────────────
# Course Commands
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def courses(
    cache: bool = typer.Option(True, "--cache/--no-cache", help="Use the cached course list."),
):
    """List enrolled courses of the active period."""
    with _client() as client:
        items = client.get_courses(use_cache=cache)

    if not items:
        console.print("[yellow]No courses found.[/yellow]")
        return

    table = Table(title=f"Courses ({items[0].academic_year})")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Code", style="cyan")
    table.add_column("Name")
    table.add_column("SKS", justify="right")
    table.add_column("Lecturer")

    for course in items:
        table.add_row(str(course.id), course.code, course.name, str(course.credits), course.lecturer)

    console.print(table)


@app.command()
def course(course_id: int = typer.Argument(..., help="Course id (see 'spotifier courses').")):
    """Show a course description and its topics."""
    with _client() as client:
        detail = client.get_course_detail_by_id(course_id)

    console.print(Panel(
        f"[bold]{detail.code} {detail.name}[/bold]\n"
        f"{detail.lecturer} · {detail.credits} SKS · {detail.academic_year}\n\n"
        f"{detail.description or '[dim]No description[/dim]'}",
        title=f"Course {detail.id}",
    ))

    table = Table(title="Topics")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Topic ID", justify="right")
    table.add_column("Access time")
    table.add_column("Accessible")

    for position, topic in enumerate(detail.topics, 1):
        table.add_row(
            str(position),
            _fmt(topic.id),
            _fmt(topic.access_time),
            "[green]yes[/green]" if topic.is_accessible else "[red]no[/red]",
        )

    console.print(table)


@app.command()
def topic(
    course_id: int = typer.Argument(..., help="Course id."),
    topic_id: int = typer.Argument(..., help="Topic id."),
):
    """Show a topic's contents and tasks."""
    with _client() as client:
        detail = client.get_topic_detail_by_id(course_id, topic_id)

    if detail.description:
        console.print(Panel(detail.description, title=f"Topic {detail.id}"))

    for content in detail.contents:
        if content.youtube_id:
            console.print(f"  Video: https://www.youtube.com/watch?v={content.youtube_id}")

    if not detail.tasks:
        console.print("[dim]No tasks in this topic.[/dim]")
        return

    table = Table(title="Tasks")
    table.add_column("Task ID", justify="right")
    table.add_column("Title")
    table.add_column("Due")
    table.add_column("Status")
    table.add_column("Answer ID", justify="right")
    table.add_column("Score", justify="right")

    for task in detail.tasks:
        answer = task.answer
        table.add_row(
            _fmt(task.id),
            task.title,
            _fmt(task.due_date),
            task.status.value,
            _fmt(answer.id if answer else None),
            _fmt(answer.score if answer and answer.is_graded else None),
        )

    console.print(table)


# ─────────────────────────────────────────────────────────────────────────────
# Period Command
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def period(
    code: Optional[str] = typer.Argument(
        None, help="Period to switch to, e.g. 20251 or '2025/2026 - Genap'."
    ),
):
    """Show the active academic period, or switch to another one."""
    from spotifier.shared.exceptions import ParsingError
    from spotifier.shared.schemas import Period

    with _client() as client:
        if code is None:
            current = client.get_current_period()
            console.print(f"Active period: [bold]{current.label()}[/bold] ({current.format()})")
            return

        try:
            target = Period.parse(code)
        except ParsingError as e:
            console.print(f"[red]Invalid period: {e}[/red]")
            raise typer.Exit(1)

        client.change_period(target)

    console.print(f"[green]✓ Active period is now {target.label()}[/green]")


# ─────────────────────────────────────────────────────────────────────────────
# Task Commands
# ─────────────────────────────────────────────────────────────────────────────


@app.command()
def submit(
    course_id: int = typer.Argument(..., help="Course id."),
    topic_id: int = typer.Argument(..., help="Topic id."),
    task_id: int = typer.Argument(..., help="Task id."),
    text: str = typer.Option("", "--text", "-t", help="Answer text."),
    file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="File to attach."
    ),
):
    """
    Submit an answer to a task.

    Examples:
        spotifier submit 123 456 789 -t "My answer"
        spotifier submit 123 456 789 -f report.pdf
    """
    with _client() as client:
        detail = client.get_topic_detail_by_id(course_id, topic_id)
        task = detail.find_task(task_id)
        if task is None:
            console.print(f"[red]Task {task_id} not found in topic {topic_id}[/red]")
            raise typer.Exit(1)

        client.submit_task(
            course_id,
            topic_id,
            task_id,
            task.token,
            text,
            file_name=file.name if file else None,
            file_data=file.read_bytes() if file else None,
        )

    console.print(f"[green]✓ Submitted answer to task {task_id}[/green]")


@app.command()
def delete(
    course_id: int = typer.Argument(..., help="Course id."),
    topic_id: int = typer.Argument(..., help="Topic id."),
    answer_id: int = typer.Argument(..., help="Answer id (see 'spotifier topic')."),
):
    """Delete a submitted answer."""
    with _client() as client:
        client.delete_task_submission(course_id, topic_id, answer_id)

    console.print(f"[green]✓ Deleted answer {answer_id}[/green]")


# ─────────────────────────────────────────────────────────────────────────────
# Entry Point
# ─────────────────────────────────────────────────────────────────────────────


def cli():
    """CLI entry point."""
    app()


if __name__ == "__main__":
    cli()
