"""CLI for examtime.

Usage:
    python -m examtime run                                # Interactive session
    python -m examtime extend -s a@b.edu -e 42 -m 15      # One-shot extension
    python -m examtime extend -s a@b.edu -e 42 -m 15 --json
    python -m examtime exams a@b.edu                      # List a student's exams
    python -m examtime show a@b.edu 42                    # Show one attempt record
    python -m examtime ping                               # Check the store connection
"""

from __future__ import annotations

import json
import logging
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from examtime.config import ConfigError, StoreSettings, load_settings
from examtime.display import print_result, render_attempt, render_exam_table
from examtime.extension import extend_exam_time
from examtime.session import EXIT_FAILED, Prompter, run_session
from examtime.store import RecordNotFound, StoreClient, StoreConnectionError, StoreError

app = typer.Typer(
    name="examtime",
    help="Extend a student's exam deadline in Redis",
    no_args_is_help=True,
)
console = Console(stderr=True)

def _settings(ctx: typer.Context) -> StoreSettings:
    """Environment settings with the --host/--port/--password overrides applied."""
    try:
        settings = load_settings()
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_FAILED)
    return settings.override(**(ctx.obj or {}))


def _fail(message: str) -> NoReturn:
    console.print(message)
    raise typer.Exit(EXIT_FAILED)


@app.callback()
def main(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Redis host (overrides REDIS_HOST)"),
    port: Optional[int] = typer.Option(None, "--port", help="Redis port (overrides REDIS_PORT)"),
    password: Optional[str] = typer.Option(None, "--password", help="Redis password (overrides REDIS_PASSWORD)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Extend a student's exam deadline in Redis."""
    ctx.obj = {"host": host, "port": port, "password": password}
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s: %(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@app.command("run")
def cmd_run(ctx: typer.Context) -> None:
    """Interactive session: pick a student, an exam, and minutes to add."""
    with StoreClient(_settings(ctx)) as store:
        code = run_session(store, Prompter(console))
    raise typer.Exit(code)


@app.command("extend")
def cmd_extend(
    ctx: typer.Context,
    student: str = typer.Option(..., "--student", "-s", help="Student email or matric number"),
    exam: str = typer.Option(..., "--exam", "-e", help="Exam ID"),
    minutes: int = typer.Option(..., "--minutes", "-m", min=1, help="Minutes to add (positive)"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON on stdout"),
) -> None:
    """Extend one attempt without prompting."""
    with StoreClient(_settings(ctx)) as store:
        try:
            found = store.require_student(student)
        except RecordNotFound as e:
            _fail(f"[yellow]{escape(str(e))}[/yellow]")
        except StoreConnectionError as e:
            _fail(f"[red]Redis connection failed:[/red] {escape(str(e))}")
        except StoreError as e:
            _fail(f"[red]Error:[/red] {escape(str(e))}")

        result = extend_exam_time(store, found.id, exam, minutes)

    if as_json:
        typer.echo(json.dumps(result.to_dict()))
    print_result(result, console)
    if not result.ok:
        raise typer.Exit(EXIT_FAILED)


@app.command("exams")
def cmd_exams(
    ctx: typer.Context,
    student: str = typer.Argument(help="Student email or matric number"),
) -> None:
    """List a student's exams."""
    with StoreClient(_settings(ctx)) as store:
        try:
            found = store.require_student(student)
            choices = store.fetch_student_exams(found.id)
        except RecordNotFound as e:
            _fail(f"[yellow]{escape(str(e))}[/yellow]")
        except StoreConnectionError as e:
            _fail(f"[red]Redis connection failed:[/red] {escape(str(e))}")
        except StoreError as e:
            _fail(f"[red]Error:[/red] {escape(str(e))}")

    if not choices:
        console.print(f"No exams found for student {escape(found.display_name)}.")
        return
    render_exam_table(choices, f"Exams: {found.display_name} (ID: {found.id})", console)


@app.command("show")
def cmd_show(
    ctx: typer.Context,
    student: str = typer.Argument(help="Student email or matric number"),
    exam: str = typer.Argument(help="Exam ID"),
) -> None:
    """Show one exam attempt record."""
    with StoreClient(_settings(ctx)) as store:
        try:
            found = store.require_student(student)
            attempt = store.require_exam_attempt(found.id, exam)
        except RecordNotFound as e:
            _fail(f"[yellow]{escape(str(e))}[/yellow]")
        except StoreConnectionError as e:
            _fail(f"[red]Redis connection failed:[/red] {escape(str(e))}")
        except StoreError as e:
            _fail(f"[red]Error:[/red] {escape(str(e))}")

    render_attempt(attempt, console)


@app.command("ping")
def cmd_ping(ctx: typer.Context) -> None:
    """Check that the configured Redis store is reachable."""
    settings = _settings(ctx)
    with StoreClient(settings) as store:
        try:
            store.connect()
        except StoreConnectionError as e:
            _fail(f"[red]Redis connection failed:[/red] {escape(str(e))}")
    console.print(f"[green]Connected to Redis[/green] at {settings.address}")


if __name__ == "__main__":
    app()
