"""Rich rendering for examtime: exam menus, attempt records, results."""

from __future__ import annotations

import json

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from examtime.models import ExamAttempt, ExamChoice, ExtensionResult, ExtensionStatus

_STATUS_STYLES = {
    ExtensionStatus.EXTENDED: "green",
    ExtensionStatus.NOT_FOUND: "yellow",
    ExtensionStatus.INVALID: "yellow",
    ExtensionStatus.FAILED: "red",
}


def print_exam_menu(choices: list[ExamChoice], console: Console) -> None:
    """Print the numbered exam list used by the interactive prompt."""
    console.print("\nAvailable Exams for this student:")
    for choice in choices:
        console.print(f"{choice.index}. {escape(choice.title)} (ID: {escape(choice.exam_id)})")


def render_exam_table(choices: list[ExamChoice], title: str, console: Console) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Title", min_width=20)
    table.add_column("Exam ID", style="green")
    for choice in choices:
        table.add_row(str(choice.index), choice.title, choice.exam_id)

    console.print()
    console.print(table)
    console.print()


def _fmt_value(value: object) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def render_attempt(attempt: ExamAttempt, console: Console) -> None:
    """Show an attempt record, deadline fields first."""
    table = Table(title=f"Attempt {attempt.key}", show_header=True, header_style="bold")
    table.add_column("Field", style="dim", min_width=16)
    table.add_column("Value")

    finished = "[red]yes[/red]" if attempt.is_finished else "[green]no[/green]"
    table.add_row("isFinished", finished)
    table.add_row("endDatetime", escape(attempt.end_datetime or "--"))
    for name, value in attempt.record.items():
        if name in ("isFinished", "endDatetime"):
            continue
        table.add_row(escape(name), escape(_fmt_value(value)))

    console.print()
    console.print(table)
    console.print()


def print_result(result: ExtensionResult, console: Console) -> None:
    """One status line for an extension, plus the old/new deadline on success."""
    style = _STATUS_STYLES.get(result.status, "white")
    console.print(f"[{style}]{escape(result.message)}[/{style}]")
    if result.ok:
        console.print(f"  endDatetime: {escape(result.previous_end)} → {escape(result.new_end)}")
