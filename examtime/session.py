"""Interactive terminal session.

Prompts for a student login, an exam number and a number of minutes, then
extends that attempt. Typing 'exit' at any prompt ends the session without
writing anything.

Data flow:
1. Connect to the store (fatal on failure)
2. Prompt for login until a student record is found
3. List the student's exams, prompt for a number until it matches a row
4. Prompt for minutes until a positive integer is given
5. Extend the attempt and report the result
"""

from __future__ import annotations

from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from examtime.display import print_exam_menu, print_result
from examtime.extension import extend_exam_time
from examtime.models import ExamChoice, Student
from examtime.store import StoreClient, StoreConnectionError, StoreError, ValidationFailure

CANCEL_TOKEN = "exit"

LOGIN_PROMPT = f"Enter student email (type '{CANCEL_TOKEN}' to quit): "
SELECTION_PROMPT = f"Enter the number of the exam to select (type '{CANCEL_TOKEN}' to quit): "
MINUTES_PROMPT = f"Enter amount of time to add in minutes (type '{CANCEL_TOKEN}' to quit): "

EXIT_OK = 0
EXIT_FAILED = 1


class SessionCancelled(Exception):
    """The user asked to leave the session."""


class Prompter:
    """Line-based prompts on a rich Console.

    Reads from `stream` when given (tests, piped input), otherwise from the
    terminal. The cancel token, end of input and Ctrl-C all raise
    SessionCancelled.
    """

    def __init__(self, console: Console, stream: Optional[TextIO] = None) -> None:
        self.console = console
        self.stream = stream

    def ask(self, prompt: str) -> str:
        try:
            raw = self.console.input(escape(prompt), stream=self.stream)
        except (EOFError, KeyboardInterrupt):
            raise SessionCancelled() from None
        # readline() returns '' only at end of stream
        if self.stream is not None and raw == "":
            raise SessionCancelled()
        answer = raw.strip()
        if answer.lower() == CANCEL_TOKEN:
            raise SessionCancelled()
        return answer


def parse_selection(text: str, choices: list[ExamChoice]) -> ExamChoice:
    """Match a typed menu number to its ExamChoice.

    Raises:
        ValidationFailure: not an integer, or no row has that number.
    """
    try:
        number = int(text, 10)
    except ValueError:
        raise ValidationFailure(f"Not a number: {text!r}") from None
    for choice in choices:
        if choice.index == number:
            return choice
    raise ValidationFailure(f"No exam numbered {number}")


def parse_minutes(text: str) -> int:
    """Parse a positive whole number of minutes.

    Raises:
        ValidationFailure: not an integer, or not greater than zero.
    """
    try:
        minutes = int(text, 10)
    except ValueError:
        raise ValidationFailure(f"Not a number: {text!r}") from None
    if minutes <= 0:
        raise ValidationFailure(f"Minutes must be positive, got {minutes}")
    return minutes


def _ask_student(store: StoreClient, prompter: Prompter) -> Student:
    console = prompter.console
    while True:
        login = prompter.ask(LOGIN_PROMPT)
        if not login:
            continue
        try:
            student = store.fetch_student_login(login)
        except StoreConnectionError:
            raise
        except StoreError as e:
            console.print(f"[red]Error fetching student {escape(login)}:[/red] {escape(str(e))}")
            student = None
        if student:
            return student
        console.print(f'Student with email "{escape(login)}" not found. Please try again.')


def _ask_exam(choices: list[ExamChoice], prompter: Prompter) -> ExamChoice:
    while True:
        text = prompter.ask(SELECTION_PROMPT)
        try:
            return parse_selection(text, choices)
        except ValidationFailure:
            prompter.console.print(
                "[yellow]Invalid selection.[/yellow] Please enter a valid number from the list."
            )


def _ask_minutes(prompter: Prompter) -> int:
    while True:
        text = prompter.ask(MINUTES_PROMPT)
        try:
            return parse_minutes(text)
        except ValidationFailure:
            prompter.console.print(
                "[yellow]Invalid input.[/yellow] Please enter a positive number for minutes."
            )


def run_session(store: StoreClient, prompter: Prompter) -> int:
    """Run one interactive extension session and return the exit code.

    The caller owns the store; it is released when the caller's `with`
    block ends, whether the session finished, was cancelled or failed.
    """
    console = prompter.console
    try:
        store.connect()
        console.print(f"[green]Connected to Redis[/green] at {store.settings.address}")

        student = _ask_student(store, prompter)
        console.print(
            f"\nFound student: [bold]{escape(student.display_name)}[/bold] (ID: {escape(student.id)})"
        )

        try:
            choices = store.fetch_student_exams(student.id)
        except StoreConnectionError:
            raise
        except StoreError as e:
            console.print(f"[red]Error fetching exams for student {escape(student.id)}:[/red] {escape(str(e))}")
            return EXIT_FAILED

        if not choices:
            console.print(f"No exams found for student {escape(student.display_name)}.")
            return EXIT_OK

        print_exam_menu(choices, console)
        choice = _ask_exam(choices, prompter)
        console.print(f"\nYou selected: [bold]{escape(choice.title)}[/bold]")

        minutes = _ask_minutes(prompter)
        result = extend_exam_time(store, student.id, choice.exam_id, minutes)
        print_result(result, console)
        return EXIT_OK if result.ok else EXIT_FAILED

    except SessionCancelled:
        console.print("\nExiting the application...")
        return EXIT_OK
    except StoreConnectionError as e:
        console.print(f"[red]Redis connection failed:[/red] {escape(str(e))}")
        return EXIT_FAILED
