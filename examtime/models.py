"""Data models for examtime.

Student, ExamChoice, ExamAttempt and ExtensionResult: the typed structures
that flow through store → extension → session/CLI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


def format_id(value: Any) -> str:
    """Render a record id the way it appears inside composite keys.

    Integral floats lose their fraction (42.0 → '42') so ids decoded from
    JSON numbers match ids typed on the command line.
    """
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def attempt_key(student_id: Any, exam_id: Any) -> str:
    """Composite field name of an attempt: '<studentId>-<examId>'."""
    return f"{format_id(student_id)}-{format_id(exam_id)}"


@dataclass
class Student:
    """A student login record."""

    id: str
    name: str = ""
    email: str = ""
    raw: dict = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.id

    @classmethod
    def from_dict(cls, d: dict) -> Optional[Student]:
        """Build from a decoded login record. Returns None without an id."""
        if not isinstance(d, dict) or not d.get("id"):
            return None
        return cls(
            id=format_id(d["id"]),
            name=str(d.get("name") or ""),
            email=str(d.get("email") or ""),
            raw=d,
        )


@dataclass
class ExamChoice:
    """One numbered row of the exam menu."""

    index: int
    exam_id: str
    title: str


def exam_choices(data: Any) -> list[ExamChoice]:
    """Number the listable exams of a decoded StudentExams value.

    Accepts a list of descriptors, a dict wrapping them under 'exams', or a
    dict mapping arbitrary keys to descriptors. Descriptors without both an
    id and a title are skipped. Numbering starts at 1.
    """
    if isinstance(data, dict) and data.get("exams"):
        data = data["exams"]
    if isinstance(data, dict):
        entries = list(data.values())
    elif isinstance(data, list):
        entries = data
    else:
        return []

    choices: list[ExamChoice] = []
    for exam in entries:
        if not isinstance(exam, dict):
            continue
        if exam.get("id") and exam.get("title"):
            choices.append(ExamChoice(
                index=len(choices) + 1,
                exam_id=format_id(exam["id"]),
                title=str(exam["title"]),
            ))
    return choices


@dataclass
class ExamAttempt:
    """A student's attempt at one exam, wrapping the stored JSON object.

    The record dict is kept as decoded so fields this tool does not touch
    are written back unchanged and in their original order.
    """

    student_id: str
    exam_id: str
    record: dict

    @property
    def key(self) -> str:
        return attempt_key(self.student_id, self.exam_id)

    @property
    def is_finished(self) -> bool:
        return bool(self.record.get("isFinished"))

    @property
    def end_datetime(self) -> Optional[str]:
        value = self.record.get("endDatetime")
        return value if isinstance(value, str) else None


class ExtensionStatus(str, Enum):
    """Outcome of a time extension."""

    EXTENDED = "extended"
    NOT_FOUND = "not-found"
    INVALID = "invalid"
    FAILED = "failed"


@dataclass
class ExtensionResult:
    """What happened when extending one attempt."""

    status: ExtensionStatus
    student_id: str
    exam_id: str
    minutes: int = 0
    previous_end: str = ""
    new_end: str = ""
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == ExtensionStatus.EXTENDED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "student_id": self.student_id,
            "exam_id": self.exam_id,
            "minutes": self.minutes,
            "previous_end": self.previous_end,
            "new_end": self.new_end,
            "message": self.message,
        }
