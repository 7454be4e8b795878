"""Exam-time extension: push an attempt's endDatetime forward.

The attempt must already exist. Its record is rewritten in full with
isFinished forced to false and endDatetime moved by minutes * 60 seconds.
Failures come back as ExtensionResult values instead of exceptions.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta

from examtime.models import ExtensionResult, ExtensionStatus, attempt_key, format_id
from examtime.store import StoreClient, StoreError, ValidationFailure

logger = logging.getLogger(__name__)

# Fraction digits of an ISO-8601 time, e.g. '.000' in 10:30:00.000Z
_FRACTION_RE = re.compile(r"[Tt ][\d:]+[.,](\d+)")


def _timespec_for(original: str) -> str:
    match = _FRACTION_RE.search(original)
    if not match:
        return "seconds"
    return "milliseconds" if len(match.group(1)) <= 3 else "microseconds"


def shift_deadline(value: str, minutes: int) -> str:
    """Return the ISO-8601 timestamp `value` moved forward by `minutes`.

    The result keeps the input's offset, its 'Z' suffix, its date/time
    separator and its precision (seconds, milliseconds or microseconds).

    Raises:
        ValidationFailure: value is not an ISO-8601 timestamp, or the new
            deadline is past datetime.max.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"endDatetime is not an ISO-8601 timestamp: {value!r}") from None

    try:
        shifted = parsed + timedelta(seconds=minutes * 60)
    except (OverflowError, ValueError):
        raise ValidationFailure(f"endDatetime {value!r} plus {minutes} minutes is out of range") from None

    sep = value[10] if len(value) > 10 and value[10] in "Tt " else "T"
    text = shifted.isoformat(sep=sep, timespec=_timespec_for(value))
    if value.rstrip().upper().endswith("Z") and text.endswith("+00:00"):
        text = text[: -len("+00:00")] + "Z"
    return text


def extend_exam_time(
    store: StoreClient,
    student_id: str,
    exam_id: str,
    minutes: int,
) -> ExtensionResult:
    """Extend one exam attempt by `minutes`.

    Reads the attempt once and, if it exists and its deadline parses,
    writes it back once. Never creates an attempt.

    Returns:
        ExtensionResult whose status is EXTENDED on success, NOT_FOUND when
        no attempt exists, INVALID for unusable arguments and FAILED for
        store errors or an unreadable endDatetime.
    """
    student_id = format_id(student_id) if student_id is not None else ""
    exam_id = format_id(exam_id) if exam_id is not None else ""
    result = ExtensionResult(
        status=ExtensionStatus.INVALID,
        student_id=student_id,
        exam_id=exam_id,
        minutes=minutes if isinstance(minutes, int) else 0,
    )

    if not student_id or not exam_id:
        result.message = "Invalid student or exam provided."
        return result
    if isinstance(minutes, bool) or not isinstance(minutes, int) or minutes <= 0:
        result.message = f"Minutes must be a positive integer, got {minutes!r}."
        return result

    key = attempt_key(student_id, exam_id)
    try:
        attempt = store.fetch_exam_attempt(student_id, exam_id)
    except StoreError as e:
        result.status = ExtensionStatus.FAILED
        result.message = f"Error fetching student exam attempt {key}: {e}"
        return result

    if attempt is None:
        result.status = ExtensionStatus.NOT_FOUND
        result.message = (
            f"No existing exam attempt found for student {student_id} and exam {exam_id}. "
            "Cannot increase time."
        )
        return result

    previous_end = attempt.end_datetime or ""
    try:
        new_end = shift_deadline(previous_end, minutes)
    except ValidationFailure as e:
        result.status = ExtensionStatus.FAILED
        result.message = str(e)
        return result

    attempt.record["isFinished"] = False
    attempt.record["endDatetime"] = new_end

    try:
        store.save_exam_attempt(attempt)
    except StoreError as e:
        result.status = ExtensionStatus.FAILED
        result.message = f"Error updating student exam {key}: {e}"
        return result

    logger.debug("%s: %s -> %s", key, previous_end, new_end)
    result.status = ExtensionStatus.EXTENDED
    result.previous_end = previous_end
    result.new_end = new_end
    result.message = (
        f"Successfully increased time for student {student_id} on exam {exam_id} "
        f"by {minutes} minutes."
    )
    return result
