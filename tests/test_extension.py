"""Tests for the exam-time extension.

Covers the deadline arithmetic, the isFinished reset, record preservation,
and the no-write paths (missing attempt, bad input, bad timestamp).
"""

from datetime import datetime, timedelta

import pytest

from conftest import ATTEMPT, ATTEMPT_KEY, dump, stored_attempt
from examtime.extension import extend_exam_time, shift_deadline
from examtime.models import ExtensionStatus
from examtime.store import StoreClient, StoreError, ValidationFailure


class CountingStore(StoreClient):
    """StoreClient that counts attempt writes."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.writes = 0

    def save_exam_attempt(self, attempt):
        self.writes += 1
        super().save_exam_attempt(attempt)


@pytest.fixture
def counting_store(settings, redis_client):
    store = CountingStore(settings, factory=lambda s: redis_client)
    yield store
    store.close()


# --- shift_deadline ---

def test_shift_keeps_zulu_and_milliseconds():
    assert shift_deadline("2024-05-01T10:30:00.000Z", 15) == "2024-05-01T10:45:00.000Z"


def test_shift_keeps_offset_and_seconds_precision():
    assert shift_deadline("2024-05-01T23:50:00+01:00", 20) == "2024-05-02T00:10:00+01:00"


def test_shift_keeps_microseconds():
    assert shift_deadline("2024-05-01T10:30:00.123456+00:00", 1) == "2024-05-01T10:31:00.123456+00:00"


def test_shift_naive_timestamp_stays_naive():
    assert shift_deadline("2024-05-01T10:30:00", 90) == "2024-05-01T12:00:00"


def test_shift_keeps_space_separator_and_milliseconds():
    assert shift_deadline("2024-05-01 10:30:00.250", 1) == "2024-05-01 10:31:00.250"


def test_shift_keeps_space_separator_with_offset():
    assert shift_deadline("2024-05-01 10:30:00+02:00", 30) == "2024-05-01 11:00:00+02:00"


def test_shift_past_max_datetime_is_rejected():
    with pytest.raises(ValidationFailure):
        shift_deadline("2024-05-01T10:30:00.000Z", 10**10)


def test_shift_rejects_garbage():
    with pytest.raises(ValidationFailure):
        shift_deadline("tomorrow", 5)


# --- extend_exam_time ---

def test_extend_adds_exact_seconds_and_reopens(counting_store, seeded, settings):
    result = extend_exam_time(counting_store, "s1", "e1", 25)

    assert result.ok
    assert result.status == ExtensionStatus.EXTENDED
    assert counting_store.writes == 1

    after = stored_attempt(seeded, settings)
    before_end = datetime.fromisoformat(ATTEMPT["endDatetime"])
    after_end = datetime.fromisoformat(after["endDatetime"])
    assert after_end - before_end == timedelta(seconds=25 * 60)
    assert after["isFinished"] is False
    assert result.previous_end == ATTEMPT["endDatetime"]
    assert result.new_end == after["endDatetime"]


def test_extend_leaves_other_fields_identical(counting_store, seeded, settings):
    extend_exam_time(counting_store, "s1", "e1", 10)

    expected = dict(ATTEMPT, isFinished=False, endDatetime="2024-05-01T10:40:00.000Z")
    # Same key order, same compact encoding
    assert seeded.hget(settings.attempts_hash, ATTEMPT_KEY) == dump(expected)


def test_extend_twice_is_cumulative(counting_store, seeded, settings):
    extend_exam_time(counting_store, "s1", "e1", 30)
    extend_exam_time(counting_store, "s1", "e1", 30)

    after = stored_attempt(seeded, settings)
    delta = datetime.fromisoformat(after["endDatetime"]) - datetime.fromisoformat(ATTEMPT["endDatetime"])
    assert delta == timedelta(minutes=60)
    assert counting_store.writes == 2


def test_extend_missing_attempt_writes_nothing(counting_store, seeded, settings):
    result = extend_exam_time(counting_store, "s1", "e2", 10)

    assert result.status == ExtensionStatus.NOT_FOUND
    assert not result.ok
    assert counting_store.writes == 0
    assert seeded.hget(settings.attempts_hash, "s1-e2") is None


@pytest.mark.parametrize("minutes", [0, -5, "10", 2.5, True])
def test_extend_rejects_non_positive_minutes(counting_store, seeded, settings, minutes):
    result = extend_exam_time(counting_store, "s1", "e1", minutes)

    assert result.status == ExtensionStatus.INVALID
    assert counting_store.writes == 0
    assert stored_attempt(seeded, settings) == ATTEMPT


def test_extend_rejects_missing_student(counting_store, seeded):
    result = extend_exam_time(counting_store, "", "e1", 5)
    assert result.status == ExtensionStatus.INVALID
    assert counting_store.writes == 0


def test_extend_unparsable_deadline_fails_without_write(counting_store, redis_client, settings):
    redis_client.hset(settings.attempts_hash, "s1-e1", dump({"isFinished": True, "endDatetime": "soon"}))

    result = extend_exam_time(counting_store, "s1", "e1", 5)

    assert result.status == ExtensionStatus.FAILED
    assert counting_store.writes == 0
    assert stored_attempt(redis_client, settings)["isFinished"] is True


def test_extend_store_error_is_returned_not_raised(counting_store, seeded, monkeypatch):
    def boom(attempt):
        raise StoreError("READONLY You can't write against a read only replica.")

    monkeypatch.setattr(counting_store, "save_exam_attempt", boom)

    result = extend_exam_time(counting_store, "s1", "e1", 5)
    assert result.status == ExtensionStatus.FAILED
    assert "READONLY" in result.message


def test_extend_connection_failure_is_returned(settings):
    import fakeredis

    down = fakeredis.FakeServer()
    down.connected = False
    store = StoreClient(settings, factory=lambda s: fakeredis.FakeRedis(server=down))

    result = extend_exam_time(store, "s1", "e1", 5)
    assert result.status == ExtensionStatus.FAILED


def test_extend_huge_minutes_fails_without_write(counting_store, seeded, settings):
    result = extend_exam_time(counting_store, "s1", "e1", 10**10)

    assert result.status == ExtensionStatus.FAILED
    assert "out of range" in result.message
    assert counting_store.writes == 0
    assert stored_attempt(seeded, settings) == ATTEMPT
