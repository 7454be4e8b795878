"""Shared fixtures: an in-memory Redis seeded with one student."""

import io
import json

import fakeredis
import pytest
from rich.console import Console

from examtime.config import StoreSettings
from examtime.store import StoreClient

STUDENT_LOGIN = "ada@uni.edu"
STUDENT = {"id": "s1", "name": "Ada Obi", "email": STUDENT_LOGIN}
EXAMS = [
    {"id": "e1", "title": "Calculus I"},
    {"id": "e2", "title": "Physics II"},
]
ATTEMPT_KEY = "s1-e1"
ATTEMPT = {
    "isFinished": True,
    "startDatetime": "2024-05-01T09:00:00.000Z",
    "endDatetime": "2024-05-01T10:30:00.000Z",
    "answers": {"q1": "b", "q2": ["a", "c"]},
    "score": None,
}


def dump(value) -> str:
    """Serialize the way the exam platform stores records."""
    return json.dumps(value, separators=(",", ":"))


@pytest.fixture
def settings():
    return StoreSettings()


@pytest.fixture
def server():
    return fakeredis.FakeServer()


@pytest.fixture
def redis_client(server):
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture
def seeded(redis_client, settings):
    """Seed one student with two exams and one attempt (on e1)."""
    redis_client.hset(settings.login_hash, STUDENT_LOGIN, dump(STUDENT))
    redis_client.hset(settings.exams_hash, "s1", dump(EXAMS))
    redis_client.hset(settings.attempts_hash, ATTEMPT_KEY, dump(ATTEMPT))
    return redis_client


@pytest.fixture
def store(settings, server):
    """StoreClient backed by the fake server; closed after the test."""
    client = StoreClient(
        settings,
        factory=lambda s: fakeredis.FakeRedis(server=server, decode_responses=True),
    )
    yield client
    client.close()


@pytest.fixture
def console():
    """Wide console writing to a buffer; read it with console.file.getvalue()."""
    return Console(file=io.StringIO(), width=200, color_system=None)


def stored_attempt(redis_client, settings, key=ATTEMPT_KEY):
    raw = redis_client.hget(settings.attempts_hash, key)
    return None if raw is None else json.loads(raw)
