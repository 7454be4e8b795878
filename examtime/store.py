"""Redis access for examtime.

StoreClient owns the single connection used by a run. It connects on first
use, verifies the connection with PING, and is released by leaving its
`with` block. Every operation receives the client explicitly.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional

import redis

from examtime.config import StoreSettings
from examtime.models import ExamAttempt, ExamChoice, Student, attempt_key, exam_choices, format_id

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A store command failed."""


class StoreConnectionError(StoreError):
    """The store could not be reached or refused authentication."""


class StoreDecodeError(StoreError):
    """A stored value is not valid JSON."""


class RecordNotFound(LookupError):
    """No record exists under the requested key."""

    def __init__(self, what: str, key: str) -> None:
        super().__init__(f"{what} not found: {key}")
        self.what = what
        self.key = key


class ValidationFailure(ValueError):
    """User input could not be accepted."""


def _default_factory(settings: StoreSettings) -> redis.Redis:
    return redis.Redis(
        host=settings.host,
        port=settings.port,
        password=settings.password or None,
        decode_responses=True,
    )


class StoreClient:
    """Scoped handle on the Redis store.

    Usage:
        with StoreClient(settings) as store:
            student = store.fetch_student_login("a@b.edu")
    """

    def __init__(
        self,
        settings: StoreSettings,
        factory: Optional[Callable[[StoreSettings], redis.Redis]] = None,
    ) -> None:
        self.settings = settings
        self._factory = factory or _default_factory
        self._redis: Optional[redis.Redis] = None

    def __enter__(self) -> StoreClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def is_open(self) -> bool:
        return self._redis is not None

    def connect(self) -> redis.Redis:
        """Open the connection if needed and return the redis client."""
        if self._redis is None:
            client = self._factory(self.settings)
            # NOAUTH / WRONGPASS come back as ResponseError from some servers
            try:
                client.ping()
            except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError,
                    redis.exceptions.ResponseError, OSError) as e:
                client.close()
                raise StoreConnectionError(f"{self.settings.address}: {e}") from e
            logger.debug("connected to %s", self.settings.address)
            self._redis = client
        return self._redis

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        if self._redis is not None:
            self._redis.close()
            self._redis = None
            logger.debug("disconnected from %s", self.settings.address)

    # --- Raw hash access ---

    def _hget_json(self, hash_name: str, field: str) -> Optional[Any]:
        client = self.connect()
        try:
            raw = client.hget(hash_name, field)
        except redis.exceptions.ConnectionError as e:
            raise StoreConnectionError(str(e)) from e
        except redis.exceptions.RedisError as e:
            raise StoreError(f"HGET {hash_name} {field}: {e}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreDecodeError(f"{hash_name}[{field}] is not valid JSON: {e}") from e

    def _hset_json(self, hash_name: str, field: str, value: Any) -> None:
        client = self.connect()
        # Compact separators match how the exam platform writes these records
        payload = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        try:
            client.hset(hash_name, field, payload)
        except redis.exceptions.ConnectionError as e:
            raise StoreConnectionError(str(e)) from e
        except redis.exceptions.RedisError as e:
            raise StoreError(f"HSET {hash_name} {field}: {e}") from e

    # --- Records ---

    def fetch_student_login(self, login: str) -> Optional[Student]:
        """Look a student up by email or matric number."""
        data = self._hget_json(self.settings.login_hash, login)
        if data is None:
            return None
        student = Student.from_dict(data)
        if student is None:
            logger.warning("login record %r has no id", login)
        return student

    def fetch_student_exams(self, student_id: str) -> list[ExamChoice]:
        """Return the numbered exam menu for a student (empty if none)."""
        data = self._hget_json(self.settings.exams_hash, format_id(student_id))
        return exam_choices(data)

    def fetch_exam_attempt(self, student_id: str, exam_id: str) -> Optional[ExamAttempt]:
        data = self._hget_json(self.settings.attempts_hash, attempt_key(student_id, exam_id))
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StoreDecodeError(
                f"{self.settings.attempts_hash}[{attempt_key(student_id, exam_id)}] is not a JSON object"
            )
        return ExamAttempt(student_id=format_id(student_id), exam_id=format_id(exam_id), record=data)

    def save_exam_attempt(self, attempt: ExamAttempt) -> None:
        """Overwrite the whole attempt record under its composite key."""
        self._hset_json(self.settings.attempts_hash, attempt.key, attempt.record)
        logger.debug("wrote %s[%s]", self.settings.attempts_hash, attempt.key)

    def require_student(self, login: str) -> Student:
        """Like fetch_student_login but raises RecordNotFound."""
        student = self.fetch_student_login(login)
        if student is None:
            raise RecordNotFound("Student", login)
        return student

    def require_exam_attempt(self, student_id: str, exam_id: str) -> ExamAttempt:
        attempt = self.fetch_exam_attempt(student_id, exam_id)
        if attempt is None:
            raise RecordNotFound("Exam attempt", attempt_key(student_id, exam_id))
        return attempt
