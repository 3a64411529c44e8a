"""
tests/conftest.py

Shared fixtures for the movie import tests.

Nothing here touches a real database: ``FakeMovieStore`` implements the
``MovieStore`` contract in memory and can be told to fail specific ids.
"""

from __future__ import annotations

import csv
import io
import threading
from collections.abc import Callable, Iterable, Mapping

import pytest

from app.config import MovieImportSettings
from app.domain.movie import MovieRecord
from app.repositories.movie_repository import MovieStorageError
from app.validators.header_validator import REQUIRED_HEADERS


class FakeMovieStore:
    """
    In-memory ``MovieStore``.

    ``transient_failures`` maps an id to the number of upserts that fail
    before one succeeds; ids in ``always_fail`` never succeed; ids in
    ``crash_on`` raise a non-storage error.
    """

    def __init__(
        self,
        *,
        transient_failures: Mapping[str, int] | None = None,
        always_fail: Iterable[str] = (),
        crash_on: Iterable[str] = (),
        ping_fails: bool = False,
        reconnect_fails: bool = False,
    ) -> None:
        self.records: dict[str, MovieRecord] = {}
        self.upsert_calls: list[str] = []
        self.ping_count = 0
        self.reconnect_count = 0
        self.closed = False
        self.pinged = threading.Event()
        self._transient_failures = dict(transient_failures or {})
        self._always_fail = set(always_fail)
        self._crash_on = set(crash_on)
        self._ping_fails = ping_fails
        self._reconnect_fails = reconnect_fails
        self._lock = threading.Lock()

    def upsert(self, record: MovieRecord) -> None:
        with self._lock:
            self.upsert_calls.append(record.id)
            if record.id in self._crash_on:
                raise RuntimeError(f"driver crashed on id={record.id}")
            if record.id in self._always_fail:
                raise MovieStorageError(f"constraint violation id={record.id}")
            remaining = self._transient_failures.get(record.id, 0)
            if remaining > 0:
                self._transient_failures[record.id] = remaining - 1
                raise MovieStorageError("connection reset")
            self.records[record.id] = record

    def ping(self) -> None:
        with self._lock:
            self.ping_count += 1
        self.pinged.set()
        if self._ping_fails:
            raise MovieStorageError("server closed the connection")

    def reconnect(self) -> None:
        with self._lock:
            self.reconnect_count += 1
        if self._reconnect_fails:
            raise MovieStorageError("could not connect to server")

    def close(self) -> None:
        self.closed = True


def movie_row(movie_id: str, title: str, **overrides: str) -> dict[str, str]:
    row = {
        "id": movie_id,
        "title": title,
        "vote_average": "7.5",
        "vote_count": "120",
        "status": "Released",
        "release_date": "1995-10-30",
        "revenue": "373554033",
        "runtime": "81",
        "budget": "30000000",
        "original_language": "en",
        "original_title": title,
        "genres": "Animation, Comedy",
        "production_companies": "Pixar Animation Studios",
        "cast": "Tom Hanks as Woody, Tim Allen as Buzz Lightyear",
        "director": "John Lasseter",
    }
    row.update(overrides)
    return row


def build_csv(
    rows: Iterable[Mapping[str, str]],
    *,
    headers: Iterable[str] = REQUIRED_HEADERS,
) -> bytes:
    columns = list(headers)
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({column: row.get(column, "") for column in columns})
    return buffer.getvalue().encode("utf-8")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_store() -> Callable[..., FakeMovieStore]:
    """Factory for configurable in-memory stores."""
    return FakeMovieStore


@pytest.fixture()
def store() -> FakeMovieStore:
    return FakeMovieStore()


@pytest.fixture()
def make_row() -> Callable[..., dict[str, str]]:
    return movie_row


@pytest.fixture()
def csv_payload() -> Callable[..., bytes]:
    """Builds CSV bytes with the full movie header row by default."""
    return build_csv


@pytest.fixture()
def import_settings() -> MovieImportSettings:
    """Small batches, no sleeping, no keep-alive thread."""
    return MovieImportSettings(
        batch_size=2,
        max_attempts=3,
        retry_delay_seconds=0.0,
        keepalive_interval_seconds=0.0,
        progress_log_interval_seconds=5.0,
        max_sample_errors=10,
        max_retained_errors=1000,
        log_row_errors=False,
    )
