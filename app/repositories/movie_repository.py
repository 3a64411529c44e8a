"""
app/repositories/movie_repository.py

Persistence layer for imported movie records.

One ``MovieRepository`` owns one SQLAlchemy session for the lifetime of an
import run. The session is shared by the flush worker and the keep-alive
job, so every use is serialized with a lock.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.dialects.postgresql import Insert, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.movie import MovieRecord
from db.models.movie import Movie

logger = logging.getLogger(__name__)

_IMMUTABLE_COLUMNS = frozenset({"id", "created_at"})


class MovieStorageError(RuntimeError):
    """
    Raised when the storage backend rejects or cannot complete an operation.
    """


class MovieStore(Protocol):
    """
    Storage contract used by the import pipeline.
    """

    def upsert(self, record: MovieRecord) -> None: ...

    def ping(self) -> None: ...

    def reconnect(self) -> None: ...

    def close(self) -> None: ...


def movie_payload(record: MovieRecord) -> dict[str, Any]:
    """
    Convert a ``MovieRecord`` into column values for the ``movies`` table.
    """

    return {
        "id": record.id,
        "title": record.title,
        "vote_average": record.vote_average,
        "vote_count": record.vote_count,
        "status": record.status,
        "release_date": record.release_date,
        "revenue": record.revenue,
        "runtime": record.runtime,
        "budget": record.budget,
        "imdb_id": record.imdb_id,
        "original_language": record.original_language,
        "original_title": record.original_title,
        "overview": record.overview,
        "popularity": record.popularity,
        "tagline": record.tagline,
        "genres": list(record.genres),
        "production_companies": [company.to_json() for company in record.production_companies],
        "production_countries": list(record.production_countries),
        "spoken_languages": list(record.spoken_languages),
        "cast": list(record.cast),
        "director": list(record.director),
        "director_of_photography": list(record.director_of_photography),
        "writers": list(record.writers),
        "producers": list(record.producers),
        "music_composer": list(record.music_composer),
        "imdb_rating": record.imdb_rating,
        "imdb_votes": record.imdb_votes,
        "poster_path": record.poster_path,
    }


def build_upsert_statement(payload: dict[str, Any]) -> Insert:
    """
    Build ``INSERT ... ON CONFLICT (id) DO UPDATE`` for one movie payload.
    """

    stmt = insert(Movie).values(**payload)
    updates = {
        column: stmt.excluded[column]
        for column in payload
        if column not in _IMMUTABLE_COLUMNS
    }
    updates["updated_at"] = datetime.now(timezone.utc)
    return stmt.on_conflict_do_update(index_elements=[Movie.id], set_=updates)


class MovieRepository:
    """
    Idempotent upsert-by-id storage for movie records.
    """

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._session = session_factory()
        self._lock = threading.Lock()
        self._closed = False

    def upsert(self, record: MovieRecord) -> None:
        """
        Insert or update one movie and commit.

        Raises:
            MovieStorageError: if the statement or the commit fails.
        """

        stmt = build_upsert_statement(movie_payload(record))
        with self._lock:
            self._ensure_open()
            try:
                self._session.execute(stmt)
                self._session.commit()
            except SQLAlchemyError as exc:
                self._session.rollback()
                raise MovieStorageError(f"Upsert failed for movie id={record.id}: {exc}") from exc

    def ping(self) -> None:
        """
        Run a trivial round trip to keep the connection alive.
        """

        with self._lock:
            self._ensure_open()
            try:
                self._session.execute(text("SELECT 1"))
                self._session.rollback()
            except SQLAlchemyError as exc:
                raise MovieStorageError(f"Storage ping failed: {exc}") from exc

    def reconnect(self) -> None:
        """
        Discard the current session and open a fresh one.
        """

        with self._lock:
            self._ensure_open()
            try:
                self._session.close()
            except SQLAlchemyError as exc:
                logger.warning("Closing stale session failed: %s", exc)
            try:
                self._session = self._session_factory()
            except SQLAlchemyError as exc:
                raise MovieStorageError(f"Storage reconnect failed: {exc}") from exc
        logger.info("Movie repository session reopened")

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._session.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise MovieStorageError("Movie repository is closed.")
