"""
app/services/movie_import_service.py

Service layer for streaming movie CSV imports.

One import run wires the stream decoder, the row validator and the batch
committer into a single pass over the input:

    idle -> decoding -> streaming -> draining -> summarizing -> closed

``streaming`` covers the interleaved transform / accumulate / flush work.
States only move forward; ``closed`` is reached from any state on every exit
path, after the keep-alive job, the flush worker and the storage session
have been released.

Row and record failures never escape as exceptions: they are counted and
sampled into the ``ImportSummary``. Only header validation failures and a
stream failure before anything was stored are raised to the caller.
"""

from __future__ import annotations

import io
import logging
import time
from collections.abc import Callable
from enum import Enum
from functools import lru_cache
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from app.config import (
    CSVDialectSettings,
    MovieImportSettings,
    get_csv_dialect_settings,
    get_movie_import_settings,
)
from app.domain.movie import BATCH_LEVEL_ROW, ImportSummary
from app.logging_utils import log_event
from app.parsing.csv_decoder import CSVStreamDecoder, CSVStreamError
from app.repositories.movie_repository import MovieRepository, MovieStorageError, MovieStore
from app.services.batch_committer import BatchCommitter, ImportErrorLog
from app.services.keepalive import StorageKeepAlive
from app.validators.csv_validator import MovieRowValidator
from app.validators.header_validator import CSVHeaderValidator
from db.session import SessionLocal

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVHeaderValidationError(ValueError):
    """
    Raised when the CSV header row is missing required columns or unreadable.
    """


class MovieImportError(RuntimeError):
    """
    Raised when an import fails before any record could be stored.
    """


# ---------------------------------------------------------------------------
# Import run
# ---------------------------------------------------------------------------


class ImportState(str, Enum):
    IDLE = "idle"
    DECODING = "decoding"
    STREAMING = "streaming"
    DRAINING = "draining"
    SUMMARIZING = "summarizing"
    CLOSED = "closed"


_STATE_ORDER: tuple[ImportState, ...] = tuple(ImportState)


class MovieImportRun:
    """
    One single-use import over one input stream.

    The run owns its store: the store is closed when ``execute`` returns or
    raises.
    """

    def __init__(
        self,
        *,
        store: MovieStore,
        settings: MovieImportSettings | None = None,
        dialect: CSVDialectSettings | None = None,
        row_validator: MovieRowValidator | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._settings = settings or MovieImportSettings()
        self._row_validator = row_validator or MovieRowValidator()
        self._clock = clock

        self._error_log = ImportErrorLog(
            max_retained=self._settings.max_retained_errors,
            log_errors=self._settings.log_row_errors,
        )
        self._committer = BatchCommitter(
            store=store,
            error_log=self._error_log,
            batch_size=self._settings.batch_size,
            max_attempts=self._settings.max_attempts,
            retry_delay_seconds=self._settings.retry_delay_seconds,
            sleep=sleep,
        )
        self._keepalive = StorageKeepAlive(
            store,
            interval_seconds=self._settings.keepalive_interval_seconds,
        )
        self._decoder = CSVStreamDecoder.from_settings(
            dialect or CSVDialectSettings(),
            on_malformed_row=self._record_malformed_row,
        )

        self._state = ImportState.IDLE
        self._history: list[ImportState] = [ImportState.IDLE]
        self._rows_seen = 0

    @property
    def state(self) -> ImportState:
        return self._state

    @property
    def history(self) -> tuple[ImportState, ...]:
        return tuple(self._history)

    def execute(self, stream: Any) -> ImportSummary:
        """
        Stream ``stream`` into storage and return the import summary.

        Raises:
            MovieImportError: if the stream fails and nothing was stored.
        """

        if self._state is not ImportState.IDLE:
            raise RuntimeError("An import run can only be executed once.")

        started = self._clock()
        logger.info(
            "Movie import started batch_size=%d max_attempts=%d",
            self._settings.batch_size,
            self._settings.max_attempts,
        )

        try:
            self._keepalive.start()
            self._transition(ImportState.DECODING)

            stream_error: CSVStreamError | None = None
            try:
                self._consume(stream)
            except CSVStreamError as exc:
                stream_error = exc
                logger.warning(
                    "Input stream failed after row %d: %s",
                    self._rows_seen,
                    exc,
                )

            self._transition(ImportState.DRAINING)
            self._committer.drain()

            if stream_error is not None:
                committed = self._committer.committed_count
                if committed == 0:
                    raise MovieImportError(f"Movie import failed: {stream_error}") from stream_error
                self._error_log.record(
                    BATCH_LEVEL_ROW,
                    f"Input stream interrupted after row {self._rows_seen}: {stream_error}",
                )
                log_event(
                    logger,
                    logging.WARNING,
                    "movie_import.interrupted",
                    rows_seen=self._rows_seen,
                    committed=committed,
                )

            self._transition(ImportState.SUMMARIZING)
            return self._summarize(started, interrupted=stream_error is not None)
        finally:
            self._close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _consume(self, stream: Any) -> None:
        progress_interval = self._settings.progress_log_interval_seconds
        last_progress = self._clock()

        for decoded in self._decoder.iter_rows(stream):
            if self._state is ImportState.DECODING:
                self._transition(ImportState.STREAMING)
                logger.debug("First row sample: %r", decoded.values)

            self._rows_seen = decoded.row_number
            now = self._clock()
            if now - last_progress >= progress_interval:
                logger.info(
                    "Movie import progress row=%d committed=%d errors=%d",
                    decoded.row_number,
                    self._committer.committed_count,
                    self._error_log.count,
                )
                last_progress = now

            record, errors = self._row_validator.validate_row(
                decoded.values,
                row_number=decoded.row_number,
            )
            if errors:
                for error in errors:
                    self._error_log.add(error)
                continue
            if record is None:
                self._error_log.record(
                    decoded.row_number,
                    "Row could not be converted into a movie record.",
                )
                continue

            self._committer.add(decoded.row_number, record)

    def _record_malformed_row(self, row_number: int, message: str) -> None:
        self._rows_seen = row_number
        self._error_log.record(row_number, message)

    def _summarize(self, started: float, *, interrupted: bool) -> ImportSummary:
        processed = self._committer.committed_count
        summary = ImportSummary(
            success=processed > 0 or self._rows_seen == 0,
            processed_count=processed,
            error_count=self._error_log.count,
            elapsed_ms=int((self._clock() - started) * 1000),
            sample_errors=tuple(self._error_log.sample(self._settings.max_sample_errors)),
            interrupted=interrupted,
        )
        log_event(
            logger,
            logging.INFO,
            "movie_import.completed",
            processed=summary.processed_count,
            errors=summary.error_count,
            rows_seen=self._rows_seen,
            elapsed_ms=summary.elapsed_ms,
            interrupted=interrupted,
        )
        return summary

    def _transition(self, state: ImportState) -> None:
        if self._state is ImportState.CLOSED:
            raise RuntimeError("Import run is already closed.")
        if state is not ImportState.CLOSED and _STATE_ORDER.index(state) <= _STATE_ORDER.index(
            self._state
        ):
            raise RuntimeError(
                f"Invalid import state transition {self._state.value} -> {state.value}."
            )
        logger.debug("Movie import state %s -> %s", self._state.value, state.value)
        self._state = state
        self._history.append(state)

    def _close(self) -> None:
        try:
            self._keepalive.stop()
            self._committer.close()
        finally:
            try:
                self._store.close()
            except (MovieStorageError, SQLAlchemyError) as exc:
                logger.warning("Closing movie storage failed: %s", exc)
            if self._state is not ImportState.CLOSED:
                self._transition(ImportState.CLOSED)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class MovieImportService:
    """
    Validates CSV headers, then runs one streaming import per call.
    """

    def __init__(
        self,
        *,
        store_factory: Callable[[], MovieStore],
        settings: MovieImportSettings | None = None,
        dialect: CSVDialectSettings | None = None,
        header_validator: CSVHeaderValidator | None = None,
        row_validator: MovieRowValidator | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store_factory = store_factory
        self._settings = settings or MovieImportSettings()
        self._dialect = dialect or CSVDialectSettings()
        self._header_validator = header_validator or CSVHeaderValidator.from_settings(self._dialect)
        self._row_validator = row_validator or MovieRowValidator()
        self._sleep = sleep

    def import_csv(self, stream: Any) -> ImportSummary:
        """
        Validate headers and import one CSV stream.

        Seekable streams are rewound after the header check; other streams
        are buffered once and replayed from memory.

        Raises:
            CSVHeaderValidationError: if required columns are missing or the
                header row cannot be read.
            MovieImportError: if storage is unavailable or the stream fails
                before anything was stored.
        """

        replayable = self._validate_headers(stream)

        try:
            store = self._store_factory()
        except (MovieStorageError, SQLAlchemyError) as exc:
            raise MovieImportError("Movie storage is unavailable.") from exc

        run = MovieImportRun(
            store=store,
            settings=self._settings,
            dialect=self._dialect,
            row_validator=self._row_validator,
            sleep=self._sleep,
        )
        return run.execute(replayable)

    def _validate_headers(self, stream: Any) -> Any:
        if _is_seekable(stream):
            start = stream.tell()
            message = self._header_validator.validate(stream)
            stream.seek(start)
            replayable = stream
        else:
            try:
                payload = stream.read()
            except (OSError, ValueError) as exc:
                raise CSVHeaderValidationError(f"CSV file could not be read: {exc}") from exc
            message = self._header_validator.validate_bytes(payload)
            replayable = io.BytesIO(payload) if isinstance(payload, bytes) else io.StringIO(payload)

        if message is not None:
            logger.warning("CSV header validation failed: %s", message)
            raise CSVHeaderValidationError(message)
        return replayable


def _is_seekable(stream: Any) -> bool:
    seekable = getattr(stream, "seekable", None)
    try:
        return bool(seekable is not None and seekable())
    except (OSError, ValueError):
        return False


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def _build_movie_repository() -> MovieRepository:
    return MovieRepository(SessionLocal)


@lru_cache(maxsize=1)
def get_movie_import_service() -> MovieImportService:
    """
    Build and cache the import service with env-driven settings.
    """

    return MovieImportService(
        store_factory=_build_movie_repository,
        settings=get_movie_import_settings(),
        dialect=get_csv_dialect_settings(),
    )
