"""
app/services/batch_committer.py

Batch accumulation and per-record commit for the movie import pipeline.

Records are appended on the producer thread. When the current batch reaches
``batch_size`` it is swapped for a fresh list and handed to a single flush
worker, so decoding of the next batch continues while the previous one is
written. A lock guards flush execution (at most one flush runs at a time),
and dispatching a new flush first waits for the one in flight, which limits
read-ahead to one full batch.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from app.domain.movie import MovieRecord, RowError
from app.logging_utils import log_event
from app.repositories.movie_repository import MovieStorageError, MovieStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingRecord:
    row_number: int
    record: MovieRecord


@dataclass(frozen=True)
class CommitStats:
    """
    Point-in-time committer counters.
    """

    committed_count: int
    failed_count: int
    flush_sizes: tuple[int, ...]


class ImportErrorLog:
    """
    Thread-safe collector for row and batch errors.

    ``count`` is exact; only the first ``max_retained`` errors are kept in
    memory for the summary sample.
    """

    def __init__(self, *, max_retained: int = 1000, log_errors: bool = True) -> None:
        self._max_retained = max(1, max_retained)
        self._log_errors = log_errors
        self._errors: list[RowError] = []
        self._count = 0
        self._lock = threading.Lock()

    def record(self, row_number: int, message: str, *, record_id: str | None = None) -> None:
        self.add(RowError(row_number=row_number, message=message, record_id=record_id))

    def add(self, error: RowError) -> None:
        if self._log_errors:
            logger.warning(
                "Movie import error row=%s id=%s message=%s",
                error.row_number,
                error.record_id,
                error.message,
            )
        with self._lock:
            self._count += 1
            if len(self._errors) < self._max_retained:
                self._errors.append(error)

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def sample(self, limit: int) -> list[RowError]:
        with self._lock:
            return list(self._errors[: max(0, limit)])


class BatchCommitter:
    """
    Accumulates records and commits them batch by batch through a store.
    """

    def __init__(
        self,
        *,
        store: MovieStore,
        error_log: ImportErrorLog,
        batch_size: int = 1000,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._error_log = error_log
        self._batch_size = max(1, batch_size)
        self._max_attempts = max(1, max_attempts)
        self._retry_delay_seconds = max(0.0, retry_delay_seconds)
        self._sleep = sleep

        self._batch: list[PendingRecord] = []
        self._flush_guard = threading.Lock()
        self._stats_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="movie-flush")
        self._inflight: Future[None] | None = None

        self._committed_count = 0
        self._failed_count = 0
        self._flush_sizes: list[int] = []

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def add(self, row_number: int, record: MovieRecord) -> None:
        """
        Append one record; dispatch a background flush once the batch is full.
        """

        self._batch.append(PendingRecord(row_number=row_number, record=record))
        if len(self._batch) >= self._batch_size:
            self._dispatch_flush()

    @property
    def pending_count(self) -> int:
        return len(self._batch)

    def wait_for_inflight(self) -> None:
        """
        Block until the flush currently in flight (if any) has finished.
        """

        inflight, self._inflight = self._inflight, None
        if inflight is not None:
            inflight.result()

    def drain(self) -> None:
        """
        Finish the in-flight flush, then flush the final partial batch inline.
        """

        self.wait_for_inflight()
        if self._batch:
            batch, self._batch = self._batch, []
            self._flush(batch)

    def close(self) -> None:
        """
        Stop the flush worker. Accumulated records that were not drained are dropped.
        """

        if self._batch:
            logger.warning("Closing committer with %d undrained records", len(self._batch))
        self._executor.shutdown(wait=True)

    def __enter__(self) -> BatchCommitter:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def committed_count(self) -> int:
        with self._stats_lock:
            return self._committed_count

    def stats(self) -> CommitStats:
        with self._stats_lock:
            return CommitStats(
                committed_count=self._committed_count,
                failed_count=self._failed_count,
                flush_sizes=tuple(self._flush_sizes),
            )

    def _dispatch_flush(self) -> None:
        batch, self._batch = self._batch, []
        self.wait_for_inflight()
        self._inflight = self._executor.submit(self._flush, batch)

    # ------------------------------------------------------------------
    # Flush side
    # ------------------------------------------------------------------

    def _flush(self, batch: list[PendingRecord]) -> None:
        if not batch:
            return

        with self._flush_guard:
            started = time.monotonic()
            committed = 0
            failed = 0
            try:
                for pending in batch:
                    if self._commit_record(pending):
                        committed += 1
                    else:
                        failed += 1
            finally:
                with self._stats_lock:
                    self._committed_count += committed
                    self._failed_count += failed
                    self._flush_sizes.append(len(batch))
                    total = self._committed_count

            log_event(
                logger,
                logging.INFO,
                "movie_import.batch_committed",
                batch_size=len(batch),
                committed=committed,
                failed=failed,
                total_committed=total,
                elapsed_ms=int((time.monotonic() - started) * 1000),
            )
            if committed == 0:
                logger.warning(
                    "No records committed from a batch of %d; check data format and storage",
                    len(batch),
                )

    def _commit_record(self, pending: PendingRecord) -> bool:
        record = pending.record
        for attempt in range(1, self._max_attempts + 1):
            try:
                self._store.upsert(record)
                if attempt > 1:
                    logger.info("Upsert succeeded id=%s on attempt %d", record.id, attempt)
                return True
            except MovieStorageError as exc:
                if attempt >= self._max_attempts:
                    logger.error(
                        "Upsert failed id=%s row=%s after %d attempt(s): %s",
                        record.id,
                        pending.row_number,
                        attempt,
                        exc,
                    )
                    self._error_log.record(
                        pending.row_number,
                        f"Failed to store movie id={record.id}: {exc}",
                        record_id=record.id,
                    )
                    return False

                logger.warning(
                    "Upsert failed id=%s, retrying (%d/%d): %s",
                    record.id,
                    attempt,
                    self._max_attempts,
                    exc,
                )
                self._sleep(self._retry_delay_seconds * attempt)
            except Exception as exc:  # noqa: BLE001
                # Non-storage errors fail the record without a retry.
                logger.exception(
                    "Unexpected upsert error id=%s row=%s",
                    record.id,
                    pending.row_number,
                )
                self._error_log.record(
                    pending.row_number,
                    f"Unexpected error storing movie id={record.id}: {exc}",
                    record_id=record.id,
                )
                return False
        return False
