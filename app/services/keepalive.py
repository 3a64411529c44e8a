"""
app/services/keepalive.py

Periodic storage keep-alive for long-running imports.

A ``BackgroundScheduler`` runs one interval job that pings the store
independently of row throughput, so idle-timeout disconnects do not hit the
session between batches. A failed ping triggers one reconnect attempt; if
that also fails the job logs and waits for the next tick, and subsequent
commits surface their own errors.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.repositories.movie_repository import MovieStorageError, MovieStore

logger = logging.getLogger(__name__)

_JOB_ID = "movie_import_keepalive"


class StorageKeepAlive:
    """
    Starts and stops the keep-alive job for one import run.

    An interval of zero or less disables the job.
    """

    def __init__(self, store: MovieStore, *, interval_seconds: float = 30.0) -> None:
        self._store = store
        self._interval_seconds = interval_seconds
        self._scheduler: BackgroundScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    def start(self) -> None:
        if self._scheduler is not None or self._interval_seconds <= 0:
            return

        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self.ping_once,
            trigger="interval",
            seconds=self._interval_seconds,
            id=_JOB_ID,
            name="Movie import storage keep-alive",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.debug("Storage keep-alive started interval=%ss", self._interval_seconds)

    def stop(self) -> None:
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        scheduler.shutdown(wait=False)
        logger.debug("Storage keep-alive stopped")

    def ping_once(self) -> bool:
        """
        Ping the store, reconnecting once on failure. Returns True when the
        store is usable afterwards.
        """

        try:
            self._store.ping()
            logger.debug("Storage keep-alive ping succeeded")
            return True
        except MovieStorageError as exc:
            logger.warning("Storage keep-alive ping failed, reconnecting: %s", exc)

        try:
            self._store.reconnect()
            return True
        except MovieStorageError as exc:
            logger.error("Storage reconnect failed, continuing degraded: %s", exc)
            return False

    def __enter__(self) -> StorageKeepAlive:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()
