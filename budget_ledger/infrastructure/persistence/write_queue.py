"""Serialized write queue for durable ledger writes.

In-memory ledger state is swapped immediately on every mutation; the
matching durable writes are submitted here and applied one at a time, in
submission order, by a single writer. A failing write is retried with
exponential backoff, then reported through the error callback.
"""

import logging
import queue
import sqlite3
import threading
import time
from datetime import datetime
from typing import Callable, NamedTuple

from budget_ledger.exceptions import PersistenceError
from budget_ledger.infrastructure.persistence.repository_interface import (
    RepositoryInterface,
)

logger = logging.getLogger(__name__)

WriteJob = Callable[[RepositoryInterface], None]
"""A durable write applied to the repository."""

ErrorCallback = Callable[[PersistenceError], None]
"""Called when a write definitively failed."""


class _PendingWrite(NamedTuple):
    description: str
    job: WriteJob


class WriteQueue:  # pylint: disable=too-many-instance-attributes
    """Single-writer queue applying repository writes in order."""

    MAX_BACKOFF = 5.0

    def __init__(  # pylint: disable=too-many-arguments
        self,
        repository: RepositoryInterface,
        *,
        background: bool = True,
        max_retries: int = 3,
        initial_backoff: float = 0.2,
        on_error: ErrorCallback | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """Initialize the write queue.

        Args:
            repository: Repository receiving the writes.
            background: Apply writes on a worker thread instead of inline.
            max_retries: Number of retries after the first failed attempt.
            initial_backoff: Delay in seconds before the first retry.
            on_error: Called with the error once a write gave up.
            clock: Source of the ``last_saved`` timestamps.
        """
        self._repository = repository
        self._background = background
        self._max_retries = max_retries
        self._initial_backoff = initial_backoff
        self._on_error = on_error
        self._clock = clock
        self._queue: queue.Queue[_PendingWrite | None] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()
        self._last_saved: datetime | None = None
        self._last_error: PersistenceError | None = None

    @property
    def last_saved(self) -> datetime | None:
        """Time of the last successful write."""
        return self._last_saved

    @property
    def last_error(self) -> PersistenceError | None:
        """Error of the last failed write, cleared by the next success."""
        return self._last_error

    @property
    def repository(self) -> RepositoryInterface:
        """Return the underlying repository."""
        return self._repository

    def set_error_callback(self, on_error: ErrorCallback | None) -> None:
        """Replace the callback notified of failed writes."""
        self._on_error = on_error

    def submit(self, description: str, job: WriteJob) -> None:
        """Schedule a write.

        In inline mode the write is applied before returning; errors are
        still reported through the callback rather than raised.
        """
        pending = _PendingWrite(description, job)
        if not self._background:
            self._apply(pending)
            return
        self._ensure_worker()
        self._queue.put(pending)

    def flush(self) -> None:
        """Block until every submitted write has been applied or given up."""
        if self._background:
            self._queue.join()

    def close(self) -> None:
        """Flush pending writes and stop the worker."""
        with self._worker_lock:
            if self._worker is None:
                return
            self._queue.put(None)
            self._worker.join()
            self._worker = None

    def _ensure_worker(self) -> None:
        with self._worker_lock:
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._run, name="ledger-writer", daemon=True
                )
                self._worker.start()

    def _run(self) -> None:
        while True:
            pending = self._queue.get()
            try:
                if pending is None:
                    return
                self._apply(pending)
            except Exception:  # pylint: disable=broad-exception-caught
                # Keep the worker alive for the writes queued behind this one
                logger.exception(
                    "Unexpected error in write '%s'",
                    pending.description if pending else None,
                )
            finally:
                self._queue.task_done()

    def _apply(self, pending: _PendingWrite) -> None:
        """Apply one write, retrying with backoff."""
        attempt = 0
        backoff = self._initial_backoff
        while True:
            try:
                pending.job(self._repository)
            except (PersistenceError, sqlite3.Error) as e:
                attempt += 1
                if attempt > self._max_retries:
                    error = (
                        e
                        if isinstance(e, PersistenceError)
                        else PersistenceError(str(e))
                    )
                    self._report_failure(pending, error)
                    return
                logger.warning(
                    "Write '%s' failed (attempt %d/%d): %s",
                    pending.description,
                    attempt,
                    self._max_retries + 1,
                    e,
                )
                time.sleep(backoff)
                backoff = min(backoff * 2, self.MAX_BACKOFF)
                continue
            self._last_saved = self._clock()
            self._last_error = None
            logger.debug("Write '%s' persisted", pending.description)
            return

    def _report_failure(self, pending: _PendingWrite, error: PersistenceError) -> None:
        self._last_error = error
        logger.error("Giving up on write '%s': %s", pending.description, error)
        if self._on_error is not None:
            self._on_error(error)
