"""Serving-loop state shared between the accept loop, workers and shutdown."""

import logging
import threading
import time
from typing import Optional

from webstart.domain.correlation_id import CorrelationLoggerAdapter

LIFECYCLE_LOGGER = CorrelationLoggerAdapter(logging.getLogger("webstart.lifecycle"), {})


class ServerLifecycle:
    """Tracks whether the service is serving or draining, and its workers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._serving_event = threading.Event()
        self._draining_event = threading.Event()
        self._workers: set[threading.Thread] = set()
        self._stop_reason: Optional[str] = None

    def mark_serving(self) -> None:
        """Record that the accept loop is running."""
        self._serving_event.set()

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop has started; False on timeout."""
        return self._serving_event.wait(timeout)

    def should_stop(self) -> bool:
        """Check if the accept loop should stop taking new connections."""
        return self._draining_event.is_set()

    def is_draining(self) -> bool:
        """Check if the service is shutting down."""
        return self._draining_event.is_set()

    @property
    def stop_reason(self) -> Optional[str]:
        """Why draining began, or None while serving normally."""
        return self._stop_reason

    def begin_draining(self, reason: str = "shutdown") -> None:
        """Stop accepting new connections; only the first call is recorded."""
        with self._lock:
            if self._draining_event.is_set():
                return
            self._stop_reason = reason
            self._draining_event.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown",
            extra={"event": "draining_started", "state": reason},
        )

    def register_worker(self, thread: threading.Thread) -> None:
        """Register a worker thread for tracking."""
        with self._lock:
            self._workers.add(thread)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        """Remove a worker thread from tracking."""
        with self._lock:
            self._workers.discard(thread)

    def active_worker_count(self) -> int:
        """Return the number of currently tracked worker threads."""
        with self._lock:
            return len(self._workers)

    def wait_for_workers(self, timeout: float) -> bool:
        """Wait for in-flight connections to finish within the timeout."""
        deadline = time.monotonic() + timeout
        while True:
            with self._lock:
                self._workers = {w for w in self._workers if w.is_alive()}
                active_workers = list(self._workers)
            if not active_workers:
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                LIFECYCLE_LOGGER.warning(
                    "Shutdown grace period exceeded",
                    extra={
                        "event": "grace_exceeded",
                        "remaining_workers": len(active_workers),
                    },
                )
                return False
            for worker in active_workers:
                worker.join(timeout=min(0.1, remaining))
                if time.monotonic() >= deadline:
                    break
