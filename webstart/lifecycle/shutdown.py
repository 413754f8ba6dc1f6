"""Graceful shutdown coordinator driven by termination signals.

The coordinator races every monitored signal. The first one to arrive wins
and the rest are ignored; there is no queueing or counting. After the
winning signal it runs the optional shutdown hook once, sleeps for the
delay the hook asked for, then completes. Completion is what tells the
serving loop to stop.

A second signal during the drain delay has no fast path: the delay always
runs to the end. Hooks must return in bounded time. A hook that raises is
logged with its traceback and shutdown proceeds without a delay. A hook
that never returns keeps the service up forever.
"""

import enum
import logging
import signal
import threading
import time
from typing import Callable, Iterable, Optional, Protocol, Union, runtime_checkable

from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.errors import SignalInstallError

SHUTDOWN_LOGGER = CorrelationLoggerAdapter(logging.getLogger("webstart.shutdown"), {})

DEFAULT_SIGNAL_NAMES = ("SIGINT", "SIGTERM", "SIGQUIT")


class ShutdownState(enum.Enum):
    """Progress of a single shutdown sequence."""

    WAITING = "waiting"
    SIGNAL_RECEIVED = "signal_received"
    HOOK_RUNNING = "hook_running"
    DRAINING = "draining"
    DONE = "done"


@runtime_checkable
class ShutdownHook(Protocol):
    """Capability invoked once when shutdown begins.

    ``drain`` returns how many milliseconds the service should keep serving
    before the listener stops. Zero means stop right away.
    """

    def drain(self) -> int:
        """Run shutdown side effects and return the requested delay in ms."""


class CallableShutdownHook:
    """Adapts a zero-argument function to the ShutdownHook capability."""

    def __init__(self, func: Callable[[], int]) -> None:
        self._func = func

    def drain(self) -> int:
        return self._func()


class FixedDelayHook:
    """Hook that always asks for the same drain delay."""

    def __init__(self, delay_ms: int) -> None:
        self.delay_ms = delay_ms

    def drain(self) -> int:
        return self.delay_ms


HookLike = Union[ShutdownHook, Callable[[], int]]


def as_shutdown_hook(hook: Optional[HookLike]) -> Optional[ShutdownHook]:
    """Return the hook as a ShutdownHook, wrapping plain callables."""
    if hook is None or isinstance(hook, ShutdownHook):
        return hook
    if callable(hook):
        return CallableShutdownHook(hook)
    raise TypeError(f"Unsupported shutdown hook: {hook!r}")


def default_signals() -> tuple[signal.Signals, ...]:
    """Termination signals monitored on this platform."""
    return tuple(
        getattr(signal, name) for name in DEFAULT_SIGNAL_NAMES if hasattr(signal, name)
    )


def signal_name(signum: int) -> str:
    """Human readable name for a signal number."""
    try:
        return signal.Signals(signum).name
    except ValueError:
        return str(signum)


class GracefulShutdown:
    """Waits for the first termination signal and runs the shutdown sequence."""

    def __init__(
        self,
        hook: Optional[HookLike] = None,
        signals: Optional[Iterable[int]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> None:
        self._hook = as_shutdown_hook(hook)
        self._signals = tuple(signals) if signals is not None else default_signals()
        self._on_complete = on_complete
        # Reentrant: the signal handler can interrupt the main thread holding it.
        # The Events are not, so while handlers are installed the main thread
        # must not call cancel() or wait().
        self._lock = threading.RLock()
        self._wake = threading.Event()
        self._done = threading.Event()
        self._state = ShutdownState.WAITING
        self._winner: Optional[int] = None
        self._claimed = False
        self._cancelled = False
        self._previous_handlers: dict[int, object] = {}
        self._thread: Optional[threading.Thread] = None
        self.delay_ms = 0
        self.hook_error: Optional[BaseException] = None

    @property
    def state(self) -> ShutdownState:
        with self._lock:
            return self._state

    @property
    def winner(self) -> Optional[int]:
        """Signal number that started shutdown, if any."""
        with self._lock:
            return self._winner

    @property
    def signals(self) -> tuple[int, ...]:
        return self._signals

    def is_done(self) -> bool:
        return self._done.is_set()

    def install(self) -> None:
        """Register the signal handlers; must run on the main thread."""
        for signum in self._signals:
            try:
                previous = signal.signal(signum, self._handle_signal)
            except (ValueError, OSError, RuntimeError) as error:
                self.restore()
                name = signal_name(signum)
                SHUTDOWN_LOGGER.critical(
                    "Failed to install signal handler",
                    extra={
                        "event": "signal_install_failed",
                        "signal": name,
                        "error": str(error),
                    },
                )
                raise SignalInstallError(name, str(error)) from error
            self._previous_handlers[signum] = previous
        SHUTDOWN_LOGGER.debug(
            "Signal handlers installed",
            extra={
                "event": "signals_installed",
                "signal": [signal_name(s) for s in self._signals],
            },
        )

    def restore(self) -> None:
        """Put back whatever handlers were registered before install()."""
        for signum, previous in list(self._previous_handlers.items()):
            try:
                signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
            except (ValueError, OSError) as error:
                SHUTDOWN_LOGGER.warning(
                    "Failed to restore signal handler",
                    extra={
                        "event": "signal_restore_failed",
                        "signal": signal_name(signum),
                        "error": str(error),
                    },
                )
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, _frame) -> None:
        self.notify(signum)

    def notify(self, signum: int) -> bool:
        """Report a termination signal; True only for the first one."""
        name = signal_name(signum)
        with self._lock:
            won = self._winner is None and not self._cancelled
            if won:
                self._winner = signum
                self._state = ShutdownState.SIGNAL_RECEIVED
        if not won:
            SHUTDOWN_LOGGER.info(
                "Termination signal ignored, shutdown already under way",
                extra={"event": "shutdown_signal_ignored", "signal": name},
            )
            return False
        SHUTDOWN_LOGGER.info(
            f"{name} received",
            extra={"event": "shutdown_signal", "signal": name},
        )
        self._wake.set()
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown completes; False on timeout or cancellation."""
        if not self._wake.wait(timeout):
            return False
        with self._lock:
            if self._winner is None:
                return False
            run_here = not self._claimed
            self._claimed = True
        if run_here:
            self._run_sequence()
            return True
        return self._done.wait(timeout)

    def start(self) -> threading.Thread:
        """Run wait() on a background thread and return it."""
        thread = threading.Thread(
            target=self.wait, name="shutdown-coordinator", daemon=True
        )
        self._thread = thread
        thread.start()
        return thread

    def cancel(self) -> None:
        """Release waiters if no signal has won yet; a started drain still runs.

        On the main thread call restore() first: the signal handler sets the
        same Event and would deadlock if it interrupted this call.
        """
        with self._lock:
            self._cancelled = True
        self._wake.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _set_state(self, state: ShutdownState) -> None:
        with self._lock:
            self._state = state

    def _run_sequence(self) -> None:
        started = time.monotonic()
        delay_ms = 0
        if self._hook is not None:
            self._set_state(ShutdownState.HOOK_RUNNING)
            delay_ms = self._invoke_hook()
        self.delay_ms = delay_ms

        if delay_ms > 0:
            self._set_state(ShutdownState.DRAINING)
            SHUTDOWN_LOGGER.info(
                "Draining before shutdown",
                extra={"event": "drain_started", "delay_ms": delay_ms},
            )
            deadline = time.monotonic() + delay_ms / 1000
            remaining = deadline - time.monotonic()
            while remaining > 0:
                time.sleep(remaining)
                remaining = deadline - time.monotonic()

        self._set_state(ShutdownState.DONE)
        SHUTDOWN_LOGGER.info(
            "Shutting down server...",
            extra={
                "event": "shutdown_requested",
                "delay_ms": delay_ms,
                "elapsed_ms": round((time.monotonic() - started) * 1000, 3),
            },
        )
        try:
            if self._on_complete is not None:
                self._on_complete()
        finally:
            self._done.set()

    def _invoke_hook(self) -> int:
        try:
            requested = self._hook.drain()
        except Exception as error:  # pylint: disable=broad-except
            self.hook_error = error
            SHUTDOWN_LOGGER.error(
                "Shutdown hook failed, continuing without drain delay",
                extra={
                    "event": "shutdown_hook_failed",
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
                exc_info=True,
            )
            return 0

        try:
            delay_ms = int(requested)
        except (TypeError, ValueError):
            SHUTDOWN_LOGGER.warning(
                "Shutdown hook returned a non-numeric delay, ignoring it",
                extra={"event": "shutdown_hook_invalid", "delay_ms": repr(requested)},
            )
            return 0
        if delay_ms < 0:
            SHUTDOWN_LOGGER.warning(
                "Shutdown hook returned a negative delay, ignoring it",
                extra={"event": "shutdown_hook_invalid", "delay_ms": delay_ms},
            )
            return 0
        SHUTDOWN_LOGGER.info(
            "Shutdown hook completed",
            extra={"event": "shutdown_hook_completed", "delay_ms": delay_ms},
        )
        return delay_ms
