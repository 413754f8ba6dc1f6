"""Typed failures surfaced by the service lifecycle."""

from typing import Optional


class WebstartError(Exception):
    """Base class for lifecycle failures reported to the embedding application."""


class BindError(WebstartError):
    """The listening socket could not be bound; startup is aborted."""

    def __init__(self, address: tuple[str, int], reason: str) -> None:
        self.address = address
        self.reason = reason
        host, port = address
        super().__init__(f"Failed to bind {host}:{port}: {reason}")


class SignalInstallError(WebstartError):
    """A termination signal handler could not be registered."""

    def __init__(self, signal_name: str, reason: str) -> None:
        self.signal_name = signal_name
        self.reason = reason
        super().__init__(f"Failed to install {signal_name} handler: {reason}")


class ServingError(WebstartError):
    """The serving loop stopped because of an I/O failure."""

    def __init__(self, reason: str, errno: Optional[int] = None) -> None:
        self.reason = reason
        self.errno = errno
        super().__init__(f"Web server error: {reason}")


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds the configured size limit."""
