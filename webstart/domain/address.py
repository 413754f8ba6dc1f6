"""Client-facing service address and the slot it is published into."""

import threading
from dataclasses import dataclass

WILDCARD_HOSTS = frozenset({"0.0.0.0", "::", ""})
DISPLAY_HOST = "localhost"


@dataclass(frozen=True)
class ServiceAddress:
    """Address a client can open; built once per start and never mutated."""

    scheme: str
    host: str
    port: int
    app_path: str = ""

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.app_path}"


def display_host(bind_host: str) -> str:
    """Map a wildcard bind address to a name a client can reach."""
    if bind_host in WILDCARD_HOSTS:
        return DISPLAY_HOST
    return bind_host


def normalize_app_path(app_path: str) -> str:
    """Ensure a non-empty application path starts with a slash."""
    if not app_path:
        return ""
    return app_path if app_path.startswith("/") else f"/{app_path}"


def compose_service_address(
    host: str, port: int, secure: bool, app_path: str = ""
) -> ServiceAddress:
    """Derive the URL-facing address of the service from its bind settings."""
    return ServiceAddress(
        scheme="https" if secure else "http",
        host=display_host(host),
        port=port,
        app_path=normalize_app_path(app_path),
    )


class DisplayState:
    """Single slot holding the rendered service address.

    Empty until the lifecycle entry point publishes the address, which
    happens once per start before any request is served. Handlers read it
    concurrently from worker threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = ""

    def publish(self, address: ServiceAddress) -> str:
        """Replace the slot with the rendered address and return the text."""
        rendered = str(address)
        with self._lock:
            self._value = rendered
        return rendered

    def read(self) -> str:
        """Return the current rendered address, or an empty string."""
        with self._lock:
            return self._value
