"""Context shared across worker threads and the pipeline contract."""

from dataclasses import dataclass, field
from typing import Protocol

from webstart.bootstrap.config import SECURITY_HEADERS, ServerConfig
from webstart.bootstrap.socket_factory import ListenerHandle
from webstart.domain.address import DisplayState
from webstart.lifecycle.state import ServerLifecycle


@dataclass
class WorkerContext:
    """Dependencies shared across handler threads."""

    lifecycle: ServerLifecycle
    display_state: DisplayState
    config: ServerConfig
    app_name: str = "webstart"
    security_headers: dict[str, str] = field(
        default_factory=lambda: dict(SECURITY_HEADERS)
    )


class RequestPipeline(Protocol):
    """Serves connections from a listener until the lifecycle says stop.

    ``serve`` runs on the calling thread. It must return once
    ``context.lifecycle.should_stop()`` turns true, and may raise OSError
    when the listener itself fails. Closing the listener is left to the
    caller.
    """

    def serve(self, listener: ListenerHandle, context: WorkerContext) -> None:
        """Accept and handle connections until told to stop."""
