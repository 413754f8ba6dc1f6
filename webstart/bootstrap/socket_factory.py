"""Listener acquisition: bind the service socket from configuration."""

import logging
import socket
from typing import Optional

from webstart.bootstrap.config import ServerConfig
from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.errors import BindError

SOCKET_LOGGER = CorrelationLoggerAdapter(logging.getLogger("webstart.socket"), {})

ACCEPT_POLL_SECONDS = 0.5


class ListenerHandle:
    """Exclusively owned listening socket plus the settings it was bound with.

    ``secure`` is the label taken from configuration; no TLS is negotiated
    on this socket.
    """

    def __init__(self, sock: socket.socket, port: int, secure: bool) -> None:
        self.socket = sock
        self.port = port
        self.secure = secure
        self._closed = False

    @property
    def local_address(self) -> tuple:
        """Address the socket is actually bound to."""
        return self.socket.getsockname()

    @property
    def closed(self) -> bool:
        """True once the listener has been released."""
        return self._closed

    def accept(self) -> tuple[socket.socket, tuple]:
        """Accept one connection; raises socket.timeout when none is pending."""
        return self.socket.accept()

    def close(self) -> None:
        """Release the listening socket; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.socket.close()
        SOCKET_LOGGER.debug(
            "Listener released", extra={"event": "listener_closed", "port": self.port}
        )

    def __enter__(self) -> "ListenerHandle":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def create_server_socket(
    server_config: ServerConfig, poll_interval: Optional[float] = ACCEPT_POLL_SECONDS
) -> ListenerHandle:
    """Bind the configured address, raising BindError when the OS refuses it."""
    address = server_config.tcp_listener
    try:
        family = socket.AF_INET6 if ":" in address[0] else socket.AF_INET
        server_socket = socket.create_server(address, family=family)
    except (OSError, OverflowError) as error:
        SOCKET_LOGGER.critical(
            "Fatal error binding TCP listener",
            extra={
                "event": "bind_failed",
                "host": address[0],
                "port": address[1],
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        raise BindError(address, str(error)) from error

    server_socket.settimeout(poll_interval)
    bound = server_socket.getsockname()
    port = server_config.port if server_config.port != 0 else bound[1]
    SOCKET_LOGGER.debug(
        "Listener bound",
        extra={
            "event": "listener_bound",
            "address": f"{bound[0]}:{bound[1]}",
            "port": port,
            "secure": server_config.secure,
        },
    )
    return ListenerHandle(server_socket, port, server_config.secure)
