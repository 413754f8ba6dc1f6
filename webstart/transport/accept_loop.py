"""Main connection acceptance loop."""

import errno
import logging
import socket
import threading

from webstart.bootstrap.socket_factory import ListenerHandle
from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.response_builders import draining_response
from webstart.pipeline.io import send_response
from webstart.pipeline.router import Router
from webstart.transport.context import WorkerContext
from webstart.transport.worker import handle_client

ACCEPT_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("webstart.transport.accept"), {}
)

# accept() failures meaning the listener itself is gone, not one bad client.
FATAL_ACCEPT_ERRNOS = frozenset(
    {errno.EBADF, errno.ENOTSOCK, errno.EINVAL, errno.EOPNOTSUPP}
)


def _reject_draining(client_socket: socket.socket, context: WorkerContext) -> None:
    try:
        send_response(client_socket, draining_response(context.security_headers))
    except OSError:
        pass
    client_socket.close()


def _spawn_worker(
    client_socket: socket.socket,
    client_address: tuple,
    router: Router,
    context: WorkerContext,
) -> None:
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, router, context),
        daemon=False,
    )
    thread.start()


def run_accept_loop(
    listener: ListenerHandle, router: Router, context: WorkerContext
) -> None:
    """Accept connections until the lifecycle asks the loop to stop."""
    lifecycle = context.lifecycle
    lifecycle.mark_serving()
    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={
            "event": "server_listening",
            "port": listener.port,
            "secure": listener.secure,
        },
    )

    while not lifecycle.should_stop():
        try:
            client_socket, client_address = listener.accept()
        except socket.timeout:
            continue
        except OSError as error:
            if lifecycle.should_stop():
                break
            if error.errno in FATAL_ACCEPT_ERRNOS:
                raise
            ACCEPT_LOGGER.error(
                "Socket accept failed",
                extra={
                    "event": "accept_error",
                    "error_type": type(error).__name__,
                    "errno": error.errno,
                },
            )
            continue

        if lifecycle.is_draining():
            _reject_draining(client_socket, context)
            continue

        _spawn_worker(client_socket, client_address, router, context)

    ACCEPT_LOGGER.info(
        "Stopped accepting connections", extra={"event": "accept_stopped"}
    )


class HttpPipeline:
    """Default request pipeline: thread-per-connection HTTP/1.1 over a Router."""

    def __init__(self, router: Router) -> None:
        self.router = router

    def serve(self, listener: ListenerHandle, context: WorkerContext) -> None:
        run_accept_loop(listener, self.router, context)
