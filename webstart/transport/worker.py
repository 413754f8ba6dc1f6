"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from typing import Optional

from webstart.domain.correlation_id import CorrelationLoggerAdapter, correlation_scope
from webstart.domain.errors import RequestEntityTooLarge
from webstart.domain.http_types import HttpRequest, HttpResponse
from webstart.domain.response_builders import (
    bad_request_response,
    entity_too_large_response,
    internal_error_response,
)
from webstart.pipeline.io import receive_request, send_response
from webstart.pipeline.router import Router
from webstart.transport.context import WorkerContext

WORKER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("webstart.transport.worker"), {}
)


def _read_request(
    client_socket: socket.socket,
    buffer: bytes,
    client_addr_str: str,
    context: WorkerContext,
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read one request, answering 413/400 itself when the input is unusable."""
    try:
        request, buffer = receive_request(
            client_socket, buffer, context.config.max_body_bytes
        )
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={"event": "body_size_exceeded", "client": client_addr_str},
        )
        send_response(client_socket, entity_too_large_response(context.security_headers))
        return None, b"", True
    except (ValueError, UnicodeDecodeError):
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response(None, context.security_headers))
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return None, b"", True
    return request, buffer, False


def _dispatch(
    router: Router, request: HttpRequest, context: WorkerContext
) -> HttpResponse:
    try:
        return router.dispatch(request, context)
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Handler raised an exception",
            extra={
                "event": "handler_error",
                "route": request.path,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
        return internal_error_response(context.security_headers)


def _close_client(client_socket: socket.socket, client_addr_str: str) -> None:
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()
    WORKER_LOGGER.debug(
        "Socket closed",
        extra={"event": "socket_closed", "client": client_addr_str},
    )


def handle_client(
    client_socket: socket.socket,
    client_address: tuple,
    router: Router,
    context: WorkerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    buffer = b""
    current_thread = threading.current_thread()
    lifecycle = context.lifecycle
    lifecycle.register_worker(current_thread)
    client_socket.settimeout(context.config.socket_timeout)
    client_addr_str = f"{client_address[0]}:{client_address[1]}"
    served_any = False

    try:
        while True:
            with correlation_scope():
                # The first request of an accepted connection is always served.
                if served_any and lifecycle.is_draining():
                    break

                request, buffer, should_terminate = _read_request(
                    client_socket, buffer, client_addr_str, context
                )
                if should_terminate:
                    break

                response = _dispatch(router, request, context)
                if lifecycle.is_draining():
                    response.close_connection = True
                send_response(client_socket, response)
                served_any = True
                WORKER_LOGGER.debug(
                    "Request processing complete",
                    extra={
                        "event": "request_complete",
                        "client": client_addr_str,
                        "method": request.method,
                        "route": request.path,
                        "status_code": response.status_code,
                    },
                )
                if response.close_connection:
                    break
    except (ConnectionError, TimeoutError, OSError) as error:
        WORKER_LOGGER.error(
            "Error handling client connection",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    finally:
        lifecycle.cleanup_worker(current_thread)
        _close_client(client_socket, client_addr_str)
