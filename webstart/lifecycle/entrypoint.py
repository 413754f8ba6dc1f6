"""Service entry point: bind, publish the address, serve, shut down."""

import logging
from typing import Iterable, Optional, Union

from webstart.bootstrap.config import AppConfig
from webstart.bootstrap.socket_factory import ListenerHandle, create_server_socket
from webstart.domain.address import DisplayState, compose_service_address
from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.errors import ServingError
from webstart.lifecycle.shutdown import GracefulShutdown, HookLike
from webstart.lifecycle.state import ServerLifecycle
from webstart.pipeline.router import Router
from webstart.transport.accept_loop import HttpPipeline
from webstart.transport.context import RequestPipeline, WorkerContext

ENTRY_LOGGER = CorrelationLoggerAdapter(logging.getLogger("webstart.server"), {})


def _as_pipeline(pipeline: Union[RequestPipeline, Router]) -> RequestPipeline:
    if isinstance(pipeline, Router):
        return HttpPipeline(pipeline)
    return pipeline


def _serve(
    pipeline: RequestPipeline,
    listener: ListenerHandle,
    context: WorkerContext,
    coordinator: GracefulShutdown,
) -> None:
    """Install signal handling, run the pipeline, then release and drain."""
    lifecycle = context.lifecycle
    try:
        coordinator.install()
        coordinator.start()
        pipeline.serve(listener, context)
    except OSError as error:
        lifecycle.begin_draining("serving_error")
        ENTRY_LOGGER.critical(
            f"Web Server Error: {error}",
            extra={
                "event": "serving_failed",
                "error_type": type(error).__name__,
                "errno": error.errno,
            },
        )
        raise ServingError(str(error), error.errno) from error
    finally:
        lifecycle.begin_draining("serving_stopped")
        listener.close()
        ENTRY_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "grace_seconds": context.config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(context.config.shutdown_grace_seconds)
        # Handlers go first so no signal can interrupt cancel() on this thread.
        coordinator.restore()
        coordinator.cancel()


def server_start(
    app_config: AppConfig,
    pipeline: Union[RequestPipeline, Router],
    shutdown_hook: Optional[HookLike] = None,
    display_state: Optional[DisplayState] = None,
    signals: Optional[Iterable[int]] = None,
) -> None:
    """Serve until a termination signal completes the shutdown sequence.

    Raises BindError when the listener cannot be bound and
    SignalInstallError when the termination handlers cannot be registered;
    in both cases nothing has been served. An I/O failure of the serving
    loop is raised as ServingError once the listener has been released.
    The process is never exited from here.
    """
    ENTRY_LOGGER.info(
        f"Starting {app_config.app_name} {app_config.version}",
        extra={
            "event": "server_starting",
            "app_name": app_config.app_name,
            "version": app_config.version,
            "profile": app_config.profile,
        },
    )

    listener = create_server_socket(app_config.server)
    with listener:
        address = compose_service_address(
            app_config.server.bind_address,
            listener.port,
            listener.secure,
            app_config.app_path,
        )
        state = display_state if display_state is not None else DisplayState()
        url = state.publish(address)
        ENTRY_LOGGER.info(
            f"Welcome to {app_config.app_name} {app_config.version}. "
            f"To start open {url}",
            extra={"event": "service_ready", "url": url, "port": listener.port},
        )

        lifecycle = ServerLifecycle()
        coordinator = GracefulShutdown(
            shutdown_hook,
            signals,
            on_complete=lambda: lifecycle.begin_draining("signal"),
        )
        context = WorkerContext(
            lifecycle=lifecycle,
            display_state=state,
            config=app_config.server,
            app_name=app_config.app_name,
        )
        _serve(_as_pipeline(pipeline), listener, context, coordinator)

    ENTRY_LOGGER.info("Good bye!", extra={"event": "server_stopped"})
