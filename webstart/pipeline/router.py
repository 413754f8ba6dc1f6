"""Caller-supplied route table with a single fallback handler."""

import logging
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.http_types import HttpRequest, HttpResponse
from webstart.domain.response_builders import (
    method_not_allowed_response,
    not_found_response,
)

if TYPE_CHECKING:
    from webstart.transport.context import WorkerContext

ROUTER_LOGGER = CorrelationLoggerAdapter(
    logging.getLogger("webstart.pipeline.router"), {}
)

Handler = Callable[[HttpRequest, "WorkerContext"], HttpResponse]


class Router:
    """Exact-path routes keyed by method, plus an optional fallback."""

    def __init__(self) -> None:
        self._routes: dict[str, dict[str, Handler]] = {}
        self._fallback: Optional[Handler] = None

    def route(
        self, path: str, handler: Handler, methods: Iterable[str] = ("GET",)
    ) -> "Router":
        """Register a handler for a path; returns the router for chaining."""
        by_method = self._routes.setdefault(path, {})
        for method in methods:
            by_method[method.upper()] = handler
        return self

    def fallback(self, handler: Handler) -> "Router":
        """Register the handler used for any path without a route."""
        self._fallback = handler
        return self

    def paths(self) -> list[str]:
        return sorted(self._routes)

    def dispatch(self, request: HttpRequest, context: "WorkerContext") -> HttpResponse:
        """Route the request to the matching handler and return its response."""
        by_method = self._routes.get(request.path)
        if by_method is not None:
            handler = by_method.get(request.method)
            if handler is None:
                ROUTER_LOGGER.info(
                    "Method not allowed",
                    extra={
                        "event": "method_not_allowed",
                        "route": request.path,
                        "method": request.method,
                    },
                )
                return method_not_allowed_response(
                    request, context.security_headers, by_method
                )
            if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
                ROUTER_LOGGER.debug(
                    "Route matched",
                    extra={"event": "route_matched", "route": request.path},
                )
            return handler(request, context)

        if self._fallback is not None:
            return self._fallback(request, context)

        ROUTER_LOGGER.info(
            "No matching route found",
            extra={
                "event": "route_not_found",
                "route": request.path,
                "method": request.method,
            },
        )
        return not_found_response(request, context.security_headers)
