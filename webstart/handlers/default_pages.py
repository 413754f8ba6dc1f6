"""Landing page and catch-all redirect a service can mount by default."""

import html
import logging

from webstart.domain.correlation_id import CorrelationLoggerAdapter
from webstart.domain.http_types import HttpRequest, HttpResponse
from webstart.domain.response_builders import html_response, temporary_redirect_response
from webstart.transport.context import WorkerContext

PAGES_LOGGER = CorrelationLoggerAdapter(logging.getLogger("webstart.handlers.pages"), {})

PAGE_TEMPLATE = (
    "<!DOCTYPE html><html><head><title>{title}</title></head>"
    '<body><h1>{title}</h1><br/><h2>Open <a href="{url}">{url}</a></h2></body></html>'
)


def generate_html(url: str, title: str = "webstart") -> str:
    """Render the landing page linking to the published service address."""
    return PAGE_TEMPLATE.format(
        title=html.escape(title), url=html.escape(url, quote=True)
    )


def default_handler(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    """Serve the landing page with a link to the application."""
    PAGES_LOGGER.trace("Default root", extra={"event": "landing_page", "path": request.path})
    page = generate_html(context.display_state.read(), context.app_name)
    return html_response(page, request, context.security_headers)


def fallback_root(request: HttpRequest, context: WorkerContext) -> HttpResponse:
    """Redirect any unmatched path to the landing page."""
    PAGES_LOGGER.trace(
        "Redirecting to default page, page not found",
        extra={"event": "fallback_redirect", "path": request.path},
    )
    return temporary_redirect_response("/", request, context.security_headers)
