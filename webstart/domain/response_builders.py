"""Pure HTTP response builders."""

from typing import Iterable, Optional

from webstart.domain.http_types import HttpRequest, HttpResponse, should_close


def _close_preference(request: Optional[HttpRequest]) -> bool:
    return should_close(request.headers) if request is not None else True


def html_response(
    html: str, request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Return a 200 text/html response."""
    headers = {"Content-Type": "text/html; charset=utf-8", **security_headers}
    return HttpResponse(
        "HTTP/1.1 200 OK", headers, html.encode(), should_close(request.headers)
    )


def temporary_redirect_response(
    location: str, request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 307 response pointing the client at another location."""
    headers = {"Location": location, **security_headers}
    return HttpResponse(
        "HTTP/1.1 307 Temporary Redirect",
        headers,
        b"",
        should_close(request.headers),
    )


def not_found_response(
    request: HttpRequest, security_headers: dict[str, str]
) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return HttpResponse(
        "HTTP/1.1 404 Not Found",
        security_headers.copy(),
        b"",
        should_close(request.headers),
    )


def bad_request_response(
    request: Optional[HttpRequest], security_headers: dict[str, str]
) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return HttpResponse(
        "HTTP/1.1 400 Bad Request",
        security_headers.copy(),
        b"",
        _close_preference(request),
    )


def entity_too_large_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(
        "HTTP/1.1 413 Payload Too Large", security_headers.copy(), b"", True
    )


def method_not_allowed_response(
    request: HttpRequest,
    security_headers: dict[str, str],
    allowed_methods: Iterable[str],
) -> HttpResponse:
    """Produce a 405 response enumerating the supported HTTP methods."""
    headers = {"Allow": ", ".join(sorted(allowed_methods)), **security_headers}
    return HttpResponse(
        "HTTP/1.1 405 Method Not Allowed",
        headers,
        b"",
        should_close(request.headers),
    )


def internal_error_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 500 response that closes the connection."""
    return HttpResponse(
        "HTTP/1.1 500 Internal Server Error", security_headers.copy(), b"", True
    )


def draining_response(security_headers: dict[str, str]) -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    headers = {"Connection": "close", **security_headers}
    return HttpResponse(
        "HTTP/1.1 503 Service Unavailable",
        headers,
        b"draining",
        True,
    )
