"""Integration tests exercising the launcher's default routes."""

from __future__ import annotations

import socket
from typing import TYPE_CHECKING

import pytest
import requests

from tests.utils.http import read_http_response, wait_for_log_event

pytestmark = pytest.mark.integration

if TYPE_CHECKING:
    from tests.conftest import ServerProcessInfo


def test_landing_page_links_to_published_address(
    server_process: ServerProcessInfo,
) -> None:
    """Wildcard bind should be advertised as localhost with the app path."""

    expected = f"http://localhost:{server_process['port']}/app"
    response = requests.get(f"{server_process['base_url']}/", timeout=5)

    assert response.status_code == 200
    assert response.headers["Content-Type"].startswith("text/html")
    assert f'<a href="{expected}">{expected}</a>' in response.text


def test_service_ready_event_reports_url(server_process: ServerProcessInfo) -> None:
    """The welcome record carries the same URL the landing page shows."""

    record = wait_for_log_event(server_process["log_file"], "service_ready")

    assert record is not None
    assert record["url"] == f"http://localhost:{server_process['port']}/app"
    assert "To start open" in record["message"]


def test_unknown_path_redirects_to_root(base_url: str) -> None:
    """Any unmatched path gets a temporary redirect to /."""

    response = requests.get(f"{base_url}/missing/page", allow_redirects=False, timeout=5)

    assert response.status_code == 307
    assert response.headers["Location"] == "/"


def test_redirect_is_followed_to_landing_page(base_url: str) -> None:
    """Following the fallback redirect lands on the landing page."""

    response = requests.get(f"{base_url}/nowhere", timeout=5)

    assert response.status_code == 200
    assert response.history[0].status_code == 307
    assert "Open <a href=" in response.text


def test_post_to_landing_page_is_not_allowed(base_url: str) -> None:
    """The landing route only accepts GET."""

    response = requests.post(f"{base_url}/", data=b"x", timeout=5)

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET"


def test_request_id_is_echoed(base_url: str) -> None:
    """A client supplied X-Request-ID comes back on the response."""

    headers = {"X-Request-ID": "trace-me-123"}
    response = requests.get(f"{base_url}/", headers=headers, timeout=5)

    assert response.headers["X-Request-ID"] == "trace-me-123"


def test_malformed_request_gets_bad_request(server_process: ServerProcessInfo) -> None:
    """Garbage on the wire is answered with 400 and the connection closes."""

    with socket.create_connection(
        (server_process["host"], server_process["port"]), timeout=2.0
    ) as sock:
        sock.sendall(b"NONSENSE\r\n\r\n")
        response = read_http_response(sock)

    assert response.status_line == "HTTP/1.1 400 Bad Request"
    assert response.headers["connection"] == "close"


def test_keep_alive_serves_several_requests(server_process: ServerProcessInfo) -> None:
    """Two requests on one connection are both answered."""

    with socket.create_connection(
        (server_process["host"], server_process["port"]), timeout=2.0
    ) as sock:
        for _ in range(2):
            sock.sendall(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")
            response = read_http_response(sock)
            assert response.status_line == "HTTP/1.1 200 OK"
