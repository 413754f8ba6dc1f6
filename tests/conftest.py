"""Shared pytest fixtures for integration and unit tests."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Generator, TypedDict

import pytest

from tests.utils.http import reserve_port, wait_for_log_event, wait_for_port

if TYPE_CHECKING:
    from _pytest.tmpdir import TempPathFactory

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SERVER_ENTRYPOINT = PROJECT_ROOT / "main.py"


class ServerProcessInfo(TypedDict):
    """Metadata describing a running service fixture instance."""

    base_url: str
    host: str
    port: int
    process: subprocess.Popen[str]
    log_file: Path


def launch_server(
    bind_host: str,
    port: int,
    log_file: Path,
    extra_args: list[str] | None = None,
) -> subprocess.Popen[str]:
    """Start main.py in a subprocess with JSON logs written to log_file."""
    args = [
        sys.executable,
        str(SERVER_ENTRYPOINT),
        "--host",
        bind_host,
        "--port",
        str(port),
        "--log-level",
        "DEBUG",
        "--log-destination",
        str(log_file),
        "--shutdown-grace-seconds",
        "5",
        "--socket-timeout",
        "5",
    ]
    if extra_args:
        args.extend(extra_args)
    return subprocess.Popen(
        args,
        cwd=PROJECT_ROOT,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )


def _run_server(
    tmp_path_factory: "TempPathFactory", extra_args: list[str] | None = None
) -> Generator[ServerProcessInfo, None, None]:
    port = reserve_port("127.0.0.1")
    log_file = tmp_path_factory.mktemp("service-logs") / "server.log"
    process = launch_server("0.0.0.0", port, log_file, extra_args)
    try:
        wait_for_port("127.0.0.1", port)
        if wait_for_log_event(log_file, "server_listening") is None:
            raise RuntimeError("Service did not start serving")
    except Exception:
        process.terminate()
        stdout, stderr = process.communicate(timeout=5)
        print(f"\nServer stdout:\n{stdout}")
        print(f"\nServer stderr:\n{stderr}")
        raise

    yield {
        "base_url": f"http://127.0.0.1:{port}",
        "host": "127.0.0.1",
        "port": port,
        "process": process,
        "log_file": log_file,
    }

    if process.poll() is None:
        process.terminate()
        try:
            process.wait(timeout=10)
        except subprocess.TimeoutExpired:
            process.kill()
    process.communicate()


@pytest.fixture(name="server_process")
def _server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the service on the wildcard address with an /app path."""

    yield from _run_server(tmp_path_factory, ["--app-path", "/app"])


@pytest.fixture(name="draining_server_process")
def _draining_server_process(
    tmp_path_factory: "TempPathFactory",
) -> Generator[ServerProcessInfo, None, None]:
    """Launch the service with a shutdown hook asking for a 1.5 s drain."""

    yield from _run_server(tmp_path_factory, ["--drain-ms", "1500"])


@pytest.fixture()
def base_url(server_process: ServerProcessInfo) -> str:
    """Expose the running service base URL to integration tests."""

    return server_process["base_url"]
