"""Shared fixtures for unit tests."""

import logging
import signal

import pytest

from webstart.bootstrap.config import AppConfig, ServerConfig


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("webstart")
    old_propagate = logger.propagate
    old_level = logger.level
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield
    logger.propagate = old_propagate
    logger.setLevel(old_level)


@pytest.fixture(name="test_signal")
def fixture_test_signal():
    """A signal safe to raise in-process, pre-set to a no-op handler."""
    if not hasattr(signal, "SIGUSR1"):
        pytest.skip("SIGUSR1 is not available on this platform")
    previous = signal.signal(signal.SIGUSR1, lambda _signum, _frame: None)
    yield signal.SIGUSR1
    signal.signal(signal.SIGUSR1, previous)


@pytest.fixture(name="app_config")
def fixture_app_config():
    """Configuration binding an ephemeral loopback port."""
    return AppConfig(
        app_name="test-app",
        version="1.2.3",
        server=ServerConfig(
            bind_address="127.0.0.1",
            port=0,
            secure=False,
            socket_timeout=2,
            shutdown_grace_seconds=2,
        ),
        app_path="/app",
    )
