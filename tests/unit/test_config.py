"""Unit tests for profiles, CLI parsing and config materialisation."""

import pytest

from webstart.bootstrap.config import (
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    DEFAULT_SOCKET_TIMEOUT,
    PROFILES,
    build_app_config,
    parse_cli_args,
    resolve_profile,
)

ENV_VARS = (
    "WEBSTART_PROFILE",
    "WEBSTART_HOST",
    "WEBSTART_PORT",
    "WEBSTART_SECURE",
    "WEBSTART_APP_PATH",
    "WEBSTART_APP_NAME",
    "WEBSTART_APP_VERSION",
    "WEBSTART_LOG_LEVEL",
    "WEBSTART_LOG_DESTINATION",
    "WEBSTART_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of default-value assertions."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_parse_cli_args_uses_defaults() -> None:
    """Without flags the dev profile and stdout JSON logging apply."""
    args = parse_cli_args([])

    assert args.profile == "dev"
    assert args.host == "0.0.0.0"
    assert args.port is None
    assert args.secure is None
    assert args.app_path == ""
    assert args.log_level == "INFO"
    assert args.log_destination == "stdout"
    assert args.log_format == "json"
    assert args.socket_timeout == DEFAULT_SOCKET_TIMEOUT
    assert args.shutdown_grace_seconds == DEFAULT_SHUTDOWN_GRACE_SECONDS
    assert args.drain_ms == 0


@pytest.mark.parametrize(
    "profile, port, secure", [("dev", 3002, False), ("secure", 3003, True)]
)
def test_profiles_supply_port_and_security(profile, port, secure) -> None:
    """Each profile implies a listener port and advertised scheme."""
    config = build_app_config(parse_cli_args(["--profile", profile]))

    assert config.server.port == port
    assert config.server.secure is secure
    assert config.profile == profile
    assert PROFILES[profile].port == port


def test_unknown_profile_falls_back_to_dev() -> None:
    """Unrecognised profile names behave like dev."""
    assert resolve_profile("staging") == PROFILES["dev"]
    assert resolve_profile(None) == PROFILES["dev"]
    assert resolve_profile("SECURE") == PROFILES["secure"]


def test_explicit_flags_override_profile() -> None:
    """Port and security flags win over profile defaults."""
    args = parse_cli_args(
        [
            "--profile",
            "secure",
            "--host",
            "127.0.0.1",
            "--port",
            "8443",
            "--no-secure",
            "--app-path",
            "/app",
            "--app-name",
            "Demo",
            "--app-version",
            "9.9.9",
            "--log-level",
            "trace",
            "--drain-ms",
            "250",
        ]
    )
    config = build_app_config(args)

    assert config.server.bind_address == "127.0.0.1"
    assert config.server.port == 8443
    assert config.server.secure is False
    assert config.server.tcp_listener == ("127.0.0.1", 8443)
    assert config.app_path == "/app"
    assert config.app_name == "Demo"
    assert config.version == "9.9.9"
    assert args.log_level == "TRACE"
    assert args.drain_ms == 250


def test_environment_supplies_defaults(monkeypatch) -> None:
    """WEBSTART_* variables act as defaults beneath the flags."""
    monkeypatch.setenv("WEBSTART_PROFILE", "secure")
    monkeypatch.setenv("WEBSTART_PORT", "9000")
    monkeypatch.setenv("WEBSTART_SECURE", "false")
    monkeypatch.setenv("WEBSTART_LOG_FORMAT", "TEXT")

    args = parse_cli_args([])
    config = build_app_config(args)

    assert config.profile == "secure"
    assert config.server.port == 9000
    assert config.server.secure is False
    assert args.log_format == "text"

    flagged = build_app_config(parse_cli_args(["--port", "9100"]))
    assert flagged.server.port == 9100


def test_invalid_log_level_is_rejected() -> None:
    """argparse refuses unknown level names."""
    with pytest.raises(SystemExit):
        parse_cli_args(["--log-level", "LOUD"])
