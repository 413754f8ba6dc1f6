"""Service configuration, deployment profiles and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass
from typing import Optional


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value is not None else None


def _env_optional_bool(name: str) -> Optional[bool]:
    if os.getenv(name) is None:
        return None
    return _env_bool(name, False)


MAX_BODY_BYTES = _env_int("WEBSTART_MAX_BODY_BYTES", 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_int("WEBSTART_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("WEBSTART_SHUTDOWN_GRACE_SECONDS", 30)
DEFAULT_DRAIN_MS = _env_int("WEBSTART_DRAIN_MS", 0)

DEFAULT_PROFILE = "dev"
DEFAULT_BIND_ADDRESS = "0.0.0.0"
DEFAULT_APP_NAME = "webstart"
DEFAULT_APP_VERSION = "0.1.0"
DEFAULT_APP_PATH = ""

HEADER_DELIMITER = b"\r\n\r\n"

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Content-Type-Options": "nosniff",
}


@dataclass(frozen=True)
class ProfileDefaults:
    """Listener settings implied by a deployment profile."""

    port: int
    secure: bool


PROFILES = {
    "dev": ProfileDefaults(port=3002, secure=False),
    "secure": ProfileDefaults(port=3003, secure=True),
}


def resolve_profile(name: Optional[str]) -> ProfileDefaults:
    """Return the defaults for a profile, falling back to the dev profile."""
    return PROFILES.get((name or DEFAULT_PROFILE).lower(), PROFILES[DEFAULT_PROFILE])


@dataclass(frozen=True)
class ServerConfig:
    """Listener configuration including timeouts and shutdown settings."""

    bind_address: str
    port: int
    secure: bool = False
    socket_timeout: int = DEFAULT_SOCKET_TIMEOUT
    shutdown_grace_seconds: int = DEFAULT_SHUTDOWN_GRACE_SECONDS
    max_body_bytes: int = MAX_BODY_BYTES

    @property
    def tcp_listener(self) -> tuple[str, int]:
        """Address tuple handed to the socket layer."""
        return self.bind_address, self.port


@dataclass(frozen=True)
class AppConfig:
    """Materialized application configuration consumed by server_start."""

    app_name: str
    version: str
    server: ServerConfig
    app_path: str = DEFAULT_APP_PATH
    profile: str = DEFAULT_PROFILE


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for service configuration."""
    parser = argparse.ArgumentParser(description="webstart service launcher")
    parser.add_argument(
        "--profile",
        default=os.getenv("WEBSTART_PROFILE", DEFAULT_PROFILE),
        type=str.lower,
        help="Deployment profile supplying port and security defaults",
    )
    parser.add_argument(
        "--host", default=os.getenv("WEBSTART_HOST", DEFAULT_BIND_ADDRESS)
    )
    parser.add_argument(
        "--port",
        type=int,
        default=_env_optional_int("WEBSTART_PORT"),
        help="Listening port (defaults to the profile port)",
    )
    parser.add_argument(
        "--secure",
        action=argparse.BooleanOptionalAction,
        default=_env_optional_bool("WEBSTART_SECURE"),
        help="Advertise an https address (defaults to the profile setting)",
    )
    parser.add_argument(
        "--app-path", default=os.getenv("WEBSTART_APP_PATH", DEFAULT_APP_PATH)
    )
    parser.add_argument(
        "--app-name", default=os.getenv("WEBSTART_APP_NAME", DEFAULT_APP_NAME)
    )
    parser.add_argument(
        "--app-version",
        default=os.getenv("WEBSTART_APP_VERSION", DEFAULT_APP_VERSION),
    )
    default_log_level = os.getenv("WEBSTART_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv("WEBSTART_LOG_DESTINATION", "stdout")
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-format",
        default=os.getenv("WEBSTART_LOG_FORMAT", "json"),
        choices=["json", "text"],
        type=str.lower,
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds for request processing",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for in-flight connections",
    )
    parser.add_argument(
        "--drain-ms",
        type=int,
        default=DEFAULT_DRAIN_MS,
        help="Milliseconds to keep serving after a termination signal",
    )
    return parser.parse_args(argv)


def build_app_config(args: argparse.Namespace) -> AppConfig:
    """Apply profile defaults, then explicit overrides, to build an AppConfig."""
    profile = resolve_profile(args.profile)
    server = ServerConfig(
        bind_address=args.host,
        port=args.port if args.port is not None else profile.port,
        secure=args.secure if args.secure is not None else profile.secure,
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
    )
    return AppConfig(
        app_name=args.app_name,
        version=args.app_version,
        server=server,
        app_path=args.app_path,
        profile=args.profile,
    )
