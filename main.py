"""Command line launcher serving the default landing page."""

import sys
from typing import Optional

from webstart.bootstrap.config import build_app_config, parse_cli_args
from webstart.bootstrap.logging_setup import configure_logging
from webstart.domain.errors import BindError, ServingError, SignalInstallError
from webstart.handlers.default_pages import default_handler, fallback_root
from webstart.lifecycle.entrypoint import server_start
from webstart.lifecycle.shutdown import FixedDelayHook
from webstart.pipeline.router import Router

EXIT_OK = 0
EXIT_SERVING_ERROR = 1
EXIT_BIND_ERROR = 2
EXIT_SIGNAL_INSTALL_ERROR = 3


def build_router() -> Router:
    """Routes mounted by the launcher: landing page plus redirect fallback."""
    return Router().route("/", default_handler).fallback(fallback_root)


def main(argv: Optional[list[str]] = None) -> int:
    """Start the service and map lifecycle failures to exit codes."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    logger = configure_logging(
        args.log_level, args.log_destination, use_json=args.log_format == "json"
    )
    app_config = build_app_config(args)
    hook = FixedDelayHook(args.drain_ms) if args.drain_ms > 0 else None

    try:
        server_start(app_config, build_router(), shutdown_hook=hook)
    except BindError as error:
        logger.critical(str(error), extra={"event": "startup_aborted"})
        return EXIT_BIND_ERROR
    except SignalInstallError as error:
        logger.critical(str(error), extra={"event": "startup_aborted"})
        return EXIT_SIGNAL_INSTALL_ERROR
    except ServingError:
        return EXIT_SERVING_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
