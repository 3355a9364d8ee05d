"""
Entry point for the OpenTelemetry Collector Contrib installer.
"""

import argparse
import contextlib
import logging
import sys
from typing import List, Optional

from tqdm.contrib.logging import logging_redirect_tqdm

from .application.domain import Mode
from .application.exceptions import InstallerError
from .infrastructure.containers import Container
from .settings import settings

logger = logging.getLogger(__name__)

EPILOG = """\
examples:
  %(prog)s                                     interactive mode, default version, keep package config
  %(prog)s --mode basic                        basic mode, default version, keep package config
  %(prog)s --version 0.125.0                   interactive mode, specific version
  %(prog)s --replace-config                    replace the package config with the custom config
"""


class ArgumentParser(argparse.ArgumentParser):
    """An argument parser that exits with status 1 on usage errors."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="otelcol-installer",
        description="OpenTelemetry Collector Contrib installer",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--mode",
        choices=[m.value for m in Mode],
        default=Mode.INTERACTIVE.value,
        help="'interactive' shows progress and styling, "
             "'basic' prints only success or failed.",
    )

    parser.add_argument(
        "--version",
        default=settings.installer.version,
        help=f"OTEL Collector version (default: {settings.installer.version}).",
    )

    parser.add_argument(
        "--replace-config",
        action=argparse.BooleanOptionalAction,
        default=settings.installer.replace_config,
        help="Replace the package default config with the custom config.",
    )

    parser.add_argument(
        "--config-url",
        default=settings.installer.config_url,
        help="Where to download the custom config from.",
    )

    return parser


def setup_logging(level: str, fmt: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level, format=fmt)


def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container."""

    container = Container()
    container.cli_args.from_dict(vars(args))

    interactive = args.mode == Mode.INTERACTIVE.value
    config = container.config()
    setup_logging(
        level=config.logging.level if interactive else config.logging.basic_level,
        fmt=config.logging.format,
    )
    redirect = logging_redirect_tqdm() if interactive else contextlib.nullcontext()
    try:
        installer_service = container.installer_service()
        with redirect:
            installer_service.run()
    except InstallerError as e:
        if e.step is None:
            # Raised while wiring, before the reporter saw any step.
            logger.error(f"Installation failed: {e}")
            if not interactive:
                print("failed")
        else:
            logger.error(f"Installation failed during '{e.step}': {e}")
        for key, value in e.context.items():
            logger.error(f"  {key}: {value}")
        return 1
    finally:
        container.http_client().close()

    return 0


def main(argv: Optional[List[str]] = None):
    cli_args = build_parser().parse_args(argv)
    sys.exit(run_application(cli_args))


if __name__ == "__main__":
    main()
