"""Command line tool for running the global load balancer controllers."""

import argparse
import asyncio
import logging
import sys

from glbc.exceptions import GlbcException
from . import run

_LOGGER = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]

# Conventional exit status of a process stopped by SIGINT
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glbc",
        description="Runs the global load balancer controllers.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="WARNING",
        help="Log level, where DEBUG also prints the traceback of a failure",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    run.RunAction.register(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    try:
        asyncio.run(args.cls().run(**vars(args)))
    except GlbcException as err:
        _LOGGER.debug("%s failed", args.command, exc_info=True)
        sys.exit(f"glbc {args.command}: {err}")
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)
