"""Command-line entry point.

    fe2io <username> [volume] [server_url]

Exit codes: 0 clean shutdown, 1 fatal startup error, 2 bad arguments.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from . import __version__
from .config import DEFAULT_SERVER_URL, DEFAULT_VOLUME, Config
from .logging_config import setup_logging
from .runner import EXIT_FATAL, EXIT_OK, Runner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fe2io",
        description="Lightweight FE2 client: plays a sound when the tracked player dies",
    )
    parser.add_argument("username", help="username of the player to track")
    parser.add_argument(
        "volume",
        nargs="?",
        type=float,
        default=DEFAULT_VOLUME,
        help=f"volume of the death cue, 0.0-1.0 (default {DEFAULT_VOLUME})",
    )
    parser.add_argument(
        "server_url",
        nargs="?",
        default=DEFAULT_SERVER_URL,
        help=f"WebSocket server URL (default {DEFAULT_SERVER_URL})",
    )
    parser.add_argument(
        "--death-clip",
        default=None,
        help="clip played on death: builtin:death, a file path or a URL",
    )
    parser.add_argument("--log-level", default="INFO", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-file", default=None, help="also write logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=args.log_level, log_file=args.log_file)

    config = Config.from_args(
        args.username,
        args.volume,
        args.server_url,
        death_clip=args.death_clip,
    )
    if config.volume != args.volume:
        logger.warning("Volume %s clamped to %.2f", args.volume, config.volume)

    runner = Runner(config)
    try:
        return asyncio.run(runner.run())
    except KeyboardInterrupt:
        # signal handlers are unavailable on some platforms
        logger.info("KeyboardInterrupt - exiting")
        return EXIT_OK
    except Exception:
        logger.exception("Unhandled exception")
        return EXIT_FATAL


if __name__ == "__main__":
    sys.exit(main())
