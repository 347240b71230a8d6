"""Server entry point for ``commgr-serve``."""

from __future__ import annotations

import argparse
import logging

from rich.logging import RichHandler

from commgr.runtime.config.settings import cfg
from commgr.runtime.server.app import main as run_server


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="commgr-serve",
        description="Run the communication manager.",
    )
    parser.add_argument("--host", default=None, help="Bind address (default: COMMGR_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Port (default: COMMGR_PORT).")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log at DEBUG level.",
    )
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    logging.getLogger("aiohttp.access").setLevel(logging.INFO)


def main() -> None:
    """CLI entry point for ``commgr-serve``."""
    args = _build_parser().parse_args()
    configure_logging(args.verbose)
    if args.host:
        cfg.host = args.host
    if args.port:
        cfg.port = args.port
    run_server(cfg)


if __name__ == "__main__":
    main()
