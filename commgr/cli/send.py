"""Send a single control event to a running communication manager.

Usage::

    commgr-send message --chan telegram --ctx 42 "what's the weather?"
    commgr-send reply --chan telegram --ctx 42 "done"
    commgr-send reply-on-last-channel "reminder: stand-up in 5"
    commgr-send register --key weather-svc --type weather-msg \\
        --help-entry "/weather=Current weather"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

import aiohttp
from rich.console import Console

from commgr.runtime.config.settings import cfg

logger = logging.getLogger(__name__)
console = Console()

_EVENT_TYPES = {
    "message": "message",
    "not-owner-message": "not-owner-message",
    "reply": "reply",
    "reply-on-last-channel": "reply-on-last-channel",
    "register": "register-msg-handler",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="commgr-send",
        description="Post one control event to the communication manager.",
    )
    parser.add_argument(
        "event",
        choices=sorted(_EVENT_TYPES),
        help="Event to send.",
    )
    parser.add_argument("text", nargs="?", default=None, help="Message or reply text.")
    parser.add_argument("--chan", default=None, help="Channel key.")
    parser.add_argument("--ctx", default=None, help="Channel context (e.g. chat id).")
    parser.add_argument("--key", default=None, help="Handler key (register only).")
    parser.add_argument("--type", dest="mstype", default=None, help="Handler message type (register only).")
    parser.add_argument(
        "--help-entry",
        action="append",
        default=[],
        metavar="CMD=TEXT",
        help="Help command contributed by the handler; repeatable (register only).",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Base URL of the communication manager (default: http://127.0.0.1:<COMMGR_PORT>).",
    )
    return parser


def _parse_help_entry(raw: str) -> dict[str, str]:
    cmd, _, txt = raw.partition("=")
    return {"cmd": cmd.strip(), "txt": txt.strip()}


def build_payload(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed arguments into the event payload."""
    event_type = _EVENT_TYPES[args.event]
    if event_type == "register-msg-handler":
        return {
            "type": event_type,
            "mskey": args.key,
            "mstype": args.mstype,
            "mshelp": [_parse_help_entry(h) for h in args.help_entry],
        }
    if event_type == "reply-on-last-channel":
        return {"type": event_type, "msg": args.text}
    return {"type": event_type, "chan": args.chan, "ctx": args.ctx, "msg": args.text}


async def _send(url: str, payload: dict[str, Any]) -> tuple[int, dict[str, Any]]:
    async with aiohttp.ClientSession() as session:
        async with session.post(f"{url.rstrip('/')}/api/events", json=payload) as resp:
            return resp.status, await resp.json(content_type=None)


async def _run(args: argparse.Namespace) -> int:
    url = args.url or f"http://127.0.0.1:{cfg.port}"
    payload = build_payload(args)
    try:
        status, body = await _send(url, payload)
    except aiohttp.ClientError as exc:
        logger.debug("[cli.send] request failed", exc_info=True)
        console.print(f"[red]Error:[/red] could not reach {url}: {exc}")
        return 1

    if status >= 400:
        console.print(f"[red]{body.get('error', 'Error')}:[/red] {body.get('message', status)}")
        return 1
    console.print_json(data=body)
    return 0


def main() -> None:
    """CLI entry point for ``commgr-send``."""
    parser = _build_parser()
    args = parser.parse_args()
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    sys.exit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
