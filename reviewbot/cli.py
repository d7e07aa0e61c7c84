#!/usr/bin/env python3
"""ReviewBot command line: scaffold a repository, run the action, or serve the review API."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

from reviewbot.installer import DEFAULT_ACTION_REF, install
from reviewbot.logger import get_logger

logger = get_logger()


def _cmd_install(args: argparse.Namespace) -> int:
    logger.info("Installing ReviewBot...")
    for result in install(
        args.root,
        endpoint=args.endpoint,
        action_ref=args.action,
        mode=args.mode,
        force=args.force,
    ):
        if result.written:
            logger.info(f"- Wrote: {result.path}")
        else:
            logger.info(f"- Skipped (exists): {result.path}")

    logger.info(
        "Next steps:\n"
        "1) git add .github/workflows/reviewbot.yml .reviewbot.json\n"
        '2) git commit -m "Add ReviewBot"\n'
        "3) git push\n"
        "4) Open a PR or comment /review on a PR."
    )
    return 0


def _cmd_action(args: argparse.Namespace) -> int:
    from reviewbot.action import main as action_main

    return asyncio.run(action_main())


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    logger.info(
        "Starting ReviewBot review API (binding to {host}:{port})",
        host=args.host,
        port=args.port,
    )
    uvicorn.run(app="reviewbot.server.app:app", host=args.host, port=args.port, workers=1)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="reviewbot", description="AI pull request reviews for GitHub")
    subparsers = parser.add_subparsers(dest="command", required=True)

    install_parser = subparsers.add_parser("install", help="Scaffold the workflow and default config")
    install_parser.add_argument(
        "--endpoint", "--review-api-url", dest="endpoint", required=True, help="Review API URL"
    )
    install_parser.add_argument("--action", default=DEFAULT_ACTION_REF, help="Action ref to use")
    install_parser.add_argument("--mode", choices=["safe", "trusted"], default="safe")
    install_parser.add_argument("--force", action="store_true", help="Overwrite existing files")
    install_parser.add_argument("--root", type=Path, default=Path.cwd(), help="Repository root")
    install_parser.set_defaults(handler=_cmd_install)

    action_parser = subparsers.add_parser("action", help="Review the pull request of the current workflow event")
    action_parser.set_defaults(handler=_cmd_action)

    serve_parser = subparsers.add_parser("serve", help="Run the review API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=3000)
    serve_parser.set_defaults(handler=_cmd_serve)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
