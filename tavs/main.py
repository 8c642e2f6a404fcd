"""CLI entry point: argument parsing, logging setup and dispatch."""

import argparse
import logging
import os
import sys

from .commands import (
    cmd_cleanup,
    cmd_color,
    cmd_detect,
    cmd_preview,
    cmd_session_end,
    cmd_title,
    cmd_trigger,
    cmd_worker,
)

COLOR_OPS = ("hex-to-rgb", "rgb-to-hex", "to-hsl", "is-dark", "state-colors")


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(verbose: bool) -> None:
    """Log to ``$TAVS_LOG_FILE`` when it can be opened, else to stderr."""
    log_file = (os.environ.get("TAVS_LOG_FILE") or "").strip()
    handler: logging.Handler | None = None
    error: OSError | None = None
    if log_file:
        try:
            handler = logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")
        except OSError as err:
            error = err
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        handlers=[handler or logging.StreamHandler()],
    )
    if error is not None:
        logging.getLogger(__name__).warning(
            "cannot open log file %s: %s", log_file, error,
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tavs",
        description="Reflect coding agent activity in the terminal title and background",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs",
    )
    sub = parser.add_subparsers(dest="cmd")

    p_trigger = sub.add_parser("trigger", help="Signal a new agent state")
    p_trigger.add_argument(
        "state",
        help="processing | permission | complete | compacting | idle | reset "
             "| subagent-start | subagent-stop",
    )
    p_trigger.set_defaults(func=cmd_trigger)

    p_title = sub.add_parser("title", help="Manage the user base title")
    p_title.add_argument("action", choices=("set", "lock", "unlock"))
    p_title.add_argument("text", nargs="*", help="Title text (for set)")
    p_title.set_defaults(func=cmd_title)

    p_end = sub.add_parser("session-end", help="Stop animations and restore the terminal")
    p_end.set_defaults(func=cmd_session_end)

    p_preview = sub.add_parser("preview", help="Show every state's title and color")
    p_preview.add_argument("-a", "--agent", help="Agent profile to preview")
    p_preview.add_argument("-b", "--base", help="Base title to compose with")
    p_preview.set_defaults(func=cmd_preview)

    p_detect = sub.add_parser("detect", help="Print detected terminal capabilities")
    p_detect.set_defaults(func=cmd_detect)

    p_color = sub.add_parser("color", help="Color conversion helpers")
    p_color.add_argument("op", choices=COLOR_OPS)
    p_color.add_argument("values", nargs="+")
    p_color.set_defaults(func=cmd_color)

    # Hidden/internal commands
    p_worker = sub.add_parser("worker", help=argparse.SUPPRESS)
    p_worker.add_argument("--tty", required=True)
    p_worker.add_argument("--generation", type=int, required=True)
    p_worker.set_defaults(func=cmd_worker)

    p_cleanup = sub.add_parser("cleanup", help=argparse.SUPPRESS)
    p_cleanup.set_defaults(func=cmd_cleanup)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return args.func(args)


def run() -> None:
    sys.exit(main())
