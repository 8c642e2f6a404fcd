"""CLI subcommands: trigger, title, session-end, preview, detect, color."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from rich.console import Console
from rich.style import Style
from rich.table import Table
from rich.text import Text

from .colors import (
    calculate_state_colors,
    hex_to_hsl,
    hex_to_rgb,
    is_dark_color,
    normalize_hex,
    rgb_to_hex,
)
from .config import get_state_dir, resolve_tty_device, tty_safe, user_config_path
from .detect import detect_capabilities, should_enable_palette_theming
from .idle import TimerWorker, cleanup_stale_timers
from .models import CORE_STATES, IDLE_STATES, ColorFormatError
from .render import resolve_dark_mode, state_background
from .settings import load_settings
from .title import compose_title, default_base_title
from .title_state import SessionStore, generate_session_id
from .trigger import (
    EXIT_BAD_INPUT,
    EXIT_OK,
    TriggerContext,
    session_end,
    set_title_lock,
    set_user_title,
    trigger,
)

logger = logging.getLogger(__name__)


def cmd_trigger(args: argparse.Namespace) -> int:
    return trigger(args.state)


def cmd_worker(args: argparse.Namespace) -> int:
    env = os.environ
    settings = load_settings(env)
    probe = settings.theme_mode == "dynamic" and settings.dark_mode == "auto"
    caps = detect_capabilities(env, probe_dark_mode=probe)
    store = SessionStore(get_state_dir(env))
    worker = TimerWorker(
        settings, caps, store,
        device=args.tty,
        tty_key=tty_safe(args.tty),
        generation=args.generation,
    )
    try:
        return worker.run()
    except Exception:
        logger.exception("worker for %s failed", args.tty)
        return EXIT_OK


def _context() -> TriggerContext | None:
    ctx = TriggerContext.build()
    if ctx is None:
        print("✗ No terminal found (set TTY_DEVICE)", file=sys.stderr)
    return ctx


def cmd_title(args: argparse.Namespace) -> int:
    ctx = _context()
    if ctx is None:
        return EXIT_BAD_INPUT
    if args.action == "set":
        return set_user_title(ctx, " ".join(args.text))
    if args.action == "lock":
        return set_title_lock(ctx, True)
    return set_title_lock(ctx, False)


def cmd_session_end(args: argparse.Namespace) -> int:
    ctx = _context()
    if ctx is None:
        return EXIT_OK
    return session_end(ctx)


def cmd_cleanup(args: argparse.Namespace) -> int:
    removed = cleanup_stale_timers(SessionStore(get_state_dir(os.environ)))
    for key in removed:
        print(f"✓ Removed {key}")
    return EXIT_OK


def cmd_preview(args: argparse.Namespace) -> int:
    env = os.environ
    overrides = {"general": {"agent": args.agent}} if args.agent else None
    settings = load_settings(env, overrides)
    caps = detect_capabilities(env, probe_dark_mode=settings.dark_mode == "auto")
    session_id = generate_session_id()
    base = args.base or default_base_title(settings, "", session_id)

    table = Table(title=f"{settings.agent.name} ({settings.agent.key})")
    table.add_column("State")
    table.add_column("Title")
    table.add_column("Background")
    for state in (*CORE_STATES, *IDLE_STATES):
        title = compose_title(settings, state, base, session_id=session_id)
        color = state_background(settings, caps, state)
        swatch = Text()
        if color:
            swatch.append("      ", style=Style(bgcolor=color))
            swatch.append(f" {color}")
        else:
            swatch.append("default", style="dim")
        table.add_row(state.value, title, swatch)
    Console().print(table)
    return EXIT_OK


def cmd_detect(args: argparse.Namespace) -> int:
    env = os.environ
    settings = load_settings(env)
    caps = detect_capabilities(env, probe_dark_mode=True)
    device = resolve_tty_device(env)

    rows = [
        ("terminal", caps.terminal.value),
        ("color mode", caps.color_mode.value),
        ("ssh", str(caps.ssh).lower()),
        ("tmux", str(caps.tmux).lower()),
        ("osc10", str(caps.osc10).lower()),
        ("osc11", str(caps.osc11).lower()),
        ("osc11 query", str(caps.osc11_query).lower()),
        ("osc1337", str(caps.osc1337).lower()),
        ("system dark mode", caps.dark_mode.value),
        ("effective dark mode", resolve_dark_mode(settings, caps).value),
        ("palette theming", str(should_enable_palette_theming(
            settings.palette_theming, caps.color_mode)).lower()),
        ("agent", settings.agent.key),
        ("tty", device or "-"),
        ("state dir", str(get_state_dir(env))),
        ("config", str(user_config_path(env))),
    ]
    table = Table(show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()
    for key, value in rows:
        table.add_row(key, value)
    Console().print(table)
    return EXIT_OK


def _fail(err: Exception, fallback: str) -> int:
    print(fallback)
    print(f"✗ {err}", file=sys.stderr)
    return EXIT_BAD_INPUT


def cmd_color(args: argparse.Namespace) -> int:
    op = args.op
    expected = 3 if op == "rgb-to-hex" else 1
    if len(args.values) != expected:
        print(f"✗ {op} takes {expected} value(s)", file=sys.stderr)
        return EXIT_BAD_INPUT
    try:
        if op == "hex-to-rgb":
            print(" ".join(str(c) for c in hex_to_rgb(args.values[0])))
        elif op == "rgb-to-hex":
            try:
                r, g, b = (int(v) for v in args.values)
            except ValueError as err:
                return _fail(err, "#000000")
            print(rgb_to_hex(r, g, b))
        elif op == "to-hsl":
            print(" ".join(str(c) for c in hex_to_hsl(args.values[0])))
        elif op == "is-dark":
            normalize_hex(args.values[0])
            print("true" if is_dark_color(args.values[0]) else "false")
        elif op == "state-colors":
            normalize_hex(args.values[0])
            for state, color in calculate_state_colors(args.values[0])._asdict().items():
                print(f"{state} {color}")
    except ColorFormatError as err:
        return _fail(err, " ".join(str(c) for c in err.fallback))
    return EXIT_OK

