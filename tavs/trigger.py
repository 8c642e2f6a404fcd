"""Trigger entry point: record a new state for this TTY and repaint it.

Returns quickly in every case; long-running work (idle progression,
processing animation) happens in a detached worker.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .config import get_state_dir, resolve_tty_device, tty_safe
from .detect import detect_capabilities, should_enable_palette_theming
from .idle import cleanup_stale_timers, kill_idle_timer, spawn_worker
from .models import (
    IDLE_STAGE_MAX,
    ActivityState,
    SessionState,
    SpinnerStyle,
    TerminalCapabilities,
    UnknownStateError,
)
from .render import paint, spinner_face, title_allowed
from .settings import Settings, load_settings
from .spinner import init_session_spinner, load_spinner_state, reset_spinner
from .terminal import TerminalWriter, osc_reset_palette
from .title import sanitize_for_terminal
from .title_state import SessionStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BAD_INPUT = 1
EXIT_UNKNOWN_STATE = 2

SUBAGENT_START = "subagent-start"
SUBAGENT_STOP = "subagent-stop"
SUBAGENT_EVENTS = (SUBAGENT_START, SUBAGENT_STOP)

Spawner = Callable[[str, int, Mapping[str, str]], int]


@dataclass
class TriggerContext:
    """Everything one invocation needs, resolved once up front."""

    settings: Settings
    caps: TerminalCapabilities
    store: SessionStore
    device: str
    tty_key: str
    env: Mapping[str, str]

    @property
    def writer(self) -> TerminalWriter:
        return TerminalWriter(self.device, self.caps)

    @classmethod
    def build(
        cls,
        env: Mapping[str, str] | None = None,
        settings: Settings | None = None,
        caps: TerminalCapabilities | None = None,
        device: str | None = None,
    ) -> "TriggerContext | None":
        env = os.environ if env is None else env
        settings = settings or load_settings(env)
        if caps is None:
            probe = settings.theme_mode == "dynamic" and settings.dark_mode == "auto"
            caps = detect_capabilities(env, probe_dark_mode=probe)
        device = device or resolve_tty_device(env)
        if not device:
            logger.debug("no controlling terminal, nothing to do")
            return None
        store = SessionStore(get_state_dir(env))
        return cls(settings, caps, store, device, tty_safe(device), env)


def normalize_event(name: str | None) -> str:
    return (name or "").strip().lower().replace("_", "-")


def _spinner_animates(ctx: TriggerContext, session: SessionState, state: ActivityState) -> bool:
    spinner = load_spinner_state(ctx.store.state_dir, ctx.tty_key, ctx.settings)
    return (
        spinner.style is not SpinnerStyle.NONE
        and title_allowed(ctx.settings, session, state)
    )


def _needs_worker(ctx: TriggerContext, session: SessionState, state: ActivityState) -> bool:
    if state is ActivityState.COMPLETE:
        return ctx.settings.is_enabled(ActivityState.IDLE_0)
    if state.is_idle:
        return state.stage < IDLE_STAGE_MAX or _spinner_animates(ctx, session, state)
    if state is ActivityState.PROCESSING:
        return _spinner_animates(ctx, session, state)
    return False


def _processing_face(ctx: TriggerContext) -> str | None:
    spinner = load_spinner_state(ctx.store.state_dir, ctx.tty_key, ctx.settings)
    return spinner_face(ctx.settings, spinner)


def apply_state(
    ctx: TriggerContext,
    state: ActivityState,
    now: float | None = None,
    spawn: Spawner = spawn_worker,
) -> int:
    session = ctx.store.load(ctx.tty_key)
    if not ctx.store.exists(ctx.tty_key):
        cleanup_stale_timers(ctx.store)

    kill_idle_timer(session.worker_pid)
    init_session_spinner(ctx.store.state_dir, ctx.tty_key, ctx.settings)

    session.generation += 1
    session.current_state = state
    session.state_entered_at = time.time() if now is None else now
    session.worker_pid = 0
    if state is ActivityState.RESET:
        session.agent_count = 0

    # Persist the new generation before painting so a running worker stops
    # before it can repaint over this state.
    ctx.store.save(session)

    face = _processing_face(ctx) if state is ActivityState.PROCESSING else None
    painted = paint(ctx.writer, ctx.settings, session, state, face=face)
    if painted.title:
        session.last_composed_title = painted.title
        ctx.store.save(session)

    if _needs_worker(ctx, session, state):
        pid = spawn(ctx.device, session.generation, ctx.env)
        if pid:
            session.worker_pid = pid
            ctx.store.save(session)
    return EXIT_OK


def adjust_agents(ctx: TriggerContext, delta: int) -> int:
    session = ctx.store.load(ctx.tty_key)
    session.agent_count = max(0, session.agent_count + delta)
    state = session.current_state
    if state is not None and title_allowed(ctx.settings, session, state):
        painted = paint(ctx.writer, ctx.settings, session, state)
        if painted.title:
            session.last_composed_title = painted.title
    ctx.store.save(session)
    return EXIT_OK


def trigger(
    name: str | None,
    env: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    caps: TerminalCapabilities | None = None,
    now: float | None = None,
    spawn: Spawner = spawn_worker,
) -> int:
    """Handle one agent lifecycle event.

    Exit codes: 0 on success (including disabled states and any internal
    failure, which is logged), 2 for an unrecognized event name.
    """
    event = normalize_event(name)
    state = None
    if event not in SUBAGENT_EVENTS:
        try:
            state = ActivityState.require(name)
        except UnknownStateError:
            logger.error("unknown state: %r", name)
            return EXIT_UNKNOWN_STATE

    try:
        ctx = TriggerContext.build(env, settings, caps)
        if ctx is None:
            return EXIT_OK
        if event == SUBAGENT_START:
            return adjust_agents(ctx, 1)
        if event == SUBAGENT_STOP:
            return adjust_agents(ctx, -1)
        if not ctx.settings.is_enabled(state):
            logger.debug("state %s disabled", state.value)
            return EXIT_OK
        return apply_state(ctx, state, now=now, spawn=spawn)
    except Exception:
        logger.exception("trigger %r failed", name)
        return EXIT_OK


def set_user_title(ctx: TriggerContext, text: str) -> int:
    """Store the user's base title and redraw with it."""
    session = ctx.store.load(ctx.tty_key)
    session.user_base_title = sanitize_for_terminal(text).strip()
    state = session.current_state
    writer = ctx.writer
    if state is not None and title_allowed(ctx.settings, session, state):
        painted = paint(writer, ctx.settings, session, state)
        session.last_composed_title = painted.title
    elif session.user_base_title:
        writer.set_title(session.user_base_title)
        session.last_composed_title = session.user_base_title
    ctx.store.save(session)
    return EXIT_OK


def set_title_lock(ctx: TriggerContext, locked: bool) -> int:
    session = ctx.store.load(ctx.tty_key)
    session.locked = locked
    ctx.store.save(session)
    return EXIT_OK


def session_end(ctx: TriggerContext) -> int:
    """Stop the worker, forget the session and restore the terminal."""
    session = ctx.store.load(ctx.tty_key)
    kill_idle_timer(session.worker_pid)
    ctx.store.clear(ctx.tty_key)
    reset_spinner(ctx.store.state_dir, ctx.tty_key)

    writer = ctx.writer
    sequences = []
    if ctx.settings.enable_background_change:
        sequences.append(writer.reset_background_sequence())
        if should_enable_palette_theming(ctx.settings.palette_theming, ctx.caps.color_mode):
            sequences.append(osc_reset_palette())
    if session.user_base_title and not session.locked:
        sequences.append(writer.title_sequence(session.user_base_title))
    writer.write(*sequences)
    return EXIT_OK
