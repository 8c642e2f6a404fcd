"""Turn a state into title and background writes for one terminal."""

from __future__ import annotations

import logging
from typing import NamedTuple

from .colors import calculate_state_colors, interpolate_hsl
from .detect import should_enable_palette_theming
from .faces import render_spinner_face
from .models import (
    ActivityState,
    DarkMode,
    SessionState,
    SpinnerState,
    TerminalCapabilities,
    TitleMode,
)
from .settings import Settings
from .spinner import get_spinner_eyes
from .terminal import TerminalWriter, osc_palette, osc_reset_palette
from .title import compose_title, default_base_title

logger = logging.getLogger(__name__)

IDLE_STAGE_COUNT = 6


class Painted(NamedTuple):
    title: str
    ok: bool


def resolve_dark_mode(settings: Settings, caps: TerminalCapabilities) -> DarkMode:
    if settings.dark_mode == "dark":
        return DarkMode.DARK
    if settings.dark_mode == "light":
        return DarkMode.LIGHT
    return caps.dark_mode


def state_colors(settings: Settings, caps: TerminalCapabilities) -> dict[str, str]:
    """Background color per state family, static or derived from the agent base."""
    if settings.theme_mode != "dynamic":
        return dict(settings.colors)
    profile = settings.agent
    if resolve_dark_mode(settings, caps) is DarkMode.LIGHT:
        base = profile.light_base
    else:
        base = profile.dark_base
    return calculate_state_colors(base)._asdict()


def idle_stage_color(complete: str, idle: str, stage: int) -> str:
    """Idle stages fade from the complete color toward the idle color."""
    stage = max(0, min(IDLE_STAGE_COUNT - 1, stage))
    return interpolate_hsl(complete, idle, (stage + 1) * 1000 // IDLE_STAGE_COUNT)


def state_background(
    settings: Settings, caps: TerminalCapabilities, state: ActivityState,
) -> str:
    """Hex background for ``state``; "" means restore the terminal default."""
    if state is ActivityState.RESET:
        return ""
    colors = state_colors(settings, caps)
    if state.is_idle:
        return idle_stage_color(
            colors.get("complete", ""), colors.get("idle", ""), state.stage,
        )
    return colors.get(state.value, "")


def spinner_face(settings: Settings, spinner: SpinnerState) -> str | None:
    eyes = get_spinner_eyes(spinner)
    if eyes is None:
        return None
    return render_spinner_face(settings.agent.spinner_frame, *eyes)


def title_allowed(
    settings: Settings, session: SessionState, state: ActivityState,
) -> bool:
    mode = settings.title.mode
    if mode is TitleMode.OFF or not settings.enable_title_prefix:
        return False
    if settings.title.respect_user_title and session.locked:
        return False
    if mode is TitleMode.SKIP_PROCESSING and state is ActivityState.PROCESSING:
        return False
    return True


def paint(
    writer: TerminalWriter,
    settings: Settings,
    session: SessionState,
    state: ActivityState,
    *,
    face: str | None = None,
    cwd: str | None = None,
    home: str | None = None,
) -> Painted:
    """Write title and background for ``state`` in a single TTY write."""
    sequences: list[str] = []
    title = ""
    if title_allowed(settings, session, state):
        base = default_base_title(
            settings, session.user_base_title, session.session_id, cwd, home,
        )
        title = compose_title(
            settings, state, base,
            session_id=session.session_id,
            agent_count=session.agent_count,
            face=face,
        )
        sequences.append(writer.title_sequence(title))

    if settings.enable_background_change:
        palette = should_enable_palette_theming(
            settings.palette_theming, writer.caps.color_mode,
        )
        color = state_background(settings, writer.caps, state)
        if color:
            sequences.append(writer.background_sequence(color))
            if palette:
                sequences.append(osc_palette(0, color))
        else:
            sequences.append(writer.reset_background_sequence())
            if palette:
                sequences.append(osc_reset_palette())

    ok = writer.write(*sequences)
    if ok:
        logger.debug("painted %s on %s: %r", state.value, writer.device, title)
    return Painted(title, ok)
