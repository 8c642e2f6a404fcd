"""Terminal capability detection from an environment snapshot."""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Mapping

from .models import ColorMode, DarkMode, TerminalCapabilities, TerminalType

logger = logging.getLogger(__name__)

# TERM_PROGRAM values (lowercased) checked after the dedicated markers.
_TERM_PROGRAMS: dict[str, TerminalType] = {
    "iterm.app": TerminalType.ITERM2,
    "ghostty": TerminalType.GHOSTTY,
    "wezterm": TerminalType.WEZTERM,
    "vscode": TerminalType.VSCODE,
    "apple_terminal": TerminalType.TERMINAL_APP,
}

# terminal -> (osc10, osc11 set, osc11 query, osc1337)
_OSC_SUPPORT: dict[TerminalType, tuple[bool, bool, bool, bool]] = {
    TerminalType.ITERM2: (True, True, True, True),
    TerminalType.GHOSTTY: (True, True, True, False),
    TerminalType.KITTY: (True, True, True, False),
    TerminalType.WEZTERM: (True, True, True, True),  # OSC 1337 partially
    TerminalType.VSCODE: (True, True, True, False),
    TerminalType.TERMINAL_APP: (False, False, False, False),
    TerminalType.UNKNOWN: (False, True, False, False),
}

_SSH_MARKERS = ("SSH_TTY", "SSH_CLIENT", "SSH_CONNECTION")


def get_terminal_type(env: Mapping[str, str]) -> TerminalType:
    if env.get("ITERM_SESSION_ID"):
        return TerminalType.ITERM2
    if env.get("GHOSTTY_RESOURCES_DIR"):
        return TerminalType.GHOSTTY
    term_program = (env.get("TERM_PROGRAM") or "").strip().lower()
    if term_program == "ghostty":
        return TerminalType.GHOSTTY
    if env.get("KITTY_PID") or env.get("KITTY_WINDOW_ID"):
        return TerminalType.KITTY
    return _TERM_PROGRAMS.get(term_program, TerminalType.UNKNOWN)


def is_truecolor_mode(env: Mapping[str, str]) -> bool:
    return (env.get("COLORTERM") or "").strip().lower() in ("truecolor", "24bit")


def get_color_mode(env: Mapping[str, str]) -> ColorMode:
    if is_truecolor_mode(env):
        return ColorMode.TRUECOLOR
    if "256color" in (env.get("TERM") or ""):
        return ColorMode.COLOR256
    return ColorMode.BASIC


def is_ssh_session(env: Mapping[str, str]) -> bool:
    return any(env.get(marker) for marker in _SSH_MARKERS)


def is_tmux_session(env: Mapping[str, str]) -> bool:
    return bool(env.get("TMUX"))


def supports_osc10(terminal: TerminalType) -> bool:
    return _OSC_SUPPORT[terminal][0]


def supports_osc11(terminal: TerminalType) -> bool:
    return _OSC_SUPPORT[terminal][1]


def supports_osc11_query(terminal: TerminalType) -> bool:
    return _OSC_SUPPORT[terminal][2]


def supports_osc1337(terminal: TerminalType) -> bool:
    return _OSC_SUPPORT[terminal][3]


def should_enable_palette_theming(setting: str, color_mode: ColorMode) -> bool:
    """Resolve the ``true``/``false``/``auto`` palette theming setting.

    ``auto`` only enables theming in 256-color mode: truecolor applications
    paint their own RGB values and ignore the palette.
    """
    value = (setting or "").strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return color_mode is ColorMode.COLOR256


def _run_probe(command: list[str], timeout: float = 1) -> subprocess.CompletedProcess[str] | None:
    try:
        return subprocess.run(
            command, capture_output=True, text=True, timeout=timeout,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError, OSError):
        return None


def detect_system_dark_mode(
    env: Mapping[str, str], platform: str | None = None,
) -> DarkMode:
    """Ask the OS for its appearance; UNKNOWN whenever it cannot be told."""
    if is_ssh_session(env):
        # The remote host's appearance says nothing about the local screen.
        return DarkMode.UNKNOWN

    platform = platform or sys.platform
    if platform == "darwin":
        r = _run_probe(["defaults", "read", "-g", "AppleInterfaceStyle"])
        if r is None:
            return DarkMode.UNKNOWN
        # The key is absent (non-zero exit) in light mode.
        if r.returncode == 0 and "dark" in r.stdout.lower():
            return DarkMode.DARK
        return DarkMode.LIGHT

    if platform.startswith("linux"):
        r = _run_probe(
            ["gsettings", "get", "org.gnome.desktop.interface", "color-scheme"]
        )
        if r is None or r.returncode != 0:
            return DarkMode.UNKNOWN
        scheme = r.stdout.strip().strip("'").lower()
        if scheme == "prefer-dark":
            return DarkMode.DARK
        if scheme in ("prefer-light", "default"):
            return DarkMode.LIGHT

    return DarkMode.UNKNOWN


def detect_capabilities(
    env: Mapping[str, str], probe_dark_mode: bool = False,
) -> TerminalCapabilities:
    """Build the immutable per-process capability snapshot."""
    terminal = get_terminal_type(env)
    color_mode = get_color_mode(env)
    osc10, osc11, osc11_query, osc1337 = _OSC_SUPPORT[terminal]
    caps = TerminalCapabilities(
        terminal=terminal,
        truecolor=color_mode is ColorMode.TRUECOLOR,
        color256=color_mode is not ColorMode.BASIC,
        ssh=is_ssh_session(env),
        tmux=is_tmux_session(env),
        osc10=osc10,
        osc11=osc11,
        osc11_query=osc11_query,
        osc1337=osc1337,
        dark_mode=detect_system_dark_mode(env) if probe_dark_mode else DarkMode.UNKNOWN,
    )
    logger.debug("terminal capabilities: %s", caps)
    return caps
