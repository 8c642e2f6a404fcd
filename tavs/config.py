"""Runtime paths: state directory, TTY device and TTY-safe keys."""

from __future__ import annotations

import logging
import os
import re
import sys
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

APP_DIR_NAME = "tavs"
SESSION_FILE_PREFIX = "session."
SPINNER_FILE_PREFIX = "spinner."
SESSION_SPINNER_FILE_PREFIX = "session-spinner."

_TTY_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]+")


def _resolve_dir(raw: str) -> Path:
    return Path(os.path.expanduser(raw)).expanduser()


def _ensure_private_dir(path: Path, fallback: Path) -> Path:
    """Ensure directory exists (mode 0700), falling back when creation is denied."""
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
        return path
    except OSError:
        logger.warning("cannot create %s, using %s", path, fallback)
        fallback.mkdir(mode=0o700, parents=True, exist_ok=True)
        return fallback


def state_dir_candidate(env: Mapping[str, str]) -> Path:
    """State directory preference: TAVS_STATE_DIR, XDG runtime dir, user cache."""
    explicit = (env.get("TAVS_STATE_DIR") or "").strip()
    if explicit:
        return _resolve_dir(explicit)
    runtime = (env.get("XDG_RUNTIME_DIR") or "").strip()
    if runtime:
        return _resolve_dir(runtime) / APP_DIR_NAME
    home = (env.get("HOME") or "").strip() or str(Path.home())
    return _resolve_dir(home) / ".cache" / APP_DIR_NAME


def get_state_dir(env: Mapping[str, str]) -> Path:
    fallback = Path("/tmp") / f"{APP_DIR_NAME}-{os.getuid()}"
    return _ensure_private_dir(state_dir_candidate(env), fallback)


def tty_safe(device: str) -> str:
    """Filesystem-safe key for a TTY device path (``/dev/ttys001`` -> ``dev_ttys001``)."""
    key = _TTY_UNSAFE_RE.sub("_", (device or "").strip()).strip("_")
    return key or "unknown"


def device_for_key(tty_key: str) -> str | None:
    """Best-effort inverse of tty_safe() for ``/dev/...`` devices.

    Lossy: device names containing ``_`` cannot be recovered.
    """
    if not tty_key.startswith("dev_"):
        return None
    return "/" + tty_key.replace("_", "/")


def resolve_tty_device(env: Mapping[str, str]) -> str | None:
    """Find the controlling terminal device.

    ``TTY_DEVICE`` wins (hooks that run without a terminal on stdio pass it
    explicitly). Then stdio descriptors, then ``/dev/tty``.
    """
    explicit = (env.get("TTY_DEVICE") or "").strip()
    if explicit:
        return explicit

    for stream in (sys.stdin, sys.stdout, sys.stderr):
        try:
            fd = stream.fileno()
        except (AttributeError, ValueError, OSError):
            continue
        try:
            if os.isatty(fd):
                return os.ttyname(fd)
        except OSError:
            continue

    try:
        fd = os.open("/dev/tty", os.O_WRONLY | os.O_NOCTTY)
    except OSError:
        return None
    try:
        return os.ttyname(fd)
    except OSError:
        return "/dev/tty"
    finally:
        os.close(fd)


def user_config_path(env: Mapping[str, str]) -> Path:
    explicit = (env.get("TAVS_CONFIG") or "").strip()
    if explicit:
        return _resolve_dir(explicit)
    base = (env.get("XDG_CONFIG_HOME") or "").strip()
    root = _resolve_dir(base) if base else Path.home() / ".config"
    return root / APP_DIR_NAME / "config.toml"
