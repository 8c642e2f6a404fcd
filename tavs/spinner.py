"""Spinner eyes: glyph rings, eye-movement modes and per-TTY spinner files."""

from __future__ import annotations

import logging
import random
import re
from pathlib import Path

from .config import SESSION_SPINNER_FILE_PREFIX, SPINNER_FILE_PREFIX
from .models import EyeMode, SpinnerState, SpinnerStyle
from .settings import Settings
from .title_state import atomic_write_text, read_kv_file

logger = logging.getLogger(__name__)

SPINNER_FRAMES: dict[SpinnerStyle, tuple[str, ...]] = {
    SpinnerStyle.BRAILLE: tuple("⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"),
    SpinnerStyle.CIRCLE: tuple("◐◓◑◒"),
    SpinnerStyle.BLOCK: tuple("▖▘▝▗"),
    SpinnerStyle.EYE_ANIMATE: ("•", "◦", "°", "◦"),
}
ANIMATED_STYLES = tuple(SPINNER_FRAMES)

_INTEGER_RE = re.compile(r"[0-9]+")


def validate_integer(value: str) -> bool:
    """Non-negative decimal integer, digits only."""
    return bool(_INTEGER_RE.fullmatch(value or ""))


def spinner_file_path(state_dir: Path, tty_key: str) -> Path:
    return Path(state_dir) / f"{SPINNER_FILE_PREFIX}{tty_key}"


def session_spinner_file_path(state_dir: Path, tty_key: str) -> Path:
    return Path(state_dir) / f"{SESSION_SPINNER_FILE_PREFIX}{tty_key}"


def read_state_value(path: Path, key: str) -> str | None:
    """Value of ``key`` in a ``KEY=value`` file (quotes optional).

    ``None`` when the file is missing, "" when the key is absent.
    """
    if not Path(path).is_file():
        return None
    return read_kv_file(Path(path)).get(key, "")


def write_state_file(path: Path, state: SpinnerState) -> bool:
    text = (
        f"STYLE={state.style.value}\n"
        f"EYE_MODE={state.eye_mode.value}\n"
        f"LEFT_INDEX={int(state.left)}\n"
        f"RIGHT_INDEX={int(state.right)}\n"
    )
    return atomic_write_text(Path(path), text)


def write_index_file(path: Path, index: int) -> bool:
    return atomic_write_text(Path(path), f"{int(index)}\n")


def _index(raw: str | None) -> int:
    return int(raw) if raw and validate_integer(raw) else 0


def load_spinner_state(state_dir: Path, tty_key: str, settings: Settings) -> SpinnerState:
    """Current spinner state: style/mode from the session identity when one
    exists, else from settings; eye indices from the per-TTY spinner file.
    """
    style = settings.spinner.style
    eye_mode = settings.spinner.eye_mode
    if settings.spinner.session_identity:
        identity = read_kv_file(session_spinner_file_path(state_dir, tty_key))
        if identity:
            style = SpinnerStyle.parse(identity.get("STYLE"))
            eye_mode = EyeMode.parse(identity.get("EYE_MODE"))

    values = read_kv_file(spinner_file_path(state_dir, tty_key))
    return SpinnerState(
        style=style,
        eye_mode=eye_mode,
        left=_index(values.get("LEFT_INDEX")),
        right=_index(values.get("RIGHT_INDEX")),
    )


def save_spinner_state(state_dir: Path, tty_key: str, state: SpinnerState) -> bool:
    return write_state_file(spinner_file_path(state_dir, tty_key), state)


def advance(state: SpinnerState) -> SpinnerState:
    """Step both eyes one tick according to the eye mode."""
    frames = SPINNER_FRAMES.get(state.style)
    if not frames:
        return state
    n = len(frames)
    mode = state.eye_mode
    if mode is EyeMode.COUNTER:
        left = (state.left - 1) % n
    else:
        left = (state.left + 1) % n

    if mode is EyeMode.OPPOSITE:
        right = (state.right - 1) % n
    elif mode is EyeMode.STAGGER:
        right = (left + n // 2) % n
    elif mode is EyeMode.CLOCKWISE:
        right = (left + 1) % n
    elif mode is EyeMode.COUNTER:
        right = (left - 1) % n
    elif mode is EyeMode.MIRROR:
        right = (n - left) % n
    elif mode is EyeMode.MIRROR_INV:
        right = n - 1 - left
    else:
        right = left
    return SpinnerState(style=state.style, eye_mode=mode, left=left, right=right)


def get_spinner_eyes(state: SpinnerState) -> tuple[str, str] | None:
    """Glyph pair for the current indices; ``None`` means use the static face."""
    frames = SPINNER_FRAMES.get(state.style)
    if not frames:
        return None
    n = len(frames)
    return frames[state.left % n], frames[state.right % n]


def init_session_spinner(
    state_dir: Path, tty_key: str, settings: Settings,
    rng: random.Random | None = None,
) -> SpinnerState | None:
    """Pick and persist a per-terminal spinner identity.

    Only when session identity is enabled and none exists yet; an existing
    identity is returned unchanged.
    """
    if not settings.spinner.session_identity:
        return None
    path = session_spinner_file_path(state_dir, tty_key)
    existing = read_kv_file(path)
    if existing:
        return SpinnerState(
            style=SpinnerStyle.parse(existing.get("STYLE")),
            eye_mode=EyeMode.parse(existing.get("EYE_MODE")),
        )

    rng = rng or random.Random()
    identity = SpinnerState(
        style=rng.choice(ANIMATED_STYLES),
        eye_mode=rng.choice(list(EyeMode)),
    )
    if write_state_file(path, identity):
        logger.debug("spinner identity for %s: %s/%s",
                     tty_key, identity.style.value, identity.eye_mode.value)
    return identity


def reset_spinner(state_dir: Path, tty_key: str) -> None:
    for path in (
        spinner_file_path(state_dir, tty_key),
        session_spinner_file_path(state_dir, tty_key),
    ):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as err:
            logger.warning("cannot remove %s: %s", path, err)
