"""Typed settings loaded from TOML config with env-var overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

from .config import user_config_path
from .faces import FALLBACK_FACES, FALLBACK_SPINNER_FRAME, UNKNOWN_AGENT
from .models import (
    ActivityState,
    EyeMode,
    FacePosition,
    SpinnerStyle,
    TitleMode,
)

logger = logging.getLogger(__name__)

_TRUE_WORDS = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS = frozenset({"0", "false", "no", "off"})

# env var -> (section, key, kind)
ENV_OVERRIDES: dict[str, tuple[str, str, str]] = {
    "TAVS_AGENT": ("general", "agent", "str"),
    "ENABLE_ANTHROPOMORPHISING": ("general", "enable_anthropomorphising", "bool"),
    "FACE_POSITION": ("general", "face_position", "str"),
    "FACE_MODE": ("general", "face_mode", "str"),
    "ENABLE_BACKGROUND_CHANGE": ("general", "enable_background_change", "bool"),
    "ENABLE_TITLE_PREFIX": ("general", "enable_title_prefix", "bool"),
    "ENABLE_PALETTE_THEMING": ("general", "enable_palette_theming", "str"),
    "TAVS_THEME_MODE": ("general", "theme_mode", "str"),
    "TAVS_DARK_MODE": ("general", "dark_mode", "str"),
    "ENABLE_PROCESSING": ("states", "processing", "bool"),
    "ENABLE_PERMISSION": ("states", "permission", "bool"),
    "ENABLE_COMPLETE": ("states", "complete", "bool"),
    "ENABLE_IDLE": ("states", "idle", "bool"),
    "ENABLE_COMPACTING": ("states", "compacting", "bool"),
    "TAVS_TITLE_MODE": ("title", "mode", "str"),
    "TAVS_TITLE_FORMAT": ("title", "format", "str"),
    "TAVS_TITLE_FALLBACK": ("title", "fallback", "str"),
    "TAVS_RESPECT_USER_TITLE": ("title", "respect_user_title", "bool"),
    "TAVS_SESSION_ICON": ("title", "session_icon", "bool"),
    "TAVS_IDLE_TICK": ("idle", "tick_interval", "float"),
    "TAVS_IDLE_DURATIONS": ("idle", "stage_durations", "int_list"),
    "TAVS_SPINNER_STYLE": ("spinner", "style", "str"),
    "TAVS_SPINNER_EYE_MODE": ("spinner", "eye_mode", "str"),
    "TAVS_SESSION_IDENTITY": ("spinner", "session_identity", "bool"),
}

FALLBACK_MODES = ("path", "session", "session-path", "path-session")


def _load_default_toml() -> dict:
    """Load the built-in default_config.toml shipped with the package."""
    ref = resources.files("tavs").joinpath("default_config.toml")
    return tomllib.loads(ref.read_text(encoding="utf-8"))


def _load_user_toml(path: Path) -> dict:
    """Load user config if it exists and parses, otherwise empty dict."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as err:
        logger.warning("ignoring unreadable config %s: %s", path, err)
        return {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base (override wins)."""
    merged = dict(base)
    for key, val in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(val, dict):
            merged[key] = _deep_merge(merged[key], val)
        else:
            merged[key] = val
    return merged


def parse_bool(raw: object, default: bool) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    return default


def _coerce_env(raw: str, kind: str) -> object | None:
    if kind == "str":
        return raw
    if kind == "bool":
        text = raw.strip().lower()
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
        return None
    if kind == "float":
        try:
            return float(raw)
        except ValueError:
            return None
    if kind == "int_list":
        try:
            return [int(part) for part in raw.replace(" ", "").split(",") if part]
        except ValueError:
            return None
    return None


def _env_layer(env: Mapping[str, str]) -> dict:
    layer: dict[str, dict[str, object]] = {}
    for var, (section, key, kind) in ENV_OVERRIDES.items():
        raw = env.get(var)
        if raw is None or raw == "":
            continue
        value = _coerce_env(raw, kind)
        if value is None:
            logger.warning("ignoring invalid %s=%r", var, raw)
            continue
        layer.setdefault(section, {})[key] = value
    return layer


# ── Dataclasses ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class AgentProfile:
    key: str
    name: str
    faces: dict[str, tuple[str, ...]]
    spinner_frame: str
    dark_base: str
    light_base: str


@dataclass(frozen=True)
class TitleSettings:
    mode: TitleMode
    format: str
    fallback: str
    respect_user_title: bool
    session_icon: bool
    session_icons: tuple[str, ...]
    agents_format: str


@dataclass(frozen=True)
class IdleSettings:
    stage_durations: tuple[int, ...]
    tick_interval: float


@dataclass(frozen=True)
class SpinnerSettings:
    style: SpinnerStyle
    eye_mode: EyeMode
    session_identity: bool
    max_seconds: float


@dataclass(frozen=True)
class Settings:
    agent: AgentProfile
    enable_anthropomorphising: bool
    face_position: FacePosition
    randomize_faces: bool
    enable_background_change: bool
    enable_title_prefix: bool
    palette_theming: str
    theme_mode: str
    dark_mode: str
    state_toggles: dict[str, bool]
    colors: dict[str, str]
    status_icons: dict[str, str]
    title: TitleSettings
    idle: IdleSettings
    spinner: SpinnerSettings

    # Raw merged dict kept for diagnostics (``tavs detect``)
    _raw: dict = field(default_factory=dict, repr=False)

    def is_enabled(self, state: ActivityState) -> bool:
        if state is ActivityState.RESET:
            return True
        return self.state_toggles.get(state.family, True)

    def status_icon(self, state: ActivityState | None) -> str:
        if state is None:
            return ""
        return self.status_icons.get(state.family, "")

    def color(self, state: ActivityState) -> str:
        return self.colors.get(state.family, "")


def _str(section: dict, key: str, default: str) -> str:
    val = section.get(key, default)
    text = str(val).strip() if val is not None else ""
    return text or default


def _parse_faces(raw: object) -> dict[str, tuple[str, ...]]:
    faces: dict[str, tuple[str, ...]] = {}
    if not isinstance(raw, dict):
        return faces
    for state, variants in raw.items():
        if isinstance(variants, str):
            variants = [variants]
        if not isinstance(variants, list):
            continue
        cleaned = tuple(str(v) for v in variants if str(v).strip())
        if cleaned:
            faces[str(state)] = cleaned
    return faces


def _unknown_profile() -> AgentProfile:
    return AgentProfile(
        key=UNKNOWN_AGENT,
        name="Agent",
        faces=dict(FALLBACK_FACES),
        spinner_frame=FALLBACK_SPINNER_FRAME,
        dark_base="#2E3440",
        light_base="#E5E9F0",
    )


def resolve_agent(raw: dict, agent: str) -> AgentProfile:
    """Resolve an agent's face/color profile; unknown names get the fallback."""
    key = (agent or "").strip().lower()
    agents = raw.get("agents", {})
    data = agents.get(key) if isinstance(agents, dict) else None
    fallback = _unknown_profile()
    if not key or key == UNKNOWN_AGENT or not isinstance(data, dict):
        if key and key != UNKNOWN_AGENT:
            logger.debug("no profile for agent %r, using fallback faces", agent)
        return fallback

    faces = dict(FALLBACK_FACES)
    faces.update(_parse_faces(data.get("faces")))
    return AgentProfile(
        key=key,
        name=_str(data, "name", key.title()),
        faces=faces,
        spinner_frame=_str(data, "spinner_frame", fallback.spinner_frame),
        dark_base=_str(data, "dark_base", fallback.dark_base),
        light_base=_str(data, "light_base", fallback.light_base),
    )


def _parse_durations(raw: object) -> tuple[int, ...]:
    default = (60, 30, 30, 30, 30, 30)
    if not isinstance(raw, list):
        return default
    out: list[int] = []
    for item in raw:
        try:
            out.append(max(0, int(item)))
        except (TypeError, ValueError):
            return default
    return tuple(out) or default


def _positive_float(raw: object, default: float) -> float:
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def build_settings(raw: dict) -> Settings:
    gen = raw.get("general", {})
    states = raw.get("states", {})
    title = raw.get("title", {})
    idle = raw.get("idle", {})
    sp = raw.get("spinner", {})

    fallback_mode = _str(title, "fallback", "path").lower()
    if fallback_mode not in FALLBACK_MODES:
        fallback_mode = "path"

    icons_pool = title.get("session_icons", [])
    status_icons: dict[str, str] = {
        str(k): str(v) for k, v in raw.get("status_icons", {}).items()
    }
    status_icons.setdefault("reset", "")

    return Settings(
        agent=resolve_agent(raw, _str(gen, "agent", "claude")),
        enable_anthropomorphising=parse_bool(gen.get("enable_anthropomorphising", True), True),
        face_position=FacePosition.parse(gen.get("face_position")),
        randomize_faces=_str(gen, "face_mode", "stable").lower() == "random",
        enable_background_change=parse_bool(gen.get("enable_background_change", True), True),
        enable_title_prefix=parse_bool(gen.get("enable_title_prefix", True), True),
        palette_theming=_str(gen, "enable_palette_theming", "auto").lower(),
        theme_mode=_str(gen, "theme_mode", "static").lower(),
        dark_mode=_str(gen, "dark_mode", "auto").lower(),
        state_toggles={str(k): parse_bool(v, True) for k, v in states.items()},
        colors={str(k): str(v) for k, v in raw.get("colors", {}).items()},
        status_icons=status_icons,
        title=TitleSettings(
            mode=TitleMode.parse(title.get("mode")),
            format=str(title.get("format", "")) or "{FACE} {STATUS_ICON} {BASE}",
            fallback=fallback_mode,
            respect_user_title=parse_bool(title.get("respect_user_title", True), True),
            session_icon=parse_bool(title.get("session_icon", False), False),
            session_icons=tuple(str(i) for i in icons_pool if str(i).strip())
            if isinstance(icons_pool, list) else (),
            agents_format=str(title.get("agents_format", "+{N}")),
        ),
        idle=IdleSettings(
            stage_durations=_parse_durations(idle.get("stage_durations")),
            tick_interval=_positive_float(idle.get("tick_interval"), 1.0),
        ),
        spinner=SpinnerSettings(
            style=SpinnerStyle.parse(sp.get("style")),
            eye_mode=EyeMode.parse(sp.get("eye_mode")),
            session_identity=parse_bool(sp.get("session_identity", False), False),
            max_seconds=_positive_float(sp.get("max_seconds"), 600.0),
        ),
        _raw=raw,
    )


def load_settings(
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load settings: defaults ← user TOML ← env vars ← call-site overrides.

    ``overrides`` uses the TOML shape, e.g. ``{"general": {"agent": "codex"}}``.
    """
    env = os.environ if env is None else env
    raw = _load_default_toml()
    raw = _deep_merge(raw, _load_user_toml(user_config_path(env)))
    raw = _deep_merge(raw, _env_layer(env))
    if overrides:
        raw = _deep_merge(raw, dict(overrides))
    return build_settings(raw)
