"""Core data types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional


IDLE_STAGE_MAX = 5


class TavsError(Exception):
    """Base class for recoverable tavs errors."""


class ColorFormatError(TavsError, ValueError):
    """Malformed hex color. ``fallback`` is the documented default (black)."""

    def __init__(self, value: str):
        super().__init__(f"invalid hex color: {value!r}")
        self.value = value
        self.fallback = RGB(0, 0, 0)


class UnknownStateError(TavsError, KeyError):
    """Unrecognized activity state name."""


class ActivityState(str, Enum):
    PROCESSING = "processing"
    PERMISSION = "permission"
    COMPLETE = "complete"
    COMPACTING = "compacting"
    RESET = "reset"
    IDLE_0 = "idle_0"
    IDLE_1 = "idle_1"
    IDLE_2 = "idle_2"
    IDLE_3 = "idle_3"
    IDLE_4 = "idle_4"
    IDLE_5 = "idle_5"

    @classmethod
    def parse(cls, name: str | None) -> Optional["ActivityState"]:
        """Map a trigger/state name to a state; ``None`` for anything unknown."""
        key = (name or "").strip().lower().replace("-", "_")
        if key == "idle":
            return cls.IDLE_0
        try:
            return cls(key)
        except ValueError:
            return None

    @classmethod
    def require(cls, name: str | None) -> "ActivityState":
        state = cls.parse(name)
        if state is None:
            raise UnknownStateError(name)
        return state

    @classmethod
    def idle(cls, stage: int) -> "ActivityState":
        stage = max(0, min(IDLE_STAGE_MAX, int(stage)))
        return cls(f"idle_{stage}")

    @property
    def is_idle(self) -> bool:
        return self.value.startswith("idle_")

    @property
    def stage(self) -> int:
        """Idle stage number, -1 for core states."""
        if not self.is_idle:
            return -1
        return int(self.value.rsplit("_", 1)[1])

    @property
    def family(self) -> str:
        """Key used for per-state colors, icons and toggles."""
        return "idle" if self.is_idle else self.value


CORE_STATES: tuple[ActivityState, ...] = (
    ActivityState.PROCESSING,
    ActivityState.PERMISSION,
    ActivityState.COMPLETE,
    ActivityState.COMPACTING,
    ActivityState.RESET,
)
IDLE_STATES: tuple[ActivityState, ...] = tuple(
    ActivityState.idle(i) for i in range(IDLE_STAGE_MAX + 1)
)


class TerminalType(str, Enum):
    ITERM2 = "iterm2"
    GHOSTTY = "ghostty"
    KITTY = "kitty"
    WEZTERM = "wezterm"
    VSCODE = "vscode"
    TERMINAL_APP = "terminal.app"
    UNKNOWN = "unknown"


class ColorMode(str, Enum):
    TRUECOLOR = "truecolor"
    COLOR256 = "256color"
    BASIC = "basic"


class DarkMode(str, Enum):
    DARK = "dark"
    LIGHT = "light"
    UNKNOWN = "unknown"


class FacePosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"

    @classmethod
    def parse(cls, raw: str | None) -> "FacePosition":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.AFTER


class TitleMode(str, Enum):
    FULL = "full"
    SKIP_PROCESSING = "skip-processing"
    OFF = "off"

    @classmethod
    def parse(cls, raw: str | None) -> "TitleMode":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.SKIP_PROCESSING


class SpinnerStyle(str, Enum):
    BRAILLE = "braille"
    CIRCLE = "circle"
    BLOCK = "block"
    EYE_ANIMATE = "eye-animate"
    NONE = "none"

    @classmethod
    def parse(cls, raw: str | None) -> "SpinnerStyle":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.NONE


class EyeMode(str, Enum):
    SYNC = "sync"
    OPPOSITE = "opposite"
    STAGGER = "stagger"
    CLOCKWISE = "clockwise"
    COUNTER = "counter"
    MIRROR = "mirror"
    MIRROR_INV = "mirror_inv"

    @classmethod
    def parse(cls, raw: str | None) -> "EyeMode":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.SYNC


class RGB(NamedTuple):
    r: int
    g: int
    b: int


class HSL(NamedTuple):
    h: int  # degrees x1000, [0, 360000)
    s: int  # fraction x1000, [0, 1000]
    l: int  # noqa: E741  fraction x1000, [0, 1000]


class StageColorSet(NamedTuple):
    processing: str
    permission: str
    complete: str
    idle: str
    compacting: str


@dataclass(frozen=True)
class TerminalCapabilities:
    terminal: TerminalType = TerminalType.UNKNOWN
    truecolor: bool = False
    color256: bool = False
    ssh: bool = False
    tmux: bool = False
    osc10: bool = False
    osc11: bool = True
    osc11_query: bool = False
    osc1337: bool = False
    dark_mode: DarkMode = DarkMode.UNKNOWN

    @property
    def color_mode(self) -> ColorMode:
        if self.truecolor:
            return ColorMode.TRUECOLOR
        if self.color256:
            return ColorMode.COLOR256
        return ColorMode.BASIC


@dataclass
class SessionState:
    tty_key: str
    session_id: str
    user_base_title: str = ""
    last_composed_title: str = ""
    locked: bool = False
    current_state: Optional[ActivityState] = None
    state_entered_at: float = 0.0
    generation: int = 0
    worker_pid: int = 0
    agent_count: int = 0


@dataclass
class SpinnerState:
    style: SpinnerStyle = SpinnerStyle.NONE
    eye_mode: EyeMode = EyeMode.SYNC
    left: int = 0
    right: int = 0
