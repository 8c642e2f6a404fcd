"""Per-TTY session records persisted as ``KEY="value"`` files.

One file per terminal, ``session.<tty_key>`` inside the state directory.
Values are escaped so each line parses back by splitting on the first ``=``
and removing one layer of escaping. Writes go through a temp file in the
same directory and ``Path.replace`` so concurrent readers never see a
torn record.
"""

from __future__ import annotations

import logging
import re
import secrets
import uuid
from collections.abc import Mapping
from pathlib import Path

from .config import SESSION_FILE_PREFIX
from .models import ActivityState, SessionState

logger = logging.getLogger(__name__)

SESSION_HEADER = "# tavs session state"

# Everything str.splitlines() treats as a line boundary.
_LINE_BREAK_RE = re.compile(r"\r\n|[\r\n\x0b\x0c\x1c-\x1e\x85\u2028\u2029]")


def escape_value(value: str) -> str:
    text = _LINE_BREAK_RE.sub(" ", str(value))
    return text.replace("\\", "\\\\").replace('"', '\\"')


def unescape_value(raw: str) -> str:
    text = raw.strip()
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        text = text[1:-1]
    out: list[str] = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            out.append(next(chars, ""))
        else:
            out.append(ch)
    return "".join(out)


def parse_kv_text(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, raw = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        values[key] = unescape_value(raw)
    return values


def render_kv_text(values: Mapping[str, object], header: str = "") -> str:
    lines = [header] if header else []
    lines.extend(f'{key}="{escape_value(str(val))}"' for key, val in values.items())
    return "\n".join(lines) + "\n"


def read_kv_file(path: Path) -> dict[str, str]:
    """Parse a ``KEY="value"`` file; missing or unreadable files yield ``{}``."""
    try:
        text = path.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError, UnicodeDecodeError):
        return {}
    return parse_kv_text(text)


def atomic_write_text(path: Path, text: str) -> bool:
    """Write via a same-directory temp file and rename; False on failure."""
    tmp = path.with_name(f".{path.name}.tmp.{uuid.uuid4().hex}")
    try:
        tmp.write_text(text, encoding="utf-8")
        tmp.chmod(0o600)
        tmp.replace(path)
        return True
    except OSError as err:
        logger.warning("cannot write %s: %s", path, err)
        tmp.unlink(missing_ok=True)
        return False


def atomic_write_kv(path: Path, values: Mapping[str, object], header: str = "") -> bool:
    return atomic_write_text(path, render_kv_text(values, header))


def generate_session_id() -> str:
    """8 lowercase hex characters."""
    return secrets.token_hex(4)


def _int(raw: str | None, default: int = 0) -> int:
    try:
        return int(raw or "")
    except ValueError:
        return default


def _float(raw: str | None, default: float = 0.0) -> float:
    try:
        return float(raw or "")
    except ValueError:
        return default


class SessionStore:
    """Load/save/clear session records under one state directory."""

    def __init__(self, state_dir: Path):
        self.state_dir = Path(state_dir)

    def path_for(self, tty_key: str) -> Path:
        return self.state_dir / f"{SESSION_FILE_PREFIX}{tty_key}"

    def exists(self, tty_key: str) -> bool:
        return self.path_for(tty_key).is_file()

    def load(self, tty_key: str) -> SessionState:
        """Read the record for ``tty_key``; defaults when absent or unparsable."""
        values = read_kv_file(self.path_for(tty_key))
        session_id = values.get("SESSION_ID", "").strip().lower()
        if len(session_id) != 8 or any(c not in "0123456789abcdef" for c in session_id):
            if values:
                logger.debug("session record for %s has no usable id", tty_key)
            session_id = generate_session_id()

        return SessionState(
            tty_key=tty_key,
            session_id=session_id,
            user_base_title=values.get("USER_BASE_TITLE", ""),
            last_composed_title=values.get("LAST_SET_TITLE", ""),
            locked=values.get("TITLE_LOCKED", "false").lower() == "true",
            current_state=ActivityState.parse(values.get("CURRENT_STATE")),
            state_entered_at=_float(values.get("STATE_ENTERED_AT")),
            generation=_int(values.get("GENERATION")),
            worker_pid=_int(values.get("WORKER_PID")),
            agent_count=max(0, _int(values.get("AGENT_COUNT"))),
        )

    def save(self, state: SessionState) -> bool:
        values = {
            "USER_BASE_TITLE": state.user_base_title,
            "LAST_SET_TITLE": state.last_composed_title,
            "TITLE_LOCKED": "true" if state.locked else "false",
            "SESSION_ID": state.session_id,
            "CURRENT_STATE": state.current_state.value if state.current_state else "",
            "STATE_ENTERED_AT": repr(float(state.state_entered_at)),
            "GENERATION": int(state.generation),
            "WORKER_PID": int(state.worker_pid),
            "AGENT_COUNT": int(state.agent_count),
        }
        return atomic_write_kv(self.path_for(state.tty_key), values, SESSION_HEADER)

    def clear(self, tty_key: str) -> None:
        try:
            self.path_for(tty_key).unlink()
        except FileNotFoundError:
            pass
        except OSError as err:
            logger.warning("cannot remove session record %s: %s", tty_key, err)

    def tty_keys(self) -> list[str]:
        """TTY keys of every persisted session record."""
        try:
            entries = sorted(self.state_dir.iterdir())
        except (FileNotFoundError, OSError):
            return []
        return [
            p.name[len(SESSION_FILE_PREFIX):]
            for p in entries
            if p.is_file() and p.name.startswith(SESSION_FILE_PREFIX)
        ]
