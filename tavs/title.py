"""Title composition from a format template, face, status icon and base."""

from __future__ import annotations

import re
from pathlib import Path

from .faces import select_face, session_icon
from .models import ActivityState, FacePosition
from .settings import Settings

# C0, DEL and C1 controls. Anything else (emoji, CJK, kaomoji) passes.
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z0-9_]+)\}")

LAST_RESORT_TITLE = "Terminal"


def sanitize_for_terminal(text: str) -> str:
    """Drop control characters so text cannot break out of an OSC sequence."""
    return _CONTROL_RE.sub("", text or "")


def get_short_cwd(cwd: str, home: str = "") -> str:
    """Shorten ``cwd`` for display: ``$HOME`` becomes ``~`` and paths deeper
    than three components collapse to ``first/…/parent/leaf``.
    """
    path = (cwd or "").rstrip("/") or ("/" if cwd else "")
    home = (home or "").rstrip("/")
    if home and (path == home or path.startswith(home + "/")):
        path = "~" + path[len(home):]

    absolute = path.startswith("/")
    parts = [p for p in path.split("/") if p]
    if len(parts) <= 3:
        return path
    short = "/".join([parts[0], "…", parts[-2], parts[-1]])
    return "/" + short if absolute else short


def get_fallback_title(
    mode: str, session_id: str, cwd: str = "", home: str = "",
) -> str:
    """Base title used when neither the user nor the agent has set one."""
    path = get_short_cwd(cwd, home) if cwd else ""
    sid = (session_id or "").strip()
    if mode == "session":
        title = sid
    elif mode == "session-path":
        title = " ".join(p for p in (sid, path) if p)
    elif mode == "path-session":
        title = " ".join(p for p in (path, sid) if p)
    else:
        title = path
    return sanitize_for_terminal(title) or path or sid or LAST_RESORT_TITLE


def _resolve_state(state: ActivityState | str | None) -> ActivityState | None:
    if isinstance(state, ActivityState):
        return state
    return ActivityState.parse(state)


def _face_goes_first(template: str, position: FacePosition) -> bool:
    face_at = template.find("{FACE}")
    icon_at = template.find("{STATUS_ICON}")
    if face_at < 0 or icon_at < 0:
        return True
    template_face_first = face_at < icon_at
    return template_face_first == (position is FacePosition.BEFORE)


def compose_title(
    settings: Settings,
    state: ActivityState | str | None,
    base_title: str,
    *,
    session_id: str = "",
    agent_count: int = 0,
    face: str | None = None,
) -> str:
    """Render the title template for ``state``.

    ``face`` overrides the face table lookup (animated spinner faces).
    Unknown placeholders render empty and runs of whitespace left behind by
    empty segments collapse to one space.
    """
    resolved = _resolve_state(state)
    template = settings.title.format

    if not settings.enable_anthropomorphising or resolved is None:
        face_text = ""
    elif face is not None:
        face_text = face
    else:
        face_text = select_face(
            settings.agent.faces, resolved, session_id,
            randomize=settings.randomize_faces,
        )
    icon_text = settings.status_icon(resolved)

    first, second = face_text, icon_text
    if not _face_goes_first(template, settings.face_position):
        first, second = icon_text, face_text

    agents = ""
    if agent_count > 0:
        agents = settings.title.agents_format.replace("{N}", str(agent_count))

    icon = ""
    if settings.title.session_icon:
        icon = session_icon(session_id, settings.title.session_icons)

    values = {
        "FACE": first,
        "STATUS_ICON": second,
        "AGENTS": agents,
        "SESSION_ICON": icon,
        "BASE": base_title,
    }
    # Values are substituted in one pass so a base title containing
    # "{FACE}" stays literal text.
    rendered = _PLACEHOLDER_RE.sub(
        lambda m: sanitize_for_terminal(values.get(m.group(1), "")),
        template,
    )
    return " ".join(rendered.split())


def default_base_title(
    settings: Settings, user_base_title: str, session_id: str,
    cwd: str | None = None, home: str | None = None,
) -> str:
    base = sanitize_for_terminal(user_base_title).strip()
    if base:
        return base
    return get_fallback_title(
        settings.title.fallback,
        session_id,
        cwd if cwd is not None else _safe_cwd(),
        home if home is not None else str(Path.home()),
    )


def _safe_cwd() -> str:
    try:
        return str(Path.cwd())
    except OSError:
        return ""
