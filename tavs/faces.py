"""Face selection, spinner face frames and session icons."""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence

from .models import ActivityState

UNKNOWN_AGENT = "unknown"

# Faces for agents without a profile. Kept in code so a broken or missing
# config can never leave a state faceless.
FALLBACK_FACES: dict[str, tuple[str, ...]] = {
    "processing": ("(°-°)",),
    "permission": ("(°□°)",),
    "complete": ("(^‿^)",),
    "compacting": ("(@_@)",),
    "reset": ("(-_-)",),
    "idle_0": ("(•‿•)",),
    "idle_1": ("(‿‿)",),
    "idle_2": ("(︶‿︶)",),
    "idle_3": ("(¬‿¬)",),
    "idle_4": ("(-.-)zzZ",),
    "idle_5": ("(︶.︶)ᶻᶻ",),
}
FALLBACK_SPINNER_FRAME = "({L}-{R})"


def select_face(
    faces: Mapping[str, Sequence[str]],
    state: ActivityState | str | None,
    session_id: str = "",
    randomize: bool = False,
    rng: random.Random | None = None,
) -> str:
    """Pick the face for ``state`` from an agent face table.

    Unknown or empty states yield "". Without ``randomize`` the variant is
    derived from the session id, so one terminal keeps one face per state.
    """
    if isinstance(state, ActivityState):
        key = state.value
    else:
        parsed = ActivityState.parse(state)
        key = parsed.value if parsed else ""
    if not key:
        return ""
    variants = [f for f in faces.get(key, ()) if f] or list(FALLBACK_FACES.get(key, ()))
    if not variants:
        return ""
    if randomize:
        return (rng or random).choice(variants)
    return variants[_session_index(session_id, len(variants))]


def get_random_face(
    faces: Mapping[str, Sequence[str]],
    state: ActivityState | str | None,
    rng: random.Random | None = None,
) -> str:
    return select_face(faces, state, randomize=True, rng=rng)


def render_spinner_face(frame: str, left: str, right: str) -> str:
    return frame.replace("{L}", left).replace("{R}", right)


def session_icon(session_id: str, pool: Sequence[str]) -> str:
    if not pool:
        return ""
    return pool[_session_index(session_id, len(pool))]


def _session_index(session_id: str, size: int) -> int:
    if size <= 1:
        return 0
    try:
        return int(session_id, 16) % size
    except ValueError:
        return sum(session_id.encode("utf-8")) % size
