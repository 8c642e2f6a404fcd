"""Tests for layered settings: defaults, user TOML, env, overrides."""

import logging

from tavs.faces import FALLBACK_FACES
from tavs.models import ActivityState, EyeMode, FacePosition, SpinnerStyle, TitleMode
from tavs.settings import load_settings

from tests.helpers import make_settings


def _env(tmp_path, **extra):
    env = {"TAVS_CONFIG": str(tmp_path / "config.toml"), "HOME": str(tmp_path)}
    env.update(extra)
    return env


def test_builtin_defaults(tmp_path):
    s = make_settings(tmp_path)
    assert s.agent.key == "claude"
    assert s.enable_anthropomorphising
    assert s.face_position == FacePosition.BEFORE
    assert s.title.mode == TitleMode.SKIP_PROCESSING
    assert s.title.format == "{FACE} {STATUS_ICON} {AGENTS} {SESSION_ICON} {BASE}"
    assert s.title.fallback == "path"
    assert s.idle.stage_durations == (60, 30, 30, 30, 30, 30)
    assert s.idle.tick_interval == 1.0
    assert s.spinner.style == SpinnerStyle.NONE
    assert s.spinner.eye_mode == EyeMode.SYNC
    assert s.status_icon(ActivityState.PROCESSING) == "🟠"
    assert s.status_icon(ActivityState.IDLE_3) == "🟣"
    assert s.status_icon(ActivityState.RESET) == ""


def test_every_state_has_a_face_and_every_core_state_a_color(tmp_path):
    s = make_settings(tmp_path)
    for state in ActivityState:
        assert s.agent.faces.get(state.value), state
        if state is not ActivityState.RESET:
            assert s.color(state).startswith("#")


def test_claude_faces_use_pincers(tmp_path):
    s = make_settings(tmp_path)
    assert all("Ǝ[" in face for face in s.agent.faces["processing"])


def test_env_overrides(tmp_path):
    s = load_settings(_env(
        tmp_path,
        TAVS_AGENT="codex",
        ENABLE_PROCESSING="false",
        TAVS_IDLE_DURATIONS="5, 5,5",
        TAVS_TITLE_MODE="full",
        TAVS_SPINNER_STYLE="braille",
    ))
    assert s.agent.key == "codex"
    assert not s.is_enabled(ActivityState.PROCESSING)
    assert s.is_enabled(ActivityState.COMPLETE)
    assert s.idle.stage_durations == (5, 5, 5)
    assert s.title.mode == TitleMode.FULL
    assert s.spinner.style == SpinnerStyle.BRAILLE


def test_user_file_then_env_then_overrides(tmp_path):
    (tmp_path / "config.toml").write_text(
        '[general]\nagent = "gemini"\n\n[title]\nmode = "full"\n'
    )
    assert load_settings(_env(tmp_path)).agent.key == "gemini"
    assert load_settings(_env(tmp_path)).title.mode == TitleMode.FULL

    s = load_settings(_env(tmp_path, TAVS_AGENT="codex"))
    assert s.agent.key == "codex"
    assert s.title.mode == TitleMode.FULL

    s = load_settings(
        _env(tmp_path, TAVS_AGENT="codex"),
        overrides={"general": {"agent": "opencode"}},
    )
    assert s.agent.key == "opencode"


def test_malformed_user_file_falls_back_to_defaults(tmp_path, caplog):
    (tmp_path / "config.toml").write_text("[general\nagent = ")
    with caplog.at_level(logging.WARNING, logger="tavs.settings"):
        s = load_settings(_env(tmp_path))
    assert s.agent.key == "claude"
    assert "ignoring unreadable config" in caplog.text


def test_invalid_values_degrade_gracefully(tmp_path):
    s = load_settings(_env(
        tmp_path,
        FACE_POSITION="sideways",
        TAVS_TITLE_MODE="weird",
        TAVS_SPINNER_STYLE="sparkles",
        TAVS_SPINNER_EYE_MODE="wink",
        ENABLE_ANTHROPOMORPHISING="maybe",
        TAVS_TITLE_FALLBACK="nowhere",
    ))
    assert s.face_position == FacePosition.AFTER
    assert s.title.mode == TitleMode.SKIP_PROCESSING
    assert s.spinner.style == SpinnerStyle.NONE
    assert s.spinner.eye_mode == EyeMode.SYNC
    assert s.enable_anthropomorphising
    assert s.title.fallback == "path"


def test_unknown_agent_uses_fallback_faces(tmp_path):
    s = load_settings(_env(tmp_path, TAVS_AGENT="mystery"))
    assert s.agent.key == "unknown"
    assert s.agent.faces == FALLBACK_FACES
    assert s.agent.faces["processing"] == ("(°-°)",)


def test_partial_agent_faces_fill_from_fallback(tmp_path):
    (tmp_path / "config.toml").write_text(
        '[agents.custom]\nname = "Custom"\n\n[agents.custom.faces]\nprocessing = "(o_o)"\n'
    )
    s = load_settings(_env(tmp_path, TAVS_AGENT="custom"))
    assert s.agent.name == "Custom"
    assert s.agent.faces["processing"] == ("(o_o)",)
    assert s.agent.faces["complete"] == ("(^‿^)",)


def test_reset_is_always_enabled(tmp_path):
    s = make_settings(tmp_path, {"states": {"processing": False, "idle": False}})
    assert s.is_enabled(ActivityState.RESET)
    assert not s.is_enabled(ActivityState.IDLE_2)


def test_random_face_mode(tmp_path):
    assert make_settings(tmp_path, {"general": {"face_mode": "random"}}).randomize_faces
    assert not make_settings(tmp_path).randomize_faces
