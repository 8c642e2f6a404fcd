"""Tests for title composition, sanitization and fallback titles."""

import pytest

from tavs.models import ActivityState
from tavs.title import (
    compose_title,
    default_base_title,
    get_fallback_title,
    get_short_cwd,
    sanitize_for_terminal,
)

from tests.helpers import make_settings

ICONS = ("🟠", "🔴", "🟢", "🟣", "🔄")


def test_sanitize_strips_controls_keeps_unicode():
    assert sanitize_for_terminal("hello\x00\x01\x1fworld") == "helloworld"
    assert sanitize_for_terminal("a\x1b]0;evil\x07b") == "a]0;evilb"
    assert sanitize_for_terminal("x\x9by") == "xy"
    assert sanitize_for_terminal("hello 🟠 world") == "hello 🟠 world"
    assert sanitize_for_terminal(None) == ""


@pytest.mark.parametrize(
    "cwd,home,expected",
    [
        ("/Users/test", "/Users/test", "~"),
        ("/Users/test/proj", "/Users/test", "~/proj"),
        ("/Users/test/very/deep/nested/path", "/Users/test", "~/…/nested/path"),
        ("/usr/local/share/doc", "", "/usr/…/share/doc"),
        ("/usr/local", "", "/usr/local"),
        ("/Users/testing/a", "/Users/test", "/Users/testing/a"),
        ("/", "/Users/test", "/"),
    ],
)
def test_get_short_cwd(cwd, home, expected):
    assert get_short_cwd(cwd, home) == expected


@pytest.mark.parametrize(
    "mode,expected",
    [
        ("path", "~/proj"),
        ("session", "abcd1234"),
        ("session-path", "abcd1234 ~/proj"),
        ("path-session", "~/proj abcd1234"),
    ],
)
def test_fallback_modes(mode, expected):
    assert get_fallback_title(mode, "abcd1234", "/Users/test/proj", "/Users/test") == expected


def test_fallback_is_never_empty():
    assert get_fallback_title("path", "", "", "") == "Terminal"
    assert get_fallback_title("path", "abcd1234", "", "") == "abcd1234"
    assert get_fallback_title("session", "", "/tmp", "") == "/tmp"


def test_compose_processing_contains_base_and_icon_once(tmp_path):
    s = make_settings(tmp_path)
    title = compose_title(s, "processing", "Test", session_id="00000000")
    assert title.count("Test") == 1
    assert title.count("🟠") == 1
    assert "{" not in title and "}" not in title
    assert title.startswith("Ǝ[")
    assert title.endswith("🟠 Test")


@pytest.mark.parametrize(
    "state,icon",
    [("permission", "🔴"), ("complete", "🟢"), ("idle_2", "🟣"), ("compacting", "🔄")],
)
def test_compose_uses_state_icon(tmp_path, state, icon):
    title = compose_title(make_settings(tmp_path), state, "MyApp")
    assert icon in title
    assert "MyApp" in title


def test_reset_has_no_status_icon(tmp_path):
    title = compose_title(make_settings(tmp_path), ActivityState.RESET, "MyApp")
    assert not any(icon in title for icon in ICONS)
    assert title.endswith("MyApp")


def test_face_after_icon(tmp_path):
    s = make_settings(tmp_path, {"general": {"face_position": "after"}})
    title = compose_title(s, "complete", "Base", face="(F)")
    assert title == "🟢 (F) Base"


def test_face_before_icon_with_reversed_template(tmp_path):
    s = make_settings(tmp_path, {"title": {"format": "{STATUS_ICON} {FACE} {BASE}"}})
    assert compose_title(s, "complete", "Base", face="(F)") == "(F) 🟢 Base"


def test_anthropomorphising_off_drops_face(tmp_path):
    s = make_settings(tmp_path, {"general": {"enable_anthropomorphising": False}})
    assert compose_title(s, "processing", "Test") == "🟠 Test"


def test_unknown_state_renders_base_only(tmp_path):
    assert compose_title(make_settings(tmp_path), "bogus", "Test") == "Test"
    assert compose_title(make_settings(tmp_path), "", "Test") == "Test"


def test_agents_placeholder(tmp_path):
    s = make_settings(tmp_path)
    assert "+2" in compose_title(s, "processing", "T", face="f", agent_count=2)
    assert "+" not in compose_title(s, "processing", "T", face="f", agent_count=0)


def test_session_icon_placeholder(tmp_path):
    s = make_settings(tmp_path, {"title": {"session_icon": True, "session_icons": ["A", "B"]}})
    assert compose_title(s, "complete", "T", face="f", session_id="00000001") == "f 🟢 B T"


def test_unknown_placeholders_render_empty(tmp_path):
    s = make_settings(tmp_path, {"title": {"format": "{STATUS_ICON} {BASE} {NOPE}"}})
    assert compose_title(s, "processing", "Test") == "🟠 Test"


@pytest.mark.parametrize("placeholder", ["{Face}", "{BASE2}", "{status_icon}", "{x1}"])
def test_mixed_case_and_digit_placeholders_render_empty(tmp_path, placeholder):
    s = make_settings(tmp_path, {"title": {"format": f"{{STATUS_ICON}} {placeholder} {{BASE}}"}})
    assert compose_title(s, "processing", "Test") == "🟠 Test"


def test_base_is_not_expanded_and_is_sanitized(tmp_path):
    s = make_settings(tmp_path)
    title = compose_title(s, "complete", "a {FACE} b\x07", face="f")
    assert title == "f 🟢 a {FACE} b"


def test_compose_is_idempotent_and_pure(tmp_path):
    first = compose_title(make_settings(tmp_path), "complete", "X", session_id="0000abcd")
    second = compose_title(make_settings(tmp_path), "complete", "X", session_id="0000abcd")
    assert first == second


def test_default_base_title(tmp_path):
    s = make_settings(tmp_path)
    assert default_base_title(s, "Mine", "abcd1234") == "Mine"
    assert default_base_title(s, "", "abcd1234", cwd="/home/u/x", home="/home/u") == "~/x"
    s2 = make_settings(tmp_path, {"title": {"fallback": "session"}})
    assert default_base_title(s2, "  ", "abcd1234", cwd="/x", home="") == "abcd1234"
