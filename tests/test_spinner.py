"""Tests for spinner eye modes and spinner state files."""

import random

import pytest

from tavs.models import EyeMode, SpinnerState, SpinnerStyle
from tavs.spinner import (
    SPINNER_FRAMES,
    advance,
    get_spinner_eyes,
    init_session_spinner,
    load_spinner_state,
    read_state_value,
    reset_spinner,
    save_spinner_state,
    session_spinner_file_path,
    spinner_file_path,
    validate_integer,
    write_index_file,
    write_state_file,
)

from tests.helpers import make_settings


@pytest.mark.parametrize(
    "value,expected",
    [
        ("0", True),
        ("123", True),
        ("999999", True),
        ("-1", False),
        ("abc", False),
        ("12.5", False),
        ("", False),
        ("1 2", False),
    ],
)
def test_validate_integer(value, expected):
    assert validate_integer(value) is expected


def test_read_state_value(tmp_path):
    path = tmp_path / "spinner.test"
    path.write_text('STYLE=braille\nEYE_MODE="sync"\n')
    assert read_state_value(path, "STYLE") == "braille"
    assert read_state_value(path, "EYE_MODE") == "sync"
    assert read_state_value(path, "MISSING") == ""
    assert read_state_value(tmp_path / "nonexistent", "KEY") is None


def test_write_state_file(tmp_path):
    path = tmp_path / "spinner.state"
    state = SpinnerState(SpinnerStyle.BRAILLE, EyeMode.SYNC, 0, 1)
    assert write_state_file(path, state)
    text = path.read_text()
    for line in ("STYLE=braille", "EYE_MODE=sync", "LEFT_INDEX=0", "RIGHT_INDEX=1"):
        assert line in text


def test_write_index_file(tmp_path):
    path = tmp_path / "spinner.idx"
    assert write_index_file(path, 42)
    assert path.read_text().strip() == "42"


def _step(mode, left=0, right=0, style=SpinnerStyle.BRAILLE):
    nxt = advance(SpinnerState(style, mode, left, right))
    return nxt.left, nxt.right


def test_eye_modes_braille():
    assert len(SPINNER_FRAMES[SpinnerStyle.BRAILLE]) == 10
    assert _step(EyeMode.SYNC) == (1, 1)
    assert _step(EyeMode.OPPOSITE) == (1, 9)
    assert _step(EyeMode.STAGGER) == (1, 6)
    assert _step(EyeMode.CLOCKWISE) == (1, 2)
    assert _step(EyeMode.COUNTER) == (9, 8)
    assert _step(EyeMode.MIRROR) == (1, 9)
    assert _step(EyeMode.MIRROR, left=9) == (0, 0)
    assert _step(EyeMode.MIRROR_INV) == (1, 8)


def test_indices_wrap():
    assert _step(EyeMode.SYNC, left=3, right=3, style=SpinnerStyle.CIRCLE) == (0, 0)


def test_none_style_is_static():
    state = SpinnerState(SpinnerStyle.NONE, EyeMode.SYNC, 0, 0)
    assert advance(state) == state
    assert get_spinner_eyes(state) is None


@pytest.mark.parametrize("style", [s for s in SpinnerStyle if s is not SpinnerStyle.NONE])
def test_eyes_come_from_style_frames(style):
    left, right = get_spinner_eyes(SpinnerState(style, EyeMode.SYNC, 0, 1))
    assert left == SPINNER_FRAMES[style][0]
    assert right == SPINNER_FRAMES[style][1]


def test_session_identity_disabled_writes_nothing(tmp_path):
    settings = make_settings(tmp_path)
    assert init_session_spinner(tmp_path, "test_tty", settings) is None
    assert not session_spinner_file_path(tmp_path, "test_tty").exists()


def test_session_identity_persists_and_resets(tmp_path):
    settings = make_settings(tmp_path, {"spinner": {"session_identity": True}})
    first = init_session_spinner(tmp_path, "test_tty", settings, rng=random.Random(3))
    assert first is not None and first.style is not SpinnerStyle.NONE
    assert session_spinner_file_path(tmp_path, "test_tty").exists()

    again = init_session_spinner(tmp_path, "test_tty", settings, rng=random.Random(99))
    assert (again.style, again.eye_mode) == (first.style, first.eye_mode)

    loaded = load_spinner_state(tmp_path, "test_tty", settings)
    assert (loaded.style, loaded.eye_mode) == (first.style, first.eye_mode)

    save_spinner_state(tmp_path, "test_tty", SpinnerState(first.style, first.eye_mode, 2, 3))
    reset_spinner(tmp_path, "test_tty")
    assert not any("test_tty" in p.name for p in tmp_path.iterdir())


def test_load_spinner_state_from_settings_and_file(tmp_path):
    settings = make_settings(tmp_path, {"spinner": {"style": "circle", "eye_mode": "mirror"}})
    assert load_spinner_state(tmp_path, "t", settings) == SpinnerState(
        SpinnerStyle.CIRCLE, EyeMode.MIRROR, 0, 0,
    )
    spinner_file_path(tmp_path, "t").write_text("LEFT_INDEX=2\nRIGHT_INDEX=bad\n")
    loaded = load_spinner_state(tmp_path, "t", settings)
    assert (loaded.left, loaded.right) == (2, 0)
