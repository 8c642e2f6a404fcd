"""Tests for OSC sequence builders and the TTY writer."""

from tavs.models import TerminalCapabilities
from tavs.terminal import (
    TerminalWriter,
    osc_background,
    osc_palette,
    osc_reset_background,
    osc_reset_palette,
    osc_title,
    tmux_wrap,
)

from tests.helpers import fake_tty


def test_sequences():
    assert osc_title("hi") == "\033]0;hi\033\\"
    assert osc_background("#112233") == "\033]11;#112233\033\\"
    assert osc_reset_background() == "\033]111\033\\"
    assert osc_palette(0, "#112233") == "\033]4;0;#112233\033\\"
    assert osc_reset_palette() == "\033]104\033\\"


def test_tmux_wrap_doubles_escapes():
    assert tmux_wrap("\033]0;x\033\\") == "\033Ptmux;\033\033]0;x\033\033\\\033\\"


def test_writer_appends_to_device(tmp_path):
    dev = fake_tty(tmp_path)
    writer = TerminalWriter(str(dev), TerminalCapabilities())
    assert writer.set_title("one")
    assert writer.set_background("#000000")
    assert dev.read_text() == "\033]0;one\033\\\033]11;#000000\033\\"


def test_writer_wraps_for_tmux(tmp_path):
    dev = fake_tty(tmp_path)
    writer = TerminalWriter(str(dev), TerminalCapabilities(tmux=True))
    assert writer.set_title("t")
    assert dev.read_text().startswith("\033Ptmux;")


def test_background_skipped_without_osc11(tmp_path):
    dev = fake_tty(tmp_path)
    writer = TerminalWriter(str(dev), TerminalCapabilities(osc11=False))
    assert writer.set_background("#101010")
    assert writer.reset_background()
    assert dev.read_text() == ""


def test_missing_device_reports_failure(tmp_path):
    caps = TerminalCapabilities()
    assert not TerminalWriter(None, caps).set_title("x")
    assert not TerminalWriter(str(tmp_path / "gone" / "tty"), caps).set_title("x")
    assert TerminalWriter(None, caps).write("", "")
