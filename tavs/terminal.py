"""OSC escape sequences and the capability-gated TTY writer."""

from __future__ import annotations

import logging
import os

from .models import TerminalCapabilities

logger = logging.getLogger(__name__)

ESC = "\033"
ST = ESC + "\\"


def osc_title(title: str) -> str:
    return f"{ESC}]0;{title}{ST}"


def osc_background(color: str) -> str:
    return f"{ESC}]11;{color}{ST}"


def osc_reset_background() -> str:
    return f"{ESC}]111{ST}"


def osc_palette(index: int, color: str) -> str:
    return f"{ESC}]4;{int(index)};{color}{ST}"


def osc_reset_palette() -> str:
    return f"{ESC}]104{ST}"


def tmux_wrap(sequence: str) -> str:
    """Wrap in tmux's DCS passthrough so the outer terminal receives it."""
    return f"{ESC}Ptmux;{sequence.replace(ESC, ESC + ESC)}{ST}"


class TerminalWriter:
    """Writes escape sequences straight to a TTY device, never to stdout.

    Sequences the terminal cannot handle are skipped silently. Write errors
    are logged and reported as ``False``.
    """

    def __init__(self, device: str | None, caps: TerminalCapabilities):
        self.device = device
        self.caps = caps

    def write(self, *sequences: str) -> bool:
        payload = "".join(tmux_wrap(s) if self.caps.tmux else s for s in sequences if s)
        if not payload:
            return True
        if not self.device:
            logger.debug("no tty device, dropping %d sequence(s)", len(sequences))
            return False
        try:
            fd = os.open(self.device, os.O_WRONLY | os.O_NOCTTY | os.O_APPEND)
        except OSError as err:
            logger.debug("cannot open %s: %s", self.device, err)
            return False
        try:
            os.write(fd, payload.encode("utf-8"))
            return True
        except OSError as err:
            logger.debug("write to %s failed: %s", self.device, err)
            return False
        finally:
            os.close(fd)

    def title_sequence(self, title: str) -> str:
        return osc_title(title)

    def background_sequence(self, color: str) -> str:
        return osc_background(color) if self.caps.osc11 and color else ""

    def reset_background_sequence(self) -> str:
        return osc_reset_background() if self.caps.osc11 else ""

    def set_title(self, title: str) -> bool:
        return self.write(self.title_sequence(title))

    def set_background(self, color: str) -> bool:
        return self.write(self.background_sequence(color))

    def reset_background(self) -> bool:
        return self.write(self.reset_background_sequence())

    def set_palette_background(self, color: str) -> bool:
        return self.write(osc_palette(0, color))

    def reset_palette(self) -> bool:
        return self.write(osc_reset_palette())
