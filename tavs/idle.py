"""Idle progression and the detached background timer worker.

One worker per TTY at most. A trigger bumps ``SessionState.generation``
before it spawns a worker; the worker remembers the generation it was
spawned for and exits on the first tick that finds a different one. The
SIGTERM sent by kill_idle_timer() only shortens that wait.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from .config import device_for_key
from .models import IDLE_STAGE_MAX, ActivityState, TerminalCapabilities
from .render import paint, spinner_face, title_allowed
from .settings import Settings
from .spinner import advance, load_spinner_state, reset_spinner, save_spinner_state
from .terminal import TerminalWriter
from .title_state import SessionStore

logger = logging.getLogger(__name__)


def get_unified_stage(elapsed: float, durations: Sequence[int]) -> int:
    """Idle stage for ``elapsed`` seconds since idle entry.

    Stage N starts once elapsed exceeds the summed durations of stages
    0..N-1; the last stage never ends.
    """
    stage = 0
    boundary = 0
    for duration in list(durations)[:IDLE_STAGE_MAX]:
        boundary += max(0, int(duration))
        if elapsed > boundary:
            stage += 1
        else:
            break
    return min(stage, IDLE_STAGE_MAX)


def _is_tavs_process(pid: int) -> bool:
    try:
        cmdline = Path(f"/proc/{pid}/cmdline").read_bytes()
    except (FileNotFoundError, OSError):
        return False
    return b"tavs" in cmdline


def kill_idle_timer(pid: int) -> bool:
    """Send SIGTERM to a previously spawned worker.

    Only when ``/proc`` confirms the pid still runs tavs, so a recycled pid
    is never signalled. Where ``/proc`` is unavailable this is a no-op and
    the generation check stops the worker on its next tick.
    """
    if pid <= 0 or pid == os.getpid() or not _is_tavs_process(pid):
        return False
    try:
        os.kill(pid, signal.SIGTERM)
    except (ProcessLookupError, PermissionError, OSError) as err:
        logger.debug("cannot stop worker %d: %s", pid, err)
        return False
    logger.debug("stopped worker %d", pid)
    return True


def spawn_worker(
    device: str, generation: int, env: Mapping[str, str] | None = None,
) -> int:
    """Start a fully detached worker; returns its pid, 0 on failure."""
    cmd = [
        sys.executable, "-m", "tavs", "worker",
        "--tty", device,
        "--generation", str(generation),
    ]
    try:
        proc = subprocess.Popen(
            cmd,
            env=dict(env) if env is not None else None,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
            close_fds=True,
        )
    except OSError as err:
        logger.warning("cannot start idle worker: %s", err)
        return 0
    logger.debug("spawned worker %d for %s (generation %d)", proc.pid, device, generation)
    return proc.pid


def cleanup_stale_timers(store: SessionStore) -> list[str]:
    """Drop session records (and their workers) whose TTY device is gone."""
    removed: list[str] = []
    for tty_key in store.tty_keys():
        device = device_for_key(tty_key)
        if device is None or os.path.exists(device):
            continue
        session = store.load(tty_key)
        kill_idle_timer(session.worker_pid)
        store.clear(tty_key)
        reset_spinner(store.state_dir, tty_key)
        removed.append(tty_key)
    if removed:
        logger.info("removed %d stale session record(s)", len(removed))
    return removed


class TimerWorker:
    """Background loop animating one terminal until superseded."""

    def __init__(
        self,
        settings: Settings,
        caps: TerminalCapabilities,
        store: SessionStore,
        device: str,
        tty_key: str,
        generation: int,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings
        self.store = store
        self.tty_key = tty_key
        self.generation = generation
        self.writer = TerminalWriter(device, caps)
        self.clock = clock
        self.sleep = sleep

    def _current(self):
        """Session record if this worker is still current, else None."""
        if not self.store.exists(self.tty_key):
            return None
        session = self.store.load(self.tty_key)
        if session.generation != self.generation:
            return None
        return session

    def run(self) -> int:
        session = self._current()
        if session is None or session.current_state is None:
            logger.debug("worker generation %d superseded before start", self.generation)
            return 0
        entry = session.current_state
        if entry is ActivityState.PROCESSING:
            self._animate_processing()
        elif entry is ActivityState.COMPLETE or entry.is_idle:
            self._progress_idle(entry)
        return 0

    def _spinner_tick(self) -> str | None:
        """Advance the eyes one frame and return the rendered face.

        ``None`` when the spinner style is ``none``.
        """
        state_dir = self.store.state_dir
        spinner = advance(load_spinner_state(state_dir, self.tty_key, self.settings))
        face = spinner_face(self.settings, spinner)
        if face is not None:
            save_spinner_state(state_dir, self.tty_key, spinner)
        return face

    def _idle_face(self, session, state: ActivityState, elapsed: float) -> str | None:
        if elapsed > self.settings.spinner.max_seconds:
            return None
        if not title_allowed(self.settings, session, state):
            return None
        return self._spinner_tick()

    def _progress_idle(self, entry: ActivityState) -> None:
        # Stage 0 is already on screen: the trigger painted either complete
        # or idle_0. Static faces repaint only when the stage rises; an
        # animated spinner repaints every tick.
        last_stage = max(0, entry.stage)
        animated = False
        tick = self.settings.idle.tick_interval
        while True:
            self.sleep(tick)
            session = self._current()
            if session is None:
                logger.debug("worker generation %d superseded", self.generation)
                return
            elapsed = self.clock() - session.state_entered_at
            stage = max(last_stage, get_unified_stage(
                elapsed, self.settings.idle.stage_durations,
            ))
            state = ActivityState.idle(stage)
            face = self._idle_face(session, state, elapsed)
            if face is None and not animated and stage == last_stage:
                if last_stage >= IDLE_STAGE_MAX:
                    return
                continue
            painted = paint(self.writer, self.settings, session, state, face=face)
            if not painted.ok:
                logger.debug("tty %s gone, worker exiting", self.writer.device)
                return
            last_stage = stage
            animated = face is not None

    def _animate_processing(self) -> None:
        tick = self.settings.idle.tick_interval
        while True:
            self.sleep(tick)
            session = self._current()
            if session is None:
                return
            if self.clock() - session.state_entered_at > self.settings.spinner.max_seconds:
                logger.debug("processing animation hit its time limit")
                return
            face = self._spinner_tick()
            if face is None:
                return
            painted = paint(
                self.writer, self.settings, session, ActivityState.PROCESSING, face=face,
            )
            if not painted.ok:
                return
