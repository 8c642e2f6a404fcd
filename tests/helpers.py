"""Shared test helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from tavs.settings import Settings, load_settings


def make_settings(tmp_path: Path, overrides: dict[str, Any] | None = None) -> Settings:
    """Built-in defaults only, no user file or environment leaking in."""
    env = {"TAVS_CONFIG": str(tmp_path / "missing.toml"), "HOME": str(tmp_path)}
    return load_settings(env, overrides)


def fake_tty(tmp_path: Path, name: str = "ttys001") -> Path:
    """A regular file standing in for a terminal device."""
    dev = tmp_path / "dev" / name
    dev.parent.mkdir(parents=True, exist_ok=True)
    dev.write_text("")
    return dev


def tty_env(tmp_path: Path, device: Path) -> dict[str, str]:
    return {
        "TTY_DEVICE": str(device),
        "TAVS_STATE_DIR": str(tmp_path / "state"),
        "TAVS_CONFIG": str(tmp_path / "missing.toml"),
        "HOME": str(tmp_path),
    }
