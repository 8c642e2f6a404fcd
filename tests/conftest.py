"""Keep tests away from the developer's terminal, session records and config."""

from __future__ import annotations

import pytest

from tavs.settings import ENV_OVERRIDES

# Read outside the settings layer.
_RUNTIME_VARS = ("TTY_DEVICE", "TAVS_LOG_FILE", "TMUX", "XDG_RUNTIME_DIR", "XDG_CONFIG_HOME")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory, monkeypatch):
    """Point state and config at a scratch dir and drop tavs overrides
    inherited from the shell, so ``os.environ`` based commands see defaults.
    """
    root = tmp_path_factory.mktemp("tavs-env")
    for name in (*ENV_OVERRIDES, *_RUNTIME_VARS):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TAVS_STATE_DIR", str(root / "state"))
    monkeypatch.setenv("TAVS_CONFIG", str(root / "config.toml"))
    return root
