"""Shared test fixtures for ramen-harness tests.

This module provides:
- harness_env: environment variables the harness touches, restored after the test
- workspace_root: temporary directory that scenario workspaces are created in
- spawn_ignoring_stop: a child process that ignores SIGINT
"""

import signal
import subprocess
import tempfile
from collections.abc import Generator

import pytest

from ramen_harness.config import ENV_VARS, CONFIG_PATH_ENV, FAULT_INJECTION_ENV, VARIANTS_ENV

pytest_plugins = ["pytester", "ramen_harness.pytest_plugin"]

HARNESS_TOUCHED_ENV = (
    "RAMEN_PERSIST_DIR",
    "OCAMLRUNPARAM",
    VARIANTS_ENV,
    FAULT_INJECTION_ENV,
    CONFIG_PATH_ENV,
    *ENV_VARS.values(),
)


@pytest.fixture
def harness_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Start from an environment free of harness variables.

    monkeypatch restores the original values at teardown, including values
    the code under test changed afterwards.
    """
    for name in HARNESS_TOUCHED_ENV:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def workspace_root(tmp_path, monkeypatch: pytest.MonkeyPatch, harness_env):
    """Create scenario workspaces under tmp_path and restore the cwd afterwards."""
    root = tmp_path / "workspaces"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    monkeypatch.chdir(tmp_path)
    return root


def _ignore_sigint() -> None:
    signal.signal(signal.SIGINT, signal.SIG_IGN)


@pytest.fixture
def spawn_ignoring_stop() -> Generator:
    """Factory for `sleep` processes that ignore SIGINT. Killed at teardown."""
    processes: list[subprocess.Popen] = []

    def _spawn(seconds: int = 30) -> subprocess.Popen:
        process = subprocess.Popen(["sleep", str(seconds)], preexec_fn=_ignore_sigint)
        processes.append(process)
        return process

    yield _spawn

    for process in processes:
        if process.poll() is None:
            process.kill()
            process.wait()

