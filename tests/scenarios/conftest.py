"""Shared fixtures for scenario tests.

These tests drive real shell commands through the pytest plugin fixtures the
way a feature suite drives the Ramen binaries: every test runs in its own
workspace and any daemon it starts is stopped at teardown.
"""

from __future__ import annotations

import shutil

import pytest


@pytest.fixture
def fake_daemon() -> str:
    """A command line standing in for a long-running Ramen daemon."""
    if shutil.which("sleep") is None:
        pytest.skip("sleep not available")
    return "sleep 30"
