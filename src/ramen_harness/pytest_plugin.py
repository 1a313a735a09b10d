"""pytest integration for scenario tests.

Load it from a conftest.py:

    pytest_plugins = ["ramen_harness.pytest_plugin"]

Fixtures:
- harness_config: session-wide configuration; sets up logging (JSON lines to
  RAMEN_HARNESS_LOG_FILE when set) and the deterministic
  environment once per session
- ramen_scenario: a ScenarioLifecycle entered around the test, exited with
  the test outcome so failed scenarios keep their workspace
- process_registry: the registry of the current scenario
- command_runner: a CommandRunner for the program under test
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

import pytest

from .command import CommandRunner
from .config import HarnessConfig, load_config
from .lifecycle import ScenarioLifecycle, configure_environment
from .registry import ProcessRegistry
from .shared.logging import configure_logging

_REPORT_ATTR = "ramen_reports"


@pytest.hookimpl(hookwrapper=True, tryfirst=True)
def pytest_runtest_makereport(item: pytest.Item, call: Any) -> Generator[None, Any, None]:
    """Keep each phase's report on the item so fixtures can see the outcome."""
    outcome = yield
    report = outcome.get_result()
    reports = getattr(item, _REPORT_ATTR, {})
    reports[report.when] = report
    setattr(item, _REPORT_ATTR, reports)


def scenario_failed(item: pytest.Item) -> bool:
    """Return True if the setup or call phase of a test failed."""
    reports = getattr(item, _REPORT_ATTR, {})
    return any(report.failed for report in reports.values())


@pytest.fixture(scope="session")
def harness_config() -> HarnessConfig:
    """Harness configuration, with the environment made deterministic."""
    config = load_config()
    configure_logging(
        level=config.log_level,
        log_file=config.log_file,
        json_output=config.log_file is not None,
    )
    configure_environment(config)
    return config


@pytest.fixture
def ramen_scenario(
    request: pytest.FixtureRequest, harness_config: HarnessConfig
) -> Generator[ScenarioLifecycle, None, None]:
    """Run the test inside an isolated scenario workspace."""
    lifecycle = ScenarioLifecycle(config=harness_config)
    lifecycle.enter()
    try:
        yield lifecycle
    finally:
        preserved = lifecycle.exit(failed=scenario_failed(request.node))
        if preserved is not None:
            print(f"All the mess is still in {preserved} for investigation")


@pytest.fixture
def process_registry(ramen_scenario: ScenarioLifecycle) -> ProcessRegistry:
    """Registry drained when the scenario ends."""
    return ramen_scenario.registry


@pytest.fixture
def command_runner(ramen_scenario: ScenarioLifecycle) -> CommandRunner:
    """Runner executing commands from within the scenario workspace."""
    return CommandRunner()
