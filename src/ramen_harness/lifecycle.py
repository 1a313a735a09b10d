"""Per-scenario setup and teardown.

Each scenario gets its own temporary workspace, used as the persistence
directory of the system under test, and runs with that workspace as the
current directory. Teardown always stops the daemons the scenario started,
then restores the working directory and environment, then deletes the
workspace, unless the scenario failed, in which case it is left on disk for
investigation.

Scenarios must run one at a time: the working directory and environment
variables are process-wide.
"""

import atexit
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .config import FAULT_INJECTION_ENV, VARIANTS_ENV, HarnessConfig, load_config
from .registry import ProcessRegistry
from .shared.logging import bind_scenario, get_logger, unbind_scenario

logger = get_logger(__name__)


def configure_environment(config: HarnessConfig | None = None) -> dict[str, str | None]:
    """Make the programs under test behave deterministically.

    Called once when the harness starts, not per scenario. Clears variables
    that make the runtime print diagnostics on stderr, pins the experiment
    variants and disables fault injection.

    Args:
        config: Harness configuration, loaded if None

    Returns:
        The values set, with None for cleared variables
    """
    config = config or load_config()
    applied: dict[str, str | None] = {}

    for name in config.cleared_env:
        os.environ.pop(name, None)
        applied[name] = None

    os.environ[VARIANTS_ENV] = config.variants
    applied[VARIANTS_ENV] = config.variants
    os.environ[FAULT_INJECTION_ENV] = config.fault_injection_rate
    applied[FAULT_INJECTION_ENV] = config.fault_injection_rate

    logger.debug("Configured harness environment", environment=applied)
    return applied


@dataclass
class ScenarioContext:
    """State of one running scenario."""

    workspace: Path
    previous_cwd: Path
    persist_dir: Path
    # Overlaid variable -> value it had before the scenario (None if unset)
    environment: dict[str, str | None] = field(default_factory=dict)


class ScenarioLifecycle:
    """Enter/exit state machine run around every scenario."""

    def __init__(
        self,
        config: HarnessConfig | None = None,
        registry: ProcessRegistry | None = None,
    ):
        self.config = config or load_config()
        if registry is None:
            registry = ProcessRegistry(stop_timeout=self.config.stop_timeout)
        self.registry = registry
        self.context: ScenarioContext | None = None

    @property
    def active(self) -> bool:
        return self.context is not None

    @property
    def workspace(self) -> Path:
        if self.context is None:
            raise RuntimeError("No scenario is active")
        return self.context.workspace

    @property
    def persist_dir(self) -> Path:
        if self.context is None:
            raise RuntimeError("No scenario is active")
        return self.context.persist_dir

    def enter(self) -> ScenarioContext:
        """Create the workspace and move into it.

        Returns:
            The new ScenarioContext
        """
        if self.context is not None:
            raise RuntimeError(f"Scenario already active in {self.context.workspace}")

        previous_cwd = Path.cwd()
        workspace = Path(tempfile.mkdtemp(prefix=self.config.workspace_prefix))

        persist_env = self.config.persist_dir_env
        persist_dir = workspace / self.config.persist_subdir
        context = ScenarioContext(
            workspace=workspace,
            previous_cwd=previous_cwd,
            persist_dir=persist_dir,
            environment={persist_env: os.environ.get(persist_env)},
        )
        os.environ[persist_env] = str(persist_dir)

        # Some tools resolve relative paths from the current directory only
        os.chdir(workspace)

        self.context = context
        atexit.register(self.registry.drain)
        bind_scenario(workspace)
        logger.debug("Scenario started")
        return context

    def exit(self, failed: bool = False) -> Path | None:
        """Tear the scenario down.

        Args:
            failed: Whether the scenario failed

        Returns:
            Path of the preserved workspace, or None if it was deleted
        """
        context = self.context
        if context is None:
            return None
        self.context = None

        try:
            self.registry.drain()
        finally:
            atexit.unregister(self.registry.drain)
            os.chdir(context.previous_cwd)
            self._restore_environment(context.environment)
            unbind_scenario()

        if failed or self.config.keep_workspace:
            logger.warning(
                "All the mess is still in the workspace for investigation",
                workspace=str(context.workspace),
                failed=failed,
            )
            return context.workspace

        shutil.rmtree(context.workspace)
        logger.debug("Workspace removed", workspace=str(context.workspace))
        return None

    @staticmethod
    def _restore_environment(environment: dict[str, str | None]) -> None:
        for name, value in environment.items():
            if value is None:
                os.environ.pop(name, None)
            else:
                os.environ[name] = value

    @contextmanager
    def scenario(self) -> Iterator[ScenarioContext]:
        """Run a block as a scenario; an exception marks it failed and propagates."""
        context = self.enter()
        failed = True
        try:
            yield context
            failed = False
        finally:
            self.exit(failed=failed)
