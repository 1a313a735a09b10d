"""Harness configuration management.

Handles the settings that make a test run deterministic and isolated: which
environment variable names the persistence directory, the experiment variants
to pin, the fault injection rate, and how daemons are stopped at teardown.

Configuration is read from ./ramen-harness.yaml (or the file named by
RAMEN_HARNESS_CONFIG) and environment variable overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# Default values
DEFAULT_CONFIG_FILE = "ramen-harness.yaml"
DEFAULT_PERSIST_DIR_ENV = "RAMEN_PERSIST_DIR"
DEFAULT_PERSIST_SUBDIR = "ramen_persist_dir"
DEFAULT_WORKSPACE_PREFIX = "ramen_cucumber_tests_"
DEFAULT_VARIANTS = "TheBigOne=on"
DEFAULT_FAULT_INJECTION_RATE = "0"
DEFAULT_CLEARED_ENV = ("OCAMLRUNPARAM",)
DEFAULT_LOG_LEVEL = "warning"

# Variables the harness sets on the system under test
VARIANTS_ENV = "RAMEN_VARIANTS"
FAULT_INJECTION_ENV = "RAMEN_FAULT_INJECTION_RATE"

# Environment variable mappings
CONFIG_PATH_ENV = "RAMEN_HARNESS_CONFIG"
ENV_VARS = {
    "stop_timeout": "RAMEN_HARNESS_STOP_TIMEOUT",
    "keep_workspace": "RAMEN_HARNESS_KEEP_WORKSPACE",
    "log_level": "RAMEN_HARNESS_LOG_LEVEL",
    "log_file": "RAMEN_HARNESS_LOG_FILE",
}

CONFIG_KEYS = (
    "persist_dir_env",
    "persist_subdir",
    "workspace_prefix",
    "variants",
    "fault_injection_rate",
    "cleared_env",
    "stop_timeout",
    "keep_workspace",
    "log_level",
    "log_file",
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class HarnessConfig:
    """Harness configuration."""

    persist_dir_env: str = DEFAULT_PERSIST_DIR_ENV
    persist_subdir: str = DEFAULT_PERSIST_SUBDIR
    workspace_prefix: str = DEFAULT_WORKSPACE_PREFIX
    variants: str = DEFAULT_VARIANTS
    fault_injection_rate: str = DEFAULT_FAULT_INJECTION_RATE
    cleared_env: list[str] = field(default_factory=lambda: list(DEFAULT_CLEARED_ENV))
    # None waits for daemons forever; a number escalates to SIGKILL after that many seconds
    stop_timeout: float | None = None
    keep_workspace: bool = False
    log_level: str = DEFAULT_LOG_LEVEL
    # JSON log lines go here instead of stderr when set
    log_file: str | None = None

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict)

    def get_source(self, key: str) -> str:
        """Get the source of a config value."""
        return self._sources.get(key, "default")

    def to_dict(self) -> dict[str, Any]:
        """Return the public config values."""
        return {key: getattr(self, key) for key in CONFIG_KEYS}


def get_config_path() -> Path:
    """Get the harness config file path.

    Returns:
        Path from RAMEN_HARNESS_CONFIG, else ./ramen-harness.yaml
    """
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override)
    return Path.cwd() / DEFAULT_CONFIG_FILE


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


def _parse_timeout(value: Any) -> float | None:
    if value is None or str(value).strip().lower() in ("", "none", "null"):
        return None
    timeout = float(value)
    if timeout < 0:
        raise ValueError(f"stop_timeout must not be negative: {value}")
    return timeout


def _apply_file_values(config: HarnessConfig, file_config: dict[str, Any], sources: dict) -> None:
    for key in ("persist_dir_env", "persist_subdir", "workspace_prefix", "variants", "log_level"):
        if key in file_config:
            setattr(config, key, str(file_config[key]))
            sources[key] = "config file"
    if "fault_injection_rate" in file_config:
        config.fault_injection_rate = str(file_config["fault_injection_rate"])
        sources["fault_injection_rate"] = "config file"
    if "cleared_env" in file_config:
        cleared = file_config["cleared_env"] or []
        if isinstance(cleared, str):
            cleared = [cleared]
        config.cleared_env = [str(name) for name in cleared]
        sources["cleared_env"] = "config file"
    if file_config.get("log_file"):
        config.log_file = str(file_config["log_file"])
        sources["log_file"] = "config file"
    if "keep_workspace" in file_config:
        config.keep_workspace = _parse_bool(file_config["keep_workspace"])
        sources["keep_workspace"] = "config file"
    if "stop_timeout" in file_config:
        try:
            config.stop_timeout = _parse_timeout(file_config["stop_timeout"])
            sources["stop_timeout"] = "config file"
        except (TypeError, ValueError):
            pass


def load_config(path: str | Path | None = None) -> HarnessConfig:
    """Load harness configuration.

    Precedence (highest to lowest):
    1. Environment variables
    2. Config file (ramen-harness.yaml)
    3. Defaults

    Args:
        path: Explicit config file path, bypassing the lookup

    Returns:
        HarnessConfig with values and sources
    """
    config = HarnessConfig()
    sources: dict[str, str] = {key: "default" for key in CONFIG_KEYS}

    config_path = Path(path) if path else get_config_path()
    if config_path.exists():
        try:
            with open(config_path) as f:
                file_config = yaml.safe_load(f) or {}
            if isinstance(file_config, dict):
                _apply_file_values(config, file_config, sources)
        except (OSError, yaml.YAMLError):
            pass  # Ignore config file errors, use defaults

    # Override with environment variables
    if os.environ.get(ENV_VARS["stop_timeout"]):
        try:
            config.stop_timeout = _parse_timeout(os.environ[ENV_VARS["stop_timeout"]])
            sources["stop_timeout"] = "environment"
        except ValueError:
            pass
    if os.environ.get(ENV_VARS["keep_workspace"]):
        config.keep_workspace = _parse_bool(os.environ[ENV_VARS["keep_workspace"]])
        sources["keep_workspace"] = "environment"
    if os.environ.get(ENV_VARS["log_level"]):
        config.log_level = os.environ[ENV_VARS["log_level"]]
        sources["log_level"] = "environment"
    if os.environ.get(ENV_VARS["log_file"]):
        config.log_file = os.environ[ENV_VARS["log_file"]]
        sources["log_file"] = "environment"

    config._sources = sources
    return config
