"""Ramen harness - black-box test support for the Ramen stream processor."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ramen-harness")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"  # Fallback for editable installs without metadata

from .command import CommandResult, CommandRunner, run_command
from .config import HarnessConfig, load_config
from .errors import HarnessError, QuantityMismatchError, UnrecognizedQuantityError
from .lifecycle import ScenarioContext, ScenarioLifecycle, configure_environment
from .quantity import QuantityCategory, QuantityFilter, QuantityRange, parse_quantity, split_list
from .registry import PidHandle, PopenHandle, ProcessEntry, ProcessHandle, ProcessRegistry

__all__ = [
    "__version__",
    # Quantities
    "QuantityCategory",
    "QuantityFilter",
    "QuantityRange",
    "parse_quantity",
    "split_list",
    # Commands
    "CommandResult",
    "CommandRunner",
    "run_command",
    # Processes
    "ProcessHandle",
    "PopenHandle",
    "PidHandle",
    "ProcessEntry",
    "ProcessRegistry",
    # Scenarios
    "ScenarioContext",
    "ScenarioLifecycle",
    "configure_environment",
    # Config
    "HarnessConfig",
    "load_config",
    # Errors
    "HarnessError",
    "QuantityMismatchError",
    "UnrecognizedQuantityError",
]
