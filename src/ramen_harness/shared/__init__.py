"""Shared modules for ramen-harness.

Logging setup used by the CLI, the pytest plugin and the scenario lifecycle.
"""

from .logging import bind_scenario, configure_logging, get_logger, unbind_scenario

__all__ = [
    "bind_scenario",
    "configure_logging",
    "get_logger",
    "unbind_scenario",
]
