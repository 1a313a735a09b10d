"""Error types raised by the harness.

Subprocess failures are not errors here: a non-zero exit status is returned to
the caller as data. Filesystem errors around the workspace are left to
propagate as plain OSError.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(eq=False)
class HarnessError(Exception):
    """Base error class for harness errors."""

    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


@dataclass(eq=False)
class UnrecognizedQuantityError(HarnessError, ValueError):
    """A quantity phrase matched none of the known categories."""

    description: str = ""

    @classmethod
    def for_description(cls, description: str) -> "UnrecognizedQuantityError":
        return cls(
            message=f"Unrecognized quantity description: {description!r}",
            data={"description": description},
            description=description,
        )


@dataclass(eq=False)
class QuantityMismatchError(HarnessError, AssertionError):
    """An observed count fell outside the range derived from a phrase."""

    expected: Any = None
    actual: int | None = None
