"""Human quantity phrases turned into numeric tolerances.

Scenario text says things like "a few errors", "no warnings" or "3 nodes".
Exact counts would make tests brittle against the timing of the system under
test, so each phrase maps to an inclusive range instead:

    no            -> [0, 0]
    a few         -> [1, 10]
    lots/many     -> [10, 300]
    some          -> [1, 1000]
    <digits>      -> [N, N]

Phrases are tried in that order and the first match wins. Matching is a
case-sensitive search anywhere in the description, so "nodes" contains "no"
and "3 nodes" means zero.
"""

import re
from dataclasses import dataclass
from enum import Enum

from .errors import QuantityMismatchError, UnrecognizedQuantityError


class QuantityCategory(str, Enum):
    """Kinds of quantity a phrase can express."""

    NONE = "none"
    FEW = "few"
    MANY = "many"
    SOME = "some"
    EXACT = "exact"


@dataclass(frozen=True)
class QuantityRange:
    """Inclusive range of acceptable counts."""

    min: int
    max: int
    category: QuantityCategory

    def __post_init__(self) -> None:
        if self.min < 0:
            raise ValueError(f"min must be non-negative, got {self.min}")
        if self.max < self.min:
            raise ValueError(f"max ({self.max}) must be >= min ({self.min})")

    def contains(self, value: int) -> bool:
        return self.min <= value <= self.max

    def __str__(self) -> str:
        if self.min == self.max:
            return f"exactly {self.min}"
        return f"between {self.min} and {self.max}"


# Order matters: first match wins.
_PATTERNS: list[tuple[re.Pattern[str], QuantityCategory, tuple[int, int] | None]] = [
    (re.compile(r"no"), QuantityCategory.NONE, (0, 0)),
    (re.compile(r"a few"), QuantityCategory.FEW, (1, 10)),
    (re.compile(r"(?:(?:a )?lots?(?: of)?|many)"), QuantityCategory.MANY, (10, 300)),
    (re.compile(r"some"), QuantityCategory.SOME, (1, 1000)),
    (re.compile(r"\d+"), QuantityCategory.EXACT, None),
]

_LIST_SEPARATOR = re.compile(r" +and +|, *| +")


def parse_quantity(description: str) -> QuantityRange:
    """Parse a quantity phrase into a range.

    Args:
        description: Free-form phrase taken from a scenario

    Returns:
        The derived QuantityRange

    Raises:
        UnrecognizedQuantityError: If no category matches
    """
    for pattern, category, bounds in _PATTERNS:
        match = pattern.search(description)
        if not match:
            continue
        if bounds is None:
            n = int(match.group(0))
            return QuantityRange(n, n, category)
        return QuantityRange(bounds[0], bounds[1], category)
    raise UnrecognizedQuantityError.for_description(description)


class QuantityFilter:
    """Checks observed counts against a phrase such as "a few"."""

    def __init__(self, description: str):
        self.description = description
        self.range = parse_quantity(description)

    @property
    def min(self) -> int:
        return self.range.min

    @property
    def max(self) -> int:
        return self.range.max

    def matches(self, observed: int) -> bool:
        """Return True if observed is within the range."""
        return self.range.contains(observed)

    def check(self, observed: int) -> None:
        """Assert observed is within the range.

        Raises:
            QuantityMismatchError: If observed is out of range
        """
        if not self.matches(observed):
            raise QuantityMismatchError(
                message=(
                    f"expected {self.range} ({self.description!r}), got {observed}"
                ),
                data={"description": self.description},
                expected=self.range,
                actual=observed,
            )

    def __repr__(self) -> str:
        return f"QuantityFilter({self.description!r}, min={self.min}, max={self.max})"


def split_list(text: str) -> list[str]:
    """Split a human list such as "a, b and c" into its items."""
    return [item for item in _LIST_SEPARATOR.split(text) if item]
