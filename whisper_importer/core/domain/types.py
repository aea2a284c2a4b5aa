"""Core data model shared by the conversion pipeline.

Points, archive descriptors and retention targets are plain immutable
values. Every transform in the pipeline takes them as input and returns new
sequences; nothing is mutated in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, NamedTuple

from whisper_importer.core.domain.errors import InvalidInputError

# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


class Point(NamedTuple):
    timestamp: int
    value: float

    def is_gap(self) -> bool:
        """Whisper marks unset ring slots with (0, 0)."""
        return self.timestamp == 0 and self.value == 0


def sorted_points(points: Iterable[Point]) -> list[Point]:
    """Return the non-gap points ordered by timestamp."""
    return sorted(
        (Point(int(p[0]), float(p[1])) for p in points if not (p[0] == 0 and p[1] == 0)),
        key=lambda item: item.timestamp,
    )


def agg_boundary(ts: int, span: int) -> int:
    """Return the closing boundary of the (k*span - span, k*span] window holding ts."""
    return ts + (span - ts % span) % span


# ---------------------------------------------------------------------------
# Archives and retentions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ArchiveInfo:
    """
    Descriptor of one fixed-resolution ring inside a whisper file.
    """

    offset: int
    seconds_per_point: int
    points: int

    @property
    def native_range(self) -> int:
        return self.seconds_per_point * self.points


@dataclass(frozen=True, slots=True)
class Retention:
    """
    Destination storage level: resolution and history length.
    """

    seconds_per_point: int
    number_of_points: int

    @property
    def total_range(self) -> int:
        return self.seconds_per_point * self.number_of_points


# ---------------------------------------------------------------------------
# Aggregation methods
# ---------------------------------------------------------------------------


class AggMethod(str, Enum):
    SUM = "sum"
    CNT = "cnt"
    LST = "lst"
    AVG = "avg"
    MIN = "min"
    MAX = "max"

    @classmethod
    def parse(cls, name: str | AggMethod) -> AggMethod:
        """Resolve a method name, accepting the long spellings as aliases."""
        if isinstance(name, AggMethod):
            return name

        key = str(name).strip().lower()
        key = _METHOD_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise InvalidInputError(f"unknown aggregation method {name!r}") from None


_METHOD_ALIASES = {
    "count": "cnt",
    "last": "lst",
    "average": "avg",
    "mean": "avg",
}
