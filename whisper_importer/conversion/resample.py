"""
Resolution conversion for point sequences.

Both directions work on the absolute timestamp grid of the output
resolution, so the result does not depend on where a particular input
sample happens to sit.
"""

from __future__ import annotations

from typing import Callable, Iterable

from whisper_importer.core.domain.errors import InvalidInputError
from whisper_importer.core.domain.types import (
    AggMethod,
    Point,
    agg_boundary,
    sorted_points,
)

_REDUCERS: dict[AggMethod, Callable[[list[float]], float]] = {
    AggMethod.SUM: lambda values: sum(values),
    AggMethod.CNT: lambda values: float(len(values)),
    AggMethod.LST: lambda values: values[-1],
    AggMethod.AVG: lambda values: sum(values) / len(values),
    AggMethod.MIN: lambda values: min(values),
    AggMethod.MAX: lambda values: max(values),
}


def _validate_resolutions(in_res: int, out_res: int) -> None:
    if in_res <= 0 or out_res <= 0:
        raise InvalidInputError(
            f"resolutions must be > 0 (in_res={in_res}, out_res={out_res})"
        )
    if in_res == out_res:
        raise InvalidInputError(f"in_res and out_res are both {in_res}")


def inc_resolution(points: Iterable[Point], in_res: int, out_res: int) -> list[Point]:
    """
    Upsample to a finer resolution by holding each value flat.

    Every input sample covers [ts, ts + in_res) and yields one output point
    per out_res grid timestamp inside that interval. With non-factor
    resolutions some samples yield one point more than others; the grid
    carries the remainder so the long-run rate stays in_res / out_res.
    """
    _validate_resolutions(in_res, out_res)
    if out_res > in_res:
        raise InvalidInputError(
            f"inc_resolution needs out_res < in_res (got {out_res} >= {in_res})"
        )

    out: list[Point] = []
    last_ts: int | None = None

    for point in sorted_points(points):
        ts = agg_boundary(point.timestamp, out_res)

        # never emit a timestamp twice, even if input samples overlap
        if last_ts is not None and ts <= last_ts:
            ts = last_ts + out_res

        while ts < point.timestamp + in_res:
            out.append(Point(ts, point.value))
            last_ts = ts
            ts += out_res

    return out


def dec_resolution(
    points: Iterable[Point],
    method: str | AggMethod,
    in_res: int,
    out_res: int,
) -> list[Point]:
    """
    Downsample to a coarser resolution.

    Points are bucketed into (k*out_res - out_res, k*out_res] and each
    bucket is reduced with the given method and stamped with k*out_res.
    A bucket is emitted once it is closed, i.e. once a point lands on its
    boundary or a later bucket starts. The trailing bucket that is still
    open when the input ends is left out.
    """
    _validate_resolutions(in_res, out_res)
    if out_res < in_res:
        raise InvalidInputError(
            f"dec_resolution needs out_res > in_res (got {out_res} <= {in_res})"
        )

    reduce = _REDUCERS[AggMethod.parse(method)]

    out: list[Point] = []
    boundary = 0
    values: list[float] = []

    def flush() -> None:
        if values:
            out.append(Point(boundary, reduce(values)))
            values.clear()

    for point in sorted_points(points):
        point_boundary = agg_boundary(point.timestamp, out_res)

        if point_boundary != boundary:
            flush()
            boundary = point_boundary

        values.append(point.value)

        if point.timestamp == boundary:
            flush()

    return out
