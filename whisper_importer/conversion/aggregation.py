"""
Per-method reconciliation of one archive's points onto a retention grid.
"""

from __future__ import annotations

from typing import Iterable

from whisper_importer.conversion.planner_models import (
    CONVERSION_DOWNSAMPLE,
    CONVERSION_UPSAMPLE,
    conversion_direction,
)
from whisper_importer.conversion.resample import dec_resolution, inc_resolution
from whisper_importer.core.domain.types import (
    AggMethod,
    ArchiveInfo,
    Point,
    Retention,
    agg_boundary,
    sorted_points,
)


def adjust_aggregation(
    retention: Retention,
    retention_index: int,
    archive: ArchiveInfo,
    method: str | AggMethod,
    points: Iterable[Point],
) -> dict[str, list[Point]]:
    """
    Convert one archive's points to the retention's resolution.

    Returns a mapping from method name to its point sequence on the
    retention grid (timestamps are multiples of the retention's
    seconds_per_point).

    - upsampled data is returned for the requested method only, since
      interpolated values cannot be split into sum and count
    - for rollup levels (retention_index > 0) downsampled and copied data
      also carries "sum" and "cnt", so any statistic can be recomputed later
    """
    method = AggMethod.parse(method)
    in_res = archive.seconds_per_point
    out_res = retention.seconds_per_point
    rollup = retention_index > 0

    conversion = conversion_direction(in_res, out_res)

    if conversion == CONVERSION_UPSAMPLE:
        return {method.value: inc_resolution(points, in_res, out_res)}

    points = list(points)
    result: dict[str, list[Point]] = {}

    if conversion == CONVERSION_DOWNSAMPLE:
        result[method.value] = dec_resolution(points, method, in_res, out_res)
        if rollup:
            for extra in (AggMethod.SUM, AggMethod.CNT):
                if extra is not method:
                    result[extra.value] = dec_resolution(points, extra, in_res, out_res)
        return result

    aligned = _align_to_grid(points, out_res)
    result[method.value] = aligned
    if rollup:
        result.setdefault(AggMethod.SUM.value, aligned)
        result.setdefault(
            AggMethod.CNT.value, [Point(ts, 1.0) for ts, _ in aligned]
        )
    return result


def _align_to_grid(points: Iterable[Point], spp: int) -> list[Point]:
    """Shift same-resolution points onto the spp grid, dropping phase ts % spp."""
    out: list[Point] = []
    for point in sorted_points(points):
        ts = agg_boundary(point.timestamp, spp)
        if out and out[-1].timestamp == ts:
            out[-1] = Point(ts, point.value)
        else:
            out.append(Point(ts, point.value))
    return out
