from __future__ import annotations

from typing import Sequence

from whisper_importer.conversion.planner_models import (
    CONVERSION_DOWNSAMPLE,
    CONVERSION_NONE,
    CONVERSION_UPSAMPLE,
    PlanSegment,
    conversion_direction,
)
from whisper_importer.core.domain.errors import InvalidInputError
from whisper_importer.core.domain.types import ArchiveInfo


def plan_conversion(
    seconds_per_point: int,
    number_of_points: int,
    archives: Sequence[ArchiveInfo],
) -> list[PlanSegment]:
    """
    Decide which archives feed which part of the requested retention.

    This function performs *planning only*. It never reads points.

    Responsibilities:
    - find the anchor: the finest archive that reaches back far enough
    - prefer genuine (finer) data over interpolated data for recent history
    - fall back to the coarsest archive when nothing covers the full range

    Parameters
    ----------
    seconds_per_point / number_of_points:
        Destination retention.

    archives:
        Source archives, ordered finest to coarsest.

    Returns
    -------
    list[PlanSegment]
        Ordered segments, most recent history first. The last segment's
        time_range may be less than the requested range when no archive
        reaches back that far.
    """

    if seconds_per_point <= 0:
        raise InvalidInputError("seconds_per_point must be > 0")

    if number_of_points <= 0:
        raise InvalidInputError("number_of_points must be > 0")

    _validate_archives(archives)

    total_range = seconds_per_point * number_of_points

    # ------------------------------------------------------------------
    # 1. Find the anchor archive
    # ------------------------------------------------------------------

    anchor = next(
        (
            index
            for index, archive in enumerate(archives)
            if archive.native_range >= total_range
        ),
        len(archives) - 1,
    )
    anchor_archive = archives[anchor]
    anchor_conversion = conversion_direction(
        anchor_archive.seconds_per_point, seconds_per_point
    )
    anchor_range = min(anchor_archive.native_range, total_range)

    # ------------------------------------------------------------------
    # 2. No interpolation needed: the anchor alone covers everything
    # ------------------------------------------------------------------

    if anchor_conversion != CONVERSION_UPSAMPLE:
        return [PlanSegment(anchor, anchor_range, anchor_conversion)]

    # ------------------------------------------------------------------
    # 3. Use finer archives first, then fill the rest by upsampling
    # ------------------------------------------------------------------

    segments: list[PlanSegment] = []

    for index in range(anchor):
        archive = archives[index]
        segments.append(
            PlanSegment(
                archive=index,
                time_range=min(archive.native_range, total_range),
                conversion=(
                    CONVERSION_DOWNSAMPLE
                    if archive.seconds_per_point < seconds_per_point
                    else CONVERSION_NONE
                ),
            )
        )

    segments.append(PlanSegment(anchor, anchor_range, CONVERSION_UPSAMPLE))

    return segments


def is_truncated(
    seconds_per_point: int,
    number_of_points: int,
    plan: Sequence[PlanSegment],
) -> bool:
    """Return True when the plan covers less history than was requested."""
    if not plan:
        return True
    return plan[-1].time_range < seconds_per_point * number_of_points


def _validate_archives(archives: Sequence[ArchiveInfo]) -> None:
    if not archives:
        raise InvalidInputError("archives must not be empty")

    previous: ArchiveInfo | None = None

    for index, archive in enumerate(archives):
        if archive.seconds_per_point <= 0 or archive.points <= 0:
            raise InvalidInputError(
                f"archive {index} has non-positive resolution or capacity "
                f"({archive.seconds_per_point}s x {archive.points})"
            )

        if previous is not None and archive.seconds_per_point <= previous.seconds_per_point:
            raise InvalidInputError(
                "archives must be ordered finest to coarsest "
                f"(archive {index}: {archive.seconds_per_point}s after "
                f"{previous.seconds_per_point}s)"
            )

        previous = archive
