from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from whisper_importer.conversion.planner import is_truncated, plan_conversion
from whisper_importer.conversion.planner_models import (
    CONVERSION_DOWNSAMPLE,
    CONVERSION_NONE,
    CONVERSION_UPSAMPLE,
    conversion_direction,
)

if TYPE_CHECKING:
    from whisper_importer.config.import_config import ImportConfig
    from whisper_importer.core.domain.types import ArchiveInfo

_CONVERSION_LABELS = {
    CONVERSION_DOWNSAMPLE: "downsample",
    CONVERSION_NONE: "copy",
    CONVERSION_UPSAMPLE: "upsample",
}


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class SegmentSummary:
    archive: int
    archive_seconds_per_point: int
    time_range: int
    conversion: str


@dataclass(frozen=True, slots=True)
class RetentionSummary:
    seconds_per_point: int
    number_of_points: int
    requested_range: int
    covered_range: int
    segments: List[SegmentSummary]


@dataclass(frozen=True, slots=True)
class PlanSummary:
    metric_id: str
    retentions: List[RetentionSummary]
    warnings: List[str]


# ---------------------------------------------------------------------------
# Summary builder
# ---------------------------------------------------------------------------

def summarize_plan(
    *,
    metric_id: str,
    archives: list[ArchiveInfo],
    config: ImportConfig,
) -> PlanSummary:
    warnings: list[str] = []
    retentions: list[RetentionSummary] = []

    for index, retention in enumerate(config.retentions):
        plan = plan_conversion(
            retention.seconds_per_point,
            retention.number_of_points,
            archives,
        )

        requested = retention.seconds_per_point * retention.number_of_points

        if is_truncated(retention.seconds_per_point, retention.number_of_points, plan):
            warnings.append(
                f"retention {index} truncated to {plan[-1].time_range}s "
                f"of {requested}s requested"
            )

        if any(segment.conversion == CONVERSION_UPSAMPLE for segment in plan):
            warnings.append(
                f"retention {index} interpolates data from a coarser archive"
            )

        retentions.append(
            RetentionSummary(
                seconds_per_point=retention.seconds_per_point,
                number_of_points=retention.number_of_points,
                requested_range=requested,
                covered_range=plan[-1].time_range,
                segments=[
                    SegmentSummary(
                        archive=segment.archive,
                        archive_seconds_per_point=archives[segment.archive].seconds_per_point,
                        time_range=segment.time_range,
                        conversion=_CONVERSION_LABELS[
                            conversion_direction(
                                archives[segment.archive].seconds_per_point,
                                retention.seconds_per_point,
                            )
                        ],
                    )
                    for segment in plan
                ],
            )
        )

    return PlanSummary(
        metric_id=metric_id,
        retentions=retentions,
        warnings=warnings,
    )


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def print_plan_summary(summary: PlanSummary) -> None:
    print(f"Metric: {summary.metric_id}")

    for index, retention in enumerate(summary.retentions):
        coverage = retention.covered_range / retention.requested_range
        print(
            f"  retention {index}: "
            f"{retention.seconds_per_point}s x {retention.number_of_points} | "
            f"{coverage:.0%} of requested history"
        )
        for s in retention.segments:
            print(
                f"    - archive {s.archive} ({s.archive_seconds_per_point}s): "
                f"{s.conversion} up to {s.time_range}s back"
            )

    if summary.warnings:
        print("  Warnings:")
        for w in summary.warnings:
            print(f"    - {w}")
