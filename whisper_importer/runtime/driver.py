"""
Per-metric import orchestration.

This module wires the archive reader, planner, reconciler, packer and
chunk store together for one metric. All conversion work happens in
memory; the only side effects are the store writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from whisper_importer.chunks.packer import chunks_from_points, row_key
from whisper_importer.conversion.aggregation import adjust_aggregation
from whisper_importer.conversion.planner import is_truncated, plan_conversion
from whisper_importer.core.domain.types import Point

if TYPE_CHECKING:
    from whisper_importer.config.import_config import ImportConfig, RetentionConfig
    from whisper_importer.conversion.planner_models import PlanSegment
    from whisper_importer.io.chunk_store import ChunkStore
    from whisper_importer.io.whisper_reader import ArchiveReader

LOGGER = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Outcome of importing one metric."""

    metric_id: str
    chunks_per_row: dict[str, int] = field(default_factory=dict)
    points_per_row: dict[str, int] = field(default_factory=dict)
    truncated_retentions: list[int] = field(default_factory=list)

    @property
    def chunks_written(self) -> int:
        return sum(self.chunks_per_row.values())

    @property
    def points_written(self) -> int:
        return sum(self.points_per_row.values())


def metric_id_from_path(path: Path, root: Path, prefix: str = "") -> str:
    """Map root/a/b/c.wsp to "<prefix>a.b.c"."""
    relative = path.relative_to(root).with_suffix("")
    return prefix + ".".join(relative.parts)


def convert_retention(
    retention_cfg: RetentionConfig,
    retention_index: int,
    reader: ArchiveReader,
    now: int,
    plan: list[PlanSegment] | None = None,
) -> dict[str, list[Point]]:
    """
    Build the per-method point streams of one retention level.

    Segments are applied in plan order. Each one only contributes source
    points from its own slice of history, and never overrides a timestamp
    an earlier (more recent, finer) segment already produced.
    """
    retention = retention_cfg.to_retention()
    method = retention_cfg.method_for(reader.aggregation_method)
    archives = reader.archives

    if plan is None:
        plan = plan_conversion(
            retention.seconds_per_point, retention.number_of_points, archives
        )

    merged: dict[str, dict[int, float]] = {}
    covered = 0

    for segment in plan:
        lower = now - segment.time_range
        upper = now - covered
        covered = segment.time_range

        source = [
            point
            for point in reader.read_points(segment.archive)
            if not point.is_gap() and lower < point.timestamp <= upper
        ]
        if not source:
            continue

        converted = adjust_aggregation(
            retention,
            retention_index,
            archives[segment.archive],
            method,
            source,
        )

        for name, points in converted.items():
            series = merged.setdefault(name, {})
            for ts, value in points:
                series.setdefault(ts, value)

    return {
        name: [Point(ts, series[ts]) for ts in sorted(series)]
        for name, series in merged.items()
    }


def import_metric(
    metric_id: str,
    reader: ArchiveReader,
    config: ImportConfig,
    store: ChunkStore,
    *,
    now: int | None = None,
) -> ImportResult:
    """
    Convert every retention level of one metric and write its chunks.

    now anchors the plans' time ranges. It defaults to the newest
    timestamp found in the source archives.
    """
    if now is None:
        now = newest_timestamp(reader)

    result = ImportResult(metric_id=metric_id)

    for retention_index, retention_cfg in enumerate(config.retentions):
        plan = plan_conversion(
            retention_cfg.seconds_per_point,
            retention_cfg.number_of_points,
            reader.archives,
        )

        if is_truncated(
            retention_cfg.seconds_per_point, retention_cfg.number_of_points, plan
        ):
            result.truncated_retentions.append(retention_index)
            LOGGER.warning(
                "Retention exceeds available archives; importing less history",
                extra={
                    "metric_id": metric_id,
                    "retention_index": retention_index,
                    "requested_range": retention_cfg.seconds_per_point
                    * retention_cfg.number_of_points,
                    "available_range": plan[-1].time_range,
                },
            )

        series = convert_retention(retention_cfg, retention_index, reader, now, plan)

        for method, points in series.items():
            key = row_key(
                retention_index, metric_id, method, retention_cfg.seconds_per_point
            )
            chunks = chunks_from_points(
                points,
                retention_cfg.seconds_per_point,
                retention_cfg.chunk_span,
                write_unfinished_chunks=config.write_unfinished_chunks,
            )

            for chunk in chunks:
                store.write(key, chunk)

            result.chunks_per_row[key] = len(chunks)
            result.points_per_row[key] = sum(chunk.point_count for chunk in chunks)

    LOGGER.info(
        "Metric imported",
        extra={
            "metric_id": metric_id,
            "chunks": result.chunks_written,
            "points": result.points_written,
        },
    )

    return result


def newest_timestamp(reader: ArchiveReader) -> int:
    """Return the most recent timestamp stored in any archive, 0 if empty."""
    return max(
        (
            point.timestamp
            for index in range(len(reader.archives))
            for point in reader.read_points(index)
            if not point.is_gap()
        ),
        default=0,
    )
