"""
Chunk partitioning and row addressing.

This module splits a destination-resolution point stream into
epoch-aligned chunks and derives the row key a chunk is stored under.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator

from whisper_importer.chunks import tsz
from whisper_importer.core.domain.errors import InvalidInputError
from whisper_importer.core.domain.types import AggMethod, Point, agg_boundary, sorted_points


@dataclass(frozen=True, slots=True)
class EncodedChunk:
    """
    Immutable encoded block of the points in (chunk_start - span, chunk_start].
    """

    chunk_start: int
    span: int
    interval: int
    point_count: int
    finished: bool
    data: bytes

    @property
    def t0(self) -> int:
        return self.chunk_start - self.span

    def iter_points(self) -> Iterator[Point]:
        return tsz.decode(self.data)


def chunks_from_points(
    points: Iterable[Point],
    interval: int,
    span: int,
    *,
    write_unfinished_chunks: bool = False,
) -> list[EncodedChunk]:
    """
    Split points into chunks of the given span and encode them.

    Each chunk is encoded as soon as the stream moves past it. The last
    chunk touched is the unfinished one: later data may still belong to
    it, so it is only returned when write_unfinished_chunks is set.

    interval is the expected spacing of the points. It is recorded on the
    chunk and does not affect bucketing.
    """

    if span <= 0:
        raise InvalidInputError("span must be > 0")

    if interval <= 0:
        raise InvalidInputError("interval must be > 0")

    chunks: list[EncodedChunk] = []
    encoder: tsz.Encoder | None = None
    chunk_start = 0

    def seal(finished: bool) -> None:
        chunks.append(
            EncodedChunk(
                chunk_start=chunk_start,
                span=span,
                interval=interval,
                point_count=encoder.count,
                finished=finished,
                data=encoder.finish(),
            )
        )

    for ts, value in sorted_points(points):
        boundary = agg_boundary(ts, span)

        if encoder is None or boundary != chunk_start:
            if encoder is not None:
                seal(finished=True)
            chunk_start = boundary
            encoder = tsz.Encoder(chunk_start - span)

        encoder.push(ts, value)

    if encoder is not None and write_unfinished_chunks:
        seal(finished=False)

    return chunks


def row_key(
    aggregation_index: int,
    metric_id: str,
    method: str | AggMethod,
    seconds_per_point: int,
) -> str:
    """
    Return the storage row key for one series of a metric.

    The raw series (aggregation index 0) is stored under the metric id
    itself; every rollup gets <metric_id>_<method>_<seconds_per_point>.
    """
    if aggregation_index == 0:
        return metric_id

    if isinstance(method, AggMethod):
        method = method.value

    return f"{metric_id}_{method}_{seconds_per_point}"
