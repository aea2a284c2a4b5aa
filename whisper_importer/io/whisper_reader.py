"""
Reader for whisper database files.

The header (aggregation method, retention, archive layout) is parsed by the
whisper library. Archive slots are read straight from disk instead of going
through whisper.fetch, which resamples and hides unset slots.

Archives are ring buffers, so points come back in storage order and unset
slots read as (0, 0).
"""

from __future__ import annotations

import struct
from pathlib import Path
from typing import Protocol

import whisper

from whisper_importer.core.domain.errors import WhisperFormatError
from whisper_importer.core.domain.types import AggMethod, ArchiveInfo, Point

AGGREGATION_METHODS: dict[str, AggMethod] = {
    "average": AggMethod.AVG,
    "sum": AggMethod.SUM,
    "last": AggMethod.LST,
    "max": AggMethod.MAX,
    "min": AggMethod.MIN,
}


class ArchiveReader(Protocol):
    """
    Protocol describing a legacy multi-archive source.
    """

    @property
    def aggregation_method(self) -> AggMethod:
        """Aggregation the source used for its own rollups."""

    @property
    def archives(self) -> list[ArchiveInfo]:
        """Archive descriptors, finest to coarsest."""

    def read_points(self, index: int) -> list[Point]:
        """Raw points of one archive, (0, 0) for unset slots."""


class WhisperFileReader:
    """Reads the header and archives of a single whisper file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.name = str(self.path)

        try:
            info = whisper.info(self.name)
        except whisper.CorruptWhisperFile as exc:
            raise WhisperFormatError(f"{self.name}: {exc.error}") from exc

        # whisper.info swallows I/O errors
        if info is None:
            raise WhisperFormatError(f"{self.name}: cannot read whisper header")

        method = info["aggregationMethod"]
        if method not in AGGREGATION_METHODS:
            raise WhisperFormatError(
                f"{self.name}: unsupported aggregation method {method!r}"
            )

        if not info["archives"]:
            raise WhisperFormatError(f"{self.name}: file has no archives")

        self._aggregation_method = AGGREGATION_METHODS[method]
        self.max_retention: int = info["maxRetention"]
        self.x_files_factor: float = info["xFilesFactor"]
        self._archives = [
            ArchiveInfo(
                offset=archive["offset"],
                seconds_per_point=archive["secondsPerPoint"],
                points=archive["points"],
            )
            for archive in info["archives"]
        ]

    @property
    def aggregation_method(self) -> AggMethod:
        return self._aggregation_method

    @property
    def archives(self) -> list[ArchiveInfo]:
        return list(self._archives)

    def read_points(self, index: int) -> list[Point]:
        archive = self._archives[index]
        size = archive.points * whisper.pointSize

        with self.path.open("rb") as fh:
            fh.seek(archive.offset)
            raw = fh.read(size)

        if len(raw) < size:
            raise WhisperFormatError(
                f"{self.name}: archive {index} extends past end of file "
                f"({archive.offset + size} > {archive.offset + len(raw)})"
            )

        return [
            Point(ts, value)
            for ts, value in struct.iter_unpack(whisper.pointFormat, raw)
        ]
