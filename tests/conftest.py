"""
Shared fixtures: whisper files written with the whisper library and an
in-memory chunk store.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Sequence

import pytest
import whisper

from whisper_importer.chunks.packer import EncodedChunk

# (now, points) batches replayed through whisper.update_many in order
WhisperUpdates = Sequence[tuple[int, Sequence[tuple[int, float]]]]


class MemoryChunkStore:
    """Keeps written chunks in memory, keyed by row key."""

    def __init__(self) -> None:
        self.rows: dict[str, list[EncodedChunk]] = {}

    def write(self, row_key: str, chunk: EncodedChunk) -> None:
        self.rows.setdefault(row_key, []).append(chunk)

    def close(self) -> None:
        return None


@pytest.fixture()
def memory_store() -> MemoryChunkStore:
    return MemoryChunkStore()


@pytest.fixture()
def make_whisper(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory creating a whisper file under tmp_path.

    archives holds (seconds_per_point, points) pairs, finest first. Each
    update batch is written with its own "now", which decides the archive
    a point lands in.
    """

    def _make(
        name: str,
        archives: list[tuple[int, int]],
        updates: WhisperUpdates = (),
        *,
        aggregation_method: str = "average",
        x_files_factor: float = 0.5,
    ) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)

        whisper.create(
            str(path),
            archives,
            xFilesFactor=x_files_factor,
            aggregationMethod=aggregation_method,
        )
        for now, points in updates:
            whisper.update_many(str(path), list(points), now=now)

        return path

    return _make
