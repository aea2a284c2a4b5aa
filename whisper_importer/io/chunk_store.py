"""
Chunk store interface and file-system implementation.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Protocol

from whisper_importer.chunks.packer import EncodedChunk


class ChunkStore(Protocol):
    def write(self, row_key: str, chunk: EncodedChunk) -> None:
        """Persist one encoded chunk under the given row key."""

    def close(self) -> None:
        """Flush and release any resources."""


class FileChunkStore:
    """Writes each chunk to its own file and appends an index line per chunk."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)
        self._root.mkdir(parents=True, exist_ok=True)
        self._fh = (self._root / "index.jsonl").open("a", encoding="utf-8")
        self._lock = threading.Lock()
        self._closed = False

    @property
    def root(self) -> Path:
        return self._root

    def write(self, row_key: str, chunk: EncodedChunk) -> None:
        if self._closed:
            raise RuntimeError("chunk store is closed")

        row_dir = self._root / row_key
        row_dir.mkdir(parents=True, exist_ok=True)
        (row_dir / f"{chunk.chunk_start}.tsz").write_bytes(chunk.data)

        record = {
            "row_key": row_key,
            "t0": chunk.t0,
            "chunk_start": chunk.chunk_start,
            "span": chunk.span,
            "points": chunk.point_count,
            "bytes": len(chunk.data),
            "finished": chunk.finished,
        }
        # shared by the importer's worker threads
        with self._lock:
            self._fh.write(json.dumps(record) + "\n")
            self._fh.flush()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._fh.flush()
            self._fh.close()
            self._closed = True
