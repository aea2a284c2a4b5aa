"""Public API for the whisper_importer package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Chunking API
# ----------------------------------------------------------------------
from whisper_importer.chunks.packer import (
    EncodedChunk,
    chunks_from_points,
    row_key,
)

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from whisper_importer.config.import_config import (
    ImportConfig,
    RetentionConfig,
    load_import_config,
)
from whisper_importer.config.index_rules import IndexRules, read_index_rules

# ----------------------------------------------------------------------
# Conversion API
# ----------------------------------------------------------------------
from whisper_importer.conversion.aggregation import adjust_aggregation
from whisper_importer.conversion.planner import plan_conversion
from whisper_importer.conversion.planner_models import PlanSegment
from whisper_importer.conversion.resample import dec_resolution, inc_resolution

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from whisper_importer.core.domain.errors import InvalidInputError, WhisperFormatError
from whisper_importer.core.domain.types import (
    AggMethod,
    ArchiveInfo,
    Point,
    Retention,
)

# ----------------------------------------------------------------------
# I/O and orchestration
# ----------------------------------------------------------------------
from whisper_importer.io.chunk_store import ChunkStore, FileChunkStore
from whisper_importer.io.whisper_reader import ArchiveReader, WhisperFileReader
from whisper_importer.runtime.driver import ImportResult, import_metric

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Conversion
    "plan_conversion",
    "PlanSegment",
    "inc_resolution",
    "dec_resolution",
    "adjust_aggregation",

    # Chunking
    "chunks_from_points",
    "row_key",
    "EncodedChunk",

    # Domain
    "Point",
    "ArchiveInfo",
    "Retention",
    "AggMethod",
    "InvalidInputError",
    "WhisperFormatError",

    # Config
    "ImportConfig",
    "RetentionConfig",
    "load_import_config",
    "IndexRules",
    "read_index_rules",

    # I/O and orchestration
    "ArchiveReader",
    "WhisperFileReader",
    "ChunkStore",
    "FileChunkStore",
    "ImportResult",
    "import_metric",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("whisper-importer")
except PackageNotFoundError:
    __version__ = "0.0.0"
