"""Import configuration model for whisper conversion runs."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from whisper_importer.core.domain.types import AggMethod, Retention

MethodName = Literal["sum", "cnt", "lst", "avg", "min", "max"]


class RetentionConfig(BaseModel):
    """One destination storage level."""

    seconds_per_point: int = Field(..., gt=0)
    number_of_points: int = Field(..., gt=0)
    chunk_span: int = Field(..., gt=0)

    # Overrides the aggregation method read from the whisper header
    aggregation: MethodName | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_chunk_span(self) -> RetentionConfig:
        """A chunk must hold at least one point of this retention."""
        if self.chunk_span < self.seconds_per_point:
            raise ValueError(
                f"chunk_span ({self.chunk_span}) must be >= "
                f"seconds_per_point ({self.seconds_per_point})"
            )
        return self

    def to_retention(self) -> Retention:
        return Retention(self.seconds_per_point, self.number_of_points)

    def method_for(self, source_method: AggMethod) -> AggMethod:
        if self.aggregation is None:
            return source_method
        return AggMethod.parse(self.aggregation)


class ImportConfig(BaseModel):
    """Structured configuration of a conversion run."""

    retentions: list[RetentionConfig] = Field(..., min_length=1)
    write_unfinished_chunks: bool = False

    # Prepended to metric ids derived from file paths, e.g. "legacy."
    name_prefix: str = ""

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, obj: dict[str, Any]) -> ImportConfig:
        """Create an ImportConfig instance from a JSON-compatible object."""
        return cls.model_validate(obj)

    @model_validator(mode="after")
    def validate_retention_order(self) -> ImportConfig:
        """Retentions must go from finest to coarsest, like whisper archives."""
        for previous, current in zip(self.retentions, self.retentions[1:]):
            if current.seconds_per_point <= previous.seconds_per_point:
                raise ValueError(
                    "retentions must be ordered finest to coarsest "
                    f"({current.seconds_per_point}s after {previous.seconds_per_point}s)"
                )
        return self


def load_import_config(path: str | Path) -> ImportConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    return ImportConfig.from_json_obj(json.loads(path.read_text(encoding="utf-8")))
