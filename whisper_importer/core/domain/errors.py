"""Error types raised by the conversion pipeline."""

from __future__ import annotations


class InvalidInputError(ValueError):
    """Programming or configuration error caught at a component boundary.

    Raised for non-positive resolutions, equal or inverted resampling
    resolutions, unknown aggregation methods and malformed archive lists.
    These are never retried.
    """


class WhisperFormatError(ValueError):
    """A whisper file header or archive section could not be decoded."""
