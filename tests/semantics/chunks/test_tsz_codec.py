"""
Semantic test: Gorilla chunk codec is lossless.

Invariant:
Decoding an encoded chunk yields exactly the pushed points, for regular
and irregular spacing and for any float64 value.
"""

from __future__ import annotations

import math
import random

import pytest

from whisper_importer.chunks import tsz
from whisper_importer.core.domain.types import Point


def test_regular_series_decodes_exactly() -> None:
    points = [Point(1000 + i * 10, float(i % 17) * 1.5) for i in range(500)]

    assert list(tsz.decode(tsz.encode(990, points))) == points


def test_irregular_deltas_hit_every_bucket() -> None:
    deltas = [1, 1, 60, 1, 300, 2, 3000, 5, 100_000, 1, 1]
    ts = 5_000
    points = []
    for i, delta in enumerate(deltas):
        ts += delta
        points.append(Point(ts, float(i)))

    assert list(tsz.decode(tsz.encode(5_000, points))) == points


def test_special_values_survive() -> None:
    values = [0.0, -0.0, 1e308, -1e-308, math.inf, -math.inf, 3.141592653589793, math.nan]
    points = [Point(60 * (i + 1), value) for i, value in enumerate(values)]

    out = list(tsz.decode(tsz.encode(0, points)))

    assert [p.timestamp for p in out] == [p.timestamp for p in points]
    for got, want in zip(out[:-1], points[:-1], strict=True):
        assert math.copysign(1, got.value) == math.copysign(1, want.value)
        assert got.value == want.value
    assert math.isnan(out[-1].value)


def test_random_values_round_trip() -> None:
    rng = random.Random(7)
    points = [Point(10 * (i + 1), rng.uniform(-1e6, 1e6)) for i in range(300)]

    assert list(tsz.decode(tsz.encode(0, points))) == points


def test_repeated_values_compress() -> None:
    points = [Point(10 * (i + 1), 42.0) for i in range(1000)]

    data = tsz.encode(0, points)

    # two bits per point after the first
    assert len(data) < 300
    assert list(tsz.decode(data)) == points


def test_empty_chunk() -> None:
    assert list(tsz.decode(tsz.encode(3600, []))) == []


def test_encoder_rejects_non_increasing_timestamps() -> None:
    encoder = tsz.Encoder(0)
    encoder.push(10, 1.0)

    with pytest.raises(ValueError):
        encoder.push(10, 2.0)


def test_encoder_rejects_points_before_t0() -> None:
    with pytest.raises(ValueError):
        tsz.Encoder(100).push(50, 1.0)
