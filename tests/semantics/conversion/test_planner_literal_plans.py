"""
Semantic test: conversion plans for a standard three-archive whisper file.

Invariant:
The planner prefers genuine data (copy / downsample) over interpolation and
only upsamples from the finest archive that reaches back far enough.
"""

from __future__ import annotations

import pytest

from whisper_importer.conversion.planner import plan_conversion
from whisper_importer.conversion.planner_models import PlanSegment
from whisper_importer.core.domain.types import ArchiveInfo

ARCHIVES = [
    # 1 hour of 1 sec
    ArchiveInfo(offset=0, seconds_per_point=1, points=3600),
    # 2 days of 1 min
    ArchiveInfo(offset=0, seconds_per_point=60, points=2880),
    # 1 year of 1 hour
    ArchiveInfo(offset=0, seconds_per_point=3600, points=8760),
]


@pytest.mark.parametrize(
    ("spp", "nop", "expected"),
    [
        pytest.param(
            60,
            24 * 60,
            [PlanSegment(archive=1, time_range=24 * 60 * 60, conversion=0)],
            id="single-input-archive",
        ),
        pytest.param(
            30,
            24 * 60,
            [
                PlanSegment(archive=0, time_range=60 * 60, conversion=-1),
                PlanSegment(archive=1, time_range=12 * 60 * 60, conversion=1),
            ],
            id="two-input-archives",
        ),
        pytest.param(
            60 * 60,
            2 * 365 * 24,
            [PlanSegment(archive=2, time_range=365 * 24 * 60 * 60, conversion=0)],
            id="exceeds-available-archives",
        ),
    ],
)
def test_plan_matches_expected(spp: int, nop: int, expected: list[PlanSegment]) -> None:
    assert plan_conversion(spp, nop, ARCHIVES) == expected


def test_exact_match_ignores_finer_archives() -> None:
    """An exact resolution match that covers the range needs no other archive."""
    plan = plan_conversion(60, 2000, ARCHIVES)

    assert plan == [PlanSegment(archive=1, time_range=120_000, conversion=0)]


def test_finer_anchor_is_downsampled_alone() -> None:
    """A finer archive covering the whole range is used on its own."""
    plan = plan_conversion(120, 1000, ARCHIVES)

    assert plan == [PlanSegment(archive=1, time_range=120_000, conversion=-1)]
