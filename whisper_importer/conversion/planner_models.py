"""
Planning model definitions.

This module contains the immutable structure used to describe which
source archive feeds which part of a destination retention.
"""

from __future__ import annotations

from dataclasses import dataclass

# Source resolution equals the target: copy points as they are.
CONVERSION_NONE = 0
# Source is finer than the target: aggregate.
CONVERSION_DOWNSAMPLE = -1
# Source is coarser than the target: interpolate (fabricates samples).
CONVERSION_UPSAMPLE = 1


@dataclass(frozen=True, slots=True)
class PlanSegment:
    """
    One step of a conversion plan.

    time_range is cumulative: it is the amount of history, measured back
    from "now", covered by this segment together with every segment before
    it in the plan.
    """

    archive: int
    time_range: int
    conversion: int


def conversion_direction(source_spp: int, target_spp: int) -> int:
    """Return the conversion needed to go from source_spp to target_spp."""
    if source_spp < target_spp:
        return CONVERSION_DOWNSAMPLE
    if source_spp > target_spp:
        return CONVERSION_UPSAMPLE
    return CONVERSION_NONE
