"""
STREAMHUE - Tier Resolver

Selects the effect for a magnitude-based event (donation amount, bits).
"""

import math
from typing import Iterable, Optional

from streamhue.core.errors import NoMatchingTier
from streamhue.core.types import EffectSpec, Tier


def resolve(tiers: Iterable[Tier], magnitude: float) -> EffectSpec:
    """
    Resolve the effect for an event magnitude.

    Picks the tier with the largest threshold not exceeding the magnitude.
    Tiers may be given in any order; on equal thresholds the last declared
    tier wins. Negative magnitudes are treated as zero.

    Args:
        tiers: Tier definitions
        magnitude: Event amount

    Returns:
        EffectSpec of the selected tier

    Raises:
        NoMatchingTier: If the magnitude is below every threshold
    """
    if magnitude is None or math.isnan(magnitude):
        raise NoMatchingTier(magnitude)

    value = max(0.0, magnitude)
    best: Optional[Tier] = None

    for tier in tiers:
        if tier.threshold > value:
            continue
        if best is None or tier.threshold >= best.threshold:
            best = tier

    if best is None:
        raise NoMatchingTier(magnitude)

    return best.effect
