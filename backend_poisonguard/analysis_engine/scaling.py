"""
Strength scaling helpers shared by the trait scorers.

clip_0_1 clamps any value into [0, 1]; ramp_with_floor maps a match length to
a strength that jumps to a floor s0 at the activation length L0 and rises
linearly to 1 at the saturation length L1.
"""

from __future__ import annotations


def clip_0_1(x: float) -> float:
    """Clamp x into [0, 1]. Idempotent."""
    if x < 0:
        return 0.0
    if x > 1:
        return 1.0
    return x


def ramp_with_floor(x: float, l0: float, l1: float, s0: float) -> float:
    """
    Ramp with floor threshold.

    Returns 0 below l0, 1 at or above l1, and s0 + (1 - s0) * (x - l0) / (l1 - l0)
    in between, so a qualifying length never yields a near-zero strength.

    Args:
        x: Observed length (e.g. shared suffix length).
        l0: Activation length; strength is exactly s0 here.
        l1: Saturation length; strength is 1 from here on.
        s0: Floor strength at l0.
    """
    if x < l0:
        return 0.0
    if x >= l1:
        return 1.0
    return s0 + (1 - s0) * (x - l0) / (l1 - l0)
