"""
Decision model: logistic combination of the three trait strengths.

    z_base        = bias + w1*s1 + w2*s2 + w3*s3
    z_interaction = b12*s1*s2 + b13*s1*s3 + b23*s2*s3
    confidence    = 1 / (1 + exp(-(z_base + z_interaction)))

The confidence is mapped to a (level, action) through the ordered level
bands of the config snapshot: the first band whose upper bound exceeds the
confidence wins, the open-ended last band catches the rest.
"""

from __future__ import annotations

import math

from backend_poisonguard.analysis_engine.models import Decision
from backend_poisonguard.config.settings import EngineConfig, LevelBand


def logistic(z: float) -> float:
    """1 / (1 + e^-z), without overflow for large |z|."""
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


def select_band(confidence: float, bands: tuple[LevelBand, ...]) -> LevelBand:
    for band in bands:
        if band.upper is None or confidence < band.upper:
            return band
    # Validated configs always end with an open band
    return bands[-1]


def decide(s1: float, s2: float, s3: float, cfg: EngineConfig) -> Decision:
    """
    Compute the decision for one set of trait strengths.

    Args:
        s1: Trait 1 strength in [0, 1].
        s2: Trait 2 flag (0 or 1).
        s3: Trait 3 strength in [0, 1].
        cfg: Weights, interaction coefficients and level bands.
    """
    z_base = cfg.bias + cfg.w1 * s1 + cfg.w2 * s2 + cfg.w3 * s3
    z_interaction = cfg.b12 * s1 * s2 + cfg.b13 * s1 * s3 + cfg.b23 * s2 * s3
    confidence = logistic(z_base + z_interaction)
    return Decision.from_band(z_base, z_interaction, confidence, select_band(confidence, cfg.bands()))
