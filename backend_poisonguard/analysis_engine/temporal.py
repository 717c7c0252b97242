"""
Temporal proximity (Trait 3).

Measures how closely a candidate transaction follows an anchor transaction.
Poisoning transfers are typically sent shortly after the genuine transfer
they imitate, so suspicion decays with the time gap:

- dt <= 0: candidate is not after the anchor -> strength 0, miss.
- 0 < dt <= t_min: strength 1 (near-simultaneous follow-up).
- t_min < dt < t_max: strength exp(-k * r), r = (dt - t_min) / (t_max - t_min).
- dt >= t_max: strength 0, miss.

Missing or non-numeric timestamps are a miss with an error tag in the
evidence, never an exception.
"""

from __future__ import annotations

import math
import re
from typing import Any

from backend_poisonguard.analysis_engine.models import TemporalEvidence, TemporalMatch
from backend_poisonguard.analysis_engine.scaling import clip_0_1
from backend_poisonguard.config.settings import EngineConfig

ERROR_MISSING = "Missing timestamp data"
ERROR_INVALID = "Invalid timestamp format"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def is_missing_timestamp(value: Any) -> bool:
    """None and blank strings count as missing."""
    return value is None or (isinstance(value, str) and not value.strip())


def parse_timestamp(value: Any) -> int | None:
    """
    Parse Unix seconds from an int, a finite float (truncated) or a string
    whose leading token is an integer. Returns None when unparseable.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        m = _LEADING_INT.match(value)
        return int(m.group(1)) if m else None
    return None


def score_temporal_proximity(
    anchor_timestamp: Any,
    candidate_timestamp: Any,
    cfg: EngineConfig,
) -> TemporalMatch:
    """
    Score how soon candidate_timestamp follows anchor_timestamp.

    Args:
        anchor_timestamp: Anchor blockTimestamp (Unix seconds, number or string).
        candidate_timestamp: Candidate blockTimestamp.
        cfg: Snapshot supplying t_min, t_max and k.

    Returns:
        TemporalMatch with strength in [0, 1] and evidence (error tag on bad input).
    """
    if is_missing_timestamp(anchor_timestamp) or is_missing_timestamp(candidate_timestamp):
        return TemporalMatch(hit=False, strength=0.0, evidence=TemporalEvidence(error=ERROR_MISSING))

    t_anchor = parse_timestamp(anchor_timestamp)
    t_candidate = parse_timestamp(candidate_timestamp)
    if t_anchor is None or t_candidate is None:
        return TemporalMatch(
            hit=False,
            strength=0.0,
            evidence=TemporalEvidence(
                t_anchor=t_anchor,
                t_candidate=t_candidate,
                error=ERROR_INVALID,
            ),
        )

    delta_t = t_candidate - t_anchor
    r: float | None = None
    if delta_t <= 0:
        strength, hit = 0.0, False
    elif delta_t <= cfg.t_min:
        strength, hit = 1.0, True
    elif delta_t < cfg.t_max:
        r = (delta_t - cfg.t_min) / (cfg.t_max - cfg.t_min)
        strength, hit = math.exp(-cfg.k * r), True
    else:
        strength, hit = 0.0, False

    evidence = TemporalEvidence(
        t_anchor=t_anchor,
        t_candidate=t_candidate,
        delta_t_seconds=delta_t,
        t_min=cfg.t_min,
        t_max=cfg.t_max,
        k=cfg.k,
        r=r,
        strength=strength,
    )
    return TemporalMatch(hit=hit, strength=clip_0_1(strength), evidence=evidence)
