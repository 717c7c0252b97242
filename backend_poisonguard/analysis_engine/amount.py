"""
Small amount heuristic (Trait 2).

Poisoning transfers are usually dust: the attacker only needs the lookalike
address to show up in the victim's history. Amounts are parsed leniently
(leading number of a string); anything unparseable becomes NaN, which never
satisfies the threshold test, so it is a miss rather than an error.
"""

from __future__ import annotations

import math
import re
from typing import Any

from backend_poisonguard.analysis_engine.models import AmountEvidence, AmountMatch

DEFAULT_SMALL_AMOUNT_THRESHOLD = 0.001

# Only the exact "Infinity" token is an infinite amount; "inf" and "-inf" are not numbers.
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))")


def parse_amount(value: Any) -> float:
    """Parse a token amount; NaN when the value has no leading number."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        m = _LEADING_FLOAT.match(value)
        if m:
            return float(m.group(1))
    return math.nan


def check_small_amount(
    token_amount: Any,
    threshold: float = DEFAULT_SMALL_AMOUNT_THRESHOLD,
) -> AmountMatch:
    """Hit iff the parsed amount is <= threshold (NaN never hits)."""
    amount = parse_amount(token_amount)
    if amount <= threshold:
        return AmountMatch(hit=True, evidence=AmountEvidence(token_amount=amount, threshold=threshold))
    return AmountMatch(hit=False, evidence=None)
