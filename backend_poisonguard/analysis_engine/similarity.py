"""
Address similarity (Trait 1) with continuous strength.

A poisoning address copies the visible ends of a genuine address. Three
sub-rules look at the shared prefix / suffix lengths, each with its own hit
condition and ramp:

- Rule A: suffix only.
- Rule B: prefix only.
- Rule C: suffix and prefix together; strength per RuleCPolicy
  (boost_max: c_boost x max of both ramps; min: weakest ramp, no boost).

The overall strength is the max over the rules that hit. Primary-rule
attribution prefers C, then A, then B at equal strength. Rule lengths are
per address family (evm / tron) and come from the EngineConfig snapshot.
"""

from __future__ import annotations

from backend_poisonguard.analysis_engine.address_type import AddressType, classify_address
from backend_poisonguard.analysis_engine.models import SimilarityEvidence, SimilarityMatch
from backend_poisonguard.analysis_engine.scaling import clip_0_1, ramp_with_floor
from backend_poisonguard.config.settings import (
    ChainRuleSet,
    EngineConfig,
    RuleCPolicy,
    RuleLengths,
)

MATCH_TYPES = {"C": "prefix+suffix", "A": "suffix", "B": "prefix"}
# Attribution order at equal strength
RULE_PRECEDENCE = ("C", "A", "B")

_MISS = SimilarityMatch(hit=False, strength=0.0, evidence=None)


def prefix_match_length(addr1: str, addr2: str) -> int:
    """Length of the longest common case-insensitive prefix."""
    count = 0
    for a, b in zip(addr1, addr2):
        if a.lower() != b.lower():
            break
        count += 1
    return count


def suffix_match_length(addr1: str, addr2: str) -> int:
    """Length of the longest common case-insensitive suffix."""
    return prefix_match_length(addr1[::-1], addr2[::-1])


def _ramp(length: int, lengths: RuleLengths, s0: float) -> float:
    return ramp_with_floor(length, lengths.l0, lengths.l1, s0)


def _rule_c_strength(
    suffix_len: int,
    prefix_len: int,
    rules: ChainRuleSet,
    cfg: EngineConfig,
) -> float:
    s_suffix = _ramp(suffix_len, rules.suffix_c, cfg.s0)
    s_prefix = _ramp(prefix_len, rules.prefix_c, cfg.s0)
    if cfg.rule_c_policy == RuleCPolicy.MIN:
        return clip_0_1(min(s_suffix, s_prefix))
    return clip_0_1(cfg.c_boost * max(s_suffix, s_prefix))


def match_address(candidate: str, reference: str, cfg: EngineConfig) -> SimilarityMatch:
    """
    Compare a counterparty address with a reference (anchor) address.

    Identical addresses (case-insensitive) and pairs of different or unknown
    address types are misses; identical addresses are the genuine counterparty,
    not a lookalike.

    Returns:
        SimilarityMatch with hit, strength in [0, 1], and evidence on hit.
    """
    if not isinstance(candidate, str) or not isinstance(reference, str):
        return _MISS
    if candidate.lower() == reference.lower():
        return _MISS

    addr_type = classify_address(candidate)
    if addr_type == AddressType.UNKNOWN or addr_type != classify_address(reference):
        return _MISS

    rules = cfg.rules_for(addr_type)
    prefix_len = prefix_match_length(candidate, reference)
    suffix_len = suffix_match_length(candidate, reference)

    # Hit conditions are evaluated independently of strength
    hits = {
        "A": suffix_len >= rules.suffix_a.l0,
        "B": prefix_len >= rules.prefix_b.l0,
        "C": suffix_len >= rules.suffix_c.l0 and prefix_len >= rules.prefix_c.l0,
    }
    if not any(hits.values()):
        return _MISS

    strengths = {"A": 0.0, "B": 0.0, "C": 0.0}
    if hits["A"]:
        strengths["A"] = _ramp(suffix_len, rules.suffix_a, cfg.s0)
    if hits["B"]:
        strengths["B"] = _ramp(prefix_len, rules.prefix_b, cfg.s0)
    if hits["C"]:
        strengths["C"] = _rule_c_strength(suffix_len, prefix_len, rules, cfg)

    best = max(strengths.values())
    strength = clip_0_1(best)
    primary = next(rule for rule in RULE_PRECEDENCE if hits[rule] and strengths[rule] == best)

    evidence = SimilarityEvidence(
        match_type=MATCH_TYPES[primary],
        primary_rule=primary,
        ref_addr=reference,
        suspect_addr=candidate,
        addr_type=addr_type.value,
        prefix_len=prefix_len,
        suffix_len=suffix_len,
        strength_a=strengths["A"],
        strength_b=strengths["B"],
        strength_c=strengths["C"],
        strength=strength,
    )
    return SimilarityMatch(hit=True, strength=strength, evidence=evidence)
