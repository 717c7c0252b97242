"""
Data models for analysis engine input and output.

Responsibilities:
- Define the immutable input records (Transaction, Anchor).
- Define per-trait evidence records, the Decision and the AnalysisResult.
- Provide to_dict() for API responses and CLI output (stable key order).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from backend_poisonguard.config.settings import LevelBand


def _chain_id(item: Mapping[str, Any]) -> str:
    """caip2, falling back to the caip_2 spelling; empty when absent."""
    return str(item.get("caip2") or item.get("caip_2") or "")


@dataclass(frozen=True)
class Transaction:
    """
    One candidate transaction to score.

    token_amount and block_timestamp are kept as supplied (number or string);
    the trait heuristics parse them leniently.
    """

    counterparty_addr: str
    token_amount: Any
    caip2: str = ""
    block_timestamp: Any = None
    nonce: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)
    """Input keys not used by scoring; carried through for display."""

    @classmethod
    def from_dict(cls, item: Mapping[str, Any]) -> "Transaction":
        known = {"counterparty_addr", "token_amount", "caip2", "caip_2", "blockTimestamp", "nonce"}
        return cls(
            counterparty_addr=item.get("counterparty_addr") or "",
            token_amount=item.get("token_amount"),
            caip2=_chain_id(item),
            block_timestamp=item.get("blockTimestamp"),
            nonce=item.get("nonce"),
            extra={k: v for k, v in item.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "counterparty_addr": self.counterparty_addr,
                "token_amount": self.token_amount,
                "caip2": self.caip2,
                "blockTimestamp": self.block_timestamp,
                "nonce": self.nonce,
            }
        )
        return out


@dataclass(frozen=True)
class Anchor:
    """A known reference address (e.g. one the user previously sent funds to)."""

    anchor_to_addr: str
    caip2: str = ""
    block_timestamp: Any = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_dict(cls, item: Mapping[str, Any]) -> "Anchor":
        known = {"anchor_to_addr", "caip2", "caip_2", "blockTimestamp"}
        return cls(
            anchor_to_addr=item.get("anchor_to_addr") or "",
            caip2=_chain_id(item),
            block_timestamp=item.get("blockTimestamp"),
            extra={k: v for k, v in item.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out.update(
            {
                "anchor_to_addr": self.anchor_to_addr,
                "caip2": self.caip2,
                "blockTimestamp": self.block_timestamp,
            }
        )
        return out


@dataclass(frozen=True)
class SimilarityEvidence:
    """Why Trait 1 fired: overlap lengths, sub-rule strengths, primary rule."""

    match_type: str
    """"prefix+suffix", "suffix" or "prefix"."""
    primary_rule: str
    """"C", "A" or "B"."""
    ref_addr: str
    suspect_addr: str
    addr_type: str
    prefix_len: int
    suffix_len: int
    strength_a: float
    strength_b: float
    strength_c: float
    strength: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "match_type": self.match_type,
            "primary_rule": self.primary_rule,
            "ref_addr": self.ref_addr,
            "suspect_addr": self.suspect_addr,
            "addr_type": self.addr_type,
            "prefix_len": self.prefix_len,
            "suffix_len": self.suffix_len,
            "strength_A": self.strength_a,
            "strength_B": self.strength_b,
            "strength_C": self.strength_c,
            "strength": self.strength,
        }


@dataclass(frozen=True)
class AmountEvidence:
    token_amount: float
    threshold: float

    def to_dict(self) -> dict[str, Any]:
        return {"token_amount": self.token_amount, "threshold": self.threshold}


@dataclass(frozen=True)
class TemporalEvidence:
    """
    Inputs and intermediate values of the Trait 3 computation.

    error is set ("Missing timestamp data" / "Invalid timestamp format")
    when the comparison could not be made; the other fields are then partial.
    """

    t_anchor: int | None = None
    t_candidate: int | None = None
    delta_t_seconds: int | None = None
    t_min: float | None = None
    t_max: float | None = None
    k: float | None = None
    r: float | None = None
    strength: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "t_anchor": self.t_anchor,
            "t_candidate": self.t_candidate,
            "deltaT_seconds": self.delta_t_seconds,
        }
        if self.error is not None:
            out["error"] = self.error
            return out
        out.update(
            {
                "t_min": self.t_min,
                "t_max": self.t_max,
                "k": self.k,
                "r": self.r,
                "strength": self.strength,
            }
        )
        return out


@dataclass(frozen=True)
class SimilarityMatch:
    hit: bool
    strength: float
    evidence: SimilarityEvidence | None = None


@dataclass(frozen=True)
class AmountMatch:
    hit: bool
    evidence: AmountEvidence | None = None


@dataclass(frozen=True)
class TemporalMatch:
    hit: bool
    strength: float
    evidence: TemporalEvidence


@dataclass(frozen=True)
class Decision:
    """Logistic decision over the three trait strengths."""

    z_base: float
    z_interaction: float
    z: float
    confidence: float
    level: str
    action: str

    @classmethod
    def from_band(
        cls,
        z_base: float,
        z_interaction: float,
        confidence: float,
        band: LevelBand,
    ) -> "Decision":
        return cls(
            z_base=z_base,
            z_interaction=z_interaction,
            z=z_base + z_interaction,
            confidence=confidence,
            level=band.level,
            action=band.action,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "z_base": self.z_base,
            "z_interaction": self.z_interaction,
            "z": self.z,
            "confidence": self.confidence,
            "level": self.level,
            "action": self.action,
        }


@dataclass(frozen=True)
class AnalysisResult:
    """
    Scored transaction: emitted only when s1 > 0, s2 == 1 or s3 > 0.

    anchor is the Trait 1 anchor when one matched, else the strongest
    Trait 3 anchor, else None (Trait 2 alone).
    """

    transaction: Transaction
    anchor: Anchor | None
    s1: float
    s2: int
    s3: float
    trait1_evidence: SimilarityEvidence | None
    trait2_evidence: AmountEvidence | None
    trait3_evidence: TemporalEvidence | None
    decision: Decision

    @property
    def confidence(self) -> float:
        return self.decision.confidence

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction": self.transaction.to_dict(),
            "anchor": self.anchor.to_dict() if self.anchor else None,
            "s1": self.s1,
            "s2": self.s2,
            "s3": self.s3,
            "trait1_evidence": self.trait1_evidence.to_dict() if self.trait1_evidence else None,
            "trait2_evidence": self.trait2_evidence.to_dict() if self.trait2_evidence else None,
            "trait3_evidence": self.trait3_evidence.to_dict() if self.trait3_evidence else None,
            "decision": self.decision.to_dict(),
        }
