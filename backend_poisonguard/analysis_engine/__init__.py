"""
Analysis engine package: address-poisoning risk decisions.

Consumes Transaction and Anchor records plus an EngineConfig snapshot,
scores three traits (address similarity, small amount, temporal proximity),
and produces ranked AnalysisResult records with a leveled action.
"""

from backend_poisonguard.analysis_engine.address_type import (
    AddressType,
    chain_type_from_caip2,
    classify_address,
)
from backend_poisonguard.analysis_engine.amount import check_small_amount, parse_amount
from backend_poisonguard.analysis_engine.decision import decide, logistic
from backend_poisonguard.analysis_engine.engine import (
    analyze,
    analyze_parallel,
    evaluate_transaction,
    rank_results,
)
from backend_poisonguard.analysis_engine.models import (
    AmountEvidence,
    AnalysisResult,
    Anchor,
    Decision,
    SimilarityEvidence,
    TemporalEvidence,
    Transaction,
)
from backend_poisonguard.analysis_engine.scaling import clip_0_1, ramp_with_floor
from backend_poisonguard.analysis_engine.similarity import (
    match_address,
    prefix_match_length,
    suffix_match_length,
)
from backend_poisonguard.analysis_engine.temporal import (
    parse_timestamp,
    score_temporal_proximity,
)

__all__ = [
    "AddressType",
    "chain_type_from_caip2",
    "classify_address",
    "check_small_amount",
    "parse_amount",
    "decide",
    "logistic",
    "analyze",
    "analyze_parallel",
    "evaluate_transaction",
    "rank_results",
    "AmountEvidence",
    "AnalysisResult",
    "Anchor",
    "Decision",
    "SimilarityEvidence",
    "TemporalEvidence",
    "Transaction",
    "clip_0_1",
    "ramp_with_floor",
    "match_address",
    "prefix_match_length",
    "suffix_match_length",
    "parse_timestamp",
    "score_temporal_proximity",
]
