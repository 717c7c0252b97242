"""
Analysis engine: score every transaction against the anchor set.

Per transaction:
- Trait 2 (small amount) once, independent of anchors.
- Anchors are scanned in input order, same chain family only.
- Trait 1 (address similarity) is first-match: the first anchor that hits
  is recorded, Trait 3 is computed against that same anchor (when both
  timestamps are present) and the scan stops.
- Anchors that miss Trait 1 still feed Trait 3, keeping the strongest.
- A result is emitted iff s1 > 0, s2 == 1 or s3 > 0.

Results are sorted by confidence, highest first; ties keep input order.
The engine is pure: inputs and the config snapshot are immutable, so the
per-transaction step can be mapped over a thread pool (analyze_parallel).
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Sequence

from backend_poisonguard.analysis_engine.address_type import AddressType, chain_type_from_caip2
from backend_poisonguard.analysis_engine.amount import check_small_amount
from backend_poisonguard.analysis_engine.decision import decide
from backend_poisonguard.analysis_engine.models import (
    Anchor,
    AnalysisResult,
    SimilarityEvidence,
    TemporalEvidence,
    Transaction,
)
from backend_poisonguard.analysis_engine.similarity import match_address
from backend_poisonguard.analysis_engine.temporal import (
    is_missing_timestamp,
    score_temporal_proximity,
)
from backend_poisonguard.config.settings import DEFAULT_CONFIG, EngineConfig
from backend_poisonguard.core.exceptions import AnalysisTimeoutError
from backend_poisonguard.poisonguard_logging import get_logger

logger = get_logger(__name__)


def evaluate_transaction(
    tx: Transaction,
    anchors: Sequence[Anchor],
    cfg: EngineConfig,
) -> AnalysisResult | None:
    """
    Evaluate one transaction against all anchors.

    Returns:
        AnalysisResult, or None when no trait fired.
    """
    amount = check_small_amount(tx.token_amount, cfg.small_amount_threshold)
    s2 = 1 if amount.hit else 0

    s1 = 0.0
    trait1_anchor: Anchor | None = None
    trait1_evidence: SimilarityEvidence | None = None

    s3 = 0.0
    trait3_anchor: Anchor | None = None
    trait3_evidence: TemporalEvidence | None = None

    tx_chain = chain_type_from_caip2(tx.caip2)
    tx_has_timestamp = not is_missing_timestamp(tx.block_timestamp)

    if tx_chain != AddressType.UNKNOWN:
        for anchor in anchors:
            if chain_type_from_caip2(anchor.caip2) != tx_chain:
                continue

            both_timestamps = tx_has_timestamp and not is_missing_timestamp(anchor.block_timestamp)
            similarity = match_address(tx.counterparty_addr, anchor.anchor_to_addr, cfg)

            if similarity.hit:
                s1 = similarity.strength
                trait1_anchor = anchor
                trait1_evidence = similarity.evidence
                if both_timestamps:
                    # Trait 3 follows the Trait 1 anchor, replacing any earlier best
                    temporal = score_temporal_proximity(anchor.block_timestamp, tx.block_timestamp, cfg)
                    s3 = temporal.strength
                    trait3_anchor = anchor
                    trait3_evidence = temporal.evidence
                break

            if both_timestamps:
                temporal = score_temporal_proximity(anchor.block_timestamp, tx.block_timestamp, cfg)
                if temporal.strength > s3:
                    s3 = temporal.strength
                    trait3_anchor = anchor
                    trait3_evidence = temporal.evidence

    if not (s1 > 0 or s2 == 1 or s3 > 0):
        return None

    return AnalysisResult(
        transaction=tx,
        anchor=trait1_anchor or trait3_anchor,
        s1=s1,
        s2=s2,
        s3=s3,
        trait1_evidence=trait1_evidence,
        trait2_evidence=amount.evidence,
        trait3_evidence=trait3_evidence,
        decision=decide(s1, s2, s3, cfg),
    )


def rank_results(results: list[AnalysisResult]) -> list[AnalysisResult]:
    """Sort by confidence descending; stable, so ties keep input order."""
    return sorted(results, key=lambda r: r.decision.confidence, reverse=True)


def analyze(
    transactions: Sequence[Transaction],
    anchors: Sequence[Anchor],
    cfg: EngineConfig = DEFAULT_CONFIG,
) -> list[AnalysisResult]:
    """
    Score all transactions against all anchors with one config snapshot.

    Deterministic: identical inputs and config give the same ordered output.
    """
    started = time.perf_counter()
    results: list[AnalysisResult] = []
    for tx in transactions:
        result = evaluate_transaction(tx, anchors, cfg)
        if result is not None:
            results.append(result)
    ranked = rank_results(results)
    _log_completed(transactions, anchors, ranked, started, workers=1)
    return ranked


def analyze_parallel(
    transactions: Sequence[Transaction],
    anchors: Sequence[Anchor],
    cfg: EngineConfig = DEFAULT_CONFIG,
    *,
    max_workers: int = 4,
    timeout: float | None = None,
) -> list[AnalysisResult]:
    """
    Same output as analyze(), with transactions mapped over a thread pool.

    Args:
        max_workers: Pool size; values < 2 fall back to analyze().
        timeout: Seconds for the whole call; None waits indefinitely.

    Raises:
        AnalysisTimeoutError: timeout elapsed before all transactions were scored.
    """
    if max_workers < 2:
        return analyze(transactions, anchors, cfg)

    started = time.perf_counter()
    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="poisonguard-analyze")
    try:
        # map() yields in submission order, so merging keeps input order
        evaluated = list(
            executor.map(
                lambda tx: evaluate_transaction(tx, anchors, cfg),
                transactions,
                timeout=timeout,
            )
        )
    except FuturesTimeoutError:
        logger.warning(
            "analysis_timeout",
            timeout_sec=timeout,
            transaction_count=len(transactions),
            anchor_count=len(anchors),
        )
        raise AnalysisTimeoutError(
            f"Analysis did not finish within {timeout} seconds",
            timeout_sec=timeout,
        ) from None
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    ranked = rank_results([r for r in evaluated if r is not None])
    _log_completed(transactions, anchors, ranked, started, workers=max_workers)
    return ranked


def _log_completed(
    transactions: Sequence[Transaction],
    anchors: Sequence[Anchor],
    ranked: list[AnalysisResult],
    started: float,
    *,
    workers: int,
) -> None:
    actions: dict[str, int] = {}
    for r in ranked:
        actions[r.decision.action] = actions.get(r.decision.action, 0) + 1
    logger.info(
        "analysis_completed",
        transaction_count=len(transactions),
        anchor_count=len(anchors),
        result_count=len(ranked),
        actions=actions,
        workers=workers,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
