"""
Tests for the analysis engine: anchor scan precedence, chain filtering,
result inclusion, ranking, determinism and the parallel path.
"""

from __future__ import annotations

import time

import pytest

from backend_poisonguard.analysis_engine import engine
from backend_poisonguard.analysis_engine.engine import analyze, analyze_parallel, evaluate_transaction
from backend_poisonguard.analysis_engine.models import Anchor, Transaction
from backend_poisonguard.core.exceptions import AnalysisTimeoutError

EVM_REF = "0x1234567890abcdef1234567890abcdef12345678"
EVM_REF_2 = "0xfedcba0987654321fedcba0987654321fedcba09"
TRON_REF = "TA1b2C3d4E5f6G7h8J9k1L2m3N4p5Q6r7S"
T0 = 1_700_000_000


def lookalike(ref: str, prefix_len: int, suffix_len: int) -> str:
    """Same-length address sharing exactly prefix_len leading and suffix_len trailing chars."""
    n = len(ref)
    return "".join(
        c if i < prefix_len or i >= n - suffix_len else ("a" if c.lower() != "a" else "b")
        for i, c in enumerate(ref)
    )


def _tx(addr: str, amount="1.5", caip2="eip155:1", ts=None, nonce=None) -> Transaction:
    return Transaction(counterparty_addr=addr, token_amount=amount, caip2=caip2, block_timestamp=ts, nonce=nonce)


def _anchor(addr: str, caip2="eip155:1", ts=None) -> Anchor:
    return Anchor(anchor_to_addr=addr, caip2=caip2, block_timestamp=ts)


# --- Trait 1 first-match ---


def test_first_matching_anchor_wins_over_stronger_later_one(cfg):
    """Trait 1 stops at the first hit even if a later anchor matches better."""
    candidate = lookalike(EVM_REF, 2, 10)
    anchors = [
        _anchor(lookalike(candidate, 2, 4)),  # shares a 4-char suffix
        _anchor(EVM_REF),  # shares a 10-char suffix
    ]
    result = evaluate_transaction(_tx(candidate), anchors, cfg)
    assert result is not None
    assert result.anchor is anchors[0]
    assert result.s1 == pytest.approx(0.65)
    assert result.trait1_evidence.suffix_len == 4


def test_trait1_anchor_trait3_replaces_earlier_best(cfg):
    """Trait 3 of the Trait 1 anchor replaces a stronger Trait 3 seen before it."""
    candidate = lookalike(EVM_REF, 2, 10)
    close_unrelated = _anchor(EVM_REF_2, ts=T0 - 60)
    similar_far = _anchor(EVM_REF, ts=T0 - 30000)
    result = evaluate_transaction(
        _tx(candidate, amount="5", ts=T0),
        [close_unrelated, similar_far],
        cfg,
    )
    assert result.anchor is similar_far
    assert result.s1 == 1.0
    assert result.s3 == 0.0
    assert result.trait3_evidence.delta_t_seconds == 30000


def test_trait1_anchor_without_timestamp_keeps_earlier_trait3(cfg):
    candidate = lookalike(EVM_REF, 2, 10)
    close_unrelated = _anchor(EVM_REF_2, ts=T0 - 60)
    similar_no_ts = _anchor(EVM_REF)
    result = evaluate_transaction(_tx(candidate, ts=T0), [close_unrelated, similar_no_ts], cfg)
    assert result.anchor is similar_no_ts
    assert result.s1 == 1.0
    assert result.s3 == 1.0
    assert result.trait3_evidence.t_anchor == T0 - 60


def test_trait3_best_across_all_anchors(cfg):
    """Without a Trait 1 hit, the strongest Trait 3 anchor is kept."""
    a_far = _anchor(EVM_REF, ts=T0 - 5000)
    a_close = _anchor(EVM_REF_2, ts=T0 - 60)
    a_after = _anchor(lookalike(EVM_REF_2, 2, 0), ts=T0 + 10)
    unrelated = "0x" + "9" * 40
    result = evaluate_transaction(_tx(unrelated, ts=T0), [a_far, a_close, a_after], cfg)
    assert result.s1 == 0.0
    assert result.trait1_evidence is None
    assert result.s3 == 1.0
    assert result.anchor is a_close


def test_trait3_ties_keep_first_anchor(cfg):
    a1 = _anchor(EVM_REF, ts=T0 - 30)
    a2 = _anchor(EVM_REF_2, ts=T0 - 60)
    result = evaluate_transaction(_tx("0x" + "9" * 40, ts=T0), [a1, a2], cfg)
    assert result.anchor is a1


def test_zero_strength_hit_stops_scan_and_is_not_emitted(cfg):
    """s0=0 at exactly L0 is a hit of strength 0: the scan stops there, no result."""
    zero_floor = cfg.with_overrides(s0=0)
    candidate = lookalike(EVM_REF, 2, 10)
    first = _anchor(lookalike(candidate, 2, 4))
    second = _anchor(EVM_REF)
    assert evaluate_transaction(_tx(candidate), [first, second], zero_floor) is None


# --- Chain filtering ---


def test_anchor_on_other_chain_family_skipped(cfg):
    candidate = lookalike(EVM_REF, 2, 10)
    result = evaluate_transaction(_tx(candidate), [_anchor(EVM_REF, caip2="tron:mainnet")], cfg)
    assert result is None


def test_unknown_chain_only_amount_trait(cfg):
    candidate = lookalike(EVM_REF, 2, 10)
    result = evaluate_transaction(
        _tx(candidate, amount="0.0001", caip2="solana:mainnet", ts=T0),
        [_anchor(EVM_REF, caip2="solana:mainnet", ts=T0 - 10)],
        cfg,
    )
    assert result.s1 == 0.0
    assert result.s2 == 1
    assert result.s3 == 0.0
    assert result.anchor is None


def test_different_evm_chain_ids_compare(cfg):
    """Chain family, not exact chain id, gates comparison."""
    candidate = lookalike(EVM_REF, 2, 10)
    result = evaluate_transaction(_tx(candidate, caip2="eip155:56"), [_anchor(EVM_REF, caip2="eip155:1")], cfg)
    assert result.s1 == 1.0


def test_tron_transaction(cfg):
    candidate = lookalike(TRON_REF, 4, 6)
    result = evaluate_transaction(
        _tx(candidate, amount="0.0001", caip2="tron:mainnet"),
        [_anchor(EVM_REF), _anchor(TRON_REF, caip2="tron:mainnet")],
        cfg,
    )
    assert result.anchor.anchor_to_addr == TRON_REF
    assert result.trait1_evidence.addr_type == "tron"
    assert result.decision.action == "BLOCK"


# --- Inclusion, ranking, determinism ---


def test_no_trait_no_result(cfg):
    assert evaluate_transaction(_tx("0x" + "9" * 40, amount="10"), [_anchor(EVM_REF)], cfg) is None


def test_analyze_ranks_by_confidence_and_keeps_ties_in_input_order(cfg):
    poison = _tx(lookalike(EVM_REF, 2, 10), amount="0.0001", nonce=1)
    dust_1 = _tx("0x" + "9" * 40, amount="0.0001", nonce=2)
    clean = _tx("0x" + "8" * 40, amount="3", nonce=3)
    dust_2 = _tx("0x" + "7" * 40, amount="0", nonce=4)
    similar_only = _tx(lookalike(EVM_REF, 2, 4), amount="2", nonce=5)
    results = analyze([dust_1, clean, similar_only, dust_2, poison], [_anchor(EVM_REF)], cfg)

    assert [r.transaction.nonce for r in results] == [1, 5, 2, 4]
    confidences = [r.confidence for r in results]
    assert confidences == sorted(confidences, reverse=True)
    assert results[2].confidence == results[3].confidence
    for r in results:
        assert r.s1 > 0 or r.s2 == 1 or r.s3 > 0


def test_poisoning_example_blocks(cfg):
    results = analyze(
        [_tx(lookalike(EVM_REF, 2, 10), amount="0.0005", ts=T0 + 60)],
        [_anchor(EVM_REF, ts=T0)],
        cfg,
    )
    assert len(results) == 1
    r = results[0]
    assert (r.s1, r.s2, r.s3) == (1.0, 1, 1.0)
    assert r.decision.level == "L3"
    assert r.decision.action == "BLOCK"
    out = r.to_dict()
    assert out["trait1_evidence"]["primary_rule"] == "A"
    assert out["trait2_evidence"] == {"token_amount": 0.0005, "threshold": 0.001}
    assert out["trait3_evidence"]["deltaT_seconds"] == 60
    assert out["decision"]["action"] == "BLOCK"


def test_analyze_is_deterministic(cfg):
    txs = [
        _tx(lookalike(EVM_REF, 2, 7), amount="0.0001", ts=T0 + 500),
        _tx(lookalike(EVM_REF, 6, 0), ts=T0 + 10),
        _tx("0x" + "9" * 40, amount="0.0002"),
    ]
    anchors = [_anchor(EVM_REF, ts=T0), _anchor(EVM_REF_2, ts=T0 + 5)]
    first = analyze(txs, anchors, cfg)
    second = analyze(txs, anchors, cfg)
    assert first == second
    assert [r.to_dict() for r in first] == [r.to_dict() for r in second]


def test_analyze_empty_inputs(cfg):
    assert analyze([], [], cfg) == []
    assert analyze([_tx("0x" + "9" * 40, amount="0.0001")], [], cfg)[0].s2 == 1


def test_custom_small_amount_threshold(cfg):
    loose = cfg.with_overrides(small_amount_threshold=5)
    assert analyze([_tx("0x" + "9" * 40, amount="3")], [], loose)[0].s2 == 1
    assert analyze([_tx("0x" + "9" * 40, amount="3")], [], cfg) == []


# --- Parallel path ---


def test_analyze_parallel_matches_sequential(cfg):
    txs = [
        _tx(lookalike(EVM_REF, 2, n % 11), amount=str(0.0001 * (n % 3) * 10), ts=T0 + 30 * n)
        for n in range(40)
    ]
    anchors = [_anchor(EVM_REF, ts=T0), _anchor(EVM_REF_2, ts=T0 + 100)]
    assert analyze_parallel(txs, anchors, cfg, max_workers=4) == analyze(txs, anchors, cfg)


def test_analyze_parallel_single_worker_falls_back(cfg):
    txs = [_tx("0x" + "9" * 40, amount="0.0001")]
    assert analyze_parallel(txs, [], cfg, max_workers=1) == analyze(txs, [], cfg)


def test_analyze_parallel_timeout(cfg, monkeypatch):
    def slow(tx, anchors, config):
        time.sleep(0.5)
        return None

    monkeypatch.setattr(engine, "evaluate_transaction", slow)
    with pytest.raises(AnalysisTimeoutError) as exc:
        analyze_parallel([_tx(EVM_REF)] * 4, [], cfg, max_workers=2, timeout=0.05)
    assert exc.value.details["timeout_sec"] == 0.05


def test_nan_amount_string_never_hits(cfg):
    results = analyze([_tx("0x" + "9" * 40, amount="NaN")], [], cfg)
    assert results == []
