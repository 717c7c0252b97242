"""
Tests for the analyze_files command line tool.
"""

from __future__ import annotations

import json

import pytest

from backend_poisonguard.tools.analyze_files import main, parse_overrides

ANCHOR_ADDR = "0x1234567890abcdef1234567890abcdef12345678"
POISON_ADDR = "0x12" + "a" * 28 + "ef12345678"


@pytest.fixture
def files(tmp_path, clean_env):
    txs = tmp_path / "txs.json"
    anchors = tmp_path / "anchors.json"
    txs.write_text(
        json.dumps(
            [
                {"counterparty_addr": POISON_ADDR, "token_amount": "0.0001", "caip2": "eip155:1", "nonce": 1},
                {"counterparty_addr": "0x" + "9" * 40, "token_amount": "0.0002", "caip2": "eip155:1", "nonce": 2},
            ]
        ),
        encoding="utf-8",
    )
    anchors.write_text(json.dumps([{"anchor_to_addr": ANCHOR_ADDR, "caip2": "eip155:1"}]), encoding="utf-8")
    return txs, anchors


def test_prints_ranked_results(files, capsys):
    txs, anchors = files
    assert main(["-t", str(txs), "-a", str(anchors)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert [r["transaction"]["nonce"] for r in out] == [1, 2]
    assert [r["decision"]["action"] for r in out] == ["BLOCK", "WARNING"]


def test_action_filter_and_output_file(files, tmp_path):
    txs, anchors = files
    target = tmp_path / "out.json"
    assert main(["-t", str(txs), "-a", str(anchors), "--action", "block", "-o", str(target)]) == 0
    out = json.loads(target.read_text(encoding="utf-8"))
    assert [r["transaction"]["nonce"] for r in out] == [1]


def test_set_overrides(files, capsys):
    txs, anchors = files
    assert main(["-t", str(txs), "-a", str(anchors), "--set", "small_amount_threshold=0.00001"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert [r["s2"] for r in out] == [0]


def test_parallel_workers(files, capsys):
    txs, anchors = files
    assert main(["-t", str(txs), "-a", str(anchors), "--workers", "2", "--timeout", "10"]) == 0
    assert len(json.loads(capsys.readouterr().out)) == 2


def test_invalid_input_exits_1(files, capsys):
    txs, anchors = files
    txs.write_text('{"nonce": 1}', encoding="utf-8")
    assert main(["-t", str(txs), "-a", str(anchors)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "must be a JSON array" in captured.err


def test_unknown_override_exits_1(files):
    txs, anchors = files
    assert main(["-t", str(txs), "-a", str(anchors), "--set", "w9=1"]) == 1
    assert main(["-t", str(txs), "-a", str(anchors), "--set", "w1"]) == 1
    assert main(["-t", str(txs), "-a", str(anchors), "--set", "w2=nan"]) == 1
    assert main(["-t", str(txs), "-a", str(anchors), "--set", "self=1"]) == 1


def test_missing_file_exits_1(files, tmp_path):
    _, anchors = files
    assert main(["-t", str(tmp_path / "nope.json"), "-a", str(anchors)]) == 1


def test_parse_overrides():
    assert parse_overrides(["w1=2.5", " t_min = 60 "]) == {"w1": "2.5", "t_min": "60"}
