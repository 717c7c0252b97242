#!/usr/bin/env python3
"""
Analyze a transactions file against an anchors file and print ranked results.

Both files are JSON arrays (see ingestion.loader). Config starts from
defaults plus POISONGUARD_* env overrides; --set applies further overrides.
Prints a JSON array of results to stdout (or --output). Exits 1 when an
input file or a config override is rejected.

Usage:
  py -m backend_poisonguard.tools.analyze_files --transactions txs.json --anchors anchors.json
  py -m backend_poisonguard.tools.analyze_files -t txs.json -a anchors.json --set w1=2.5 --set rule_c_policy=min --action BLOCK
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from backend_poisonguard.analysis_engine.engine import analyze, analyze_parallel
from backend_poisonguard.config.env import load_engine_config
from backend_poisonguard.core.exceptions import PoisonGuardError
from backend_poisonguard.ingestion.loader import KIND_ANCHORS, KIND_TRANSACTIONS, load_json_records
from backend_poisonguard.poisonguard_logging import get_logger

logger = get_logger(__name__)


def _log(msg: str) -> None:
    print(f"[analyze_files] {msg}", file=sys.stderr)


def parse_overrides(pairs: list[str]) -> dict[str, str]:
    """Turn ["w1=2.5", "t_min=60"] into {"w1": "2.5", "t_min": "60"}."""
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"--set expects key=value, got {pair!r}")
        overrides[key.strip()] = value.strip()
    return overrides


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score transactions for address-poisoning risk.")
    parser.add_argument("-t", "--transactions", type=Path, required=True, help="Transactions JSON file")
    parser.add_argument("-a", "--anchors", type=Path, required=True, help="Anchors JSON file")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                        help="Config override (repeatable)")
    parser.add_argument("--action", dest="actions", action="append", default=[],
                        help="Only print results with this action (repeatable)")
    parser.add_argument("--workers", type=int, default=0, help="Thread pool size (0 = sequential)")
    parser.add_argument("--timeout", type=float, default=None, help="Timeout in seconds (parallel mode)")
    parser.add_argument("-o", "--output", type=Path, default=None, help="Write JSON here instead of stdout")
    return parser


def run(args: argparse.Namespace) -> int:
    try:
        config = load_engine_config().with_overrides(parse_overrides(args.overrides))
        transactions = load_json_records(args.transactions.read_bytes(), KIND_TRANSACTIONS)
        anchors = load_json_records(args.anchors.read_bytes(), KIND_ANCHORS)
        if args.workers > 1:
            results = analyze_parallel(
                transactions, anchors, config, max_workers=args.workers, timeout=args.timeout
            )
        else:
            results = analyze(transactions, anchors, config)
    except PoisonGuardError as e:
        _log(f"ERROR: {e.message}")
        logger.error("analyze_files_failed", error=e.to_dict())
        return 1
    except (OSError, argparse.ArgumentTypeError) as e:
        _log(f"ERROR: {e}")
        return 1

    if args.actions:
        wanted = {a.upper() for a in args.actions}
        results = [r for r in results if r.decision.action in wanted]

    payload = json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False)
    if args.output:
        args.output.write_text(payload + "\n", encoding="utf-8")
        _log(f"Wrote {len(results)} results to {args.output}")
    else:
        print(payload)
    _log(f"transactions={len(transactions)} anchors={len(anchors)} results={len(results)}")
    return 0


def main(argv: list[str] | None = None) -> int:
    return run(build_parser().parse_args(argv))


if __name__ == "__main__":
    raise SystemExit(main())
