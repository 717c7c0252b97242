"""
Ingestion package: JSON record loading and the in-memory analysis session.

Parses uploaded JSON arrays into Transaction / Anchor records and keeps the
loaded collections together with the current config snapshot.
"""

from backend_poisonguard.ingestion.loader import (
    KIND_ANCHORS,
    KIND_TRANSACTIONS,
    load_json_records,
    parse_anchors,
    parse_transactions,
)
from backend_poisonguard.ingestion.session import AnalysisSession

__all__ = [
    "KIND_ANCHORS",
    "KIND_TRANSACTIONS",
    "load_json_records",
    "parse_anchors",
    "parse_transactions",
    "AnalysisSession",
]
