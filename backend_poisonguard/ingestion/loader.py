"""
Record loading: JSON arrays -> Transaction / Anchor records.

The top-level payload must be an array of objects; anything else is an
InputValidationError with a descriptive message. The chain identifier is
read from caip2, falling back to caip_2. Parsing builds a new list and never
touches previously loaded data, so a rejected load is side-effect free.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from backend_poisonguard.analysis_engine.models import Anchor, Transaction
from backend_poisonguard.core.exceptions import InputValidationError
from backend_poisonguard.poisonguard_logging import get_logger

logger = get_logger(__name__)

KIND_TRANSACTIONS = "transactions"
KIND_ANCHORS = "anchors"


def _require_objects(data: Any, kind: str) -> list[Mapping[str, Any]]:
    if not isinstance(data, list):
        raise InputValidationError(
            f"{kind} payload must be a JSON array",
            kind=kind,
            received=type(data).__name__,
        )
    for index, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise InputValidationError(
                f"{kind}[{index}] must be a JSON object",
                kind=kind,
                index=index,
                received=type(item).__name__,
            )
    return data


def parse_transactions(data: Any) -> list[Transaction]:
    """Validate and convert a decoded JSON payload into transactions."""
    return [Transaction.from_dict(item) for item in _require_objects(data, KIND_TRANSACTIONS)]


def parse_anchors(data: Any) -> list[Anchor]:
    """Validate and convert a decoded JSON payload into anchors."""
    return [Anchor.from_dict(item) for item in _require_objects(data, KIND_ANCHORS)]


def load_json_records(raw: str | bytes, kind: str) -> list[Transaction] | list[Anchor]:
    """
    Decode raw JSON text and parse it as the given kind.

    Args:
        raw: File contents (bytes are decoded as UTF-8).
        kind: "transactions" or "anchors".

    Raises:
        InputValidationError: bad encoding, bad JSON, or wrong payload shape.
    """
    if kind not in (KIND_TRANSACTIONS, KIND_ANCHORS):
        raise ValueError(f"Unknown record kind: {kind}")
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InputValidationError(f"{kind} file is not valid UTF-8", kind=kind) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputValidationError(
            f"{kind} file is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})",
            kind=kind,
        ) from e
    records = parse_transactions(data) if kind == KIND_TRANSACTIONS else parse_anchors(data)
    logger.debug("records_parsed", kind=kind, count=len(records))
    return records
