"""
In-memory analysis session.

Holds the loaded transactions, the loaded anchors and the current config
snapshot. Every change (load, clear, config update) recomputes the ranked
results, so readers never see decisions from a stale config. A rejected
load raises before any state is touched: the previous collection and its
results stay in place.

All state changes happen under one lock; results() returns the list built
for the current state.
"""

from __future__ import annotations

import threading
import uuid
from typing import Any, Mapping, Sequence

from backend_poisonguard.analysis_engine.engine import analyze, analyze_parallel
from backend_poisonguard.analysis_engine.models import Anchor, AnalysisResult, Transaction
from backend_poisonguard.config.settings import DEFAULT_CONFIG, EngineConfig
from backend_poisonguard.core.exceptions import InputValidationError
from backend_poisonguard.ingestion.loader import (
    KIND_ANCHORS,
    KIND_TRANSACTIONS,
    load_json_records,
    parse_anchors,
    parse_transactions,
)
from backend_poisonguard.poisonguard_logging.logger import bind_session


class AnalysisSession:
    """
    Loaded collections plus config snapshot, with results kept current.

    Args:
        config: Initial snapshot (defaults when None).
        max_workers: >1 scores transactions on a thread pool.
        timeout_sec: Caller timeout for each recomputation (parallel mode only).
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        max_workers: int = 0,
        timeout_sec: float | None = None,
    ) -> None:
        self.session_id = uuid.uuid4().hex[:12]
        self._lock = threading.Lock()
        self._config = config or DEFAULT_CONFIG
        self._transactions: list[Transaction] = []
        self._anchors: list[Anchor] = []
        self._results: list[AnalysisResult] = []
        self._max_workers = max_workers
        self._timeout_sec = timeout_sec
        self._logger = bind_session(self.session_id)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def anchors(self) -> list[Anchor]:
        return list(self._anchors)

    def results(self) -> list[AnalysisResult]:
        """Ranked results for the current collections and config."""
        with self._lock:
            return list(self._results)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def load_transactions(self, payload: Any) -> int:
        """
        Replace transactions from raw JSON (str/bytes) or a decoded list.

        Returns:
            Number of transactions loaded.

        Raises:
            InputValidationError: payload rejected; previous state kept.
        """
        records = self._parse(payload, KIND_TRANSACTIONS)
        with self._lock:
            results = self._recompute(records, self._anchors, self._config)
            self._transactions = records
            self._results = results
        self._logger.info("records_loaded", kind=KIND_TRANSACTIONS, count=len(records))
        return len(records)

    def load_anchors(self, payload: Any) -> int:
        """Replace anchors; same contract as load_transactions."""
        records = self._parse(payload, KIND_ANCHORS)
        with self._lock:
            results = self._recompute(self._transactions, records, self._config)
            self._anchors = records
            self._results = results
        self._logger.info("records_loaded", kind=KIND_ANCHORS, count=len(records))
        return len(records)

    def clear_transactions(self) -> None:
        with self._lock:
            self._transactions = []
            self._results = []
        self._logger.info("records_cleared", kind=KIND_TRANSACTIONS)

    def clear_anchors(self) -> None:
        with self._lock:
            self._results = self._recompute(self._transactions, [], self._config)
            self._anchors = []
        self._logger.info("records_cleared", kind=KIND_ANCHORS)

    def update_config(
        self,
        overrides: Mapping[str, Any] | None = None,
        /,
        **kwargs: Any,
    ) -> EngineConfig:
        """Derive a new snapshot from the current one and re-run analysis."""
        merged = {**(overrides or {}), **kwargs}
        with self._lock:
            new_config = self._config.with_overrides(merged)
            self._results = self._recompute(self._transactions, self._anchors, new_config)
            self._config = new_config
        self._logger.info("config_updated", keys=sorted(str(k) for k in merged))
        return new_config

    def replace_config(self, config: EngineConfig) -> None:
        """Swap in a whole snapshot (e.g. defaults) and re-run analysis."""
        with self._lock:
            self._results = self._recompute(self._transactions, self._anchors, config)
            self._config = config
        self._logger.info("config_replaced")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse(self, payload: Any, kind: str) -> list:
        try:
            if isinstance(payload, (str, bytes)):
                return load_json_records(payload, kind)
            if kind == KIND_TRANSACTIONS:
                return parse_transactions(payload)
            return parse_anchors(payload)
        except InputValidationError as e:
            self._logger.warning("upload_rejected", kind=kind, error=e.message)
            raise

    def _recompute(
        self,
        transactions: Sequence[Transaction],
        anchors: Sequence[Anchor],
        config: EngineConfig,
    ) -> list[AnalysisResult]:
        if not transactions:
            return []
        if self._max_workers > 1:
            return analyze_parallel(
                transactions,
                anchors,
                config,
                max_workers=self._max_workers,
                timeout=self._timeout_sec,
            )
        return analyze(transactions, anchors, config)
