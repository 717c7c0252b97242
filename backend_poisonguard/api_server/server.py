"""
FastAPI server: upload, configure and read address-poisoning results.

Wraps one in-memory AnalysisSession: uploads replace a collection, config
patches derive a new snapshot, and every change re-runs the analysis.
POST /analyze scores an inline payload without touching the session.
No persistence and no authentication. Config via env (see config.env).
"""

from __future__ import annotations

import threading
from typing import Any

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_poisonguard.analysis_engine.engine import analyze, analyze_parallel
from backend_poisonguard.config.env import load_engine_config
from backend_poisonguard.config.settings import EngineConfig, Settings, get_settings
from backend_poisonguard.core.exceptions import (
    AnalysisTimeoutError,
    ConfigError,
    InputValidationError,
)
from backend_poisonguard.ingestion.loader import (
    KIND_ANCHORS,
    KIND_TRANSACTIONS,
    parse_anchors,
    parse_transactions,
)
from backend_poisonguard.ingestion.session import AnalysisSession
from backend_poisonguard.poisonguard_logging import get_logger

logger = get_logger(__name__)

_session: AnalysisSession | None = None
_session_lock = threading.Lock()


# -----------------------------------------------------------------------------
# Config and dependency
# -----------------------------------------------------------------------------


def get_session() -> AnalysisSession:
    """Dependency: process-wide session, created on first use from env config."""
    global _session
    with _session_lock:
        if _session is None:
            settings = get_settings()
            _session = AnalysisSession(
                load_engine_config(),
                max_workers=settings.analysis_max_workers,
                timeout_sec=settings.analysis_timeout_sec,
            )
            logger.info("api_session_created", session_id=_session.session_id)
        return _session


def reset_session_for_test() -> None:
    """Drop the process-wide session so the next request builds a fresh one."""
    global _session
    with _session_lock:
        _session = None


# -----------------------------------------------------------------------------
# Request / response models
# -----------------------------------------------------------------------------


class UploadResponse(BaseModel):
    """POST /transactions and POST /anchors response."""

    kind: str = Field(..., description="transactions or anchors")
    loaded: int = Field(..., ge=0, description="Number of records now loaded")
    result_count: int = Field(..., ge=0, description="Results after re-analysis")


class AnalyzeRequest(BaseModel):
    """POST /analyze body: inline records and optional config overrides."""

    transactions: Any = Field(..., description="JSON array of transaction objects")
    anchors: Any = Field(default_factory=list, description="JSON array of anchor objects")
    config: dict[str, Any] | None = Field(None, description="Flat config overrides")


class ResultsResponse(BaseModel):
    count: int = Field(..., ge=0)
    results: list[dict[str, Any]] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# App and routes
# -----------------------------------------------------------------------------

app = FastAPI(
    title="Backend PoisonGuard API",
    description="Address-poisoning risk decisions for uploaded transactions and anchors.",
    version="0.1.0",
)


@app.exception_handler(InputValidationError)
def input_validation_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.message, "error": exc.to_dict()})


@app.exception_handler(ConfigError)
def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": exc.message, "error": exc.to_dict()})


@app.exception_handler(AnalysisTimeoutError)
def timeout_handler(request: Request, exc: AnalysisTimeoutError) -> JSONResponse:
    return JSONResponse(status_code=504, content={"detail": exc.message, "error": exc.to_dict()})


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Consistent JSON error response for HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


@app.get("/health")
def health() -> dict[str, str]:
    """Liveness probe: API is up."""
    return {"status": "ok"}


def _upload(kind: str, file: UploadFile, session: AnalysisSession) -> UploadResponse:
    content = file.file.read()
    logger.info("upload_received", kind=kind, filename=file.filename, size=len(content))
    if kind == KIND_TRANSACTIONS:
        loaded = session.load_transactions(content)
    else:
        loaded = session.load_anchors(content)
    return UploadResponse(kind=kind, loaded=loaded, result_count=len(session.results()))


@app.post("/transactions", response_model=UploadResponse)
def upload_transactions(
    file: UploadFile = File(..., description="JSON array of transactions"),
    session: AnalysisSession = Depends(get_session),
) -> UploadResponse:
    """Replace loaded transactions. 400 when the file is not a JSON array of objects."""
    return _upload(KIND_TRANSACTIONS, file, session)


@app.post("/anchors", response_model=UploadResponse)
def upload_anchors(
    file: UploadFile = File(..., description="JSON array of anchors"),
    session: AnalysisSession = Depends(get_session),
) -> UploadResponse:
    """Replace loaded anchors. 400 when the file is not a JSON array of objects."""
    return _upload(KIND_ANCHORS, file, session)


@app.delete("/transactions")
def clear_transactions(session: AnalysisSession = Depends(get_session)) -> dict[str, Any]:
    session.clear_transactions()
    return {"kind": KIND_TRANSACTIONS, "loaded": 0}


@app.delete("/anchors")
def clear_anchors(session: AnalysisSession = Depends(get_session)) -> dict[str, Any]:
    session.clear_anchors()
    return {"kind": KIND_ANCHORS, "loaded": 0}


@app.get("/config")
def get_config(session: AnalysisSession = Depends(get_session)) -> dict[str, Any]:
    """Current flat config snapshot, level bands materialized."""
    return session.config.to_dict()


@app.patch("/config")
def patch_config(
    overrides: dict[str, Any],
    session: AnalysisSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Apply partial overrides, e.g. {"w1": 2.5, "evm_L0_suffix_A": 5}.

    Unknown keys or values that break ordering constraints return 400 and
    leave the current snapshot in place.
    """
    return session.update_config(overrides).to_dict()


@app.delete("/config")
def reset_config(session: AnalysisSession = Depends(get_session)) -> dict[str, Any]:
    """Restore env/default config."""
    config = load_engine_config()
    session.replace_config(config)
    return config.to_dict()


@app.get("/results", response_model=ResultsResponse)
def get_results(
    level: str | None = None,
    session: AnalysisSession = Depends(get_session),
) -> ResultsResponse:
    """Ranked results for the loaded data; optional ?level=L3 filter."""
    results = session.results()
    if level:
        results = [r for r in results if r.decision.level == level]
    return ResultsResponse(count=len(results), results=[r.to_dict() for r in results])


@app.post("/analyze", response_model=ResultsResponse)
def analyze_inline(
    body: AnalyzeRequest,
    session: AnalysisSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> ResultsResponse:
    """
    Stateless analysis of an inline payload.

    Overrides in body.config are layered over the session's current snapshot.
    """
    transactions = parse_transactions(body.transactions)
    anchors = parse_anchors(body.anchors)
    config: EngineConfig = session.config.with_overrides(body.config)
    if settings.analysis_max_workers > 1:
        results = analyze_parallel(
            transactions,
            anchors,
            config,
            max_workers=settings.analysis_max_workers,
            timeout=settings.analysis_timeout_sec,
        )
    else:
        results = analyze(transactions, anchors, config)
    return ResultsResponse(count=len(results), results=[r.to_dict() for r in results])
