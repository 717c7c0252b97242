"""
Application-level exceptions.

Matching and scoring never raise: bad timestamps, unparseable amounts and
unknown address shapes are localized misses. Exceptions are reserved for the
edges: rejected input payloads, invalid configuration, and a caller-imposed
analysis timeout. The API server and CLI map them to 400 / 504 and exit 1.
"""

from __future__ import annotations

from typing import Any


class PoisonGuardError(Exception):
    """Base class for all PoisonGuard errors."""

    code = "poisonguard_error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            out["details"] = self.details
        return out


class InputValidationError(PoisonGuardError):
    """Uploaded payload has the wrong shape (not an array, non-object item, bad JSON)."""

    code = "invalid_input"


class ConfigError(PoisonGuardError):
    """Unknown config key or a value that breaks an ordering constraint."""

    code = "invalid_config"


class AnalysisTimeoutError(PoisonGuardError):
    """Analysis did not finish within the caller's timeout."""

    code = "analysis_timeout"
