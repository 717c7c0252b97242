"""
Environment variable loading for PoisonGuard.

- POISONGUARD_<KEY>: override any engine config key (e.g. POISONGUARD_W1=2.5,
  POISONGUARD_EVM_L0_SUFFIX_A=5, POISONGUARD_LEVEL_BANDS='[[0.25,"L0","PASS"],[null,"L3","BLOCK"]]').
- API_HOST / API_PORT: HTTP server bind address.
- LOG_LEVEL / LOG_FORMAT: structured logging (see poisonguard_logging).
- ANALYSIS_MAX_WORKERS / ANALYSIS_TIMEOUT_SEC: parallel engine and caller timeout.
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

from backend_poisonguard.config.settings import (
    EngineConfig,
    Settings,
    config_keys,
)
from backend_poisonguard.core.exceptions import ConfigError

# Project root: config is backend_poisonguard/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

ENV_PREFIX = "POISONGUARD_"


def load_poisonguard_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH)


def engine_overrides_from_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """
    Collect POISONGUARD_* variables that name a known config key.

    Unknown POISONGUARD_* names are ignored so unrelated settings can share the prefix.
    """
    env = os.environ if environ is None else environ
    known = set(config_keys())
    overrides: dict[str, str] = {}
    for name, value in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):].lower()
        if key in known and value.strip():
            overrides[key] = value.strip()
    return overrides


def load_engine_config(environ: Mapping[str, str] | None = None) -> EngineConfig:
    """Return the default engine config with POISONGUARD_* overrides applied."""
    if environ is None:
        load_poisonguard_env()
    return EngineConfig.from_mapping(engine_overrides_from_env(environ))


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer", value=raw) from None


def _env_float(name: str) -> float | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number", value=raw) from None


def load_settings_from_env() -> Settings:
    """Resolve server settings from env after loading .env."""
    load_poisonguard_env()
    return Settings(
        api_host=(os.getenv("API_HOST") or "0.0.0.0").strip(),
        api_port=_env_int("API_PORT", 8000),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        log_format=(os.getenv("LOG_FORMAT") or "json").strip().lower(),
        analysis_max_workers=_env_int("ANALYSIS_MAX_WORKERS", 0),
        analysis_timeout_sec=_env_float("ANALYSIS_TIMEOUT_SEC"),
    )
