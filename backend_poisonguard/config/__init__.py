"""
Configuration management for Backend PoisonGuard.

Engine parameters are an immutable EngineConfig snapshot; server settings
come from environment variables and an optional .env file.
"""

from backend_poisonguard.config.settings import (  # noqa: F401
    DEFAULT_CONFIG,
    EngineConfig,
    LevelBand,
    RuleCPolicy,
    get_settings,
)
from backend_poisonguard.config.env import load_engine_config  # noqa: F401

__all__ = [
    "DEFAULT_CONFIG",
    "EngineConfig",
    "LevelBand",
    "RuleCPolicy",
    "get_settings",
    "load_engine_config",
]
