"""
Engine configuration snapshot and server settings.

Responsibilities:
- Define the flat numeric parameter set of the decision engine (weights,
  biases, interaction coefficients, level thresholds, per-chain-type rule
  lengths, temporal decay) with documented defaults.
- Keep each snapshot immutable: callers derive a new one with
  with_overrides() and pass it into every analysis call.
- Validate ordering constraints (L0 <= L1, t_min < t_max, band order).
- Expose typed server settings (API host/port, worker pool, timeout).
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Iterable, Mapping

from backend_poisonguard.core.exceptions import ConfigError


class RuleCPolicy(str, Enum):
    """How Rule C (prefix+suffix) combines its two ramps."""

    BOOST_MAX = "boost_max"
    """c_boost x max(suffix ramp, prefix ramp), clipped to [0, 1]."""
    MIN = "min"
    """Weakest link: min(suffix ramp, prefix ramp), no boost."""


@dataclass(frozen=True)
class LevelBand:
    """
    One decision band: confidence below `upper` maps to (level, action).

    The last band of a configuration has upper=None and catches everything
    at or above the previous cutoff.
    """

    upper: float | None
    level: str
    action: str

    def to_dict(self) -> dict[str, Any]:
        return {"upper": self.upper, "level": self.level, "action": self.action}


@dataclass(frozen=True)
class RuleLengths:
    """Activation length (l0) and saturation length (l1) of one sub-rule."""

    l0: float
    l1: float


@dataclass(frozen=True)
class ChainRuleSet:
    """Similarity rule lengths for one address family (evm or tron)."""

    suffix_a: RuleLengths
    prefix_b: RuleLengths
    suffix_c: RuleLengths
    prefix_c: RuleLengths


RULE_NAMES = ("suffix_a", "prefix_b", "suffix_c", "prefix_c")
CHAIN_FAMILIES = ("evm", "tron")


@dataclass(frozen=True)
class EngineConfig:
    """
    Immutable parameter snapshot for one analysis call.

    Field names are the flat configuration keys. Keys are matched
    case-insensitively by from_mapping(), so "evm_L0_suffix_A" works too.
    """

    # Decision weights
    bias: float = -2.0
    w1: float = 3.0
    """Trait 1: address similarity (strong signal)."""
    w2: float = 1.5
    """Trait 2: small amount (medium signal)."""
    w3: float = 0.8
    """Trait 3: temporal proximity (weak signal)."""

    # Interaction coefficients
    b12: float = 2.0
    b13: float = 0.3
    b23: float = 0.1

    # Level thresholds (used when level_bands is None)
    t0: float = 0.25
    """PASS / WARNING cutoff."""
    t1: float = 0.65
    """WARNING / BLOCK cutoff."""

    # Trait 1 continuous strength
    s0: float = 0.65
    """Strength floor at a rule's activation length."""
    c_boost: float = 1.1
    rule_c_policy: RuleCPolicy = RuleCPolicy.BOOST_MAX

    # Trait 2
    small_amount_threshold: float = 0.001

    # EVM rule lengths
    evm_l0_suffix_a: float = 4
    evm_l1_suffix_a: float = 10
    evm_l0_prefix_b: float = 6
    evm_l1_prefix_b: float = 12
    evm_l0_suffix_c: float = 3
    evm_l1_suffix_c: float = 9
    evm_l0_prefix_c: float = 5
    evm_l1_prefix_c: float = 11

    # Tron rule lengths
    tron_l0_suffix_a: float = 4
    tron_l1_suffix_a: float = 10
    tron_l0_prefix_b: float = 4
    tron_l1_prefix_b: float = 10
    tron_l0_suffix_c: float = 3
    tron_l1_suffix_c: float = 9
    tron_l0_prefix_c: float = 3
    tron_l1_prefix_c: float = 9

    # Trait 3 temporal proximity (seconds)
    t_min: float = 120
    t_max: float = 21600
    k: float = 3

    level_bands: tuple[LevelBand, ...] | None = field(default=None)
    """Explicit ordered bands; None derives L0/L2/L3 from t0 and t1."""

    def __post_init__(self) -> None:
        self._validate()

    def _validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, float) and not math.isfinite(value):
                raise ConfigError(f"{f.name} must be a finite number", value=str(value))
        for family in CHAIN_FAMILIES:
            for rule in RULE_NAMES:
                l0 = getattr(self, f"{family}_l0_{rule}")
                l1 = getattr(self, f"{family}_l1_{rule}")
                if l0 > l1:
                    raise ConfigError(
                        f"{family}_l0_{rule} must not exceed {family}_l1_{rule}",
                        l0=l0,
                        l1=l1,
                    )
        if not self.t_min < self.t_max:
            raise ConfigError("t_min must be less than t_max", t_min=self.t_min, t_max=self.t_max)
        if not 0.0 <= self.s0 <= 1.0:
            raise ConfigError("s0 must be within [0, 1]", s0=self.s0)
        if self.c_boost < 0:
            raise ConfigError("c_boost must be non-negative", c_boost=self.c_boost)
        if self.t0 > self.t1:
            raise ConfigError("t0 must not exceed t1", t0=self.t0, t1=self.t1)
        if self.level_bands is not None:
            _validate_bands(self.level_bands)

    def bands(self) -> tuple[LevelBand, ...]:
        """Ordered decision bands in effect for this snapshot."""
        if self.level_bands is not None:
            return self.level_bands
        return (
            LevelBand(self.t0, "L0", "PASS"),
            LevelBand(self.t1, "L2", "WARNING"),
            LevelBand(None, "L3", "BLOCK"),
        )

    def rules_for(self, addr_type: str) -> ChainRuleSet:
        """Rule lengths for an address family; addr_type is "evm" or "tron"."""
        family = str(getattr(addr_type, "value", addr_type))
        if family not in CHAIN_FAMILIES:
            raise ConfigError(f"No similarity rules for address type {family!r}")
        lengths = {
            rule: RuleLengths(
                l0=getattr(self, f"{family}_l0_{rule}"),
                l1=getattr(self, f"{family}_l1_{rule}"),
            )
            for rule in RULE_NAMES
        }
        return ChainRuleSet(**lengths)

    def with_overrides(
        self,
        overrides: Mapping[str, Any] | None = None,
        /,
        **kwargs: Any,
    ) -> "EngineConfig":
        """
        Return a new snapshot with the given keys replaced (validated).

        Keys come from the overrides mapping and/or keyword arguments; any
        key, including "self", is checked against the config fields.
        """
        merged = {**(overrides or {}), **kwargs}
        if not merged:
            return self
        return replace(self, **_coerce_overrides(merged))

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, Any],
        base: "EngineConfig | None" = None,
    ) -> "EngineConfig":
        """Build a snapshot from a flat mapping layered over base (defaults when None)."""
        return (base or cls()).with_overrides(data)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable flat view; level_bands always materialized."""
        out = asdict(self)
        out["rule_c_policy"] = self.rule_c_policy.value
        out["level_bands"] = [b.to_dict() for b in self.bands()]
        return out


def config_keys() -> list[str]:
    """All flat configuration keys, in declaration order."""
    return [f.name for f in fields(EngineConfig)]


_FIELD_NAMES = frozenset(f.name for f in fields(EngineConfig))


def _validate_bands(bands: tuple[LevelBand, ...]) -> None:
    if not bands:
        raise ConfigError("level_bands must contain at least one band")
    if bands[-1].upper is not None:
        raise ConfigError("last level band must be open-ended (upper=None)")
    previous: float | None = None
    for band in bands[:-1]:
        if band.upper is None:
            raise ConfigError("only the last level band may be open-ended")
        if previous is not None and band.upper <= previous:
            raise ConfigError(
                "level band thresholds must be strictly increasing",
                previous=previous,
                upper=band.upper,
            )
        previous = band.upper


def _to_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be numeric", value=value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ConfigError(f"{key} must be numeric", value=value) from None
    else:
        raise ConfigError(f"{key} must be numeric", value=repr(value))
    if not math.isfinite(number):
        raise ConfigError(f"{key} must be a finite number", value=str(value))
    return number


def _to_band(raw: Any) -> LevelBand:
    if isinstance(raw, LevelBand):
        return raw
    if isinstance(raw, Mapping):
        upper, level, action = raw.get("upper"), raw.get("level"), raw.get("action")
    elif isinstance(raw, (list, tuple)) and len(raw) == 3:
        upper, level, action = raw
    else:
        raise ConfigError("level band must be {upper, level, action} or a 3-item list", band=repr(raw))
    if not level or not action:
        raise ConfigError("level band needs non-empty level and action", band=repr(raw))
    return LevelBand(
        upper=None if upper is None else _to_number("level_bands.upper", upper),
        level=str(level),
        action=str(action),
    )


def parse_level_bands(raw: Any) -> tuple[LevelBand, ...] | None:
    """Coerce a JSON string / list of dicts or triples into LevelBand tuples."""
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError("level_bands must be valid JSON", error=str(e)) from e
    if not isinstance(raw, Iterable) or isinstance(raw, Mapping):
        raise ConfigError("level_bands must be a list")
    return tuple(_to_band(item) for item in raw)


def _coerce_overrides(overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize keys to lower case and values to the field's type."""
    out: dict[str, Any] = {}
    for raw_key, value in overrides.items():
        key = str(raw_key).strip().lower()
        if key not in _FIELD_NAMES:
            raise ConfigError(f"Unknown config key: {raw_key}")
        if key == "rule_c_policy":
            try:
                out[key] = RuleCPolicy(getattr(value, "value", value))
            except ValueError:
                allowed = ", ".join(p.value for p in RuleCPolicy)
                raise ConfigError(f"rule_c_policy must be one of: {allowed}", value=value) from None
        elif key == "level_bands":
            out[key] = parse_level_bands(value)
        else:
            out[key] = _to_number(key, value)
    return out


DEFAULT_CONFIG = EngineConfig()


# -----------------------------------------------------------------------------
# Server settings
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    """Process-level settings for the API server and CLI."""

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"
    log_format: str = "json"
    analysis_max_workers: int = 0
    """Thread pool size for analyze_parallel; 0 runs the sequential engine."""
    analysis_timeout_sec: float | None = None


def get_settings() -> Settings:
    """
    Return the current application settings.

    Reads API_HOST, API_PORT, LOG_LEVEL, LOG_FORMAT, ANALYSIS_MAX_WORKERS and
    ANALYSIS_TIMEOUT_SEC from the environment (after loading .env).
    """
    from backend_poisonguard.config.env import load_settings_from_env

    return load_settings_from_env()
