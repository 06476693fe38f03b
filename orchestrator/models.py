"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the cycle scheduler.

- Cycle repetition policy
- Scheduler states and their valid transitions
- Configuration dataclass loaded from the environment

============================================================
"""

from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
import os

from core.exceptions import InvalidConfigError


# ============================================================
# CYCLE POLICY
# ============================================================

class CyclePolicy(Enum):
    """Whether the scheduler repeats cycles."""

    SINGLE = "single"
    """Stop after the first completed cycle."""

    CONTINUOUS = "continuous"
    """Repeat cycles until a stop is requested."""


# ============================================================
# CYCLE STATES
# ============================================================

class CycleState(Enum):
    """Scheduler state enumeration."""

    IDLE = "idle"
    REFRESHING_REGISTRIES = "refreshing_registries"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    REPORTING = "reporting"
    COOLING_DOWN = "cooling_down"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self == CycleState.STOPPED

    @property
    def is_active(self) -> bool:
        """Inside a cycle."""
        return self in (
            CycleState.REFRESHING_REGISTRIES,
            CycleState.FETCHING,
            CycleState.AGGREGATING,
            CycleState.REPORTING,
        )


# Valid state transitions mapping
VALID_TRANSITIONS: Dict[CycleState, Set[CycleState]] = {
    CycleState.IDLE: {
        CycleState.REFRESHING_REGISTRIES,
        CycleState.STOPPED,
    },
    CycleState.REFRESHING_REGISTRIES: {
        CycleState.FETCHING,
        CycleState.REPORTING,  # no exchange rate
        CycleState.STOPPED,  # fatal
    },
    CycleState.FETCHING: {
        CycleState.AGGREGATING,
        CycleState.STOPPED,
    },
    CycleState.AGGREGATING: {
        CycleState.REPORTING,
        CycleState.STOPPED,
    },
    CycleState.REPORTING: {
        CycleState.COOLING_DOWN,
        CycleState.STOPPED,
    },
    CycleState.COOLING_DOWN: {
        CycleState.IDLE,
        CycleState.STOPPED,
    },
    CycleState.STOPPED: set(),  # Terminal - no transitions
}


def is_valid_transition(from_state: CycleState, to_state: CycleState) -> bool:
    return to_state in VALID_TRANSITIONS.get(from_state, set())


@dataclass
class StateChange:
    """Record of a state transition."""

    from_state: CycleState
    to_state: CycleState
    cycle_number: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "cycle_number": self.cycle_number,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def now(cls, from_state: CycleState, to_state: CycleState, cycle_number: int) -> "StateChange":
        return cls(
            from_state=from_state,
            to_state=to_state,
            cycle_number=cycle_number,
            timestamp=datetime.now(timezone.utc),
        )


# ============================================================
# CONFIGURATION
# ============================================================

def _env_number(key: str, default: str, cast=int):
    raw = os.getenv(key, default)
    try:
        return cast(raw)
    except (TypeError, ValueError):
        raise InvalidConfigError(key, raw, f"expected {cast.__name__}")


@dataclass
class IndexerConfig:
    """Configuration for the price indexer."""

    # Lotus node
    lotus_api_url: str = "http://127.0.0.1:1234/rpc/v0"
    """Lotus JSON-RPC endpoint."""

    lotus_api_token: Optional[str] = None
    """Optional bearer token for the Lotus node."""

    max_concurrent_requests: int = 10
    """Per-wave request budget against the Lotus node."""

    wave_interval_seconds: float = 0.0
    """Minimum duration of a wave; 0 disables pacing."""

    # Registries
    registry_fg_url: str = ""
    """Registry A, records shaped ``{"miner": ...}``."""

    registry_rs_url: str = "https://api.filrep.io/api/v1/miners"
    """Registry B, records shaped ``{"address": ..., "isoCode": ...}``."""

    # Exchange rate
    coinmarketcap_api_key: Optional[str] = None
    """CoinMarketCap Pro API key."""

    # Scheduling
    cooldown_seconds: float = 60.0
    """Pause between cycles."""

    cycle_policy: CyclePolicy = CyclePolicy.SINGLE
    """Run once or repeat."""

    request_timeout_seconds: float = 30.0
    """Total timeout of each upstream HTTP request."""

    shutdown_grace_seconds: float = 3.0
    """How long a stop may wait for the current wave before forcing exit."""

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls) -> "IndexerConfig":
        """Load configuration from environment variables."""
        policy = os.getenv("CYCLE_POLICY", "single").lower()
        try:
            cycle_policy = CyclePolicy(policy)
        except ValueError:
            raise InvalidConfigError("CYCLE_POLICY", policy, "expected 'single' or 'continuous'")

        return cls(
            lotus_api_url=os.getenv("LOTUS_API", "http://127.0.0.1:1234/rpc/v0"),
            lotus_api_token=os.getenv("LOTUS_API_TOKEN") or None,
            max_concurrent_requests=_env_number("LOTUS_API_RPS", "10"),
            wave_interval_seconds=_env_number("WAVE_INTERVAL_SECONDS", "0", float),
            registry_fg_url=os.getenv("MINERS_API_FG", ""),
            registry_rs_url=os.getenv("MINERS_API_RS", "https://api.filrep.io/api/v1/miners"),
            coinmarketcap_api_key=os.getenv("COINMARKETCAP_API_KEY") or None,
            cooldown_seconds=_env_number("COOLDOWN_SECONDS", "60", float),
            cycle_policy=cycle_policy,
            request_timeout_seconds=_env_number("REQUEST_TIMEOUT_SECONDS", "30", float),
            shutdown_grace_seconds=_env_number("SHUTDOWN_GRACE_SECONDS", "3", float),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if not self.lotus_api_url:
            errors.append("lotus_api_url is required")

        if not self.registry_fg_url:
            errors.append("registry_fg_url is required (MINERS_API_FG)")

        if not self.registry_rs_url:
            errors.append("registry_rs_url is required (MINERS_API_RS)")

        if self.max_concurrent_requests < 1:
            errors.append("max_concurrent_requests must be at least 1")

        if self.wave_interval_seconds < 0:
            errors.append("wave_interval_seconds must not be negative")

        if self.cooldown_seconds < 0:
            errors.append("cooldown_seconds must not be negative")

        if self.request_timeout_seconds <= 0:
            errors.append("request_timeout_seconds must be positive")

        if self.shutdown_grace_seconds < 0:
            errors.append("shutdown_grace_seconds must not be negative")

        if self.log_format not in ("json", "text"):
            errors.append("log_format must be 'json' or 'text'")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        """Loggable view; credentials are masked."""
        return {
            "lotus_api_url": self.lotus_api_url,
            "lotus_api_token": "***" if self.lotus_api_token else None,
            "max_concurrent_requests": self.max_concurrent_requests,
            "wave_interval_seconds": self.wave_interval_seconds,
            "registry_fg_url": self.registry_fg_url,
            "registry_rs_url": self.registry_rs_url,
            "coinmarketcap_api_key": "***" if self.coinmarketcap_api_key else None,
            "cooldown_seconds": self.cooldown_seconds,
            "cycle_policy": self.cycle_policy.value,
            "request_timeout_seconds": self.request_timeout_seconds,
            "shutdown_grace_seconds": self.shutdown_grace_seconds,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }
