"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the application-level exceptions of the price indexer.

- Provides clear exception hierarchy
- Separates fatal failures from per-provider soft skips
- Includes context for debugging

Per-provider and upstream failures live in
``market_sources.exceptions`` and never reach this hierarchy.

============================================================
EXCEPTION HIERARCHY
============================================================
IndexerError (base)
├── ConfigurationError
│   └── InvalidConfigError
├── StateTransitionError
└── CycleError

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# BASE EXCEPTION
# ============================================================

class IndexerError(Exception):
    """
    Base exception for all price indexer errors.

    All exceptions carry:
    - severity: for log level selection
    - context: for debugging
    - cause: the underlying exception, if any
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for single-line logging."""
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        base = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        return f"{base} | {ctx_str}" if ctx_str else base


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(IndexerError):
    """Error in configuration."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        actual_value: Optional[Any] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key
        if actual_value is not None:
            context["actual_value"] = str(actual_value)[:100]

        super().__init__(message, context=context, **kwargs)


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid configuration for {key}: {reason}",
            config_key=key,
            actual_value=value,
            context={"reason": reason},
        )


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class StateTransitionError(IndexerError):
    """Invalid scheduler state transition."""

    default_severity = Severity.CRITICAL

    def __init__(self, from_state: str, to_state: str):
        super().__init__(
            message=f"Invalid state transition: {from_state} -> {to_state}",
            context={"from_state": from_state, "to_state": to_state},
        )
        self.from_state = from_state
        self.to_state = to_state


class CycleError(IndexerError):
    """Unexpected failure inside a cycle. Always fatal."""

    default_severity = Severity.CRITICAL

    def __init__(
        self,
        message: str,
        cycle_number: Optional[int] = None,
        phase: Optional[str] = None,
        cause: Optional[Exception] = None,
    ):
        context: Dict[str, Any] = {}
        if cycle_number is not None:
            context["cycle_number"] = cycle_number
        if phase:
            context["phase"] = phase
        super().__init__(message, context=context, cause=cause)
        self.cycle_number = cycle_number
        self.phase = phase
