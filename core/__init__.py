"""
Core Module Package.

This package contains the infrastructure shared by every
other package of the indexer.

Components:
- exceptions: Application exception hierarchy
- constants: Units, denominations and precision
- cancellation: Cooperative stop signal
"""

from .cancellation import StopSignal
from .exceptions import (
    ConfigurationError,
    CycleError,
    IndexerError,
    InvalidConfigError,
    Severity,
    StateTransitionError,
)


__all__ = [
    "StopSignal",
    "IndexerError",
    "ConfigurationError",
    "InvalidConfigError",
    "StateTransitionError",
    "CycleError",
    "Severity",
]
