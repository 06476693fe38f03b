"""
Market Source Models - Normalized payloads returned by the remote collaborators.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class SourceStatus(Enum):
    """Health status of a market source."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RegistryRecord:
    """
    One provider entry reported by a miner registry.

    ``location_code`` is an ISO 3166 alpha-2 country code when the
    registry knows where the provider operates.
    """
    identifier: str
    location_code: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "location_code": self.location_code,
        }


@dataclass(frozen=True)
class ExchangeQuote:
    """Spot price of one currency expressed in another."""
    symbol: str
    convert: str
    price: Decimal
    fetched_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "convert": self.convert,
            "price": str(self.price),
            "fetched_at": self.fetched_at.isoformat(),
        }


@dataclass
class SourceHealth:
    """Health status of a market source."""
    status: SourceStatus
    last_check: datetime
    latency_ms: Optional[float] = None
    request_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

