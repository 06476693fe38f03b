"""
Price Index Models - Values flowing through one indexing cycle.

All per-cycle values are immutable once produced, except the running
AggregateBucket accumulators which are owned by a single aggregator.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from core.constants import AVERAGE_PRICE_PLACES
from price_index.formatting import format_decimal


# ============================================================
# REGIONS
# ============================================================

class Region(Enum):
    """Regions a provider can be bucketed into."""
    ASIA = "Asia"
    EUROPE = "Europe"
    NORTH_AMERICA = "North America"
    OTHER = "Other"

    @classmethod
    def labels(cls) -> list[str]:
        return [r.value for r in cls]


GLOBAL_BUCKET = "Global"

# Report order
BUCKET_ORDER = (
    GLOBAL_BUCKET,
    Region.ASIA.value,
    Region.NORTH_AMERICA.value,
    Region.OTHER.value,
    Region.EUROPE.value,
)


# ============================================================
# REGISTRY
# ============================================================

@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Providers known at the start of a cycle.

    Built fresh each cycle and never mutated afterwards.
    """
    identifiers: frozenset = frozenset()
    locations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "identifiers", frozenset(self.identifiers))
        object.__setattr__(self, "locations", MappingProxyType(dict(self.locations)))

    def location_of(self, identifier: str) -> Optional[str]:
        return self.locations.get(identifier)

    def __len__(self) -> int:
        return len(self.identifiers)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.identifiers


# ============================================================
# FETCH
# ============================================================

@dataclass(frozen=True)
class ProviderQuote:
    """A provider's current storage ask."""
    identifier: str
    raw_capacity: int  # quality-adjusted power, bytes
    raw_price: Union[int, str]  # attoFIL per GiB per epoch; unparseable values kept verbatim
    region: str


class FetchStatus(Enum):
    """Outcome of fetching one provider."""
    QUOTED = "quoted"
    NO_ROUTING_TOKEN = "no_routing_token"
    NO_CAPACITY = "no_capacity"
    NO_PRICE = "no_price"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"
    CANCELLED = "cancelled"

    @property
    def is_failure(self) -> bool:
        return self in (FetchStatus.TIMEOUT, FetchStatus.TRANSPORT_ERROR)


@dataclass(frozen=True)
class FetchOutcome:
    """Explicit result of one provider fetch."""
    identifier: str
    status: FetchStatus
    quote: Optional[ProviderQuote] = None
    detail: Optional[str] = None

    @classmethod
    def quoted(cls, quote: ProviderQuote) -> "FetchOutcome":
        return cls(identifier=quote.identifier, status=FetchStatus.QUOTED, quote=quote)

    @classmethod
    def skipped(
        cls,
        identifier: str,
        status: FetchStatus,
        detail: Optional[str] = None,
    ) -> "FetchOutcome":
        return cls(identifier=identifier, status=status, detail=detail)


@dataclass
class BatchResult:
    """All outcomes of one batch fetch."""
    outcomes: list[FetchOutcome] = field(default_factory=list)
    waves_dispatched: int = 0
    peak_in_flight: int = 0
    cancelled: bool = False

    @property
    def quotes(self) -> list[ProviderQuote]:
        return [o.quote for o in self.outcomes if o.quote is not None]

    def count_by_status(self) -> dict[str, int]:
        counts = {status.value: 0 for status in FetchStatus}
        for outcome in self.outcomes:
            counts[outcome.status.value] += 1
        return counts


# ============================================================
# NORMALIZATION
# ============================================================

@dataclass(frozen=True)
class NormalizedQuote:
    """A quote with its prices expressed per TiB per month."""
    quote: ProviderQuote
    native_price: Decimal  # FIL / TiB / month
    reference_price: Decimal  # USD / TiB / month


# ============================================================
# AGGREGATION
# ============================================================

@dataclass
class AggregateBucket:
    """Running sum and count of reference prices."""
    name: str
    total: Decimal = Decimal(0)
    count: int = 0

    def add(self, price: Decimal) -> None:
        self.total += price
        self.count += 1

    @property
    def average(self) -> Decimal:
        """total / count, or NaN for an empty bucket."""
        if self.count == 0:
            return Decimal("NaN")
        return self.total / self.count


@dataclass(frozen=True)
class BucketAverage:
    """Finalized average of one bucket."""
    name: str
    price: Decimal
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "price": format_decimal(self.price, AVERAGE_PRICE_PLACES),
            "count": self.count,
        }


@dataclass(frozen=True)
class ProviderRecord:
    """Display row of the per-provider price list."""
    identifier: str
    capacity: str
    native_price: str
    reference_price: str
    raw_price: str
    region: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "capacity": self.capacity,
            "native_price": self.native_price,
            "reference_price": self.reference_price,
            "raw_price": self.raw_price,
            "region": self.region,
        }


# ============================================================
# REPORT
# ============================================================

@dataclass(frozen=True)
class CycleReport:
    """
    Output of one cycle.

    An aborted report (no usable exchange rate) carries no buckets and
    no providers.
    A cancelled report covers only the providers fetched before a stop
    request arrived.
    """
    cycle_number: int
    started_at: datetime
    completed_at: datetime
    reference_currency_price: Optional[str] = None
    buckets: Mapping[str, BucketAverage] = field(default_factory=dict)
    providers: tuple = ()
    aborted: bool = False
    abort_reason: Optional[str] = None
    cancelled: bool = False
    outcome_counts: Mapping[str, int] = field(default_factory=dict)

    @classmethod
    def aborted_report(
        cls,
        cycle_number: int,
        started_at: datetime,
        reason: str,
    ) -> "CycleReport":
        return cls(
            cycle_number=cycle_number,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            aborted=True,
            abort_reason=reason,
        )

    @property
    def provider_count(self) -> int:
        return len(self.providers)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_number": self.cycle_number,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "aborted": self.aborted,
            "abort_reason": self.abort_reason,
            "cancelled": self.cancelled,
            "outcome_counts": dict(self.outcome_counts),
            "reference_currency_price": self.reference_currency_price,
            "buckets": {name: bucket.to_dict() for name, bucket in self.buckets.items()},
            "providers": [p.to_dict() for p in self.providers],
        }
