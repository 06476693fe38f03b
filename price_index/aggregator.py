"""
Regional aggregator - Per-region running sums and averages.

Every accepted quote lands in exactly one region bucket and in the global
bucket. A quote carrying a region label the index does not know is logged
and counted nowhere.
"""

import logging
from decimal import Decimal, localcontext

from core.constants import DECIMAL_CONTEXT_PRECISION
from price_index.formatting import (
    format_native_price,
    format_reference_price,
    format_size,
)
from price_index.models import (
    BUCKET_ORDER,
    GLOBAL_BUCKET,
    AggregateBucket,
    BucketAverage,
    NormalizedQuote,
    ProviderRecord,
    Region,
)


logger = logging.getLogger(__name__)


class RegionalAggregator:
    """
    Accumulates normalized quotes for one cycle.

    Not safe to share between cycles; create one per cycle or call reset().
    """

    def __init__(self) -> None:
        self._buckets: dict[str, AggregateBucket] = {}
        self._records: list[ProviderRecord] = []
        self._rejected = 0
        self.reset()

    def reset(self) -> None:
        self._buckets = {name: AggregateBucket(name=name) for name in BUCKET_ORDER}
        self._records = []
        self._rejected = 0

    @property
    def records(self) -> list[ProviderRecord]:
        return list(self._records)

    @property
    def rejected_count(self) -> int:
        """Quotes dropped because of an unknown region label."""
        return self._rejected

    def bucket(self, name: str) -> AggregateBucket:
        return self._buckets[name]

    def add(self, normalized: NormalizedQuote) -> bool:
        """
        Route one quote into its buckets.

        Returns:
            True if the quote was counted
        """
        quote = normalized.quote
        self._records.append(ProviderRecord(
            identifier=quote.identifier,
            capacity=format_size(quote.raw_capacity),
            native_price=format_native_price(normalized.native_price),
            reference_price=format_reference_price(normalized.reference_price),
            raw_price=str(quote.raw_price),
            region=quote.region,
        ))

        if quote.region not in Region.labels():
            logger.error(f"[{quote.identifier}] Invalid region {quote.region!r}")
            self._rejected += 1
            return False

        with localcontext() as ctx:
            ctx.prec = DECIMAL_CONTEXT_PRECISION
            self._buckets[quote.region].add(normalized.reference_price)
            self._buckets[GLOBAL_BUCKET].add(normalized.reference_price)
        return True

    def finalize(self) -> dict[str, BucketAverage]:
        """Average of every bucket; empty buckets average to NaN."""
        averages = {}
        with localcontext() as ctx:
            ctx.prec = DECIMAL_CONTEXT_PRECISION
            for name in BUCKET_ORDER:
                bucket = self._buckets[name]
                averages[name] = BucketAverage(
                    name=name,
                    price=bucket.average,
                    count=bucket.count,
                )
        return averages

    def summary(self) -> dict[str, tuple[Decimal, int]]:
        return {name: (b.total, b.count) for name, b in self._buckets.items()}
