"""
Price Index Package - Fetch, normalize and aggregate storage asks.

Pipeline of one cycle:

    RegistryMerger -> BatchFetcher -> PriceNormalizer -> RegionalAggregator

Quick Start:
    from price_index import BatchFetcher, PriceNormalizer, RegionalAggregator

    result = await BatchFetcher(lotus).fetch_all(snapshot)
    normalizer = PriceNormalizer()
    aggregator = RegionalAggregator()
    for quote in result.quotes:
        normalized = normalizer.normalize(quote, exchange_rate)
        if normalized is not None:
            aggregator.add(normalized)
    averages = aggregator.finalize()
"""

from price_index.aggregator import RegionalAggregator
from price_index.fetcher import BatchFetcher
from price_index.formatting import (
    format_decimal,
    format_exchange_rate,
    format_fixed,
    format_native_price,
    format_reference_price,
    format_size,
)
from price_index.models import (
    BUCKET_ORDER,
    GLOBAL_BUCKET,
    AggregateBucket,
    BatchResult,
    BucketAverage,
    CycleReport,
    FetchOutcome,
    FetchStatus,
    NormalizedQuote,
    ProviderQuote,
    ProviderRecord,
    Region,
    RegistrySnapshot,
)
from price_index.normalizer import PriceBounds, PriceNormalizer
from price_index.regions import iso_code_to_region, region_label
from price_index.registry import RegistryMerger


__version__ = "1.0.0"

__all__ = [
    # Models
    "Region",
    "GLOBAL_BUCKET",
    "BUCKET_ORDER",
    "RegistrySnapshot",
    "ProviderQuote",
    "FetchStatus",
    "FetchOutcome",
    "BatchResult",
    "NormalizedQuote",
    "AggregateBucket",
    "BucketAverage",
    "ProviderRecord",
    "CycleReport",

    # Pipeline
    "RegistryMerger",
    "BatchFetcher",
    "PriceBounds",
    "PriceNormalizer",
    "RegionalAggregator",

    # Regions
    "iso_code_to_region",
    "region_label",

    # Formatting
    "format_decimal",
    "format_exchange_rate",
    "format_fixed",
    "format_native_price",
    "format_reference_price",
    "format_size",
]
