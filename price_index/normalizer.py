"""
Price normalizer - attoFIL/GiB/epoch asks to FIL and USD per TiB per month.

All arithmetic runs in Decimal under a wide local context; float is never
involved. The normalizer holds no mutable state, so normalizing the same
quote with the same rate always yields the same result.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any, Optional

from core.constants import (
    ATTO_PER_NATIVE,
    CAPACITY_MULTIPLIER,
    DECIMAL_CONTEXT_PRECISION,
    MAX_PRICE_NATIVE_PER_GIB_EPOCH,
    MIN_RAW_PRICE,
)
from price_index.models import NormalizedQuote, ProviderQuote


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceBounds:
    """Sane range for a raw ask."""
    min_raw_price: int = MIN_RAW_PRICE
    max_native_per_gib_epoch: Decimal = MAX_PRICE_NATIVE_PER_GIB_EPOCH


class PriceNormalizer:
    """Converts raw asks to capacity-normalized prices."""

    def __init__(self, bounds: Optional[PriceBounds] = None) -> None:
        self._bounds = bounds or PriceBounds()

    @property
    def bounds(self) -> PriceBounds:
        return self._bounds

    # ─────────────────────────────────────────────────────────────
    # Unit conversions
    # ─────────────────────────────────────────────────────────────

    @staticmethod
    def to_native(raw_price: Any) -> Decimal:
        """attoFIL -> FIL."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_CONTEXT_PRECISION
            return Decimal(raw_price) / ATTO_PER_NATIVE

    @staticmethod
    def to_reference(native_amount: Decimal, exchange_rate: Decimal) -> Decimal:
        """FIL -> USD."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_CONTEXT_PRECISION
            return native_amount * exchange_rate

    @staticmethod
    def per_capacity(amount: Decimal) -> Decimal:
        """Per GiB per epoch -> per TiB per month."""
        with localcontext() as ctx:
            ctx.prec = DECIMAL_CONTEXT_PRECISION
            return amount * CAPACITY_MULTIPLIER

    # ─────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────

    def is_valid_raw_price(self, raw_price: Any) -> bool:
        """Positive integer ask inside the configured bounds."""
        if raw_price is None or isinstance(raw_price, bool):
            return False
        try:
            value = Decimal(str(raw_price).strip())
        except (InvalidOperation, ValueError):
            return False

        if not value.is_finite() or value != value.to_integral_value():
            return False
        if value < self._bounds.min_raw_price:
            return False
        return self.to_native(value) <= self._bounds.max_native_per_gib_epoch

    # ─────────────────────────────────────────────────────────────
    # Normalization
    # ─────────────────────────────────────────────────────────────

    def normalize(
        self,
        quote: ProviderQuote,
        exchange_rate: Decimal,
    ) -> Optional[NormalizedQuote]:
        """
        Normalize one quote.

        Returns:
            NormalizedQuote, or None when the ask is invalid or the
            converted price is not finite
        """
        if not self.is_valid_raw_price(quote.raw_price):
            logger.error(f"[{quote.identifier}] Invalid ask price {quote.raw_price}")
            return None

        try:
            native = self.to_native(quote.raw_price)
            native_per_capacity = self.per_capacity(native)
            reference_per_capacity = self.per_capacity(self.to_reference(native, exchange_rate))
        except (InvalidOperation, ValueError, TypeError) as e:
            logger.error(f"[{quote.identifier}] Price conversion failed: {e}")
            return None

        if not reference_per_capacity.is_finite():
            logger.error(
                f"[{quote.identifier}] Non-finite reference price "
                f"{reference_per_capacity} (rate={exchange_rate})"
            )
            return None

        return NormalizedQuote(
            quote=quote,
            native_price=native_per_capacity,
            reference_price=reference_per_capacity,
        )
