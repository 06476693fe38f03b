"""
Batch fetcher - Bounded-concurrency ask collection.

For every provider of a RegistrySnapshot the fetcher runs three dependent
Lotus calls (miner info -> power -> storage ask) and records an explicit
FetchOutcome. Providers are processed in waves of at most
``max_concurrent_requests``; a wave is an explicit barrier, the next one
is only dispatched once every provider of the current wave has settled.

No per-provider failure ever escapes ``fetch_all``.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from core.cancellation import StopSignal
from market_sources import LotusClient, SourceError, SourceTimeoutError
from price_index.models import (
    BatchResult,
    FetchOutcome,
    FetchStatus,
    ProviderQuote,
    RegistrySnapshot,
)
from price_index.regions import region_label


logger = logging.getLogger(__name__)


class BatchFetcher:
    """
    Collects storage asks for a provider snapshot.

    Usage:
        fetcher = BatchFetcher(lotus, max_concurrent_requests=10)
        result = await fetcher.fetch_all(snapshot, stop_signal)
        for quote in result.quotes:
            ...
    """

    def __init__(
        self,
        lotus: LotusClient,
        max_concurrent_requests: int = 10,
        wave_interval_seconds: float = 0.0,
        region_lookup: Callable[[Optional[str]], str] = region_label,
    ) -> None:
        if max_concurrent_requests < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        self._lotus = lotus
        self._budget = max_concurrent_requests
        self._wave_interval = max(0.0, wave_interval_seconds)
        self._region_lookup = region_lookup
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def budget(self) -> int:
        return self._budget

    async def fetch_all(
        self,
        snapshot: RegistrySnapshot,
        stop_signal: Optional[StopSignal] = None,
    ) -> BatchResult:
        """
        Fetch every provider of the snapshot, wave by wave.

        The stop signal is checked before each wave; providers that were
        not dispatched are recorded as CANCELLED.
        """
        identifiers = sorted(snapshot.identifiers)
        result = BatchResult()
        semaphore = asyncio.Semaphore(self._budget)
        self._in_flight = 0
        self._peak_in_flight = 0

        logger.info(
            f"[fetcher] Fetching asks for {len(identifiers)} miners "
            f"in waves of {self._budget}"
        )

        for start in range(0, len(identifiers), self._budget):
            if stop_signal is not None and stop_signal.is_set:
                remaining = identifiers[start:]
                logger.info(f"[fetcher] Stop requested, abandoning {len(remaining)} miners")
                result.outcomes.extend(
                    FetchOutcome.skipped(identifier, FetchStatus.CANCELLED)
                    for identifier in remaining
                )
                result.cancelled = True
                break

            wave = identifiers[start:start + self._budget]
            wave_started = time.monotonic()

            outcomes = await asyncio.gather(*(
                self._fetch_gated(identifier, snapshot, semaphore)
                for identifier in wave
            ))

            result.outcomes.extend(outcomes)
            result.waves_dispatched += 1

            is_last_wave = start + self._budget >= len(identifiers)
            if not is_last_wave:
                await self._pace(wave_started, stop_signal)

        result.peak_in_flight = self._peak_in_flight
        counts = result.count_by_status()
        logger.info(
            f"[fetcher] Done: {len(result.quotes)} quotes, "
            f"{result.waves_dispatched} waves, outcomes={counts}"
        )
        return result

    async def _pace(self, wave_started: float, stop_signal: Optional[StopSignal]) -> None:
        """Stretch a wave to the configured interval."""
        if self._wave_interval <= 0:
            return
        remaining = self._wave_interval - (time.monotonic() - wave_started)
        if remaining <= 0:
            return
        if stop_signal is not None:
            await stop_signal.wait(timeout=remaining)
        else:
            await asyncio.sleep(remaining)

    async def _fetch_gated(
        self,
        identifier: str,
        snapshot: RegistrySnapshot,
        semaphore: asyncio.Semaphore,
    ) -> FetchOutcome:
        async with semaphore:
            self._in_flight += 1
            self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
            try:
                return await self.fetch_one(identifier, snapshot)
            finally:
                self._in_flight -= 1

    async def fetch_one(self, identifier: str, snapshot: RegistrySnapshot) -> FetchOutcome:
        """
        Run the three dependent lookups for one provider.

        Never raises; every failure becomes an outcome.
        """
        try:
            peer_id = await self._lotus.state_miner_info(identifier)
            power = await self._lotus.state_miner_power(identifier)

            if not peer_id:
                logger.info(f"[{identifier}] power: {power}, peer_id: {peer_id} skip, no peer id")
                return FetchOutcome.skipped(identifier, FetchStatus.NO_ROUTING_TOKEN)
            if not power:
                logger.info(f"[{identifier}] power: {power}, peer_id: {peer_id} skip, no power")
                return FetchOutcome.skipped(identifier, FetchStatus.NO_CAPACITY)

            price = await self._lotus.client_query_ask(peer_id, identifier)
            if price is None:
                logger.info(f"[{identifier}] power: {power}, peer_id: {peer_id} skip, no price info")
                return FetchOutcome.skipped(identifier, FetchStatus.NO_PRICE)

            quote = ProviderQuote(
                identifier=identifier,
                raw_capacity=power,
                raw_price=price,
                region=self._region_lookup(snapshot.location_of(identifier)),
            )
            logger.info(f"[{identifier}] power: {power}, peer_id: {peer_id}, price: {price}")
            return FetchOutcome.quoted(quote)

        except SourceTimeoutError as e:
            logger.info(f"[{identifier}] skip, request timed out")
            return FetchOutcome.skipped(identifier, FetchStatus.TIMEOUT, detail=str(e))
        except SourceError as e:
            logger.info(f"[{identifier}] skip -> {e}")
            return FetchOutcome.skipped(identifier, FetchStatus.TRANSPORT_ERROR, detail=str(e))
        except Exception as e:
            logger.error(f"[{identifier}] Unexpected fetch error: {e}", exc_info=True)
            return FetchOutcome.skipped(identifier, FetchStatus.TRANSPORT_ERROR, detail=repr(e))

    async def close(self) -> None:
        await self._lotus.close()
