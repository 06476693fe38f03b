"""
Registry merger - Builds the per-cycle provider snapshot.

Sources are merged in the order given: identifiers are unioned and, for
location codes, the later source wins on conflict.
"""

import logging
from typing import Iterable, Optional, Sequence

from market_sources import MinerRegistryClient, RegistryRecord
from price_index.models import RegistrySnapshot


logger = logging.getLogger(__name__)


class RegistryMerger:
    """
    Combines the provider listings of several registries.

    Usage:
        merger = RegistryMerger([registry_a, registry_b])
        snapshot = await merger.refresh()
    """

    def __init__(self, sources: Optional[Sequence[MinerRegistryClient]] = None) -> None:
        self._sources = list(sources or [])

    @property
    def sources(self) -> list[MinerRegistryClient]:
        return list(self._sources)

    @staticmethod
    def merge(*listings: Iterable[RegistryRecord]) -> RegistrySnapshot:
        """Deduplicate identifiers and collect location codes."""
        identifiers: set[str] = set()
        locations: dict[str, str] = {}

        for listing in listings:
            for record in listing:
                if not record.identifier:
                    logger.debug("[registry] Ignoring record without identifier")
                    continue
                identifiers.add(record.identifier)
                if record.location_code:
                    locations[record.identifier] = record.location_code

        return RegistrySnapshot(identifiers=frozenset(identifiers), locations=locations)

    async def refresh(self) -> RegistrySnapshot:
        """
        Fetch every source in order and merge the listings.

        Registry failures propagate; a cycle cannot run without a
        provider list.
        """
        listings = []
        for source in self._sources:
            listings.append(await source.get_miners())

        snapshot = self.merge(*listings)
        logger.info(
            f"[registry] {len(snapshot)} unique miners from "
            f"{sum(len(listing) for listing in listings)} records, "
            f"{len(snapshot.locations)} with location"
        )
        return snapshot

    async def close(self) -> None:
        for source in self._sources:
            await source.close()
