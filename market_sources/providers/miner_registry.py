"""
Miner Registry Source - HTTP listing of storage providers.

Two registries are consumed, with different schemas:
- registry A: ``[{"miner": "f01234"}, ...]``
- registry B: ``[{"address": "f01234", "isoCode": "DE"}, ...]``

Both may also wrap the list as ``{"miners": [...]}``. The field names are
configurable so one client class serves both.
"""

import logging
from typing import Any, Optional

import aiohttp

from market_sources.base import BaseSource
from market_sources.exceptions import NormalizationError, SourceError
from market_sources.models import RegistryRecord


logger = logging.getLogger(__name__)


class MinerRegistryClient(BaseSource):
    """Fetches the provider list of one registry."""

    LIST_KEYS = ("miners", "data", "results")

    def __init__(
        self,
        api_url: str,
        source_name: str,
        identifier_field: str = "miner",
        location_field: Optional[str] = None,
        timeout: float = BaseSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout, session)
        self._api_url = api_url
        self._source_name = source_name
        self._identifier_field = identifier_field
        self._location_field = location_field

    @property
    def name(self) -> str:
        """Unique identifier."""
        return self._source_name

    async def get_miners(self) -> list[RegistryRecord]:
        """
        Fetch and parse the registry listing.

        Entries without an identifier are dropped. Raises SourceError when
        the registry cannot be reached or answers with an unknown shape.
        """
        try:
            raw = await self._make_request("GET", self._api_url)
            records = self.parse(raw)
        except SourceError as e:
            self._on_error(e)
            raise

        self._on_success()
        logger.info(f"[{self.name}] Fetched {len(records)} miners")
        return records

    def parse(self, raw: Any) -> list[RegistryRecord]:
        """Convert a registry payload to RegistryRecords."""
        entries = raw
        if isinstance(raw, dict):
            entries = next(
                (raw[key] for key in self.LIST_KEYS if isinstance(raw.get(key), list)),
                None,
            )

        if not isinstance(entries, list):
            raise NormalizationError(
                message="Registry payload is not a list of miners",
                source_name=self.name,
                raw_data=raw,
            )

        records = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue

            identifier = entry.get(self._identifier_field)
            if not identifier:
                logger.debug(f"[{self.name}] Skipping entry without '{self._identifier_field}'")
                continue

            location = None
            if self._location_field:
                location = entry.get(self._location_field) or None

            records.append(RegistryRecord(identifier=str(identifier), location_code=location))

        return records
