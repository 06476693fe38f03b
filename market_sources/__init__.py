"""
Market Sources Package - Remote collaborators of the ask index.

Provides the three upstream services the index depends on:
- Miner registries (provider discovery, location codes)
- Lotus JSON-RPC node (miner info, power, storage ask)
- CoinMarketCap (FIL/USD exchange rate)

Quick Start:
    from market_sources import LotusClient, CoinMarketCapClient

    async def ask_of(miner):
        async with LotusClient("http://127.0.0.1:1234/rpc/v0") as lotus:
            peer_id = await lotus.state_miner_info(miner)
            if peer_id:
                return await lotus.client_query_ask(peer_id, miner)

Failures surface as SourceError subclasses; missing fields come back
as None.
"""

from market_sources.base import BaseSource
from market_sources.exceptions import (
    FetchError,
    NormalizationError,
    RpcError,
    SourceError,
    SourceTimeoutError,
)
from market_sources.models import (
    ExchangeQuote,
    RegistryRecord,
    SourceHealth,
    SourceStatus,
)
from market_sources.providers import (
    CoinMarketCapClient,
    LotusClient,
    MinerRegistryClient,
)


__version__ = "1.0.0"

__all__ = [
    # Base
    "BaseSource",

    # Models
    "ExchangeQuote",
    "RegistryRecord",
    "SourceHealth",
    "SourceStatus",

    # Exceptions
    "SourceError",
    "FetchError",
    "RpcError",
    "SourceTimeoutError",
    "NormalizationError",

    # Providers
    "CoinMarketCapClient",
    "LotusClient",
    "MinerRegistryClient",
]
