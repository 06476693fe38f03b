"""
Providers package - Remote collaborator implementations.
"""

from market_sources.providers.coinmarketcap import CoinMarketCapClient
from market_sources.providers.lotus import LotusClient
from market_sources.providers.miner_registry import MinerRegistryClient


__all__ = [
    "CoinMarketCapClient",
    "LotusClient",
    "MinerRegistryClient",
]
