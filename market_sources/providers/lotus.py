"""
Lotus JSON-RPC Source - Filecoin node API.

Three lookups feed the ask index:
- Filecoin.StateMinerInfo   -> PeerId of the miner
- Filecoin.StateMinerPower  -> MinerPower.QualityAdjPower (bytes)
- Filecoin.ClientQueryAsk   -> Price (attoFIL per GiB per epoch)

Missing fields come back as None. Transport failures, HTTP errors and
JSON-RPC error objects are raised as SourceError subclasses.
"""

import itertools
import logging
from typing import Any, Optional, Union

import aiohttp

from market_sources.base import BaseSource
from market_sources.exceptions import RpcError, SourceError


logger = logging.getLogger(__name__)


class LotusClient(BaseSource):
    """
    Minimal Lotus JSON-RPC 2.0 client.

    A bearer token is only needed for nodes that restrict read access.
    """

    DEFAULT_URL = "http://127.0.0.1:1234/rpc/v0"
    METHOD_PREFIX = "Filecoin."

    def __init__(
        self,
        api_url: str = DEFAULT_URL,
        token: Optional[str] = None,
        timeout: float = BaseSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout, session)
        self._api_url = api_url
        self._token = token
        self._ids = itertools.count(1)

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "lotus"

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    async def call(self, method: str, params: list[Any]) -> Any:
        """
        Invoke a JSON-RPC method and return its ``result`` member.

        Args:
            method: Method name without the ``Filecoin.`` prefix
            params: Positional parameters

        Raises:
            RpcError: The node answered with an error object
            SourceError: Any transport failure
        """
        full_method = f"{self.METHOD_PREFIX}{method}"
        payload = {
            "jsonrpc": "2.0",
            "method": full_method,
            "params": params,
            "id": next(self._ids),
        }

        try:
            response = await self._make_request("POST", self._api_url, json_body=payload)
        except SourceError as e:
            self._on_error(e)
            raise

        if isinstance(response, dict) and response.get("error"):
            error = response["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            code = error.get("code") if isinstance(error, dict) else None
            rpc_error = RpcError(
                message=f"{full_method} failed: {message}",
                source_name=self.name,
                method=full_method,
                code=code,
            )
            self._on_error(rpc_error)
            raise rpc_error

        self._on_success()
        return response.get("result") if isinstance(response, dict) else None

    async def state_miner_info(self, miner: str) -> Optional[str]:
        """Return the libp2p peer ID the miner advertises, if any."""
        result = await self.call("StateMinerInfo", [miner, None])
        if not isinstance(result, dict):
            return None
        return result.get("PeerId") or None

    async def state_miner_power(self, miner: str) -> Optional[int]:
        """Return the miner's quality-adjusted power in bytes, if any."""
        result = await self.call("StateMinerPower", [miner, None])
        if not isinstance(result, dict):
            return None
        power = (result.get("MinerPower") or {}).get("QualityAdjPower")
        return _to_int(power)

    async def client_query_ask(self, peer_id: str, miner: str) -> Optional[Union[int, str]]:
        """
        Query the miner's storage ask.

        Older nodes return ``{"Price": ...}``; newer ones wrap the ask in
        ``{"Response": {"Price": ...}}``. A price that is present but not an
        integer is returned as-is and left to price validation.
        """
        result = await self.call("ClientQueryAsk", [peer_id, miner])
        if not isinstance(result, dict):
            return None
        price = result.get("Price")
        if price is None and isinstance(result.get("Response"), dict):
            price = result["Response"].get("Price")
        if price is None or price == "":
            return None
        if isinstance(price, int) and not isinstance(price, bool):
            return price
        try:
            return int(str(price))
        except ValueError:
            return str(price)


def _to_int(value: Any) -> Optional[int]:
    """Lotus encodes big integers as decimal strings."""
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"[lotus] Unparseable integer value: {value!r}")
        return None
