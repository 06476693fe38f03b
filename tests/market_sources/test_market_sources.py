"""
Tests for the remote collaborators.

============================================================
PURPOSE
============================================================
- Registry payload parsing (both schemas, wrapped and bare lists)
- Lotus JSON-RPC envelope, result extraction and error mapping
- CoinMarketCap price extraction and failure-to-None behavior
- Health bookkeeping shared through BaseSource

HTTP is never touched: ``_make_request`` is replaced with an AsyncMock.

============================================================
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from market_sources import (
    BaseSource,
    CoinMarketCapClient,
    FetchError,
    LotusClient,
    MinerRegistryClient,
    NormalizationError,
    RegistryRecord,
    RpcError,
    SourceError,
    SourceStatus,
    SourceTimeoutError,
)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def registry_fg():
    return MinerRegistryClient(
        api_url="https://registry-a.test/miners",
        source_name="registry_fg",
        identifier_field="miner",
    )


@pytest.fixture
def registry_rs():
    return MinerRegistryClient(
        api_url="https://registry-b.test/miners",
        source_name="registry_rs",
        identifier_field="address",
        location_field="isoCode",
    )


@pytest.fixture
def lotus():
    return LotusClient(api_url="http://lotus.test/rpc/v0", token="secret")


@pytest.fixture
def cmc():
    return CoinMarketCapClient(api_key="cmc-key")


def rpc_result(result):
    return {"jsonrpc": "2.0", "id": 1, "result": result}


def cmc_payload(price):
    return {"data": {"FIL": {"quote": {"USD": {"price": price}}}}}


# ============================================================
# EXCEPTION TESTS
# ============================================================

class TestSourceExceptions:
    """Tests for the collaborator exception hierarchy."""

    def test_hierarchy(self):
        assert issubclass(FetchError, SourceError)
        assert issubclass(RpcError, FetchError)
        assert issubclass(SourceTimeoutError, SourceError)
        assert issubclass(NormalizationError, SourceError)

    def test_str_includes_source_and_cause(self):
        error = FetchError(
            message="HTTP 502",
            source_name="lotus",
            original_error=ConnectionResetError("reset"),
        )
        text = str(error)
        assert "FetchError: HTTP 502" in text
        assert "[source=lotus]" in text
        assert "reset" in text

    def test_to_dict(self):
        error = SourceError("bad", source_name="registry_fg", context={"k": "v"})
        data = error.to_dict()
        assert data["error_type"] == "SourceError"
        assert data["source_name"] == "registry_fg"
        assert data["context"] == {"k": "v"}


# ============================================================
# BASE SOURCE TESTS
# ============================================================

class TestBaseSource:
    """Tests for the shared source contract."""

    @pytest.mark.asyncio
    async def test_name_is_the_only_required_hook(self):
        class EchoSource(BaseSource):
            @property
            def name(self):
                return "echo"

        source = EchoSource()
        assert source.name == "echo"
        assert source.get_health().status == SourceStatus.UNKNOWN
        assert source.is_usable()
        await source.close()

    def test_concrete_sources_only_fetch(self):
        for cls in (LotusClient, MinerRegistryClient, CoinMarketCapClient):
            assert not hasattr(cls, "health_check")
            assert not hasattr(cls, "metadata")


# ============================================================
# MINER REGISTRY TESTS
# ============================================================

class TestMinerRegistryClient:
    """Tests for registry parsing."""

    def test_parse_bare_list(self, registry_fg):
        records = registry_fg.parse([{"miner": "f01234"}, {"miner": "f05678"}])
        assert records == [
            RegistryRecord(identifier="f01234"),
            RegistryRecord(identifier="f05678"),
        ]

    def test_parse_wrapped_list(self, registry_rs):
        records = registry_rs.parse({
            "miners": [
                {"address": "f01234", "isoCode": "DE"},
                {"address": "f05678", "isoCode": ""},
            ],
        })
        assert records[0] == RegistryRecord(identifier="f01234", location_code="DE")
        # Empty location is not an association
        assert records[1].location_code is None

    def test_parse_skips_entries_without_identifier(self, registry_fg):
        records = registry_fg.parse([
            {"miner": "f01234"},
            {"miner": ""},
            {"other": "x"},
            "garbage",
        ])
        assert [r.identifier for r in records] == ["f01234"]

    def test_registry_a_ignores_location_fields(self, registry_fg):
        records = registry_fg.parse([{"miner": "f01", "isoCode": "US"}])
        assert records[0].location_code is None

    def test_parse_rejects_unknown_shape(self, registry_fg):
        with pytest.raises(NormalizationError):
            registry_fg.parse({"unexpected": True})

    @pytest.mark.asyncio
    async def test_get_miners(self, registry_rs):
        registry_rs._make_request = AsyncMock(return_value=[
            {"address": "f01", "isoCode": "CN"},
        ])
        records = await registry_rs.get_miners()
        assert records == [RegistryRecord(identifier="f01", location_code="CN")]
        assert registry_rs.get_health().status == SourceStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_get_miners_propagates_failures(self, registry_fg):
        registry_fg._make_request = AsyncMock(side_effect=FetchError("HTTP 500", status_code=500))
        with pytest.raises(FetchError):
            await registry_fg.get_miners()
        assert registry_fg.get_health().error_count == 1

    @pytest.mark.asyncio
    async def test_get_miners_bad_payload_is_source_error(self, registry_fg):
        registry_fg._make_request = AsyncMock(return_value="not json list")
        with pytest.raises(SourceError):
            await registry_fg.get_miners()


# ============================================================
# LOTUS TESTS
# ============================================================

class TestLotusClient:
    """Tests for the JSON-RPC client."""

    def test_bearer_header(self, lotus):
        headers = lotus._get_default_headers()
        assert headers["Authorization"] == "Bearer secret"

    def test_no_header_without_token(self):
        client = LotusClient(api_url="http://lotus.test/rpc/v0")
        assert "Authorization" not in client._get_default_headers()

    @pytest.mark.asyncio
    async def test_call_envelope(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"ok": True}))
        result = await lotus.call("StateMinerInfo", ["f01234", None])

        assert result == {"ok": True}
        method, url = lotus._make_request.call_args.args
        payload = lotus._make_request.call_args.kwargs["json_body"]
        assert method == "POST"
        assert url == "http://lotus.test/rpc/v0"
        assert payload["jsonrpc"] == "2.0"
        assert payload["method"] == "Filecoin.StateMinerInfo"
        assert payload["params"] == ["f01234", None]

    @pytest.mark.asyncio
    async def test_call_ids_increase(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result(None))
        await lotus.call("ChainHead", [])
        await lotus.call("ChainHead", [])
        ids = [c.kwargs["json_body"]["id"] for c in lotus._make_request.call_args_list]
        assert ids[1] > ids[0]

    @pytest.mark.asyncio
    async def test_error_object_raises_rpc_error(self, lotus):
        lotus._make_request = AsyncMock(return_value={
            "jsonrpc": "2.0",
            "id": 1,
            "error": {"code": 1, "message": "actor not found"},
        })
        with pytest.raises(RpcError) as exc_info:
            await lotus.call("StateMinerPower", ["f0999", None])
        assert exc_info.value.code == 1
        assert "actor not found" in exc_info.value.message
        assert lotus.get_health().consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_state_miner_info(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"PeerId": "12D3KooW"}))
        assert await lotus.state_miner_info("f01234") == "12D3KooW"

    @pytest.mark.asyncio
    async def test_state_miner_info_without_peer(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"PeerId": None}))
        assert await lotus.state_miner_info("f01234") is None

    @pytest.mark.asyncio
    async def test_state_miner_power(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({
            "MinerPower": {"RawBytePower": "100", "QualityAdjPower": "1125899906842624"},
        }))
        assert await lotus.state_miner_power("f01234") == 1125899906842624

    @pytest.mark.asyncio
    async def test_state_miner_power_missing(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"MinerPower": None}))
        assert await lotus.state_miner_power("f01234") is None

    @pytest.mark.asyncio
    async def test_client_query_ask_flat(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"Price": "50000000"}))
        assert await lotus.client_query_ask("12D3KooW", "f01234") == 50000000
        payload = lotus._make_request.call_args.kwargs["json_body"]
        assert payload["params"] == ["12D3KooW", "f01234"]

    @pytest.mark.asyncio
    async def test_client_query_ask_wrapped(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"Response": {"Price": "0"}}))
        # Zero is returned as-is; validity is decided downstream
        assert await lotus.client_query_ask("12D3KooW", "f01234") == 0

    @pytest.mark.asyncio
    async def test_client_query_ask_missing(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({}))
        assert await lotus.client_query_ask("12D3KooW", "f01234") is None

    @pytest.mark.asyncio
    async def test_client_query_ask_non_numeric_kept(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"Price": "12abc"}))
        assert await lotus.client_query_ask("12D3KooW", "f01234") == "12abc"

    @pytest.mark.asyncio
    async def test_client_query_ask_fractional_not_truncated(self, lotus):
        lotus._make_request = AsyncMock(return_value=rpc_result({"Price": 1.5}))
        assert await lotus.client_query_ask("12D3KooW", "f01234") == "1.5"

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, lotus):
        lotus._make_request = AsyncMock(side_effect=SourceTimeoutError("Request timed out"))
        with pytest.raises(SourceTimeoutError):
            await lotus.state_miner_info("f01234")
        assert lotus.get_health().error_count == 1

    @pytest.mark.asyncio
    async def test_degrades_after_repeated_failures(self, lotus):
        lotus._make_request = AsyncMock(side_effect=FetchError("HTTP 503", status_code=503))
        for _ in range(LotusClient.DEGRADED_THRESHOLD):
            with pytest.raises(FetchError):
                await lotus.call("ChainHead", [])
        assert lotus.get_health().status == SourceStatus.DEGRADED
        assert lotus.is_usable()


# ============================================================
# COINMARKETCAP TESTS
# ============================================================

class TestCoinMarketCapClient:
    """Tests for exchange-rate extraction."""

    def test_api_key_header(self, cmc):
        assert cmc._get_default_headers()["X-CMC_PRO_API_KEY"] == "cmc-key"

    def test_extract_price(self):
        price = CoinMarketCapClient.extract_price(cmc_payload(5.123456), "FIL", "USD")
        assert price == Decimal("5.123456")

    @pytest.mark.parametrize("payload", [
        {},
        {"data": {}},
        {"data": {"FIL": {"quote": {}}}},
        cmc_payload(None),
        cmc_payload("abc"),
        cmc_payload(True),
        cmc_payload([1]),
        cmc_payload(0),
        cmc_payload(-1.5),
        cmc_payload("NaN"),
        cmc_payload("Infinity"),
        None,
        "error",
    ])
    def test_extract_price_rejects(self, payload):
        assert CoinMarketCapClient.extract_price(payload, "FIL", "USD") is None

    @pytest.mark.asyncio
    async def test_get_quote(self, cmc):
        cmc._make_request = AsyncMock(return_value=cmc_payload("4.87"))
        quote = await cmc.get_quote("FIL", "USD")

        assert quote is not None
        assert quote.price == Decimal("4.87")
        assert quote.symbol == "FIL"
        assert quote.convert == "USD"
        params = cmc._make_request.call_args.kwargs["params"]
        assert params == {"symbol": "FIL", "convert": "USD"}

    @pytest.mark.asyncio
    async def test_get_quote_transport_failure_is_none(self, cmc):
        cmc._make_request = AsyncMock(side_effect=FetchError("HTTP 401", status_code=401))
        assert await cmc.get_quote() is None

    @pytest.mark.asyncio
    async def test_get_quote_bad_payload_is_none(self, cmc):
        cmc._make_request = AsyncMock(return_value={"status": {"error_code": 1002}})
        assert await cmc.get_quote() is None
