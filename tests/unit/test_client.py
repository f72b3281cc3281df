"""
Unit tests for the HTTP layer of the price sources.

Requests go over a real socket to an in-process aiohttp server, so
status handling, JSON decoding and transport errors are all exercised.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiohttp
import orjson
import pytest
from aiohttp import test_utils, web

from dexarb.config.constants import SUBGRAPH_TOKENS_QUERY
from dexarb.core.errors import SourceUnavailable
from dexarb.market.sources import RestPriceSource, SubgraphPriceSource


async def prices(request: web.Request) -> web.Response:
    return web.json_response({"WETH": {"symbol": "WETH", "price": 3500.0}})


async def broken(request: web.Request) -> web.Response:
    return web.Response(status=500, text="Internal Server Error")


async def garbage(request: web.Request) -> web.Response:
    return web.Response(text="<html>maintenance</html>", content_type="text/html")


async def slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1)
    return web.json_response({})


async def graphql(request: web.Request) -> web.Response:
    body = orjson.loads(await request.read())
    if body.get("query") != SUBGRAPH_TOKENS_QUERY:
        return web.json_response({"errors": [{"message": "unexpected query"}]})
    return web.json_response(
        {
            "data": {
                "tokens": [
                    {
                        "id": "0xabc",
                        "symbol": "UNI",
                        "derivedETH": "0.004",
                        "totalLiquidity": str(body["variables"]["first"]),
                    }
                ],
                "bundle": {"ethPrice": "2500"},
            }
        }
    )


def venue_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/prices", prices)
    app.router.add_get("/broken", broken)
    app.router.add_get("/garbage", garbage)
    app.router.add_get("/slow", slow)
    app.router.add_post("/graphql", graphql)
    return app


@asynccontextmanager
async def running_venue() -> AsyncIterator[test_utils.TestServer]:
    server = test_utils.TestServer(venue_app())
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


class TestHttpPriceSources:
    """Tests for RestPriceSource and SubgraphPriceSource over HTTP."""

    @pytest.mark.asyncio
    async def test_rest_fetch(self) -> None:
        """Test a 200 JSON body becomes a snapshot."""
        async with running_venue() as server:
            source = RestPriceSource("uniswap", str(server.make_url("/prices")))
            try:
                snapshot = await source.fetch()
            finally:
                await source.close()

        assert snapshot.venue == "uniswap"
        assert snapshot.price("WETH") == 3500.0

    @pytest.mark.asyncio
    async def test_subgraph_fetch(self) -> None:
        """Test the tokens query is posted and the answer priced in USD."""
        async with running_venue() as server:
            url = str(server.make_url("/graphql"))
            source = SubgraphPriceSource("uniswap-subgraph", url, first=7)
            try:
                snapshot = await source.fetch()
            finally:
                await source.close()

        assert snapshot.price("UNI") == pytest.approx(10.0)

    @pytest.mark.asyncio
    async def test_http_500_is_source_unavailable(self) -> None:
        """Test a non-2xx status fails the source and keeps the status code."""
        async with running_venue() as server:
            source = RestPriceSource("uniswap", str(server.make_url("/broken")))
            try:
                with pytest.raises(SourceUnavailable, match="HTTP 500") as exc_info:
                    await source.fetch()
            finally:
                await source.close()

        assert exc_info.value.venue == "uniswap"
        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_invalid_json_is_source_unavailable(self) -> None:
        """Test a body that is not JSON fails the source."""
        async with running_venue() as server:
            source = RestPriceSource("uniswap", str(server.make_url("/garbage")))
            try:
                with pytest.raises(SourceUnavailable, match="invalid JSON"):
                    await source.fetch()
            finally:
                await source.close()

    @pytest.mark.asyncio
    async def test_connection_refused_is_source_unavailable(self) -> None:
        """Test a venue that is not listening fails the source."""
        async with running_venue() as server:
            url = str(server.make_url("/prices"))

        source = RestPriceSource("uniswap", url)
        try:
            with pytest.raises(SourceUnavailable, match="network error"):
                await source.fetch()
        finally:
            await source.close()

    @pytest.mark.asyncio
    async def test_timeout_is_source_unavailable(self) -> None:
        """Test a venue slower than the timeout fails the source."""
        async with running_venue() as server:
            source = RestPriceSource("uniswap", str(server.make_url("/slow")), timeout_s=0.1)
            try:
                with pytest.raises(SourceUnavailable) as exc_info:
                    await source.fetch()
            finally:
                await source.close()

        assert exc_info.value.venue == "uniswap"

    @pytest.mark.asyncio
    async def test_shared_session_not_closed(self) -> None:
        """Test a caller-supplied session outlives the source."""
        async with running_venue() as server, aiohttp.ClientSession() as session:
            source = RestPriceSource("uniswap", str(server.make_url("/prices")), session=session)
            snapshot = await source.fetch()
            await source.close()

            assert not session.closed

        assert snapshot.price("WETH") == 3500.0
