"""Tests for connectivity sources."""
import asyncio

import httpx
import pytest

from src.outbox.connectivity import HttpConnectivityProbe, StaticConnectivity


class TestStaticConnectivity:
    @pytest.mark.asyncio
    async def test_fetch_returns_state(self) -> None:
        assert await StaticConnectivity(True).fetch() is True
        assert await StaticConnectivity().fetch() is False

    def test_emits_every_update(self) -> None:
        source = StaticConnectivity()
        seen: list[bool] = []
        source.subscribe(seen.append)
        source.set_connected(True)
        source.set_connected(True)
        source.set_connected(False)
        assert seen == [True, True, False]
        assert source.connected is False

    def test_unsubscribe(self) -> None:
        source = StaticConnectivity()
        seen: list[bool] = []
        unsubscribe = source.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        source.set_connected(True)
        assert seen == []


def _probe(handler, **kwargs) -> HttpConnectivityProbe:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpConnectivityProbe("http://api.test/health", client=client, **kwargs)


class TestHttpConnectivityProbe:
    def test_requires_url(self) -> None:
        with pytest.raises(ValueError, match="URL"):
            HttpConnectivityProbe("")

    def test_requires_positive_interval(self) -> None:
        with pytest.raises(ValueError, match="interval"):
            HttpConnectivityProbe("http://api.test", interval=0)

    @pytest.mark.parametrize("status", [200, 302, 404])
    @pytest.mark.asyncio
    async def test_non_server_error_is_online(self, status: int) -> None:
        probe = _probe(lambda request: httpx.Response(status))
        assert await probe.check() is True

    @pytest.mark.parametrize("status", [500, 503])
    @pytest.mark.asyncio
    async def test_server_error_is_offline(self, status: int) -> None:
        probe = _probe(lambda request: httpx.Response(status))
        assert await probe.check() is False

    @pytest.mark.asyncio
    async def test_timeout_is_offline(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        probe = _probe(handler)
        assert await probe.check() is False

    @pytest.mark.asyncio
    async def test_transport_error_is_offline(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        probe = _probe(handler)
        assert await probe.check() is False

    @pytest.mark.asyncio
    async def test_emits_only_on_change(self) -> None:
        state = {"up": False}

        def handler(request: httpx.Request) -> httpx.Response:
            if not state["up"]:
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200)

        probe = _probe(handler)
        seen: list[bool] = []
        probe.subscribe(seen.append)

        assert await probe.fetch() is False
        await probe.fetch()
        state["up"] = True
        await probe.fetch()
        await probe.fetch()
        state["up"] = False
        await probe.fetch()
        assert seen == [True, False]

    @pytest.mark.asyncio
    async def test_background_polling(self) -> None:
        state = {"up": False}

        def handler(request: httpx.Request) -> httpx.Response:
            if not state["up"]:
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(204)

        probe = _probe(handler, interval=0.01)
        seen: list[bool] = []
        probe.subscribe(seen.append)
        async with probe:
            assert probe.is_running
            await asyncio.sleep(0.03)
            state["up"] = True
            await asyncio.sleep(0.05)
        assert probe.is_running is False
        assert seen == [True]
