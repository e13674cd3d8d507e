import asyncio
import json

import httpx
import pytest

from descent.gateway import BackendGateway, GatewayTimeout, TransportError


def _gateway(handler, *, max_retries: int = 2) -> BackendGateway:
    return BackendGateway(
        "http://service.test/",
        max_retries=max_retries,
        retry_delay=0,
        transport=httpx.MockTransport(handler),
    )


def test_server_errors_are_retried_until_success() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503, json={"error": "busy"})
        return httpx.Response(200, json={"data": {"floor": 2}})

    async def runner() -> None:
        gateway = _gateway(handler)
        try:
            assert await gateway.post("/dungeon/generate", {"user_id": "1"}) == {"floor": 2}
        finally:
            await gateway.aclose()

    asyncio.run(runner())
    assert len(calls) == 3
    assert calls[-1].url.path == "/dungeon/generate"
    assert json.loads(calls[-1].content) == {"user_id": "1"}


def test_client_errors_are_not_retried() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404, json={"error": "no such player"})

    async def runner() -> None:
        gateway = _gateway(handler)
        try:
            with pytest.raises(TransportError) as excinfo:
                await gateway.get("/player/stats", {"user_id": "1"})
        finally:
            await gateway.aclose()
        assert excinfo.value.status == 404
        assert excinfo.value.data == {"error": "no such player"}
        assert not isinstance(excinfo.value, GatewayTimeout)

    asyncio.run(runner())
    assert len(calls) == 1
    assert calls[0].url.params["user_id"] == "1"


def test_exhausted_server_errors_raise_transport_error() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500)

    async def runner() -> None:
        gateway = _gateway(handler, max_retries=1)
        try:
            with pytest.raises(TransportError) as excinfo:
                await gateway.get("/economy/balance")
        finally:
            await gateway.aclose()
        assert excinfo.value.status == 500

    asyncio.run(runner())
    assert len(calls) == 2


def test_timeouts_surface_as_gateway_timeout() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("slow service", request=request)

    async def runner() -> None:
        gateway = _gateway(handler)
        try:
            with pytest.raises(GatewayTimeout):
                await gateway.post("/combat/resolve", {"user_id": "1"})
        finally:
            await gateway.aclose()

    asyncio.run(runner())
    assert len(calls) == 3


def test_connection_errors_surface_as_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    async def runner() -> None:
        gateway = _gateway(handler, max_retries=0)
        try:
            with pytest.raises(TransportError) as excinfo:
                await gateway.get("/barterer/encounter")
        finally:
            await gateway.aclose()
        assert not isinstance(excinfo.value, GatewayTimeout)
        assert excinfo.value.status is None

    asyncio.run(runner())


def test_only_a_bare_data_envelope_is_unwrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/wrapped":
            return httpx.Response(200, json={"data": [1, 2]})
        return httpx.Response(200, json={"data": [1, 2], "success": True})

    async def runner() -> None:
        gateway = _gateway(handler)
        try:
            assert await gateway.get("/wrapped") == [1, 2]
            assert await gateway.get("/plain") == {"data": [1, 2], "success": True}
        finally:
            await gateway.aclose()

    asyncio.run(runner())
