"""Tests for the aiohttp transport against a local test server."""

import asyncio
import json

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from core.errors.exceptions import ClassifiedError, ErrorKind
from music_api.transport import AiohttpTransport, TransportResponse


async def _echo(request: web.Request) -> web.Response:
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": request.path_qs,
            "authorization": request.headers.get("Authorization"),
            "user_agent": request.headers.get("User-Agent"),
            "body": body.decode() or None,
        }
    )


async def _not_found(request: web.Request) -> web.Response:
    return web.Response(status=404, body=b'{"errors": []}', content_type="application/json")


async def _slow(request: web.Request) -> web.Response:
    await asyncio.sleep(1.0)
    return web.Response(text="late")


@pytest.fixture
async def server():
    app = web.Application()
    app.router.add_route("*", "/echo", _echo)
    app.router.add_get("/missing", _not_found)
    app.router.add_get("/slow", _slow)
    async with TestServer(app) as test_server:
        yield test_server


class TestAiohttpTransportInit:

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            AiohttpTransport(timeout_seconds=0)

    def test_session_created_lazily(self):
        transport = AiohttpTransport()
        assert transport._session is None


class TestAiohttpTransportSend:
    """Tests for AiohttpTransport.send."""

    @pytest.mark.asyncio
    async def test_get(self, server):
        async with AiohttpTransport(user_agent="test-agent/1.0") as transport:
            response = await transport.send(
                "GET",
                str(server.make_url("/echo")) + "?term=a%20b",
                {"Authorization": "Bearer t"},
            )

        assert isinstance(response, TransportResponse)
        assert response.status == 200
        payload = json.loads(response.body)
        assert payload["method"] == "GET"
        assert payload["path"] == "/echo?term=a%20b"
        assert payload["authorization"] == "Bearer t"
        assert payload["user_agent"] == "test-agent/1.0"
        assert payload["body"] is None

    @pytest.mark.asyncio
    async def test_post_json_body(self, server):
        async with AiohttpTransport() as transport:
            response = await transport.send(
                "POST", str(server.make_url("/echo")), {}, {"ids": ["1"], "type": "songs"}
            )

        assert json.loads(json.loads(response.body)["body"]) == {"ids": ["1"], "type": "songs"}

    @pytest.mark.asyncio
    async def test_unserializable_body_classified(self):
        transport = AiohttpTransport()
        with pytest.raises(ClassifiedError) as exc_info:
            await transport.send("POST", "http://127.0.0.1:1/echo", {}, {"ids": {object()}})

        assert exc_info.value.kind == ErrorKind.SERIALIZATION
        assert not exc_info.value.is_retryable
        assert isinstance(exc_info.value.cause, TypeError)
        assert transport._session is None

    @pytest.mark.asyncio
    async def test_non_2xx_returned_not_raised(self, server):
        async with AiohttpTransport() as transport:
            response = await transport.send("GET", str(server.make_url("/missing")), {})

        assert response.status == 404
        assert response.body == b'{"errors": []}'

    @pytest.mark.asyncio
    async def test_timeout_classified(self, server):
        async with AiohttpTransport(timeout_seconds=0.1) as transport:
            with pytest.raises(ClassifiedError) as exc_info:
                await transport.send("GET", str(server.make_url("/slow")), {})

        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_connection_refused_classified(self, unused_tcp_port):
        async with AiohttpTransport(timeout_seconds=2) as transport:
            with pytest.raises(ClassifiedError) as exc_info:
                await transport.send("GET", f"http://127.0.0.1:{unused_tcp_port}/", {})

        error = exc_info.value
        assert error.kind == ErrorKind.TRANSPORT
        assert error.connect_failed
        assert error.is_retryable
        assert isinstance(error.cause, aiohttp.ClientConnectionError)

    @pytest.mark.asyncio
    async def test_closed_transport_rejects_send(self, server):
        transport = AiohttpTransport()
        await transport.close()
        with pytest.raises(RuntimeError):
            await transport.send("GET", str(server.make_url("/echo")), {})

    @pytest.mark.asyncio
    async def test_external_session_not_closed(self):
        session = aiohttp.ClientSession()
        try:
            transport = AiohttpTransport(session=session)
            await transport.close()
            assert not session.closed
        finally:
            await session.close()
