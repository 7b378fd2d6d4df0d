"""Tests for the gateway's MCP endpoint."""

import json
from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tool_gateway.api.routes import create_router, mcp_sessions
from tool_gateway.api.server import ToolProvider, create_mcp_server, error_result
from tool_gateway.exceptions import (
    ArgumentValidationError,
    UnknownToolError,
    UpstreamError,
)
from tool_gateway.schema import translate_input_schema

NAME_AGE_TOOL = {
    "name": "name-age",
    "description": "Predict the age of a person given a name",
    "inputSchema": {
        "type": "object",
        "properties": {"name": {"type": "string"}},
        "required": ["name"],
    },
}

MCP_ACCEPT = {"accept": "application/json, text/event-stream"}


class FakeProvider:
    """Provider with one validated tool and a scripted outcome."""

    def __init__(self, outcome=None):
        self.outcome = outcome or {"content": [{"type": "text", "text": "42"}]}
        self.calls = []
        self._validator = translate_input_schema(NAME_AGE_TOOL["inputSchema"])

    def list_tools(self):
        return [NAME_AGE_TOOL]

    async def call_tool(self, name, arguments):
        self.calls.append((name, arguments))
        if name != "name-age":
            raise UnknownToolError(name)
        try:
            self._validator.validate({} if arguments is None else arguments)
        except ArgumentValidationError as e:
            raise e.for_tool(name) from e
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _make_app(provider=None, json_response=True) -> FastAPI:
    server = create_mcp_server(provider or FakeProvider(), "mcp-parent-http", "1.0.0")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with mcp_sessions(app, server, json_response=json_response):
            yield

    app = FastAPI(lifespan=lifespan)
    app.include_router(create_router("/mcp"))
    return app


@asynccontextmanager
async def _client(app: FastAPI):
    async with app.router.lifespan_context(app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://gateway.test"
        ) as client:
            yield client


async def _post(client, message):
    return await client.post("/mcp", json=message, headers=MCP_ACCEPT)


def _rpc(method, params=None, request_id=1):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return message


def _call(name, arguments=None, request_id=1):
    params = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return _rpc("tools/call", params, request_id)


def _sse_messages(text: str) -> list:
    return [
        json.loads(line[len("data: "):])
        for line in text.splitlines()
        if line.startswith("data: ")
    ]


# ---------------------------------------------------------------------------
# Lifecycle methods
# ---------------------------------------------------------------------------

class TestInitialize:
    @pytest.mark.asyncio
    async def test_identity_and_capabilities(self):
        async with _client(_make_app()) as client:
            resp = await _post(
                client,
                _rpc(
                    "initialize",
                    {
                        "protocolVersion": "2025-03-26",
                        "capabilities": {},
                        "clientInfo": {"name": "test", "version": "0"},
                    },
                ),
            )

        assert resp.status_code == 200
        result = resp.json()["result"]
        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"]["name"] == "mcp-parent-http"
        assert result["serverInfo"]["version"] == "1.0.0"
        assert "tools" in result["capabilities"]

    @pytest.mark.asyncio
    async def test_notification_is_accepted(self):
        async with _client(_make_app()) as client:
            resp = await _post(
                client, {"jsonrpc": "2.0", "method": "notifications/initialized"}
            )

        assert resp.status_code == 202

    @pytest.mark.asyncio
    async def test_ping(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _rpc("ping", request_id="p-1"))

        assert resp.json() == {"jsonrpc": "2.0", "id": "p-1", "result": {}}


# ---------------------------------------------------------------------------
# Tool methods
# ---------------------------------------------------------------------------

class TestTools:
    @pytest.mark.asyncio
    async def test_list(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _rpc("tools/list"))

        (tool,) = resp.json()["result"]["tools"]
        assert {key: tool[key] for key in NAME_AGE_TOOL} == NAME_AGE_TOOL

    @pytest.mark.asyncio
    async def test_call(self):
        provider = FakeProvider()
        async with _client(_make_app(provider)) as client:
            resp = await _post(client, _call("name-age", {"name": "sam"}, request_id=7))

        body = resp.json()
        assert body["id"] == 7
        assert body["result"]["content"] == [{"type": "text", "text": "42"}]
        assert body["result"]["isError"] is False
        assert provider.calls == [("name-age", {"name": "sam"})]

    @pytest.mark.asyncio
    async def test_structured_result_passes_through(self):
        outcome = {
            "content": [{"type": "text", "text": "42"}],
            "structuredContent": {"age": 42},
        }
        async with _client(_make_app(FakeProvider(outcome))) as client:
            resp = await _post(client, _call("name-age", {"name": "sam"}))

        assert resp.json()["result"]["structuredContent"] == {"age": 42}

    @pytest.mark.asyncio
    async def test_missing_arguments_reach_provider_as_none(self):
        provider = FakeProvider()
        async with _client(_make_app(provider)) as client:
            await _post(client, _call("name-age"))

        assert provider.calls == [("name-age", None)]

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _call("weather", {}))

        error = resp.json()["error"]
        assert resp.status_code == 200
        assert error["code"] == -32602
        assert error["message"] == "Tool weather not found"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _call("name-age", {"name": 5}))

        error = resp.json()["error"]
        assert error["code"] == -32602
        assert "name-age" in error["message"]
        (violation,) = error["data"]["violations"]
        assert violation["path"] == ["name"]
        assert violation["expected"] == "string"
        assert violation["actual"] == 5

    @pytest.mark.asyncio
    async def test_missing_tool_name(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _rpc("tools/call", {"arguments": {}}))

        assert resp.json()["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_upstream_failure_is_tool_error(self):
        provider = FakeProvider(UpstreamError("name-age", "child-b", "connection reset"))
        async with _client(_make_app(provider)) as client:
            resp = await _post(client, _call("name-age", {"name": "sam"}))

        result = resp.json()["result"]
        assert result["isError"] is True
        assert "connection reset" in result["content"][0]["text"]

    @pytest.mark.asyncio
    async def test_internal_fault(self):
        provider = FakeProvider(RuntimeError("bug"))
        async with _client(_make_app(provider)) as client:
            resp = await _post(client, _call("name-age", {"name": "sam"}))

        body = resp.json()
        assert body["id"] == 1
        assert body["error"]["code"] == -32603
        assert "bug" not in body["error"]["message"]

    def test_fake_provider_satisfies_protocol(self):
        assert isinstance(FakeProvider(), ToolProvider)

    def test_error_result(self):
        result = error_result("boom")

        assert result.isError is True
        assert result.content[0].text == "boom"


# ---------------------------------------------------------------------------
# Framing
# ---------------------------------------------------------------------------

class TestFraming:
    @pytest.mark.asyncio
    async def test_parse_error(self):
        async with _client(_make_app()) as client:
            resp = await client.post(
                "/mcp",
                content=b"{not json",
                headers={**MCP_ACCEPT, "content-type": "application/json"},
            )

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_not_a_jsonrpc_message(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, {"id": 3, "method": "ping"})

        assert resp.status_code == 400
        assert "error" in resp.json()

    @pytest.mark.asyncio
    async def test_unknown_method(self):
        async with _client(_make_app()) as client:
            resp = await _post(client, _rpc("resources/list"))

        assert resp.json()["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_event_stream_reply(self):
        async with _client(_make_app(json_response=False)) as client:
            resp = await _post(client, _rpc("tools/list"))

        assert resp.headers["content-type"].startswith("text/event-stream")
        (message,) = _sse_messages(resp.text)
        assert message["result"]["tools"][0]["name"] == "name-age"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["GET", "DELETE"])
    async def test_only_post(self, method):
        async with _client(_make_app()) as client:
            resp = await client.request(method, "/mcp", headers=MCP_ACCEPT)

        assert resp.status_code == 405
        assert resp.headers["allow"] == "POST"
