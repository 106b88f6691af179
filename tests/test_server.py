"""Tests for the MCP JSON-RPC adapter and tool handlers."""

from __future__ import annotations

import asyncio
import json

import pytest
from pathlib import Path

from clawmarks.server.handlers import Handler, ToolResult, call_tool, get_tool_handlers
from clawmarks.server.jsonrpc import (
    PROTOCOL_VERSION,
    SERVER_NAME,
    handle_line,
    handle_request,
    serve,
)
from clawmarks.server.schemas import TOOL_SPECS, tool_definitions
from clawmarks.storage import ClawmarksStorage
from clawmarks.tools import ClawmarksTools


@pytest.fixture
def tools(tmp_path: Path) -> ClawmarksTools:
    return ClawmarksTools(ClawmarksStorage(tmp_path))


@pytest.fixture
def handlers(tools: ClawmarksTools) -> dict[str, Handler]:
    return get_tool_handlers(tools)


def _call(handlers: dict[str, Handler], tool: str, /, **arguments) -> ToolResult:
    return call_tool(handlers, tool, arguments)


class TestToolDefinitions:
    def test_every_tool_has_a_handler(self, handlers: dict[str, Handler]):
        assert set(handlers) == set(TOOL_SPECS)

    def test_schemas_are_objects(self):
        for tool in tool_definitions():
            assert tool["inputSchema"]["type"] == "object"
            assert tool["description"]

    def test_required_fields(self):
        schemas = {t["name"]: t["inputSchema"] for t in tool_definitions()}
        assert set(schemas["add_clawmark"]["required"]) == {"trail_id", "file", "line", "annotation"}
        assert schemas["update_clawmark"]["required"] == ["clawmark_id"]
        assert "required" not in schemas["list_tags"]


class TestCallTool:
    def test_create_and_get_trail(self, handlers: dict[str, Handler]):
        created = _call(handlers, "create_trail", name="Auth", description="Explore auth")
        assert not created.is_error
        trail = json.loads(created.text)
        assert trail["name"] == "Auth"

        fetched = json.loads(_call(handlers, "get_trail", trail_id=trail["id"]).text)
        assert fetched == {"trail": trail, "clawmarks": []}

    def test_trail_not_found(self, handlers: dict[str, Handler]):
        result = _call(handlers, "get_trail", trail_id="t_missing")
        assert result.is_error
        assert result.text == "Trail not found"

    def test_add_clawmark_unknown_trail(self, handlers: dict[str, Handler]):
        result = _call(
            handlers, "add_clawmark", trail_id="t_missing", file="a.ts", line=1, annotation="x"
        )
        assert result.is_error
        assert result.text == "Trail t_missing not found"

    def test_clawmark_lifecycle(self, handlers: dict[str, Handler]):
        trail = json.loads(_call(handlers, "create_trail", name="T").text)
        mark = json.loads(
            _call(
                handlers, "add_clawmark",
                trail_id=trail["id"], file="a.ts", line=3, annotation="x", tags=["perf"],
            ).text
        )
        assert mark["tags"] == ["#perf"]
        assert mark["type"] == "reference"

        updated = json.loads(_call(handlers, "update_clawmark", clawmark_id=mark["id"], line=9).text)
        assert updated["line"] == 9

        assert _call(handlers, "add_tag", clawmark_id=mark["id"], tag="hot").text == "Tag added"
        assert json.loads(_call(handlers, "list_tags").text) == ["#hot", "#perf"]

        listed = json.loads(_call(handlers, "list_clawmarks", tag="hot").text)
        assert [m["id"] for m in listed] == [mark["id"]]

        deleted = _call(handlers, "delete_clawmark", clawmark_id=mark["id"])
        assert deleted.text == "Clawmark deleted"
        missing = _call(handlers, "get_clawmark", clawmark_id=mark["id"])
        assert missing.is_error

    def test_link_outcomes(self, handlers: dict[str, Handler]):
        trail = json.loads(_call(handlers, "create_trail", name="T").text)
        ids = [
            json.loads(
                _call(
                    handlers, "add_clawmark",
                    trail_id=trail["id"], file="a.ts", line=n, annotation="x",
                ).text
            )["id"]
            for n in (1, 2)
        ]
        assert _call(handlers, "link_clawmarks", source_id=ids[0], target_id=ids[1]).text == (
            "Clawmarks linked"
        )
        again = _call(handlers, "link_clawmarks", source_id=ids[0], target_id=ids[1])
        assert again.is_error
        assert again.text == "Failed to link clawmarks"

        refs = json.loads(_call(handlers, "get_references", clawmark_id=ids[1]).text)
        assert [m["id"] for m in refs["incoming"]] == [ids[0]]
        assert refs["outgoing"] == []

    def test_unknown_tool(self, handlers: dict[str, Handler]):
        result = _call(handlers, "nope")
        assert result.is_error
        assert result.text == "Unknown tool: nope"

    def test_invalid_arguments(self, handlers: dict[str, Handler]):
        result = _call(handlers, "create_trail")
        assert result.is_error
        assert result.text.startswith("Invalid arguments for create_trail")

    def test_rejects_unknown_enum_and_extra_keys(self, handlers: dict[str, Handler]):
        assert _call(handlers, "list_trails", status="deleted").is_error
        assert _call(handlers, "list_tags", verbose=True).is_error

    @pytest.mark.parametrize("bad_line", ["42", True, 4.5, None])
    def test_rejects_non_integer_line(self, handlers: dict[str, Handler], bad_line):
        trail = json.loads(_call(handlers, "create_trail", name="T").text)
        result = _call(
            handlers, "add_clawmark",
            trail_id=trail["id"], file="a.ts", line=bad_line, annotation="x",
        )
        assert result.is_error
        assert result.text.startswith("Invalid arguments for add_clawmark")
        assert json.loads(_call(handlers, "list_clawmarks").text) == []

    def test_rejects_coerced_update_values(self, handlers: dict[str, Handler]):
        assert _call(handlers, "update_clawmark", clawmark_id="c_x", column="3").is_error
        assert _call(handlers, "update_clawmark", clawmark_id="c_x", tags="#a").is_error
        assert _call(handlers, "get_trail", trail_id=123).is_error

    def test_operation_exception_becomes_error(self, tools: ClawmarksTools):
        def boom(prefix: str) -> str:
            raise RuntimeError("id generator down")

        broken = get_tool_handlers(ClawmarksTools(tools.storage, id_factory=boom))
        result = _call(broken, "create_trail", name="T")
        assert result.is_error
        assert result.text == "Error: id generator down"

    def test_reload(self, handlers: dict[str, Handler], tools: ClawmarksTools):
        _call(handlers, "create_trail", name="T")
        tools.storage.file_path.write_text('{"version": 1, "trails": [], "marks": []}')
        counts = json.loads(_call(handlers, "reload_clawmarks").text)
        assert counts == {"trails": 0, "clawmarks": 0}


class TestToolResult:
    def test_success_has_no_error_flag(self):
        assert ToolResult("ok").to_content() == {"content": [{"type": "text", "text": "ok"}]}

    def test_error_flag(self):
        assert ToolResult("bad", is_error=True).to_content()["isError"] is True


class TestHandleRequest:
    @pytest.mark.asyncio
    async def test_initialize(self, handlers: dict[str, Handler]):
        resp = await handle_request({"jsonrpc": "2.0", "id": 1, "method": "initialize"}, handlers)
        assert resp["id"] == 1
        assert resp["result"]["protocolVersion"] == PROTOCOL_VERSION
        assert resp["result"]["serverInfo"]["name"] == SERVER_NAME

    @pytest.mark.asyncio
    async def test_notification_gets_no_response(self, handlers: dict[str, Handler]):
        req = {"jsonrpc": "2.0", "method": "notifications/initialized"}
        assert await handle_request(req, handlers) is None

    @pytest.mark.asyncio
    async def test_tools_list(self, handlers: dict[str, Handler]):
        resp = await handle_request({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, handlers)
        names = [t["name"] for t in resp["result"]["tools"]]
        assert "create_trail" in names
        assert len(names) == len(TOOL_SPECS)

    @pytest.mark.asyncio
    async def test_tools_call(self, handlers: dict[str, Handler]):
        req = {
            "jsonrpc": "2.0",
            "id": 3,
            "method": "tools/call",
            "params": {"name": "list_trails", "arguments": {}},
        }
        resp = await handle_request(req, handlers)
        assert resp["result"] == {"content": [{"type": "text", "text": "[]"}]}

    @pytest.mark.asyncio
    async def test_tools_call_error_result(self, handlers: dict[str, Handler]):
        req = {
            "jsonrpc": "2.0",
            "id": 4,
            "method": "tools/call",
            "params": {"name": "archive_trail", "arguments": {"trail_id": "t_missing"}},
        }
        resp = await handle_request(req, handlers)
        assert resp["result"]["isError"] is True

    @pytest.mark.asyncio
    async def test_tools_call_bad_arguments(self, handlers: dict[str, Handler]):
        req = {
            "jsonrpc": "2.0",
            "id": 5,
            "method": "tools/call",
            "params": {"name": "list_trails", "arguments": ["x"]},
        }
        resp = await handle_request(req, handlers)
        assert resp["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_unknown_method(self, handlers: dict[str, Handler]):
        resp = await handle_request({"jsonrpc": "2.0", "id": 6, "method": "bogus"}, handlers)
        assert resp["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_tools_call_params_not_object(self, handlers: dict[str, Handler]):
        req = {"jsonrpc": "2.0", "id": 7, "method": "tools/call", "params": ["list_trails"]}
        resp = await handle_request(req, handlers)
        assert resp["error"]["code"] == -32602
        assert resp["id"] == 7


def _reader(*lines: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    for line in lines:
        reader.feed_data(line)
    reader.feed_eof()
    return reader


class TestServe:
    @pytest.mark.asyncio
    async def test_answers_requests_in_order_until_eof(self, handlers: dict[str, Handler]):
        responses: list[dict] = []
        reader = _reader(
            b'{"jsonrpc": "2.0", "id": 1, "method": "initialize"}\n',
            b'{"jsonrpc": "2.0", "id": 2, "method": "tools/call",'
            b' "params": {"name": "create_trail", "arguments": {"name": "T"}}}\n',
            b'{"jsonrpc": "2.0", "id": 3, "method": "tools/call",'
            b' "params": {"name": "list_trails"}}\n',
        )

        await serve(handlers, reader=reader, write=responses.append)

        assert [r["id"] for r in responses] == [1, 2, 3]
        trails = json.loads(responses[2]["result"]["content"][0]["text"])
        assert [t["name"] for t in trails] == ["T"]

    @pytest.mark.asyncio
    async def test_skips_bad_lines_and_notifications(self, handlers: dict[str, Handler]):
        responses: list[dict] = []
        reader = _reader(
            b"\n",
            b"{not json\n",
            b"[1, 2, 3]\n",
            b"\xff\xfe\n",
            b'{"jsonrpc": "2.0", "method": "notifications/initialized"}\n',
            b'{"jsonrpc": "2.0", "id": 9, "method": "ping"}\n',
        )

        await serve(handlers, reader=reader, write=responses.append)

        assert responses == [{"jsonrpc": "2.0", "id": 9, "result": {}}]

    @pytest.mark.asyncio
    async def test_empty_input_writes_nothing(self, handlers: dict[str, Handler]):
        responses: list[dict] = []
        await serve(handlers, reader=_reader(), write=responses.append)
        assert responses == []

    @pytest.mark.asyncio
    async def test_handle_line_last_line_without_newline(self, handlers: dict[str, Handler]):
        resp = await handle_line(b'{"jsonrpc": "2.0", "id": 4, "method": "ping"}', handlers)
        assert resp == {"jsonrpc": "2.0", "id": 4, "result": {}}
