"""JSON-RPC 2.0 over stdio (NDJSON) for the clawmarks MCP server.

One request per line on stdin, one response per line on stdout. Requests are
handled strictly one at a time. Logging must stay on stderr.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any, Callable

from clawmarks.server.handlers import Handler, call_tool
from clawmarks.server.schemas import tool_definitions

logger = logging.getLogger(__name__)

SERVER_NAME = "clawmarks"
SERVER_VERSION = "0.3.0"
PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id: Any, result: dict) -> dict:
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


# ── Request handler ──────────────────────────────────────────


async def handle_request(req: dict, handlers: dict[str, Handler]) -> dict | None:
    req_id = req.get("id")
    method = req.get("method", "")

    # Notifications (no id) — no response
    if req_id is None:
        if method == "notifications/initialized":
            logger.info("Client initialized")
        return None

    if method == "initialize":
        return jsonrpc_result(req_id, {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
        })

    if method == "ping":
        return jsonrpc_result(req_id, {})

    if method == "tools/list":
        return jsonrpc_result(req_id, {"tools": tool_definitions()})

    if method == "tools/call":
        params = req.get("params") or {}
        if not isinstance(params, dict):
            return jsonrpc_error(req_id, INVALID_PARAMS, "Params must be an object")
        tool_name = params.get("name")
        if not isinstance(tool_name, str):
            return jsonrpc_error(req_id, INVALID_PARAMS, "Missing tool name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            return jsonrpc_error(req_id, INVALID_PARAMS, "Tool arguments must be an object")
        result = call_tool(handlers, tool_name, arguments)
        return jsonrpc_result(req_id, result.to_content())

    return jsonrpc_error(req_id, METHOD_NOT_FOUND, f"Method not found: {method}")


# ── Stdio transport (NDJSON) ─────────────────────────────────


def _write_stdout(response: dict) -> None:
    sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
    sys.stdout.flush()


async def handle_line(line: bytes, handlers: dict[str, Handler]) -> dict | None:
    """Decode one NDJSON line and answer it. Blank, unparsable or non-object lines get no reply."""
    try:
        text = line.decode("utf-8").strip()
    except UnicodeDecodeError as e:
        logger.warning("Parse error: %s", e)
        return None
    if not text:
        return None

    try:
        req = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Parse error: %s", e)
        return None
    if not isinstance(req, dict):
        logger.warning("Ignoring non-object message: %r", req)
        return None

    logger.debug("<- %s", req.get("method", "?"))
    try:
        return await handle_request(req, handlers)
    except Exception as e:
        logger.exception("Handler error")
        if req.get("id") is None:
            return None
        return jsonrpc_error(req.get("id"), INTERNAL_ERROR, str(e))


async def _stdin_reader() -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_running_loop().connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


async def serve(
    handlers: dict[str, Handler],
    reader: asyncio.StreamReader | None = None,
    write: Callable[[dict], None] = _write_stdout,
) -> None:
    """Read requests until EOF, answering each in order (stdin/stdout by default)."""
    if reader is None:
        reader = await _stdin_reader()

    while True:
        line = await reader.readline()
        if not line:
            break
        response = await handle_line(line, handlers)
        if response:
            write(response)

    logger.info("stdin closed, shutting down")
