"""MCP adapter — exposes ClawmarksTools as tools over stdio JSON-RPC.

Layout:
    schemas.py    # pydantic argument models + tools/list definitions
    handlers.py   # tool name -> handler, result rendering
    jsonrpc.py    # NDJSON JSON-RPC 2.0 loop on stdin/stdout
"""
