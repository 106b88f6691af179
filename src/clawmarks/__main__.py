"""Entry point: python -m clawmarks

Runs the clawmarks MCP server on stdio against
``$CLAWMARKS_PROJECT_ROOT/.clawmarks.json`` (default: current directory).
"""

from __future__ import annotations

import asyncio
import logging
import sys

from clawmarks.config import load_config

logger = logging.getLogger("clawmarks")


def _setup_logging(level: str) -> None:
    # stdout carries JSON-RPC, so logs go to stderr
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def main() -> None:
    config = load_config()
    _setup_logging(config.log_level)

    from clawmarks.server.handlers import get_tool_handlers
    from clawmarks.server.jsonrpc import serve
    from clawmarks.storage import ClawmarksStorage
    from clawmarks.tools import ClawmarksTools

    storage = ClawmarksStorage(config.project_root)
    handlers = get_tool_handlers(ClawmarksTools(storage))
    logger.info("Clawmarks MCP server running on stdio (file=%s)", storage.file_path)

    try:
        asyncio.run(serve(handlers))
    except KeyboardInterrupt:
        pass
    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
