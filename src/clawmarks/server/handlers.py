"""MCP tool handlers for clawmarks.

Each handler takes already-decoded arguments, calls one ClawmarksTools
operation and renders the outcome as text. ``None`` / ``False`` /
``OperationError`` outcomes become error results.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError

from clawmarks.models import OperationError
from clawmarks.server import schemas
from clawmarks.tools import ClawmarksTools

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    text: str
    is_error: bool = False

    def to_content(self) -> dict[str, Any]:
        """MCP ``tools/call`` result payload."""
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


Handler = Callable[[Any], ToolResult]


def _json(value: Any) -> ToolResult:
    if isinstance(value, list):
        value = [item.to_dict() if hasattr(item, "to_dict") else item for item in value]
    elif hasattr(value, "to_dict"):
        value = value.to_dict()
    return ToolResult(json.dumps(value, indent=2, ensure_ascii=False))


def _found(value: Any, missing: str) -> ToolResult:
    return _json(value) if value is not None else ToolResult(missing, is_error=True)


def _outcome(ok: bool, success: str, failure: str) -> ToolResult:
    return ToolResult(success) if ok else ToolResult(failure, is_error=True)


def get_tool_handlers(tools: ClawmarksTools) -> dict[str, Handler]:
    """Return a dict of tool_name -> handler(decoded_args) -> ToolResult."""

    def create_trail(args: schemas.CreateTrailArgs) -> ToolResult:
        return _json(tools.create_trail(args.name, args.description))

    def list_trails(args: schemas.ListTrailsArgs) -> ToolResult:
        return _json(tools.list_trails(args.status))

    def get_trail(args: schemas.TrailIdArgs) -> ToolResult:
        return _found(tools.get_trail(args.trail_id), "Trail not found")

    def archive_trail(args: schemas.TrailIdArgs) -> ToolResult:
        return _found(tools.archive_trail(args.trail_id), "Trail not found")

    def delete_trail(args: schemas.TrailIdArgs) -> ToolResult:
        return _outcome(tools.delete_trail(args.trail_id), "Trail deleted", "Trail not found")

    def add_clawmark(args: schemas.AddClawmarkArgs) -> ToolResult:
        result = tools.add_clawmark(
            trail_id=args.trail_id,
            file=args.file,
            line=args.line,
            column=args.column,
            annotation=args.annotation,
            type=args.type,
            tags=args.tags,
        )
        if isinstance(result, OperationError):
            return ToolResult(result.error, is_error=True)
        return _json(result)

    def update_clawmark(args: schemas.UpdateClawmarkArgs) -> ToolResult:
        result = tools.update_clawmark(
            args.clawmark_id,
            annotation=args.annotation,
            type=args.type,
            tags=args.tags,
            line=args.line,
            column=args.column,
        )
        return _found(result, "Clawmark not found")

    def delete_clawmark(args: schemas.ClawmarkIdArgs) -> ToolResult:
        return _outcome(
            tools.delete_clawmark(args.clawmark_id), "Clawmark deleted", "Clawmark not found"
        )

    def get_clawmark(args: schemas.ClawmarkIdArgs) -> ToolResult:
        return _found(tools.get_clawmark(args.clawmark_id), "Clawmark not found")

    def list_clawmarks(args: schemas.ListClawmarksArgs) -> ToolResult:
        return _json(
            tools.list_clawmarks(
                trail_id=args.trail_id, file=args.file, type=args.type, tag=args.tag
            )
        )

    def link_clawmarks(args: schemas.LinkArgs) -> ToolResult:
        return _outcome(
            tools.link_clawmarks(args.source_id, args.target_id),
            "Clawmarks linked",
            "Failed to link clawmarks",
        )

    def unlink_clawmarks(args: schemas.LinkArgs) -> ToolResult:
        return _outcome(
            tools.unlink_clawmarks(args.source_id, args.target_id),
            "Clawmarks unlinked",
            "Failed to unlink clawmarks",
        )

    def get_references(args: schemas.ClawmarkIdArgs) -> ToolResult:
        return _json(tools.get_references(args.clawmark_id))

    def add_tag(args: schemas.TagArgs) -> ToolResult:
        return _outcome(
            tools.add_tag_to_clawmark(args.clawmark_id, args.tag), "Tag added", "Failed to add tag"
        )

    def remove_tag(args: schemas.TagArgs) -> ToolResult:
        return _outcome(
            tools.remove_tag_from_clawmark(args.clawmark_id, args.tag),
            "Tag removed",
            "Failed to remove tag",
        )

    def list_tags(args: schemas.NoArgs) -> ToolResult:
        return _json(tools.list_all_tags())

    def reload_clawmarks(args: schemas.NoArgs) -> ToolResult:
        data = tools.reload()
        return _json({"trails": len(data.trails), "clawmarks": len(data.clawmarks)})

    return {
        "create_trail": create_trail,
        "list_trails": list_trails,
        "get_trail": get_trail,
        "archive_trail": archive_trail,
        "delete_trail": delete_trail,
        "add_clawmark": add_clawmark,
        "update_clawmark": update_clawmark,
        "delete_clawmark": delete_clawmark,
        "get_clawmark": get_clawmark,
        "list_clawmarks": list_clawmarks,
        "link_clawmarks": link_clawmarks,
        "unlink_clawmarks": unlink_clawmarks,
        "get_references": get_references,
        "add_tag": add_tag,
        "remove_tag": remove_tag,
        "list_tags": list_tags,
        "reload_clawmarks": reload_clawmarks,
    }


def call_tool(handlers: dict[str, Handler], name: str, arguments: dict | None) -> ToolResult:
    """Decode ``arguments`` for tool ``name`` and run its handler."""
    handler = handlers.get(name)
    spec = schemas.TOOL_SPECS.get(name)
    if handler is None or spec is None:
        return ToolResult(f"Unknown tool: {name}", is_error=True)

    _, args_model = spec
    try:
        args = args_model.model_validate(arguments or {})
    except ValidationError as e:
        return ToolResult(f"Invalid arguments for {name}: {e}", is_error=True)

    try:
        return handler(args)
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return ToolResult(f"Error: {e}", is_error=True)
