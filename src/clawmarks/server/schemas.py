"""Tool argument models + MCP tool definitions.

Incoming ``tools/call`` arguments are untyped JSON; each tool decodes them
through one of these models before any domain operation runs. Unknown keys
and wrongly-typed values are rejected here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from clawmarks.models import ClawmarkType, TrailStatus


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


# ── Trails ───────────────────────────────────────────────────


class CreateTrailArgs(ToolArgs):
    name: str = Field(min_length=1, description='Name of the trail (e.g., "Auth Refactor Options")')
    description: str | None = Field(
        None, description="Optional longer description of what this trail explores"
    )


class ListTrailsArgs(ToolArgs):
    status: TrailStatus | None = Field(None, description="Filter by trail status")


class TrailIdArgs(ToolArgs):
    trail_id: str = Field(description="The trail ID")


# ── Clawmarks ────────────────────────────────────────────────


class AddClawmarkArgs(ToolArgs):
    trail_id: str = Field(description="The trail this clawmark belongs to")
    file: str = Field(description="Relative path to the file")
    line: int = Field(description="Line number (1-indexed)")
    column: int | None = Field(None, description="Column number (optional, for precise positioning)")
    annotation: str = Field(description="Description of why this location is significant")
    type: ClawmarkType | None = Field(
        None,
        description=(
            "Type of clawmark: decision (made a choice), question (needs resolution), "
            "change_needed (code to modify), reference (context), "
            "alternative (another approach), dependency (something this depends on)"
        ),
    )
    tags: list[str] | None = Field(
        None, description='Tags for categorization (e.g., ["#performance", "#breaking-change"])'
    )


class UpdateClawmarkArgs(ToolArgs):
    clawmark_id: str = Field(description="The clawmark ID to update")
    annotation: str | None = None
    type: ClawmarkType | None = None
    tags: list[str] | None = None
    line: int | None = None
    column: int | None = None


class ClawmarkIdArgs(ToolArgs):
    clawmark_id: str = Field(description="The clawmark ID")


class ListClawmarksArgs(ToolArgs):
    trail_id: str | None = Field(None, description="Filter by trail")
    file: str | None = Field(None, description="Filter by file path")
    type: ClawmarkType | None = Field(None, description="Filter by clawmark type")
    tag: str | None = Field(None, description="Filter by tag")


# ── References & tags ────────────────────────────────────────


class LinkArgs(ToolArgs):
    source_id: str = Field(description="The source clawmark ID")
    target_id: str = Field(description="The target clawmark ID")


class TagArgs(ToolArgs):
    clawmark_id: str = Field(description="The clawmark ID")
    tag: str = Field(min_length=1, description='Tag to add or remove ("#" is prepended if missing)')


class NoArgs(ToolArgs):
    pass


# ── Tool definitions ─────────────────────────────────────────

# name -> (description, argument model)
TOOL_SPECS: dict[str, tuple[str, type[ToolArgs]]] = {
    "create_trail": (
        "Create a new trail to organize related clawmarks. "
        "Trails are narrative journeys through your code exploration.",
        CreateTrailArgs,
    ),
    "list_trails": ("List all trails, optionally filtered by status", ListTrailsArgs),
    "get_trail": ("Get a trail with all its clawmarks", TrailIdArgs),
    "archive_trail": ("Archive a trail (mark it as no longer active)", TrailIdArgs),
    "delete_trail": ("Delete a trail and all of its clawmarks", TrailIdArgs),
    "add_clawmark": (
        "Add a clawmark (annotated bookmark) to a location in the code. "
        "Clawmarks are points on your trail through the codebase.",
        AddClawmarkArgs,
    ),
    "update_clawmark": ("Update an existing clawmark", UpdateClawmarkArgs),
    "delete_clawmark": ("Delete a clawmark", ClawmarkIdArgs),
    "get_clawmark": ("Get a single clawmark by ID", ClawmarkIdArgs),
    "list_clawmarks": ("List clawmarks with optional filters", ListClawmarksArgs),
    "link_clawmarks": (
        "Create a reference from one clawmark to another (knowledge graph edge)",
        LinkArgs,
    ),
    "unlink_clawmarks": ("Remove a reference between clawmarks", LinkArgs),
    "get_references": (
        "Get all clawmarks that reference or are referenced by a clawmark",
        ClawmarkIdArgs,
    ),
    "add_tag": ("Add a tag to a clawmark", TagArgs),
    "remove_tag": ("Remove a tag from a clawmark", TagArgs),
    "list_tags": ("List all unique tags used across all clawmarks", NoArgs),
    "reload_clawmarks": (
        "Re-read .clawmarks.json from disk to pick up changes made outside this server",
        NoArgs,
    ),
}


def tool_definitions() -> list[dict[str, Any]]:
    """Tool list in the shape expected by MCP ``tools/list``."""
    return [
        {
            "name": name,
            "description": description,
            "inputSchema": model.model_json_schema(),
        }
        for name, (description, model) in TOOL_SPECS.items()
    ]
