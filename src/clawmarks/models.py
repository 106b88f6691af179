"""Clawmarks data model — entity types + dict (de)serialization (no I/O).

The on-disk document is plain JSON:
- Parse: JSON dicts -> typed dataclasses
- Format: typed dataclasses -> JSON-ready dicts (unset optionals omitted)
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Literal, get_args

SCHEMA_VERSION = 1

TrailStatus = Literal["active", "archived"]

ClawmarkType = Literal[
    "decision",  # A decision point that was made
    "question",  # Open question needing resolution
    "change_needed",  # Code that needs modification
    "reference",  # Reference point (existing code to understand)
    "alternative",  # Alternative approach being considered
    "dependency",  # Something this depends on
]

TRAIL_STATUSES: tuple[str, ...] = get_args(TrailStatus)
CLAWMARK_TYPES: tuple[str, ...] = get_args(ClawmarkType)
DEFAULT_CLAWMARK_TYPE: ClawmarkType = "reference"

_ID_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
_ID_LENGTH = 8


# ── Helpers ──────────────────────────────────────────────────


def generate_id(prefix: str) -> str:
    """Random id: ``<prefix>_`` + 8 lowercase base-36 chars. No collision check."""
    token = "".join(secrets.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
    return f"{prefix}_{token}"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-01T12:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_tag(tag: str) -> str:
    return tag if tag.startswith("#") else f"#{tag}"


def normalize_tags(tags: list[str]) -> list[str]:
    """Normalize every tag and drop duplicates, keeping first-seen order."""
    seen: list[str] = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if normalized not in seen:
            seen.append(normalized)
    return seen


def _parse_entries(
    parse: Callable[[dict[str, Any]], Any], items: Any, kind: str, problems: list[str]
) -> list:
    if not isinstance(items, list):
        problems.append(f"{kind} collection is not a list")
        return []
    parsed = []
    for index, item in enumerate(items):
        try:
            parsed.append(parse(item))
        except (KeyError, TypeError, AttributeError) as e:
            problems.append(f"{kind} #{index} skipped: {type(e).__name__} {e}")
    return parsed


# ── Entities ─────────────────────────────────────────────────


@dataclass
class Trail:
    """A named grouping of clawmarks — one narrative thread of exploration."""

    id: str
    name: str
    created_at: str
    status: TrailStatus = "active"
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Trail:
        return cls(
            id=data["id"],
            name=data["name"],
            created_at=data.get("created_at", ""),
            status=data.get("status", "active"),
            description=data.get("description"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.description is not None:
            out["description"] = self.description
        out["status"] = self.status
        out["created_at"] = self.created_at
        return out


@dataclass
class Clawmark:
    """An annotated bookmark at a file/line with a type, tags and outgoing references."""

    id: str
    trail_id: str
    file: str
    line: int
    annotation: str
    created_at: str
    type: ClawmarkType = DEFAULT_CLAWMARK_TYPE
    column: int | None = None
    tags: list[str] = field(default_factory=list)
    references: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Clawmark:
        return cls(
            id=data["id"],
            trail_id=data["trail_id"],
            file=data["file"],
            line=data["line"],
            annotation=data.get("annotation", ""),
            created_at=data.get("created_at", ""),
            type=data.get("type", DEFAULT_CLAWMARK_TYPE),
            column=data.get("column"),
            tags=list(data.get("tags", [])),
            references=list(data.get("references", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "trail_id": self.trail_id,
            "file": self.file,
            "line": self.line,
        }
        if self.column is not None:
            out["column"] = self.column
        out.update(
            annotation=self.annotation,
            type=self.type,
            tags=list(self.tags),
            references=list(self.references),
            created_at=self.created_at,
        )
        return out


@dataclass
class ClawmarksData:
    """Root document: schema version + trails + clawmarks, in display order."""

    version: int = SCHEMA_VERSION
    trails: list[Trail] = field(default_factory=list)
    clawmarks: list[Clawmark] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ClawmarksData:
        return cls.parse(data)[0]

    @classmethod
    def parse(cls, data: dict[str, Any]) -> tuple[ClawmarksData, list[str]]:
        """Build a document, skipping malformed entries.

        Returns the document plus one problem description per skipped entry.
        """
        problems: list[str] = []
        trails = _parse_entries(Trail.from_dict, data.get("trails", []), "trail", problems)
        clawmarks = _parse_entries(Clawmark.from_dict, data.get("marks", []), "mark", problems)
        return cls(
            version=data.get("version", SCHEMA_VERSION),
            trails=trails,
            clawmarks=clawmarks,
        ), problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "trails": [t.to_dict() for t in self.trails],
            "marks": [c.to_dict() for c in self.clawmarks],
        }

    def find_trail(self, trail_id: str) -> Trail | None:
        return next((t for t in self.trails if t.id == trail_id), None)

    def find_clawmark(self, clawmark_id: str) -> Clawmark | None:
        return next((c for c in self.clawmarks if c.id == clawmark_id), None)


# ── Operation results ────────────────────────────────────────


@dataclass
class OperationError:
    """Returned (never raised) when an operation's input references missing data."""

    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass
class TrailDetail:
    """A trail together with its clawmarks."""

    trail: Trail
    clawmarks: list[Clawmark] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "trail": self.trail.to_dict(),
            "clawmarks": [c.to_dict() for c in self.clawmarks],
        }


@dataclass
class References:
    """Knowledge-graph neighbours of a clawmark."""

    outgoing: list[Clawmark] = field(default_factory=list)
    incoming: list[Clawmark] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outgoing": [c.to_dict() for c in self.outgoing],
            "incoming": [c.to_dict() for c in self.incoming],
        }
