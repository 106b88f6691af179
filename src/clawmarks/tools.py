"""Domain operations over trails, clawmarks, tags and references.

Reads take a snapshot via ``storage.get_data()``; every write goes through
``storage.update_data()`` so load + modify + save always happen together.
Outcomes are returned, never raised:
- ``None`` for an unknown id on lookups/updates
- ``OperationError`` when input references missing data (add_clawmark)
- ``bool`` for delete/link/tag operations (reasons for ``False`` are not distinguished)
"""

from __future__ import annotations

from typing import Callable

from clawmarks.models import (
    DEFAULT_CLAWMARK_TYPE,
    Clawmark,
    ClawmarksData,
    ClawmarkType,
    OperationError,
    References,
    Trail,
    TrailDetail,
    TrailStatus,
    generate_id,
    normalize_tag,
    normalize_tags,
    utc_timestamp,
)
from clawmarks.storage import ClawmarksStorage


class ClawmarksTools:
    """All trail/clawmark/tag/reference business logic on top of a ClawmarksStorage."""

    def __init__(
        self,
        storage: ClawmarksStorage,
        id_factory: Callable[[str], str] = generate_id,
    ) -> None:
        self.storage = storage
        self._new_id = id_factory

    # ── Trails ───────────────────────────────────────────────

    def create_trail(self, name: str, description: str | None = None) -> Trail:
        trail = Trail(
            id=self._new_id("t"),
            name=name,
            description=description,
            status="active",
            created_at=utc_timestamp(),
        )
        self.storage.update_data(lambda data: data.trails.append(trail))
        return trail

    def list_trails(self, status: TrailStatus | None = None) -> list[Trail]:
        data = self.storage.get_data()
        if status:
            return [t for t in data.trails if t.status == status]
        return list(data.trails)

    def get_trail(self, trail_id: str) -> TrailDetail | None:
        data = self.storage.get_data()
        trail = data.find_trail(trail_id)
        if trail is None:
            return None
        return TrailDetail(
            trail=trail,
            clawmarks=[c for c in data.clawmarks if c.trail_id == trail_id],
        )

    def archive_trail(self, trail_id: str) -> Trail | None:
        archived: Trail | None = None

        def _archive(data: ClawmarksData) -> None:
            nonlocal archived
            trail = data.find_trail(trail_id)
            if trail is not None:
                trail.status = "archived"
                archived = trail

        self.storage.update_data(_archive)
        return archived

    def delete_trail(self, trail_id: str) -> bool:
        """Remove a trail and every clawmark on it.

        References that other trails' clawmarks hold to the removed marks are
        left in place (unlike delete_clawmark).
        """
        deleted = False

        def _delete(data: ClawmarksData) -> None:
            nonlocal deleted
            trail = data.find_trail(trail_id)
            if trail is not None:
                data.trails.remove(trail)
                data.clawmarks = [c for c in data.clawmarks if c.trail_id != trail_id]
                deleted = True

        self.storage.update_data(_delete)
        return deleted

    # ── Clawmarks ────────────────────────────────────────────

    def add_clawmark(
        self,
        trail_id: str,
        file: str,
        line: int,
        annotation: str,
        column: int | None = None,
        type: ClawmarkType | None = None,
        tags: list[str] | None = None,
    ) -> Clawmark | OperationError:
        data = self.storage.get_data()
        if data.find_trail(trail_id) is None:
            return OperationError(error=f"Trail {trail_id} not found")

        clawmark = Clawmark(
            id=self._new_id("c"),
            trail_id=trail_id,
            file=file,
            line=line,
            column=column,
            annotation=annotation,
            type=type or DEFAULT_CLAWMARK_TYPE,
            tags=normalize_tags(tags or []),
            references=[],
            created_at=utc_timestamp(),
        )
        self.storage.update_data(lambda d: d.clawmarks.append(clawmark))
        return clawmark

    def update_clawmark(
        self,
        clawmark_id: str,
        annotation: str | None = None,
        type: ClawmarkType | None = None,
        tags: list[str] | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> Clawmark | None:
        """Partial update: only arguments that are not None are applied."""
        updated: Clawmark | None = None

        def _update(data: ClawmarksData) -> None:
            nonlocal updated
            clawmark = data.find_clawmark(clawmark_id)
            if clawmark is None:
                return
            if annotation is not None:
                clawmark.annotation = annotation
            if type is not None:
                clawmark.type = type
            if tags is not None:
                clawmark.tags = normalize_tags(tags)
            if line is not None:
                clawmark.line = line
            if column is not None:
                clawmark.column = column
            updated = clawmark

        self.storage.update_data(_update)
        return updated

    def delete_clawmark(self, clawmark_id: str) -> bool:
        """Remove a clawmark and prune its id from every other clawmark's references."""
        deleted = False

        def _delete(data: ClawmarksData) -> None:
            nonlocal deleted
            clawmark = data.find_clawmark(clawmark_id)
            if clawmark is None:
                return
            data.clawmarks.remove(clawmark)
            for other in data.clawmarks:
                other.references = [ref for ref in other.references if ref != clawmark_id]
            deleted = True

        self.storage.update_data(_delete)
        return deleted

    def list_clawmarks(
        self,
        trail_id: str | None = None,
        file: str | None = None,
        type: ClawmarkType | None = None,
        tag: str | None = None,
    ) -> list[Clawmark]:
        """Clawmarks matching all given filters, in storage order."""
        clawmarks = self.storage.get_data().clawmarks
        if trail_id:
            clawmarks = [c for c in clawmarks if c.trail_id == trail_id]
        if file:
            clawmarks = [c for c in clawmarks if c.file == file]
        if type:
            clawmarks = [c for c in clawmarks if c.type == type]
        if tag:
            wanted = normalize_tag(tag)
            clawmarks = [c for c in clawmarks if wanted in c.tags]
        return list(clawmarks)

    def get_clawmark(self, clawmark_id: str) -> Clawmark | None:
        return self.storage.get_data().find_clawmark(clawmark_id)

    # ── References (knowledge graph edges) ───────────────────

    def link_clawmarks(self, source_id: str, target_id: str) -> bool:
        linked = False

        def _link(data: ClawmarksData) -> None:
            nonlocal linked
            source = data.find_clawmark(source_id)
            target = data.find_clawmark(target_id)
            if source and target and target_id not in source.references:
                source.references.append(target_id)
                linked = True

        self.storage.update_data(_link)
        return linked

    def unlink_clawmarks(self, source_id: str, target_id: str) -> bool:
        unlinked = False

        def _unlink(data: ClawmarksData) -> None:
            nonlocal unlinked
            source = data.find_clawmark(source_id)
            if source and target_id in source.references:
                source.references.remove(target_id)
                unlinked = True

        self.storage.update_data(_unlink)
        return unlinked

    def get_references(self, clawmark_id: str) -> References:
        """Outgoing and incoming neighbours; both empty for an unknown id."""
        data = self.storage.get_data()
        clawmark = data.find_clawmark(clawmark_id)
        if clawmark is None:
            return References()
        return References(
            outgoing=[c for c in data.clawmarks if c.id in clawmark.references],
            incoming=[c for c in data.clawmarks if clawmark_id in c.references],
        )

    # ── Tags ─────────────────────────────────────────────────

    def add_tag_to_clawmark(self, clawmark_id: str, tag: str) -> bool:
        normalized = normalize_tag(tag)
        added = False

        def _add(data: ClawmarksData) -> None:
            nonlocal added
            clawmark = data.find_clawmark(clawmark_id)
            if clawmark and normalized not in clawmark.tags:
                clawmark.tags.append(normalized)
                added = True

        self.storage.update_data(_add)
        return added

    def remove_tag_from_clawmark(self, clawmark_id: str, tag: str) -> bool:
        normalized = normalize_tag(tag)
        removed = False

        def _remove(data: ClawmarksData) -> None:
            nonlocal removed
            clawmark = data.find_clawmark(clawmark_id)
            if clawmark and normalized in clawmark.tags:
                clawmark.tags.remove(normalized)
                removed = True

        self.storage.update_data(_remove)
        return removed

    def list_all_tags(self) -> list[str]:
        return sorted({tag for c in self.storage.get_data().clawmarks for tag in c.tags})

    # ── Maintenance ──────────────────────────────────────────

    def reload(self) -> ClawmarksData:
        return self.storage.reload()
