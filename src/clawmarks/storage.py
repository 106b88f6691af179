"""JSON-file persistence for clawmarks.

One document per project root (``.clawmarks.json``). The document is cached
in memory after the first load; every mutation goes through ``update_data``,
which pairs load + modify + save. No locking: a single writer is assumed and
external edits are only picked up by an explicit ``reload``.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable

from clawmarks.models import ClawmarksData

logger = logging.getLogger(__name__)

CLAWMARKS_FILENAME = ".clawmarks.json"


class StorageNotLoadedError(RuntimeError):
    """save() was called before anything was loaded."""


class ClawmarksStorage:
    """Owns the cached ClawmarksData and its on-disk representation."""

    def __init__(self, project_root: Path | str) -> None:
        self._project_root = Path(project_root)
        self._file_path = self._project_root / CLAWMARKS_FILENAME
        self._data: ClawmarksData | None = None

    @property
    def project_root(self) -> Path:
        return self._project_root

    @property
    def file_path(self) -> Path:
        return self._file_path

    def load(self) -> ClawmarksData:
        """Return the cached document, reading it from disk on first use.

        A missing file yields an empty version-1 document. An unparsable file
        also starts empty, and malformed entries are skipped; in both cases the
        original file is first copied to ``.clawmarks.json.bak``.
        """
        if self._data is not None:
            return self._data

        if not self._file_path.exists():
            logger.debug("No %s found, starting empty", self._file_path)
            self._data = ClawmarksData()
            return self._data

        try:
            raw = json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s (%s), starting empty", self._file_path, e)
            self._backup()
            self._data = ClawmarksData()
            return self._data

        if not isinstance(raw, dict):
            logger.warning("%s is not a JSON object, starting empty", self._file_path)
            self._backup()
            self._data = ClawmarksData()
            return self._data

        self._data, problems = ClawmarksData.parse(raw)
        if problems:
            for problem in problems:
                logger.warning("%s: %s", self._file_path, problem)
            self._backup()
        logger.debug(
            "Loaded %d trails, %d clawmarks from %s",
            len(self._data.trails),
            len(self._data.clawmarks),
            self._file_path,
        )
        return self._data

    @property
    def backup_path(self) -> Path:
        return self._file_path.with_name(CLAWMARKS_FILENAME + ".bak")

    def _backup(self) -> None:
        """Copy the on-disk file aside before a lossy load can overwrite it."""
        try:
            shutil.copy2(self._file_path, self.backup_path)
        except OSError as e:
            logger.warning("Could not back up %s: %s", self._file_path, e)
            return
        logger.warning("Original kept at %s", self.backup_path)

    def save(self) -> None:
        """Atomically rewrite the backing file from the cached document."""
        if self._data is None:
            raise StorageNotLoadedError("No data to save. Call load() first.")

        content = json.dumps(self._data.to_dict(), indent=2, ensure_ascii=False) + "\n"
        self._file_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._file_path.parent, prefix=f"{CLAWMARKS_FILENAME}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.replace(tmp_name, self._file_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved %s (%d bytes)", self._file_path, len(content))

    def get_data(self) -> ClawmarksData:
        return self.load()

    def update_data(self, updater: Callable[[ClawmarksData], None]) -> ClawmarksData:
        """Load, apply ``updater`` in place, then save.

        If ``updater`` raises, nothing is written; the cache keeps whatever
        partial change the updater made before failing.
        """
        data = self.load()
        updater(data)
        self.save()
        return data

    def reload(self) -> ClawmarksData:
        """Discard the cache and re-read the file (picks up external edits)."""
        self._data = None
        return self.load()
