"""Configuration loading from environment variables and clawmarks.toml."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib
from pathlib import Path

_CONFIG_FILENAME = "clawmarks.toml"


@dataclass
class ClawmarksConfig:
    """Top-level clawmarks configuration."""

    project_root: Path = field(default_factory=Path.cwd)
    log_level: str = "INFO"


def load_config(config_path: Path | None = None) -> ClawmarksConfig:
    """Load configuration from environment variables and optional clawmarks.toml.

    Priority: environment variables > clawmarks.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.clawmarks/
        for candidate in [
            Path.cwd() / _CONFIG_FILENAME,
            Path.home() / ".clawmarks" / _CONFIG_FILENAME,
        ]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    project_root = os.getenv("CLAWMARKS_PROJECT_ROOT") or file_data.get("project_root")

    return ClawmarksConfig(
        project_root=Path(project_root).expanduser() if project_root else Path.cwd(),
        log_level=os.getenv("CLAWMARKS_LOG_LEVEL", file_data.get("log_level", "INFO")),
    )
