#!/usr/bin/env python3
"""
Centralized path configuration for PlexRequests
Resolves the config directory once at import time and creates it (and the log directory)
"""

import os
import pathlib


def _resolve_config_dir() -> pathlib.Path:
    """Pick the config directory: explicit env var, Docker /config, or ./data for local runs"""
    explicit = os.environ.get("PLEXREQUESTS_CONFIG_DIR")
    if explicit:
        return pathlib.Path(explicit)

    docker_dir = pathlib.Path("/config")
    if docker_dir.exists() and docker_dir.is_dir():
        return docker_dir

    project_root = pathlib.Path(__file__).parent.parent.parent.parent
    return project_root / "data"


CONFIG_DIR = _resolve_config_dir()
LOG_DIR = CONFIG_DIR / "logs"

CONFIG_DIR.mkdir(parents=True, exist_ok=True)
LOG_DIR.mkdir(parents=True, exist_ok=True)
