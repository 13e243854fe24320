"""
Project configuration for uelsp.

An optional ``.uelsp.toml`` in the project root may set::

    engine_path = "/Users/Shared/Epic Games/UE_5.3"   # pin an installation
    log_level = "debug"                                # stderr log level
    scan_headers = true                                # background header scan

A missing or malformed file is the same as an empty one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = '.uelsp.toml'


@dataclass(frozen=True)
class ProjectConfig:
    engine_path: str | None = None
    log_level: str | None = None
    scan_headers: bool = True


def read_project_config(project_root: str | None) -> ProjectConfig:
    """Parse ``.uelsp.toml`` in *project_root*."""
    if not project_root:
        return ProjectConfig()
    try:
        import tomllib  # Python 3.11+
    except ImportError:
        import tomli as tomllib  # fallback

    config_path = Path(project_root) / CONFIG_FILENAME
    if not config_path.is_file():
        return ProjectConfig()

    try:
        data = tomllib.loads(config_path.read_text(encoding='utf-8'))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning('Ignoring %s: %s', config_path, exc)
        return ProjectConfig()

    engine_path = data.get('engine_path')
    log_level = data.get('log_level')
    scan_headers = data.get('scan_headers', True)
    return ProjectConfig(
        engine_path=engine_path if isinstance(engine_path, str) and engine_path else None,
        log_level=log_level if isinstance(log_level, str) and log_level else None,
        scan_headers=scan_headers if isinstance(scan_headers, bool) else True,
    )


def apply_log_level(raw: str | None) -> None:
    """Set the root logger level from a string like 'debug', 'warning', etc."""
    if not raw:
        return
    level = getattr(logging, raw.upper(), None)
    if isinstance(level, int):
        logging.getLogger().setLevel(level)
