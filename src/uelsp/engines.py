"""
Engine installation discovery for uelsp.

Finds the Unreal Engine installations present on the host and decides which
one a project targets, using a cascading set of strategies:

1. The project's ``.uproject`` descriptor: a version pattern in its
   ``EngineAssociation`` field is the *declared* target.  The install path is
   filled in from a discovered installation with the same major.minor.
2. The newest discovered installation.
3. Default: :data:`~uelsp.version.DEFAULT_VERSION` with no install path.

An installation is any directory containing an ``Engine/`` subtree.  Its
version comes from ``Engine/Build/Build.version`` and falls back to a
``UE_5.3``-style pattern in the directory name.

Nothing here raises: unreadable directories and malformed descriptors are
logged and treated as absent.
"""
from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import Iterable, Mapping

from uelsp.version import DEFAULT_VERSION, EngineVersion, parse_version

logger = logging.getLogger(__name__)

# Matches UE_5.3, UE-5.3.2, UnrealEngine5.1 ... in an install directory name.
_PATH_VERSION_RE = re.compile(
    r'(?:UE[_-]?|UnrealEngine[_-]?)(\d+)\.(\d+)(?:\.(\d+))?',
    re.IGNORECASE,
)

# Primary override first, then the legacy aliases.
ENV_OVERRIDES = ('UE_ROOT', 'UE4_ROOT', 'UE5_ROOT', 'UNREAL_ENGINE_ROOT')

_PROJECT_SKIP_DIRS = {'Binaries', 'Intermediate', 'DerivedDataCache', 'node_modules'}


# ---------------------------------------------------------------------------
# Conventional install roots
# ---------------------------------------------------------------------------

def default_install_roots(home: str | None = None) -> list[str]:
    """Return the conventional install roots for this host, most likely first."""
    roots = [
        '/Users/Shared/Epic Games',
        '/Applications/Epic Games',
        '/Applications/UnrealEngine',
    ]
    roots.extend(f'/Applications/UE_5.{minor}' for minor in range(6))
    roots.extend(['/opt/UnrealEngine', '/opt/Epic Games'])

    if home is None:
        home = os.environ.get('HOME')
    if home:
        roots.extend([
            f'{home}/Library/Epic Games',
            f'{home}/Epic Games',
            f'{home}/UnrealEngine',
            f'{home}/Applications/Epic Games',
            f'{home}/Documents/Epic Games',
            f'{home}/Documents/UnrealEngine',
        ])
        roots.extend(f'{home}/UnrealEngine/UE_5.{minor}' for minor in range(6))
    return roots


# ---------------------------------------------------------------------------
# Single-path probes
# ---------------------------------------------------------------------------

def _read_build_version(engine_dir: Path) -> EngineVersion | None:
    """Parse ``Engine/Build/Build.version``; None if absent or unusable."""
    descriptor = engine_dir / 'Engine' / 'Build' / 'Build.version'
    try:
        data = json.loads(descriptor.read_text(encoding='utf-8'))
        major = int(data.get('MajorVersion', 0))
        minor = int(data.get('MinorVersion', 0))
        patch = int(data.get('PatchVersion', 0))
    except FileNotFoundError:
        return None
    except (OSError, ValueError, TypeError, AttributeError) as exc:
        logger.debug('Unreadable version descriptor %s: %s', descriptor, exc)
        return None
    if major <= 0 or minor < 0 or patch < 0:
        return None
    return EngineVersion(major, minor, patch)


def _version_from_path(path: str) -> EngineVersion | None:
    m = _PATH_VERSION_RE.search(path)
    if m is None:
        return None
    return EngineVersion(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))


def detect_installation(path: str | os.PathLike) -> EngineVersion | None:
    """Return the :class:`EngineVersion` installed at *path*, or None.

    *path* must contain an ``Engine/`` directory.  Versions with major 0 are
    not installations.
    """
    engine_dir = Path(path)
    if not (engine_dir / 'Engine').is_dir():
        return None
    version = _read_build_version(engine_dir) or _version_from_path(str(path))
    if version is None or version.major == 0:
        return None
    return version.with_install_path(str(path))


# ---------------------------------------------------------------------------
# Project helpers
# ---------------------------------------------------------------------------

def _project_descriptor(project_path: str | os.PathLike) -> Path | None:
    try:
        candidates = sorted(Path(project_path).glob('*.uproject'))
    except OSError as exc:
        logger.debug('Cannot list project directory %s: %s', project_path, exc)
        return None
    return candidates[0] if candidates else None


def read_engine_association(project_path: str | os.PathLike) -> str | None:
    """Return the ``EngineAssociation`` string of the project, or None."""
    descriptor = _project_descriptor(project_path)
    if descriptor is None:
        return None
    try:
        data = json.loads(descriptor.read_text(encoding='utf-8'))
    except (OSError, ValueError) as exc:
        logger.debug('Unreadable project descriptor %s: %s', descriptor, exc)
        return None
    if not isinstance(data, dict):
        return None
    association = data.get('EngineAssociation')
    return association if isinstance(association, str) else None


def find_projects(search_path: str | os.PathLike, max_depth: int = 3) -> list[Path]:
    """Return directories under *search_path* that hold a ``.uproject`` file.

    Hidden directories and build artefact directories are not descended into.
    """
    found: list[Path] = []

    def _walk(directory: Path, depth: int) -> None:
        if depth > max_depth:
            return
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.debug('Skipping %s: %s', directory, exc)
            return
        for entry in entries:
            try:
                if entry.is_file() and entry.suffix == '.uproject':
                    if directory not in found:
                        found.append(directory)
                elif (entry.is_dir() and depth < max_depth
                      and not entry.name.startswith('.')
                      and entry.name not in _PROJECT_SKIP_DIRS):
                    _walk(entry, depth + 1)
            except OSError as exc:
                logger.debug('Skipping %s: %s', entry, exc)

    _walk(Path(search_path), 0)
    return found


# ---------------------------------------------------------------------------
# EngineInstallationResolver
# ---------------------------------------------------------------------------

class EngineInstallationResolver:
    """Discovers engine installations and resolves a project's target version.

    *roots* and *environ* default to the host's conventional install roots and
    ``os.environ``; tests pass fixtures instead.
    """

    def __init__(
        self,
        roots: Iterable[str] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._roots = list(roots) if roots is not None else default_install_roots()
        self._environ = environ if environ is not None else os.environ

    def _candidate_versions(self) -> Iterable[EngineVersion]:
        for root in self._roots:
            root_path = Path(root)
            try:
                if not root_path.is_dir():
                    continue
                version = detect_installation(root_path)
                if version is not None:
                    yield version
                    continue
                children = sorted(p for p in root_path.iterdir() if p.is_dir())
            except OSError as exc:
                logger.debug('Skipping install root %s: %s', root, exc)
                continue
            for child in children:
                try:
                    version = detect_installation(child)
                except OSError as exc:
                    logger.debug('Skipping %s: %s', child, exc)
                    continue
                if version is not None:
                    yield version

        for name in ENV_OVERRIDES:
            path = self._environ.get(name)
            if not path:
                continue
            try:
                version = detect_installation(path)
            except OSError as exc:
                logger.debug('Skipping %s=%s: %s', name, path, exc)
                continue
            if version is not None:
                yield version

    def discover_installations(self) -> list[EngineVersion]:
        """Return every installation found, newest first, one per version."""
        # sorted() is stable with reverse=True, so discovery order breaks ties.
        ordered = sorted(self._candidate_versions(), reverse=True)
        unique: list[EngineVersion] = []
        seen: set[EngineVersion] = set()
        for version in ordered:
            if version in seen:
                continue
            seen.add(version)
            unique.append(version)
        logger.debug('Discovered installations: %s',
                     ', '.join(f'{v} ({v.install_path})' for v in unique) or 'none')
        return unique

    def resolve_project_version(self, project_path: str | os.PathLike | None) -> EngineVersion:
        """Return the engine version *project_path* targets.  Never raises."""
        installations = self.discover_installations()

        declared = None
        if project_path:
            declared = parse_version(read_engine_association(project_path))

        if declared is not None:
            for installed in installations:
                if (installed.major, installed.minor) == (declared.major, declared.minor):
                    return declared.with_install_path(installed.install_path)
            logger.info('Project targets %s but no matching installation was found', declared)
            return declared

        if installations:
            return installations[0]
        return DEFAULT_VERSION
