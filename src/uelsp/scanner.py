"""
Background introspection of the installed engine headers.

The scanner walks the public include directories of one resolved engine
installation and records, per exported class, the method names declared
after the class declaration.  Matching is structural, not a C++ parse.
Anything found is added to the static capability model's methods.

The walk runs on a single worker thread.  Results are unioned into a shared
``class → set[method]`` map under a lock that is held only for the map
access, never for file I/O.  Readers get a live snapshot at any time.
"""
from __future__ import annotations

import logging
import os
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uelsp.capabilities import VersionedCapabilityModel
    from uelsp.version import EngineVersion

logger = logging.getLogger(__name__)

HEADER_SUFFIX = '.h'

# class ENGINE_API AActor : public UObject
_CLASS_RE = re.compile(r'class\s+\w+_API\s+(\w+)\s*:\s*public')

# Bare declaration:  Name(...) [const] [override];
_METHOD_RE = re.compile(r'\s+(~?\w+)\s*\([^)]*\)\s*(?:const)?\s*(?:override)?\s*;')


def extract_class_methods(content: str) -> dict[str, set[str]]:
    """Return ``{class name: method names}`` found in one header's *content*.

    Methods are looked for in the text following each exported class
    declaration.  Constructors, destructors, operators and names that do not
    start with an uppercase letter are rejected.
    """
    found: dict[str, set[str]] = {}
    for class_match in _CLASS_RE.finditer(content):
        class_name = class_match.group(1)
        methods: set[str] = set()
        for m in _METHOD_RE.finditer(content, class_match.end()):
            name = m.group(1)
            if (name != class_name
                    and not name.startswith('~')
                    and not name.startswith('operator')
                    and name[0].isupper()):
                methods.add(name)
        if methods:
            found.setdefault(class_name, set()).update(methods)
    return found


class HeaderIntrospectionScanner:
    """Supervised background scan of one engine installation's headers."""

    def __init__(self, model: VersionedCapabilityModel, version: EngineVersion):
        self._model = model
        self._version = version
        self._symbols: dict[str, set[str]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._ready = threading.Event()
        self._files_scanned = 0
        self._executor: ThreadPoolExecutor | None = None
        self._future: Future | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start_scan(self) -> None:
        """Start the background walk; returns immediately.  Idempotent."""
        if self._future is not None:
            return
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='uelsp-scan')
        self._future = self._executor.submit(self._run)

    def stop(self) -> None:
        """Ask the walk to stop at the next file or directory boundary."""
        self._stop.set()
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the scan finishes; returns whether it did."""
        return self._ready.wait(timeout)

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def progress(self) -> tuple[int, int]:
        """``(files scanned, classes found)`` so far."""
        with self._lock:
            return self._files_scanned, len(self._symbols)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def class_methods(self, class_name: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._symbols.get(class_name, ()))

    # ------------------------------------------------------------------
    # Walk
    # ------------------------------------------------------------------

    def _run(self) -> None:
        try:
            self.scan()
        except Exception:
            logger.exception('Header scan aborted')
        finally:
            self._ready.set()

    def scan(self) -> None:
        """Walk every include path synchronously (the worker's body)."""
        root = self._version.install_path
        if not root:
            logger.info('No engine install path for %s; header scan skipped', self._version)
            return
        for include in self._model.include_paths(self._version):
            if self._stop.is_set():
                break
            directory = Path(root) / include
            if not directory.is_dir():
                logger.debug('Include path %s not present', directory)
                continue
            self._scan_directory(directory)
        files, classes = self.progress
        logger.info('Header scan of %s finished: %d files, %d classes',
                    root, files, classes)

    def _scan_directory(self, directory: Path) -> None:
        def _on_error(exc: OSError) -> None:
            logger.debug('Skipping %s: %s', exc.filename, exc)

        for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_error):
            if self._stop.is_set():
                return
            dirnames.sort()
            for filename in sorted(filenames):
                if self._stop.is_set():
                    return
                if filename.endswith(HEADER_SUFFIX):
                    self._scan_file(Path(dirpath) / filename)

    def _scan_file(self, path: Path) -> None:
        try:
            content = path.read_text(encoding='utf-8', errors='replace')
        except OSError as exc:
            logger.debug('Cannot read %s: %s', path, exc)
            return
        found = extract_class_methods(content)
        with self._lock:
            self._files_scanned += 1
            for class_name, methods in found.items():
                self._symbols.setdefault(class_name, set()).update(methods)
