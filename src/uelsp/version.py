"""
Engine version value type.

An :class:`EngineVersion` identifies one Unreal Engine release and is the join
key used by the installation resolver, the capability model and the header
scanner.  Ordering is lexicographic on ``(major, minor, patch)``; the install
path is carried along but never takes part in comparisons or hashing.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

# <major>.<minor>[.<patch>] anywhere in free text (e.g. an EngineAssociation).
_VERSION_RE = re.compile(r'(\d+)\.(\d+)(?:\.(\d+))?')

# Oldest supported generation; it uses the GENERATED_UCLASS_BODY() idiom.
LEGACY_MAJOR = 4


@dataclass(frozen=True, order=True)
class EngineVersion:
    major: int
    minor: int
    patch: int = 0
    install_path: str = field(default='', compare=False)

    @property
    def is_legacy(self) -> bool:
        return self.major <= LEGACY_MAJOR

    def with_install_path(self, install_path: str) -> EngineVersion:
        return EngineVersion(self.major, self.minor, self.patch, install_path)

    def __str__(self) -> str:
        return f'{self.major}.{self.minor}.{self.patch}'


DEFAULT_VERSION = EngineVersion(5, 3, 0)


def parse_version(text: str | None) -> EngineVersion | None:
    """Return the first ``major.minor[.patch]`` found in *text*, or None."""
    if not text:
        return None
    m = _VERSION_RE.search(text)
    if m is None:
        return None
    return EngineVersion(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))
