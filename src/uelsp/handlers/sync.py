"""Header/source synchronisation for the ``syncHeaderSource`` command."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from uelsp.handlers.codegen import parse_function_declaration

logger = logging.getLogger(__name__)

HEADER_SUFFIXES = ('.h', '.hpp')
SOURCE_SUFFIXES = ('.cpp', '.cc')

# class GAME_API AMyActor : public AActor
_CLASS_DECL_RE = re.compile(r'^\s*(?:class|struct)\s+(?:\w+_API\s+)?(\w+)\b(?!\s*;)', re.MULTILINE)
# <ret> Class::Method(<params>) [const] {
_DEFINITION_RE = re.compile(
    r'^(?P<ret>(?:[\w:<>*&]+[ \t]+)*?)(?P<cls>\w+)::(?P<name>~?\w+)\s*\((?P<params>[^)]*)\)\s*(?P<const>const)?',
    re.MULTILINE,
)


@dataclass
class FilePairInfo:
    header_path: str
    source_path: str
    class_name: str | None = None
    header_functions: list[str] = field(default_factory=list)
    source_functions: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)


def is_header(path: str) -> bool:
    return path.endswith(HEADER_SUFFIXES)


def is_source(path: str) -> bool:
    return path.endswith(SOURCE_SUFFIXES)


def corresponding_file(path: str) -> str:
    """``Foo.h`` ↔ ``Foo.cpp``; empty string for anything else."""
    base, _, _ = path.rpartition('.')
    if is_header(path):
        return f'{base}.cpp'
    if is_source(path):
        return f'{base}.h'
    return ''


def read_source(path: str) -> str:
    try:
        return Path(path).read_text(encoding='utf-8', errors='replace')
    except OSError as exc:
        logger.debug('Cannot read %s: %s', path, exc)
        return ''


def _header_declarations(content: str) -> list[str]:
    """Lines of *content* that declare (not define) a function."""
    decls = []
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped.endswith(';') or stripped.startswith(('//', '#', 'return', 'typedef')):
            continue
        if parse_function_declaration(line) is not None:
            decls.append(stripped)
    return decls


def analyze_file_pair(header_path: str) -> FilePairInfo:
    source_path = corresponding_file(header_path)
    header = read_source(header_path)
    source = read_source(source_path)
    class_match = _CLASS_DECL_RE.search(header)
    info = FilePairInfo(
        header_path=header_path,
        source_path=source_path,
        class_name=class_match.group(1) if class_match else None,
    )
    info.header_functions = _header_declarations(header)
    info.source_functions = [m.group('name') for m in _DEFINITION_RE.finditer(source)]
    for decl in info.header_functions:
        func = parse_function_declaration(decl)
        if (func is not None and func.name not in info.source_functions
                and func.name != info.class_name and 'PURE_VIRTUAL' not in decl
                and not decl.rstrip(';').rstrip().endswith('= 0')):
            info.missing.append(decl)
    return info


def generate_missing_implementations(info: FilePairInfo) -> str:
    if not info.missing:
        return f'// {Path(info.source_path).name} implements every declared function'
    owner = f'{info.class_name}::' if info.class_name else ''
    chunks = []
    for decl in info.missing:
        func = parse_function_declaration(decl)
        ret = func.return_type
        for keyword in ('virtual ', 'static ', 'FORCEINLINE '):
            ret = ret.replace(keyword, '')
        const = ' const' if re.search(r'\)\s*const\b', decl) else ''
        body = '' if ret == 'void' else '\treturn {};\n'
        chunks.append(
            f'{ret} {owner}{func.name}({", ".join(func.parameters)}){const}\n{{\n{body}}}\n'
        )
    return '\n'.join(chunks)


def generate_header_from_source(source_path: str) -> str:
    source = read_source(source_path)
    lines = []
    for m in _DEFINITION_RE.finditer(source):
        if m.group('name') == m.group('cls') or m.group('name').startswith('~'):
            continue
        ret = ' '.join(m.group('ret').split()) or 'void'
        const = ' const' if m.group('const') else ''
        lines.append(f'\t{ret} {m.group("name")}({m.group("params").strip()}){const};')
    if not lines:
        return f'// No member function definitions found in {Path(source_path).name}'
    return '\n'.join(lines)


def sync_header_source(path: str) -> str:
    """Entry point: *path* is a filesystem path to a header or source file."""
    if is_header(path):
        return generate_missing_implementations(analyze_file_pair(path))
    if is_source(path):
        return generate_header_from_source(path)
    return '// Unable to sync: not a valid header or source file'
