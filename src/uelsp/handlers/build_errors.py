"""Compiler error interpretation for the ``interpretErrors`` command."""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

BUILD_LOG = 'Saved/Logs/UnrealBuildTool.log'
MAX_REPORTED = 20


class ErrorCategory(enum.Enum):
    MISSING_INCLUDE = 'MissingInclude'
    MEMBER_NOT_FOUND = 'MemberNotFound'
    UNREAL_MACRO = 'UnrealMacro'
    MODULE_NOT_FOUND = 'ModuleNotFound'
    SYNTAX_ERROR = 'SyntaxError'
    UNKNOWN = 'Unknown'


@dataclass(frozen=True)
class ErrorPattern:
    pattern: re.Pattern
    category: ErrorCategory
    solution: str        # '{1}' is replaced by the first capture group
    confidence: float


_PATTERNS = (
    ErrorPattern(
        re.compile(r"error: use of undeclared identifier '(\w+)'"),
        ErrorCategory.MISSING_INCLUDE,
        "Add #include for '{1}' or check spelling. "
        "Common includes for '{1}': CoreMinimal.h, Engine.h",
        0.9,
    ),
    ErrorPattern(
        re.compile(r"error: no member named '(\w+)' in"),
        ErrorCategory.MEMBER_NOT_FOUND,
        "Member '{1}' does not exist. Check spelling, access level, or add forward declaration",
        0.8,
    ),
    ErrorPattern(
        re.compile(r'error: UCLASS\(\) must be the first thing'),
        ErrorCategory.UNREAL_MACRO,
        'Move UCLASS() macro to immediately before class declaration',
        0.95,
    ),
    ErrorPattern(
        re.compile(r'error: GENERATED_BODY\(\) not found'),
        ErrorCategory.UNREAL_MACRO,
        'Add GENERATED_BODY() as first line inside UCLASS body',
        0.95,
    ),
    ErrorPattern(
        re.compile(r"error: Cannot find definition for module '(\w+)'"),
        ErrorCategory.MODULE_NOT_FOUND,
        "Add '{1}' to PublicDependencyModuleNames in your .Build.cs file",
        0.9,
    ),
    ErrorPattern(
        re.compile(r"error: expected '([^']+)'"),
        ErrorCategory.SYNTAX_ERROR,
        "Insert the missing '{1}' near the reported location",
        0.6,
    ),
)

# path/File.cpp(12): error ...   or   path/File.cpp:12:5: error ...
_LOCATION_RE = re.compile(r'^(?P<file>[^\s:(]+(?::\\[^\s:(]+)?)(?:\((?P<l1>\d+)\)|:(?P<l2>\d+))')


@dataclass
class CompileError:
    message: str
    file: str = ''
    line: int = 0
    category: ErrorCategory = ErrorCategory.UNKNOWN
    solution: str = 'Manual investigation required'
    confidence: float = 0.0

    def format_solution(self) -> str:
        return (
            f'// Error in {self.file}:{self.line}\n'
            f'// Category: {self.category.value}\n'
            f'// Confidence: {self.confidence * 100:g}%\n'
            f'// Message: {self.message}\n'
            f'// Solution: {self.solution}\n'
        )


def interpret_error(message: str) -> CompileError:
    error = CompileError(message=message)
    loc = _LOCATION_RE.match(message)
    if loc:
        error.file = loc.group('file')
        error.line = int(loc.group('l1') or loc.group('l2'))
    for pattern in _PATTERNS:
        m = pattern.pattern.search(message)
        if m:
            error.category = pattern.category
            error.confidence = pattern.confidence
            first = m.group(1) if m.groups() else ''
            error.solution = pattern.solution.replace('{1}', first)
            break
    return error


def extract_compile_errors(project_path: str) -> list[str]:
    log = Path(project_path) / BUILD_LOG
    try:
        with open(log, encoding='utf-8', errors='replace') as fh:
            return [line.rstrip('\n') for line in fh if 'error:' in line]
    except OSError as exc:
        logger.debug('No build log at %s: %s', log, exc)
        return []


def generate_report(errors: list[CompileError]) -> str:
    out = [
        '/*',
        ' * COMPILE ERROR ANALYSIS & SOLUTIONS',
        f' * Found {len(errors)} compile errors',
        ' * ==========================================',
        ' */',
        '',
    ]
    for i, error in enumerate(errors[:MAX_REPORTED], start=1):
        out.append(f'// ERROR #{i} [{error.category.value}]')
        out.append('// ' + '-' * 50)
        out.append(error.format_solution())
    return '\n'.join(out)


def interpret_errors(project_path: str) -> str:
    return generate_report([interpret_error(m) for m in extract_compile_errors(project_path)])
