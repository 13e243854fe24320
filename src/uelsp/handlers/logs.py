"""
Build/runtime log classification for the ``analyzeLogs`` command.

Each line of the project's ``Saved/Logs/*.log`` files is matched against a
fixed set of patterns per issue type.  The classifier is stateless and knows
nothing about engine versions.
"""
from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

LOG_DIRS = (
    'Saved/Logs',
    'Intermediate/Build/Win64/UnrealHeaderTool/Development/Engine/Logs',
)


class LogType(enum.Enum):
    PERFORMANCE = 'Performance'
    MEMORY = 'Memory'
    ERROR = 'Error'
    BLUEPRINT = 'Blueprint'
    WARNING = 'Warning'


class LogSeverity(enum.IntEnum):
    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3


_PATTERNS: dict[LogType, list[re.Pattern]] = {
    LogType.PERFORMANCE: [
        re.compile(r'LogStats:\s+(.+)\s+took\s+(\d+\.?\d*)ms'),
        re.compile(r'LogRenderer:\s+Frame\s+time:\s+(\d+\.?\d*)ms'),
        re.compile(r'LogGameThread:\s+(.+)\s+(\d+\.?\d*)ms'),
        re.compile(r'LogSlate:\s+Slow\s+widget\s+update.*(\d+\.?\d*)ms'),
    ],
    LogType.MEMORY: [
        re.compile(r'LogMemory:\s+(\d+)\s+bytes\s+leaked'),
        re.compile(r'LogGC:\s+Garbage\s+collection\s+took\s+(\d+\.?\d*)ms'),
        re.compile(r'LogMemory:\s+Out\s+of\s+memory'),
        re.compile(r'LogMemory:\s+Allocation\s+failed.*size:\s+(\d+)'),
    ],
    LogType.ERROR: [
        re.compile(r'LogTemp:\s+Error:\s+(.+)'),
        re.compile(r'LogCore:\s+Error:\s+(.+)'),
        re.compile(r'LogBlueprint:\s+Error:\s+(.+)'),
        re.compile(r'LogCompile:\s+Error:\s+(.+)'),
        re.compile(r'Error:\s+(.+)'),
    ],
    LogType.BLUEPRINT: [
        re.compile(r'LogBlueprint:\s+(.+)\s+failed\s+to\s+compile'),
        re.compile(r'LogBlueprintUserMessages:\s+(.+)'),
        re.compile(r'LogBlueprint:\s+Warning:\s+(.+)'),
        re.compile(r'Blueprint\s+compile\s+error:\s+(.+)'),
    ],
    LogType.WARNING: [
        re.compile(r'LogTemp:\s+Warning:\s+(.+)'),
        re.compile(r'LogCore:\s+Warning:\s+(.+)'),
        re.compile(r'Warning:\s+(.+)'),
    ],
}

_SEVERITY = {
    LogType.MEMORY: LogSeverity.HIGH,
    LogType.ERROR: LogSeverity.HIGH,
    LogType.BLUEPRINT: LogSeverity.MEDIUM,
    LogType.PERFORMANCE: LogSeverity.MEDIUM,
    LogType.WARNING: LogSeverity.LOW,
}
_SUGGESTIONS = {
    LogType.PERFORMANCE: 'Profile the reported section with Unreal Insights',
    LogType.MEMORY: 'Check object lifetimes and UPROPERTY references',
    LogType.ERROR: 'Check the related code section',
    LogType.BLUEPRINT: 'Recompile the Blueprint and fix the reported nodes',
    LogType.WARNING: 'Check the related code section',
}


@dataclass
class LogIssue:
    type: LogType
    severity: LogSeverity
    message: str
    file: str
    line: int
    suggestion: str

    def format_for_display(self) -> str:
        return (
            f'// File: {self.file}:{self.line}\n'
            f'// Type: {self.type.value}, Severity: {self.severity.name.capitalize()}\n'
            f'// Message: {self.message}\n'
            f'// Suggestion: {self.suggestion}\n'
        )


def classify_line(line: str) -> list[tuple[LogType, str]]:
    """Return ``(type, matched text)`` for every issue type *line* matches."""
    hits = []
    for log_type, patterns in _PATTERNS.items():
        for pattern in patterns:
            m = pattern.search(line)
            if m:
                hits.append((log_type, m.group(0)))
                break
    return hits


def find_log_files(project_path: str) -> list[Path]:
    files: list[Path] = []
    for rel in LOG_DIRS:
        directory = Path(project_path) / rel
        try:
            files.extend(sorted(p for p in directory.iterdir()
                                if p.is_file() and p.suffix == '.log'))
        except OSError as exc:
            logger.debug('Skipping log directory %s: %s', directory, exc)
    return files


def analyze_log_file(path: Path) -> list[LogIssue]:
    issues = []
    try:
        with open(path, encoding='utf-8', errors='replace') as fh:
            for lineno, line in enumerate(fh, start=1):
                for log_type, message in classify_line(line.rstrip('\n')):
                    severity = _SEVERITY[log_type]
                    if 'Out of memory' in message:
                        severity = LogSeverity.CRITICAL
                    issues.append(LogIssue(
                        type=log_type,
                        severity=severity,
                        message=message,
                        file=str(path),
                        line=lineno,
                        suggestion=_SUGGESTIONS[log_type],
                    ))
    except OSError as exc:
        logger.debug('Cannot read log %s: %s', path, exc)
    return issues


def analyze_project(project_path: str) -> list[LogIssue]:
    issues: list[LogIssue] = []
    for log_file in find_log_files(project_path):
        issues.extend(analyze_log_file(log_file))
    return issues


def generate_report(issues: list[LogIssue], now: datetime | None = None) -> str:
    now = now or datetime.now()
    out = [
        '/*',
        ' * UNREAL ENGINE LOG ANALYSIS REPORT',
        f' * Generated: {now.isoformat(timespec="seconds")}',
        f' * Total Issues Found: {len(issues)}',
        ' * ==========================================',
        ' */',
        '',
    ]
    for severity in LogSeverity:
        group = [i for i in issues if i.severity == severity]
        if not group:
            continue
        out.append(f'// {severity.name} SEVERITY ISSUES ({len(group)})')
        out.append('// ' + '=' * 50)
        out.extend(issue.format_for_display() for issue in group)
        out.append('')
    return '\n'.join(out)


def analyze_logs(project_path: str) -> str:
    return generate_report(analyze_project(project_path))
