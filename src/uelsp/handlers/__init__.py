"""handlers/__init__.py: re-export handler entry points for convenience."""
from .build_errors import interpret_errors
from .codegen import generate_uclass
from .completion import CompletionSynthesizer
from .logs import analyze_logs
from .sync import sync_header_source

__all__ = [
    'CompletionSynthesizer',
    'analyze_logs',
    'generate_uclass',
    'interpret_errors',
    'sync_header_source',
]
