"""
Per-project engine session.

Ties one project to one resolved :class:`~uelsp.version.EngineVersion` and
owns the components that depend on it: the capability model lookup, the
background header scanner and the completion synthesizer.  Also maps
``workspace/executeCommand`` actions to the command collaborators.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from pygls.uris import to_fs_path

from uelsp.capabilities import VersionedCapabilityModel
from uelsp.config import ProjectConfig, read_project_config
from uelsp.engines import EngineInstallationResolver, detect_installation
from uelsp.handlers import build_errors, codegen, logs, sync
from uelsp.handlers.completion import CompletionSynthesizer
from uelsp.scanner import HeaderIntrospectionScanner
from uelsp.version import EngineVersion

logger = logging.getLogger(__name__)

COMMAND_PREFIX = 'unreal.'
NO_PROJECT = '// No Unreal project is open'


class EngineSession:
    """Everything derived from (project, engine version)."""

    def __init__(
        self,
        version: EngineVersion,
        project_path: str | None = None,
        model: VersionedCapabilityModel | None = None,
        scan_headers: bool = True,
    ):
        self.version = version
        self.project_path = project_path or ''
        self.model = model if model is not None else VersionedCapabilityModel()
        self.scanner = HeaderIntrospectionScanner(self.model, version) if scan_headers else None
        self.synthesizer = CompletionSynthesizer(self.model, self.scanner, version)

    @classmethod
    def for_project(
        cls,
        project_path: str | None,
        engine_path: str | None = None,
        resolver: EngineInstallationResolver | None = None,
        model: VersionedCapabilityModel | None = None,
        config: ProjectConfig | None = None,
    ) -> EngineSession:
        """Resolve the engine for *project_path* and build a session.

        An explicit *engine_path* (or ``engine_path`` from ``.uelsp.toml``)
        wins over the project's engine association when it is a valid
        installation.
        """
        config = config if config is not None else read_project_config(project_path)
        resolver = resolver or EngineInstallationResolver()

        version = None
        for pinned in (engine_path, config.engine_path):
            if not pinned:
                continue
            version = detect_installation(pinned)
            if version is not None:
                break
            logger.warning('%s is not an Unreal Engine installation; ignoring', pinned)
        if version is None:
            version = resolver.resolve_project_version(project_path)

        logger.info('Project %s uses Unreal Engine %s at %s',
                    project_path or '<none>', version, version.install_path or '<unknown>')
        return cls(version, project_path, model=model, scan_headers=config.scan_headers)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.scanner is not None:
            self.scanner.start_scan()

    def stop(self) -> None:
        if self.scanner is not None:
            self.scanner.stop()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def execute(
        self,
        action: str,
        params: dict[str, Any],
        document_text: Callable[[str], str | None],
    ) -> str:
        """Run command *action* (with or without the ``unreal.`` prefix).

        *document_text* maps a uri to the open document's text, if any.
        """
        if action.startswith(COMMAND_PREFIX):
            action = action[len(COMMAND_PREFIX):]
        text_document = params.get('textDocument') or {}
        uri = text_document.get('uri', '')
        position = params.get('position') or {}
        line = int(position.get('line', 0))

        if action == 'generateUClass':
            return codegen.generate_uclass(codegen.ClassTemplate(
                class_name=params.get('className', 'MyActor'),
                base_class=params.get('baseClass', 'AActor'),
            ))
        if action == 'generateBlueprintFunction':
            text = document_text(uri)
            if text is None and uri:
                text = sync.read_source(to_fs_path(uri) or '')
            func = codegen.function_at_line(text or '', line)
            if func is None:
                return '// No function found at current position'
            return func.blueprint_wrapper()
        if action == 'syncHeaderSource':
            return sync.sync_header_source((to_fs_path(uri) or '') if uri else '')
        if action in ('analyzeLogs', 'interpretErrors') and not self.project_path:
            return NO_PROJECT
        if action == 'analyzeLogs':
            return logs.analyze_logs(self.project_path)
        if action == 'interpretErrors':
            return build_errors.interpret_errors(self.project_path)
        return f'// Unknown action: {action}'
