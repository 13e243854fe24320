"""
uelsp Language Server.

Registers the LSP methods the service answers and wires them to the engine
session (version resolution, capability model, header scan, completion
synthesis) and the open-document cache.
"""
from __future__ import annotations

import logging
from typing import Any

from lsprotocol import types as lsp
from pygls.uris import to_fs_path

from uelsp import __version__
from uelsp.config import apply_log_level, read_project_config
from uelsp.document import DocumentStore, completion_context
from uelsp.session import COMMAND_PREFIX, NO_PROJECT, EngineSession
from uelsp.transport import ProtocolTransport

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Server instance + per-session state
# ---------------------------------------------------------------------------

server = ProtocolTransport('uelsp', __version__)

# Per-URI document store (populated on open/change).
_docs = DocumentStore()

# Engine session for the current project; built at startup or on initialize.
_session: EngineSession | None = None

# Project/engine paths given on the command line (highest priority).
_project_path: str | None = None
_engine_path: str | None = None

TRIGGER_CHARACTERS = ['.', ':', 'U', 'A', 'F']


def configure(project_path: str | None = None, engine_path: str | None = None) -> None:
    """Record the command-line project and engine paths."""
    global _project_path, _engine_path
    _project_path = project_path
    _engine_path = engine_path


def set_session(session: EngineSession | None) -> None:
    """Install *session* (starting its header scan), stopping any previous one."""
    global _session
    if _session is not None and _session is not session:
        _session.stop()
    _session = session
    if session is not None:
        session.start()


def current_session() -> EngineSession | None:
    return _session


def open_session(project_path: str | None, engine_path: str | None = None) -> EngineSession:
    """Resolve the engine for *project_path* and make it the current session."""
    config = read_project_config(project_path)
    apply_log_level(config.log_level)
    session = EngineSession.for_project(project_path, engine_path=engine_path, config=config)
    set_session(session)
    return session


def capability_manifest() -> lsp.InitializeResult:
    return lsp.InitializeResult(
        capabilities=lsp.ServerCapabilities(
            text_document_sync=lsp.TextDocumentSyncKind.Full,
            completion_provider=lsp.CompletionOptions(trigger_characters=TRIGGER_CHARACTERS),
            execute_command_provider=lsp.ExecuteCommandOptions(
                commands=server.commands,
            ),
        ),
        server_info=lsp.ServerInfo(name=server.name, version=__version__),
    )


def _workspace_root(params: dict[str, Any]) -> str | None:
    """Filesystem path of the client's workspace root, if it sent one."""
    root_uri = params.get('rootUri')
    if not root_uri:
        folders = params.get('workspaceFolders') or []
        root_uri = folders[0].get('uri') if folders and isinstance(folders[0], dict) else None
    if root_uri:
        return to_fs_path(root_uri) if root_uri.startswith('file:') else root_uri
    return params.get('rootPath') or None


def _document_text(uri: str) -> str | None:
    doc = _docs.get(uri)
    return doc.source if doc is not None else None


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

@server.feature(lsp.INITIALIZE)
def on_initialize(params: dict[str, Any]) -> lsp.InitializeResult:
    opts = params.get('initializationOptions')
    opts = opts if isinstance(opts, dict) else {}

    if _session is None:
        project = _project_path or _workspace_root(params)
        open_session(project, engine_path=_engine_path or opts.get('enginePath'))

    # Honor an explicit log level in initializationOptions
    apply_log_level(opts.get('logLevel'))

    session = _session
    server.notify(lsp.WINDOW_LOG_MESSAGE, lsp.LogMessageParams(
        type=lsp.MessageType.Info,
        message=f'uelsp: Unreal Engine {session.version} '
                f'({session.version.install_path or "no installation found"})',
    ))
    return capability_manifest()


@server.feature(lsp.SHUTDOWN)
def on_shutdown(params: Any) -> None:
    if _session is not None:
        _session.stop()
    return None


@server.feature(lsp.EXIT)
def on_exit(params: Any) -> None:
    if _session is not None:
        _session.stop()
    server.stop()


# ---------------------------------------------------------------------------
# Text document synchronisation
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_DID_OPEN)
def did_open(params: dict[str, Any]) -> None:
    # Only uri and text are needed; languageId and version are optional here.
    td = params.get('textDocument') or {}
    uri, text = td.get('uri'), td.get('text')
    if not uri or not isinstance(text, str):
        logger.debug('did_open: missing uri or text in %r', td)
        return
    _docs.open(uri, text)


@server.feature(lsp.TEXT_DOCUMENT_DID_CHANGE)
def did_change(params: dict[str, Any]) -> None:
    uri = (params.get('textDocument') or {}).get('uri')
    if not uri:
        return
    # Only whole-document changes carry the full text; range edits are ignored.
    full_texts = [
        change['text'] for change in params.get('contentChanges') or []
        if isinstance(change, dict) and 'range' not in change and isinstance(change.get('text'), str)
    ]
    if not full_texts:
        logger.debug('did_change: no full-text change for %s', uri)
        return
    _docs.replace(uri, full_texts[-1])


@server.feature(lsp.TEXT_DOCUMENT_DID_CLOSE, lsp.DidCloseTextDocumentParams)
def did_close(params: lsp.DidCloseTextDocumentParams) -> None:
    _docs.close(params.text_document.uri)


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

@server.feature(lsp.TEXT_DOCUMENT_COMPLETION, lsp.CompletionParams)
def completion(params: lsp.CompletionParams) -> lsp.CompletionList | None:
    doc = _docs.get(params.text_document.uri)
    if doc is None or _session is None:
        return None
    prefix, context = completion_context(doc, params.position)
    synthesizer = _session.synthesizer
    items = synthesizer.synthesize(prefix, context)
    logger.debug('completion: prefix=%r context=%r -> %d items', prefix, context, len(items))
    return lsp.CompletionList(is_incomplete=synthesizer.is_incomplete, items=items)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
# The client calls:
#   client.sendRequest('workspace/executeCommand',
#                      {command: 'unreal.generateUClass', arguments: [{...}]})
# arguments[0] carries textDocument.uri, position and command-specific fields
# (className, baseClass).  The ``unreal.`` prefix may be omitted.

def _run_action(action: str, params: dict[str, Any] | None) -> str:
    if _session is None:
        return NO_PROJECT
    return _session.execute(action, params if isinstance(params, dict) else {}, _document_text)


@server.command(f'{COMMAND_PREFIX}generateUClass')
def cmd_generate_uclass(params: dict[str, Any] | None = None, *_rest) -> str:
    return _run_action('generateUClass', params)


@server.command(f'{COMMAND_PREFIX}generateBlueprintFunction')
def cmd_generate_blueprint_function(params: dict[str, Any] | None = None, *_rest) -> str:
    return _run_action('generateBlueprintFunction', params)


@server.command(f'{COMMAND_PREFIX}syncHeaderSource')
def cmd_sync_header_source(params: dict[str, Any] | None = None, *_rest) -> str:
    return _run_action('syncHeaderSource', params)


@server.command(f'{COMMAND_PREFIX}analyzeLogs')
def cmd_analyze_logs(params: dict[str, Any] | None = None, *_rest) -> str:
    return _run_action('analyzeLogs', params)


@server.command(f'{COMMAND_PREFIX}interpretErrors')
def cmd_interpret_errors(params: dict[str, Any] | None = None, *_rest) -> str:
    return _run_action('interpretErrors', params)


@server.feature(lsp.WORKSPACE_EXECUTE_COMMAND, lsp.ExecuteCommandParams)
def execute_command(params: lsp.ExecuteCommandParams) -> str:
    name = params.command
    handler = server.lookup_command(name) or server.lookup_command(f'{COMMAND_PREFIX}{name}')
    if handler is None:
        return _run_action(name, {})
    return handler(*(params.arguments or []))
