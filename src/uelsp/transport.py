"""
JSON-RPC transport for uelsp.

Messages travel over a byte stream framed as::

    Content-Length: <N>\\r\\n
    \\r\\n
    <N bytes of UTF-8 JSON>

:class:`FrameReader` is the deframing state machine
(``AWAITING_HEADER → AWAITING_BODY → DISPATCH → AWAITING_HEADER``).  A
malformed header block is logged and skipped; the reader resynchronises on
the next ``Content-Length`` line instead of giving up on the stream.

:class:`ProtocolTransport` owns the dispatch table.  Handlers are registered
with :meth:`ProtocolTransport.feature` and commands with
:meth:`ProtocolTransport.command` (the same decorator shapes as pygls'
``LanguageServer``); feature handlers receive their params structured into the
requested lsprotocol type.  One message is handled completely before the next
header is read.  Methods without a handler are ignored silently: no response
and no error.
"""
from __future__ import annotations

import enum
import json
import logging
import re
import socket
import sys
import threading
from typing import Any, BinaryIO, Callable

from lsprotocol import converters

logger = logging.getLogger(__name__)

JSONRPC_VERSION = '2.0'
CONTENT_LENGTH = b'content-length'

# JSON-RPC error codes
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

_HEADER_RE = re.compile(rb'^([A-Za-z][A-Za-z0-9-]*):[ \t]*(.*?)[ \t]*$')


class FrameState(enum.Enum):
    AWAITING_HEADER = 'awaiting-header'
    AWAITING_BODY = 'awaiting-body'
    DISPATCH = 'dispatch'


class FrameReader:
    """Reads length-prefixed frames from a binary stream."""

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.state = FrameState.AWAITING_HEADER
        self.skipped_headers = 0

    def _malformed(self, line: bytes, reason: str) -> None:
        self.skipped_headers += 1
        logger.warning('Malformed message header (%s): %r; resynchronising', reason, line[:80])

    def _read_header(self) -> int | None:
        """Consume a header block; return the body length or None at EOF."""
        length: int | None = None
        seen_header = False
        while True:
            line = self._stream.readline()
            if not line:
                return None
            line = line.rstrip(b'\r\n')

            if not line:
                if length is not None:
                    return length
                if seen_header:
                    self._malformed(line, 'no Content-Length')
                seen_header = False
                continue

            m = _HEADER_RE.match(line)
            if m is None:
                # A header glued to the tail of a bad body: pick it up from there.
                idx = line.lower().find(CONTENT_LENGTH + b':')
                self._malformed(line, 'missing separator' if length is not None else 'not a header')
                length, seen_header = None, False
                if idx > 0:
                    m = _HEADER_RE.match(line[idx:])
                if m is None:
                    continue

            seen_header = True
            if m.group(1).lower() == CONTENT_LENGTH:
                try:
                    length = int(m.group(2))
                    if length < 0:
                        raise ValueError(length)
                except ValueError:
                    self._malformed(line, 'bad Content-Length')
                    length, seen_header = None, False

    def read_frame(self) -> bytes | None:
        """Return the next message body, or None at end of stream."""
        self.state = FrameState.AWAITING_HEADER
        length = self._read_header()
        if length is None:
            return None
        self.state = FrameState.AWAITING_BODY
        body = self._stream.read(length)
        if body is None or len(body) < length:
            logger.warning('Stream ended inside a %d-byte message body', length)
            return None
        self.state = FrameState.DISPATCH
        return body


def encode_frame(message: dict[str, Any]) -> bytes:
    body = json.dumps(message, ensure_ascii=False, separators=(',', ':')).encode('utf-8')
    return b'Content-Length: %d\r\n\r\n' % len(body) + body


def write_frame(stream: BinaryIO, message: dict[str, Any]) -> None:
    stream.write(encode_frame(message))
    stream.flush()


class ProtocolTransport:
    """Dispatches framed JSON-RPC messages to registered handlers."""

    def __init__(self, name: str, version: str):
        self.name = name
        self.version = version
        self._features: dict[str, tuple[Callable, type | None]] = {}
        self._commands: dict[str, Callable] = {}
        self._converter = converters.get_converter()
        self._writer: BinaryIO | None = None
        self._write_lock = threading.Lock()
        self._stopped = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def feature(self, method: str, params_type: type | None = None) -> Callable:
        """Register the decorated function as the handler for *method*.

        With *params_type* (an lsprotocol attrs class) the raw params are
        structured into it; otherwise the handler gets the params dict.
        """
        def decorator(fn: Callable) -> Callable:
            self._features[method] = (fn, params_type)
            return fn
        return decorator

    def command(self, name: str) -> Callable:
        """Register the decorated function as ``workspace/executeCommand`` *name*.

        The command's ``arguments`` are passed positionally, as pygls does.
        """
        def decorator(fn: Callable) -> Callable:
            self._commands[name] = fn
            return fn
        return decorator

    @property
    def methods(self) -> list[str]:
        return list(self._features)

    @property
    def commands(self) -> list[str]:
        return list(self._commands)

    def lookup_command(self, name: str) -> Callable | None:
        return self._commands.get(name)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _send(self, message: dict[str, Any]) -> None:
        if self._writer is None:
            logger.debug('No client connected; dropping %s', message.get('method', 'response'))
            return
        with self._write_lock:
            write_frame(self._writer, message)

    def send_response(self, msg_id: int | str, result: Any) -> None:
        self._send({
            'jsonrpc': JSONRPC_VERSION,
            'id': msg_id,
            'result': self._converter.unstructure(result),
        })

    def send_error(self, msg_id: int | str, code: int, message: str) -> None:
        self._send({
            'jsonrpc': JSONRPC_VERSION,
            'id': msg_id,
            'error': {'code': code, 'message': message},
        })

    def notify(self, method: str, params: Any = None) -> None:
        self._send({
            'jsonrpc': JSONRPC_VERSION,
            'method': method,
            'params': self._converter.unstructure(params),
        })

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle_message(self, message: Any) -> None:
        """Dispatch one decoded message."""
        if not isinstance(message, dict):
            logger.warning('Ignoring non-object message: %r', message)
            return
        method = message.get('method')
        msg_id = message.get('id')
        is_request = 'id' in message
        if not isinstance(method, str):
            # A response to something we sent; nothing to do.
            return
        entry = self._features.get(method)
        if entry is None:
            logger.debug('Ignoring unhandled method %s', method)
            return
        handler, params_type = entry

        raw_params = message.get('params')
        if raw_params is None:
            raw_params = {}
        try:
            params = (self._converter.structure(raw_params, params_type)
                      if params_type is not None else raw_params)
        except Exception as exc:
            logger.warning('Invalid params for %s: %s', method, exc)
            if is_request:
                self.send_error(msg_id, INVALID_PARAMS, f'Invalid params for {method}')
            return

        try:
            result = handler(params)
        except Exception as exc:
            logger.exception('Handler for %s failed', method)
            if is_request:
                self.send_error(msg_id, INTERNAL_ERROR, f'{type(exc).__name__}: {exc}')
            return

        if is_request:
            self.send_response(msg_id, result)

    def serve(self, reader: BinaryIO, writer: BinaryIO) -> None:
        """Read and dispatch messages until end of stream or :meth:`stop`."""
        self._writer = writer
        self._stopped = False
        frames = FrameReader(reader)
        try:
            while not self._stopped:
                body = frames.read_frame()
                if body is None:
                    logger.info('Input stream closed')
                    break
                try:
                    message = json.loads(body)
                except ValueError as exc:
                    logger.warning('Dropping undecodable message: %s', exc)
                    continue
                self.handle_message(message)
        finally:
            self._writer = None

    def stop(self) -> None:
        """End the serve loop after the current message."""
        self._stopped = True

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def start_io(self, stdin: BinaryIO | None = None, stdout: BinaryIO | None = None) -> None:
        logger.info('%s %s listening on stdio', self.name, self.version)
        self.serve(stdin or sys.stdin.buffer, stdout or sys.stdout.buffer)

    def start_tcp(self, host: str, port: int) -> None:
        """Serve one TCP client at a time until a client sends ``exit``."""
        with socket.create_server((host, port)) as listener:
            logger.info('%s %s listening on %s:%d', self.name, self.version, host, port)
            while not self._stopped:
                conn, addr = listener.accept()
                logger.info('Client connected from %s:%d', *addr[:2])
                with conn, conn.makefile('rb') as rfile, conn.makefile('wb') as wfile:
                    self.serve(rfile, wfile)
