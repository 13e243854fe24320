"""
uelsp: Unreal Engine C++ Language Server CLI entry point.

Usage
-----
    uelsp                          # stdio mode (default, for use with editors)
    uelsp --stdio                  # explicit stdio mode
    uelsp --tcp 2087               # listen on TCP port (useful for debugging)
    uelsp --project-path ~/MyGame  # resolve the engine for this project up front
    uelsp --list-engines           # print the installations found and exit
"""
from __future__ import annotations

import argparse
import os
import sys


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='uelsp',
        description='Unreal Engine C++ completion Language Server (LSP).',
    )
    mode = p.add_mutually_exclusive_group()
    mode.add_argument(
        '--stdio',
        action='store_true',
        default=False,
        help='Communicate over stdin/stdout (default when no flag given)',
    )
    mode.add_argument(
        '--tcp',
        metavar='PORT',
        type=int,
        default=None,
        help='Listen for connections on the given TCP port instead of stdio',
    )
    p.add_argument(
        '--project-path',
        metavar='DIR',
        default=None,
        help='Unreal project directory (the one holding the .uproject file)',
    )
    p.add_argument(
        '--search-path',
        metavar='DIR',
        default=None,
        help='Look for an Unreal project under DIR when --project-path is not given',
    )
    p.add_argument(
        '--engine-path',
        metavar='DIR',
        default=None,
        help='Use the engine installed at DIR instead of resolving one',
    )
    p.add_argument(
        '--list-engines',
        action='store_true',
        default=False,
        help='Print the discovered engine installations and exit',
    )
    p.add_argument(
        '--version',
        action='store_true',
        default=False,
        help='Print the uelsp version and exit',
    )
    p.add_argument(
        '--log-level',
        metavar='LEVEL',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Logging level written to stderr (default: WARNING)',
    )
    return p


def _find_project(args: argparse.Namespace) -> str | None:
    """Pick the project directory from the arguments or the working directory."""
    import logging
    from uelsp.engines import find_projects

    if args.project_path:
        return os.path.abspath(args.project_path)
    search = args.search_path or os.getcwd()
    projects = find_projects(search)
    if not projects:
        return None
    if len(projects) > 1:
        logging.getLogger('uelsp.cli').info(
            'Found %d projects under %s; using %s', len(projects), search, projects[0])
    return str(projects[0])


def uelsp(argv: list[str] | None = None) -> None:
    """Entry point for the ``uelsp`` command."""
    import logging
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
        stream=sys.stderr,
    )

    from uelsp import __version__

    if args.version:
        print(f'uelsp {__version__}')
        sys.exit(0)

    if args.list_engines:
        from uelsp.engines import EngineInstallationResolver
        installations = EngineInstallationResolver().discover_installations()
        if not installations:
            print('No Unreal Engine installations found')
        for installed in installations:
            print(f'{installed}\t{installed.install_path}')
        sys.exit(0)

    from uelsp import server as server_module

    project_path = _find_project(args)
    server_module.configure(project_path=project_path, engine_path=args.engine_path)
    if project_path is not None or args.engine_path:
        server_module.open_session(project_path, engine_path=args.engine_path)

    server = server_module.server
    try:
        if args.tcp is not None:
            server.start_tcp('127.0.0.1', args.tcp)
        else:
            # Default (and --stdio): communicate via stdin/stdout
            server.start_io()
    finally:
        session = server_module.current_session()
        if session is not None:
            session.stop()


if __name__ == '__main__':
    uelsp()
