"""uelsp: Unreal Engine C++ completion Language Server."""
try:
    from importlib.metadata import version, PackageNotFoundError
    try:
        __version__ = version('uelsp')
    except PackageNotFoundError:
        __version__ = '0.0.0.dev0'
except ImportError:
    __version__ = '0.0.0.dev0'
