"""linkauth - session-based authentication with passwords and magic links."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("linkauth")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
