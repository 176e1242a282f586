__version__ = "0.1.0"

# Public API exports
from .config import AppConfig, LogConfig, ServerConfig, load_config, load_snapshot
from .errors import (
    AlreadyExists,
    EndOfStream,
    InvalidHandle,
    InvalidPath,
    IsADirectory,
    MockSFTPError,
    NeverObserved,
    NotADirectory,
    NotFound,
    ReadFailure,
    ServerFailure,
)
from .handlers import CommandHandlers
from .handles import HandleTable
from .modes import OpenMode
from .namespace import Directory, FileMarker, Found, Missing, NamespaceStore
from .observations import ObservationLog
from .responder import FileAttributes, ListingEntry, Responder
from .server import MockSFTPServer

__all__ = [
    "__version__",
    # Server
    "MockSFTPServer",
    # Configuration
    "AppConfig",
    "ServerConfig",
    "LogConfig",
    "load_config",
    "load_snapshot",
    # Core
    "NamespaceStore",
    "Directory",
    "FileMarker",
    "Found",
    "Missing",
    "HandleTable",
    "OpenMode",
    "ObservationLog",
    "CommandHandlers",
    "Responder",
    "FileAttributes",
    "ListingEntry",
    # Errors
    "MockSFTPError",
    "NotFound",
    "NotADirectory",
    "IsADirectory",
    "AlreadyExists",
    "InvalidPath",
    "InvalidHandle",
    "EndOfStream",
    "ReadFailure",
    "ServerFailure",
    "NeverObserved",
]
