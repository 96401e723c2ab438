"""
ADB File Explorer - Package Initialization
Exposes the session core used to browse, preview, download and delete device files.
"""

from .core.adb_client import AdbRemoteClient
from .core.results import BatchResult, ErrorKind, Failure, Success
from .core.temp_registry import TempFileRegistry
from .managers.session_manager import FileExplorerSession
from .settings import Settings, get_settings

__all__ = [
    "AdbRemoteClient",
    "BatchResult",
    "ErrorKind",
    "Failure",
    "FileExplorerSession",
    "Settings",
    "Success",
    "TempFileRegistry",
    "get_settings",
]
