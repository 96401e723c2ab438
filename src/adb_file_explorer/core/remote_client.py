"""
Remote device boundary.
Describes what the core expects from a device-bridge client and the errors it raises.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, List, Optional, Protocol


class RemoteClientError(Exception):
    """Device unreachable, broken stream or any other transport failure."""


class RemoteNotFoundError(RemoteClientError):
    """The remote path does not exist."""


class RemotePermissionError(RemoteClientError):
    """The device refused access to the remote path."""


class DeviceDisconnectedError(RemoteClientError):
    """The device went away or is not enumerable any more."""


@dataclass(frozen=True)
class RemoteDirent:
    """Raw directory entry as reported by the device bridge."""

    name: str
    is_directory: bool
    is_file: bool
    size: Optional[int] = None
    modified_at: Optional[datetime] = None


@dataclass(frozen=True)
class RemoteStat:
    """Metadata for a single remote path."""

    path: str
    is_directory: bool = False
    size: Optional[int] = None
    modified_at: Optional[datetime] = None


class RemoteClient(Protocol):
    """Operations a device bridge must provide.

    Every method may raise a RemoteClientError subclass. ``open_read_stream``
    is an async iterator; errors can surface while it is being consumed.
    """

    async def list_devices(self) -> List[str]:
        ...

    async def read_directory(self, device_id: str, path: str) -> List[RemoteDirent]:
        ...

    def open_read_stream(self, device_id: str, path: str) -> AsyncIterator[bytes]:
        ...

    async def push(self, device_id: str, local_path: str, remote_path: str) -> None:
        ...

    async def run_shell(self, device_id: str, command: str) -> str:
        ...

    async def stat(self, device_id: str, path: str) -> RemoteStat:
        ...
