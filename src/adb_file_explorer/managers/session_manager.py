"""
Session Manager Module
Request/response boundary between the presentation layer and the device core.
"""

import asyncio
import logging
import os
from typing import Any, Awaitable, Iterable, Optional, Union

from ..core.adb_client import AdbRemoteClient
from ..core.batch_archiver import BatchArchiver, SelectionItem
from ..core.deletion import DeleteItem, DeletionCoordinator
from ..core.directory_lister import DirectoryLister
from ..core.file_transfer import FileTransferService
from ..core.remote_client import RemoteClient
from ..core.results import BatchResult, ErrorKind, Failure, Result, Success, failure_from
from ..core.temp_registry import TempFileRegistry
from ..settings import Settings, get_settings
from ..utils.security_utils import remote_basename

logger = logging.getLogger(__name__)


class FileExplorerSession:
    """Entry point used by the UI. No method raises; every call returns a result."""

    def __init__(self, client: Optional[RemoteClient] = None,
                 registry: Optional[TempFileRegistry] = None,
                 settings: Optional[Settings] = None,
                 install_shutdown_hook: bool = True):
        """Initialize the session.

        Args:
            client: Device bridge; defaults to the adb command line adapter
            registry: Temp file registry; a private one is created when omitted
            settings: Configuration; defaults to the process-wide settings
            install_shutdown_hook: Sweep preview files at interpreter exit
        """
        self.settings = settings or get_settings()
        self.client = client or AdbRemoteClient(
            adb_path=self.settings.adb_path,
            auto_download=self.settings.auto_download_adb,
            command_timeout=self.settings.command_timeout,
            chunk_size=self.settings.read_chunk_size,
        )
        if registry is None:
            registry = TempFileRegistry(self.settings.preview_dir)
        self.registry = registry
        self.lister = DirectoryLister(self.client)
        self.transfer = FileTransferService(self.client, self.registry, self.settings.preview_dir)
        self.archiver = BatchArchiver(self.transfer, self.settings.archive_compression_level)
        self.deleter = DeletionCoordinator(self.client)

        if install_shutdown_hook:
            self.registry.install_shutdown_hook()

    async def _guard(self, operation: str, awaitable: Awaitable) -> Union[Result, BatchResult]:
        """Await a core call under the configured timeout, converting any escape into a Failure."""
        timeout = self.settings.operation_timeout
        try:
            if timeout:
                return await asyncio.wait_for(awaitable, timeout)
            return await awaitable
        except asyncio.TimeoutError:
            logger.error(f"{operation} timed out after {timeout} seconds")
            return Failure(f"{operation} timed out after {timeout} seconds.", ErrorKind.TIMEOUT)
        except Exception as e:
            logger.exception(f"Unexpected error during {operation}")
            return failure_from(e, f"An unexpected error occurred during {operation}.")

    @staticmethod
    def _missing(*values: Any) -> Optional[Failure]:
        if all(values):
            return None
        return Failure("Device ID and path are required.", ErrorKind.INVALID_ARGUMENT)

    async def list_devices(self) -> Result:
        async def _list():
            return Success(await self.client.list_devices())
        return await self._guard("list devices", _list())

    async def list_folder(self, device_id: str, path: str) -> Result:
        return self._missing(device_id, path) or await self._guard(
            "list folder", self.lister.list(device_id, path)
        )

    async def pull_file_for_preview(self, device_id: str, remote_path: str) -> Result:
        return self._missing(device_id, remote_path) or await self._guard(
            "preview pull", self.transfer.pull_for_preview(device_id, remote_path)
        )

    async def download_file(self, device_id: str, remote_path: str, destination: str) -> Result:
        """Save a remote file; a directory destination keeps the remote basename."""
        missing = self._missing(device_id, remote_path, destination)
        if missing:
            return missing
        if os.path.isdir(destination):
            destination = os.path.join(destination, remote_basename(remote_path))
        return await self._guard(
            "download", self.transfer.pull_to_local_path(device_id, remote_path, destination)
        )

    async def download_selected_files(self, device_id: str, items: Iterable[SelectionItem],
                                      destination: str) -> Result:
        if not device_id or not items:
            return Failure("No files or device specified for download.", ErrorKind.INVALID_ARGUMENT)
        return await self._guard(
            "ZIP download", self.archiver.archive(device_id, list(items), destination)
        )

    async def push_file(self, device_id: str, local_path: str, remote_destination: str) -> Result:
        return self._missing(device_id, local_path, remote_destination) or await self._guard(
            "push", self.transfer.push_from_local_path(device_id, local_path, remote_destination)
        )

    async def remove_file(self, device_id: str, remote_path: str) -> Result:
        return self._missing(device_id, remote_path) or await self._guard(
            "remove file", self.deleter.delete_one(device_id, remote_path)
        )

    async def remove_files(self, device_id: str,
                           remote_paths: Iterable[DeleteItem]) -> Union[BatchResult, Failure]:
        if not device_id:
            return Failure("Device ID is required.", ErrorKind.INVALID_ARGUMENT)
        return await self._guard(
            "batch remove", self.deleter.delete_many(device_id, list(remote_paths or []))
        )

    async def cleanup_preview_file(self, local_path: str) -> Result:
        return self.registry.cleanup(local_path)

    def resolve_preview_file(self, file_name: str) -> Result:
        return self.transfer.resolve_preview_file(file_name)

    def describe_batch(self, result: Union[BatchResult, Failure]) -> str:
        """Bounded status text for a batch delete."""
        if isinstance(result, BatchResult):
            return result.summary("delete", "deleted", self.settings.batch_detail_limit)
        return result.reason

    def shutdown(self) -> int:
        """Remove every outstanding preview file."""
        return self.registry.cleanup_all()
