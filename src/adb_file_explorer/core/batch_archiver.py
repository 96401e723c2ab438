"""
Bulk download of selected device files into one ZIP archive.
"""

import asyncio
import io
import logging
import os
import zipfile
from typing import Any, Iterable, List, Mapping, Union

from ..utils.security_utils import is_remote_directory, remote_basename
from .file_transfer import FileTransferService, remove_quietly, reserve_partial_file
from .results import ErrorKind, Failure, Result, Success, classify_error, failure_from

logger = logging.getLogger(__name__)

SelectionItem = Union[str, Mapping[str, Any]]


def item_key(item: SelectionItem) -> str:
    """Accept either a plain key or a browser row carrying one."""
    if isinstance(item, Mapping):
        return str(item.get("key") or "")
    return str(item or "")


def _write_and_sync(fd: int, data: bytes) -> None:
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)
        fh.flush()
        os.fsync(fh.fileno())


async def save_atomically(destination: str, data: bytes) -> None:
    """Write ``data`` so that ``destination`` is either complete or untouched.

    The worker thread only fills the hidden temp file. The final rename runs on
    the event loop, so a cancelled save never publishes the archive.
    """
    fd, partial = reserve_partial_file(destination, ".zip")
    try:
        await asyncio.to_thread(_write_and_sync, fd, data)
        os.replace(partial, destination)
    except BaseException:
        remove_quietly(partial)
        raise


class BatchArchiver:
    """Packages several remote files into a single ZIP.

    Any failed pull aborts the whole job: no archive is better than an
    incomplete one. Entries are named by basename, so two files sharing a
    basename collide and the later one wins.
    """

    def __init__(self, transfer: FileTransferService, compression_level: int = 6):
        self.transfer = transfer
        self.compression_level = compression_level

    def _build_zip(self, files: List[tuple]) -> bytes:
        members = {}
        for name, data in files:
            members[name] = data
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED,
                             compresslevel=self.compression_level) as zf:
            for name, data in members.items():
                zf.writestr(name, data)
        return buffer.getvalue()

    async def archive(self, device_id: str, items: Iterable[SelectionItem],
                      destination: str) -> Result:
        if not destination:
            return Failure("Destination path is required.", ErrorKind.INVALID_ARGUMENT)

        keys = [item_key(item) for item in items or []]
        file_keys = [key for key in keys if key and not is_remote_directory(key)]
        if not file_keys:
            return Failure("No files or device specified for download.", ErrorKind.INVALID_ARGUMENT)
        if len(file_keys) != len(keys):
            logger.debug(f"Skipping {len(keys) - len(file_keys)} directory entries")

        pulled = []
        for key in file_keys:
            try:
                data = await self.transfer.pull_to_buffer(device_id, key)
            except Exception as e:
                logger.error(f"Aborting archive, failed to pull {key} from {device_id}: {e}")
                return Failure(f"Failed to pull {key}: {e}", classify_error(e))
            pulled.append((remote_basename(key), data))

        try:
            archive_bytes = await asyncio.to_thread(self._build_zip, pulled)
            await save_atomically(destination, archive_bytes)
        except Exception as e:
            logger.error(f"Error creating or saving ZIP file {destination}: {e}")
            return failure_from(e, "Failed to create or save ZIP file.")

        logger.info(f"Archived {len(pulled)} file(s) to {destination}")
        return Success(destination)
