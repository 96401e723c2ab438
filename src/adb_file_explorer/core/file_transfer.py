"""
File transfer operations between the device and the local machine.
Handles preview pulls, save-as downloads and uploads.
"""

import asyncio
import contextlib
import logging
import os
import secrets
import tempfile
import time
from pathlib import Path
from typing import Optional, Tuple

from ..utils.security_utils import (
    is_remote_directory,
    remote_basename,
    resolve_within,
    sanitize_local_filename,
    validate_remote_path,
)
from .content_types import ContentKind, classify
from .remote_client import RemoteClient
from .results import (
    ErrorKind,
    Failure,
    ImagePreview,
    Result,
    Success,
    VideoPreview,
    classify_error,
    failure_from,
)
from .temp_registry import TempFileRegistry

logger = logging.getLogger(__name__)


def remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove partial file {path}: {e}")


def reserve_partial_file(destination: str, suffix: str = "") -> Tuple[int, str]:
    """Create an empty hidden sibling of ``destination`` and return (fd, path)."""
    directory = os.path.dirname(os.path.abspath(destination))
    os.makedirs(directory, exist_ok=True)
    return tempfile.mkstemp(prefix=".partial-", suffix=suffix, dir=directory)


class FileTransferService:
    """Pulls and pushes single files through a RemoteClient."""

    def __init__(self, client: RemoteClient, registry: TempFileRegistry,
                 preview_dir: Optional[str] = None):
        self.client = client
        self.registry = registry
        self.preview_dir = preview_dir or tempfile.gettempdir()

    async def pull_to_buffer(self, device_id: str, remote_path: str) -> bytes:
        """Read a whole remote file into memory. Raises on transport errors."""
        chunks = []
        stream = self.client.open_read_stream(device_id, remote_path)
        async with contextlib.aclosing(stream):
            async for chunk in stream:
                chunks.append(chunk)
        return b"".join(chunks)

    async def _stream_to_file(self, device_id: str, remote_path: str, local_path: str) -> int:
        """Stream a remote file onto ``local_path``.

        Chunks go to a hidden sibling file that replaces ``local_path`` only
        after the stream has ended, so a failed pull leaves whatever was at
        ``local_path`` untouched.
        """
        fd, partial = reserve_partial_file(local_path)
        written = 0
        try:
            with os.fdopen(fd, "wb") as fh:
                stream = self.client.open_read_stream(device_id, remote_path)
                async with contextlib.aclosing(stream):
                    async for chunk in stream:
                        await asyncio.to_thread(fh.write, chunk)
                        written += len(chunk)
            os.replace(partial, local_path)
        except BaseException:
            remove_quietly(partial)
            raise
        return written

    def allocate_preview_path(self, remote_path: str) -> str:
        """Reserve a unique local path for a preview of ``remote_path``.

        Raises:
            ValueError: If the basename is unusable or would escape the preview dir
        """
        name = sanitize_local_filename(remote_basename(remote_path))
        token = f"{time.time_ns():x}{secrets.token_hex(4)}"
        os.makedirs(self.preview_dir, exist_ok=True)
        return resolve_within(self.preview_dir, f"{token}-{name}")

    def resolve_preview_file(self, file_name: str) -> Result:
        """Map a preview file name back to its path, refusing anything outside the preview dir."""
        try:
            path = resolve_within(self.preview_dir, file_name)
        except ValueError as e:
            logger.error(f"Preview file access blocked: {file_name}: {e}")
            return Failure(str(e), ErrorKind.INVALID_ARGUMENT)
        if not os.path.isfile(path):
            return Failure(f"Preview file not found: {file_name}", ErrorKind.LOCAL_IO)
        return Success(path)

    async def pull_for_preview(self, device_id: str, remote_path: str) -> Result:
        """Pull a file shaped for inline display.

        Images come back as bytes tagged with a mime type. Videos are streamed
        to a tracked temp file and come back as a local URL plus the path to
        hand to cleanup later.
        """
        content = classify(remote_path)

        if content.kind is ContentKind.IMAGE:
            try:
                data = await self.pull_to_buffer(device_id, remote_path)
            except Exception as e:
                logger.error(f"Error pulling image {remote_path} from {device_id}: {e}")
                return failure_from(e, "Failed to pull image for preview.")
            return Success(ImagePreview(data, content.mime_type))

        if content.kind is ContentKind.VIDEO:
            try:
                local_path = self.allocate_preview_path(remote_path)
            except ValueError as e:
                return Failure(str(e), ErrorKind.INVALID_ARGUMENT)
            try:
                size = await self._stream_to_file(device_id, remote_path, local_path)
            except Exception as e:
                logger.error(f"Error pulling video {remote_path} to temp path {local_path}: {e}")
                return Failure(
                    f"Failed to pull video to temporary location: {e}",
                    classify_error(e),
                )
            self.registry.track(local_path)
            logger.info(f"Video saved to temp path: {local_path} ({size} bytes)")
            return Success(VideoPreview(Path(local_path).as_uri(), local_path, content.mime_type))

        return Failure(
            "File type not supported for direct preview via this method.",
            ErrorKind.UNSUPPORTED_TYPE,
        )

    async def pull_to_local_path(self, device_id: str, remote_path: str,
                                 destination_path: str) -> Result:
        """Save a remote file to a caller chosen destination."""
        try:
            validate_remote_path(remote_path, require_absolute=False)
        except ValueError as e:
            return Failure(str(e), ErrorKind.INVALID_ARGUMENT)
        if not destination_path:
            return Failure("Destination path is required.", ErrorKind.INVALID_ARGUMENT)

        destination_path = os.path.normpath(destination_path)
        local_dir = os.path.dirname(destination_path)
        try:
            if local_dir:
                os.makedirs(local_dir, exist_ok=True)
            size = await self._stream_to_file(device_id, remote_path, destination_path)
        except Exception as e:
            logger.error(f"Error downloading {remote_path} from {device_id}: {e}")
            return failure_from(e, "Failed to download file.")

        logger.info(f"File pulled successfully to {destination_path} ({size} bytes)")
        return Success(destination_path)

    async def push_from_local_path(self, device_id: str, local_path: str,
                                   remote_destination: str) -> Result:
        """Upload a local file. A directory destination keeps the local basename."""
        if not local_path or not os.path.isfile(local_path):
            return Failure(f"Local file not found: {local_path}", ErrorKind.LOCAL_IO)
        try:
            validate_remote_path(remote_destination, require_absolute=False)
        except ValueError as e:
            return Failure(str(e), ErrorKind.INVALID_ARGUMENT)

        remote_path = remote_destination
        if is_remote_directory(remote_destination):
            remote_path = remote_destination + os.path.basename(local_path)

        try:
            await self.client.push(device_id, local_path, remote_path)
        except Exception as e:
            logger.error(f"Error pushing {local_path} to {remote_path} on {device_id}: {e}")
            return failure_from(e, "Transfer failed")

        logger.info(f"File pushed successfully to {remote_path}")
        return Success(remote_path)
