"""
RemoteClient backed by the adb executable.
Each operation runs one adb subprocess through asyncio.
"""

import asyncio
import logging
import re
from datetime import datetime
from typing import AsyncIterator, List, Optional, Tuple

from ..utils.security_utils import quote_remote_path, validate_device_id
from .platform_tools import resolve_adb_binary
from .remote_client import (
    DeviceDisconnectedError,
    RemoteClientError,
    RemoteDirent,
    RemoteNotFoundError,
    RemotePermissionError,
    RemoteStat,
)

logger = logging.getLogger(__name__)

# toybox `ls -la` line, e.g.
# drwxrwx--x 4 root sdcard_rw 3488 2024-01-15 10:30 Android
_LS_LINE = re.compile(
    r"^(?P<perms>[-dlpscb?][rwxSsTt-]{9})[.+@]?\s+"
    r"(?P<links>\d+)\s+"
    r"(?P<owner>\S+)\s+"
    r"(?P<group>\S+)\s+"
    r"(?P<size>\d+|\d+,\s*\d+)\s+"
    r"(?P<date>\d{4}-\d{2}-\d{2})\s+"
    r"(?P<time>\d{2}:\d{2})\s+"
    r"(?P<name>.+?)(?: -> (?P<target>.+))?$"
)
_STAT_FORMAT = "'%F|%s|%Y'"


def error_from_output(text: str, default: str = "adb command failed") -> RemoteClientError:
    """Pick the exception type matching adb / toybox error text."""
    message = (text or "").strip() or default
    lower = message.lower()
    if "no such file" in lower:
        return RemoteNotFoundError(message)
    if "permission denied" in lower:
        return RemotePermissionError(message)
    if "device offline" in lower or "no devices" in lower or re.search(r"device .*not found", lower):
        return DeviceDisconnectedError(message)
    return RemoteClientError(message)


def parse_ls_line(line: str) -> Optional[RemoteDirent]:
    """Parse one line of `ls -la` output; None for headers and unparsable lines."""
    match = _LS_LINE.match(line.strip())
    if not match:
        return None
    perms = match.group("perms")
    is_directory = perms.startswith("d")
    size_text = match.group("size")
    size = int(size_text) if size_text.isdigit() and not is_directory else None
    try:
        modified_at = datetime.strptime(f"{match.group('date')} {match.group('time')}", "%Y-%m-%d %H:%M")
    except ValueError:
        modified_at = None
    return RemoteDirent(
        name=match.group("name"),
        is_directory=is_directory,
        is_file=perms.startswith("-"),
        size=size,
        modified_at=modified_at,
    )


def parse_stat_output(path: str, output: str) -> RemoteStat:
    """Parse `stat -c '%F|%s|%Y'` output."""
    parts = output.strip().splitlines()[-1].split("|") if output.strip() else []
    if len(parts) != 3:
        raise RemoteClientError(f"Unexpected stat output for {path}: {output.strip()}")
    kind, size, mtime = parts
    try:
        modified_at = datetime.fromtimestamp(int(mtime))
    except ValueError:
        modified_at = None
    return RemoteStat(
        path=path,
        is_directory=kind.strip() == "directory",
        size=int(size) if size.isdigit() else None,
        modified_at=modified_at,
    )


class AdbRemoteClient:
    """Talks to devices through the adb command line tool."""

    def __init__(self, adb_path: Optional[str] = None, auto_download: bool = True,
                 command_timeout: Optional[float] = 15.0, chunk_size: int = 64 * 1024):
        self._adb_path = adb_path
        self._resolved_path: Optional[str] = None
        self.auto_download = auto_download
        self.command_timeout = command_timeout
        self.chunk_size = chunk_size

    @property
    def adb_path(self) -> str:
        if self._resolved_path is None:
            try:
                self._resolved_path = resolve_adb_binary(self._adb_path, self.auto_download)
            except FileNotFoundError as e:
                raise RemoteClientError(str(e)) from e
        return self._resolved_path

    @staticmethod
    def _device_args(device_id: str) -> List[str]:
        return ["-s", validate_device_id(device_id)]

    async def _spawn(self, args: List[str]) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                self.adb_path, *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RemoteClientError(f"Failed to start adb: {e}") from e

    async def run_adb_command(self, args: List[str]) -> Tuple[str, str, int]:
        """Run adb with ``args`` and return (stdout, stderr, returncode)."""
        proc = await self._spawn(args)
        try:
            out, err = await asyncio.wait_for(proc.communicate(), self.command_timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RemoteClientError(f"adb {' '.join(args[:3])} timed out")
        return (
            out.decode("utf-8", "replace").strip(),
            err.decode("utf-8", "replace").strip(),
            proc.returncode,
        )

    async def list_devices(self) -> List[str]:
        out, err, rc = await self.run_adb_command(["devices"])
        if rc != 0:
            raise error_from_output(err or out, "Failed to list devices")
        devices = []
        for line in out.splitlines()[1:]:  # Skip "List of devices attached"
            line = line.strip()
            if line.endswith("\tdevice"):
                devices.append(line.split("\t")[0])
        return devices

    async def read_directory(self, device_id: str, path: str) -> List[RemoteDirent]:
        # Trailing slash so symlinked directories such as /sdcard list their contents
        target = path.rstrip("/") + "/"
        args = self._device_args(device_id) + ["shell", f"ls -la {quote_remote_path(target)}"]
        out, err, rc = await self.run_adb_command(args)
        if rc != 0:
            raise error_from_output(err or out, f"Failed to list directory {path}")

        entries = []
        for line in out.splitlines():
            if not line.strip() or line.startswith("total "):
                continue
            entry = parse_ls_line(line)
            if entry is None:
                logger.debug(f"Unparsed ls line: {line!r}")
                continue
            entries.append(entry)
        return entries

    async def stat(self, device_id: str, path: str) -> RemoteStat:
        args = self._device_args(device_id) + [
            "shell", f"stat -c {_STAT_FORMAT} {quote_remote_path(path)}"
        ]
        out, err, rc = await self.run_adb_command(args)
        combined = "\n".join(part for part in (out, err) if part)
        if rc != 0 or "no such file" in combined.lower():
            raise error_from_output(combined, f"stat failed for {path}")
        return parse_stat_output(path, out)

    async def open_read_stream(self, device_id: str, path: str) -> AsyncIterator[bytes]:
        """Yield the contents of a remote file in chunks.

        exec-out mixes remote errors into stdout, so the path is stat'ed first.
        """
        info = await self.stat(device_id, path)
        if info.is_directory:
            raise RemoteClientError(f"Is a directory: {path}")

        args = self._device_args(device_id) + ["exec-out", f"cat {quote_remote_path(path)}"]
        proc = await self._spawn(args)
        try:
            while True:
                chunk = await proc.stdout.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
            err = await proc.stderr.read()
            rc = await proc.wait()
            if rc != 0:
                raise error_from_output(err.decode("utf-8", "replace"), f"Failed to read {path}")
        finally:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()

    async def push(self, device_id: str, local_path: str, remote_path: str) -> None:
        args = self._device_args(device_id) + ["push", local_path, remote_path]
        out, err, rc = await self.run_adb_command(args)
        if rc != 0:
            raise error_from_output(err or out, "Transfer failed")
        logger.debug(f"adb push: {out}")

    async def run_shell(self, device_id: str, command: str) -> str:
        """Run a remote shell command and return its combined output.

        A non-zero remote exit status is not an error here; callers judge the
        outcome themselves. Only adb-level failures raise.
        """
        out, err, rc = await self.run_adb_command(self._device_args(device_id) + ["shell", command])
        if rc != 0 and err.lower().startswith("error:"):
            raise error_from_output(err)
        return "\n".join(part for part in (out, err) if part)
