"""Pytest configuration and fixtures."""

import os
import shlex
import sys

import pytest

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from adb_file_explorer.core.remote_client import (  # noqa: E402
    RemoteDirent,
    RemoteNotFoundError,
    RemoteStat,
)
from adb_file_explorer.core.temp_registry import TempFileRegistry  # noqa: E402
from adb_file_explorer.settings import Settings  # noqa: E402

DEVICE_ID = "emulator-5554"


class MidStreamFailure:
    """File contents that break after a prefix has been delivered."""

    def __init__(self, prefix: bytes, error: Exception):
        self.prefix = prefix
        self.error = error


class FakeRemoteClient:
    """In-memory device bridge with scriptable failures."""

    def __init__(self):
        self.devices = [DEVICE_ID]
        self.directories = {}
        self.files = {}
        self.stat_errors = {}
        self.shell_outputs = {}
        self.shell_error = None
        self.push_error = None
        self.undeletable = set()
        self.calls = []
        self.closed_streams = []

    async def list_devices(self):
        self.calls.append(("list_devices",))
        return list(self.devices)

    async def read_directory(self, device_id, path):
        self.calls.append(("read_directory", device_id, path))
        value = self.directories.get(path)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise RemoteNotFoundError(f"ls: {path}: No such file or directory")
        return list(value)

    async def open_read_stream(self, device_id, path):
        self.calls.append(("open_read_stream", device_id, path))
        value = self.files.get(path)
        if isinstance(value, Exception):
            raise value
        if value is None:
            raise RemoteNotFoundError(f"{path}: No such file or directory")
        try:
            if isinstance(value, MidStreamFailure):
                yield value.prefix
                raise value.error
            for i in range(0, len(value), 4):
                yield value[i:i + 4]
        finally:
            self.closed_streams.append(path)

    async def push(self, device_id, local_path, remote_path):
        self.calls.append(("push", device_id, local_path, remote_path))
        if self.push_error:
            raise self.push_error
        with open(local_path, "rb") as fh:
            self.files[remote_path] = fh.read()

    async def run_shell(self, device_id, command):
        self.calls.append(("run_shell", device_id, command))
        if self.shell_error:
            raise self.shell_error
        args = shlex.split(command)
        path = args[-1]
        if args[:2] == ["rm", "-f"] and path not in self.undeletable:
            self.files.pop(path, None)
        return self.shell_outputs.get(path, "")

    async def stat(self, device_id, path):
        self.calls.append(("stat", device_id, path))
        if path in self.stat_errors:
            raise self.stat_errors[path]
        if path in self.files:
            value = self.files[path]
            size = len(value) if isinstance(value, bytes) else None
            return RemoteStat(path=path, size=size)
        raise RemoteNotFoundError(f"stat: '{path}': No such file or directory")

    def remote_calls(self, name):
        return [call for call in self.calls if call[0] == name]


@pytest.fixture
def fake_client():
    """Create a fake device bridge for testing."""
    return FakeRemoteClient()


@pytest.fixture
def registry(preview_dir):
    return TempFileRegistry(preview_dir)


@pytest.fixture
def preview_dir(tmp_path):
    path = tmp_path / "previews"
    path.mkdir()
    return str(path)


@pytest.fixture
def settings(preview_dir):
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, preview_dir=preview_dir, operation_timeout=None)


@pytest.fixture
def temp_directory(tmp_path):
    """Create a temporary directory for testing."""
    path = tmp_path / "work"
    path.mkdir()
    return str(path)


def dirent(name, is_directory=False, size=None, modified_at=None):
    return RemoteDirent(
        name=name,
        is_directory=is_directory,
        is_file=not is_directory,
        size=size,
        modified_at=modified_at,
    )


@pytest.fixture
def make_dirent():
    return dirent


@pytest.fixture
def mid_stream_failure():
    return MidStreamFailure


@pytest.fixture
def temp_file(temp_directory):
    """Create a temporary file for testing."""
    path = os.path.join(temp_directory, "upload.bin")
    with open(path, "wb") as fh:
        fh.write(b"payload")
    return path
