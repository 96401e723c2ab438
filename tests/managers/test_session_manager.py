"""Tests for the session facade."""

import asyncio
import os
import time
import zipfile
from unittest.mock import AsyncMock, patch

import pytest

from adb_file_explorer.core.batch_archiver import _write_and_sync
from adb_file_explorer.core.results import BatchResult, ErrorKind, Failure, Success
from adb_file_explorer.managers.session_manager import FileExplorerSession

DEVICE = "emulator-5554"


@pytest.fixture
def session(fake_client, registry, settings):
    return FileExplorerSession(fake_client, registry, settings, install_shutdown_hook=False)


class TestSessionRequests:
    """Test request handling end to end over the fake bridge."""

    @pytest.mark.asyncio
    async def test_list_devices(self, session):
        result = await session.list_devices()
        assert result == Success([DEVICE])

    @pytest.mark.asyncio
    async def test_list_folder_payload(self, session, fake_client, make_dirent):
        fake_client.directories["/sdcard"] = [make_dirent("b.txt", size=3), make_dirent("DCIM", True)]

        result = await session.list_folder(DEVICE, "/sdcard")

        payload = result.to_payload()
        assert payload["success"] is True
        assert [row["key"] for row in payload["data"]] == ["/sdcard/DCIM/", "/sdcard/b.txt"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("device_id,path", [("", "/sdcard"), (DEVICE, ""), (None, None)])
    async def test_missing_arguments(self, session, fake_client, device_id, path):
        for call in (session.list_folder, session.pull_file_for_preview, session.remove_file):
            result = await call(device_id, path)
            assert result.kind is ErrorKind.INVALID_ARGUMENT
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_preview_and_cleanup(self, session, fake_client, registry):
        fake_client.files["/sdcard/clip.mp4"] = b"video-bytes"

        preview = await session.pull_file_for_preview(DEVICE, "/sdcard/clip.mp4")
        local_path = preview.value.local_path
        assert os.path.exists(local_path)

        name = os.path.basename(local_path)
        assert session.resolve_preview_file(name) == Success(local_path)

        cleaned = await session.cleanup_preview_file(local_path)
        assert cleaned.ok
        assert not os.path.exists(local_path)
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_cleanup_refuses_user_files(self, session, temp_directory):
        path = os.path.join(temp_directory, "report.pdf")
        with open(path, "wb") as fh:
            fh.write(b"keep")

        result = await session.cleanup_preview_file(path)

        assert result.kind is ErrorKind.INVALID_ARGUMENT
        assert os.path.exists(path)

    @pytest.mark.asyncio
    async def test_cleanup_rejects_empty_path(self, session):
        result = await session.cleanup_preview_file("")
        assert result.kind is ErrorKind.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_download_into_directory(self, session, fake_client, temp_directory):
        fake_client.files["/sdcard/notes.txt"] = b"hello"

        result = await session.download_file(DEVICE, "/sdcard/notes.txt", temp_directory)

        expected = os.path.join(temp_directory, "notes.txt")
        assert result == Success(expected)
        with open(expected, "rb") as fh:
            assert fh.read() == b"hello"

    @pytest.mark.asyncio
    async def test_download_selected(self, session, fake_client, temp_directory):
        fake_client.files["/sdcard/a.txt"] = b"a"
        fake_client.files["/sdcard/b.txt"] = b"b"
        destination = os.path.join(temp_directory, "out.zip")

        result = await session.download_selected_files(
            DEVICE, [{"key": "/sdcard/a.txt"}, {"key": "/sdcard/b.txt"}], destination
        )

        assert result.ok
        with zipfile.ZipFile(destination) as zf:
            assert zf.namelist() == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_download_selected_requires_items(self, session):
        result = await session.download_selected_files(DEVICE, [], "/tmp/x.zip")
        assert result.reason == "No files or device specified for download."

    @pytest.mark.asyncio
    async def test_push_file(self, session, fake_client, temp_file):
        result = await session.push_file(DEVICE, temp_file, "/sdcard/")
        assert result.ok
        assert fake_client.files[result.value] == b"payload"

    @pytest.mark.asyncio
    async def test_remove_files_summary(self, session, fake_client):
        for name in ("a", "b", "c", "d", "e"):
            fake_client.files[f"/sdcard/{name}.txt"] = b"x"
        fake_client.undeletable.update({"/sdcard/a.txt", "/sdcard/b.txt", "/sdcard/c.txt", "/sdcard/d.txt"})

        result = await session.remove_files(DEVICE, [f"/sdcard/{n}.txt" for n in "abcde"])

        assert isinstance(result, BatchResult)
        text = session.describe_batch(result)
        assert text.startswith("1 file(s) deleted successfully. 4 file(s) failed.")
        assert text.count("Failed to delete") == 3
        assert text.endswith("...and more.")

    @pytest.mark.asyncio
    async def test_remove_files_requires_device(self, session):
        result = await session.remove_files("", ["/sdcard/a.txt"])
        assert isinstance(result, Failure)
        assert session.describe_batch(result) == "Device ID is required."

    def test_shutdown_sweeps_previews(self, session, registry, preview_dir):
        path = os.path.join(preview_dir, "1-a.mp4")
        with open(path, "wb") as fh:
            fh.write(b"x")
        registry.track(path)

        assert session.shutdown() == 1
        assert not os.path.exists(path)


class TestSessionNeverRaises:
    """Test that escaping errors come back as failures."""

    @pytest.mark.asyncio
    async def test_unexpected_exception(self, session, fake_client):
        fake_client.list_devices = AsyncMock(side_effect=KeyError("boom"))
        result = await session.list_devices()
        assert not result.ok
        assert result.kind is ErrorKind.TRANSPORT

    @pytest.mark.asyncio
    async def test_invalid_device_id_from_adapter(self, session):
        with patch.object(session.lister, "list", AsyncMock(side_effect=ValueError("Device ID contains invalid characters"))):
            result = await session.list_folder("bad;id", "/sdcard")
        assert result.kind is ErrorKind.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_operation_timeout(self, fake_client, registry, settings):
        async def slow_read(device_id, path):
            await asyncio.sleep(5)

        fake_client.read_directory = slow_read
        session = FileExplorerSession(
            fake_client, registry, settings.model_copy(update={"operation_timeout": 0.05}),
            install_shutdown_hook=False,
        )

        result = await session.list_folder(DEVICE, "/sdcard")

        assert result.kind is ErrorKind.TIMEOUT
        assert "timed out" in result.reason

    @pytest.mark.asyncio
    async def test_timed_out_archive_never_appears(self, fake_client, registry, settings, temp_directory):
        fake_client.files["/sdcard/a.txt"] = b"a"
        destination = os.path.join(temp_directory, "out.zip")
        session = FileExplorerSession(
            fake_client, registry, settings.model_copy(update={"operation_timeout": 0.1}),
            install_shutdown_hook=False,
        )

        def slow_write(fd, data):
            time.sleep(0.5)
            _write_and_sync(fd, data)

        with patch("adb_file_explorer.core.batch_archiver._write_and_sync", side_effect=slow_write):
            result = await session.download_selected_files(DEVICE, ["/sdcard/a.txt"], destination)
            await asyncio.sleep(1.0)

        assert result.kind is ErrorKind.TIMEOUT
        assert not os.path.exists(destination)
        assert os.listdir(temp_directory) == []

    def test_shutdown_hook_installed(self, fake_client, settings):
        with patch("adb_file_explorer.core.temp_registry.atexit.register") as register:
            session = FileExplorerSession(fake_client, settings=settings)
        register.assert_called_once_with(session.registry.cleanup_all)
