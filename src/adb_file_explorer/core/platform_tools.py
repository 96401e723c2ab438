"""
Locating and installing the adb executable.
Prefers a configured or system adb, falls back to a per-user copy of Google's platform-tools.
"""

import logging
import os
import shutil
import sys
import tempfile
import zipfile
from typing import Optional

import requests
from platformdirs import user_data_dir

from ..settings import APP_NAME

logger = logging.getLogger(__name__)

PLATFORM_TOOLS_URLS = {
    "linux": "https://dl.google.com/android/repository/platform-tools-latest-linux.zip",
    "win32": "https://dl.google.com/android/repository/platform-tools-latest-windows.zip",
    "darwin": "https://dl.google.com/android/repository/platform-tools-latest-darwin.zip",
}
TRUSTED_URL_PREFIX = "https://dl.google.com/android/"
MAX_DOWNLOAD_BYTES = 200 * 1024 * 1024
MAX_EXTRACTED_BYTES = 500 * 1024 * 1024


def get_adb_binary_name() -> str:
    return "adb.exe" if sys.platform.startswith("win") else "adb"


def get_platform_key() -> str:
    for key in PLATFORM_TOOLS_URLS:
        if sys.platform.startswith(key):
            return key
    raise RuntimeError(f"Unsupported platform for platform-tools download: {sys.platform}")


def get_install_root() -> str:
    """Per-user directory holding downloaded platform-tools."""
    return os.path.join(user_data_dir(APP_NAME), "platform-tools")


def find_installed_adb(install_root: Optional[str] = None) -> Optional[str]:
    candidate = os.path.join(install_root or get_install_root(), "current", get_adb_binary_name())
    return candidate if os.path.isfile(candidate) else None


def _check_archive(zf: zipfile.ZipFile, extract_dir: str) -> None:
    """Reject oversized archives and members that would land outside extract_dir."""
    total = sum(info.file_size for info in zf.infolist())
    if total > MAX_EXTRACTED_BYTES:
        raise RuntimeError("Zip archive uncompressed size exceeds safety limit")
    root = extract_dir if extract_dir.endswith(os.sep) else extract_dir + os.sep
    for info in zf.infolist():
        target = os.path.normpath(os.path.join(extract_dir, info.filename))
        if not target.startswith(root):
            raise RuntimeError(f"Zip contains path traversal: {info.filename}")


def download_platform_tools(install_root: Optional[str] = None, url: Optional[str] = None,
                            timeout: float = 30) -> str:
    """Download platform-tools into the per-user install root and return the adb path.

    The archive is fetched and unpacked in a scratch directory and then moved
    into ``<root>/current`` in one step, so a failed download never leaves a
    half-installed copy behind.
    """
    install_root = install_root or get_install_root()
    url = url or PLATFORM_TOOLS_URLS[get_platform_key()]
    os.makedirs(install_root, exist_ok=True)

    scratch = tempfile.mkdtemp(prefix="platform-tools-", dir=install_root)
    try:
        logger.info(f"Downloading platform-tools from {url}")
        resp = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
        resp.raise_for_status()
        if not resp.url.startswith(TRUSTED_URL_PREFIX):
            raise RuntimeError(f"Redirect to untrusted domain: {resp.url}")

        zip_path = os.path.join(scratch, "platform-tools.zip")
        downloaded = 0
        with open(zip_path, "wb") as fh:
            for chunk in resp.iter_content(chunk_size=8192):
                if not chunk:
                    continue
                downloaded += len(chunk)
                if downloaded > MAX_DOWNLOAD_BYTES:
                    raise RuntimeError("Downloaded file exceeds maximum size limit")
                fh.write(chunk)

        if not zipfile.is_zipfile(zip_path):
            raise RuntimeError("Downloaded file is not a valid zip archive")

        extract_dir = os.path.join(scratch, "extracted")
        with zipfile.ZipFile(zip_path, "r") as zf:
            _check_archive(zf, extract_dir)
            zf.extractall(extract_dir)

        extracted = os.path.join(extract_dir, "platform-tools")
        if not os.path.isdir(extracted):
            raise RuntimeError("Platform-tools not found in archive")

        current = os.path.join(install_root, "current")
        if os.path.isdir(current):
            shutil.rmtree(current)
        shutil.move(extracted, current)

        adb_path = os.path.join(current, get_adb_binary_name())
        if os.name == "posix" and os.path.isfile(adb_path):
            os.chmod(adb_path, 0o755)
        logger.info(f"Installed adb at {adb_path}")
        return adb_path
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def resolve_adb_binary(adb_path: Optional[str] = None, auto_download: bool = True) -> str:
    """Find an adb executable, downloading platform-tools as a last resort.

    Raises:
        FileNotFoundError: If no adb is available and downloading is disabled or fails
    """
    if adb_path:
        if os.path.isfile(adb_path):
            return adb_path
        raise FileNotFoundError(f"Configured adb not found: {adb_path}")

    on_path = shutil.which(get_adb_binary_name())
    if on_path:
        return on_path

    installed = find_installed_adb()
    if installed:
        return installed

    if not auto_download:
        raise FileNotFoundError("adb executable not found and automatic download is disabled")
    try:
        return download_platform_tools()
    except (requests.RequestException, RuntimeError, OSError) as e:
        raise FileNotFoundError(f"Failed to download Android platform-tools: {e}") from e
