"""
Security utilities for input validation and path handling.
Keeps remote shell commands injection-free and local writes inside their root.
"""

import os
import posixpath
import re
import shlex

REMOTE_SEP = "/"

_DEVICE_ID_PATTERN = re.compile(r'^[a-zA-Z0-9.:_-]+$')
_UNSAFE_FILENAME_CHARS = re.compile(r'[\x00-\x1f/\\]')


def validate_device_id(device_id: str) -> str:
    """Validate a device ID as reported by the device bridge.

    Raises:
        ValueError: If the device ID is empty or contains unexpected characters
    """
    if not device_id:
        raise ValueError("Device ID cannot be empty")
    if not _DEVICE_ID_PATTERN.match(device_id):
        raise ValueError("Device ID contains invalid characters")
    return device_id


def validate_remote_path(path: str, require_absolute: bool = True) -> str:
    """Validate a device path before it is used in any remote call.

    Raises:
        ValueError: If the path is empty, relative (when required) or contains a null byte
    """
    if not path:
        raise ValueError("Path cannot be empty")
    if '\x00' in path:
        raise ValueError("Path contains null byte")
    if require_absolute and not path.startswith(REMOTE_SEP):
        raise ValueError(f"Path must be absolute: {path}")
    return path


def quote_remote_path(path: str) -> str:
    """Quote a device path for the remote shell.

    Embedded quotes, spaces and metacharacters all survive as literal text.
    """
    validate_remote_path(path, require_absolute=False)
    return shlex.quote(path)


def is_remote_directory(key: str) -> bool:
    """Directory keys carry a trailing separator; nothing else marks them."""
    return key.endswith(REMOTE_SEP)


def remote_basename(path: str) -> str:
    """Return the last component of a device path, ignoring a trailing separator."""
    return posixpath.basename(path.rstrip(REMOTE_SEP))


def join_remote(parent: str, name: str) -> str:
    """Join a device directory and a child name with exactly one separator."""
    return parent.rstrip(REMOTE_SEP) + REMOTE_SEP + name.lstrip(REMOTE_SEP)


def sanitize_local_filename(name: str) -> str:
    """Make a remote basename safe to use as a single local file name.

    Raises:
        ValueError: If nothing usable remains
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name or "").strip()
    if cleaned in ("", ".", ".."):
        raise ValueError(f"Unusable file name: {name!r}")
    return cleaned


def resolve_within(base_dir: str, name: str) -> str:
    """Join ``name`` onto ``base_dir`` and verify the result stays inside it.

    Raises:
        ValueError: If the normalized path escapes base_dir
    """
    if not name:
        raise ValueError("Path cannot be empty")
    if '\x00' in name:
        raise ValueError("Path contains null byte")

    base_abs = os.path.normpath(os.path.realpath(base_dir))
    candidate = os.path.normpath(os.path.join(base_abs, name))
    if not is_within(base_abs, candidate):
        raise ValueError("Path traversal detected: path is outside base directory")
    return candidate


def is_within(base_dir: str, path: str) -> bool:
    """True if ``path`` resolves to something strictly inside ``base_dir``."""
    base_abs = os.path.normpath(os.path.realpath(base_dir))
    target = os.path.normpath(os.path.realpath(path))
    return target.startswith(base_abs + os.sep)
