"""
Directory listing for the file browser.
Turns raw device entries into keyed, ordered rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..utils.security_utils import REMOTE_SEP, join_remote, validate_remote_path
from .remote_client import RemoteClient, RemoteDirent
from .results import ErrorKind, Failure, Result, Success, failure_from

logger = logging.getLogger(__name__)

PSEUDO_ENTRIES = (".", "..")


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    key: str
    is_directory: bool
    is_file: bool
    size: Optional[int] = None
    modified_at: Optional[datetime] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "key": self.key,
            "isDirectory": self.is_directory,
            "isFile": self.is_file,
            "size": self.size,
            "mtime": self.modified_at.isoformat() if self.modified_at else None,
        }


def make_entry(parent: str, raw: RemoteDirent) -> DirectoryEntry:
    """Build the browser row for one raw entry of ``parent``."""
    key = join_remote(parent, raw.name)
    if raw.is_directory:
        key += REMOTE_SEP
    size = None
    if not raw.is_directory and raw.size is not None and raw.size >= 0:
        size = int(raw.size)
    return DirectoryEntry(
        name=raw.name,
        key=key,
        is_directory=raw.is_directory,
        is_file=bool(raw.is_file) and not raw.is_directory,
        size=size,
        modified_at=raw.modified_at,
    )


def normalize_entries(parent: str, raw_entries: Iterable[RemoteDirent]) -> List[DirectoryEntry]:
    """Drop pseudo and malformed entries, derive keys, order directories first."""
    entries = []
    for raw in raw_entries:
        if raw.name in PSEUDO_ENTRIES:
            continue
        if not raw.name or REMOTE_SEP in raw.name:
            logger.warning(f"Skipping malformed entry {raw.name!r} in {parent}")
            continue
        entries.append(make_entry(parent, raw))
    entries.sort(key=lambda e: (not e.is_directory, e.name.casefold()))
    return entries


class DirectoryLister:
    """Lists device directories. Results are never cached."""

    def __init__(self, client: RemoteClient):
        self.client = client

    async def list(self, device_id: str, remote_path: str) -> Result:
        try:
            validate_remote_path(remote_path)
        except ValueError as e:
            return Failure(str(e), ErrorKind.INVALID_ARGUMENT)

        try:
            raw_entries = await self.client.read_directory(device_id, remote_path)
        except Exception as e:
            logger.error(f"Error listing folder {remote_path} on {device_id}: {e}")
            return failure_from(e, f"Failed to list directory {remote_path}")

        entries = normalize_entries(remote_path, raw_entries)
        logger.debug(f"Listed {len(entries)} entries in {remote_path} on {device_id}")
        return Success(entries)
