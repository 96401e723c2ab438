"""
Tracking and cleanup of temporary preview files.
"""

import atexit
import logging
import os
import threading
from typing import FrozenSet, Optional, Set

from ..utils.security_utils import is_within
from .results import ErrorKind, Failure, Result, Success

logger = logging.getLogger(__name__)


class TempFileRegistry:
    """Single owner of locally materialized preview files.

    All access to the tracked set happens under one lock, so a shutdown sweep
    running alongside a preview pull can neither lose nor double-delete a path.
    """

    def __init__(self, root: Optional[str] = None):
        """Initialize the registry.

        Args:
            root: Preview directory; untracked files inside it may still be cleaned up
        """
        self.root = root
        self._lock = threading.Lock()
        self._paths: Set[str] = set()
        self._hook_installed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._paths)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._paths

    def tracked(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._paths)

    def track(self, path: str) -> None:
        """Record a fully written temp file. Tracking the same path twice is a no-op."""
        with self._lock:
            self._paths.add(path)
        logger.debug(f"Tracking preview file: {path}")

    def cleanup(self, path: str) -> Result:
        """Delete a tracked file and stop tracking it.

        A file that is already gone counts as cleaned. The entry is dropped even
        when the delete itself fails. Paths that are neither tracked nor inside
        ``root`` are refused and left alone.
        """
        if not path or not isinstance(path, str):
            return Failure("Invalid path provided for cleanup.", ErrorKind.INVALID_ARGUMENT)

        with self._lock:
            tracked = path in self._paths
            self._paths.discard(path)

        if not tracked and not (self.root and is_within(self.root, path)):
            logger.warning(f"Refusing to clean up untracked file outside preview dir: {path}")
            return Failure(
                "Path is not a tracked preview file.",
                ErrorKind.INVALID_ARGUMENT,
            )

        try:
            os.unlink(path)
        except FileNotFoundError:
            logger.debug(f"Preview file already gone: {path}")
            return Success(path)
        except OSError as e:
            logger.error(f"Error cleaning up temp preview file {path}: {e}")
            return Failure(str(e), ErrorKind.LOCAL_IO)

        logger.info(f"Cleaned up temp preview file: {path}")
        return Success(path)

    def cleanup_all(self) -> int:
        """Best-effort removal of every tracked file. Never raises.

        Returns the number of files actually deleted.
        """
        with self._lock:
            paths, self._paths = self._paths, set()

        removed = 0
        for path in paths:
            try:
                os.unlink(path)
                removed += 1
            except FileNotFoundError:
                pass
            except Exception as e:
                logger.debug(f"Ignoring cleanup error for {path}: {e}")
        if paths:
            logger.info(f"Removed {removed} of {len(paths)} preview file(s) on shutdown")
        return removed

    def install_shutdown_hook(self) -> None:
        """Run cleanup_all at interpreter exit (registered once)."""
        with self._lock:
            if self._hook_installed:
                return
            self._hook_installed = True
        atexit.register(self.cleanup_all)
