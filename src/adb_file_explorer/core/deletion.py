"""
Verified file deletion on the device.

``rm`` output and exit status differ across devices and shells, so a delete
only counts once a follow-up stat shows the file is gone.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Union

from ..utils.security_utils import (
    is_remote_directory,
    quote_remote_path,
    remote_basename,
)
from .remote_client import RemoteClient, RemoteNotFoundError
from .results import (
    BatchFailure,
    BatchResult,
    ErrorKind,
    Failure,
    Result,
    Success,
    classify_error,
)

logger = logging.getLogger(__name__)

DeleteItem = Union[str, Mapping[str, Any]]


class DeleteState(str, enum.Enum):
    ISSUED = "issued"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"      # stat reported the file absent
    UNCONFIRMED = "unconfirmed"  # stat still finds the file
    UNVERIFIED = "unverified"    # stat failed for another reason
    FAILED = "failed"            # the rm command itself could not run


@dataclass
class DeleteOutcome:
    path: str
    state: DeleteState = DeleteState.ISSUED
    shell_output: str = ""
    reason: str = ""
    kind: ErrorKind = ErrorKind.TRANSPORT

    @property
    def confirmed(self) -> bool:
        return self.state is DeleteState.CONFIRMED

    def to_result(self) -> Result:
        if self.confirmed:
            return Success(self.path)
        return Failure(self.reason or f"Failed to delete {self.path}", self.kind)


def build_remove_command(remote_path: str) -> str:
    return f"rm -f {quote_remote_path(remote_path)}"


def is_not_found_error(error: BaseException) -> bool:
    if isinstance(error, RemoteNotFoundError):
        return True
    return "no such file" in str(error).lower()


class DeletionCoordinator:
    """Single and batch file deletion with stat based confirmation."""

    def __init__(self, client: RemoteClient):
        self.client = client

    async def run_protocol(self, device_id: str, remote_path: str) -> DeleteOutcome:
        """Issue the delete, then verify it. Never raises for transport errors."""
        outcome = DeleteOutcome(remote_path)

        try:
            output = await self.client.run_shell(device_id, build_remove_command(remote_path))
        except Exception as e:
            logger.error(f"Shell 'rm' failed for {remote_path} on {device_id}: {e}")
            outcome.state = DeleteState.FAILED
            outcome.reason = f"Shell command execution failed: {e}"
            outcome.kind = classify_error(e)
            return outcome
        outcome.shell_output = (output or "").strip()

        outcome.state = DeleteState.VERIFYING
        try:
            await self.client.stat(device_id, remote_path)
        except Exception as e:
            if is_not_found_error(e):
                outcome.state = DeleteState.CONFIRMED
                logger.info(f"File {remote_path} successfully removed from {device_id}.")
            else:
                outcome.state = DeleteState.UNVERIFIED
                outcome.reason = (
                    f"Failed to verify deletion via stat: {e}. "
                    f"ADB shell output: {outcome.shell_output}"
                ).strip()
                logger.error(f"Could not verify deletion of {remote_path}: {e}")
            return outcome

        outcome.state = DeleteState.UNCONFIRMED
        outcome.reason = f"File still exists. ADB shell output: {outcome.shell_output}".strip()
        logger.error(f"File {remote_path} still exists after rm. Output: {outcome.shell_output}")
        return outcome

    async def delete_one(self, device_id: str, remote_path: str) -> Result:
        if not device_id or not remote_path:
            return Failure("Device ID and remote path are required.", ErrorKind.INVALID_ARGUMENT)
        if is_remote_directory(remote_path):
            return Failure(
                "Path appears to be a directory. Only file deletion is supported by this action.",
                ErrorKind.INVALID_ARGUMENT,
            )
        try:
            quote_remote_path(remote_path)
        except ValueError as e:
            return Failure(f"Invalid path: {e}", ErrorKind.INVALID_ARGUMENT)

        logger.info(f"Attempting to remove file: {remote_path} from device: {device_id}")
        outcome = await self.run_protocol(device_id, remote_path)
        return outcome.to_result()

    async def delete_many(self, device_id: str, remote_paths: Iterable[DeleteItem]) -> BatchResult:
        """Delete each path in turn; one failure never stops the rest."""
        success_count = 0
        failures: List[BatchFailure] = []

        for item in remote_paths or []:
            if isinstance(item, Mapping):
                path = str(item.get("key") or "")
                name = str(item.get("name") or remote_basename(path) or path)
            else:
                path = str(item or "")
                name = remote_basename(path) or path

            try:
                result = await self.delete_one(device_id, path)
            except Exception as e:
                logger.error(f"Unexpected error deleting {path}: {e}")
                result = Failure(str(e) or "Unknown error", classify_error(e))

            if result.ok:
                success_count += 1
            else:
                failures.append(BatchFailure(name, result.reason, path))

        logger.info(f"Batch delete: {success_count} succeeded, {len(failures)} failed")
        return BatchResult(success_count, tuple(failures))
