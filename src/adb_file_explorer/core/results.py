"""
Result types shared by every core operation.
Operations return Success or Failure instead of raising past their own boundary.
"""

import asyncio
import base64
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar, Union

from .remote_client import (
    DeviceDisconnectedError,
    RemoteClientError,
    RemoteNotFoundError,
    RemotePermissionError,
)

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    """Failure taxonomy surfaced to the presentation layer."""

    TRANSPORT = "transport"
    NOT_FOUND = "not_found"
    PERMISSION = "permission"
    UNSUPPORTED_TYPE = "unsupported_type"
    PARTIAL_BATCH = "partial_batch"
    LOCAL_IO = "local_io"
    INVALID_ARGUMENT = "invalid_argument"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T = None

    @property
    def ok(self) -> bool:
        return True

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": True}
        value = self.value
        if hasattr(value, "to_payload"):
            payload.update(value.to_payload())
        elif isinstance(value, str):
            payload["path"] = value
        elif isinstance(value, (list, tuple)):
            payload["data"] = [v.to_payload() if hasattr(v, "to_payload") else v for v in value]
        elif value is not None:
            payload["data"] = value
        return payload


@dataclass(frozen=True)
class Failure:
    reason: str
    kind: ErrorKind = ErrorKind.TRANSPORT

    @property
    def ok(self) -> bool:
        return False

    def to_payload(self) -> Dict[str, Any]:
        return {"success": False, "error": self.reason, "kind": self.kind.value}


Result = Union[Success[T], Failure]


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised below the core boundary onto an ErrorKind."""
    if isinstance(error, RemoteNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(error, RemotePermissionError):
        return ErrorKind.PERMISSION
    if isinstance(error, (DeviceDisconnectedError, RemoteClientError)):
        return ErrorKind.TRANSPORT
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, OSError):
        return ErrorKind.LOCAL_IO
    if isinstance(error, ValueError):
        return ErrorKind.INVALID_ARGUMENT
    return ErrorKind.TRANSPORT


def failure_from(error: BaseException, default_reason: str = "") -> Failure:
    """Build a Failure carrying the exception's message."""
    reason = str(error) or default_reason or error.__class__.__name__
    return Failure(reason, classify_error(error))


@dataclass(frozen=True)
class ImagePreview:
    """Full image contents for inline display."""

    data: bytes
    mime_type: str

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_payload(self) -> Dict[str, Any]:
        return {"data": self.base64_data, "mimeType": self.mime_type}


@dataclass(frozen=True)
class VideoPreview:
    """A locally materialized video that a seek-capable player can open."""

    url: str
    local_path: str
    mime_type: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "videoUrl": self.url,
            "localTempPathForCleanup": self.local_path,
            "mimeType": self.mime_type,
        }


@dataclass(frozen=True)
class BatchFailure:
    item: str
    reason: str
    path: str = ""


@dataclass(frozen=True)
class BatchResult:
    """Aggregate outcome of a multi-item operation."""

    success_count: int = 0
    failures: Tuple[BatchFailure, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def summary(self, verb: str = "delete", past: str = "deleted",
                detail_limit: Optional[int] = 3) -> str:
        """Render a bounded, human readable report.

        Only the first ``detail_limit`` reasons are listed; the rest collapse into
        an overflow marker so the text stays short regardless of batch size.
        """
        text = (
            f"{self.success_count} file(s) {past} successfully. "
            f"{self.failure_count} file(s) failed."
        )
        if not self.failures:
            return text
        details = [f"Failed to {verb} {f.item}: {f.reason}" for f in self.failures]
        if detail_limit is not None and len(details) > detail_limit:
            shown = details[:detail_limit] + ["...and more."]
        else:
            shown = details
        return text + "\nDetails:\n" + "\n".join(shown)

    def to_payload(self, verb: str = "delete", past: str = "deleted",
                   detail_limit: Optional[int] = 3) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.ok,
            "successCount": self.success_count,
            "failures": [
                {"item": f.item, "path": f.path, "error": f.reason} for f in self.failures
            ],
            "message": self.summary(verb, past, detail_limit),
        }
        if not self.ok:
            payload["kind"] = ErrorKind.PARTIAL_BATCH.value
        return payload
