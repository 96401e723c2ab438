"""
Extension based content classification for previews.
"""

import enum
import posixpath
from typing import Dict, NamedTuple, Optional


class ContentKind(str, enum.Enum):
    IMAGE = "image"
    VIDEO = "video"
    UNSUPPORTED = "unsupported"


class ContentType(NamedTuple):
    kind: ContentKind
    mime_type: Optional[str]


FALLBACK_MIME_TYPE = "application/octet-stream"

PREVIEW_TYPES: Dict[str, ContentType] = {
    "jpg": ContentType(ContentKind.IMAGE, "image/jpeg"),
    "jpeg": ContentType(ContentKind.IMAGE, "image/jpeg"),
    "png": ContentType(ContentKind.IMAGE, "image/png"),
    "gif": ContentType(ContentKind.IMAGE, "image/gif"),
    "bmp": ContentType(ContentKind.IMAGE, "image/bmp"),
    "webp": ContentType(ContentKind.IMAGE, "image/webp"),
    "mp4": ContentType(ContentKind.VIDEO, "video/mp4"),
    "webm": ContentType(ContentKind.VIDEO, "video/webm"),
    "ogg": ContentType(ContentKind.VIDEO, "video/ogg"),
    "ogv": ContentType(ContentKind.VIDEO, "video/ogg"),
}

UNSUPPORTED = ContentType(ContentKind.UNSUPPORTED, None)


def extension_of(path: str) -> str:
    """Lowercase extension of a device path without the dot ('' if none)."""
    name = posixpath.basename(path)
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def classify(path: str) -> ContentType:
    """Look up the preview family and mime type for ``path``."""
    return PREVIEW_TYPES.get(extension_of(path), UNSUPPORTED)
