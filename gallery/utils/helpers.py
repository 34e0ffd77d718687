from datetime import datetime
from mimetypes import guess_type
from pathlib import PurePosixPath

from fastapi import Request

# Extension map used when a backend does not record a content type.
MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".heic": "image/heic",
    ".svg": "image/svg+xml",
    ".json": "application/json",
    ".txt": "text/plain",
}

DEFAULT_MIME_TYPE = "application/octet-stream"


def host(request: Request) -> str:
    """Return the host IP address."""
    return request.client.host if request.client else "unknown"


def today_str() -> str:
    """Return today's date as a string."""
    return datetime.now(datetime.now().astimezone().tzinfo).strftime(
        "%Y-%m-%d %H:%M:%S",
    )


def mime_type_for(filename: str) -> str:
    """Guess a MIME type from a filename, preferring the image map."""
    suffix = PurePosixPath(filename).suffix.lower()
    if suffix in MIME_TYPES:
        return MIME_TYPES[suffix]
    guessed, _ = guess_type(filename)
    return guessed or DEFAULT_MIME_TYPE


def join_path(*parts: str | None) -> str:
    """Join logical storage path segments with '/', skipping empty parts."""
    segments: list[str] = []
    for part in parts:
        if not part:
            continue
        segments.extend(seg for seg in part.strip("/").split("/") if seg)
    return "/".join(segments)
