"""Helpers shared by the storage adapters."""

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from pathlib import PurePosixPath
from time import time
from typing import Any
from urllib.parse import quote

import orjson

from gallery.configs.settings import SERVE_ROUTE_PREFIX
from gallery.errors.storage import StorageError, StorageNotFoundError, StorageOperationError


def encode_path(path: str) -> str:
    """Percent-encode every segment of a logical path independently."""
    return "/".join(quote(segment, safe="") for segment in path.split("/") if segment)


def build_serve_url(provider_id: str, path: str) -> str:
    """Return the application-routed serve URL for a stored object."""
    return f"{SERVE_ROUTE_PREFIX}/{provider_id}/{encode_path(path)}"


def split_filename(filename: str) -> tuple[str, str]:
    name = PurePosixPath(filename)
    return name.stem, name.suffix


async def unique_filename(filename: str, exists: Callable[[str], Awaitable[bool]]) -> str:
    """
    Return ``filename`` or a variant that does not exist yet.

    Collisions get a millisecond timestamp appended to the stem, then a
    counter if that name is taken too.
    """
    if not await exists(filename):
        return filename

    stem, suffix = split_filename(filename)
    stamp = int(time() * 1000)
    candidate = f"{stem}-{stamp}{suffix}"
    counter = 1
    while await exists(candidate):
        candidate = f"{stem}-{stamp}-{counter}{suffix}"
        counter += 1
    return candidate


def stringify_metadata(metadata: dict[str, Any] | None) -> dict[str, str]:
    """Flatten metadata to strings for backends that only store text."""
    flat: dict[str, str] = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        flat[key] = value if isinstance(value, str) else orjson.dumps(value).decode()
    return flat


@contextmanager
def translate_errors(provider_id: str, operation: str, path: str | None = None) -> Iterator[None]:
    """
    Wrap anything raised inside the block in a storage error.

    ``StorageError`` passes through untouched; ``FileNotFoundError``
    becomes ``StorageNotFoundError`` when a path is given.
    """
    try:
        yield
    except StorageError:
        raise
    except FileNotFoundError as e:
        if path is None:
            raise StorageOperationError(provider_id, operation, cause=e) from e
        raise StorageNotFoundError(provider_id, operation, path, cause=e) from e
    except Exception as e:
        raise StorageOperationError(provider_id, operation, cause=e) from e
