"""
AWS S3 storage implementation.

S3 has no real folders: a folder is a zero-byte ``name/`` marker object
and listings group keys by the ``/`` delimiter. Every boto3 call is
blocking and runs in the default executor.
"""

from asyncio import get_running_loop
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from functools import partial
from typing import Any

import boto3
from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
)

from gallery.errors.storage import (
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
    StorageOperationError,
)
from gallery.monitoring import get_logger
from gallery.schemas.storage import (
    AwsS3Config,
    StorageConfig,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)
from gallery.services.storage.common import (
    build_serve_url,
    stringify_metadata,
    unique_filename,
)
from gallery.utils.helpers import join_path, mime_type_for

logger = get_logger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
AUTH_ERROR_CODES = frozenset(
    {"InvalidAccessKeyId", "SignatureDoesNotMatch", "AccessDenied", "NoSuchBucket"},
)
DELETE_BATCH_SIZE = 1000
MAX_KEYS = 1000


def _prefix(path: str | None) -> str:
    joined = join_path(path)
    return f"{joined}/" if joined else ""


def _name(key: str) -> str:
    return key.rstrip("/").rsplit("/", 1)[-1]


class AwsS3Storage:
    """S3 storage implementation over a single bucket."""

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self.settings = AwsS3Config.model_validate(config.config)
        self.bucket = self.settings.bucket_name
        self._client = boto3.client(
            "s3",
            aws_access_key_id=self.settings.access_key_id,
            aws_secret_access_key=self.settings.secret_access_key,
            region_name=self.settings.region,
            endpoint_url=self.settings.endpoint_url,
        )

    @property
    def provider_id(self) -> StorageProviderId:
        return StorageProviderId.AWS_S3

    @property
    def config(self) -> StorageConfig:
        return self._config

    async def _call[T](self, fn: Callable[..., T], **kwargs: Any) -> T:
        return await get_running_loop().run_in_executor(None, partial(fn, **kwargs))

    @contextmanager
    def _errors(self, operation: str, key: str | None = None) -> Iterator[None]:
        """Translate botocore failures into storage errors."""
        try:
            yield
        except StorageError:
            raise
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            if key is not None and code in NOT_FOUND_CODES:
                raise StorageNotFoundError(self.provider_id, operation, key, cause=e) from e
            if code in AUTH_ERROR_CODES:
                mssg = f"S3 rejected the request ({code}); check the credentials and bucket name"
                raise StorageConnectionError(self.provider_id, mssg, cause=e) from e
            raise StorageOperationError(self.provider_id, operation, cause=e) from e
        except (NoCredentialsError, EndpointConnectionError) as e:
            raise StorageConnectionError(self.provider_id, str(e), cause=e) from e
        except Exception as e:
            raise StorageOperationError(self.provider_id, operation, cause=e) from e

    async def _head(self, key: str) -> dict[str, Any]:
        return await self._call(self._client.head_object, Bucket=self.bucket, Key=key)

    async def _key_exists(self, key: str) -> bool:
        try:
            await self._head(key)
        except ClientError as e:
            if str(e.response.get("Error", {}).get("Code", "")) in NOT_FOUND_CODES:
                return False
            raise
        return True

    async def _list_keys(self, prefix: str) -> list[str]:
        """Return every key below ``prefix``, following continuation tokens."""
        keys: list[str] = []
        kwargs: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix, "MaxKeys": MAX_KEYS}
        while True:
            page = await self._call(self._client.list_objects_v2, **kwargs)
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
            if not page.get("IsTruncated"):
                return keys
            kwargs["ContinuationToken"] = page["NextContinuationToken"]

    def _file_info(
        self,
        key: str,
        size: int,
        mime_type: str | None,
        modified: Any,
        metadata: dict[str, Any],
    ) -> StorageFileInfo:
        return StorageFileInfo(
            file_id=key,
            name=_name(key),
            path=key,
            size=size,
            mime_type=mime_type or mime_type_for(key),
            url=self.get_file_url(key),
            modified_at=modified,
            metadata=metadata,
        )

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        mime_type: str,
        folder_path: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> StorageUploadResult:
        folder = join_path(folder_path)
        with self._errors("upload_file"):

            async def exists(name: str) -> bool:
                return await self._key_exists(join_path(folder, name))

            final_name = await unique_filename(filename.rsplit("/", 1)[-1], exists)
            key = join_path(folder, final_name)
            await self._call(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=mime_type,
                Metadata=stringify_metadata(metadata),
            )

        logger.debug("Stored object in S3", bucket=self.bucket, key=key, size=len(data))
        return StorageUploadResult(
            provider=self.provider_id,
            file_id=key,
            filename=final_name,
            url=self.get_file_url(key),
            path=key,
            folder_id=folder,
            size=len(data),
            mime_type=mime_type,
            metadata=metadata or {},
        )

    async def delete_file(self, path: str) -> None:
        key = join_path(path)
        with self._errors("delete_file", key):
            await self._head(key)
            await self._call(self._client.delete_object, Bucket=self.bucket, Key=key)

    async def get_file_info(self, path: str) -> StorageFileInfo:
        key = join_path(path)
        with self._errors("get_file_info", key):
            head = await self._head(key)
        return self._file_info(
            key,
            head.get("ContentLength", 0),
            head.get("ContentType"),
            head.get("LastModified"),
            head.get("Metadata", {}),
        )

    async def list_files(
        self,
        folder_path: str | None = None,
        page_size: int | None = None,
    ) -> list[StorageFileInfo]:
        prefix = _prefix(folder_path)
        files: list[StorageFileInfo] = []
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "Delimiter": "/",
            "MaxKeys": min(page_size or MAX_KEYS, MAX_KEYS),
        }
        with self._errors("list_files"):
            while True:
                page = await self._call(self._client.list_objects_v2, **kwargs)
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith("/"):
                        continue
                    info = self._file_info(
                        obj["Key"],
                        obj.get("Size", 0),
                        None,
                        obj.get("LastModified"),
                        {},
                    )
                    files.append(info)
                    if page_size is not None and len(files) >= page_size:
                        return files
                if not page.get("IsTruncated"):
                    return files
                kwargs["ContinuationToken"] = page["NextContinuationToken"]

    async def update_file_metadata(self, path: str, metadata: dict[str, Any]) -> None:
        key = join_path(path)
        with self._errors("update_file_metadata", key):
            head = await self._head(key)
            merged = {**head.get("Metadata", {}), **stringify_metadata(metadata)}
            # S3 metadata is immutable; copy the object onto itself
            await self._call(
                self._client.copy_object,
                Bucket=self.bucket,
                Key=key,
                CopySource={"Bucket": self.bucket, "Key": key},
                Metadata=merged,
                MetadataDirective="REPLACE",
                ContentType=head.get("ContentType") or mime_type_for(key),
            )

    async def create_folder(self, name: str, parent_path: str | None = None) -> StorageFolderResult:
        path = join_path(parent_path, name)
        with self._errors("create_folder"):
            await self._call(self._client.put_object, Bucket=self.bucket, Key=f"{path}/", Body=b"")
        return StorageFolderResult(
            provider=self.provider_id,
            folder_id=path,
            name=_name(path),
            path=path,
            url=self.get_folder_url(path),
        )

    async def delete_folder(self, path: str) -> None:
        prefix = _prefix(path)
        with self._errors("delete_folder", path):
            keys = await self._list_keys(prefix) if prefix else []
            if not keys:
                raise StorageNotFoundError(self.provider_id, "delete_folder", path)
            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = keys[start : start + DELETE_BATCH_SIZE]
                await self._call(
                    self._client.delete_objects,
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": k} for k in batch], "Quiet": True},
                )
        logger.info("Deleted S3 folder", prefix=prefix, objects=len(keys))

    async def get_folder_info(self, path: str) -> StorageFolderInfo:
        prefix = _prefix(path)
        with self._errors("get_folder_info", path):
            page = await self._call(
                self._client.list_objects_v2,
                Bucket=self.bucket,
                Prefix=prefix,
                Delimiter="/",
                MaxKeys=MAX_KEYS,
            )
        contents = page.get("Contents", [])
        prefixes = page.get("CommonPrefixes", [])
        if not contents and not prefixes:
            raise StorageNotFoundError(self.provider_id, "get_folder_info", path)
        folder = join_path(path)
        return StorageFolderInfo(
            folder_id=folder,
            name=_name(folder),
            path=folder,
            url=self.get_folder_url(folder),
            file_count=sum(1 for obj in contents if not obj["Key"].endswith("/")),
            folder_count=len(prefixes),
        )

    async def list_folders(self, parent_path: str | None = None) -> list[StorageFolderInfo]:
        prefix = _prefix(parent_path)
        folders: list[StorageFolderInfo] = []
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "Delimiter": "/",
            "MaxKeys": MAX_KEYS,
        }
        with self._errors("list_folders"):
            while True:
                page = await self._call(self._client.list_objects_v2, **kwargs)
                for common in page.get("CommonPrefixes", []):
                    folder = common["Prefix"].rstrip("/")
                    folders.append(
                        StorageFolderInfo(
                            folder_id=folder,
                            name=_name(folder),
                            path=folder,
                            url=self.get_folder_url(folder),
                        ),
                    )
                if not page.get("IsTruncated"):
                    return folders
                kwargs["ContinuationToken"] = page["NextContinuationToken"]

    async def file_exists(self, path: str) -> bool:
        try:
            return await self._key_exists(join_path(path))
        except Exception:
            return False

    async def folder_exists(self, path: str) -> bool:
        prefix = _prefix(path)
        if not prefix:
            return False
        try:
            page = await self._call(
                self._client.list_objects_v2,
                Bucket=self.bucket,
                Prefix=prefix,
                MaxKeys=1,
            )
        except Exception:
            return False
        return bool(page.get("KeyCount") or page.get("Contents"))

    def get_file_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    def get_folder_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    def _read_object(self, key: str) -> bytes:
        response = self._client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read()

    async def get_file_buffer(self, path: str) -> bytes | None:
        try:
            return await self._call(self._read_object, key=join_path(path))
        except Exception as e:
            logger.warning("Could not read S3 object", key=path, error=str(e))
            return None

    async def validate_connection(self) -> bool:
        try:
            await self._call(self._client.list_objects_v2, Bucket=self.bucket, MaxKeys=1)
        except Exception as e:
            logger.warning("S3 connection check failed", bucket=self.bucket, error=str(e))
            return False
        return True
