"""
Google Drive storage implementation.

Drive addresses everything by id, so logical paths are resolved one
segment at a time by name under the storage root. The root is the
hidden ``appDataFolder`` by default, or a visible folder (``folder_id``,
else "My Drive") when ``storage_type`` is ``visible``. Metadata is kept
in file ``properties``.
"""

from asyncio import get_running_loop
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from io import BytesIO
from threading import Lock
from typing import Any

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from gallery.errors.storage import (
    StorageConnectionError,
    StorageError,
    StorageNotFoundError,
    StorageOperationError,
)
from gallery.monitoring import get_logger
from gallery.schemas.storage import (
    GoogleDriveConfig,
    StorageConfig,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)
from gallery.services.storage.common import build_serve_url, stringify_metadata, unique_filename
from gallery.utils.helpers import join_path, mime_type_for

logger = get_logger(__name__)

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
APPDATA_FOLDER = "appDataFolder"
FILE_FIELDS = "id, name, mimeType, size, createdTime, modifiedTime, properties, parents"
LIST_PAGE_SIZE = 100


def escape_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class GoogleDriveStorage:
    """
    Google Drive storage implementation.

    The Drive service is built lazily on first use; construction is
    guarded by a lock so concurrent executor threads build it once.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config
        self.settings = GoogleDriveConfig.model_validate(config.config)
        self._credentials: Credentials | None = None
        self._service: Resource | None = None
        self._service_lock: Lock = Lock()

        if self.settings.storage_type == "appdata":
            self.root_id = APPDATA_FOLDER
            self.spaces = APPDATA_FOLDER
        else:
            self.root_id = self.settings.folder_id or "root"
            self.spaces = "drive"

    @property
    def provider_id(self) -> StorageProviderId:
        return StorageProviderId.GOOGLE_DRIVE

    @property
    def config(self) -> StorageConfig:
        return self._config

    def _get_credentials(self) -> Credentials:
        """Build OAuth2 credentials from the stored refresh token."""
        if self._credentials is None:
            self._credentials = Credentials(
                token=None,
                refresh_token=self.settings.refresh_token,
                client_id=self.settings.client_id,
                client_secret=self.settings.client_secret,
                token_uri=self.settings.token_uri,
            )
        return self._credentials

    @property
    def service(self) -> Resource:
        """
        Lazy-load the Drive v3 service.

        Returns:
            Resource: Authorized Drive API resource
        """
        if self._service is None:
            with self._service_lock:
                if self._service is None:
                    self._service = build(
                        "drive",
                        "v3",
                        credentials=self._get_credentials(),
                        cache_discovery=False,
                    )
        return self._service

    async def _execute(self, request: Any) -> Any:
        return await get_running_loop().run_in_executor(None, request.execute)

    @contextmanager
    def _errors(self, operation: str, path: str | None = None) -> Iterator[None]:
        """Translate Drive API and OAuth failures into storage errors."""
        try:
            yield
        except StorageError:
            raise
        except RefreshError as e:
            detail = "Google Drive authorization failed"
            if "invalid_grant" in str(e):
                detail = (
                    "Google Drive refresh token is invalid or expired; "
                    "re-authorize the application and save the new refresh token"
                )
            raise StorageConnectionError(self.provider_id, detail, cause=e) from e
        except HttpError as e:
            if path is not None and e.resp.status == 404:
                raise StorageNotFoundError(self.provider_id, operation, path, cause=e) from e
            raise StorageOperationError(self.provider_id, operation, cause=e) from e
        except Exception as e:
            raise StorageOperationError(self.provider_id, operation, cause=e) from e

    # --- Path resolution ---

    async def _list(self, query: str, page_size: int | None = None) -> list[dict[str, Any]]:
        """Run a files.list query, following page tokens unless a page size is given."""
        files: list[dict[str, Any]] = []
        page_token: str | None = None
        while True:
            request = self.service.files().list(
                q=query,
                spaces=self.spaces,
                fields=f"nextPageToken, files({FILE_FIELDS})",
                pageSize=min(page_size or LIST_PAGE_SIZE, LIST_PAGE_SIZE),
                pageToken=page_token,
                orderBy="name",
            )
            response = await self._execute(request)
            files.extend(response.get("files", []))
            page_token = response.get("nextPageToken")
            if page_size is not None and len(files) >= page_size:
                return files[:page_size]
            if not page_token:
                return files

    async def _find_child(self, parent_id: str, name: str, *, folder: bool) -> dict[str, Any] | None:
        kind = "=" if folder else "!="
        query = (
            f"'{escape_query_value(parent_id)}' in parents "
            f"and name='{escape_query_value(name)}' "
            f"and mimeType{kind}'{FOLDER_MIME_TYPE}' and trashed=false"
        )
        matches = await self._list(query, page_size=1)
        return matches[0] if matches else None

    async def _create_folder(self, parent_id: str, name: str) -> dict[str, Any]:
        request = self.service.files().create(
            body={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
            fields=FILE_FIELDS,
        )
        return await self._execute(request)

    async def _resolve_folder(self, path: str | None) -> str | None:
        """Return the folder id for a logical path, or None if a segment is missing."""
        folder_id = self.root_id
        for segment in join_path(path).split("/"):
            if not segment:
                continue
            child = await self._find_child(folder_id, segment, folder=True)
            if child is None:
                return None
            folder_id = child["id"]
        return folder_id

    async def _ensure_folder(self, path: str | None) -> str:
        """Return the folder id for a logical path, creating missing segments."""
        folder_id = self.root_id
        for segment in join_path(path).split("/"):
            if not segment:
                continue
            child = await self._find_child(folder_id, segment, folder=True)
            if child is None:
                child = await self._create_folder(folder_id, segment)
            folder_id = child["id"]
        return folder_id

    async def _resolve_file(self, path: str) -> dict[str, Any] | None:
        logical = join_path(path)
        folder_path, _, name = logical.rpartition("/")
        parent_id = await self._resolve_folder(folder_path)
        if parent_id is None or not name:
            return None
        return await self._find_child(parent_id, name, folder=False)

    def _file_info(self, path: str, item: dict[str, Any]) -> StorageFileInfo:
        return StorageFileInfo(
            file_id=item["id"],
            name=item["name"],
            path=path,
            size=int(item.get("size", 0)),
            mime_type=item.get("mimeType") or mime_type_for(item["name"]),
            url=self.get_file_url(path),
            created_at=_parse_time(item.get("createdTime")),
            modified_at=_parse_time(item.get("modifiedTime")),
            metadata=item.get("properties", {}),
        )

    def _folder_info(self, path: str, item: dict[str, Any]) -> StorageFolderInfo:
        return StorageFolderInfo(
            folder_id=item["id"],
            name=item["name"],
            path=path,
            url=self.get_folder_url(path),
            created_at=_parse_time(item.get("createdTime")),
            modified_at=_parse_time(item.get("modifiedTime")),
        )

    # --- Contract ---

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
            parent_id = await self._ensure_folder(folder)

            async def exists(name: str) -> bool:
                return await self._find_child(parent_id, name, folder=False) is not None

            final_name = await unique_filename(filename.rsplit("/", 1)[-1], exists)
            body: dict[str, Any] = {"name": final_name, "parents": [parent_id]}
            if properties := stringify_metadata(metadata):
                body["properties"] = properties
            media = MediaIoBaseUpload(BytesIO(data), mimetype=mime_type, resumable=False)
            request = self.service.files().create(body=body, media_body=media, fields=FILE_FIELDS)
            created = await self._execute(request)

        path = join_path(folder, final_name)
        logger.debug("Stored file in Google Drive", path=path, file_id=created["id"])
        return StorageUploadResult(
            provider=self.provider_id,
            file_id=created["id"],
            filename=final_name,
            url=self.get_file_url(path),
            path=path,
            folder_id=parent_id,
            size=len(data),
            mime_type=mime_type,
            metadata=metadata or {},
        )

    async def delete_file(self, path: str) -> None:
        with self._errors("delete_file", path):
            item = await self._resolve_file(path)
            if item is None:
                raise StorageNotFoundError(self.provider_id, "delete_file", path)
            await self._execute(self.service.files().delete(fileId=item["id"]))

    async def get_file_info(self, path: str) -> StorageFileInfo:
        with self._errors("get_file_info", path):
            item = await self._resolve_file(path)
        if item is None:
            raise StorageNotFoundError(self.provider_id, "get_file_info", path)
        return self._file_info(join_path(path), item)

    async def list_files(
        self,
        folder_path: str | None = None,
        page_size: int | None = None,
    ) -> list[StorageFileInfo]:
        folder = join_path(folder_path)
        with self._errors("list_files", folder):
            folder_id = await self._resolve_folder(folder)
            if folder_id is None:
                raise StorageNotFoundError(self.provider_id, "list_files", folder)
            query = (
                f"'{escape_query_value(folder_id)}' in parents "
                f"and mimeType!='{FOLDER_MIME_TYPE}' and trashed=false"
            )
            items = await self._list(query, page_size=page_size)
        return [self._file_info(join_path(folder, item["name"]), item) for item in items]

    async def update_file_metadata(self, path: str, metadata: dict[str, Any]) -> None:
        with self._errors("update_file_metadata", path):
            item = await self._resolve_file(path)
            if item is None:
                raise StorageNotFoundError(self.provider_id, "update_file_metadata", path)
            request = self.service.files().update(
                fileId=item["id"],
                body={"properties": stringify_metadata(metadata)},
                fields="id",
            )
            await self._execute(request)

    async def create_folder(self, name: str, parent_path: str | None = None) -> StorageFolderResult:
        path = join_path(parent_path, name)
        with self._errors("create_folder"):
            folder_id = await self._ensure_folder(path)
        return StorageFolderResult(
            provider=self.provider_id,
            folder_id=folder_id,
            name=path.rsplit("/", 1)[-1],
            path=path,
            url=self.get_folder_url(path),
        )

    async def delete_folder(self, path: str) -> None:
        with self._errors("delete_folder", path):
            folder_id = await self._resolve_folder(path)
            if folder_id == self.root_id:
                raise StorageOperationError(
                    self.provider_id,
                    "delete_folder",
                    detail="Refusing to delete the storage root",
                )
            if folder_id is None:
                raise StorageNotFoundError(self.provider_id, "delete_folder", path)
            # Drive removes every descendant owned by the user with the folder
            await self._execute(self.service.files().delete(fileId=folder_id))

    async def get_folder_info(self, path: str) -> StorageFolderInfo:
        folder = join_path(path)
        with self._errors("get_folder_info", folder):
            folder_id = await self._resolve_folder(folder)
            if folder_id is None:
                raise StorageNotFoundError(self.provider_id, "get_folder_info", folder)
            item = await self._execute(self.service.files().get(fileId=folder_id, fields=FILE_FIELDS))
            children = await self._list(f"'{escape_query_value(folder_id)}' in parents and trashed=false")
        info = self._folder_info(folder, item)
        info.folder_count = sum(1 for c in children if c.get("mimeType") == FOLDER_MIME_TYPE)
        info.file_count = len(children) - info.folder_count
        return info

    async def list_folders(self, parent_path: str | None = None) -> list[StorageFolderInfo]:
        parent = join_path(parent_path)
        with self._errors("list_folders", parent):
            parent_id = await self._resolve_folder(parent)
            if parent_id is None:
                raise StorageNotFoundError(self.provider_id, "list_folders", parent)
            query = (
                f"'{escape_query_value(parent_id)}' in parents "
                f"and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
            )
            items = await self._list(query)
        return [self._folder_info(join_path(parent, item["name"]), item) for item in items]

    async def file_exists(self, path: str) -> bool:
        try:
            return await self._resolve_file(path) is not None
        except Exception:
            return False

    async def folder_exists(self, path: str) -> bool:
        try:
            return await self._resolve_folder(path) is not None
        except Exception:
            return False

    def get_file_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    def get_folder_url(self, path: str) -> str:
        return build_serve_url(self.provider_id, path)

    async def get_file_buffer(self, path: str) -> bytes | None:
        try:
            item = await self._resolve_file(path)
            if item is None:
                return None
            return await self._execute(self.service.files().get_media(fileId=item["id"]))
        except Exception as e:
            logger.warning("Could not read Google Drive file", path=path, error=str(e))
            return None

    async def validate_connection(self) -> bool:
        try:
            request = self.service.files().list(spaces=self.spaces, pageSize=1, fields="files(id)")
            await self._execute(request)
        except Exception as e:
            logger.warning("Google Drive connection check failed", error=str(e))
            return False
        return True
