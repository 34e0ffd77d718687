"""
Storage error classes.

Every failure surfaced by a provider adapter, the configuration service
or the storage manager is one of these. Backend SDK exceptions are kept
on ``cause`` and never escape an adapter on their own.
"""

from starlette.status import (
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from gallery.errors.base import BaseAppError, create_exception_handler
from gallery.monitoring import get_logger

logger = get_logger(__name__)


class StorageError(BaseAppError):
    """Base exception for storage errors."""

    def __init__(
        self,
        detail: str = "Storage operation failed",
        status_code: int = HTTP_500_INTERNAL_SERVER_ERROR,
        provider_id: str | None = None,
        operation: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(detail=detail, status_code=status_code)
        self.provider_id = provider_id
        self.operation = operation
        self.cause = cause


class ConfigNotFoundError(StorageError):
    """Raised when a provider has no stored configuration."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(
            detail=f"Storage configuration for provider '{provider_id}' not found",
            status_code=HTTP_404_NOT_FOUND,
            provider_id=provider_id,
            operation="get_config",
        )


class ProviderUnavailableError(StorageError):
    """Raised when a provider is disabled or fails validation."""

    def __init__(
        self,
        provider_id: str,
        reason: str = "Provider is not enabled",
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(
            detail=f"Storage provider '{provider_id}' is unavailable: {reason}",
            status_code=HTTP_503_SERVICE_UNAVAILABLE,
            provider_id=provider_id,
            operation="get_provider",
        )
        self.errors = errors or []


class StorageOperationError(StorageError):
    """Raised when a backend operation fails."""

    def __init__(
        self,
        provider_id: str,
        operation: str,
        detail: str | None = None,
        cause: BaseException | None = None,
        status_code: int = HTTP_502_BAD_GATEWAY,
    ) -> None:
        if detail is None:
            detail = f"{operation} failed on provider '{provider_id}'"
            if cause is not None:
                detail += f": {cause}"
        super().__init__(
            detail=detail,
            status_code=status_code,
            provider_id=provider_id,
            operation=operation,
            cause=cause,
        )


class StorageNotFoundError(StorageOperationError):
    """Raised when a file or folder does not exist on the backend."""

    def __init__(
        self,
        provider_id: str,
        operation: str,
        path: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            provider_id=provider_id,
            operation=operation,
            detail=f"'{path}' not found on provider '{provider_id}'",
            cause=cause,
            status_code=HTTP_404_NOT_FOUND,
        )
        self.path = path


class StorageConnectionError(StorageOperationError):
    """Raised when a backend cannot be reached or authenticated."""

    def __init__(
        self,
        provider_id: str,
        detail: str = "Could not connect to storage backend",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(
            provider_id=provider_id,
            operation="connect",
            detail=detail,
            cause=cause,
        )


storage_exception_handler = create_exception_handler(logger)
