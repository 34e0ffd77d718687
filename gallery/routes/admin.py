"""
Storage Admin Routes.

Endpoints for reading and editing storage provider configurations,
probing provider connections and browsing provider folders.
"""

from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import ORJSONResponse

from gallery.dependencies import ConfigServiceDep, StorageManagerDep
from gallery.schemas.storage import (
    ConfigValidationResult,
    ConnectionTestResult,
    FolderTreeNode,
    StorageConfig,
    StorageConfigList,
    StorageConfigUpdate,
    StorageConfigUpsert,
    StorageProviderId,
)
from gallery.services.storage.manager import DEFAULT_TREE_DEPTH

router = APIRouter(prefix="/api/admin/storage", tags=["👑 Storage Admin"])

NOT_FOUND_RESPONSE = {
    404: {
        "description": "Not Found",
        "content": {
            "application/json": {
                "example": {
                    "detail": "Storage configuration for provider 'aws-s3' not found",
                    "provider_id": "aws-s3",
                    "operation": "get_config",
                },
            },
        },
    },
}


@router.get(
    "",
    response_class=ORJSONResponse,
    response_model=StorageConfigList,
    summary="List storage configurations",
    operation_id="admin_list_storage_configs",
)
async def list_configs(config_service: ConfigServiceDep) -> StorageConfigList:
    """
    List every provider configuration and the enabled provider ids.

    Returns
    -------
    StorageConfigList
        All configurations ordered by provider id.
    """
    return StorageConfigList(
        configs=await config_service.get_all_configs(),
        active_providers=await config_service.get_active_providers(),
    )


@router.put(
    "",
    response_class=ORJSONResponse,
    response_model=list[StorageConfig],
    summary="Create or replace storage configurations",
    operation_id="admin_upsert_storage_configs",
)
async def upsert_configs(
    configs: list[StorageConfigUpsert],
    config_service: ConfigServiceDep,
    manager: StorageManagerDep,
) -> list[StorageConfig]:
    """
    Bulk create-or-replace provider configurations.

    Parameters
    ----------
    configs : list[StorageConfigUpsert]
        Full configuration documents to save.

    Returns
    -------
    list[StorageConfig]
        The saved documents.
    """
    saved = await config_service.upsert_configs(configs)
    manager.clear_cache()
    return saved


@router.post(
    "/initialize",
    response_class=ORJSONResponse,
    response_model=dict[str, list[StorageProviderId]],
    summary="Create missing default configurations",
    operation_id="admin_initialize_storage_configs",
)
async def initialize_configs(config_service: ConfigServiceDep) -> dict[str, list[StorageProviderId]]:
    """Insert a disabled default document for every provider lacking one."""
    return {"created": await config_service.initialize_default_configs()}


@router.get(
    "/{provider_id}",
    response_class=ORJSONResponse,
    response_model=StorageConfig,
    summary="Get a storage configuration",
    responses=NOT_FOUND_RESPONSE,
    operation_id="admin_get_storage_config",
)
async def get_config(provider_id: str, config_service: ConfigServiceDep) -> StorageConfig:
    """
    Get one provider configuration.

    Raises
    ------
    ConfigNotFoundError
        When the provider has no stored configuration (404).
    """
    return await config_service.get_config(provider_id)


@router.patch(
    "/{provider_id}",
    response_class=ORJSONResponse,
    response_model=StorageConfig,
    summary="Update a storage configuration",
    responses=NOT_FOUND_RESPONSE,
    operation_id="admin_update_storage_config",
)
async def update_config(
    provider_id: str,
    update: StorageConfigUpdate,
    config_service: ConfigServiceDep,
    manager: StorageManagerDep,
) -> StorageConfig:
    """
    Partially update one provider configuration.

    Keys in ``config`` are merged into the stored config; the cached
    adapter for the provider is dropped.
    """
    updated = await config_service.update_config(provider_id, update)
    manager.remove_from_cache(provider_id)
    return updated


@router.get(
    "/{provider_id}/validate",
    response_class=ORJSONResponse,
    response_model=ConfigValidationResult,
    summary="Validate a storage configuration",
    operation_id="admin_validate_storage_config",
)
async def validate_config(provider_id: str, config_service: ConfigServiceDep) -> ConfigValidationResult:
    """Check the provider is enabled and its required fields are filled in."""
    return await config_service.validate_config(provider_id)


@router.post(
    "/{provider_id}/test",
    response_class=ORJSONResponse,
    response_model=ConnectionTestResult,
    summary="Test a provider connection",
    operation_id="admin_test_storage_connection",
)
async def test_connection(provider_id: str, manager: StorageManagerDep) -> ConnectionTestResult:
    """Run the provider's reachability check; failures are reported, not raised."""
    return await manager.validate_provider(provider_id)


@router.get(
    "/{provider_id}/folders",
    response_class=ORJSONResponse,
    response_model=list[FolderTreeNode],
    summary="Browse provider folders",
    operation_id="admin_storage_folder_tree",
)
async def folder_tree(
    provider_id: str,
    manager: StorageManagerDep,
    path: Annotated[str | None, Query(description="Folder to start from")] = None,
    max_depth: Annotated[int, Query(ge=1, le=DEFAULT_TREE_DEPTH, alias="maxDepth")] = DEFAULT_TREE_DEPTH,
) -> list[FolderTreeNode]:
    """
    List folders recursively.

    Raises
    ------
    ProviderUnavailableError
        When the provider is disabled or misconfigured (503).
    """
    return await manager.get_folder_tree(provider_id, path, max_depth)
