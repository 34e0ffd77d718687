from gallery.schemas.images import (
    CompressionProfile,
    CompressionResult,
    CompressionStats,
    ExifData,
    GpsCoordinates,
    ImageDimensions,
    ThumbnailResult,
    ThumbnailSize,
)
from gallery.schemas.storage import (
    AwsS3Config,
    ConfigValidationResult,
    ConnectionTestResult,
    FolderTreeNode,
    GoogleDriveConfig,
    LocalConfig,
    StorageConfig,
    StorageConfigList,
    StorageConfigUpdate,
    StorageConfigUpsert,
    StorageFileInfo,
    StorageFolderInfo,
    StorageFolderResult,
    StorageProviderId,
    StorageUploadResult,
)
from gallery.schemas.upload import (
    PhotoResponse,
    PhotoUploadOptions,
    UploadFailure,
    UploadOutcome,
    UploadSuccess,
)

__all__ = [
    "AwsS3Config",
    "CompressionProfile",
    "CompressionResult",
    "CompressionStats",
    "ConfigValidationResult",
    "ConnectionTestResult",
    "ExifData",
    "FolderTreeNode",
    "GoogleDriveConfig",
    "GpsCoordinates",
    "ImageDimensions",
    "LocalConfig",
    "PhotoResponse",
    "PhotoUploadOptions",
    "StorageConfig",
    "StorageConfigList",
    "StorageConfigUpdate",
    "StorageConfigUpsert",
    "StorageFileInfo",
    "StorageFolderInfo",
    "StorageFolderResult",
    "StorageProviderId",
    "StorageUploadResult",
    "ThumbnailResult",
    "ThumbnailSize",
    "UploadFailure",
    "UploadOutcome",
    "UploadSuccess",
]
