"""
Image services package.

Compression profiles, the thumbnail ladder, blur placeholders and EXIF
extraction, all built on Pillow.
"""

from gallery.services.images.compression import (
    COMPRESSION_PROFILES,
    ImageCompressionService,
    compute_target_dimensions,
)
from gallery.services.images.exif import extract_exif, read_dimensions
from gallery.services.images.thumbnails import (
    FALLBACK_BLUR_DATA_URL,
    THUMBNAIL_SIZES,
    ThumbnailGenerator,
    calculate_thumbnail_dimensions,
)

__all__ = [
    "COMPRESSION_PROFILES",
    "FALLBACK_BLUR_DATA_URL",
    "THUMBNAIL_SIZES",
    "ImageCompressionService",
    "ThumbnailGenerator",
    "calculate_thumbnail_dimensions",
    "compute_target_dimensions",
    "extract_exif",
    "read_dimensions",
]
