"""
Image compression service.

Produces a resized progressive JPEG for a named profile, with optional
WebP and AVIF siblings at the same quality and dimensions.
"""

from asyncio import get_running_loop

from gallery.errors.upload import ImageProcessingError, InvalidImageError
from gallery.monitoring import get_logger
from gallery.schemas.images import CompressionProfile, CompressionResult, CompressionStats
from gallery.services.images.codec import avif_supported, encode, flatten, open_image, resize

logger = get_logger(__name__)

COMPRESSION_PROFILES: dict[str, CompressionProfile] = {
    "hero": CompressionProfile("hero", 90, 1920, 1080, generate_avif=True),
    "gallery": CompressionProfile("gallery", 85, 1200, 800, generate_avif=True),
    "thumbnail": CompressionProfile("thumbnail", 80, 400, 400, generate_avif=False),
    "mobile": CompressionProfile("mobile", 75, 800, 600, generate_avif=True),
    "bandwidth": CompressionProfile("bandwidth", 65, 600, 400, generate_avif=True),
}

WEB_QUALITY = 85
WEB_QUALITY_STEP = 10
WEB_MIN_QUALITY = 20


def compute_target_dimensions(
    width: int,
    height: int,
    max_width: int | None = None,
    max_height: int | None = None,
) -> tuple[int, int]:
    """
    Fit ``width`` x ``height`` inside the bounds, preserving aspect ratio.

    With both bounds the tighter scale wins; with one bound that bound
    alone is used. Images are never enlarged and neither side drops
    below one pixel.

    Raises:
        ValueError: If either source dimension is not positive
    """
    if width <= 0 or height <= 0:
        mssg = f"Invalid source dimensions {width}x{height}"
        raise ValueError(mssg)

    if max_width and max_height:
        scale = min(max_width / width, max_height / height)
    elif max_width:
        scale = max_width / width
    elif max_height:
        scale = max_height / height
    else:
        scale = 1.0
    scale = min(scale, 1.0)

    target_width = max(1, round(width * scale))
    target_height = max(1, round(height * scale))
    if max_width:
        target_width = min(target_width, max_width)
    if max_height:
        target_height = min(target_height, max_height)
    return target_width, target_height


class ImageCompressionService:
    """Compresses images according to named profiles."""

    def __init__(self, profiles: dict[str, CompressionProfile] | None = None) -> None:
        self.profiles = profiles or COMPRESSION_PROFILES

    def get_profile(self, name: str) -> CompressionProfile:
        try:
            return self.profiles[name]
        except KeyError as e:
            mssg = f"Unknown compression profile '{name}'"
            raise ValueError(mssg) from e

    def compress_sync(self, data: bytes, profile: CompressionProfile) -> CompressionResult:
        """Blocking compression; call through ``compress_image`` from async code."""
        img = open_image(data)
        width, height = compute_target_dimensions(
            img.width,
            img.height,
            profile.max_width,
            profile.max_height,
        )
        resized = resize(flatten(img), width, height)

        result = CompressionResult(
            original=data,
            compressed=encode(resized, "jpeg", profile.quality, progressive=profile.progressive),
            width=width,
            height=height,
        )
        if profile.generate_webp:
            result.webp = encode(resized, "webp", profile.quality)
        if profile.generate_avif:
            if avif_supported():
                result.avif = encode(resized, "avif", profile.quality)
            else:
                logger.debug("AVIF encoding unavailable, skipping", profile=profile.name)
        return result

    async def compress_image(self, data: bytes, profile: str = "gallery") -> CompressionResult:
        """
        Compress an image off the event loop.

        Args:
            data: Raw image bytes
            profile: Name of the compression profile

        Returns:
            CompressionResult: Compressed renditions and size figures

        Raises:
            InvalidImageError: If the bytes are not a readable image
            ImageProcessingError: If encoding fails
        """
        selected = self.get_profile(profile)
        try:
            result = await get_running_loop().run_in_executor(None, self.compress_sync, data, selected)
        except InvalidImageError:
            raise
        except Exception as e:
            mssg = f"Failed to compress image: {e!s}"
            raise ImageProcessingError(mssg) from e

        logger.info(
            "Image compressed",
            profile=profile,
            width=result.width,
            height=result.height,
            original_size=len(result.original),
            compressed_size=len(result.compressed),
            size_reduction=result.size_reduction,
        )
        return result

    async def compress_batch(self, images: list[bytes], profile: str = "gallery") -> list[CompressionResult]:
        return [await self.compress_image(data, profile) for data in images]

    def _optimize_sync(self, data: bytes, target_size: int | None) -> bytes:
        img = flatten(open_image(data))
        output = encode(img, "jpeg", WEB_QUALITY)
        if target_size and len(output) > target_size:
            quality = max(WEB_MIN_QUALITY, WEB_QUALITY - WEB_QUALITY_STEP)
            output = encode(img, "jpeg", quality)
        return output

    async def optimize_for_web(self, data: bytes, target_size: int | None = None) -> bytes:
        """Re-encode as progressive JPEG, stepping quality down once to approach ``target_size``."""
        return await get_running_loop().run_in_executor(None, self._optimize_sync, data, target_size)

    @staticmethod
    def get_best_format(accept_header: str | None, available_formats: list[str]) -> str:
        """Choose avif, then webp, then jpeg based on what the client accepts."""
        if not accept_header:
            return "jpeg"
        accepts = accept_header.lower()
        if "image/avif" in accepts and "avif" in available_formats:
            return "avif"
        if "image/webp" in accepts and "webp" in available_formats:
            return "webp"
        return "jpeg"

    @staticmethod
    def get_compression_stats(results: list[CompressionResult]) -> CompressionStats:
        count = len(results)
        total_original = sum(len(r.original) for r in results)
        total_compressed = sum(len(r.compressed) for r in results)
        return CompressionStats(
            count=count,
            total_original_size=total_original,
            total_compressed_size=total_compressed,
            average_compression_ratio=sum(r.compression_ratio for r in results) / count if count else 0.0,
            average_size_reduction=sum(r.size_reduction for r in results) / count if count else 0.0,
            total_savings=total_original - total_compressed,
        )
