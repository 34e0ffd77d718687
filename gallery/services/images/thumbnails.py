"""
Thumbnail generation.

Derives the fixed five-rung thumbnail ladder and a tiny blurred
placeholder from an uploaded image.
"""

from asyncio import get_running_loop
from base64 import b64encode

from PIL import Image, ImageFilter, ImageOps

from gallery.errors.upload import ImageProcessingError, InvalidImageError
from gallery.monitoring import get_logger
from gallery.schemas.images import ImageDimensions, ThumbnailResult, ThumbnailSize
from gallery.services.images.codec import encode, flatten, open_image, read_size, resize

logger = get_logger(__name__)

THUMBNAIL_SIZES: dict[str, ThumbnailSize] = {
    "micro": ThumbnailSize("micro", 80, 80, 60, "micro"),
    "small": ThumbnailSize("small", 200, 200, 70, "small"),
    "medium": ThumbnailSize("medium", 400, 400, 80, "medium"),
    "large": ThumbnailSize("large", 800, 800, 85, "large"),
    "hero": ThumbnailSize("hero", 1200, 800, 90, "hero"),
}

DEFAULT_THUMBNAIL_SIZE = "medium"

BLUR_SIZE = 20
BLUR_QUALITY = 20
BLUR_RADIUS = 1

FALLBACK_BLUR_DATA_URL = (
    "data:image/svg+xml;base64,"
    + b64encode(
        b'<svg xmlns="http://www.w3.org/2000/svg" width="20" height="20">'
        b'<defs><linearGradient id="g" x1="0" y1="0" x2="1" y2="1">'
        b'<stop offset="0%" stop-color="#f3f4f6"/>'
        b'<stop offset="50%" stop-color="#e5e7eb"/>'
        b'<stop offset="100%" stop-color="#d1d5db"/>'
        b"</linearGradient></defs>"
        b'<rect width="20" height="20" fill="url(#g)"/></svg>',
    ).decode()
)


def calculate_thumbnail_dimensions(
    width: int,
    height: int,
    target_width: int,
    target_height: int,
) -> tuple[int, int]:
    """
    Scale ``width`` x ``height`` to fit inside the target box.

    The result never exceeds the source, never exceeds the box on either
    side and is at least one pixel each way.
    """
    if width <= 0 or height <= 0:
        return max(1, min(width, target_width)), max(1, min(height, target_height))
    scale = min(target_width / width, target_height / height, 1.0)
    return (
        min(target_width, max(1, round(width * scale))),
        min(target_height, max(1, round(height * scale))),
    )


def _cover(img: Image.Image, width: int, height: int) -> Image.Image:
    return ImageOps.fit(img, (width, height), Image.Resampling.LANCZOS)


class ThumbnailGenerator:
    """Produces thumbnail renditions and blur placeholders."""

    def __init__(self, sizes: dict[str, ThumbnailSize] | None = None) -> None:
        self.sizes = sizes or THUMBNAIL_SIZES

    def analyze_image_dimensions(self, data: bytes) -> ImageDimensions:
        """
        Read oriented dimensions, swapping sides for rotated EXIF orientations.

        Raises:
            InvalidImageError: If the bytes are not a readable image
        """
        width, height = read_size(data)
        return ImageDimensions(width=width, height=height)

    def calculate_thumbnail_dimensions(
        self,
        width: int,
        height: int,
        target_width: int,
        target_height: int,
    ) -> tuple[int, int]:
        return calculate_thumbnail_dimensions(width, height, target_width, target_height)

    def get_thumbnail_size(self, name: str | None = None) -> ThumbnailSize:
        """Look up a rung by name, falling back to ``medium``."""
        if name and name in self.sizes:
            return self.sizes[name]
        return self.sizes[DEFAULT_THUMBNAIL_SIZE]

    def get_available_sizes(self) -> list[ThumbnailSize]:
        return list(self.sizes.values())

    def _render(self, img: Image.Image, size: ThumbnailSize) -> ThumbnailResult:
        width, height = calculate_thumbnail_dimensions(img.width, img.height, size.width, size.height)
        data = encode(resize(img, width, height), "jpeg", size.quality)
        return ThumbnailResult(size=size, data=data, width=width, height=height)

    def _generate_sync(self, data: bytes, size: ThumbnailSize) -> ThumbnailResult:
        return self._render(flatten(open_image(data)), size)

    async def generate_thumbnail(self, data: bytes, size: ThumbnailSize | str) -> ThumbnailResult:
        """
        Render a single thumbnail rung as progressive JPEG.

        Args:
            data: Source image bytes
            size: Rung definition or rung name

        Returns:
            ThumbnailResult: Encoded thumbnail and its dimensions

        Raises:
            InvalidImageError: If the bytes are not a readable image
            ImageProcessingError: If encoding fails
        """
        rung = size if isinstance(size, ThumbnailSize) else self.get_thumbnail_size(size)
        try:
            return await get_running_loop().run_in_executor(None, self._generate_sync, data, rung)
        except InvalidImageError:
            raise
        except Exception as e:
            mssg = f"Failed to generate {rung.name} thumbnail: {e!s}"
            raise ImageProcessingError(mssg) from e

    def _generate_all_sync(self, data: bytes) -> dict[str, ThumbnailResult]:
        img = flatten(open_image(data))
        results: dict[str, ThumbnailResult] = {}
        for name, size in self.sizes.items():
            try:
                results[name] = self._render(img, size)
            except Exception as e:
                logger.warning("Thumbnail rung failed", size=name, error=str(e))
        return results

    async def generate_all_thumbnails(self, data: bytes) -> dict[str, ThumbnailResult]:
        """
        Render every rung of the ladder.

        A failing rung is logged and left out; the others are still
        returned.

        Raises:
            InvalidImageError: If the bytes are not a readable image
        """
        results = await get_running_loop().run_in_executor(None, self._generate_all_sync, data)
        logger.debug("Thumbnails generated", sizes=sorted(results))
        return results

    def _blur_sync(self, data: bytes) -> str:
        img = flatten(open_image(data))
        width, height = calculate_thumbnail_dimensions(img.width, img.height, BLUR_SIZE, BLUR_SIZE)
        tiny = _cover(img, width, height).filter(ImageFilter.GaussianBlur(BLUR_RADIUS))
        payload = encode(tiny, "jpeg", BLUR_QUALITY)
        return f"data:image/jpeg;base64,{b64encode(payload).decode()}"

    async def generate_blur_placeholder(self, data: bytes) -> str:
        """Return a tiny blurred JPEG as a data URL, or a neutral gradient on failure."""
        try:
            return await get_running_loop().run_in_executor(None, self._blur_sync, data)
        except Exception as e:
            logger.warning("Blur placeholder failed, using fallback", error=str(e))
            return FALLBACK_BLUR_DATA_URL
