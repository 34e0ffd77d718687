"""Pillow helpers shared by compression and thumbnail generation."""

from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError, features

from gallery.errors.upload import InvalidImageError

WHITE = (255, 255, 255)

SAVE_FORMATS = {"jpeg": "JPEG", "webp": "WEBP", "avif": "AVIF"}


def avif_supported() -> bool:
    """Whether this Pillow build can encode AVIF."""
    return features.check("avif")


def open_image(data: bytes) -> Image.Image:
    """
    Decode image bytes and apply the EXIF orientation.

    Raises:
        InvalidImageError: If the bytes are not a readable image
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        mssg = f"Invalid or corrupted image file: {e!s}"
        raise InvalidImageError(mssg) from e
    return ImageOps.exif_transpose(img) or img


def read_size(data: bytes) -> tuple[int, int]:
    """Return oriented (width, height) without decoding pixel data."""
    try:
        with Image.open(BytesIO(data)) as img:
            width, height = img.size
            # Orientations 5-8 rotate by 90 degrees
            if img.getexif().get(0x0112, 1) in (5, 6, 7, 8):
                return height, width
            return width, height
    except (UnidentifiedImageError, OSError, ValueError) as e:
        mssg = f"Invalid or corrupted image file: {e!s}"
        raise InvalidImageError(mssg) from e


def flatten(img: Image.Image) -> Image.Image:
    """Convert to RGB, compositing any transparency onto white."""
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def resize(img: Image.Image, width: int, height: int) -> Image.Image:
    if img.size == (width, height):
        return img
    return img.resize((width, height), Image.Resampling.LANCZOS)


def encode(img: Image.Image, fmt: str, quality: int, *, progressive: bool = True) -> bytes:
    """Encode to ``jpeg``, ``webp`` or ``avif`` at the given quality."""
    buffer = BytesIO()
    options: dict[str, object] = {"quality": quality}
    if fmt == "jpeg":
        options.update(optimize=True, progressive=progressive)
    img.save(buffer, format=SAVE_FORMATS[fmt], **options)
    return buffer.getvalue()
