"""EXIF metadata extraction."""

from datetime import datetime
from io import BytesIO
from typing import Any

from PIL import ExifTags, Image

from gallery.monitoring import get_logger
from gallery.schemas.images import ExifData, GpsCoordinates

logger = get_logger(__name__)

EXIF_DATETIME_FORMAT = "%Y:%m:%d %H:%M:%S"

BASE_TAGS = {
    ExifTags.Base.Make: "make",
    ExifTags.Base.Model: "model",
    ExifTags.Base.Software: "software",
    ExifTags.Base.Artist: "artist",
    ExifTags.Base.Copyright: "copyright",
    ExifTags.Base.Orientation: "orientation",
}


def _text(value: Any) -> str | None:
    if isinstance(value, bytes):
        value = value.decode(errors="ignore")
    if value is None:
        return None
    text = str(value).strip("\x00 ").strip()
    return text or None


def _number(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None


def _datetime(value: Any) -> datetime | None:
    text = _text(value)
    if not text:
        return None
    try:
        return datetime.strptime(text, EXIF_DATETIME_FORMAT)
    except ValueError:
        return None


def _degrees(value: Any, ref: Any) -> float | None:
    try:
        degrees, minutes, seconds = (float(part) for part in value)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    decimal = degrees + minutes / 60 + seconds / 3600
    if _text(ref) in ("S", "W"):
        decimal = -decimal
    return round(decimal, 6)


def _gps(ifd: dict[int, Any]) -> GpsCoordinates | None:
    if not ifd:
        return None
    latitude = _degrees(ifd.get(ExifTags.GPS.GPSLatitude), ifd.get(ExifTags.GPS.GPSLatitudeRef))
    longitude = _degrees(ifd.get(ExifTags.GPS.GPSLongitude), ifd.get(ExifTags.GPS.GPSLongitudeRef))
    if latitude is None or longitude is None:
        return None
    altitude = _number(ifd.get(ExifTags.GPS.GPSAltitude))
    # Ref 1 means below sea level
    if altitude is not None and ifd.get(ExifTags.GPS.GPSAltitudeRef) in (1, b"\x01"):
        altitude = -altitude
    return GpsCoordinates(latitude=latitude, longitude=longitude, altitude=altitude)


def extract_exif(data: bytes) -> ExifData | None:
    """
    Extract camera metadata from image bytes.

    Returns:
        ExifData | None: Parsed metadata, or None when the image carries
        no EXIF block or it cannot be read
    """
    try:
        with Image.open(BytesIO(data)) as img:
            exif = img.getexif()
            if not exif:
                return None
            fields: dict[str, Any] = {name: exif.get(tag) for tag, name in BASE_TAGS.items()}
            details = exif.get_ifd(ExifTags.IFD.Exif)
            gps = _gps(exif.get_ifd(ExifTags.IFD.GPSInfo))
    except Exception as e:
        logger.debug("EXIF extraction failed", error=str(e))
        return None

    iso = details.get(ExifTags.Base.ISOSpeedRatings)
    if isinstance(iso, tuple):
        iso = iso[0] if iso else None
    flash = details.get(ExifTags.Base.Flash)
    orientation = fields.pop("orientation")

    return ExifData(
        make=_text(fields["make"]),
        model=_text(fields["model"]),
        software=_text(fields["software"]),
        artist=_text(fields["artist"]),
        copyright=_text(fields["copyright"]),
        lens_model=_text(details.get(ExifTags.Base.LensModel)),
        date_time_original=_datetime(details.get(ExifTags.Base.DateTimeOriginal)),
        exposure_time=_number(details.get(ExifTags.Base.ExposureTime)),
        f_number=_number(details.get(ExifTags.Base.FNumber)),
        iso=int(iso) if isinstance(iso, int | float) else None,
        focal_length=_number(details.get(ExifTags.Base.FocalLength)),
        flash=int(flash) if isinstance(flash, int) else None,
        orientation=int(orientation) if isinstance(orientation, int) else None,
        gps=gps,
    )


def read_dimensions(data: bytes) -> tuple[int, int]:
    """Raw pixel (width, height), or ``(0, 0)`` when unreadable."""
    try:
        with Image.open(BytesIO(data)) as img:
            return img.size
    except Exception as e:
        logger.debug("Could not read image dimensions", error=str(e))
        return 0, 0
