"""Image derivation types: compression profiles, thumbnail rungs and results."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

type Orientation = Literal["landscape", "portrait", "square"]


@dataclass(frozen=True)
class CompressionProfile:
    """Target quality, bounds and sibling formats for one named profile."""

    name: str
    quality: int
    max_width: int | None = None
    max_height: int | None = None
    progressive: bool = True
    generate_webp: bool = True
    generate_avif: bool = False


@dataclass(frozen=True)
class ThumbnailSize:
    """One rung of the thumbnail ladder."""

    name: str
    width: int
    height: int
    quality: int
    folder: str


@dataclass
class CompressionResult:
    """Renditions produced by compressing one image."""

    original: bytes
    compressed: bytes
    width: int
    height: int
    webp: bytes | None = None
    avif: bytes | None = None

    @property
    def compression_ratio(self) -> float:
        if not self.original:
            return 0.0
        return len(self.compressed) / len(self.original)

    @property
    def size_reduction(self) -> float:
        """Percentage of bytes saved by the compressed rendition."""
        if not self.original:
            return 0.0
        return round((1 - self.compression_ratio) * 100, 2)


@dataclass
class ThumbnailResult:
    """One generated thumbnail rendition."""

    size: ThumbnailSize
    data: bytes
    width: int
    height: int


@dataclass
class ImageDimensions:
    width: int
    height: int
    aspect_ratio: float = field(init=False)
    orientation: Orientation = field(init=False)

    def __post_init__(self) -> None:
        self.aspect_ratio = self.width / self.height if self.height else 0.0
        if self.aspect_ratio > 1.1:
            self.orientation = "landscape"
        elif self.aspect_ratio < 0.9:
            self.orientation = "portrait"
        else:
            self.orientation = "square"


class CompressionStats(BaseModel):
    """Aggregate figures over a batch of compression results."""

    model_config = ConfigDict(populate_by_name=True)

    count: int
    total_original_size: int = Field(alias="totalOriginalSize")
    total_compressed_size: int = Field(alias="totalCompressedSize")
    average_compression_ratio: float = Field(alias="averageCompressionRatio")
    average_size_reduction: float = Field(alias="averageSizeReduction")
    total_savings: int = Field(alias="totalSavings")


class GpsCoordinates(BaseModel):
    latitude: float
    longitude: float
    altitude: float | None = None


class ExifData(BaseModel):
    """Camera metadata extracted from an uploaded image."""

    model_config = ConfigDict(populate_by_name=True)

    make: str | None = None
    model: str | None = None
    lens_model: str | None = Field(default=None, alias="lensModel")
    software: str | None = None
    artist: str | None = None
    copyright: str | None = None
    date_time_original: datetime | None = Field(default=None, alias="dateTimeOriginal")
    exposure_time: float | None = Field(default=None, alias="exposureTime")
    f_number: float | None = Field(default=None, alias="fNumber")
    iso: int | None = None
    focal_length: float | None = Field(default=None, alias="focalLength")
    flash: int | None = None
    orientation: int | None = None
    gps: GpsCoordinates | None = None
