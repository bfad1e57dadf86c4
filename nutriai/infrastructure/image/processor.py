"""Image processing for meal photo uploads.

Turns a raw upload into a ProcessedImage:
- Validates content type and size
- Decodes with Pillow (corrupted data is rejected)
- Applies EXIF orientation, flattens transparency onto white
- Downscales to fit the configured box, keeping aspect ratio
- Re-encodes as optimized JPEG
"""

from __future__ import annotations

import io
from typing import Optional

import structlog
from PIL import Image, ImageOps

from nutriai.config import Settings
from nutriai.domain.meal.recognition.models import ProcessedImage
from nutriai.domain.shared.errors import ImageProcessingError

logger = structlog.get_logger(__name__)

# Allowed image MIME types
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
}

# Pillow format names accepted when the upload carries no content type
ALLOWED_FORMATS = {"JPEG", "PNG", "WEBP", "GIF"}


class ImageProcessor:
    """
    Pillow implementation of IImageProcessor.

    Args:
        max_size_bytes: Upload size limit
        max_width: Resize box width
        max_height: Resize box height
        quality: JPEG quality (1-100)
    """

    def __init__(
        self,
        max_size_bytes: int = 10 * 1024 * 1024,
        max_width: int = 1200,
        max_height: int = 1200,
        quality: int = 85,
    ) -> None:
        self.max_size_bytes = max_size_bytes
        self.max_width = max_width
        self.max_height = max_height
        self.quality = quality

    @classmethod
    def from_settings(cls, settings: Settings) -> "ImageProcessor":
        return cls(
            max_size_bytes=settings.max_image_size_bytes,
            max_width=settings.max_image_width,
            max_height=settings.max_image_height,
            quality=settings.image_quality,
        )

    def process(self, content: bytes, content_type: Optional[str]) -> ProcessedImage:
        """
        Validate and normalize an upload.

        Args:
            content: Raw uploaded bytes
            content_type: Declared MIME type (None if unknown)

        Returns:
            ProcessedImage with JPEG content

        Raises:
            ImageProcessingError: Unsupported type, too large, empty or
                undecodable
        """
        self._validate(content, content_type)

        try:
            img: Image.Image = Image.open(io.BytesIO(content))
            img.load()
        except Exception as e:
            logger.warning("image_decode_failed", error=str(e), content_type=content_type)
            raise ImageProcessingError("Invalid image format or corrupted file") from e

        if content_type is None and img.format not in ALLOWED_FORMATS:
            raise ImageProcessingError(f"Unsupported image format: {img.format}")

        original_size = img.size
        img = ImageOps.exif_transpose(img) or img
        rgb_img = _to_rgb(img)
        rgb_img.thumbnail((self.max_width, self.max_height), Image.Resampling.LANCZOS)

        output = io.BytesIO()
        rgb_img.save(output, format="JPEG", quality=self.quality, optimize=True)
        jpeg = output.getvalue()

        logger.debug(
            "image_processed",
            original_size=original_size,
            size=rgb_img.size,
            original_bytes=len(content),
            jpeg_bytes=len(jpeg),
        )
        return ProcessedImage(
            content=jpeg,
            content_type="image/jpeg",
            width=rgb_img.width,
            height=rgb_img.height,
            size_bytes=len(jpeg),
        )

    def _validate(self, content: bytes, content_type: Optional[str]) -> None:
        if content_type is not None and content_type.lower() not in ALLOWED_MIME_TYPES:
            allowed = ", ".join(sorted(ALLOWED_MIME_TYPES))
            raise ImageProcessingError(f"Invalid file type. Allowed: {allowed}")
        if not content:
            raise ImageProcessingError("Image file is empty")
        if len(content) > self.max_size_bytes:
            max_mb = self.max_size_bytes / 1024 / 1024
            raise ImageProcessingError(f"File too large. Maximum size: {max_mb:g}MB")


def _to_rgb(img: Image.Image) -> Image.Image:
    """Convert to RGB, compositing transparency on a white background."""
    if img.mode in ("RGBA", "LA", "P"):
        if img.mode == "P":
            img = img.convert("RGBA")
        background = Image.new("RGB", img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != "RGB":
        return img.convert("RGB")
    return img
