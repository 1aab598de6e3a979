"""
Thumbnail infrastructure for ommrepo.

Turns an arbitrary logo image into the fixed-size square thumbnail the
repository index embeds. Backed by Pillow.
"""

from io import BytesIO
from typing import Optional
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Everything Pillow raises for undecodable, truncated or oversized images
IMAGE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError)

DEFAULT_SIZE = 128
DEFAULT_QUALITY = 60
DEFAULT_FORMAT = "JPEG"


class Thumbnailer:
    """
    Crop-and-resize images to a square thumbnail.

    Example:
        thumb = Thumbnailer().make_thumbnail(png_bytes)
        Thumbnailer.sniff_mime_type(thumb)  # 'image/jpeg'
    """

    def __init__(
        self,
        size: int = DEFAULT_SIZE,
        quality: int = DEFAULT_QUALITY,
        image_format: str = DEFAULT_FORMAT,
        background: str = "white",
    ):
        self.size = size
        self.quality = quality
        self.image_format = image_format
        self.background = background

    @classmethod
    def from_config(cls, config: Optional[dict]) -> 'Thumbnailer':
        section = (config or {}).get('thumbnail', {})
        return cls(
            size=int(section.get('size', DEFAULT_SIZE)),
            quality=int(section.get('quality', DEFAULT_QUALITY)),
            image_format=section.get('format', DEFAULT_FORMAT),
            background=section.get('background', 'white'),
        )

    def make_thumbnail(self, raw: bytes) -> bytes:
        """
        Crop the image to a centered square and scale it to the thumbnail size.

        Raises:
            ValueError: if the bytes are not a decodable image
        """
        try:
            with Image.open(BytesIO(raw)) as source:
                source.load()
                image = self._flatten(source)
        except IMAGE_ERRORS as e:
            raise ValueError(f"Logo is not a readable image: {e}") from e

        thumb = ImageOps.fit(image, (self.size, self.size), Image.Resampling.LANCZOS)

        out = BytesIO()
        thumb.save(out, format=self.image_format, quality=self.quality)
        return out.getvalue()

    def _flatten(self, image: Image.Image) -> Image.Image:
        """Composite transparent images onto the background color."""
        if image.mode in ('RGBA', 'LA') or (image.mode == 'P' and 'transparency' in image.info):
            rgba = image.convert('RGBA')
            canvas = Image.new('RGB', rgba.size, self.background)
            canvas.paste(rgba, mask=rgba.getchannel('A'))
            return canvas
        return image.convert('RGB')

    @staticmethod
    def sniff_mime_type(data: bytes) -> str:
        """Detect the media type of encoded image bytes."""
        try:
            with Image.open(BytesIO(data)) as image:
                mime = image.get_format_mimetype()
        except IMAGE_ERRORS as e:
            raise ValueError(f"Could not detect image type: {e}") from e
        return mime or "application/octet-stream"
