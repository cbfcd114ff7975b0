"""Thumbnail rendering with Pillow."""
from io import BytesIO

from PIL import Image

from files_api.errors import JobNotProcessable


class InvalidImageError(JobNotProcessable):
    """The stored payload is not a decodable image"""


def render_thumbnail(source: bytes, width: int) -> bytes:
    """Resize an encoded image to ``width`` pixels wide, keeping its aspect ratio.

    The thumbnail is encoded in the source image's format.
    """
    try:
        with Image.open(BytesIO(source)) as image:
            image.load()
            image_format = image.format or "PNG"
            height = max(1, round(image.height * width / image.width))
            thumbnail = image.resize((width, height))
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise InvalidImageError(f"Cannot decode image: {e}") from None

    if image_format == "JPEG" and thumbnail.mode not in ("RGB", "L"):
        thumbnail = thumbnail.convert("RGB")

    output = BytesIO()
    thumbnail.save(output, format=image_format)
    return output.getvalue()
