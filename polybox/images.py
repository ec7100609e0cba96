"""
Image loading - decodes image files into ImageRecords.
"""

import io
import logging
import re
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from polybox.models import ImageRecord

logger = logging.getLogger(__name__)

# Supported image extensions
IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.tif', '.webp'}


class ImageDecodeError(ValueError):
    """Raised when bytes cannot be decoded as an image."""


def natural_sort_key(s: str):
    """
    Key function for natural sorting of strings.
    E.g., sorts "img2.jpg" before "img10.jpg"
    """
    return [
        int(text) if text.isdigit() else text.lower()
        for text in re.split(r'(\d+)', s)
    ]


def decode_image(name: str, data: bytes) -> ImageRecord:
    """
    Decode image bytes.

    Args:
        name: Name to key the image by (usually the file name)
        data: Encoded image bytes

    Returns:
        ImageRecord with the true pixel size and the decoded PIL image

    Raises:
        ImageDecodeError: If the bytes are not a readable image
    """
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not decode image {name}: {e}") from e

    width, height = img.size
    return ImageRecord(name=name, width=width, height=height, raster=img)


def load_image_file(path: str) -> ImageRecord:
    """Decode an image file, keyed by its file name."""
    path = Path(path)
    return decode_image(path.name, path.read_bytes())


def load_image_dir(image_dir: str) -> list[ImageRecord]:
    """
    Decode all supported images in a directory, in natural name order.

    Unreadable files are skipped with a warning.
    """
    image_dir = Path(image_dir)

    image_files = [
        p for p in image_dir.iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
    ]
    image_files.sort(key=lambda p: natural_sort_key(p.name))

    records = []
    for img_path in image_files:
        try:
            records.append(load_image_file(str(img_path)))
        except ImageDecodeError as e:
            logger.warning(str(e))
            continue

    logger.info(f"Loaded {len(records)} image(s) from {image_dir}")
    return records
