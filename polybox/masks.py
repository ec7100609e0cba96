"""
Mask utilities - polygon rasterization and mask encoding.
"""

import io
import logging
from typing import Optional

import cv2
import numpy as np
from PIL import Image

from polybox.store import AnnotationStore

logger = logging.getLogger(__name__)

BACKGROUND = 0
FOREGROUND = 1


def polygon_to_contour(points: list[float], width: int, height: int) -> np.ndarray:
    """
    Scale a flat normalized polygon to an integer pixel contour.

    Returns:
        Nx1x2 int32 array as expected by cv2.fillPoly
    """
    coords = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    coords *= (width, height)
    return np.round(coords).astype(np.int32).reshape(-1, 1, 2)


def rasterize_polygons(polygons: list[list[float]], width: int, height: int) -> np.ndarray:
    """
    Fill polygons into a binary mask.

    Args:
        polygons: Flat normalized vertex lists, drawn in order
        width: Mask width
        height: Mask height

    Returns:
        Mask of shape (height, width), dtype uint8, values 0/1
    """
    mask = np.full((height, width), BACKGROUND, dtype=np.uint8)
    for points in polygons:
        cv2.fillPoly(mask, [polygon_to_contour(points, width, height)], FOREGROUND)
    return mask


def rasterize_mask(store: AnnotationStore, image_name: str) -> Optional[np.ndarray]:
    """
    Binary mask of every polygon on an image, at the image's true size.

    Returns:
        Mask (H, W) uint8, or None if the image has no polygons
    """
    image = store.get_image(image_name)
    ann = store.get_annotations(image_name)
    if image is None or ann is None:
        return None

    polygons = ann.polygons()
    if not polygons:
        logger.debug(f"No polygons on {image_name}, skipping mask")
        return None

    return rasterize_polygons([p.points for p in polygons], image.width, image.height)


def encode_mask_png(mask: np.ndarray) -> bytes:
    """
    Encode a 0/1 mask as a single-channel black/white PNG.

    Args:
        mask: Binary mask of shape (H, W)

    Returns:
        PNG bytes
    """
    if mask.ndim != 2:
        raise ValueError(f"Mask must be 2D, got shape {mask.shape}")

    img = Image.fromarray((mask > 0).astype(np.uint8) * 255)
    buffered = io.BytesIO()
    img.save(buffered, format="PNG")
    return buffered.getvalue()


def mask_area(mask: np.ndarray) -> int:
    """Get the area (number of pixels) of a mask."""
    return int(np.sum(mask > 0))
