"""
Geometry utilities for converting between normalized shape coordinates
and display-surface pixels, plus hit-testing primitives.
"""

import math
from typing import Optional

import cv2
import numpy as np

from polybox.models import Box, Handle

# Per-axis pixel tolerances
HANDLE_TOLERANCE_PX = 4
VERTEX_TOLERANCE_PX = 6

Rect = tuple[float, float, float, float]  # (x, y, w, h), top-left origin


def denormalize(box: Box, surface_w: float, surface_h: float) -> Rect:
    """
    Convert a normalized box to a pixel rectangle.

    Args:
        box: Box with normalized center/size
        surface_w: Surface width in pixels
        surface_h: Surface height in pixels

    Returns:
        (x, y, w, h) with (x, y) the top-left corner
    """
    bw = box.w * surface_w
    bh = box.h * surface_h
    x = box.xc * surface_w - bw / 2
    y = box.yc * surface_h - bh / 2
    return x, y, bw, bh


def normalize_rect(
    x: float, y: float, w: float, h: float,
    surface_w: float, surface_h: float,
) -> Rect:
    """
    Convert a pixel rectangle to normalized (xc, yc, w, h).

    Inverse of denormalize for the same surface size.
    """
    return (
        (x + w / 2) / surface_w,
        (y + h / 2) / surface_h,
        w / surface_w,
        h / surface_h,
    )


def normalize_point(px: float, py: float, surface_w: float, surface_h: float) -> tuple[float, float]:
    """Normalize a pixel position against the surface size."""
    return px / surface_w, py / surface_h


def denormalize_polygon(
    points: list[float],
    surface_w: float,
    surface_h: float,
) -> list[tuple[float, float]]:
    """
    Scale a flat normalized vertex list to pixel (x, y) pairs.

    Args:
        points: Flat list [x1, y1, x2, y2, ...] in [0, 1]
        surface_w: Target width
        surface_h: Target height

    Returns:
        List of (x, y) tuples
    """
    return [
        (points[i] * surface_w, points[i + 1] * surface_h)
        for i in range(0, len(points) - 1, 2)
    ]


def handle_points(x: float, y: float, w: float, h: float) -> list[tuple[Handle, float, float]]:
    """Positions of the 8 resize handles, in hit-test order."""
    return [
        (Handle.TOP_LEFT, x, y),
        (Handle.TOP_MID, x + w / 2, y),
        (Handle.TOP_RIGHT, x + w, y),
        (Handle.MID_LEFT, x, y + h / 2),
        (Handle.MID_RIGHT, x + w, y + h / 2),
        (Handle.BOTTOM_LEFT, x, y + h),
        (Handle.BOTTOM_MID, x + w / 2, y + h),
        (Handle.BOTTOM_RIGHT, x + w, y + h),
    ]


def hit_handle(
    px: float, py: float,
    x: float, y: float, w: float, h: float,
    tolerance: float = HANDLE_TOLERANCE_PX,
) -> Optional[Handle]:
    """
    Find the resize handle under a point.

    Each handle is hit when the point lies within +/- tolerance on both axes.
    The first handle in enumeration order wins, which only matters for
    near-zero-size boxes where handles overlap.

    Returns:
        The handle or None
    """
    for handle, hx, hy in handle_points(x, y, w, h):
        if abs(px - hx) <= tolerance and abs(py - hy) <= tolerance:
            return handle
    return None


def point_in_rect(px: float, py: float, x: float, y: float, w: float, h: float) -> bool:
    """Inclusive point-in-rectangle test."""
    return x <= px <= x + w and y <= py <= y + h


def point_in_polygon(points: list[tuple[float, float]], px: float, py: float) -> bool:
    """
    Test whether a point lies inside a polygon.

    Args:
        points: Pixel-space vertex ring as (x, y) pairs
        px, py: Point to test

    Returns:
        True if inside. Points exactly on an edge may go either way.
    """
    if len(points) < 3:
        return False

    contour = np.array(points, dtype=np.float32).reshape(-1, 1, 2)
    return cv2.pointPolygonTest(contour, (float(px), float(py)), False) >= 0


def vertex_hit(
    points: list[float],
    px: float, py: float,
    surface_w: float, surface_h: float,
    tolerance: float = VERTEX_TOLERANCE_PX,
) -> Optional[int]:
    """
    Find the first vertex of a flat normalized list near a pixel position.

    Tolerance is an open per-axis box, not a radius.

    Returns:
        Vertex index (0 for the first x/y pair) or None
    """
    for i in range(0, len(points) - 1, 2):
        vx = points[i] * surface_w
        vy = points[i + 1] * surface_h
        if abs(px - vx) < tolerance and abs(py - vy) < tolerance:
            return i // 2
    return None


def resize_rect(rect: Rect, handle: Handle, px: float, py: float) -> Rect:
    """
    Apply a handle drag to a pixel rectangle.

    Top/left handles move the origin to the pointer and grow the size by the
    distance moved; bottom/right handles set the size from the fixed origin.
    Sizes are clamped to 1 pixel so a drag past the opposite edge cannot
    invert the box.
    """
    x, y, w, h = rect

    if handle.top:
        h += y - py
        y = py
    if handle.bottom:
        h = py - y
    if handle.left:
        w += x - px
        x = px
    if handle.right:
        w = px - x

    return x, y, max(1.0, w), max(1.0, h)


def rect_from_drag(x0: float, y0: float, x1: float, y1: float) -> Rect:
    """Rectangle spanned by a drag, whatever the drag direction."""
    left, top = min(x0, x1), min(y0, y1)
    return left, top, max(x0, x1) - left, max(y0, y1) - top


def fit_surface(image_w: int, image_h: int, max_w: int, max_h: int) -> tuple[int, int]:
    """
    Largest surface size that shows the whole image inside a viewport.

    Returns:
        (width, height) in whole pixels, each at least 1
    """
    ratio = min(max_w / image_w, max_h / image_h)
    return max(1, math.floor(image_w * ratio)), max(1, math.floor(image_h * ratio))


def polygon_centroid(points: list[tuple[float, float]]) -> tuple[float, float]:
    """Mean of the vertex ring."""
    n = len(points)
    if n == 0:
        return 0.0, 0.0
    return sum(p[0] for p in points) / n, sum(p[1] for p in points) / n


def polygon_area(points: list[tuple[float, float]]) -> float:
    """
    Area of a polygon using the shoelace formula.

    Args:
        points: List of (x, y) coordinates

    Returns:
        Area (in whatever units the coordinates are in)
    """
    n = len(points)
    if n < 3:
        return 0.0

    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i][0] * points[j][1]
        area -= points[j][0] * points[i][1]

    return abs(area) / 2.0
