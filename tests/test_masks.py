"""
Tests for polygon rasterization and mask encoding.
"""

import io

import numpy as np
import pytest
from PIL import Image

from polybox.masks import (
    encode_mask_png,
    mask_area,
    polygon_to_contour,
    rasterize_mask,
    rasterize_polygons,
)
from polybox.models import Box, ImageRecord, Polygon
from polybox.store import AnnotationStore


class TestRasterize:
    """Tests for rasterize_polygons / rasterize_mask."""

    def test_square(self):
        """Test that a square fill covers its inclusive pixel range."""
        square = [0.2, 0.2, 0.5, 0.2, 0.5, 0.5, 0.2, 0.5]

        mask = rasterize_polygons([square], 20, 20)

        assert mask.shape == (20, 20)
        assert mask.dtype == np.uint8
        assert mask[4:11, 4:11].all()
        assert mask_area(mask) == 49

    def test_contour_is_rounded(self):
        contour = polygon_to_contour([0.0, 0.0, 0.126, 0.5, 1.0, 1.0], 100, 10)

        assert contour.shape == (3, 1, 2)
        assert contour.dtype == np.int32
        assert contour[1, 0].tolist() == [13, 5]

    def test_overlapping_polygons_union(self):
        left = [0.0, 0.0, 0.6, 0.0, 0.6, 1.0, 0.0, 1.0]
        right = [0.4, 0.0, 1.0, 0.0, 1.0, 1.0, 0.4, 1.0]

        mask = rasterize_polygons([left, right], 10, 10)

        assert set(np.unique(mask)) == {1}

    def test_mask_uses_image_size(self):
        """Test that masks are image-sized, rows first."""
        store = AnnotationStore()
        store.add_image(ImageRecord(name="a.png", width=40, height=30))
        store.add_shape("a.png", Polygon(points=[0, 0, 1, 0, 1, 1], label="cat"))

        mask = rasterize_mask(store, "a.png")

        assert mask.shape == (30, 40)
        assert mask[0, 39] == 1
        assert mask[29, 0] == 0

    def test_no_polygons(self):
        store = AnnotationStore()
        store.add_image(ImageRecord(name="a.png", width=40, height=30))
        store.add_shape("a.png", Box(0.5, 0.5, 0.1, 0.1, "cat"))

        assert rasterize_mask(store, "a.png") is None
        assert rasterize_mask(store, "missing.png") is None


class TestEncode:
    """Tests for encode_mask_png."""

    def test_png_values(self):
        mask = np.zeros((8, 12), dtype=np.uint8)
        mask[2:4, 3:6] = 1

        img = Image.open(io.BytesIO(encode_mask_png(mask)))
        data = np.array(img)

        assert img.size == (12, 8)
        assert set(np.unique(data)) == {0, 255}
        assert (data == 255).sum() == 6

    def test_rejects_3d(self):
        with pytest.raises(ValueError):
            encode_mask_png(np.zeros((4, 4, 3), dtype=np.uint8))
