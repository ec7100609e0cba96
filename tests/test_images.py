"""
Tests for image decoding and directory loading.
"""

import io

import pytest
from PIL import Image

from polybox.images import (
    ImageDecodeError,
    decode_image,
    load_image_dir,
    natural_sort_key,
)


def png_bytes(width, height):
    buffered = io.BytesIO()
    Image.new("RGB", (width, height), (128, 64, 32)).save(buffered, format="PNG")
    return buffered.getvalue()


class TestDecode:
    """Tests for decode_image."""

    def test_true_size(self):
        record = decode_image("a.png", png_bytes(200, 150))

        assert (record.name, record.width, record.height) == ("a.png", 200, 150)
        assert record.raster is not None

    def test_bad_bytes(self):
        with pytest.raises(ImageDecodeError):
            decode_image("broken.png", b"not an image")


class TestLoadDir:
    """Tests for load_image_dir."""

    def test_natural_sort_key(self):
        names = ["img10.png", "img2.png", "IMG1.png"]
        assert sorted(names, key=natural_sort_key) == ["IMG1.png", "img2.png", "img10.png"]

    def test_loads_in_natural_order(self, tmp_path):
        """Test ordering, extension filtering and skipping broken files."""
        (tmp_path / "frame10.png").write_bytes(png_bytes(4, 4))
        (tmp_path / "frame2.png").write_bytes(png_bytes(6, 3))
        (tmp_path / "broken.jpg").write_bytes(b"garbage")
        (tmp_path / "notes.txt").write_text("not an image")

        records = load_image_dir(str(tmp_path))

        assert [r.name for r in records] == ["frame2.png", "frame10.png"]
        assert (records[0].width, records[0].height) == (6, 3)
