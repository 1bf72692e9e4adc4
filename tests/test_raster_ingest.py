"""Tests for raster ingestion."""
import numpy as np
import pytest
from PIL import Image

from image_kmeans.raster_ingest import ingest, ingest_from_array, ingest_from_bytes
from image_kmeans.types import InvalidInputError


class TestIngest:
    """Test loading image files."""

    def test_rgb_png(self, tmp_path, three_color_image):
        path = tmp_path / "stripes.png"
        Image.fromarray(three_color_image).save(path)

        buffer = ingest(path)

        assert buffer.width == 30
        assert buffer.height == 10
        assert not buffer.has_alpha
        assert buffer.pixels.shape == (300, 3)
        np.testing.assert_array_equal(buffer.pixels[0], [255, 0, 0])
        np.testing.assert_array_equal(buffer.pixels[29], [0, 0, 255])
        assert buffer.source == str(path)

    def test_rgba_png_keeps_alpha(self, tmp_path):
        image = np.zeros((2, 2, 4), dtype=np.uint8)
        image[0, 0] = [10, 20, 30, 255]
        path = tmp_path / "alpha.png"
        Image.fromarray(image).save(path)

        buffer = ingest(path)

        assert buffer.has_alpha
        assert buffer.pixels.shape == (4, 4)
        np.testing.assert_array_equal(buffer.pixels[0], [10, 20, 30, 255])

    def test_grayscale_file_becomes_rgb(self, tmp_path):
        path = tmp_path / "gray.png"
        Image.new("L", (3, 2), color=77).save(path)

        buffer = ingest(path)

        assert buffer.pixels.shape == (6, 3)
        assert np.all(buffer.pixels == 77)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ingest(tmp_path / "missing.png")

    def test_not_an_image(self, tmp_path):
        path = tmp_path / "notes.png"
        path.write_text("not an image")

        with pytest.raises(InvalidInputError):
            ingest(path)

    def test_directory(self, tmp_path):
        with pytest.raises(InvalidInputError):
            ingest(tmp_path)


class TestIngestFromArray:
    """Test building buffers from arrays."""

    def test_grayscale_array(self):
        buffer = ingest_from_array(np.full((2, 3), 5, dtype=np.uint8))

        assert (buffer.width, buffer.height) == (3, 2)
        assert buffer.pixels.shape == (6, 3)

    def test_copies_pixels(self, three_color_image):
        buffer = ingest_from_array(three_color_image)
        three_color_image[:] = 0

        np.testing.assert_array_equal(buffer.pixels[0], [255, 0, 0])

    def test_rejects_bad_channel_count(self):
        with pytest.raises(InvalidInputError):
            ingest_from_array(np.zeros((2, 2, 2)))

    def test_rejects_out_of_range_values(self):
        with pytest.raises(InvalidInputError):
            ingest_from_array(np.full((1, 1, 3), 256))

    def test_rejects_wrong_rank(self):
        with pytest.raises(InvalidInputError):
            ingest_from_array(np.zeros(12))


class TestIngestFromBytes:
    """Test building buffers from raw RGBA/RGB bytes."""

    def test_rgba_bytes(self):
        buf = bytes([255, 0, 0, 255, 0, 0, 255, 0])

        buffer = ingest_from_bytes(buf, width=2, height=1)

        assert buffer.has_alpha
        np.testing.assert_array_equal(buffer.pixels, [[255, 0, 0, 255], [0, 0, 255, 0]])

    def test_rgb_bytes(self):
        buffer = ingest_from_bytes(bytearray(range(12)), width=2, height=2, channels=3)

        assert not buffer.has_alpha
        assert buffer.pixels.shape == (4, 3)

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError, match="expected 8"):
            ingest_from_bytes(bytes(7), width=2, height=1)

    def test_bad_channels(self):
        with pytest.raises(InvalidInputError):
            ingest_from_bytes(bytes(2), width=1, height=1, channels=2)
