"""Tests for weighted sample extraction."""
import numpy as np
import pytest

from image_kmeans.samples import (
    extract_samples,
    filter_top_colors,
    group_pixels,
    quantize_samples,
)
from image_kmeans.raster_ingest import ingest_from_array
from image_kmeans.types import AlphaPolicy, ClusterConfig, InvalidInputError
from conftest import make_samples


class TestGroupPixels:
    """Test grouping pixels into weighted samples."""

    def test_counts_and_first_seen_order(self):
        """Weights are occurrence counts, order follows first occurrence."""
        pixels = np.array([
            [9, 9, 9],
            [1, 2, 3],
            [9, 9, 9],
            [0, 0, 0],
            [1, 2, 3],
            [9, 9, 9],
        ])

        samples = group_pixels(pixels)

        np.testing.assert_array_equal(samples.colors, [[9, 9, 9], [1, 2, 3], [0, 0, 0]])
        np.testing.assert_array_equal(samples.weights, [3, 2, 1])
        assert samples.total_weight == len(pixels)

    def test_empty_pixels(self):
        """Test that an empty buffer raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            group_pixels(np.zeros((0, 3)))


class TestQuantizeSamples:
    """Test channel quantization."""

    def test_rounds_half_up_and_clamps(self):
        samples = make_samples([(14, 15, 255)])

        quantized = quantize_samples(samples, 10)

        np.testing.assert_array_equal(quantized.colors, [[10, 20, 255]])

    def test_merges_collapsed_colors(self):
        """Colors landing on the same bucket are merged with summed weights."""
        samples = make_samples([(14, 14, 14), (50, 50, 50), (6, 6, 6)], [2, 1, 4])

        quantized = quantize_samples(samples, 10)

        np.testing.assert_array_equal(quantized.colors, [[10, 10, 10], [50, 50, 50]])
        np.testing.assert_array_equal(quantized.weights, [6, 1])
        assert quantized.total_weight == samples.total_weight

    def test_factor_one_matches_plain_grouping(self):
        """quantize_fact=1 gives the same samples as no quantization."""
        rng = np.random.default_rng(0)
        pixels = rng.integers(0, 256, size=(500, 3))

        plain = extract_samples(pixels)
        quantized = extract_samples(pixels, ClusterConfig(quantize_fact=1))

        np.testing.assert_array_equal(plain.colors, quantized.colors)
        np.testing.assert_array_equal(plain.weights, quantized.weights)

    def test_reduces_distinct_colors(self):
        rng = np.random.default_rng(1)
        pixels = rng.integers(0, 256, size=(2000, 3))

        plain = extract_samples(pixels)
        quantized = extract_samples(pixels, ClusterConfig(quantize_fact=32))

        assert len(quantized) < len(plain)
        assert quantized.total_weight == plain.total_weight
        assert np.all((quantized.colors % 32 == 0) | (quantized.colors == 255))


class TestFilterTopColors:
    """Test top-N frequency filtering."""

    def test_keeps_heaviest_with_stable_ties(self):
        """Ties are broken by first-encountered order."""
        samples = make_samples([(1, 1, 1), (2, 2, 2), (3, 3, 3), (4, 4, 4)], [1, 3, 5, 3])

        top = filter_top_colors(samples, 2)

        np.testing.assert_array_equal(top.colors, [[3, 3, 3], [2, 2, 2]])
        np.testing.assert_array_equal(top.weights, [5, 3])

    def test_discarded_weight_is_dropped(self):
        """Sum of kept weights is the sum of the N largest color counts."""
        pixels = np.array(
            [[255, 0, 0]] * 5 + [[0, 255, 0]] * 3 + [[0, 0, 255]] * 3 + [[9, 9, 9]]
        )

        samples = extract_samples(pixels, ClusterConfig(top_num=2))

        assert samples.total_weight == 8
        assert len(samples) == 2
        np.testing.assert_array_equal(samples.colors, [[255, 0, 0], [0, 255, 0]])

    def test_top_num_larger_than_colors(self):
        samples = make_samples([(1, 1, 1), (2, 2, 2)], [1, 2])

        top = filter_top_colors(samples, 10)

        assert len(top) == 2
        assert top.total_weight == 3


class TestExtractSamples:
    """Test the full extraction path."""

    def test_from_pixel_buffer(self, three_color_image):
        samples = extract_samples(ingest_from_array(three_color_image))

        assert len(samples) == 3
        np.testing.assert_array_equal(samples.weights, [100, 100, 100])

    def test_quantize_then_filter(self):
        """Quantization merges first, so merged colors can win the top-N cut."""
        pixels = np.array([[11, 11, 11]] * 2 + [[9, 9, 9]] * 2 + [[200, 200, 200]] * 3)

        samples = extract_samples(pixels, ClusterConfig(quantize_fact=10, top_num=1))

        np.testing.assert_array_equal(samples.colors, [[10, 10, 10]])
        np.testing.assert_array_equal(samples.weights, [4])

    def test_alpha_ignored_by_default(self):
        pixels = np.array([[255, 0, 0, 0], [0, 0, 255, 255]])

        samples = extract_samples(pixels)

        assert len(samples) == 2

    def test_skip_transparent(self):
        pixels = np.array([[255, 0, 0, 0], [0, 0, 255, 255], [0, 0, 255, 10]])

        samples = extract_samples(pixels, ClusterConfig(alpha_policy=AlphaPolicy.SKIP_TRANSPARENT))

        np.testing.assert_array_equal(samples.colors, [[0, 0, 255]])
        np.testing.assert_array_equal(samples.weights, [2])

    def test_all_transparent(self):
        pixels = np.array([[255, 0, 0, 0], [0, 0, 255, 0]])

        with pytest.raises(InvalidInputError):
            extract_samples(pixels, ClusterConfig(alpha_policy=AlphaPolicy.SKIP_TRANSPARENT))

    def test_samples_are_read_only(self, three_color_image):
        samples = extract_samples(ingest_from_array(three_color_image))

        with pytest.raises(ValueError):
            samples.weights[0] = 7
