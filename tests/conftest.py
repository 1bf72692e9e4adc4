"""Pytest configuration and fixtures."""
import numpy as np
import pytest

from image_kmeans.types import SampleSet


def make_samples(colors, weights=None) -> SampleSet:
    """Build a SampleSet from a list of RGB tuples."""
    colors = np.array(colors, dtype=np.int64).reshape(-1, 3)
    if weights is None:
        weights = np.ones(len(colors), dtype=np.int64)
    return SampleSet(colors=colors, weights=np.array(weights, dtype=np.int64))


@pytest.fixture
def three_color_image():
    """10x30 image of three equal red, green and blue stripes."""
    image = np.zeros((10, 30, 3), dtype=np.uint8)
    image[:, :10] = [255, 0, 0]
    image[:, 10:20] = [0, 255, 0]
    image[:, 20:] = [0, 0, 255]
    return image


@pytest.fixture
def clustered_samples():
    """Three tight, well separated color groups of five colors each."""
    rng = np.random.default_rng(1234)
    centers = np.array([[30, 30, 30], [220, 40, 40], [40, 200, 220]])
    colors = []
    for center in centers:
        offsets = rng.integers(-4, 5, size=(5, 3))
        offsets[0] = 0
        for offset in offsets:
            color = tuple(int(v) for v in center + offset)
            if color not in colors:
                colors.append(color)
    weights = rng.integers(5, 20, size=len(colors))
    return make_samples(colors, weights)


@pytest.fixture
def line_samples():
    """101 unit-weight grays 0..100 along the red axis."""
    return make_samples([(v, 0, 0) for v in range(101)])
