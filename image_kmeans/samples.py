"""Weighted color sample extraction from pixel buffers."""
import logging
from typing import Optional, Union

import numpy as np

from image_kmeans.types import (
    AlphaPolicy,
    ClusterConfig,
    InvalidInputError,
    PixelBuffer,
    SampleSet,
)

logger = logging.getLogger(__name__)


def _merge_duplicates(colors: np.ndarray, weights: np.ndarray) -> SampleSet:
    """Merge equal colors, summing weights, in first-encountered order."""
    unique, first_index, inverse = np.unique(
        colors, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    summed = np.bincount(inverse, weights=weights, minlength=len(unique))

    order = np.argsort(first_index, kind='stable')
    return SampleSet(
        colors=unique[order],
        weights=np.rint(summed[order]).astype(np.int64),
    )


def group_pixels(pixels: np.ndarray) -> SampleSet:
    """
    Group pixels by exact color.

    Args:
        pixels: (N, 3) array of RGB values

    Returns:
        SampleSet with one sample per distinct color, weight = occurrence
        count, ordered by first occurrence
    """
    pixels = np.asarray(pixels, dtype=np.int64).reshape(-1, 3)
    if len(pixels) == 0:
        raise InvalidInputError("Cannot extract samples from an empty pixel buffer")
    return _merge_duplicates(pixels, np.ones(len(pixels), dtype=np.int64))


def quantize_samples(samples: SampleSet, quantize_fact: int) -> SampleSet:
    """
    Snap every channel to a multiple of ``quantize_fact``.

    Each channel maps to ``round(value / quantize_fact) * quantize_fact``
    (half-up) clamped to 255. Samples that collapse onto the same color are
    merged and their weights summed.

    Args:
        samples: Samples to quantize
        quantize_fact: Positive bucket size

    Returns:
        Quantized SampleSet, ordered by first occurrence
    """
    if quantize_fact < 1:
        raise InvalidInputError(f"quantize_fact must be >= 1, got {quantize_fact}")

    if quantize_fact == 1:
        return samples

    snapped = np.floor(samples.colors / quantize_fact + 0.5).astype(np.int64) * quantize_fact
    snapped = np.clip(snapped, 0, 255)

    return _merge_duplicates(snapped, samples.weights)


def filter_top_colors(samples: SampleSet, top_num: int) -> SampleSet:
    """
    Keep only the ``top_num`` heaviest samples.

    Samples are ordered by weight, descending; ties keep their existing
    order. Everything past ``top_num`` is dropped together with its weight.
    """
    if top_num < 1:
        raise InvalidInputError(f"top_num must be >= 1, got {top_num}")

    order = np.argsort(-samples.weights, kind='stable')[:top_num]
    return SampleSet(colors=samples.colors[order], weights=samples.weights[order])


def _visible_rgb(pixels: np.ndarray, alpha_policy: AlphaPolicy) -> np.ndarray:
    """Drop the alpha channel, skipping transparent pixels if requested."""
    if pixels.ndim != 2 or pixels.shape[1] not in (3, 4):
        raise InvalidInputError(f"Expected (N, 3) or (N, 4) pixels, got shape {pixels.shape}")

    if pixels.shape[1] == 4 and alpha_policy == AlphaPolicy.SKIP_TRANSPARENT:
        pixels = pixels[pixels[:, 3] > 0]

    return pixels[:, :3]


def extract_samples(
    source: Union[PixelBuffer, np.ndarray],
    config: Optional[ClusterConfig] = None
) -> SampleSet:
    """
    Convert pixels into weighted color samples.

    Pixels are grouped by color, then the optional quantization and the
    optional top-N filter from ``config`` are applied, in that order.

    Args:
        source: PixelBuffer or (N, 3)/(N, 4) pixel array
        config: Extraction options (defaults if None)

    Returns:
        Non-empty SampleSet

    Raises:
        InvalidInputError: If there are no pixels to sample
    """
    config = config or ClusterConfig()
    pixels = source.pixels if isinstance(source, PixelBuffer) else np.asarray(source)

    rgb = _visible_rgb(pixels, config.alpha_policy)
    if len(rgb) == 0:
        raise InvalidInputError("Cannot extract samples from an empty pixel buffer")

    samples = group_pixels(rgb)
    logger.debug(f"Grouped {len(rgb)} pixels into {len(samples)} distinct colors")

    if config.quantize_fact is not None:
        samples = quantize_samples(samples, config.quantize_fact)
        logger.debug(f"Quantized by {config.quantize_fact}: {len(samples)} colors")

    if config.top_num is not None:
        samples = filter_top_colors(samples, config.top_num)

    logger.info(
        f"Extracted {len(samples)} samples covering {samples.total_weight} of {len(rgb)} pixels"
    )
    return samples
