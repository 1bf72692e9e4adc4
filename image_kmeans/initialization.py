"""Initial centroid selection: uniform random and k-means++."""
import logging

import numpy as np
from scipy.spatial.distance import cdist

from image_kmeans.types import (
    InitMethod,
    InternalInvariantError,
    InvalidInputError,
    SampleSet,
    _is_int,
)

logger = logging.getLogger(__name__)


def _check_k(samples: SampleSet, k: int) -> None:
    if not _is_int(k):
        raise InvalidInputError(f"k must be an integer, got {k!r}")
    if k < 1:
        raise InvalidInputError(f"k must be >= 1, got {k}")
    if k > len(samples):
        raise InvalidInputError(
            f"k={k} exceeds the number of distinct sample colors ({len(samples)})"
        )


def random_centroids(
    samples: SampleSet,
    k: int,
    rng: np.random.Generator
) -> np.ndarray:
    """Pick k distinct sample colors uniformly without replacement."""
    _check_k(samples, k)
    indices = rng.choice(len(samples), size=k, replace=False)
    return samples.colors[indices].astype(np.float64)


def kmeans_plus_plus_centroids(
    samples: SampleSet,
    k: int,
    rng: np.random.Generator
) -> np.ndarray:
    """
    Pick k centroids with k-means++ seeding.

    The first centroid is a uniformly chosen sample. Every further centroid
    is drawn with probability proportional to ``weight * D^2``, where D is
    the distance from a sample to its nearest centroid chosen so far.
    Already chosen samples have D = 0 and can't be drawn twice.

    Args:
        samples: Weighted samples
        k: Number of centroids, 1 <= k <= len(samples)
        rng: Random generator driving the selection

    Returns:
        (k, 3) float array of distinct centroids
    """
    _check_k(samples, k)

    colors = samples.colors.astype(np.float64)
    weights = samples.weights.astype(np.float64)

    chosen = [int(rng.integers(len(samples)))]
    nearest = cdist(colors, colors[chosen], 'sqeuclidean')[:, 0]

    while len(chosen) < k:
        mass = weights * nearest
        total = mass.sum()
        if total <= 0:
            raise InternalInvariantError(
                f"k-means++ ran out of candidates after {len(chosen)} of {k} centroids"
            )

        next_index = int(rng.choice(len(samples), p=mass / total))
        chosen.append(next_index)

        new_dist = cdist(colors, colors[[next_index]], 'sqeuclidean')[:, 0]
        nearest = np.minimum(nearest, new_dist)

    return colors[chosen]


def initialize_centroids(
    samples: SampleSet,
    k: int,
    method: InitMethod,
    rng: np.random.Generator
) -> np.ndarray:
    """Dispatch to the initializer for ``method``."""
    if method == InitMethod.RANDOM:
        centroids = random_centroids(samples, k, rng)
    elif method == InitMethod.KMEANS_PLUS_PLUS:
        centroids = kmeans_plus_plus_centroids(samples, k, rng)
    else:
        raise InvalidInputError(f"Unknown init method: {method!r}")

    logger.debug(f"Initialized {k} centroids with {method.value}")
    return centroids
