"""Clustering quality metric."""
from typing import Optional

import numpy as np

from image_kmeans.types import SampleSet
from image_kmeans.refinement import assign_samples, squared_distances


def compute_wcss(
    samples: SampleSet,
    centroids: np.ndarray,
    labels: Optional[np.ndarray] = None
) -> float:
    """
    Within-cluster sum of squares.

    Sum over samples of ``weight * |color - centroid|^2`` where centroid is
    the one the sample is assigned to.

    Args:
        samples: Weighted samples
        centroids: (k, 3) centroids
        labels: Sample assignment; nearest-centroid assignment if None

    Returns:
        Non-negative WCSS
    """
    centroids = np.asarray(centroids, dtype=np.float64)
    if labels is None:
        labels = assign_samples(samples, centroids)

    dist = squared_distances(samples, centroids)[np.arange(len(samples)), labels]
    return float(np.dot(samples.weights.astype(np.float64), dist))
