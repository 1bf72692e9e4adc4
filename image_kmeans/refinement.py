"""Lloyd refinement of centroids over weighted color samples."""
import logging

import numpy as np
from scipy.spatial.distance import cdist

from image_kmeans.types import InternalInvariantError, RefineResult, SampleSet

logger = logging.getLogger(__name__)


def squared_distances(samples: SampleSet, centroids: np.ndarray) -> np.ndarray:
    """(N, k) matrix of squared Euclidean distances in RGB space."""
    return cdist(samples.colors.astype(np.float64), centroids, 'sqeuclidean')


def assign_samples(samples: SampleSet, centroids: np.ndarray) -> np.ndarray:
    """
    Assign every sample to its nearest centroid.

    Ties go to the lowest centroid index.

    Returns:
        (N,) int64 array of centroid indices
    """
    return np.argmin(squared_distances(samples, centroids), axis=1).astype(np.int64)


def reseed_empty_clusters(
    samples: SampleSet,
    centroids: np.ndarray,
    labels: np.ndarray
) -> np.ndarray:
    """
    Move centroids of empty clusters onto far-away samples.

    Each empty cluster, in index order, takes the sample with the largest
    weighted squared distance to its nearest current centroid. Centroids
    placed earlier in the same call count as current, so two empty clusters
    never land on the same sample.

    Args:
        samples: Weighted samples
        centroids: (k, 3) centroids
        labels: Sample assignment the emptiness is judged on

    Returns:
        New (k, 3) centroid array; the inputs are left untouched

    Raises:
        InternalInvariantError: If no sample lies away from every centroid
    """
    k = len(centroids)
    counts = np.bincount(labels, minlength=k)
    empty = np.flatnonzero(counts == 0)

    new_centroids = np.array(centroids, dtype=np.float64, copy=True)
    if len(empty) == 0:
        return new_centroids

    weights = samples.weights.astype(np.float64)
    occupied = np.flatnonzero(counts > 0)
    if len(occupied):
        nearest = squared_distances(samples, new_centroids[occupied]).min(axis=1)
    else:
        nearest = np.full(len(samples), np.inf)

    for cluster in empty:
        score = weights * nearest
        index = int(np.argmax(score))
        if not score[index] > 0:
            raise InternalInvariantError(
                f"Cannot re-seed empty cluster {cluster}: every sample sits on a centroid"
            )
        new_centroids[cluster] = samples.colors[index]
        placed = squared_distances(samples, new_centroids[[cluster]])[:, 0]
        nearest = np.minimum(nearest, placed)
        logger.debug(f"Re-seeded empty cluster {cluster} at sample {index}")

    return new_centroids


def update_centroids(
    samples: SampleSet,
    centroids: np.ndarray,
    labels: np.ndarray
) -> np.ndarray:
    """
    Recompute centroids as weighted means of their assigned samples.

    Clusters that received no weight are re-seeded with
    :func:`reseed_empty_clusters`.

    Returns:
        New (k, 3) centroid array
    """
    k = len(centroids)
    weights = samples.weights.astype(np.float64)
    colors = samples.colors.astype(np.float64)

    cluster_weight = np.bincount(labels, weights=weights, minlength=k)
    sums = np.stack(
        [np.bincount(labels, weights=weights * colors[:, ch], minlength=k) for ch in range(3)],
        axis=1
    )

    new_centroids = np.array(centroids, dtype=np.float64, copy=True)
    filled = cluster_weight > 0
    new_centroids[filled] = sums[filled] / cluster_weight[filled, None]

    if not filled.all():
        new_centroids = reseed_empty_clusters(samples, new_centroids, labels)

    return new_centroids


def refine(
    samples: SampleSet,
    initial_centroids: np.ndarray,
    max_iterations: int = 100,
    tolerance: float = 0.0
) -> RefineResult:
    """
    Run Lloyd iterations until the assignment settles.

    Each iteration recomputes centroids from the current assignment and
    re-assigns samples. Refinement stops when no assignment changes, when
    no centroid moved further than ``tolerance``, or after
    ``max_iterations`` iterations. Hitting the cap is not an error.

    Args:
        samples: Weighted samples
        initial_centroids: (k, 3) starting centroids
        max_iterations: Iteration cap
        tolerance: Largest centroid shift (RGB units) still considered settled

    Returns:
        RefineResult with final centroids and the matching assignment
    """
    centroids = np.asarray(initial_centroids, dtype=np.float64)
    labels = assign_samples(samples, centroids)

    converged = False
    iterations = 0
    while iterations < max_iterations:
        iterations += 1
        new_centroids = update_centroids(samples, centroids, labels)
        new_labels = assign_samples(samples, new_centroids)

        shift = float(np.sqrt(((new_centroids - centroids) ** 2).sum(axis=1)).max())
        changed = int(np.count_nonzero(new_labels != labels))
        centroids, labels = new_centroids, new_labels
        logger.debug(f"Iteration {iterations}: {changed} reassigned, max shift {shift:.3f}")

        if changed == 0 or shift <= tolerance:
            converged = True
            break

    if not converged:
        logger.warning(
            f"k={len(centroids)} did not converge within {max_iterations} iterations"
        )

    return RefineResult(
        centroids=centroids,
        labels=labels,
        iterations=iterations,
        converged=converged,
    )
