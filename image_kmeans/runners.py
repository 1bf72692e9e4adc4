"""Fixed-k and derived-k clustering runs."""
import logging
from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

from image_kmeans.types import (
    ClusterConfig,
    Color,
    InitMethod,
    InternalInvariantError,
    InvalidInputError,
    KCurve,
    KCurvePoint,
    RefineResult,
    RunResult,
    SampleSet,
)
from image_kmeans.initialization import initialize_centroids
from image_kmeans.refinement import refine, squared_distances
from image_kmeans.quality import compute_wcss

logger = logging.getLogger(__name__)

RandomState = Union[None, int, np.random.Generator]
KneePolicy = Callable[[Sequence[Tuple[int, float]]], int]

# Normalized distance below which an interior point counts as on the chord
KNEE_TOLERANCE = 1e-9


def finalize_clusters(samples: SampleSet, refined: RefineResult) -> Tuple[Color, ...]:
    """
    Turn refined centroids into output colors.

    Centroids are rounded half-up and clamped to [0, 255]. When rounding
    makes two clusters collide, every cluster is snapped to the sample
    closest to its centroid instead: its own members first, or any sample
    not taken yet for a cluster without members.
    """
    centroids = refined.centroids
    k = len(centroids)
    rounded = np.clip(np.floor(centroids + 0.5), 0, 255).astype(np.int64)

    if len(np.unique(rounded, axis=0)) < k:
        logger.debug("Rounded centroids collide, snapping clusters to sample colors")
        dist = squared_distances(samples, centroids)
        counts = np.bincount(refined.labels, minlength=k)
        used = np.zeros(len(samples), dtype=bool)

        # Clusters with members first; their member sets are disjoint
        for cluster in sorted(range(k), key=lambda c: counts[c] == 0):
            if counts[cluster] > 0:
                candidates = (refined.labels == cluster) & ~used
            else:
                candidates = ~used
            if not candidates.any():
                raise InternalInvariantError(f"No free sample color left for cluster {cluster}")
            index = int(np.argmin(np.where(candidates, dist[:, cluster], np.inf)))
            used[index] = True
            rounded[cluster] = samples.colors[index]

    return tuple(Color(int(r), int(g), int(b)) for r, g, b in rounded)


def run_fixed_k(
    samples: SampleSet,
    k: int,
    init_method: InitMethod = InitMethod.KMEANS_PLUS_PLUS,
    config: Optional[ClusterConfig] = None,
    random_state: RandomState = None
) -> RunResult:
    """
    Cluster samples into exactly k clusters.

    Initializes centroids once, refines them once and scores the result.

    Args:
        samples: Weighted samples
        k: Number of clusters, 1 <= k <= len(samples)
        init_method: Centroid initialization method
        config: Refinement options (defaults if None)
        random_state: Seed or generator driving initialization

    Returns:
        RunResult with k distinct cluster colors

    Raises:
        InvalidInputError: If k is out of range
    """
    config = config or ClusterConfig()
    rng = np.random.default_rng(random_state)

    initial = initialize_centroids(samples, k, init_method, rng)
    refined = refine(
        samples,
        initial,
        max_iterations=config.max_iterations,
        tolerance=config.tolerance,
    )
    wcss = compute_wcss(samples, refined.centroids, refined.labels)

    logger.debug(
        f"k={k}: WCSS={wcss:.2f} after {refined.iterations} iterations"
        f"{'' if refined.converged else ' (not converged)'}"
    )

    return RunResult(ks=k, clusters=finalize_clusters(samples, refined), wcss=wcss)


def select_knee(points: Sequence[Tuple[int, float]]) -> int:
    """
    Pick k at the knee of a WCSS-vs-k curve.

    Both axes are normalized to [0, 1]. The interior point with the largest
    perpendicular distance to the chord joining the first and last points is
    the knee; among points within ``KNEE_TOLERANCE`` of the largest distance
    the highest k wins. A curve without a knee (fewer than three points, or
    every interior point on the chord) selects the last k. A curve that
    never improves selects the first k.

    Args:
        points: (k, wcss) pairs ordered by increasing k

    Returns:
        The selected k
    """
    if not points:
        raise InvalidInputError("Cannot select k from an empty curve")

    ks = np.array([p[0] for p in points], dtype=np.float64)
    wcss = np.array([p[1] for p in points], dtype=np.float64)

    if len(points) < 3:
        return int(ks[-1])

    span = wcss[0] - wcss[-1]
    if span <= 0:
        return int(ks[0])

    # After normalization the chord runs from (0, 1) to (1, 0)
    x = (ks - ks[0]) / (ks[-1] - ks[0])
    y = (wcss - wcss[-1]) / span
    distances = np.abs(x + y - 1.0) / np.sqrt(2.0)

    interior = distances[1:-1]
    largest = interior.max()
    if largest <= KNEE_TOLERANCE:
        return int(ks[-1])
    best = int(np.flatnonzero(interior >= largest - KNEE_TOLERANCE)[-1])
    return int(ks[best + 1])


def evaluate_k_range(
    samples: SampleSet,
    init_method: InitMethod = InitMethod.KMEANS_PLUS_PLUS,
    config: Optional[ClusterConfig] = None,
    random_state: RandomState = None
) -> KCurve:
    """
    Run fixed-k clustering for every candidate k.

    Candidates are ``1..min(config.max_k, len(samples))``. All runs draw from
    one generator, in order of increasing k.

    Returns:
        One KCurvePoint per candidate, ordered by k
    """
    config = config or ClusterConfig()
    rng = np.random.default_rng(random_state)

    upper = min(config.max_k, len(samples))
    curve = []
    for k in range(1, upper + 1):
        result = run_fixed_k(samples, k, init_method, config, rng)
        curve.append(KCurvePoint(k=k, wcss=result.wcss, result=result))

    return curve


def derive_k(
    samples: SampleSet,
    init_method: InitMethod = InitMethod.KMEANS_PLUS_PLUS,
    config: Optional[ClusterConfig] = None,
    random_state: RandomState = None,
    knee: KneePolicy = select_knee
) -> Tuple[RunResult, KCurve]:
    """
    Cluster samples with an automatically chosen k.

    Evaluates every candidate k and keeps the run at the knee of the
    WCSS curve. When there are fewer distinct colors than ``config.max_k``,
    the knee is located on the curve extended to ``max_k`` with the last
    (perfect-fit) WCSS repeated, and the selection is capped at the number
    of distinct colors. With a single distinct color the one k=1 run is
    returned.

    Args:
        samples: Weighted samples
        init_method: Centroid initialization method
        config: Options; ``config.max_k`` caps the candidate range
        random_state: Seed or generator driving all runs
        knee: Policy mapping (k, wcss) pairs to the selected k

    Returns:
        Tuple of (selected RunResult, full WCSS curve)
    """
    config = config or ClusterConfig()
    curve = evaluate_k_range(samples, init_method, config, random_state)

    if len(curve) == 1:
        selected = curve[0].k
    else:
        points = [(point.k, point.wcss) for point in curve]
        last = curve[-1]
        points.extend((k, last.wcss) for k in range(last.k + 1, config.max_k + 1))
        selected = min(knee(points), last.k)

    for point in curve:
        if point.k == selected:
            logger.info(f"Selected k={selected} from {len(curve)} candidates (WCSS={point.wcss:.2f})")
            return point.result, curve

    raise InternalInvariantError(f"Knee policy returned k={selected}, which was not evaluated")


def run_derived_k(
    samples: SampleSet,
    init_method: InitMethod = InitMethod.KMEANS_PLUS_PLUS,
    config: Optional[ClusterConfig] = None,
    random_state: RandomState = None,
    knee: KneePolicy = select_knee
) -> RunResult:
    """Like :func:`derive_k`, keeping only the selected run."""
    result, _ = derive_k(samples, init_method, config, random_state, knee)
    return result
