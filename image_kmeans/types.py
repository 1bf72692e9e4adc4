"""Core types for the palette clustering engine."""
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple
import numpy as np


class InitMethod(Enum):
    """Method used to pick the initial k centroids."""
    RANDOM = "random"
    KMEANS_PLUS_PLUS = "kmeans++"


class AlphaPolicy(Enum):
    """How an alpha channel in the pixel buffer is treated."""
    IGNORE = "ignore"  # Alpha dropped, every pixel counts
    SKIP_TRANSPARENT = "skip_transparent"  # Pixels with alpha == 0 excluded


@dataclass(frozen=True)
class Color:
    """An RGB color with channels in the [0, 255] range."""
    r: int
    g: int
    b: int

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def to_dict(self) -> Dict[str, int]:
        return {"r": self.r, "g": self.g, "b": self.b}

    def hex(self) -> str:
        return f"#{self.r:02x}{self.g:02x}{self.b:02x}"


@dataclass(frozen=True)
class WeightedSample:
    """A distinct color and the number of pixels carrying it."""
    color: Color
    weight: int


@dataclass(frozen=True, eq=False)
class SampleSet:
    """Ordered weighted color samples.

    Colors are stored as an (N, 3) int64 array and weights as an (N,) int64
    array. Both arrays are copied and made read-only on construction.
    """
    colors: np.ndarray
    weights: np.ndarray

    def __post_init__(self):
        colors = np.array(self.colors, dtype=np.int64).reshape(-1, 3)
        weights = np.array(self.weights, dtype=np.int64).reshape(-1)
        if len(colors) != len(weights):
            raise InvalidInputError(
                f"Got {len(colors)} sample colors but {len(weights)} weights"
            )
        colors.flags.writeable = False
        weights.flags.writeable = False
        object.__setattr__(self, "colors", colors)
        object.__setattr__(self, "weights", weights)

    def __len__(self) -> int:
        return len(self.weights)

    def __iter__(self) -> Iterator[WeightedSample]:
        for color, weight in zip(self.colors, self.weights):
            yield WeightedSample(Color(*(int(c) for c in color)), int(weight))

    @property
    def total_weight(self) -> int:
        return int(self.weights.sum())

    @property
    def distinct_count(self) -> int:
        return len(self)


@dataclass
class PixelBuffer:
    """Pixel data captured from a raster source."""
    pixels: np.ndarray  # (width * height, C) uint8, C is 3 or 4
    width: int
    height: int
    has_alpha: bool
    source: str = ""

    @property
    def pixel_count(self) -> int:
        return self.width * self.height


@dataclass
class ClusterConfig:
    """Configuration for a clustering run."""
    # Sample extraction
    quantize_fact: Optional[int] = None
    top_num: Optional[int] = None
    alpha_policy: AlphaPolicy = AlphaPolicy.IGNORE

    # Refinement
    max_iterations: int = 100
    tolerance: float = 0.0

    # Derived-k candidate range is 1..min(max_k, distinct samples)
    max_k: int = 10

    def __post_init__(self):
        """Validate value ranges."""
        if isinstance(self.alpha_policy, str):
            try:
                self.alpha_policy = AlphaPolicy(self.alpha_policy)
            except ValueError as e:
                raise InvalidInputError(f"Unknown alpha policy: {self.alpha_policy!r}") from e
        for name in ("quantize_fact", "top_num"):
            value = getattr(self, name)
            if value is not None and (not _is_int(value) or value < 1):
                raise InvalidInputError(f"{name} must be a positive integer, got {value!r}")
        if not _is_int(self.max_iterations) or self.max_iterations < 1:
            raise InvalidInputError(
                f"max_iterations must be a positive integer, got {self.max_iterations!r}"
            )
        if not _is_int(self.max_k) or self.max_k < 1:
            raise InvalidInputError(f"max_k must be a positive integer, got {self.max_k!r}")
        if not isinstance(self.tolerance, (int, float, np.number)) or isinstance(self.tolerance, bool):
            raise InvalidInputError(f"tolerance must be a number, got {self.tolerance!r}")
        if not self.tolerance >= 0:
            raise InvalidInputError(f"tolerance must be >= 0, got {self.tolerance}")

    @classmethod
    def from_dict(cls, options: Optional[Dict[str, Any]]) -> "ClusterConfig":
        """Build a config from the external ``{quantize_fact?, top_num?}`` shape.

        Keys with a ``None`` value fall back to the defaults. Unknown keys
        are rejected.
        """
        options = options or {}
        known = {f.name for f in fields(cls)}
        unknown = set(options) - known
        if unknown:
            raise InvalidInputError(f"Unknown config option(s): {', '.join(sorted(unknown))}")
        return cls(**{key: value for key, value in options.items() if value is not None})


@dataclass
class RefineResult:
    """Outcome of one Lloyd refinement."""
    centroids: np.ndarray  # (k, 3) float64
    labels: np.ndarray  # (N,) int64, index of the assigned centroid
    iterations: int
    converged: bool


@dataclass(frozen=True)
class RunResult:
    """Result of one clustering run.

    Attributes:
        ks: The number of clusters used for this run.
        clusters: Cluster colors, one per cluster, in centroid order.
        wcss: Within-cluster sum of squares of the run.
    """
    ks: int
    clusters: Tuple[Color, ...]
    wcss: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ks": self.ks,
            "clusters": [c.to_dict() for c in self.clusters],
            "wcss": self.wcss,
        }


@dataclass(frozen=True)
class KCurvePoint:
    """One candidate of a derived-k evaluation."""
    k: int
    wcss: float
    result: RunResult = field(repr=False)


KCurve = List[KCurvePoint]


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class ClusteringError(Exception):
    """Base exception for clustering errors."""
    pass


class InvalidInputError(ClusteringError):
    """Exception raised for unusable pixel data, k values or options."""
    pass


class InternalInvariantError(ClusteringError):
    """Exception raised when the engine reaches a state it should never reach."""
    pass
