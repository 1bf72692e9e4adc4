"""image-kmeans: representative color palettes via k-means clustering."""
from image_kmeans.types import (
    AlphaPolicy,
    ClusterConfig,
    ClusteringError,
    Color,
    InitMethod,
    InternalInvariantError,
    InvalidInputError,
    PixelBuffer,
    RunResult,
    SampleSet,
    WeightedSample,
)
from image_kmeans.engine import ImageKMeans
from image_kmeans.raster_ingest import ingest, ingest_from_array, ingest_from_bytes

__version__ = "0.1.0"

__all__ = [
    "AlphaPolicy",
    "ClusterConfig",
    "ClusteringError",
    "Color",
    "ImageKMeans",
    "InitMethod",
    "InternalInvariantError",
    "InvalidInputError",
    "PixelBuffer",
    "RunResult",
    "SampleSet",
    "WeightedSample",
    "ingest",
    "ingest_from_array",
    "ingest_from_bytes",
]
