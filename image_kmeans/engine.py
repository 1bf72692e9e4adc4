"""Clustering engine bound to one captured pixel source."""
import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Dict, Optional, Union

import numpy as np

from image_kmeans.types import (
    ClusterConfig,
    InitMethod,
    InvalidInputError,
    PixelBuffer,
    RunResult,
    SampleSet,
)
from image_kmeans.raster_ingest import ingest_from_array
from image_kmeans.samples import extract_samples
from image_kmeans.runners import RandomState, run_derived_k, run_fixed_k

logger = logging.getLogger(__name__)

ConfigLike = Union[None, ClusterConfig, Dict[str, Any]]


def _as_config(config: ConfigLike) -> ClusterConfig:
    if config is None:
        return ClusterConfig()
    if isinstance(config, ClusterConfig):
        return config
    return ClusterConfig.from_dict(config)


def _as_init_method(method: Union[InitMethod, str]) -> InitMethod:
    if isinstance(method, InitMethod):
        return method
    try:
        return InitMethod(method)
    except ValueError as e:
        raise InvalidInputError(f"Unknown init method: {method!r}") from e


class ImageKMeans:
    """
    Palette extraction engine for one image.

    The pixels are copied when the engine is built, so later changes to the
    source are not seen. Every operation re-extracts samples and clusters
    from scratch; nothing is cached between calls and no state is shared
    between concurrent calls.

    Example:
        >>> engine = ImageKMeans(ingest("photo.png"), random_state=7)
        >>> engine.fixed_k(5).clusters
        >>> future = engine.submit_derived_k()
        >>> future.result().ks
    """

    def __init__(
        self,
        pixels: Union[PixelBuffer, np.ndarray],
        random_state: RandomState = None,
        executor: Optional[Executor] = None
    ):
        """
        Initialize the engine.

        Args:
            pixels: PixelBuffer, or an (H, W, 3|4) image array
            random_state: Default seed or generator for operations. An int
                seed gives every call its own fresh generator. A Generator
                hands every call a child generator seeded from it, in call
                order, so concurrent calls never share one.
            executor: Executor for the ``submit_*`` operations. A private
                single-worker thread pool is created on first use if None.
        """
        if not isinstance(pixels, PixelBuffer):
            pixels = ingest_from_array(pixels)

        self.width = pixels.width
        self.height = pixels.height
        self._pixels = np.array(pixels.pixels, dtype=np.uint8, copy=True)
        self._pixels.flags.writeable = False
        self.random_state = random_state

        self._executor = executor
        self._owns_executor = executor is None

    def __enter__(self) -> "ImageKMeans":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        """Shut down the private executor, if one was created."""
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def samples(self, config: ConfigLike = None) -> SampleSet:
        """Extract weighted samples from the captured pixels."""
        return extract_samples(self._pixels, _as_config(config))

    def fixed_k(
        self,
        k: int,
        init_method: Union[InitMethod, str] = InitMethod.KMEANS_PLUS_PLUS,
        config: ConfigLike = None,
        random_state: RandomState = None
    ) -> RunResult:
        """
        Cluster the image into exactly k colors.

        Args:
            k: Number of clusters
            init_method: Centroid initialization method
            config: ClusterConfig or ``{quantize_fact?, top_num?}`` dict
            random_state: Overrides the engine default for this call

        Returns:
            RunResult with k cluster colors

        Raises:
            InvalidInputError: If the image is empty or k is out of range
        """
        config = _as_config(config)
        method = _as_init_method(init_method)
        samples = extract_samples(self._pixels, config)
        logger.info(f"Fixed-k run: k={k}, init={method.value}")
        return run_fixed_k(samples, k, method, config, self._random_state(random_state))

    def derived_k(
        self,
        init_method: Union[InitMethod, str] = InitMethod.KMEANS_PLUS_PLUS,
        config: ConfigLike = None,
        random_state: RandomState = None
    ) -> RunResult:
        """
        Cluster the image with an automatically chosen number of colors.

        Args:
            init_method: Centroid initialization method
            config: ClusterConfig or ``{quantize_fact?, top_num?}`` dict
            random_state: Overrides the engine default for this call

        Returns:
            RunResult for the k at the knee of the WCSS curve
        """
        config = _as_config(config)
        method = _as_init_method(init_method)
        samples = extract_samples(self._pixels, config)
        logger.info(f"Derived-k run: up to k={config.max_k}, init={method.value}")
        return run_derived_k(samples, method, config, self._random_state(random_state))

    def submit_fixed_k(
        self,
        k: int,
        init_method: Union[InitMethod, str] = InitMethod.KMEANS_PLUS_PLUS,
        config: ConfigLike = None,
        random_state: RandomState = None
    ) -> "Future[RunResult]":
        """Run :meth:`fixed_k` on the executor; failures surface from ``result()``."""
        return self._get_executor().submit(
            self.fixed_k, k, init_method, config, self._random_state(random_state)
        )

    def submit_derived_k(
        self,
        init_method: Union[InitMethod, str] = InitMethod.KMEANS_PLUS_PLUS,
        config: ConfigLike = None,
        random_state: RandomState = None
    ) -> "Future[RunResult]":
        """Run :meth:`derived_k` on the executor; failures surface from ``result()``."""
        return self._get_executor().submit(
            self.derived_k, init_method, config, self._random_state(random_state)
        )

    def _random_state(self, random_state: RandomState) -> RandomState:
        if random_state is not None:
            return random_state
        if isinstance(self.random_state, np.random.Generator):
            # Child generator per call, drawn in the calling thread
            return np.random.default_rng(self.random_state.integers(2 ** 63 - 1))
        return self.random_state

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="image-kmeans")
            self._owns_executor = True
        return self._executor
