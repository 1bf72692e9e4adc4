"""Raster image ingestion into flat pixel buffers."""
from pathlib import Path
from typing import Union
import numpy as np
from PIL import Image
from PIL import ImageOps

from image_kmeans.types import PixelBuffer, InvalidInputError


def ingest(path: Union[str, Path]) -> PixelBuffer:
    """
    Ingest a raster image file.

    Loads the image with EXIF orientation applied. Images carrying
    transparency keep their alpha channel (RGBA), everything else is
    converted to RGB.

    Args:
        path: Path to image file

    Returns:
        PixelBuffer with one row per pixel in row-major order

    Raises:
        FileNotFoundError: If file doesn't exist
        InvalidInputError: If file cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")

    if not path.is_file():
        raise InvalidInputError(f"Path is not a file: {path}")

    try:
        with Image.open(path) as img:
            img = ImageOps.exif_transpose(img)

            has_alpha = img.mode in ('RGBA', 'LA', 'PA') or (
                img.mode == 'P' and 'transparency' in img.info
            )
            img = img.convert('RGBA' if has_alpha else 'RGB')

            width, height = img.size
            array = np.array(img, dtype=np.uint8)

    except (IOError, OSError) as e:
        raise InvalidInputError(f"Failed to load image {path}: {e}") from e

    return PixelBuffer(
        pixels=array.reshape(-1, array.shape[2]),
        width=width,
        height=height,
        has_alpha=has_alpha,
        source=str(path),
    )


def ingest_from_array(image: np.ndarray, source: str = "") -> PixelBuffer:
    """
    Create a PixelBuffer from a numpy array.

    Args:
        image: Image array (H, W), (H, W, 3) or (H, W, 4) with values 0-255
        source: Optional description of where the pixels came from

    Returns:
        PixelBuffer holding a private copy of the pixels
    """
    image = np.asarray(image)

    if image.ndim == 2:
        # Grayscale - convert to RGB
        image = np.stack([image] * 3, axis=-1)

    if image.ndim != 3:
        raise InvalidInputError(f"Expected 3D array, got {image.ndim}D")

    if image.shape[2] not in (3, 4):
        raise InvalidInputError(f"Expected 3 or 4 channels, got {image.shape[2]}")

    if image.size and (image.min() < 0 or image.max() > 255):
        raise InvalidInputError("Pixel values must be in the [0, 255] range")

    height, width, channels = image.shape
    pixels = image.astype(np.uint8).reshape(-1, channels).copy()

    return PixelBuffer(
        pixels=pixels,
        width=width,
        height=height,
        has_alpha=channels == 4,
        source=source,
    )


def ingest_from_bytes(
    buf: bytes,
    width: int,
    height: int,
    channels: int = 4
) -> PixelBuffer:
    """
    Create a PixelBuffer from raw row-major pixel bytes.

    This is the shape drawing surfaces hand out (e.g. canvas ``ImageData``
    is RGBA, 4 bytes per pixel).

    Args:
        buf: Raw pixel bytes
        width: Width of the source in pixels
        height: Height of the source in pixels
        channels: Bytes per pixel, 3 (RGB) or 4 (RGBA)

    Returns:
        PixelBuffer holding a private copy of the pixels
    """
    if channels not in (3, 4):
        raise InvalidInputError(f"Expected 3 or 4 channels, got {channels}")

    if width < 0 or height < 0:
        raise InvalidInputError(f"Invalid dimensions {width}x{height}")

    expected = width * height * channels
    if len(buf) != expected:
        raise InvalidInputError(
            f"Pixel buffer holds {len(buf)} bytes, expected {expected} "
            f"for {width}x{height}x{channels}"
        )

    pixels = np.frombuffer(bytes(buf), dtype=np.uint8).reshape(-1, channels).copy()

    return PixelBuffer(
        pixels=pixels,
        width=width,
        height=height,
        has_alpha=channels == 4,
        source="<bytes>",
    )
