"""Debug visualizations for clustering results."""
from pathlib import Path
from typing import Optional, Union

from PIL import Image, ImageDraw
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
from matplotlib import pyplot as plt

from image_kmeans.types import KCurve, RunResult


def render_palette_swatch(
    result: RunResult,
    swatch_size: int = 40,
    padding: int = 10
) -> Image.Image:
    """Render the cluster colors of a run as a strip of swatches."""
    n = len(result.clusters)
    width = swatch_size * n + padding * (n + 1)
    height = swatch_size + 2 * padding

    image = Image.new("RGB", (width, height), color=(255, 255, 255))
    draw = ImageDraw.Draw(image)

    for idx, color in enumerate(result.clusters):
        x0 = padding + idx * (swatch_size + padding)
        draw.rectangle(
            [x0, padding, x0 + swatch_size - 1, padding + swatch_size - 1],
            fill=color.as_tuple(),
            outline=(0, 0, 0)
        )

    return image


def save_palette_swatch(
    result: RunResult,
    output_path: Union[str, Path],
    swatch_size: int = 40,
    padding: int = 10
) -> Path:
    """Save a swatch strip for ``result`` and return its path."""
    output_path = Path(output_path)
    render_palette_swatch(result, swatch_size, padding).save(output_path)
    return output_path


def plot_elbow_curve(
    curve: KCurve,
    output_path: Union[str, Path],
    selected_k: Optional[int] = None
) -> Path:
    """
    Plot WCSS against k, marking ``selected_k`` if given.
    """
    output_path = Path(output_path)
    ks = [point.k for point in curve]
    wcss = [point.wcss for point in curve]

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(ks, wcss, marker='o', linestyle='-')
    ax.set_title('WCSS by k')

    for point in curve:
        if point.k == selected_k:
            ax.plot([point.k], [point.wcss], marker='o', markersize=12,
                    markerfacecolor='none', markeredgecolor='red')
            ax.axvline(point.k, color='red', linestyle='--', alpha=0.5)
            ax.set_title(f'WCSS by k (selected k={selected_k})')

    ax.set_xlabel('Number of clusters (k)')
    ax.set_ylabel('Within-cluster sum of squares')
    ax.set_xticks(ks)
    ax.grid(True)

    plt.tight_layout()
    plt.savefig(output_path, dpi=100, bbox_inches='tight')
    plt.close(fig)
    return output_path
