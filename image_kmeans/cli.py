"""Command line interface for image-kmeans."""
import argparse
import json
import logging
import sys
from pathlib import Path

from image_kmeans.engine import ImageKMeans
from image_kmeans.raster_ingest import ingest
from image_kmeans.runners import derive_k
from image_kmeans.types import AlphaPolicy, ClusterConfig, ClusteringError, InitMethod
from image_kmeans.viz_utils import plot_elbow_curve, save_palette_swatch

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='image-kmeans',
        description='Extract a representative color palette from an image with k-means',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Let the elbow of the WCSS curve pick the palette size
  image-kmeans photo.jpg

  # Fixed palette of 6 colors, reproducible
  image-kmeans photo.jpg -k 6 --seed 42

  # Coarser colors, only the 64 most frequent, with debug output
  image-kmeans photo.jpg --quantize 8 --top 64 --swatch palette.png --plot-elbow elbow.png
        """,
    )

    parser.add_argument(
        'input',
        type=str,
        help='Input image path'
    )

    parser.add_argument(
        '-k', '--clusters',
        type=int,
        default=None,
        help='Number of clusters (default: derive from the WCSS elbow)'
    )

    parser.add_argument(
        '--init',
        choices=[m.value for m in InitMethod],
        default=InitMethod.KMEANS_PLUS_PLUS.value,
        help='Centroid initialization method (default: kmeans++)'
    )

    parser.add_argument(
        '--quantize',
        type=int,
        default=None,
        help='Quantization factor applied to every channel before clustering'
    )

    parser.add_argument(
        '--top',
        type=int,
        default=None,
        help='Only cluster the N most frequent colors'
    )

    parser.add_argument(
        '--max-k',
        type=int,
        default=10,
        help='Largest k tried when deriving k (default: 10)'
    )

    parser.add_argument(
        '--max-iter',
        type=int,
        default=100,
        help='Iteration cap for each refinement (default: 100)'
    )

    parser.add_argument(
        '--tolerance',
        type=float,
        default=0.0,
        help='Stop refining once no centroid moves further than this (default: 0)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for reproducible results'
    )

    parser.add_argument(
        '--skip-transparent',
        action='store_true',
        help='Ignore fully transparent pixels'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the result as JSON'
    )

    parser.add_argument(
        '--swatch',
        type=str,
        default=None,
        help='Save the palette as a swatch image'
    )

    parser.add_argument(
        '--plot-elbow',
        type=str,
        default=None,
        help='Save the WCSS-by-k plot (derived k only)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Log progress information'
    )

    return parser


def main(args=None):
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.INFO if parsed_args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s'
    )

    input_path = Path(parsed_args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    try:
        config = ClusterConfig(
            quantize_fact=parsed_args.quantize,
            top_num=parsed_args.top,
            alpha_policy=(
                AlphaPolicy.SKIP_TRANSPARENT if parsed_args.skip_transparent
                else AlphaPolicy.IGNORE
            ),
            max_iterations=parsed_args.max_iter,
            tolerance=parsed_args.tolerance,
            max_k=parsed_args.max_k,
        )
        method = InitMethod(parsed_args.init)

        with ImageKMeans(ingest(input_path), random_state=parsed_args.seed) as engine:
            if parsed_args.clusters is not None:
                result = engine.fixed_k(parsed_args.clusters, method, config)
            else:
                result, curve = derive_k(engine.samples(config), method, config, parsed_args.seed)

                for point in curve:
                    logger.info(f"k={point.k}: WCSS={point.wcss:.2f}")

                if parsed_args.plot_elbow:
                    try:
                        plot_elbow_curve(curve, parsed_args.plot_elbow, selected_k=result.ks)
                        print(f"Elbow plot saved to: {parsed_args.plot_elbow}", file=sys.stderr)
                    except OSError as e:
                        logger.warning(f"Could not save elbow plot: {e}")

    except ClusteringError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if parsed_args.clusters is not None and parsed_args.plot_elbow:
        print("Warning: --plot-elbow is only used when k is derived", file=sys.stderr)

    if parsed_args.swatch:
        try:
            save_palette_swatch(result, parsed_args.swatch)
            print(f"Swatch saved to: {parsed_args.swatch}", file=sys.stderr)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not save swatch: {e}")

    if parsed_args.json:
        print(json.dumps(result.to_dict()))
    else:
        print(f"k: {result.ks}")
        print(f"WCSS: {result.wcss:.2f}")
        for color in result.clusters:
            print(f"  {color.hex()}  rgb({color.r}, {color.g}, {color.b})")

    return 0


if __name__ == '__main__':
    sys.exit(main())
