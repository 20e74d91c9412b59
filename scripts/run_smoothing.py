"""
Command-line entry point for point cloud smoothing.

Loads an (n, d) point cloud from a .npy file, runs the distance-to-measure
gradient flow, and saves the evolved cloud to another .npy file.

    python scripts/run_smoothing.py input.npy output.npy --iterations 20 --num-neighbors 8
"""

import sys
import argparse
from pathlib import Path

# Add the src to the path to import modules
sys.path.append(str(Path(__file__).parent.parent / "src"))

from gradsmooth.exceptions import GradSmoothError
from gradsmooth.preprocessing.loader import PointCloudLoader
from gradsmooth.smoothing import GradientFlowSmoother
from gradsmooth.utils.config import load_config, AppConfig
from gradsmooth.utils.export import save_point_cloud
from gradsmooth.utils.logging import setup_logger, level_from_name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="GradSmooth: Arbitrary dimension point cloud smoothing."
    )
    parser.add_argument("input", nargs="?", default=None, help="Input .npy point cloud (n x d)")
    parser.add_argument("output", nargs="?", default=None, help="Output .npy path for the evolved cloud")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (defaults to config/default.yaml)",
    )
    parser.add_argument(
        "--normal-projection",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Project gradient onto estimated normals",
    )
    parser.add_argument(
        "--lock-neighbors",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Lock neighbor calculation and use the same neighbors throughout",
    )
    parser.add_argument("--step-size-normal", type=float, default=None, help="Step size for gradient flow")
    parser.add_argument(
        "--step-size-tangent",
        type=float,
        default=None,
        help="Step size for gradient flow in tangent directions.",
    )
    parser.add_argument(
        "--num-neighbors", type=int, default=None, help="Number of nearest neighbors to use for knn-search"
    )
    parser.add_argument(
        "--iterations", type=int, default=None, help="Number of iterations to run the smoothing algorithm"
    )
    parser.add_argument(
        "--max-leaf-size",
        type=int,
        default=None,
        help="Maximum number of points contained within a kd-tree leaf",
    )
    parser.add_argument(
        "--num-threads", type=int, default=None, help="Number of threads to use for the smoothing algorithm"
    )
    parser.add_argument(
        "--codimension",
        type=int,
        default=None,
        help="Co-dimension of the manifold from which the point cloud was sampled",
    )
    parser.add_argument(
        "--index-backend",
        choices=["kd_tree", "brute"],
        default=None,
        help="Nearest-neighbor backend",
    )
    return parser


def main(argv=None) -> int:
    """
    Main function to run the smoothing workflow.

    Returns:
        Process exit status
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg: AppConfig = load_config(args.config)
    except (GradSmoothError, FileNotFoundError) as e:
        setup_logger().error(f"Could not load configuration: {e}")
        return 2

    # Setup logging from config
    logger = setup_logger(level=level_from_name(cfg.logging.level), log_file=cfg.logging.file)
    logger.info("Starting GradSmooth.")

    input_path = args.input or cfg.paths.input
    output_path = args.output or cfg.paths.output
    if not input_path or not output_path:
        logger.error("Incorrect number of command line args. Please specify input and output path.")
        return 2
    logger.info(f"Using input path: {input_path}")
    logger.info(f"Using output path: {output_path}")

    try:
        smoothing_cfg = cfg.smoothing.with_overrides(
            num_neighbors=args.num_neighbors,
            codimension=args.codimension,
            iterations=args.iterations,
            step_size_normal=args.step_size_normal,
            step_size_tangent=args.step_size_tangent,
            normal_projection=args.normal_projection,
            lock_neighbors=args.lock_neighbors,
            num_threads=args.num_threads,
            max_leaf_size=args.max_leaf_size,
            index_backend=args.index_backend,
        )
        point_cloud = PointCloudLoader().load(input_path)
        evolved_cloud = GradientFlowSmoother(smoothing_cfg).smooth(point_cloud)
        save_point_cloud(output_path, evolved_cloud)
    except GradSmoothError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    logger.info("GradSmooth finished.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
