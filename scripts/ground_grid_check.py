#!/usr/bin/env python
"""
Ground Grid Projection Check.

Projects a grid of points on the ground plane to the image, back-projects
each projected pixel onto the ground plane again and reports the
reconstruction error. Optionally draws the grid and the vanishing row into
an overlay image.

Usage:
    # Check with the default configuration
    python scripts/ground_grid_check.py

    # Tilt the camera down 10 degrees and save an overlay
    python scripts/ground_grid_check.py --pitch 10 --output outputs/grid.png

    # Use another camera configuration
    python scripts/ground_grid_check.py --config configs/default.yaml --height 2.0

    # Store the adjusted camera for later runs
    python scripts/ground_grid_check.py --height 2.0 --save_camera outputs/camera.yaml
"""

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pinhole_camera.calibration import CameraModel, INVALID_IMAGE_POINT
from pinhole_camera.utils import get_nested, load_config, save_config, setup_logger


def parse_args():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Project a ground grid and check back-projection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=str,
        default=str(PROJECT_ROOT / "configs" / "default.yaml"),
        help="Camera configuration file (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--pitch",
        type=float,
        default=None,
        help="Override camera pitch in degrees (positive looks down)",
    )
    parser.add_argument(
        "--height",
        type=float,
        default=None,
        help="Override camera height above the ground plane",
    )
    parser.add_argument(
        "--no_distortion",
        action="store_true",
        help="Ignore configured distortion coefficients",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write an overlay image to this path",
    )
    parser.add_argument(
        "--save_camera",
        type=str,
        default=None,
        help="Write the adjusted camera configuration to this YAML file",
    )
    parser.add_argument(
        "--log_level",
        type=str,
        default=None,
        help="Logging level (default: from config)",
    )
    return parser.parse_args()


def make_ground_grid(
    x_range: Sequence[float],
    z_range: Sequence[float],
    ground_y: float = 0.0,
) -> np.ndarray:
    """
    Build a grid of world points on the plane Yw = ground_y.

    Args:
        x_range: (start, stop, step), stop inclusive.
        z_range: (start, stop, step), stop inclusive.
        ground_y: World Y of the ground plane.

    Returns:
        np.ndarray: Grid points (N, 3).
    """
    xs = np.arange(x_range[0], x_range[1] + x_range[2] / 2, x_range[2])
    zs = np.arange(z_range[0], z_range[1] + z_range[2] / 2, z_range[2])
    grid_x, grid_z = np.meshgrid(xs, zs, indexing="ij")
    return np.stack(
        [grid_x.ravel(), np.full(grid_x.size, ground_y), grid_z.ravel()], axis=1
    )


def draw_overlay(
    camera: CameraModel,
    points_world: np.ndarray,
    points_2d: np.ndarray,
    vanishing_row: Optional[float],
) -> np.ndarray:
    """
    Draw projected grid points and the vanishing row on a blank image.

    Args:
        camera: Camera used for projection.
        points_world: Grid points (N, 3).
        points_2d: Projected pixels (N, 2).
        vanishing_row: Horizon row or None.

    Returns:
        BGR image (H, W, 3).
    """
    image = np.full((camera.height, camera.width, 3), 70, dtype=np.uint8)

    for point_world, point_2d in zip(points_world, points_2d):
        if tuple(point_2d) == INVALID_IMAGE_POINT:
            continue
        u, v = int(round(point_2d[0])), int(round(point_2d[1]))
        cv2.circle(image, (u, v), 2, (220, 0, 0), -1)
        cv2.putText(
            image,
            f"{point_world[0]:.0f}, {point_world[2]:.0f}",
            (u, v),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.3,
            (0, 255, 0),
        )

    if vanishing_row is not None:
        row = int(round(vanishing_row))
        cv2.line(image, (0, row), (camera.width, row), (0, 0, 0), 1)

    return image


def main():
    """Main entry point."""
    args = parse_args()

    config = load_config(args.config)
    logger = setup_logger(
        "pinhole_camera",
        level=args.log_level or get_nested(config, "logging.level", "INFO"),
        log_file=get_nested(config, "logging.log_file"),
    )

    camera = CameraModel.from_config(config)
    if args.no_distortion:
        camera.set_distortion(None)

    ground_y = float(get_nested(config, "ground_grid.ground_y", 0.0))

    if args.height is not None:
        position = camera.get_camera_position()
        camera.set_camera_position(position[0], ground_y - args.height, position[2])
    if args.pitch is not None:
        camera.set_camera_angle(args.pitch, camera.yaw, camera.roll)

    logger.info(f"Camera: {camera}")
    logger.info(f"Camera position (world): {np.round(camera.get_camera_position(), 3).tolist()}")

    points_world = make_ground_grid(
        get_nested(config, "ground_grid.x_range", [-10.0, 10.0, 1.0]),
        get_nested(config, "ground_grid.z_range", [1.0, 20.0, 1.0]),
        ground_y,
    )
    points_2d = camera.project_world_to_image(points_world)

    visible = np.all(points_2d != INVALID_IMAGE_POINT, axis=1)
    in_image = visible & camera.intrinsics.is_in_image(points_2d)

    errors = []
    for point_world, point_2d in zip(points_world[visible], points_2d[visible]):
        recovered = camera.project_image_to_ground_plane(point_2d, ground_y=ground_y)
        if recovered is None:
            logger.warning(f"No ground intersection for pixel {point_2d.round(1).tolist()}")
            continue
        errors.append(np.linalg.norm(recovered - point_world))

    vanishing_row = camera.estimate_vanishing_row_y()

    logger.info(f"Grid points: {len(points_world)}")
    logger.info(f"  In front of camera: {visible.sum()}")
    logger.info(f"  Inside image: {in_image.sum()}")
    if errors:
        logger.info(f"  Back-projection error: mean={np.mean(errors):.2e}, max={np.max(errors):.2e}")
    logger.info(f"Vanishing row: {vanishing_row}")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        image = draw_overlay(camera, points_world, points_2d, vanishing_row)
        cv2.imwrite(str(output_path), image)
        logger.info(f"Saved: {output_path}")

    if args.save_camera:
        save_config(camera.to_config(), args.save_camera)
        logger.info(f"Saved camera config: {args.save_camera}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
