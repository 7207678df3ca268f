"""
3D-2D Projection Utilities Module.

This module provides functions for projecting world points to camera and
image coordinates, and for back-projecting pixels to 3D space.

Mathematical Background:
========================

Full Projection Pipeline:
-------------------------
For a point Mw in world coordinates:

    s * [x, y, 1]^T = K @ [R|t] @ [Xw, Yw, Zw, 1]^T

Step by step:
    1. Mc = [R|t] @ [Mw; 1]              (world -> camera)
    2. (x', y') = (Xc / Zc, Yc / Zc)      (perspective division)
    3. (x'', y'') = distort(x', y')       (only if distortion is configured)
    4. [u, v, 1]^T = K @ [x'', y'', 1]^T  (normalized -> pixel)

Points with Zc <= 0 lie behind (or on) the camera plane and have no valid
projection. They are reported with the sentinel INVALID_IMAGE_POINT (-1, -1)
so batch results keep their length and order.

Back-projection (with known depth):
-----------------------------------
    Xc = Zc * (u - cx) / fx
    Yc = Zc * (v - cy) / fy

Ground Plane Intersection:
--------------------------
A pixel defines a ray from the camera center C = -R^T @ t:

    P(s) = C + s * R^T @ K^(-1) @ [u, v, 1]^T,   s > 0

Intersecting with the plane Yw = ground_y gives
s = (ground_y - C_y) / d_y, where d = R^T @ K^(-1) @ [u, v, 1]^T. There is no
intersection when d_y = 0 (ray parallel to the ground) or s <= 0 (the ray
leaves the plane, i.e. the pixel is at or above the vanishing line).

Vanishing Row:
--------------
Rays parallel to the ground meet at infinity on the horizon. The horizontal
direction straight ahead of the camera (optical axis with its Y component
removed) projects, at infinite depth, to the vanishing row:

    d_c = R @ f_world,   row = fy * d_c_y / d_c_z + cy
"""

import logging
from typing import Optional, Sequence

import numpy as np

from .extrinsics import CameraExtrinsics
from .intrinsics import CameraIntrinsics

logger = logging.getLogger(__name__)

# Pixel reported for points that cannot be projected (behind the camera)
INVALID_IMAGE_POINT = (-1.0, -1.0)

# Tolerance for parallel rays / degenerate directions
_EPS = 1e-9


def _as_points(points: np.ndarray, dim: int) -> np.ndarray:
    """Convert input to an (N, dim) float64 array."""
    points = np.asarray(points, dtype=np.float64)
    if points.size == 0:
        return points.reshape(0, dim)
    points = np.atleast_2d(points)
    if points.ndim != 2 or points.shape[1] != dim:
        raise ValueError(f"Expected points of shape (N, {dim}), got {points.shape}")
    return points


def project_world_to_camera(
    points_world: np.ndarray,
    extrinsics: CameraExtrinsics,
) -> np.ndarray:
    """
    Transform world points to camera coordinates.

    Mathematical Form:
        Mc = [R|t] @ [Mw; 1] = R @ Mw + t

    No perspective division and no sentinel policy is applied, so the depth
    Zc of every point (including negative ones) is available to the caller.

    Args:
        points_world: 3D points (N, 3) or (3,) in world coordinates.
        extrinsics: Camera pose.

    Returns:
        np.ndarray: Camera-frame points (N, 3), same order as the input.
    """
    return extrinsics.transform_points(_as_points(points_world, 3))


def project_world_to_image(
    points_world: np.ndarray,
    intrinsics: CameraIntrinsics,
    extrinsics: CameraExtrinsics,
) -> np.ndarray:
    """
    Project world points to pixel coordinates.

    Distortion is applied when the intrinsics carry coefficients.

    Args:
        points_world: 3D points (N, 3) or (3,) in world coordinates.
        intrinsics: Camera intrinsics.
        extrinsics: Camera pose.

    Returns:
        np.ndarray: Pixel coordinates (N, 2). Rows for points with Zc <= 0
                    are INVALID_IMAGE_POINT; check for it before use.

    Example:
        >>> intrinsics = CameraIntrinsics.from_focal_length(1280, 720, 500.0)
        >>> project_world_to_image([[0, 0, 10], [0, 0, -5]], intrinsics, CameraExtrinsics())
        array([[640., 360.],
               [ -1.,  -1.]])
    """
    points_cam = project_world_to_camera(points_world, extrinsics)

    image_points = np.empty((len(points_cam), 2), dtype=np.float64)
    image_points[:] = INVALID_IMAGE_POINT

    # Do not project points behind the camera
    valid = points_cam[:, 2] > 0
    if np.any(valid):
        image_points[valid] = intrinsics.project_point(points_cam[valid])

    return image_points


def project_image_to_camera(
    depth_map: np.ndarray,
    intrinsics: CameraIntrinsics,
) -> np.ndarray:
    """
    Back-project a dense depth map to camera-frame points.

    Every pixel (x, y) with depth Zc yields:

        Xc = Zc * (x - cx) / fx
        Yc = Zc * (y - cy) / fy

    Distortion is not inverted: the depth map is assumed to come from an
    undistorted (ideal pinhole) image.

    Args:
        depth_map: Depth per pixel, either (height, width) or flat
                   (width * height,) in row-major order.
        intrinsics: Camera intrinsics; width and height give the image size.

    Returns:
        np.ndarray: Camera-frame points (width * height, 3) in row-major pixel
                    order, or an empty (0, 3) array if the depth map shape
                    or size does not match the image.
    """
    width, height = intrinsics.width, intrinsics.height
    depth_map = np.asarray(depth_map, dtype=np.float64)

    # A 2D map must be (height, width); a transposed map has the right size
    if depth_map.ndim > 1 and depth_map.shape != (height, width):
        logger.error(
            f"Invalid depth map shape: {depth_map.shape} (expected ({height}, {width}))"
        )
        return np.empty((0, 3), dtype=np.float64)

    depth = depth_map.ravel()
    if depth.size != width * height:
        logger.error(
            f"Invalid depth map size: {depth.size} (expected {width}x{height}={width * height})"
        )
        return np.empty((0, 3), dtype=np.float64)

    # Row-major pixel grid: x varies fastest
    xs, ys = np.meshgrid(
        np.arange(width, dtype=np.float64),
        np.arange(height, dtype=np.float64),
    )
    pixels = np.stack([xs.ravel(), ys.ravel()], axis=1)

    return intrinsics.unproject_point(pixels, depth)


def project_image_to_ground_plane(
    pixel: Sequence[float],
    intrinsics: CameraIntrinsics,
    extrinsics: CameraExtrinsics,
    ground_y: float = 0.0,
) -> Optional[np.ndarray]:
    """
    Back-project a pixel onto the ground plane Yw = ground_y.

    Args:
        pixel: (u, v) pixel coordinate.
        intrinsics: Camera intrinsics; with distortion coefficients the
                    pixel is undistorted before forming the ray.
        extrinsics: Camera pose.
        ground_y: World Y coordinate of the ground plane (Y+ is down, so a
                  camera h above the ground sits at Yw = ground_y - h).

    Returns:
        np.ndarray or None: World point (3,) on the plane, or None if the
                            pixel ray is parallel to the plane or never
                            reaches it (pixel at or above the vanishing row).
    """
    pixel = np.asarray(pixel, dtype=np.float64).flatten()
    if pixel.shape != (2,):
        raise ValueError(f"pixel must be (2,), got {pixel.shape}")

    ray_cam = intrinsics.pixel_to_ray(pixel, normalize=False)[0]

    ray_world = extrinsics.R.T @ ray_cam
    camera_position = extrinsics.world_position

    if abs(ray_world[1]) < _EPS:
        return None

    scale = (ground_y - camera_position[1]) / ray_world[1]
    if scale <= 0:
        return None

    return camera_position + scale * ray_world


def estimate_vanishing_row(
    intrinsics: CameraIntrinsics,
    extrinsics: CameraExtrinsics,
) -> Optional[float]:
    """
    Estimate the image row of the horizon for the current camera rotation.

    Args:
        intrinsics: Camera intrinsics (distortion applied when configured).
        extrinsics: Camera pose; only the rotation is used.

    Returns:
        float or None: Row (pixels) where the horizontal direction straight
                       ahead of the camera projects. None if the camera looks
                       straight up or down, where no such direction exists.

    Note:
        Sign convention: positive pitch tilts the camera down, which moves the
        vanishing row ABOVE cy (smaller row index).
    """
    R = extrinsics.R

    # Optical axis in world coordinates, flattened onto the ground plane
    forward_world = R.T @ np.array([0.0, 0.0, 1.0])
    forward_world[1] = 0.0

    norm = np.linalg.norm(forward_world)
    if norm < _EPS:
        return None

    direction_cam = R @ (forward_world / norm)
    if direction_cam[2] <= _EPS:
        return None

    return float(intrinsics.project_point(direction_cam)[0, 1])
