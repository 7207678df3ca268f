"""
Camera Intrinsic Parameters Module.

This module handles camera intrinsic parameters which describe the internal
characteristics of a camera: focal length, principal point and (optionally)
lens distortion.

Mathematical Background:
========================

The camera intrinsic matrix K (also called the calibration matrix) transforms
3D points in the camera coordinate frame to 2D pixel coordinates:

    K = | fx   0  cx |
        |  0  fy  cy |
        |  0   0   1 |

Where:
    - fx, fy: Focal lengths in pixel units
    - cx, cy: Principal point coordinates (image center by default)

The projection equation (pinhole camera model):

    | u |       | X |
    | v | = K * | Y | / Z
    | 1 |       | Z |

Inverse projection (given depth d):
    X = (u - cx) * d / fx
    Y = (v - cy) * d / fy
    Z = d

Field of View:
==============
The focal length follows from the field of view over an image extent:

    (size / 2) / f = tan(fov / 2)   =>   f = (size / 2) / tan(fov / 2)

Preconditions:
==============
fx, fy > 0 and width, height > 0 are the caller's responsibility; they are
not checked at runtime.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import cv2
import numpy as np

from .distortion import (
    distort_normalized,
    has_distortion,
    normalize_dist_coeffs,
    undistort_pixels,
)


def focal_length_from_fov(image_size: int, fov_deg: float) -> float:
    """
    Compute focal length in pixels from a field of view.

    Args:
        image_size: Image extent (pixels) the FOV spans, usually the width.
        fov_deg: Field of view in degrees.

    Returns:
        float: Focal length in pixels.

    Example:
        >>> f = focal_length_from_fov(1280, 90.0)  # ~640 px
    """
    return float((image_size / 2) / np.tan(np.deg2rad(fov_deg / 2)))


@dataclass
class CameraIntrinsics:
    """
    Camera intrinsic parameters.

    Attributes:
        fx: Focal length in x direction (pixels).
        fy: Focal length in y direction (pixels).
        cx: Principal point x coordinate (pixels).
        cy: Principal point y coordinate (pixels).
        width: Image width in pixels.
        height: Image height in pixels.
        dist_coeffs: Optional distortion coefficients in OpenCV order
                     (k1, k2, p1, p2[, k3[, k4, k5, k6]]).

    Example:
        >>> intrinsics = CameraIntrinsics.from_focal_length(1280, 720, 500.0)
        >>> K = intrinsics.get_K_matrix()
    """

    fx: float  # Focal length x (pixels)
    fy: float  # Focal length y (pixels)
    cx: float  # Principal point x (pixels)
    cy: float  # Principal point y (pixels)
    width: int  # Image width (pixels)
    height: int  # Image height (pixels)
    dist_coeffs: Optional[np.ndarray] = None

    def __post_init__(self):
        """Normalize distortion coefficients."""
        self.dist_coeffs = normalize_dist_coeffs(self.dist_coeffs)

    @property
    def K(self) -> np.ndarray:
        """3x3 intrinsic matrix (alias for get_K_matrix())."""
        return self.get_K_matrix()

    @property
    def has_distortion(self) -> bool:
        """Whether any non-zero distortion coefficient is configured."""
        return has_distortion(self.dist_coeffs)

    def get_K_matrix(self) -> np.ndarray:
        """
        Get the 3x3 camera intrinsic (calibration) matrix.

            [u]       [X]       [fx  0  cx] [X]
            [v] = K * [Y] / Z = [ 0 fy  cy] [Y] / Z
            [1]       [Z]       [ 0  0   1] [Z]

        Returns:
            np.ndarray: 3x3 intrinsic matrix K with dtype float64.
        """
        return np.array([
            [self.fx, 0, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ], dtype=np.float64)

    def set_focal_length(self, focal_length: float) -> None:
        """Set fx and fy to the same focal length (square pixels)."""
        self.fx = float(focal_length)
        self.fy = float(focal_length)

    @classmethod
    def from_focal_length(
        cls,
        width: int,
        height: int,
        focal_length: float,
        dist_coeffs: Optional[Sequence[float]] = None,
    ) -> "CameraIntrinsics":
        """
        Create intrinsics with square pixels and a centered principal point.

        K = [[f, 0, w/2], [0, f, h/2], [0, 0, 1]]

        Args:
            width: Image width in pixels.
            height: Image height in pixels.
            focal_length: Focal length in pixels (fx = fy).
            dist_coeffs: Optional distortion coefficients.

        Returns:
            CameraIntrinsics: New instance.
        """
        return cls(
            fx=float(focal_length),
            fy=float(focal_length),
            cx=width / 2.0,
            cy=height / 2.0,
            width=int(width),
            height=int(height),
            dist_coeffs=dist_coeffs,
        )

    @classmethod
    def from_fov(
        cls,
        width: int,
        height: int,
        fov_deg: float,
        dist_coeffs: Optional[Sequence[float]] = None,
    ) -> "CameraIntrinsics":
        """
        Create intrinsics from a horizontal field of view.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.
            fov_deg: Horizontal field of view in degrees.
            dist_coeffs: Optional distortion coefficients.

        Returns:
            CameraIntrinsics: New instance with f = (width/2) / tan(fov/2).
        """
        return cls.from_focal_length(
            width, height, focal_length_from_fov(width, fov_deg), dist_coeffs
        )

    def project_point(self, point_3d: np.ndarray) -> np.ndarray:
        """
        Project 3D point(s) in camera frame to 2D pixel coordinates.

        Implements the pinhole camera model with optional distortion:

            (x, y) = distort(X/Z, Y/Z)
            u = fx * x + cx
            v = fy * y + cy

        Args:
            point_3d: 3D point (3,) or points (N, 3) in camera coordinates.

        Returns:
            np.ndarray: 2D pixel coordinates (N, 2).

        Warning:
            Points with Z <= 0 (behind camera) produce meaningless results.
            Callers that cannot rule these out should use
            projection.project_world_to_image(), which applies the sentinel.
        """
        point_3d = np.atleast_2d(np.asarray(point_3d, dtype=np.float64))

        # Perspective division
        points_norm = point_3d[:, :2] / point_3d[:, 2:3]
        points_norm = distort_normalized(points_norm, self.dist_coeffs)

        u = self.fx * points_norm[:, 0] + self.cx
        v = self.fy * points_norm[:, 1] + self.cy
        return np.stack([u, v], axis=1)

    def unproject_point(
        self,
        point_2d: np.ndarray,
        depth: Union[float, np.ndarray],
    ) -> np.ndarray:
        """
        Back-project 2D pixel(s) to 3D using depth.

            X = (u - cx) * Z / fx
            Y = (v - cy) * Z / fy
            Z = depth

        Distortion is NOT inverted here: pixels are treated as coming from an
        ideal pinhole camera.

        Args:
            point_2d: 2D pixel coordinate (2,) or coordinates (N, 2).
            depth: Depth value(s), scalar or (N,).

        Returns:
            np.ndarray: 3D point(s) (N, 3) in camera coordinates.
        """
        point_2d = np.atleast_2d(np.asarray(point_2d, dtype=np.float64))
        depth = np.broadcast_to(
            np.asarray(depth, dtype=np.float64), (len(point_2d),)
        )

        x = (point_2d[:, 0] - self.cx) * depth / self.fx
        y = (point_2d[:, 1] - self.cy) * depth / self.fy

        return np.stack([x, y, depth], axis=1)

    def pixel_to_ray(self, point_2d: np.ndarray, normalize: bool = True) -> np.ndarray:
        """
        Convert pixel coordinates to ray directions in the camera frame.

        When distortion is configured the pixel is undistorted first, so the
        ray is the true line of sight of that pixel.

        Args:
            point_2d: 2D pixel coordinate(s) (2,) or (N, 2).
            normalize: Return unit vectors if True, Z=1 rays otherwise.

        Returns:
            np.ndarray: Ray direction(s) (N, 3).
        """
        points_norm = undistort_pixels(point_2d, self.K, self.dist_coeffs)
        rays = np.hstack([points_norm, np.ones((len(points_norm), 1))])

        if normalize:
            rays = rays / np.linalg.norm(rays, axis=1, keepdims=True)

        return rays

    def is_in_image(
        self,
        points_2d: np.ndarray,
        margin: int = 0,
    ) -> np.ndarray:
        """
        Check if 2D points are within image bounds.

        Args:
            points_2d: 2D points (N, 2) in pixel coordinates.
            margin: Additional margin from image border (pixels).

        Returns:
            np.ndarray: Boolean mask (N,) indicating valid points.
        """
        points_2d = np.atleast_2d(points_2d)

        valid = (
            (points_2d[:, 0] >= margin) &
            (points_2d[:, 0] < self.width - margin) &
            (points_2d[:, 1] >= margin) &
            (points_2d[:, 1] < self.height - margin)
        )

        return valid

    def get_optimal_K(self, alpha: float = 0.0) -> np.ndarray:
        """
        Get the camera matrix for an undistorted view of this camera.

        Args:
            alpha: 0 keeps only valid pixels, 1 keeps every source pixel.

        Returns:
            np.ndarray: 3x3 camera matrix. Equal to K without distortion.
        """
        if not self.has_distortion:
            return self.get_K_matrix()

        new_K, _ = cv2.getOptimalNewCameraMatrix(
            self.get_K_matrix(),
            self.dist_coeffs,
            (self.width, self.height),
            alpha,
        )
        return new_K

    def __repr__(self) -> str:
        """String representation."""
        dist = "None" if self.dist_coeffs is None else np.round(self.dist_coeffs, 4).tolist()
        return (
            f"CameraIntrinsics(fx={self.fx:.2f}, fy={self.fy:.2f}, "
            f"cx={self.cx:.2f}, cy={self.cy:.2f}, "
            f"width={self.width}, height={self.height}, dist_coeffs={dist})"
        )
