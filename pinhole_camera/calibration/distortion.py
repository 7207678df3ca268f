"""
Lens Distortion Module.

Applies and inverts the standard radial/tangential (Brown-Conrady) lens
distortion model on normalized image coordinates. Coefficients are taken as
given; estimating them from images is out of scope.

Distortion Model (OpenCV ordering k1, k2, p1, p2[, k3[, k4, k5, k6]]):
=====================================================================

For a normalized point (x, y) = (Xc/Zc, Yc/Zc):

    r² = x² + y²

    radial = (1 + k1*r² + k2*r⁴ + k3*r⁶) / (1 + k4*r² + k5*r⁴ + k6*r⁶)

    x' = x * radial + 2*p1*x*y + p2*(r² + 2*x²)
    y' = y * radial + p1*(r² + 2*y²) + 2*p2*x*y

The distorted pixel is then u = fx*x' + cx, v = fy*y' + cy.

The inverse has no closed form; undistort_pixels() solves it iteratively
with cv2.undistortPoints (R = P = I, so the result stays normalized).
"""

from typing import Optional, Sequence

import cv2
import numpy as np

SUPPORTED_COEFF_COUNTS = (4, 5, 8)


def normalize_dist_coeffs(
    dist_coeffs: Optional[Sequence[float]],
) -> Optional[np.ndarray]:
    """
    Validate distortion coefficients and convert them to a float64 array.

    Args:
        dist_coeffs: 4, 5 or 8 coefficients, or None for no distortion.

    Returns:
        np.ndarray or None: Coefficient array (N,), None if not configured.

    Raises:
        ValueError: If the number of coefficients is not supported.
    """
    if dist_coeffs is None:
        return None

    coeffs = np.asarray(dist_coeffs, dtype=np.float64).flatten()
    if len(coeffs) not in SUPPORTED_COEFF_COUNTS:
        raise ValueError(
            f"Expected {SUPPORTED_COEFF_COUNTS} distortion coefficients, got {len(coeffs)}"
        )
    return coeffs


def has_distortion(dist_coeffs: Optional[np.ndarray]) -> bool:
    """Check whether any distortion coefficient is non-zero."""
    return dist_coeffs is not None and bool(np.any(dist_coeffs != 0))


def distort_normalized(
    points_norm: np.ndarray,
    dist_coeffs: Optional[np.ndarray],
) -> np.ndarray:
    """
    Apply lens distortion to normalized image coordinates.

    Args:
        points_norm: Normalized coordinates (N, 2), i.e. (Xc/Zc, Yc/Zc).
        dist_coeffs: Distortion coefficients (4, 5 or 8), or None.

    Returns:
        np.ndarray: Distorted normalized coordinates (N, 2).
    """
    points_norm = np.atleast_2d(np.asarray(points_norm, dtype=np.float64))
    if not has_distortion(dist_coeffs):
        return points_norm.copy()

    k = np.zeros(8)
    k[:len(dist_coeffs)] = dist_coeffs
    k1, k2, p1, p2, k3, k4, k5, k6 = k

    x = points_norm[:, 0]
    y = points_norm[:, 1]

    r2 = x * x + y * y
    r4 = r2 * r2
    r6 = r4 * r2

    radial = (1 + k1 * r2 + k2 * r4 + k3 * r6) / (1 + k4 * r2 + k5 * r4 + k6 * r6)

    x_d = x * radial + 2 * p1 * x * y + p2 * (r2 + 2 * x * x)
    y_d = y * radial + p1 * (r2 + 2 * y * y) + 2 * p2 * x * y

    return np.stack([x_d, y_d], axis=1)


def undistort_pixels(
    pixels: np.ndarray,
    K: np.ndarray,
    dist_coeffs: Optional[np.ndarray],
    max_iterations: int = 40,
    epsilon: float = 1e-10,
) -> np.ndarray:
    """
    Remove lens distortion from pixel coordinates.

    Args:
        pixels: Distorted pixel coordinates (N, 2) or (2,).
        K: 3x3 camera intrinsic matrix.
        dist_coeffs: Distortion coefficients, or None.
        max_iterations: Iteration cap for the inverse solver.
        epsilon: Convergence threshold for the inverse solver.

    Returns:
        np.ndarray: Undistorted NORMALIZED coordinates (N, 2),
                    i.e. ((u-cx)/fx, (v-cy)/fy) of the ideal pinhole camera.
    """
    pixels = np.atleast_2d(np.asarray(pixels, dtype=np.float64))
    K = np.asarray(K, dtype=np.float64)

    if not has_distortion(dist_coeffs):
        x = (pixels[:, 0] - K[0, 2]) / K[0, 0]
        y = (pixels[:, 1] - K[1, 2]) / K[1, 1]
        return np.stack([x, y], axis=1)

    criteria = (cv2.TERM_CRITERIA_COUNT | cv2.TERM_CRITERIA_EPS, max_iterations, epsilon)
    undistorted = cv2.undistortPoints(
        pixels.reshape(-1, 1, 2),
        K,
        dist_coeffs,
        R=np.eye(3),
        P=np.eye(3),
        criteria=criteria,
    )
    return undistorted.reshape(-1, 2)
