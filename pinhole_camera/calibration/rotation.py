"""
Rotation Representation Module.

Camera orientation is stored as a rotation vector (pitch, yaw, roll) in
radians and converted to a 3x3 rotation matrix with the Rodrigues formula.

Mathematical Background:
========================

Rodrigues Rotation:
-------------------
A rotation vector r = θ * k (unit axis k scaled by angle θ = |r|) maps to
the rotation matrix:

    R = I + sin(θ) [k]x + (1 - cos(θ)) [k]x²

where [k]x is the skew-symmetric cross-product matrix of k. The inverse
(matrix logarithm) recovers θ and k from R.

Convention:
-----------
The three components (pitch, yaw, roll) are fed to the Rodrigues formula
as ONE rotation vector. This is not the same as composing elementary Euler
rotations Rz @ Rx @ Ry; the two agree only for single-axis or small angles.
Every setter, incremental update and projection in this package uses the
rotation-vector form, so orientation never drifts between conventions.

For single-axis rotations the familiar forms hold, e.g. pitch only:

    R_x(θ) = | 1    0       0    |
             | 0  cos(θ) -sin(θ) |
             | 0  sin(θ)  cos(θ) |

With the camera convention (X right, Y down, Z forward) a positive pitch
turns the optical axis downward.
"""

from typing import Sequence, Union

import numpy as np
from scipy.spatial.transform import Rotation


def deg2rad(deg: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert degrees to radians."""
    return np.deg2rad(deg)


def rad2deg(rad: Union[float, np.ndarray]) -> Union[float, np.ndarray]:
    """Convert radians to degrees."""
    return np.rad2deg(rad)


def rvec_to_matrix(rvec: Sequence[float]) -> np.ndarray:
    """
    Convert a rotation vector (radians) to a 3x3 rotation matrix.

    Args:
        rvec: Rotation vector (pitch, yaw, roll) in radians.

    Returns:
        np.ndarray: 3x3 rotation matrix (float64).

    Raises:
        ValueError: If rvec does not have 3 elements.
    """
    rvec = np.asarray(rvec, dtype=np.float64).flatten()
    if rvec.shape != (3,):
        raise ValueError(f"rvec must have 3 elements, got {rvec.shape}")
    return Rotation.from_rotvec(rvec).as_matrix()


def matrix_to_rvec(R: np.ndarray) -> np.ndarray:
    """
    Convert a 3x3 rotation matrix to a rotation vector (radians).

    Args:
        R: 3x3 rotation matrix.

    Returns:
        np.ndarray: Rotation vector (3,) with angle in [0, pi].
    """
    R = np.asarray(R, dtype=np.float64)
    if R.shape != (3, 3):
        raise ValueError(f"R must be 3x3, got {R.shape}")
    return Rotation.from_matrix(R).as_rotvec()


def make_rotation_matrix(
    pitch_deg: float,
    yaw_deg: float,
    roll_deg: float,
) -> np.ndarray:
    """
    Build the world-to-camera rotation matrix from angles in degrees.

    Args:
        pitch_deg: Rotation component around X (degrees).
        yaw_deg: Rotation component around Y (degrees).
        roll_deg: Rotation component around Z (degrees).

    Returns:
        np.ndarray: 3x3 rotation matrix.

    Example:
        >>> R = make_rotation_matrix(0.0, 90.0, 0.0)
        >>> np.round(R @ np.array([0, 0, 1]), 6)
        array([1., 0., 0.])
    """
    return rvec_to_matrix(deg2rad(np.array([pitch_deg, yaw_deg, roll_deg], dtype=np.float64)))
