"""
Camera Extrinsic Parameters Module.

This module handles the camera pose: the rigid transformation between the
world coordinate frame and the camera coordinate frame.

Mathematical Background:
========================

Rigid Body Transformation:
--------------------------
A world point Mw maps to camera coordinates Mc with rotation R (3x3
orthonormal, world -> camera) and translation t (3x1):

    Mc = R @ Mw + t

In homogeneous form:

    [R|t] = | r11 r12 r13 tx |
            | r21 r22 r23 ty |
            | r31 r32 r33 tz |

Translation Convention:
-----------------------
t is a CAMERA-frame vector: it points from the camera center Oc to the world
origin Ow, expressed in camera coordinates. If T is the camera position in
world coordinates (Oc - Ow in the world frame), then

    Mc = R @ (Mw - T) = R @ Mw - R @ T    =>    t = -R @ T
    T = -R^T @ t

Because t depends on R, any change of rotation must recompute t from T;
reusing the old t would make the camera appear to translate when it is only
rotated.

Coordinate Frames:
==================
Both frames are right-handed:
    - X: Right
    - Y: Down
    - Z: Forward (into the scene)
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .rotation import deg2rad, rad2deg, rvec_to_matrix


@dataclass
class CameraExtrinsics:
    """
    Camera extrinsic parameters (rotation and translation).

    Attributes:
        rvec: Rotation vector (pitch, yaw, roll) in radians (3,).
        tvec: Translation t = -R @ T in camera coordinates (3,).

    Example:
        >>> extrinsics = CameraExtrinsics.from_world_position(
        ...     rotation_deg=[0, 0, 0], position=[0, -1.5, 0])
        >>> extrinsics.tvec
        array([-0. ,  1.5, -0. ])
    """

    rvec: np.ndarray = field(default_factory=lambda: np.zeros(3))
    tvec: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self):
        """Validate inputs after initialization."""
        self.rvec = np.asarray(self.rvec, dtype=np.float64).flatten()
        self.tvec = np.asarray(self.tvec, dtype=np.float64).flatten()

        if self.rvec.shape != (3,):
            raise ValueError(f"rvec must be (3,), got {self.rvec.shape}")
        if self.tvec.shape != (3,):
            raise ValueError(f"tvec must be (3,), got {self.tvec.shape}")

    @property
    def R(self) -> np.ndarray:
        """World-to-camera rotation matrix (3x3)."""
        return rvec_to_matrix(self.rvec)

    @property
    def rotation_deg(self) -> np.ndarray:
        """Rotation vector (pitch, yaw, roll) in degrees."""
        return rad2deg(self.rvec)

    @property
    def world_position(self) -> np.ndarray:
        """
        Camera position T in world coordinates.

        Returns:
            np.ndarray: T = -R^T @ t, shape (3,).
        """
        return -self.R.T @ self.tvec

    def get_3x4_matrix(self) -> np.ndarray:
        """
        Get the 3x4 extended rotation-translation matrix [R|t].

        Returns:
            np.ndarray: 3x4 matrix mapping homogeneous world points to
                        camera coordinates.
        """
        return np.hstack([self.R, self.tvec.reshape(3, 1)])

    def transform_points(self, points: np.ndarray) -> np.ndarray:
        """
        Transform world points to the camera frame.

            Mc = [R|t] @ [Mw; 1]

        No perspective division is applied, so points behind the camera keep
        their negative Z.

        Args:
            points: 3D points (N, 3) in world coordinates.

        Returns:
            np.ndarray: Points (N, 3) in camera coordinates.
        """
        points_hom = np.hstack([points, np.ones((len(points), 1))])
        return points_hom @ self.get_3x4_matrix().T

    def copy(self) -> "CameraExtrinsics":
        """Return an independent copy."""
        return CameraExtrinsics(rvec=self.rvec.copy(), tvec=self.tvec.copy())

    @classmethod
    def from_world_position(
        cls,
        rotation_deg: Sequence[float],
        position: Sequence[float],
    ) -> "CameraExtrinsics":
        """
        Create extrinsics from angles and a world-frame camera position.

        Args:
            rotation_deg: (pitch, yaw, roll) in degrees.
            position: Camera position T in world coordinates.

        Returns:
            CameraExtrinsics: Instance with t = -R @ T.
        """
        rvec = deg2rad(np.asarray(rotation_deg, dtype=np.float64))
        position = np.asarray(position, dtype=np.float64).flatten()
        return cls(rvec=rvec, tvec=-rvec_to_matrix(rvec) @ position)

    def __repr__(self) -> str:
        """String representation."""
        rot = np.round(self.rotation_deg, 3).tolist()
        t = np.round(self.tvec, 4).tolist()
        return f"CameraExtrinsics(rotation_deg={rot}, tvec={t})"
