"""
Calibration modules for pinhole camera geometry.

This package provides the camera parameter representation, coordinate-frame
conversions and 3D-2D projections.

Classes:
    CameraIntrinsics: Camera intrinsic parameters (focal length, principal point,
                      distortion).
    CameraExtrinsics: Camera pose (rotation vector, camera-frame translation).
    CameraModel: Intrinsics + extrinsics with pose updates and projections.

Standalone Functions:
    project_world_to_image: Project world points to pixels (sentinel for Zc <= 0).
    project_world_to_camera: Transform world points to camera coordinates.
    project_image_to_camera: Back-project a depth map to camera coordinates.
    project_image_to_ground_plane: Intersect a pixel ray with the ground plane.
    estimate_vanishing_row: Image row of the horizon.
    make_rotation_matrix: Rotation matrix from (pitch, yaw, roll) in degrees.

Example Usage:
    >>> from pinhole_camera.calibration import CameraModel
    >>>
    >>> camera = CameraModel.from_fov(1280, 720, fov_deg=130.0)
    >>> camera.set_extrinsic([0, 0, 0], [0, -1.5, 0], translation_in_world=True)
    >>> pixels = camera.project_world_to_image(points_world)
    >>> ground_point = camera.project_image_to_ground_plane(pixels[0])
"""

from .intrinsics import CameraIntrinsics, focal_length_from_fov
from .extrinsics import CameraExtrinsics
from .camera_model import CameraModel
from .projection import (
    INVALID_IMAGE_POINT,
    project_world_to_image,
    project_world_to_camera,
    project_image_to_camera,
    project_image_to_ground_plane,
    estimate_vanishing_row,
)
from .rotation import make_rotation_matrix, matrix_to_rvec, rvec_to_matrix

__all__ = [
    # Classes
    "CameraIntrinsics",
    "CameraExtrinsics",
    "CameraModel",
    # Standalone functions
    "focal_length_from_fov",
    "project_world_to_image",
    "project_world_to_camera",
    "project_image_to_camera",
    "project_image_to_ground_plane",
    "estimate_vanishing_row",
    "make_rotation_matrix",
    "matrix_to_rvec",
    "rvec_to_matrix",
    # Constants
    "INVALID_IMAGE_POINT",
]
