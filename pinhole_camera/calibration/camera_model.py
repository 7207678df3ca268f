"""
Pinhole Camera Model Module.

CameraModel combines intrinsics and extrinsics and provides the parameter
updates and projections used by interactive tools:

    s * [x, y, 1]^T = K @ [R|t] @ [Mw, 1]^T

    K:     intrinsic matrix (focal length, principal point)
    [R|t]: extrinsic parameters
    R:     world-to-camera rotation (camera orientation)
    t:     vector from the camera center Oc to the world origin Ow, in
           CAMERA coordinates: t = -R @ T, where T is the camera position
           in world coordinates

    Mc = R @ (Mw - T) = R @ Mw - R @ T = R @ Mw + t

Because t lives in the camera frame, it is recomputed from T whenever R
changes.

Coordinate system: right-handed, X+ right, Y+ down, Z+ forward. An object
above the camera has negative Yc.

Angles are passed in DEGREES at this API boundary and stored in radians.
Ownership: one CameraModel instance per render/update loop. No internal
locking; concurrent mutation must be serialized by the caller.
"""

from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np

from ..utils.logger import LoggerMixin
from .extrinsics import CameraExtrinsics
from .intrinsics import CameraIntrinsics, focal_length_from_fov
from .projection import (
    estimate_vanishing_row,
    project_image_to_camera,
    project_image_to_ground_plane,
    project_world_to_camera,
    project_world_to_image,
)
from .rotation import deg2rad, make_rotation_matrix, matrix_to_rvec

DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 720
DEFAULT_FOCAL_LENGTH = 500.0


class CameraModel(LoggerMixin):
    """
    Pinhole camera with mutable intrinsic and extrinsic parameters.

    Attributes:
        intrinsics: Camera intrinsic parameters.
        extrinsics: Camera pose (rvec in radians, camera-frame tvec).

    Example:
        >>> camera = CameraModel()
        >>> camera.set_extrinsic([0, 0, 0], [0, 1.5, 0], translation_in_world=True)
        >>> camera.project_world_to_image([[0, 1.5, 10]])
        array([[640., 360.]])
    """

    def __init__(
        self,
        intrinsics: Optional[CameraIntrinsics] = None,
        extrinsics: Optional[CameraExtrinsics] = None,
    ):
        """
        Initialize the camera model.

        Args:
            intrinsics: Intrinsic parameters (default: 1280x720, f=500).
            extrinsics: Extrinsic parameters (default: identity pose).
        """
        if intrinsics is None:
            intrinsics = CameraIntrinsics.from_focal_length(
                DEFAULT_WIDTH, DEFAULT_HEIGHT, DEFAULT_FOCAL_LENGTH
            )
        self.intrinsics = intrinsics
        self.extrinsics = extrinsics if extrinsics is not None else CameraExtrinsics()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def K(self) -> np.ndarray:
        """3x3 intrinsic matrix."""
        return self.intrinsics.K

    @property
    def R(self) -> np.ndarray:
        """3x3 world-to-camera rotation matrix."""
        return self.extrinsics.R

    @property
    def rvec(self) -> np.ndarray:
        """Rotation vector (pitch, yaw, roll) in radians."""
        return self.extrinsics.rvec

    @property
    def tvec(self) -> np.ndarray:
        """Translation in camera coordinates (t = -R @ T)."""
        return self.extrinsics.tvec

    @property
    def width(self) -> int:
        return self.intrinsics.width

    @property
    def height(self) -> int:
        return self.intrinsics.height

    @property
    def pitch(self) -> float:
        """Pitch in degrees (positive looks down)."""
        return float(self.extrinsics.rotation_deg[0])

    @property
    def yaw(self) -> float:
        """Yaw in degrees."""
        return float(self.extrinsics.rotation_deg[1])

    @property
    def roll(self) -> float:
        """Roll in degrees."""
        return float(self.extrinsics.rotation_deg[2])

    # ------------------------------------------------------------------
    # Intrinsic parameters
    # ------------------------------------------------------------------

    def set_intrinsic(self, width: int, height: int, focal_length: float) -> None:
        """
        Set image size and focal length, centering the principal point.

        K = [[f, 0, w/2], [0, f, h/2], [0, 0, 1]]. Distortion coefficients
        already configured are kept.

        Args:
            width: Image width in pixels (> 0, not checked).
            height: Image height in pixels (> 0, not checked).
            focal_length: Focal length in pixels (> 0, not checked).
        """
        self.intrinsics = CameraIntrinsics.from_focal_length(
            width, height, focal_length, self.intrinsics.dist_coeffs
        )

    def set_focal_length(self, focal_length: float) -> None:
        """Set fx = fy = focal_length, keeping the principal point."""
        self.intrinsics.set_focal_length(focal_length)

    def set_distortion(self, dist_coeffs: Optional[Sequence[float]]) -> None:
        """
        Set lens distortion coefficients.

        Args:
            dist_coeffs: (k1, k2, p1, p2[, k3[, k4, k5, k6]]) or None to disable.
        """
        self.intrinsics = CameraIntrinsics(
            fx=self.intrinsics.fx,
            fy=self.intrinsics.fy,
            cx=self.intrinsics.cx,
            cy=self.intrinsics.cy,
            width=self.intrinsics.width,
            height=self.intrinsics.height,
            dist_coeffs=dist_coeffs,
        )

    # ------------------------------------------------------------------
    # Extrinsic parameters
    # ------------------------------------------------------------------

    def set_extrinsic(
        self,
        rotation_deg: Sequence[float],
        translation: Sequence[float],
        translation_in_world: bool = True,
    ) -> None:
        """
        Set camera rotation and translation.

        Args:
            rotation_deg: (pitch, yaw, roll) in degrees.
            translation: If translation_in_world, the camera position T in
                         world coordinates (converted to t = -R @ T);
                         otherwise t itself, in camera coordinates.
            translation_in_world: Interpretation of translation.
        """
        if translation_in_world:
            self.extrinsics = CameraExtrinsics.from_world_position(rotation_deg, translation)
        else:
            self.extrinsics = CameraExtrinsics(
                rvec=deg2rad(np.asarray(rotation_deg, dtype=np.float64)),
                tvec=translation,
            )

    def get_extrinsic(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Get camera rotation and translation.

        Returns:
            Tuple[np.ndarray, np.ndarray]:
                - rotation_deg: (pitch, yaw, roll) in degrees
                - tvec: translation in CAMERA coordinates (use
                  get_camera_position() for the world-frame position)
        """
        return self.extrinsics.rotation_deg.copy(), self.extrinsics.tvec.copy()

    def get_camera_position(self) -> np.ndarray:
        """Camera position T in world coordinates (T = -R^T @ t)."""
        return self.extrinsics.world_position

    def set_camera_position(
        self,
        tx: float,
        ty: float,
        tz: float,
        in_world: bool = True,
    ) -> None:
        """
        Set the camera position (Oc - Ow).

        Args:
            tx, ty, tz: Camera position.
            in_world: If True, (tx, ty, tz) is the position in world
                      coordinates and t = -R @ T. If False, it is Oc - Ow in
                      camera coordinates and only the sign flips (t = Ow - Oc).
        """
        position = np.array([tx, ty, tz], dtype=np.float64)
        if in_world:
            tvec = -self.R @ position
        else:
            tvec = -position

        self.extrinsics = CameraExtrinsics(rvec=self.rvec.copy(), tvec=tvec)

    def move_camera_position(
        self,
        dtx: float,
        dty: float,
        dtz: float,
        in_world: bool = True,
    ) -> None:
        """
        Move the camera by a delta (Oc - Ow).

        Args:
            dtx, dty, dtz: Position delta.
            in_world: If True, the delta is in world coordinates
                      (t += -R @ dT); otherwise in camera coordinates
                      (t += -dT), e.g. "move forward along the optical axis".
        """
        delta = np.array([dtx, dty, dtz], dtype=np.float64)
        if in_world:
            delta = -self.R @ delta
        else:
            delta = -delta

        self.extrinsics = CameraExtrinsics(rvec=self.rvec.copy(), tvec=self.tvec + delta)

    def set_camera_angle(self, pitch_deg: float, yaw_deg: float, roll_deg: float) -> None:
        """
        Set the camera orientation, keeping its world position.

        Args:
            pitch_deg: Pitch in degrees.
            yaw_deg: Yaw in degrees.
            roll_deg: Roll in degrees.
        """
        # t is a camera-frame vector, so it is rebuilt from the world position
        self.extrinsics = CameraExtrinsics.from_world_position(
            [pitch_deg, yaw_deg, roll_deg], self.get_camera_position()
        )
        self.logger.debug(f"Camera angle set: {self.extrinsics}")

    def rotate_camera_angle(self, dpitch_deg: float, dyaw_deg: float, droll_deg: float) -> None:
        """
        Rotate the camera by a delta, keeping its world position.

        The delta is left-composed: R_new = R_delta @ R_old.

        The new rotation vector is recovered from R_new, so pitch/yaw/roll are
        reported in their shortest form (angle <= 180 degrees). For example a
        pitch of 200 becomes -160 after any non-zero rotation. A zero delta
        leaves the pose untouched.

        Args:
            dpitch_deg: Pitch delta in degrees.
            dyaw_deg: Yaw delta in degrees.
            droll_deg: Roll delta in degrees.
        """
        if dpitch_deg == 0 and dyaw_deg == 0 and droll_deg == 0:
            return

        position = self.get_camera_position()
        R_delta = make_rotation_matrix(dpitch_deg, dyaw_deg, droll_deg)
        R_new = R_delta @ self.R

        self.extrinsics = CameraExtrinsics(rvec=matrix_to_rvec(R_new), tvec=-R_new @ position)
        self.logger.debug(f"Camera rotated: {self.extrinsics}")

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def project_world_to_image(self, points_world: np.ndarray) -> np.ndarray:
        """
        Project world points to pixels.

        Args:
            points_world: World points (N, 3).

        Returns:
            np.ndarray: Pixels (N, 2); (-1, -1) for points behind the camera.
        """
        return project_world_to_image(points_world, self.intrinsics, self.extrinsics)

    def project_world_to_camera(self, points_world: np.ndarray) -> np.ndarray:
        """
        Transform world points to camera coordinates.

        Args:
            points_world: World points (N, 3).

        Returns:
            np.ndarray: Camera-frame points (N, 3).
        """
        return project_world_to_camera(points_world, self.extrinsics)

    def project_image_to_camera(self, depth_map: np.ndarray) -> np.ndarray:
        """
        Back-project a per-pixel depth map to camera coordinates.

        Args:
            depth_map: Depth per pixel, (height, width) or flat.

        Returns:
            np.ndarray: Points (width * height, 3) in row-major order, or an
                        empty (0, 3) array on a size mismatch.
        """
        return project_image_to_camera(depth_map, self.intrinsics)

    def project_image_to_ground_plane(
        self,
        pixel: Sequence[float],
        ground_y: float = 0.0,
    ) -> Optional[np.ndarray]:
        """
        Back-project a pixel onto the ground plane Yw = ground_y.

        Args:
            pixel: (u, v) pixel coordinate.
            ground_y: World Y of the ground plane.

        Returns:
            np.ndarray or None: World point (3,), or None if the pixel ray
                                does not reach the ground.
        """
        return project_image_to_ground_plane(pixel, self.intrinsics, self.extrinsics, ground_y)

    def estimate_vanishing_row_y(self) -> Optional[float]:
        """
        Estimate the image row of the horizon (for overlay/debug drawing).

        Returns:
            float or None: Vanishing row in pixels, None when undefined.
        """
        return estimate_vanishing_row(self.intrinsics, self.extrinsics)

    # ------------------------------------------------------------------
    # Construction / serialization
    # ------------------------------------------------------------------

    @staticmethod
    def focal_length_from_fov(image_size: int, fov_deg: float) -> float:
        """Focal length (pixels) for a field of view over image_size pixels."""
        return focal_length_from_fov(image_size, fov_deg)

    @classmethod
    def from_fov(
        cls,
        width: int,
        height: int,
        fov_deg: float,
        dist_coeffs: Optional[Sequence[float]] = None,
    ) -> "CameraModel":
        """
        Create a camera with identity pose from a horizontal field of view.

        Args:
            width: Image width in pixels.
            height: Image height in pixels.
            fov_deg: Horizontal field of view in degrees.
            dist_coeffs: Optional distortion coefficients.

        Returns:
            CameraModel: New camera.
        """
        return cls(intrinsics=CameraIntrinsics.from_fov(width, height, fov_deg, dist_coeffs))

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CameraModel":
        """
        Create a camera from a configuration dictionary.

        Expected layout (either the full config or its "camera" section):

            camera:
              intrinsics:
                width: 1280
                height: 720
                focal_length: 500.0   # or fov_deg
                cx: 640.0             # optional
                cy: 360.0             # optional
                dist_coeffs: [k1, k2, p1, p2, k3]  # optional
              extrinsics:
                rotation_deg: [pitch, yaw, roll]
                translation: [x, y, z]
                translation_in_world: true

        Args:
            config: Configuration dictionary.

        Returns:
            CameraModel: Configured camera.

        Raises:
            KeyError: If the intrinsics section or image size is missing.
        """
        camera_cfg = config.get("camera", config)
        intr_cfg = camera_cfg["intrinsics"]

        width = int(intr_cfg["width"])
        height = int(intr_cfg["height"])
        dist_coeffs = intr_cfg.get("dist_coeffs")

        if "focal_length" in intr_cfg:
            focal_length = float(intr_cfg["focal_length"])
        elif "fov_deg" in intr_cfg:
            focal_length = focal_length_from_fov(width, float(intr_cfg["fov_deg"]))
        else:
            focal_length = DEFAULT_FOCAL_LENGTH

        intrinsics = CameraIntrinsics(
            fx=float(intr_cfg.get("fx", focal_length)),
            fy=float(intr_cfg.get("fy", focal_length)),
            cx=float(intr_cfg.get("cx", width / 2.0)),
            cy=float(intr_cfg.get("cy", height / 2.0)),
            width=width,
            height=height,
            dist_coeffs=dist_coeffs,
        )

        camera = cls(intrinsics=intrinsics)

        extr_cfg = camera_cfg.get("extrinsics") or {}
        camera.set_extrinsic(
            extr_cfg.get("rotation_deg", [0.0, 0.0, 0.0]),
            extr_cfg.get("translation", [0.0, 0.0, 0.0]),
            translation_in_world=bool(extr_cfg.get("translation_in_world", True)),
        )

        camera.logger.debug(f"Camera created from config: {camera}")
        return camera

    def to_config(self) -> Dict[str, Any]:
        """
        Export the camera as a configuration dictionary.

        The translation is written as the world-frame camera position.

        Returns:
            Dict[str, Any]: Config with a "camera" section (plain Python types).
        """
        intrinsics = {
            "width": int(self.intrinsics.width),
            "height": int(self.intrinsics.height),
            "fx": float(self.intrinsics.fx),
            "fy": float(self.intrinsics.fy),
            "cx": float(self.intrinsics.cx),
            "cy": float(self.intrinsics.cy),
        }
        if self.intrinsics.dist_coeffs is not None:
            intrinsics["dist_coeffs"] = self.intrinsics.dist_coeffs.tolist()

        return {
            "camera": {
                "intrinsics": intrinsics,
                "extrinsics": {
                    "rotation_deg": self.extrinsics.rotation_deg.tolist(),
                    "translation": self.get_camera_position().tolist(),
                    "translation_in_world": True,
                },
            }
        }

    def copy(self) -> "CameraModel":
        """Return an independent snapshot of this camera."""
        dist_coeffs = self.intrinsics.dist_coeffs
        intrinsics = CameraIntrinsics(
            fx=self.intrinsics.fx,
            fy=self.intrinsics.fy,
            cx=self.intrinsics.cx,
            cy=self.intrinsics.cy,
            width=self.intrinsics.width,
            height=self.intrinsics.height,
            dist_coeffs=None if dist_coeffs is None else dist_coeffs.copy(),
        )
        return CameraModel(intrinsics=intrinsics, extrinsics=self.extrinsics.copy())

    def __repr__(self) -> str:
        """String representation."""
        return f"CameraModel({self.intrinsics!r}, {self.extrinsics!r})"
