"""
Tests for 3D-2D projection utilities.

Test Coverage:
- World -> camera transform
- World -> image projection with the behind-camera sentinel
- Depth map -> camera back-projection
- Pixel -> ground plane intersection
- Vanishing row estimation
"""

import logging

import numpy as np
import pytest


# =============================================================================
# Test Fixtures
# =============================================================================

DIST_COEFFS = [-0.1, 0.01, -0.005, -0.001, 0.0]


@pytest.fixture
def intrinsics():
    """1280x720 camera with f=500."""
    from pinhole_camera.calibration.intrinsics import CameraIntrinsics

    return CameraIntrinsics.from_focal_length(1280, 720, 500.0)


@pytest.fixture
def distorted_intrinsics():
    """1280x720 camera with f=500 and mild barrel distortion."""
    from pinhole_camera.calibration.intrinsics import CameraIntrinsics

    return CameraIntrinsics.from_focal_length(1280, 720, 500.0, dist_coeffs=DIST_COEFFS)


@pytest.fixture
def identity_pose():
    """Camera at the world origin looking along +Z."""
    from pinhole_camera.calibration.extrinsics import CameraExtrinsics

    return CameraExtrinsics()


@pytest.fixture
def ground_pose():
    """Level camera 1.5 above the ground plane Yw = 0 (Y+ is down)."""
    from pinhole_camera.calibration.extrinsics import CameraExtrinsics

    return CameraExtrinsics.from_world_position([0.0, 0.0, 0.0], [0.0, -1.5, 0.0])


# =============================================================================
# Test World -> Camera
# =============================================================================

class TestWorldToCamera:
    """Tests for project_world_to_camera."""

    def test_identity_pose(self, identity_pose):
        """With R = I and t = 0 the points are unchanged."""
        from pinhole_camera.calibration.projection import project_world_to_camera

        points = np.array([[1.0, 2.0, 3.0], [-4.0, 5.0, -6.0]])

        assert np.allclose(project_world_to_camera(points, identity_pose), points)

    def test_matches_R_p_plus_t(self):
        """Mc = R @ Mw + t for every point."""
        from pinhole_camera.calibration.extrinsics import CameraExtrinsics
        from pinhole_camera.calibration.projection import project_world_to_camera

        extrinsics = CameraExtrinsics(rvec=np.radians([10.0, -20.0, 5.0]), tvec=[0.5, -1.0, 2.0])
        points = np.random.default_rng(0).normal(size=(20, 3))

        points_cam = project_world_to_camera(points, extrinsics)

        assert points_cam.shape == (20, 3)
        assert np.allclose(points_cam, points @ extrinsics.R.T + extrinsics.tvec)

    def test_keeps_negative_depth(self, identity_pose):
        """Points behind the camera keep their negative Z."""
        from pinhole_camera.calibration.projection import project_world_to_camera

        points_cam = project_world_to_camera(np.array([0.0, 0.0, -5.0]), identity_pose)

        assert points_cam.shape == (1, 3)
        assert points_cam[0, 2] == -5.0

    def test_invalid_shape(self, identity_pose):
        """2D points are rejected."""
        from pinhole_camera.calibration.projection import project_world_to_camera

        with pytest.raises(ValueError):
            project_world_to_camera(np.zeros((4, 2)), identity_pose)


# =============================================================================
# Test World -> Image
# =============================================================================

class TestWorldToImage:
    """Tests for project_world_to_image."""

    def test_point_on_optical_axis(self, intrinsics):
        """Camera at (0, 1.5, 0): the point (0, 1.5, 10) lands on the principal point."""
        from pinhole_camera.calibration.extrinsics import CameraExtrinsics
        from pinhole_camera.calibration.projection import project_world_to_image

        pose = CameraExtrinsics.from_world_position([0.0, 0.0, 0.0], [0.0, 1.5, 0.0])
        pixels = project_world_to_image(np.array([[0.0, 1.5, 10.0]]), intrinsics, pose)

        assert np.allclose(pixels, [[640.0, 360.0]])

    def test_pinhole_formula(self, intrinsics, identity_pose):
        """u = fx * X/Z + cx, v = fy * Y/Z + cy."""
        from pinhole_camera.calibration.projection import project_world_to_image

        pixels = project_world_to_image(np.array([[1.0, 0.5, 10.0]]), intrinsics, identity_pose)

        assert np.allclose(pixels, [[690.0, 385.0]])

    def test_behind_camera_sentinel(self, intrinsics, identity_pose):
        """Points with Zc <= 0 map to (-1, -1); order and length are kept."""
        from pinhole_camera.calibration.projection import (
            INVALID_IMAGE_POINT,
            project_world_to_image,
        )

        points = np.array([
            [0.0, 0.0, 10.0],
            [0.0, 0.0, -5.0],
            [1.0, 1.0, 0.0],
            [1.0, 0.5, 10.0],
        ])

        pixels = project_world_to_image(points, intrinsics, identity_pose)

        assert pixels.shape == (4, 2)
        assert np.allclose(pixels[0], [640.0, 360.0])
        assert tuple(pixels[1]) == INVALID_IMAGE_POINT
        assert tuple(pixels[2]) == INVALID_IMAGE_POINT
        assert np.allclose(pixels[3], [690.0, 385.0])

    def test_all_behind_camera(self, intrinsics, identity_pose):
        """Only sentinels when nothing is in front of the camera."""
        from pinhole_camera.calibration.projection import project_world_to_image

        points = np.array([[0.0, 0.0, -1.0], [1.0, 2.0, -3.0]])

        assert np.all(project_world_to_image(points, intrinsics, identity_pose) == -1.0)

    def test_empty_input(self, intrinsics, identity_pose):
        """Empty input gives an empty (0, 2) result."""
        from pinhole_camera.calibration.projection import project_world_to_image

        pixels = project_world_to_image(np.empty((0, 3)), intrinsics, identity_pose)

        assert pixels.shape == (0, 2)

    def test_focal_length_scales_offset(self, intrinsics, identity_pose):
        """Doubling f doubles the displacement from the principal point."""
        from pinhole_camera.calibration.intrinsics import CameraIntrinsics
        from pinhole_camera.calibration.projection import project_world_to_image

        double = CameraIntrinsics.from_focal_length(1280, 720, 1000.0)
        point = np.array([[0.7, -0.3, 4.0]])

        offset = project_world_to_image(point, intrinsics, identity_pose) - [640.0, 360.0]
        offset_double = project_world_to_image(point, double, identity_pose) - [640.0, 360.0]

        assert np.allclose(offset_double, 2 * offset)

    def test_distortion_applied(self, distorted_intrinsics, identity_pose):
        """Distorted projection equals K applied to distorted normalized coordinates."""
        from pinhole_camera.calibration.distortion import distort_normalized
        from pinhole_camera.calibration.projection import project_world_to_image

        point = np.array([[2.0, -1.0, 5.0]])
        expected_norm = distort_normalized(np.array([[0.4, -0.2]]), np.array(DIST_COEFFS))
        expected = expected_norm * 500.0 + [640.0, 360.0]

        pixels = project_world_to_image(point, distorted_intrinsics, identity_pose)

        assert np.allclose(pixels, expected)
        assert not np.allclose(pixels, [[840.0, 260.0]])


# =============================================================================
# Test Depth Map -> Camera
# =============================================================================

class TestImageToCamera:
    """Tests for project_image_to_camera."""

    @pytest.fixture
    def small_intrinsics(self):
        """4x3 image, f=2, principal point (2, 1.5)."""
        from pinhole_camera.calibration.intrinsics import CameraIntrinsics

        return CameraIntrinsics(fx=2.0, fy=2.0, cx=2.0, cy=1.5, width=4, height=3)

    def test_row_major_order(self, small_intrinsics):
        """Output index is y * width + x."""
        from pinhole_camera.calibration.projection import project_image_to_camera

        points = project_image_to_camera(np.full((3, 4), 2.0), small_intrinsics)

        assert points.shape == (12, 3)
        # Pixel (x=3, y=2)
        assert np.allclose(points[2 * 4 + 3], [1.0, 0.5, 2.0])
        # Pixel (x=0, y=0)
        assert np.allclose(points[0], [-2.0, -1.5, 2.0])

    def test_flat_and_2d_input_agree(self, small_intrinsics):
        """A flat depth buffer gives the same result as the (H, W) array."""
        from pinhole_camera.calibration.projection import project_image_to_camera

        depth = np.arange(1, 13, dtype=float).reshape(3, 4)

        points_2d = project_image_to_camera(depth, small_intrinsics)
        points_flat = project_image_to_camera(depth.ravel(), small_intrinsics)

        assert np.allclose(points_2d, points_flat)
        assert np.allclose(points_flat[:, 2], depth.ravel())

    def test_size_mismatch(self, intrinsics, caplog):
        """Wrong depth map size gives an empty result and logs an error."""
        from pinhole_camera.calibration.projection import project_image_to_camera

        with caplog.at_level(logging.ERROR):
            points = project_image_to_camera(np.ones(100), intrinsics)

        assert points.shape == (0, 3)
        assert "Invalid depth map size" in caplog.text

    def test_transposed_depth_map(self, small_intrinsics, caplog):
        """A (width, height) map has the right size but is rejected."""
        from pinhole_camera.calibration.projection import project_image_to_camera

        with caplog.at_level(logging.ERROR):
            points = project_image_to_camera(np.ones((4, 3)), small_intrinsics)

        assert points.shape == (0, 3)
        assert "Invalid depth map shape" in caplog.text

    def test_roundtrip_with_projection(self, intrinsics):
        """Projecting a point and back-projecting its pixel with Zc recovers it."""
        from pinhole_camera.calibration.extrinsics import CameraExtrinsics
        from pinhole_camera.calibration.projection import (
            project_image_to_camera,
            project_world_to_camera,
            project_world_to_image,
        )

        pose = CameraExtrinsics(tvec=[0.0, 0.0, 5.0])
        point_world = np.array([[1.0, 0.5, 5.0]])

        point_cam = project_world_to_camera(point_world, pose)[0]
        u, v = project_world_to_image(point_world, intrinsics, pose)[0]
        assert np.allclose([u, v], [690.0, 385.0])

        points = project_image_to_camera(np.full((720, 1280), point_cam[2]), intrinsics)

        assert np.allclose(points[int(round(v)) * 1280 + int(round(u))], point_cam)


# =============================================================================
# Test Pixel -> Ground Plane
# =============================================================================

class TestImageToGroundPlane:
    """Tests for project_image_to_ground_plane."""

    def test_known_ground_point(self, intrinsics, ground_pose):
        """A ground pixel is intersected back to the original ground point."""
        from pinhole_camera.calibration.projection import project_image_to_ground_plane

        # Ground point (2, 0, 10) -> camera (2, 1.5, 10) -> pixel (740, 435)
        point = project_image_to_ground_plane([740.0, 435.0], intrinsics, ground_pose)

        assert point is not None
        assert np.allclose(point, [2.0, 0.0, 10.0])

    def test_above_horizon_returns_none(self, intrinsics, ground_pose):
        """Pixels above the horizon never reach the ground."""
        from pinhole_camera.calibration.projection import project_image_to_ground_plane

        assert project_image_to_ground_plane([640.0, 300.0], intrinsics, ground_pose) is None

    def test_horizon_returns_none(self, intrinsics, ground_pose):
        """A ray parallel to the ground has no intersection."""
        from pinhole_camera.calibration.projection import project_image_to_ground_plane

        assert project_image_to_ground_plane([640.0, 360.0], intrinsics, ground_pose) is None

    def test_custom_ground_height(self, intrinsics, ground_pose):
        """Intersections lie on the requested plane."""
        from pinhole_camera.calibration.projection import project_image_to_ground_plane

        point = project_image_to_ground_plane([700.0, 500.0], intrinsics, ground_pose, ground_y=-0.5)

        assert point is not None
        assert np.isclose(point[1], -0.5)

    def test_roundtrip_with_rotation_and_distortion(self, distorted_intrinsics):
        """Project a ground point and intersect its pixel with the ground again."""
        from pinhole_camera.calibration.extrinsics import CameraExtrinsics
        from pinhole_camera.calibration.projection import (
            project_image_to_ground_plane,
            project_world_to_image,
        )

        pose = CameraExtrinsics.from_world_position([8.0, 5.0, 2.0], [0.5, -2.0, -1.0])
        ground_points = np.array([[0.0, 0.0, 8.0], [3.0, 0.0, 12.0], [-2.0, 0.0, 5.0]])

        pixels = project_world_to_image(ground_points, distorted_intrinsics, pose)

        for pixel, expected in zip(pixels, ground_points):
            point = project_image_to_ground_plane(pixel, distorted_intrinsics, pose)
            assert point is not None
            assert np.allclose(point, expected, atol=1e-4)

    def test_invalid_pixel_shape(self, intrinsics, ground_pose):
        """Pixel must have two coordinates."""
        from pinhole_camera.calibration.projection import project_image_to_ground_plane

        with pytest.raises(ValueError):
            project_image_to_ground_plane([1.0, 2.0, 3.0], intrinsics, ground_pose)


# =============================================================================
# Test Vanishing Row
# =============================================================================

class TestVanishingRow:
    """Tests for estimate_vanishing_row."""

    @staticmethod
    def pose(pitch_deg, yaw_deg=0.0, roll_deg=0.0):
        from pinhole_camera.calibration.extrinsics import CameraExtrinsics

        return CameraExtrinsics.from_world_position([pitch_deg, yaw_deg, roll_deg], [0.0, -1.5, 0.0])

    def test_level_camera(self, intrinsics, identity_pose):
        """A level camera has its horizon at cy."""
        from pinhole_camera.calibration.projection import estimate_vanishing_row

        assert np.isclose(estimate_vanishing_row(intrinsics, identity_pose), 360.0)

    def test_pitch_down_moves_row_up(self, intrinsics):
        """Positive pitch puts the horizon fy * tan(pitch) above cy."""
        from pinhole_camera.calibration.projection import estimate_vanishing_row

        row = estimate_vanishing_row(intrinsics, self.pose(10.0))

        assert np.isclose(row, 360.0 - 500.0 * np.tan(np.radians(10.0)))

    def test_yaw_does_not_move_row(self, intrinsics):
        """Turning left/right keeps the horizon at cy."""
        from pinhole_camera.calibration.projection import estimate_vanishing_row

        assert np.isclose(estimate_vanishing_row(intrinsics, self.pose(0.0, 30.0)), 360.0)

    def test_vertical_camera(self, intrinsics):
        """No horizon when the camera looks straight down."""
        from pinhole_camera.calibration.projection import estimate_vanishing_row

        assert estimate_vanishing_row(intrinsics, self.pose(90.0)) is None

    def test_ground_points_converge_to_row(self, intrinsics):
        """Far ground points project close to the vanishing row."""
        from pinhole_camera.calibration.projection import (
            estimate_vanishing_row,
            project_world_to_image,
        )

        pose = self.pose(5.0)
        far_pixel = project_world_to_image(np.array([[0.0, 0.0, 1e6]]), intrinsics, pose)[0]

        assert np.isclose(far_pixel[1], estimate_vanishing_row(intrinsics, pose), atol=1e-2)
