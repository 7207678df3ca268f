"""Pinhole camera model: intrinsics, pose and 3D-2D projection."""

__version__ = "0.1.0"
__author__ = "Nagarjunan"

from . import calibration
from . import utils
from .calibration import CameraModel, CameraIntrinsics, CameraExtrinsics
