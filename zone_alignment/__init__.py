"""Marker-based alignment of a physical zone into an AR world frame."""

from .config import AlignmentConfig, load_config
from .session import AlignmentSession, FrameAlignment
from .spatial import CameraIntrinsics, Pose3D, Quaternion, Vector2, Vector3

__all__ = [
    "AlignmentConfig",
    "AlignmentSession",
    "CameraIntrinsics",
    "FrameAlignment",
    "Pose3D",
    "Quaternion",
    "Vector2",
    "Vector3",
    "load_config",
]
