"""Vector, quaternion and rigid-pose value types for zone alignment."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import cv2
import numpy as np


@dataclass(frozen=True)
class Vector2:
    x: float
    y: float


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    def __add__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scale: float) -> "Vector3":
        return Vector3(self.x * scale, self.y * scale, self.z * scale)

    def __neg__(self) -> "Vector3":
        return Vector3(-self.x, -self.y, -self.z)

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def cross(self, other: "Vector3") -> "Vector3":
        return Vector3(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
        )

    def norm(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> "Vector3":
        magnitude = self.norm()
        if magnitude == 0.0:
            return self
        return self * (1.0 / magnitude)

    def as_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)

    @classmethod
    def from_array(cls, values) -> "Vector3":
        a = np.asarray(values, dtype=np.float64).reshape(3)
        return cls(float(a[0]), float(a[1]), float(a[2]))

    @classmethod
    def zero(cls) -> "Vector3":
        return cls(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class Quaternion:
    """Rotation quaternion in (x, y, z, w) order, w being the scalar part."""

    x: float
    y: float
    z: float
    w: float

    def __mul__(self, other: "Quaternion") -> "Quaternion":
        # Hamilton product: applying `other` first, then `self`.
        return Quaternion(
            self.w * other.x + self.x * other.w + self.y * other.z - self.z * other.y,
            self.w * other.y - self.x * other.z + self.y * other.w + self.z * other.x,
            self.w * other.z + self.x * other.y - self.y * other.x + self.z * other.w,
            self.w * other.w - self.x * other.x - self.y * other.y - self.z * other.z,
        ).normalized()

    def rotate(self, vector: Vector3) -> Vector3:
        q_vec = Vector3(self.x, self.y, self.z)
        uv = q_vec.cross(vector)
        uuv = q_vec.cross(uv)
        return vector + uv * (2.0 * self.w) + uuv * 2.0

    def norm(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w)

    def normalized(self) -> "Quaternion":
        magnitude = self.norm()
        if magnitude == 0.0:
            return self
        return Quaternion(self.x / magnitude, self.y / magnitude, self.z / magnitude, self.w / magnitude)

    def conjugate(self) -> "Quaternion":
        return Quaternion(-self.x, -self.y, -self.z, self.w).normalized()

    def angular_distance(self, other: "Quaternion") -> float:
        """Angle in radians between two orientations, in [0, pi]."""
        dot = self.x * other.x + self.y * other.y + self.z * other.z + self.w * other.w
        clamped = min(1.0, max(-1.0, dot))
        return 2.0 * math.acos(abs(clamped))

    def to_rotation_matrix(self) -> np.ndarray:
        x, y, z, w = self.x, self.y, self.z, self.w
        xx, yy, zz = x * x, y * y, z * z
        xy, xz, yz = x * y, x * z, y * z
        wx, wy, wz = w * x, w * y, w * z
        return np.array(
            [
                [1.0 - 2.0 * (yy + zz), 2.0 * (xy - wz), 2.0 * (xz + wy)],
                [2.0 * (xy + wz), 1.0 - 2.0 * (xx + zz), 2.0 * (yz - wx)],
                [2.0 * (xz - wy), 2.0 * (yz + wx), 1.0 - 2.0 * (xx + yy)],
            ],
            dtype=np.float64,
        )

    def to_euler_degrees(self) -> Vector3:
        """
        Convert to roll/pitch/yaw (ZYX convention) in degrees.

        Returns:
            Vector3(roll, pitch, yaw). Pitch saturates at +/-90 degrees.
        """
        x, y, z, w = self.x, self.y, self.z, self.w
        roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))

        sin_pitch = 2.0 * (w * y - z * x)
        if abs(sin_pitch) >= 1.0:
            pitch = math.copysign(math.pi / 2.0, sin_pitch)
        else:
            pitch = math.asin(sin_pitch)

        yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
        return Vector3(math.degrees(roll), math.degrees(pitch), math.degrees(yaw))

    @classmethod
    def identity(cls) -> "Quaternion":
        return cls(0.0, 0.0, 0.0, 1.0)

    @classmethod
    def from_axis_angle(cls, axis: Vector3, angle_rad: float) -> "Quaternion":
        unit = axis.normalized()
        s = math.sin(angle_rad / 2.0)
        return cls(unit.x * s, unit.y * s, unit.z * s, math.cos(angle_rad / 2.0)).normalized()

    @classmethod
    def from_rotation_matrix(cls, m) -> "Quaternion":
        """
        Convert a 3x3 rotation matrix to a unit quaternion.

        Branches on the largest of trace / diagonal entries to keep the
        square root argument well away from zero.

        Args:
            m: 3x3 rotation matrix (nested sequences or ndarray)

        Returns:
            Normalized Quaternion
        """
        m = np.asarray(m, dtype=np.float64)
        trace = m[0, 0] + m[1, 1] + m[2, 2]
        if trace > 0.0:
            s = math.sqrt(trace + 1.0) * 2.0
            q = cls(
                (m[2, 1] - m[1, 2]) / s,
                (m[0, 2] - m[2, 0]) / s,
                (m[1, 0] - m[0, 1]) / s,
                0.25 * s,
            )
        elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
            s = math.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2]) * 2.0
            q = cls(
                0.25 * s,
                (m[0, 1] + m[1, 0]) / s,
                (m[0, 2] + m[2, 0]) / s,
                (m[2, 1] - m[1, 2]) / s,
            )
        elif m[1, 1] > m[2, 2]:
            s = math.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2]) * 2.0
            q = cls(
                (m[0, 1] + m[1, 0]) / s,
                0.25 * s,
                (m[1, 2] + m[2, 1]) / s,
                (m[0, 2] - m[2, 0]) / s,
            )
        else:
            s = math.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1]) * 2.0
            q = cls(
                (m[0, 2] + m[2, 0]) / s,
                (m[1, 2] + m[2, 1]) / s,
                0.25 * s,
                (m[1, 0] - m[0, 1]) / s,
            )
        return q.normalized()


@dataclass(frozen=True)
class Pose3D:
    position: Vector3
    rotation: Quaternion

    def compose(self, child: "Pose3D") -> "Pose3D":
        """Return self ∘ child: apply `child` first, then `self`."""
        new_position = self.position + self.rotation.rotate(child.position)
        return Pose3D(new_position, self.rotation * child.rotation)

    def inverse(self) -> "Pose3D":
        inv_rotation = self.rotation.conjugate()
        inv_position = inv_rotation.rotate(-self.position)
        return Pose3D(inv_position, inv_rotation)

    def transform_point(self, point: Vector3) -> Vector3:
        return self.rotation.rotate(point) + self.position

    def to_matrix(self) -> np.ndarray:
        """4x4 homogeneous transformation matrix."""
        T = np.eye(4)
        T[:3, :3] = self.rotation.to_rotation_matrix()
        T[:3, 3] = self.position.as_array()
        return T

    def to_rvec_tvec(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Convert to OpenCV rotation vector and translation vector.

        Returns:
            (rvec, tvec) where both are (3,1) float64 arrays
        """
        rvec, _ = cv2.Rodrigues(self.rotation.to_rotation_matrix())
        tvec = self.position.as_array().reshape(3, 1)
        return rvec.reshape(3, 1), tvec

    @classmethod
    def from_rvec_tvec(cls, rvec, tvec) -> "Pose3D":
        """
        Build a pose from an OpenCV rotation vector and translation vector.

        Args:
            rvec: Rotation vector (3,) or (3,1)
            tvec: Translation vector (3,) or (3,1)
        """
        rvec = np.array(rvec, dtype=np.float64).reshape(3)
        R, _ = cv2.Rodrigues(rvec)
        return cls(Vector3.from_array(tvec), Quaternion.from_rotation_matrix(R))

    @classmethod
    def identity(cls) -> "Pose3D":
        return cls(Vector3.zero(), Quaternion.identity())


@dataclass(frozen=True)
class CameraIntrinsics:
    """Pinhole camera model in pixel units."""

    fx: float
    fy: float
    cx: float
    cy: float
    width: int
    height: int

    def matrix(self) -> np.ndarray:
        return np.array(
            [
                [self.fx, 0.0, self.cx],
                [0.0, self.fy, self.cy],
                [0.0, 0.0, 1.0],
            ],
            dtype=np.float64,
        )
