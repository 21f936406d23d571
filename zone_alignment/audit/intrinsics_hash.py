"""Deterministic identifier for a camera-intrinsics configuration (v1).

Canonical form, big-endian, 42 bytes::

    b"v1" | width:int32 | height:int32 | fx | fy | cx | cy

where fx, fy, cx, cy are int64 millipixels, ``floor(value * 1000 + 0.5)``.
The identifier is the SHA-256 of those bytes, base64url-encoded without
padding (43 characters). Millipixel rounding keeps the hash stable against
float jitter well below any meaningful calibration change.
"""

from __future__ import annotations

import base64
import hashlib
import math
import struct

from ..spatial import CameraIntrinsics

VERSION_TAG = b"v1"
MILLIPIXEL_SCALE = 1000

_LAYOUT = struct.Struct(">2siiqqqq")


def to_millipixels(pixels: float) -> int:
    return int(math.floor(pixels * MILLIPIXEL_SCALE + 0.5))


def canonicalize(width: int, height: int, fx: float, fy: float, cx: float, cy: float) -> bytes:
    return _LAYOUT.pack(
        VERSION_TAG,
        int(width),
        int(height),
        to_millipixels(fx),
        to_millipixels(fy),
        to_millipixels(cx),
        to_millipixels(cy),
    )


def intrinsics_hash_v1_from_values(
    width: int, height: int, fx: float, fy: float, cx: float, cy: float
) -> str:
    digest = hashlib.sha256(canonicalize(width, height, fx, fy, cx, cy)).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def intrinsics_hash_v1(intrinsics: CameraIntrinsics) -> str:
    return intrinsics_hash_v1_from_values(
        intrinsics.width,
        intrinsics.height,
        intrinsics.fx,
        intrinsics.fy,
        intrinsics.cx,
        intrinsics.cy,
    )
