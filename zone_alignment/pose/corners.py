from __future__ import annotations

from typing import Sequence

import numpy as np

from ..spatial import Vector2


def order_corners_clockwise_from_top_left(corners: Sequence[Vector2]) -> list[Vector2]:
    """
    Order four marker corners as TL, TR, BR, BL in image space (Y down).

    Fewer than four corners are returned unchanged.
    """
    if len(corners) < 4:
        return list(corners)

    pts = np.array([[c.x, c.y] for c in corners], dtype=np.float64)
    centroid = pts.mean(axis=0)

    # With Y pointing down, ascending atan2 walks the corners clockwise.
    angles = np.arctan2(pts[:, 1] - centroid[1], pts[:, 0] - centroid[0])
    order = [int(i) for i in np.argsort(angles, kind="stable")]
    by_angle = [pts[i] for i in order]

    top_left = min(range(len(by_angle)), key=lambda i: by_angle[i][1] * 1000.0 + by_angle[i][0])
    rotated = by_angle[top_left:] + by_angle[:top_left]

    v1 = rotated[1] - rotated[0]
    v2 = rotated[3] - rotated[0]
    cross = v1[0] * v2[1] - v1[1] * v2[0]
    if cross < 0:
        rotated = [rotated[0], rotated[3], rotated[2], rotated[1]]

    return [Vector2(float(p[0]), float(p[1])) for p in rotated]


def corners_from_array(corners) -> list[Vector2]:
    """Convert an OpenCV-style (1,4,2) or (4,2) corner array to Vector2s."""
    a = np.asarray(corners, dtype=np.float64).reshape(-1, 2)
    return [Vector2(float(x), float(y)) for x, y in a]
