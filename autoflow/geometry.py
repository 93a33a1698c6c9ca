# autoflow/geometry.py
"""
Curve math for preview paths and freehand conversion.
Handles linear and Catmull-Rom interpolation, cubic Bezier primitives and
Ramer-Douglas-Peucker simplification. Everything here is pure.
"""

import math
from typing import List, Sequence, Tuple

Point = Tuple[float, float]
Pose = Tuple[float, float, float]


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def cubic_bezier(t: float, p0: float, p1: float, p2: float, p3: float) -> float:
    """Scalar cubic Bezier; p0 and p3 are endpoints, p1 and p2 control handles."""
    mt = 1 - t
    return (mt * mt * mt * p0 + 3 * mt * mt * t * p1
            + 3 * mt * t * t * p2 + t * t * t * p3)


def bezier_point(p0: Sequence[float], p1: Sequence[float], p2: Sequence[float],
                 p3: Sequence[float], t: float) -> Point:
    """Cubic Bezier interpolation between 4 (x, y) control points."""
    return (cubic_bezier(t, p0[0], p1[0], p2[0], p3[0]),
            cubic_bezier(t, p0[1], p1[1], p2[1], p3[1]))


def _catmull_rom(t: float, p0: float, p1: float, p2: float, p3: float) -> float:
    t2 = t * t
    t3 = t2 * t
    return 0.5 * ((2 * p1) +
                  (-p0 + p2) * t +
                  (2 * p0 - 5 * p1 + 4 * p2 - p3) * t2 +
                  (-p0 + 3 * p1 - 3 * p2 + p3) * t3)


def linear_interpolate(a: Sequence[float], b: Sequence[float], steps: int) -> List[Pose]:
    """
    Sample steps + 1 evenly spaced poses from a to b, both ends included.
    Heading is interpolated linearly (a and b may be (x, y) or (x, y, heading)).
    """
    steps = max(1, int(steps))
    ha = a[2] if len(a) > 2 else 0.0
    hb = b[2] if len(b) > 2 else 0.0
    out = []
    for i in range(steps + 1):
        t = i / steps
        out.append((lerp(a[0], b[0], t), lerp(a[1], b[1], t), lerp(ha, hb, t)))
    return out


def generate_spline(points: Sequence[Sequence[float]], steps: int = 100) -> List[Pose]:
    """
    Generate a smooth Catmull-Rom spline through every point.

    Args:
        points: (x, y, heading) poses to pass through
        steps: total sample budget; each segment gets ceil(steps / (n - 1))

    Returns:
        Dense list of (x, y, heading) samples. Fewer than two points are
        returned unchanged and exactly two collapse to linear interpolation.
    """
    n = len(points)
    if n < 2:
        return [tuple(p) for p in points]
    if n == 2:
        return linear_interpolate(points[0], points[1], steps)

    seg_steps = max(1, math.ceil(steps / (n - 1)))
    result = []
    for i in range(n - 1):
        # Endpoints double as phantom neighbours
        p0 = points[i - 1] if i > 0 else points[i]
        p1 = points[i]
        p2 = points[i + 1]
        p3 = points[i + 2] if i + 2 < n else p2
        h1 = p1[2] if len(p1) > 2 else 0.0
        h2 = p2[2] if len(p2) > 2 else 0.0
        for j in range(seg_steps + 1):
            t = j / seg_steps
            result.append((
                _catmull_rom(t, p0[0], p1[0], p2[0], p3[0]),
                _catmull_rom(t, p0[1], p1[1], p2[1], p3[1]),
                lerp(h1, h2, t),
            ))
    return result


def perpendicular_distance(point: Sequence[float], start: Sequence[float],
                           end: Sequence[float]) -> float:
    """Distance from point to the infinite line through start and end."""
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = math.hypot(dx, dy)
    if length == 0:
        return math.hypot(point[0] - start[0], point[1] - start[1])
    return abs(dy * point[0] - dx * point[1] + end[0] * start[1] - end[1] * start[0]) / length


def simplify_path(points: Sequence[Sequence[float]], epsilon: float = 2.0) -> List[Tuple[float, ...]]:
    """Ramer-Douglas-Peucker simplification; endpoints are always kept."""
    pts = [tuple(p) for p in points]
    if len(pts) < 3:
        return pts

    max_dist = 0.0
    index = 0
    first, last = pts[0], pts[-1]
    for i in range(1, len(pts) - 1):
        d = perpendicular_distance(pts[i], first, last)
        if d > max_dist:
            max_dist = d
            index = i

    if max_dist > epsilon:
        left = simplify_path(pts[:index + 1], epsilon)
        right = simplify_path(pts[index:], epsilon)
        return left[:-1] + right
    return [first, last]


def path_length(points: Sequence[Sequence[float]]) -> float:
    """Total polyline length."""
    total = 0.0
    for a, b in zip(points, points[1:]):
        total += math.hypot(b[0] - a[0], b[1] - a[1])
    return total
