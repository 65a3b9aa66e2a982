"""Planar geometry primitives for flats.

Polylines and loops are sequences of (x, y) points in a flat's local frame.
Interior-side queries return +1 when material lies to the left of the
directed edge (start -> end) and -1 when it lies to the right.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from sheetmetal_unfold.contracts import Edge, Flat
from sheetmetal_unfold.errors import DegenerateEdgeError, SheetMetalValidationError

EPS = 1e-8
PROBE_FLOOR = 1e-5


def edge_endpoints(polyline: Sequence[Sequence[float]], reverse: bool = False) -> Tuple[np.ndarray, np.ndarray]:
    """First and last polyline points as 2D arrays, swapped when *reverse*."""
    if len(polyline) < 2:
        raise SheetMetalValidationError("Edge polyline must contain at least two points.")
    first = np.array([float(polyline[0][0]), float(polyline[0][1])])
    last = np.array([float(polyline[-1][0]), float(polyline[-1][1])])
    if reverse:
        return last, first
    return first, last


def polyline_length(polyline: Sequence[Sequence[float]]) -> float:
    total = 0.0
    for a, b in zip(polyline[:-1], polyline[1:]):
        total += math.hypot(float(b[0]) - float(a[0]), float(b[1]) - float(a[1]))
    return total


def transform_points(points: Sequence[Sequence[float]], matrix: np.ndarray) -> np.ndarray:
    """Lift local 2D points to z=0 and apply a 4x4 matrix. Returns (N, 3)."""
    if len(points) == 0:
        return np.zeros((0, 3))
    pts = np.asarray(points, dtype=float)[:, :2]
    homogeneous = np.column_stack([pts, np.zeros(len(pts)), np.ones(len(pts))])
    return (homogeneous @ np.asarray(matrix, dtype=float).T)[:, :3]


def transform_points_2d(points: Sequence[Sequence[float]], matrix: np.ndarray) -> np.ndarray:
    return transform_points(points, matrix)[:, :2]


def point_in_polygon_2d(point: Sequence[float], polygon: Sequence[Sequence[float]]) -> bool:
    """Even-odd ray casting test. Works for non-convex polygons."""
    px, py = float(point[0]), float(point[1])
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = float(polygon[i][0]), float(polygon[i][1])
        xj, yj = float(polygon[j][0]), float(polygon[j][1])
        if (yi > py) != (yj > py):
            x_at_y = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < x_at_y:
                inside = not inside
        j = i
    return inside


def polygon_centroid_from_points(points: Sequence[Sequence[float]], eps: float = EPS) -> np.ndarray:
    """Area-weighted centroid, or the vertex mean for degenerate loops."""
    if len(points) == 0:
        return np.zeros(2)
    pts = np.asarray(points, dtype=float)[:, :2]
    nxt = np.roll(pts, -1, axis=0)
    cross = pts[:, 0] * nxt[:, 1] - nxt[:, 0] * pts[:, 1]
    signed_area = float(cross.sum())
    if abs(signed_area) <= eps:
        return pts.mean(axis=0)
    cx = float(((pts[:, 0] + nxt[:, 0]) * cross).sum())
    cy = float(((pts[:, 1] + nxt[:, 1]) * cross).sum())
    factor = 1.0 / (3.0 * signed_area)
    return np.array([cx * factor, cy * factor])


def normalize_loop_points(points: Optional[Sequence[Sequence[float]]], eps: float = EPS) -> List[np.ndarray]:
    """Drop non-finite and repeated points; empty list if fewer than 3 remain."""
    if points is None or len(points) < 3:
        return []
    merge_tol = eps * 10
    out: List[np.ndarray] = []
    for point in points:
        if len(point) < 2:
            continue
        x, y = float(point[0]), float(point[1])
        if not (math.isfinite(x) and math.isfinite(y)):
            continue
        vec = np.array([x, y])
        if not out or float(np.linalg.norm(out[-1] - vec)) > merge_tol:
            out.append(vec)
    if len(out) >= 2 and float(np.linalg.norm(out[0] - out[-1])) <= merge_tol:
        out.pop()
    return out if len(out) >= 3 else []


def collect_hole_loops(flat: Flat, eps: float = EPS) -> List[List[np.ndarray]]:
    loops = []
    for hole in flat.holes or []:
        loop = normalize_loop_points(hole, eps)
        if loop:
            loops.append(loop)
    return loops


def edge_matches_loop_segment(edge_start: np.ndarray, edge_end: np.ndarray, loop: Sequence[np.ndarray]) -> bool:
    """True when the edge chord coincides with one segment of *loop*, either way round."""
    if len(loop) < 2:
        return False
    best_score = math.inf
    best_len = 0.0
    for i in range(len(loop)):
        a = loop[i]
        b = loop[(i + 1) % len(loop)]
        forward = np.linalg.norm(edge_start - a) + np.linalg.norm(edge_end - b)
        reverse = np.linalg.norm(edge_start - b) + np.linalg.norm(edge_end - a)
        score = float(min(forward, reverse))
        if score < best_score:
            best_score = score
            best_len = float(np.linalg.norm(b - a))
    return best_score <= max(1e-4, best_len * 1e-3)


def interior_side_of_boundary_loop(
    loop: Sequence[Sequence[float]],
    edge_start: Sequence[float],
    edge_end: Sequence[float],
    eps: float = EPS,
    probe_floor: float = PROBE_FLOOR,
) -> int:
    """Which side of the directed edge lies inside *loop* (+1 left, -1 right).

    Probes a point just off the edge midpoint on each side. If the probes
    disagree the inside one wins; otherwise the side facing the loop
    centroid is used.
    """
    start = np.asarray(edge_start, dtype=float)[:2]
    end = np.asarray(edge_end, dtype=float)[:2]
    edge = end - start
    edge_len = float(np.linalg.norm(edge))
    if edge_len <= eps:
        return 1
    direction = edge / edge_len
    left = np.array([-direction[1], direction[0]])
    mid = (start + end) * 0.5

    pts = np.asarray(loop, dtype=float)[:, :2]
    diagonal = float(np.linalg.norm(pts.max(axis=0) - pts.min(axis=0)))
    probe = max(probe_floor, diagonal * 1e-5, edge_len * 1e-5)

    inside_left = point_in_polygon_2d(mid + left * probe, pts)
    inside_right = point_in_polygon_2d(mid - left * probe, pts)
    if inside_left != inside_right:
        return 1 if inside_left else -1

    centroid = polygon_centroid_from_points(pts, eps)
    return 1 if float(np.dot(left, centroid - mid)) >= 0 else -1


def interior_side_of_edge(
    flat: Flat,
    edge_start: np.ndarray,
    edge_end: np.ndarray,
    eps: float = EPS,
    probe_floor: float = PROBE_FLOOR,
) -> int:
    """Material side of an edge of *flat*, honouring hole boundaries."""
    for hole in collect_hole_loops(flat, eps):
        if not edge_matches_loop_segment(edge_start, edge_end, hole):
            continue
        # hole interior is void, material is on the other side
        return -interior_side_of_boundary_loop(hole, edge_start, edge_end, eps, probe_floor)
    return interior_side_of_boundary_loop(flat.outline, edge_start, edge_end, eps, probe_floor)


def left_normal(edge_start: np.ndarray, edge_end: np.ndarray) -> np.ndarray:
    direction = edge_end - edge_start
    direction = direction / np.linalg.norm(direction)
    return np.array([-direction[1], direction[0]])


def outward_direction(flat: Flat, edge: Edge, eps: float = EPS, probe_floor: float = PROBE_FLOOR) -> np.ndarray:
    """Unit 2D vector pointing away from the flat's material at *edge*."""
    start, end = edge_endpoints(edge.polyline)
    if float(np.dot(end - start, end - start)) <= eps:
        raise DegenerateEdgeError(
            f'Edge "{edge.id}" on flat "{flat.id}" is degenerate.',
            flat_id=flat.id,
            edge_id=edge.id,
        )
    normal = left_normal(start, end)
    if interior_side_of_edge(flat, start, end, eps, probe_floor) > 0:
        return -normal
    return normal


def has_interior_on_left(flat: Flat, edge: Edge, eps: float = EPS, probe_floor: float = PROBE_FLOOR) -> bool:
    start, end = edge_endpoints(edge.polyline)
    return interior_side_of_edge(flat, start, end, eps, probe_floor) > 0


def resample_polyline(points: Sequence[Sequence[float]], sample_count: int, eps: float = EPS) -> np.ndarray:
    """Resample to *sample_count* points evenly spaced by arclength."""
    count = max(2, int(sample_count))
    if len(points) == 0:
        return np.zeros((0, 2))
    src = np.asarray(points, dtype=float)
    if len(src) == 1:
        return np.repeat(src[:1], count, axis=0)

    seg_lengths = np.linalg.norm(np.diff(src, axis=0), axis=1)
    cumulative = np.concatenate([[0.0], np.cumsum(seg_lengths)])
    total = float(cumulative[-1])
    if not total > eps:
        return np.repeat(src[:1], count, axis=0)

    out = []
    seg = 1
    for i in range(count):
        target = total * i / (count - 1)
        while seg < len(cumulative) - 1 and cumulative[seg] < target:
            seg += 1
        i0 = max(0, seg - 1)
        i1 = min(len(src) - 1, seg)
        d0, d1 = cumulative[i0], cumulative[i1]
        if not d1 > d0:
            out.append(src[i1].copy())
            continue
        t = (target - d0) / (d1 - d0)
        out.append(src[i0] + (src[i1] - src[i0]) * t)
    return np.array(out)


def max_pointwise_distance(a: np.ndarray, b: np.ndarray) -> float:
    """Largest distance between corresponding points (inf if counts differ)."""
    if len(a) != len(b):
        return math.inf
    if len(a) == 0:
        return 0.0
    return float(np.max(np.linalg.norm(np.asarray(a) - np.asarray(b), axis=1)))
