"""Bend kinematics: neutral-axis allowance, hinge axes and fold rotations.

All matrices are 4x4 homogeneous numpy arrays acting on column vectors.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from sheetmetal_unfold.contracts import Edge
from sheetmetal_unfold.errors import DegenerateEdgeError
from sheetmetal_unfold.planar import EPS, edge_endpoints


def calculate_bend_allowance(mid_radius: float, thickness: float, k_factor: float, angle_rad: float) -> float:
    """Flattened arc length consumed by a bend, measured on the neutral axis.

    The neutral radius is the mid-plane radius moved by ``(k - 0.5) * t``;
    at ``k = 0.5`` the neutral axis is the mid-plane itself.
    """
    neutral_radius = mid_radius + (k_factor - 0.5) * thickness
    return abs(angle_rad) * neutral_radius


@dataclass(frozen=True)
class BendAxis:
    """Hinge line in a flat's local frame."""
    start: np.ndarray      # (3,)
    direction: np.ndarray  # (3,) unit, parallel to the parent edge chord
    length: float

    @property
    def end(self) -> np.ndarray:
        return self.start + self.direction * self.length

    def canonical(self, interior_on_left: bool) -> "BendAxis":
        """Axis whose direction keeps the parent's material on its left.

        A flipped axis starts from the old end, so it covers the same
        segment of the hinge line.
        """
        if interior_on_left:
            return self
        return BendAxis(start=self.end, direction=-self.direction, length=self.length)


def local_bend_axis(parent_edge: Edge, mid_radius: float) -> BendAxis:
    start, end = edge_endpoints(parent_edge.polyline)
    chord = end - start
    length = float(np.linalg.norm(chord))
    if length <= EPS:
        raise DegenerateEdgeError(
            f'Edge "{parent_edge.id}" is degenerate and cannot define a bend axis.',
            edge_id=parent_edge.id,
        )
    return BendAxis(
        start=np.array([start[0], start[1], -mid_radius]),
        direction=np.array([chord[0] / length, chord[1] / length, 0.0]),
        length=length,
    )


def local_bend_axis_signed(parent_edge: Edge, mid_radius: float, angle_rad: float) -> BendAxis:
    """Hinge axis offset below (positive angle) or above (negative angle) the sheet.

    Flipping the bend centre with the angle sign keeps both fold directions
    flowing away from the base flat instead of back through it.
    """
    axis = local_bend_axis(parent_edge, mid_radius)
    sign = 1.0 if angle_rad >= 0 else -1.0
    start = axis.start.copy()
    start[2] = -sign * mid_radius
    return BendAxis(start=start, direction=axis.direction, length=axis.length)


def make_translation(x: float, y: float, z: float = 0.0) -> np.ndarray:
    m = np.eye(4)
    m[:3, 3] = (x, y, z)
    return m


def make_rotation_z(angle_rad: float) -> np.ndarray:
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    m = np.eye(4)
    m[0, 0], m[0, 1] = c, -s
    m[1, 0], m[1, 1] = s, c
    return m


def make_rotation_axis(axis: np.ndarray, angle_rad: float) -> np.ndarray:
    """Right-handed rotation about a unit axis through the origin (Rodrigues)."""
    a = np.asarray(axis, dtype=float)
    a = a / np.linalg.norm(a)
    c, s = math.cos(angle_rad), math.sin(angle_rad)
    cross = np.array([
        [0.0, -a[2], a[1]],
        [a[2], 0.0, -a[0]],
        [-a[1], a[0], 0.0],
    ])
    m = np.eye(4)
    m[:3, :3] = c * np.eye(3) + s * cross + (1.0 - c) * np.outer(a, a)
    return m


def make_rotation_around_line(origin: np.ndarray, axis: np.ndarray, angle_rad: float) -> np.ndarray:
    """Rotation by *angle_rad* about the line through *origin* along *axis*."""
    o = np.asarray(origin, dtype=float)
    move_to_axis = make_translation(-o[0], -o[1], -o[2])
    move_back = make_translation(o[0], o[1], o[2])
    return move_back @ make_rotation_axis(axis, angle_rad) @ move_to_axis


def transform_point(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    p = np.asarray(point, dtype=float)
    z = p[2] if len(p) > 2 else 0.0
    return (matrix @ np.array([p[0], p[1], z, 1.0]))[:3]


def transform_direction(matrix: np.ndarray, vector: np.ndarray) -> np.ndarray:
    """Apply only the linear part of *matrix* and renormalize."""
    v = np.asarray(matrix, dtype=float)[:3, :3] @ np.asarray(vector, dtype=float)
    norm = float(np.linalg.norm(v))
    if norm < 1e-12:
        return v
    return v / norm
