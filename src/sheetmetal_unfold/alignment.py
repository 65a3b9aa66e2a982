"""Rigid 2D alignment of a child attach edge onto its parent edge.

The alignment only uses each polyline's first and last points (the chord).
When the caller does not say which way round the child edge runs, the
orientation is inferred so that parent and child material end up on opposite
sides of the shared edge.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from sheetmetal_unfold.contracts import Edge, Flat
from sheetmetal_unfold.errors import DegenerateEdgeError
from sheetmetal_unfold.kinematics import make_rotation_z
from sheetmetal_unfold.planar import (
    EPS,
    PROBE_FLOOR,
    edge_endpoints,
    interior_side_of_boundary_loop,
    interior_side_of_edge,
    left_normal,
    polygon_centroid_from_points,
    transform_points_2d,
)

logger = logging.getLogger(__name__)


def make_edge_alignment(
    parent_polyline: Sequence[Sequence[float]],
    child_polyline: Sequence[Sequence[float]],
    reverse_child: bool,
    eps: float = EPS,
    parent_edge_id: Optional[str] = None,
    child_edge_id: Optional[str] = None,
) -> np.ndarray:
    """Rotation about Z plus translation taking the child chord onto the parent chord.

    Returns a 4x4 matrix. The child start (its last point when
    *reverse_child*) lands on the parent start and the chord directions agree.
    """
    parent_start, parent_end = edge_endpoints(parent_polyline)
    child_start, child_end = edge_endpoints(child_polyline, reverse_child)
    parent_dir = parent_end - parent_start
    child_dir = child_end - child_start
    if float(parent_dir @ parent_dir) <= eps:
        raise DegenerateEdgeError(
            f'Parent edge "{parent_edge_id}" is degenerate and cannot be aligned.',
            edge_id=parent_edge_id,
        )
    if float(child_dir @ child_dir) <= eps:
        raise DegenerateEdgeError(
            f'Child edge "{child_edge_id}" is degenerate and cannot be aligned.',
            edge_id=child_edge_id,
        )

    parent_angle = math.atan2(parent_dir[1], parent_dir[0])
    child_angle = math.atan2(child_dir[1], child_dir[0])
    result = make_rotation_z(parent_angle - child_angle)
    rotated_child_start = result[:2, :2] @ child_start
    result[0, 3] = parent_start[0] - rotated_child_start[0]
    result[1, 3] = parent_start[1] - rotated_child_start[1]
    return result


@dataclass(frozen=True)
class OrientationScore:
    """Scores behind an inferred attach orientation.

    A score is ``parent_side * child_side`` at the shared edge: -1 when the
    two flats' material lies on opposite sides, +1 when they overlap.
    """
    score_forward: int
    score_reverse: int
    tie_break: bool
    reverse: bool


def score_edge_orientation(
    parent_flat: Flat,
    parent_edge: Edge,
    child_flat: Flat,
    child_edge: Edge,
    eps: float = EPS,
    probe_floor: float = PROBE_FLOOR,
) -> OrientationScore:
    parent_start, parent_end = edge_endpoints(parent_edge.polyline)
    parent_side = interior_side_of_edge(parent_flat, parent_start, parent_end, eps, probe_floor)

    def score_for(reverse: bool) -> int:
        align = make_edge_alignment(
            parent_edge.polyline, child_edge.polyline, reverse, eps, parent_edge.id, child_edge.id
        )
        child_start, child_end = edge_endpoints(child_edge.polyline, reverse)
        attach = transform_points_2d([child_start, child_end], align)
        outline = transform_points_2d(child_flat.outline, align)
        child_side = interior_side_of_boundary_loop(outline, attach[0], attach[1], eps, probe_floor)
        return parent_side * child_side

    score_forward = score_for(False)
    score_reverse = score_for(True)
    if score_forward != score_reverse:
        return OrientationScore(score_forward, score_reverse, tie_break=False, reverse=score_reverse < score_forward)

    # Both orientations classify the same way (attach edge not on the child
    # boundary, or a degenerate outline): fall back to where the child
    # centroid lands relative to the parent edge.
    centroid = polygon_centroid_from_points(child_flat.outline, eps)
    align_forward = make_edge_alignment(
        parent_edge.polyline, child_edge.polyline, False, eps, parent_edge.id, child_edge.id
    )
    align_reverse = make_edge_alignment(
        parent_edge.polyline, child_edge.polyline, True, eps, parent_edge.id, child_edge.id
    )
    centroid_forward = transform_points_2d([centroid], align_forward)[0]
    centroid_reverse = transform_points_2d([centroid], align_reverse)[0]
    mid = (parent_start + parent_end) * 0.5
    parent_left = left_normal(parent_start, parent_end)
    side_forward = float(parent_left @ (centroid_forward - mid))
    side_reverse = float(parent_left @ (centroid_reverse - mid))
    reverse = parent_side * side_reverse < parent_side * side_forward
    logger.debug(
        "Orientation tie for edge %s -> %s, centroid sides %.6g / %.6g, reverse=%s",
        parent_edge.id, child_edge.id, side_forward, side_reverse, reverse,
    )
    return OrientationScore(score_forward, score_reverse, tie_break=True, reverse=reverse)


def infer_reverse_edge(
    parent_flat: Flat,
    parent_edge: Edge,
    child_flat: Flat,
    child_edge: Edge,
    eps: float = EPS,
    probe_floor: float = PROBE_FLOOR,
) -> bool:
    """Whether the child attach edge must be traversed end->start to fit the parent."""
    return score_edge_orientation(parent_flat, parent_edge, child_flat, child_edge, eps, probe_floor).reverse
