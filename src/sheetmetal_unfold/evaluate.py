"""Tree evaluator: folded (3D) and flattened (2D) placement of every flat.

Single depth-first pass over the flat/bend tree. At every bend the child
flat is placed twice:

  3D: parent_matrix @ bend_rotation @ alignment
  2D: parent_matrix @ allowance_shift @ alignment

where ``alignment`` maps the child attach edge onto the parent edge,
``bend_rotation`` folds about the hinge axis offset by the mid-radius, and
``allowance_shift`` pushes the child outward by the neutral-axis bend
allowance. The folded child edge is then checked against the folded parent
edge before descending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple

import numpy as np

from sheetmetal_unfold.alignment import make_edge_alignment, score_edge_orientation
from sheetmetal_unfold.contracts import (
    BendChild,
    BendPlacement2D,
    BendPlacement3D,
    Edge,
    Flat,
    FlatPlacement,
    OrientationDecision,
    PlacementContext,
    SheetMetalEvaluation,
    SheetMetalTree,
    UnfoldConfig,
    frozen_matrix,
    to_vec2,
    to_vec3,
)
from sheetmetal_unfold.errors import ContinuityError, CycleError, EdgeLengthMismatchError
from sheetmetal_unfold.kinematics import (
    calculate_bend_allowance,
    local_bend_axis_signed,
    make_rotation_around_line,
    make_translation,
    transform_direction,
    transform_point,
)
from sheetmetal_unfold.planar import (
    has_interior_on_left,
    max_pointwise_distance,
    outward_direction,
    polyline_length,
    resample_polyline,
    transform_points,
)
from sheetmetal_unfold.validation import find_edge, validate_config, validate_flat, validate_thickness

logger = logging.getLogger(__name__)

_UP = np.array([0.0, 0.0, 1.0])


@dataclass
class _EvaluationState:
    """Output collections plus traversal bookkeeping for one evaluation."""
    thickness: float
    config: UnfoldConfig
    flats_3d: List[FlatPlacement] = field(default_factory=list)
    flats_2d: List[FlatPlacement] = field(default_factory=list)
    bends_3d: List[BendPlacement3D] = field(default_factory=list)
    bends_2d: List[BendPlacement2D] = field(default_factory=list)
    decisions: List[OrientationDecision] = field(default_factory=list)
    validated: Set[Flat] = field(default_factory=set)
    active: Set[Flat] = field(default_factory=set)
    path: List[str] = field(default_factory=list)


def evaluate_sheet_metal(tree: SheetMetalTree, config: Optional[UnfoldConfig] = None) -> SheetMetalEvaluation:
    """Fold and flatten *tree*.

    Raises:
        SheetMetalValidationError: malformed thickness, flat, edge or bend.
        CycleError: a flat is its own descendant.
        MissingEdgeError: a child names an unknown attach edge.
        EdgeLengthMismatchError / ContinuityError: the two derivations disagree.
    """
    if config is None:
        config = UnfoldConfig()
    validate_config(config)
    validate_thickness(tree.thickness)

    state = _EvaluationState(thickness=float(tree.thickness), config=config)
    _walk(tree.root, PlacementContext.identity(), state)

    logger.info(
        "Evaluated sheet-metal tree: %d flats, %d bends (%d inferred orientations)",
        len(state.flats_3d),
        len(state.bends_3d),
        sum(1 for d in state.decisions if d.inferred),
    )
    return SheetMetalEvaluation(
        flats_3d=state.flats_3d,
        flats_2d=state.flats_2d,
        bends_3d=state.bends_3d,
        bends_2d=state.bends_2d,
        orientation_decisions=state.decisions,
    )


def _walk(flat: Flat, context: PlacementContext, state: _EvaluationState) -> None:
    if flat not in state.validated:
        validate_flat(flat, state.config)
        state.validated.add(flat)
    if flat in state.active:
        raise CycleError(state.path + [flat.id])

    state.active.add(flat)
    state.path.append(flat.id)
    state.flats_3d.append(FlatPlacement(flat=flat, matrix=frozen_matrix(context.matrix_3d)))
    state.flats_2d.append(FlatPlacement(flat=flat, matrix=frozen_matrix(context.matrix_2d)))

    for edge in flat.edges:
        if edge.bend is not None:
            _place_bend(flat, edge, context, state)

    state.path.pop()
    state.active.discard(flat)


def _place_bend(flat: Flat, edge: Edge, context: PlacementContext, state: _EvaluationState) -> None:
    cfg = state.config
    bend = edge.bend
    angle_rad = bend.angle_rad
    allowance = calculate_bend_allowance(bend.mid_radius, state.thickness, bend.k_factor, angle_rad)

    shift = outward_direction(flat, edge, cfg.eps, cfg.probe_floor)
    shift_matrix = make_translation(shift[0] * allowance, shift[1] * allowance)

    axis = local_bend_axis_signed(edge, bend.mid_radius, angle_rad).canonical(
        has_interior_on_left(flat, edge, cfg.eps, cfg.probe_floor)
    )
    bend_rotation = make_rotation_around_line(axis.start, axis.direction, angle_rad)
    folded = context.matrix_3d @ bend_rotation

    parent_edge_world_3d = _as_vec3_tuple(transform_points(edge.polyline, context.matrix_3d))
    parent_edge_world_2d = _as_vec3_tuple(transform_points(edge.polyline, context.matrix_2d))
    parent_normal = to_vec3(transform_direction(context.matrix_3d, _UP))
    axis_start_world = to_vec3(transform_point(context.matrix_3d, axis.start))
    axis_end_world = to_vec3(transform_point(context.matrix_3d, axis.end))
    world_shift = transform_direction(context.matrix_2d, np.array([shift[0], shift[1], 0.0]))
    expected_edge = transform_points(edge.polyline, folded)

    for child in bend.children:
        child_edge = find_edge(child.flat, child.attach_edge_id)
        _check_attach_lengths(edge, child_edge, cfg)

        decision = _resolve_orientation(flat, edge, child, child_edge, cfg)
        state.decisions.append(decision)
        align = make_edge_alignment(
            edge.polyline, child_edge.polyline, decision.reverse_edge, cfg.eps, edge.id, child_edge.id
        )
        child_context = PlacementContext(
            matrix_3d=folded @ align,
            matrix_2d=context.matrix_2d @ shift_matrix @ align,
        )

        child_edge_world, mismatch = _edge_continuity(
            expected_edge, child_edge, child_context.matrix_3d, decision.reverse_edge
        )
        if mismatch > cfg.continuity_tolerance:
            raise ContinuityError(bend.id, flat.id, child.flat.id, mismatch)
        logger.debug(
            "Bend %s: %s -> %s allowance=%.6f reverse=%s mismatch=%.3e",
            bend.id, flat.id, child.flat.id, allowance, decision.reverse_edge, mismatch,
        )

        state.bends_3d.append(BendPlacement3D(
            bend=bend,
            parent_flat_id=flat.id,
            child_flat_id=child.flat.id,
            axis_start=axis_start_world,
            axis_end=axis_end_world,
            parent_edge_world=parent_edge_world_3d,
            child_edge_world=_as_vec3_tuple(child_edge_world),
            parent_normal=parent_normal,
            child_normal=to_vec3(transform_direction(child_context.matrix_3d, _UP)),
            angle_rad=angle_rad,
            mid_radius=bend.mid_radius,
        ))
        state.bends_2d.append(BendPlacement2D(
            bend=bend,
            parent_flat_id=flat.id,
            child_flat_id=child.flat.id,
            edge_world=parent_edge_world_2d,
            shift_dir=to_vec2(world_shift),
            allowance=allowance,
        ))

        _walk(child.flat, child_context, state)


def _check_attach_lengths(parent_edge: Edge, child_edge: Edge, config: UnfoldConfig) -> None:
    parent_length = polyline_length(parent_edge.polyline)
    child_length = polyline_length(child_edge.polyline)
    if abs(parent_length - child_length) > config.length_tolerance:
        raise EdgeLengthMismatchError(parent_edge.id, parent_length, child_edge.id, child_length)


def _resolve_orientation(
    parent_flat: Flat,
    parent_edge: Edge,
    child: BendChild,
    child_edge: Edge,
    config: UnfoldConfig,
) -> OrientationDecision:
    ids = dict(
        bend_id=parent_edge.bend.id,
        parent_flat_id=parent_flat.id,
        child_flat_id=child.flat.id,
        attach_edge_id=child_edge.id,
    )
    if isinstance(child.reverse_edge, bool):
        return OrientationDecision(reverse_edge=child.reverse_edge, inferred=False, **ids)

    score = score_edge_orientation(parent_flat, parent_edge, child.flat, child_edge, config.eps, config.probe_floor)
    return OrientationDecision(
        reverse_edge=score.reverse,
        inferred=True,
        score_forward=score.score_forward,
        score_reverse=score.score_reverse,
        tie_break=score.tie_break,
        **ids,
    )


def _edge_continuity(
    expected_edge: np.ndarray,
    child_edge: Edge,
    child_matrix_3d: np.ndarray,
    reverse_edge: bool,
) -> Tuple[np.ndarray, float]:
    """Folded child attach edge and its max deviation from the folded parent edge.

    The stored polyline order need not follow the alignment direction, so
    both traversals are compared and the closer one is kept.
    """
    raw = transform_points(child_edge.polyline, child_matrix_3d)
    seed = raw[::-1] if reverse_edge else raw
    flipped = seed[::-1]

    samples = max(2, len(expected_edge), len(seed))
    expected = resample_polyline(expected_edge, samples)
    mismatch_forward = max_pointwise_distance(expected, resample_polyline(seed, samples))
    mismatch_reverse = max_pointwise_distance(expected, resample_polyline(flipped, samples))
    if mismatch_reverse < mismatch_forward:
        return flipped, mismatch_reverse
    return seed, mismatch_forward


def _as_vec3_tuple(points: np.ndarray) -> tuple:
    return tuple(to_vec3(p) for p in points)
