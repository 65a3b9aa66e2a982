"""Input invariants for sheet-metal trees.

Checks run once per flat, the first time the evaluator reaches it.
"""

from __future__ import annotations

import math
from typing import Optional

from sheetmetal_unfold.contracts import Bend, Edge, Flat, UnfoldConfig
from sheetmetal_unfold.errors import DegenerateEdgeError, MissingEdgeError, SheetMetalValidationError
from sheetmetal_unfold.planar import polyline_length


def validate_config(config: UnfoldConfig) -> None:
    problems = config.validate()
    if problems:
        raise SheetMetalValidationError("Invalid unfold config: " + "; ".join(problems))


def validate_thickness(thickness: float) -> None:
    if not _is_finite(thickness) or thickness <= 0:
        raise SheetMetalValidationError(
            f"Sheet thickness must be a finite value greater than zero, got {thickness!r}."
        )


def validate_flat(flat: Flat, config: Optional[UnfoldConfig] = None) -> None:
    """Raise SheetMetalValidationError if *flat* or its bends are malformed."""
    if config is None:
        config = UnfoldConfig()

    if len(flat.outline) < 3:
        raise SheetMetalValidationError(
            f'Flat "{flat.id}" outline must contain at least 3 points.',
            flat_id=flat.id,
        )

    seen = set()
    for edge in flat.edges:
        if edge.id in seen:
            raise SheetMetalValidationError(
                f'Flat "{flat.id}" contains duplicate edge id "{edge.id}".',
                flat_id=flat.id,
                edge_id=edge.id,
            )
        seen.add(edge.id)
        _validate_edge(flat, edge, config)
        if edge.bend is not None:
            _validate_bend(flat, edge, edge.bend, config)


def _validate_edge(flat: Flat, edge: Edge, config: UnfoldConfig) -> None:
    if len(edge.polyline) < 2:
        raise SheetMetalValidationError(
            f'Edge "{edge.id}" on flat "{flat.id}" must contain at least 2 polyline points.',
            flat_id=flat.id,
            edge_id=edge.id,
        )
    if polyline_length(edge.polyline) <= config.eps:
        raise DegenerateEdgeError(
            f'Edge "{edge.id}" on flat "{flat.id}" has zero length.',
            flat_id=flat.id,
            edge_id=edge.id,
        )


def _validate_bend(flat: Flat, edge: Edge, bend: Bend, config: UnfoldConfig) -> None:
    ids = dict(flat_id=flat.id, edge_id=edge.id, bend_id=bend.id)
    if not _is_finite(bend.angle_deg) or abs(bend.angle_deg) < config.min_angle_deg:
        raise SheetMetalValidationError(
            f'Bend "{bend.id}" must have a non-zero finite angleDeg, got {bend.angle_deg!r}.', **ids
        )
    if not _is_finite(bend.mid_radius) or bend.mid_radius <= 0:
        raise SheetMetalValidationError(
            f'Bend "{bend.id}" must have midRadius > 0, got {bend.mid_radius!r}.', **ids
        )
    # k-factor is not clamped to [0, 1]
    if not _is_finite(bend.k_factor):
        raise SheetMetalValidationError(
            f'Bend "{bend.id}" must have a finite kFactor, got {bend.k_factor!r}.', **ids
        )
    if not bend.children:
        raise SheetMetalValidationError(
            f'Bend "{bend.id}" must have at least one child flat.', **ids
        )


def find_edge(flat: Flat, edge_id: str) -> Edge:
    edge = flat.edge(edge_id)
    if edge is None:
        raise MissingEdgeError(flat.id, edge_id)
    return edge


def _is_finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False
