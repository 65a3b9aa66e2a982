"""Contracts for the sheet-metal fold/unfold engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Polyline2D = List[Vec2]


@dataclass(frozen=True)
class UnfoldConfig:
    """Numeric tolerances for tree evaluation (all lengths in mm)."""

    eps: float = 1e-8  # degenerate length / area threshold
    length_tolerance: float = 1e-4  # parent vs child attach-edge length
    continuity_tolerance: float = 1e-5  # folded edge mismatch
    probe_floor: float = 1e-5  # minimum interior probe offset
    min_angle_deg: float = 1e-6  # smaller bend angles count as zero

    def validate(self) -> List[str]:
        """Return a list of problems (empty if valid)."""
        errors = []
        for name in ("eps", "length_tolerance", "continuity_tolerance", "probe_floor", "min_angle_deg"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                errors.append(f"{name} must be a positive finite value, got {value}")
        return errors


# ─── Input tree ──────────────────────────────────────────────────────────────


@dataclass(eq=False)
class BendChild:
    """A child flat hanging off a bend, attached by one of its edges.

    ``reverse_edge=None`` asks the evaluator to infer the orientation.
    """
    flat: "Flat"
    attach_edge_id: str
    reverse_edge: Optional[bool] = None


@dataclass(eq=False)
class Bend:
    """A fold joining a parent edge to one or more child flats."""
    id: str
    angle_deg: float      # signed; sign selects fold direction
    mid_radius: float     # bend radius at the sheet mid-plane
    k_factor: float       # neutral-axis position, not clamped
    children: List[BendChild] = field(default_factory=list)

    @property
    def angle_rad(self) -> float:
        return math.radians(self.angle_deg)


@dataclass(eq=False)
class Edge:
    """A named boundary polyline of a flat. Hinge edges carry a bend."""
    id: str
    polyline: Polyline2D
    bend: Optional[Bend] = None

    @property
    def is_hinge(self) -> bool:
        return self.bend is not None


@dataclass(eq=False)
class Flat:
    """A planar sheet segment in its own local 2D frame.

    Flats compare and hash by identity, so the same object reached twice
    while walking a tree is recognised as the same flat.
    """
    id: str
    outline: Polyline2D
    edges: List[Edge] = field(default_factory=list)
    holes: List[Polyline2D] = field(default_factory=list)
    label: Optional[str] = None

    def edge(self, edge_id: str) -> Optional[Edge]:
        for candidate in self.edges:
            if candidate.id == edge_id:
                return candidate
        return None


@dataclass
class SheetMetalTree:
    """Root flat plus the sheet thickness shared by every bend."""
    thickness: float
    root: Flat


# ─── Evaluation output ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class PlacementContext:
    """Accumulated local->world matrices for the flat being visited."""
    matrix_3d: np.ndarray
    matrix_2d: np.ndarray

    @classmethod
    def identity(cls) -> "PlacementContext":
        return cls(matrix_3d=np.eye(4), matrix_2d=np.eye(4))


@dataclass(frozen=True)
class FlatPlacement:
    """A flat and the 4x4 matrix placing its local outline in world space."""
    flat: Flat
    matrix: np.ndarray

    def transform(self, points: Sequence[Sequence[float]]) -> List[Vec3]:
        """Map local 2D points through this placement."""
        out = []
        for p in points:
            world = self.matrix @ np.array([float(p[0]), float(p[1]), 0.0, 1.0])
            out.append(to_vec3(world))
        return out

    def outline_world(self) -> List[Vec3]:
        return self.transform(self.flat.outline)


@dataclass(frozen=True)
class BendPlacement3D:
    """Folded-state geometry of one bend/child pair."""
    bend: Bend
    parent_flat_id: str
    child_flat_id: str
    axis_start: Vec3
    axis_end: Vec3
    parent_edge_world: Tuple[Vec3, ...]
    child_edge_world: Tuple[Vec3, ...]
    parent_normal: Vec3
    child_normal: Vec3
    angle_rad: float
    mid_radius: float


@dataclass(frozen=True)
class BendPlacement2D:
    """Flat-pattern geometry of one bend/child pair."""
    bend: Bend
    parent_flat_id: str
    child_flat_id: str
    edge_world: Tuple[Vec3, ...]
    shift_dir: Vec2
    allowance: float


@dataclass(frozen=True)
class OrientationDecision:
    """How the attach orientation of one child was chosen."""
    bend_id: str
    parent_flat_id: str
    child_flat_id: str
    attach_edge_id: str
    reverse_edge: bool
    inferred: bool
    score_forward: Optional[int] = None
    score_reverse: Optional[int] = None
    tie_break: bool = False


@dataclass
class SheetMetalEvaluation:
    """Folded and flattened placements produced by one evaluation."""
    flats_3d: List[FlatPlacement]
    flats_2d: List[FlatPlacement]
    bends_3d: List[BendPlacement3D]
    bends_2d: List[BendPlacement2D]
    orientation_decisions: List[OrientationDecision] = field(default_factory=list)

    def placement_3d(self, flat_id: str) -> Optional[FlatPlacement]:
        return _find_placement(self.flats_3d, flat_id)

    def placement_2d(self, flat_id: str) -> Optional[FlatPlacement]:
        return _find_placement(self.flats_2d, flat_id)


def _find_placement(placements: Sequence[FlatPlacement], flat_id: str) -> Optional[FlatPlacement]:
    for placement in placements:
        if placement.flat.id == flat_id:
            return placement
    return None


def frozen_matrix(matrix: np.ndarray) -> np.ndarray:
    """Read-only copy of a 4x4 matrix for output records."""
    out = np.array(matrix, dtype=float, copy=True)
    out.setflags(write=False)
    return out


def to_vec3(values: Sequence[float]) -> Vec3:
    return (float(values[0]), float(values[1]), float(values[2]))


def to_vec2(values: Sequence[float]) -> Vec2:
    return (float(values[0]), float(values[1]))
