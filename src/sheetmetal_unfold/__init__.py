"""Public API for the sheet-metal fold/unfold engine."""

from sheetmetal_unfold.contracts import (
    Bend,
    BendChild,
    BendPlacement2D,
    BendPlacement3D,
    Edge,
    Flat,
    FlatPlacement,
    OrientationDecision,
    SheetMetalEvaluation,
    SheetMetalTree,
    UnfoldConfig,
)
from sheetmetal_unfold.errors import (
    ContinuityError,
    CycleError,
    DegenerateEdgeError,
    EdgeLengthMismatchError,
    GeometricConsistencyError,
    MissingEdgeError,
    SheetMetalError,
    SheetMetalValidationError,
)
from sheetmetal_unfold.evaluate import evaluate_sheet_metal
from sheetmetal_unfold.kinematics import calculate_bend_allowance

__all__ = [
    "Bend",
    "BendChild",
    "BendPlacement2D",
    "BendPlacement3D",
    "ContinuityError",
    "CycleError",
    "DegenerateEdgeError",
    "Edge",
    "EdgeLengthMismatchError",
    "Flat",
    "FlatPlacement",
    "GeometricConsistencyError",
    "MissingEdgeError",
    "OrientationDecision",
    "SheetMetalError",
    "SheetMetalEvaluation",
    "SheetMetalTree",
    "SheetMetalValidationError",
    "UnfoldConfig",
    "calculate_bend_allowance",
    "evaluate_sheet_metal",
]
