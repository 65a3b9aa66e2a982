"""Exception hierarchy for sheet-metal tree evaluation.

Every failure aborts the whole evaluation. Exceptions carry the offending
identifiers and measured values so the feature layer can report them.
"""

from __future__ import annotations

from typing import Optional, Sequence


class SheetMetalError(Exception):
    """Base exception for sheet-metal evaluation errors."""
    pass


class SheetMetalValidationError(SheetMetalError, ValueError):
    """Input tree violates a structural or numeric invariant."""

    def __init__(
        self,
        message: str,
        *,
        flat_id: Optional[str] = None,
        edge_id: Optional[str] = None,
        bend_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.flat_id = flat_id
        self.edge_id = edge_id
        self.bend_id = bend_id


class DegenerateEdgeError(SheetMetalValidationError):
    """Edge has (near) zero length and cannot be aligned or offset."""
    pass


class CycleError(SheetMetalError):
    """A flat was reached again while it is still on the active path."""

    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__(f"Cycle detected in flat tree: {' -> '.join(self.path)}")


class MissingEdgeError(SheetMetalError):
    """A bend child names an attach edge the child flat does not have."""

    def __init__(self, flat_id: str, edge_id: str):
        self.flat_id = flat_id
        self.edge_id = edge_id
        super().__init__(f'Flat "{flat_id}" is missing edge "{edge_id}".')


class GeometricConsistencyError(SheetMetalError):
    """Folded and flattened derivations disagree."""
    pass


class EdgeLengthMismatchError(GeometricConsistencyError):
    """Parent and child attach edges differ in length beyond tolerance."""

    def __init__(
        self,
        parent_edge_id: str,
        parent_length: float,
        child_edge_id: str,
        child_length: float,
    ):
        self.parent_edge_id = parent_edge_id
        self.parent_length = parent_length
        self.child_edge_id = child_edge_id
        self.child_length = child_length
        super().__init__(
            f'Attach edge length mismatch: parent edge "{parent_edge_id}" '
            f"({parent_length:.4f}) vs child edge \"{child_edge_id}\" ({child_length:.4f})."
        )


class ContinuityError(GeometricConsistencyError):
    """Child attach edge does not land on the folded parent edge."""

    def __init__(self, bend_id: str, parent_flat_id: str, child_flat_id: str, mismatch: float):
        self.bend_id = bend_id
        self.parent_flat_id = parent_flat_id
        self.child_flat_id = child_flat_id
        self.mismatch = mismatch
        super().__init__(
            f'Bend "{bend_id}" failed continuity check between "{parent_flat_id}" '
            f'and "{child_flat_id}" (edge mismatch {mismatch:.3e}).'
        )
