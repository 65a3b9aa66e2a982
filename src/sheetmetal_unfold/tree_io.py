"""Dict/JSON interchange for sheet-metal trees and evaluation results.

Tree dicts use the camelCase keys of the feature layer::

    {"thickness": 2, "root": {"id": "base", "outline": [[0, 0], ...],
     "holes": [[[x, y], ...]], "edges": [{"id": "e1", "polyline": [...],
     "bend": {"id": "b1", "angleDeg": 90, "midRadius": 1, "kFactor": 0.5,
     "children": [{"flat": {...}, "attachEdgeId": "e1",
     "reverseEdge": null}]}}]}}
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np

from sheetmetal_unfold.contracts import (
    Bend,
    BendChild,
    Edge,
    Flat,
    SheetMetalEvaluation,
    SheetMetalTree,
    to_vec2,
)
from sheetmetal_unfold.errors import CycleError, SheetMetalValidationError

EVALUATION_SCHEMA_VERSION = "sheetmetal_unfold.evaluation.v1"


def tree_from_dict(payload: Mapping[str, Any]) -> SheetMetalTree:
    """Build a tree from its dict form. Missing keys raise SheetMetalValidationError."""
    thickness = _number(payload, "thickness", "tree")
    root = _flat_from_dict(_require(payload, "root", "tree"))
    return SheetMetalTree(thickness=thickness, root=root)


def tree_to_dict(tree: SheetMetalTree) -> Dict[str, Any]:
    """Dict form of *tree*. A flat reached again below itself raises CycleError."""
    return {"thickness": tree.thickness, "root": _flat_to_dict(tree.root, [], set())}


def load_tree(path: str) -> SheetMetalTree:
    with Path(path).open("r", encoding="utf-8") as handle:
        try:
            payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise SheetMetalValidationError(f"Tree file {path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SheetMetalValidationError(f"Tree file {path} must contain a JSON object.")
    return tree_from_dict(payload)


def save_tree(tree: SheetMetalTree, path: str) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(tree_to_dict(tree), indent=2), encoding="utf-8")
    return out


def evaluation_to_payload(evaluation: SheetMetalEvaluation) -> Dict[str, Any]:
    """JSON-safe summary of an evaluation (matrices as nested lists)."""
    return {
        "schema_version": EVALUATION_SCHEMA_VERSION,
        "flats_3d": [
            {"flat_id": p.flat.id, "label": p.flat.label, "matrix": _matrix_list(p.matrix)}
            for p in evaluation.flats_3d
        ],
        "flats_2d": [
            {"flat_id": p.flat.id, "label": p.flat.label, "matrix": _matrix_list(p.matrix)}
            for p in evaluation.flats_2d
        ],
        "bends_3d": [
            {
                "bend_id": b.bend.id,
                "parent_flat_id": b.parent_flat_id,
                "child_flat_id": b.child_flat_id,
                "axis_start": list(b.axis_start),
                "axis_end": list(b.axis_end),
                "parent_edge_world": [list(p) for p in b.parent_edge_world],
                "child_edge_world": [list(p) for p in b.child_edge_world],
                "parent_normal": list(b.parent_normal),
                "child_normal": list(b.child_normal),
                "angle_rad": b.angle_rad,
                "mid_radius": b.mid_radius,
            }
            for b in evaluation.bends_3d
        ],
        "bends_2d": [
            {
                "bend_id": b.bend.id,
                "parent_flat_id": b.parent_flat_id,
                "child_flat_id": b.child_flat_id,
                "edge_world": [list(p) for p in b.edge_world],
                "shift_dir": list(b.shift_dir),
                "allowance": b.allowance,
            }
            for b in evaluation.bends_2d
        ],
        "orientation_decisions": [
            {
                "bend_id": d.bend_id,
                "parent_flat_id": d.parent_flat_id,
                "child_flat_id": d.child_flat_id,
                "attach_edge_id": d.attach_edge_id,
                "reverse_edge": d.reverse_edge,
                "inferred": d.inferred,
                "score_forward": d.score_forward,
                "score_reverse": d.score_reverse,
                "tie_break": d.tie_break,
            }
            for d in evaluation.orientation_decisions
        ],
    }


# ─── Internal helpers ────────────────────────────────────────────────────────

def _require(payload: Any, key: str, where: str) -> Any:
    if not isinstance(payload, Mapping):
        raise SheetMetalValidationError(f"Expected an object for {where}, got {type(payload).__name__}.")
    if key not in payload or payload[key] is None:
        raise SheetMetalValidationError(f'Missing required key "{key}" in {where}.')
    return payload[key]


def _number(payload: Any, key: str, where: str) -> float:
    value = _require(payload, key, where)
    if isinstance(value, bool):
        raise SheetMetalValidationError(f'Key "{key}" in {where} must be a number, got {value!r}.')
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise SheetMetalValidationError(f'Key "{key}" in {where} must be a number, got {value!r}.') from exc


def _points(raw: Any, where: str) -> List:
    try:
        return [to_vec2(p) for p in raw]
    except (TypeError, ValueError, IndexError) as exc:
        raise SheetMetalValidationError(f"Invalid point list in {where}: {exc}") from exc


def _flat_from_dict(payload: Any) -> Flat:
    flat_id = str(_require(payload, "id", "flat"))
    where = f'flat "{flat_id}"'
    outline = _points(_require(payload, "outline", where), where)

    holes = []
    for hole in payload.get("holes") or []:
        loop = hole.get("outline") if isinstance(hole, Mapping) else hole
        if loop:
            holes.append(_points(loop, f"{where} hole"))

    edges = [_edge_from_dict(e, flat_id) for e in payload.get("edges") or []]
    label = payload.get("label")
    return Flat(id=flat_id, outline=outline, edges=edges, holes=holes, label=label)


def _edge_from_dict(payload: Any, flat_id: str) -> Edge:
    edge_id = str(_require(payload, "id", f'edge of flat "{flat_id}"'))
    where = f'edge "{edge_id}" of flat "{flat_id}"'
    polyline = _points(_require(payload, "polyline", where), where)
    bend_payload = payload.get("bend")
    bend = _bend_from_dict(bend_payload, where) if bend_payload else None
    return Edge(id=edge_id, polyline=polyline, bend=bend)


def _bend_from_dict(payload: Any, where: str) -> Bend:
    bend_id = str(_require(payload, "id", f"bend on {where}"))
    bend_where = f'bend "{bend_id}"'
    children = []
    for child in _require(payload, "children", bend_where):
        reverse = child.get("reverseEdge") if isinstance(child, Mapping) else None
        children.append(BendChild(
            flat=_flat_from_dict(_require(child, "flat", f"child of {bend_where}")),
            attach_edge_id=str(_require(child, "attachEdgeId", f"child of {bend_where}")),
            reverse_edge=reverse if isinstance(reverse, bool) else None,
        ))
    return Bend(
        id=bend_id,
        angle_deg=_number(payload, "angleDeg", bend_where),
        mid_radius=_number(payload, "midRadius", bend_where),
        k_factor=_number(payload, "kFactor", bend_where),
        children=children,
    )


def _flat_to_dict(flat: Flat, path: List[str], active: set) -> Dict[str, Any]:
    if flat in active:
        raise CycleError(path + [flat.id])
    active.add(flat)
    path.append(flat.id)
    out: Dict[str, Any] = {
        "id": flat.id,
        "outline": [list(p) for p in flat.outline],
        "edges": [_edge_to_dict(e, path, active) for e in flat.edges],
    }
    path.pop()
    active.discard(flat)
    if flat.holes:
        out["holes"] = [[list(p) for p in hole] for hole in flat.holes]
    if flat.label is not None:
        out["label"] = flat.label
    return out


def _edge_to_dict(edge: Edge, path: List[str], active: set) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": edge.id, "polyline": [list(p) for p in edge.polyline]}
    if edge.bend is not None:
        bend = edge.bend
        out["bend"] = {
            "id": bend.id,
            "angleDeg": bend.angle_deg,
            "midRadius": bend.mid_radius,
            "kFactor": bend.k_factor,
            "children": [
                {
                    "flat": _flat_to_dict(child.flat, path, active),
                    "attachEdgeId": child.attach_edge_id,
                    "reverseEdge": child.reverse_edge,
                }
                for child in bend.children
            ],
        }
    return out


def _matrix_list(matrix: np.ndarray) -> List[List[float]]:
    return [[float(v) for v in row] for row in np.asarray(matrix)]
