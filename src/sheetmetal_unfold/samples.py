"""Built-in sample parts used to exercise the fold/unfold engine.

Each scenario is a small multi-bend part with irregular outlines, mixed bend
radii and both fold directions. Child flats are drawn with their attach edge
along +X from the origin; orientation is left for the evaluator to infer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sheetmetal_unfold.contracts import Bend, BendChild, Edge, Flat, SheetMetalTree

Point = Tuple[float, float]


@dataclass(frozen=True)
class SampleScenario:
    id: str
    label: str
    description: str
    builder: Callable[[], SheetMetalTree]

    def build_tree(self) -> SheetMetalTree:
        """Fresh tree; callers may mutate it freely."""
        return self.builder()


def _edge(edge_id: str, a: Point, b: Point, bend: Optional[Bend] = None) -> Edge:
    return Edge(id=edge_id, polyline=[a, b], bend=bend)


def _bend(bend_id: str, angle_deg: float, mid_radius: float, k_factor: float,
          child: Flat, attach_edge_id: str) -> Bend:
    return Bend(
        id=bend_id,
        angle_deg=angle_deg,
        mid_radius=mid_radius,
        k_factor=k_factor,
        children=[BendChild(flat=child, attach_edge_id=attach_edge_id)],
    )


def _flat(flat_id: str, label: str, outline: Sequence[Point], edges: List[Edge]) -> Flat:
    return Flat(id=flat_id, label=label, outline=list(outline), edges=edges)


def _attached_flat(prefix: str, label: str, attach_len: float,
                   outline_rest: Sequence[Point], edge_names: Sequence[str],
                   bends: Optional[Dict[str, Bend]] = None) -> Flat:
    """Flat whose first edge (0,0)->(attach_len,0) is the attach edge.

    *edge_names* name the remaining outline segments in order, starting at
    (attach_len, 0).
    """
    bends = bends or {}
    outline = [(0.0, 0.0), (attach_len, 0.0)] + list(outline_rest)
    edges = [_edge(f"{prefix}-attach", outline[0], outline[1])]
    for i, name in enumerate(edge_names, start=1):
        a = outline[i]
        b = outline[(i + 1) % len(outline)]
        edges.append(_edge(f"{prefix}-{name}", a, b, bends.get(name)))
    return _flat(prefix, label, outline, edges)


def _baseline_channel() -> SheetMetalTree:
    return_lip = _attached_flat(
        "s1-return-lip", "Return Lip", math.hypot(150 - 12, 58 - 48),
        [(132, 16), (10, 20)], ["right", "top", "left"],
    )
    right_wall = _attached_flat(
        "s1-right-wall", "Right Wall", math.hypot(230 - 218, 144),
        [(150, 48), (12, 58)], ["right", "top", "left"],
        bends={"top": _bend("s1-return-bend", -100, 3, 0.39, return_lip, "s1-return-lip-attach")},
    )
    left_wall = _attached_flat(
        "s1-left-wall", "Left Wall", math.hypot(22, 132),
        [(122, 44), (-6, 36)], ["right", "top", "left"],
    )
    root = _flat("s1-base", "Base", [(0, 0), (230, 0), (218, 144), (22, 132)], [
        _edge("s1-base-bottom", (0, 0), (230, 0)),
        _edge("s1-base-right", (230, 0), (218, 144),
              _bend("s1-right-bend", 90, 8, 0.4, right_wall, "s1-right-wall-attach")),
        _edge("s1-base-top", (218, 144), (22, 132)),
        _edge("s1-base-left", (22, 132), (0, 0),
              _bend("s1-left-bend", 90, 8, 0.4, left_wall, "s1-left-wall-attach")),
    ])
    return SheetMetalTree(thickness=2.0, root=root)


def _skew_bracket() -> SheetMetalTree:
    right_wing = _attached_flat(
        "s2-right-wing", "Right Wing", math.hypot(20, 80),
        [(76, 52), (-12, 36)], ["right", "top", "left"],
    )
    left_wing = _attached_flat(
        "s2-left-wing", "Left Wing", 120.0,
        [(132, 40), (16, 58), (-10, 22)], ["right", "top", "tail", "in"],
    )
    root = _flat("s2-root", "Skew Plate", [(0, 0), (240, 0), (260, 80), (190, 150), (0, 120)], [
        _edge("s2-bottom", (0, 0), (240, 0)),
        _edge("s2-right-lower", (240, 0), (260, 80),
              _bend("s2-right-bend", 82, 5, 0.41, right_wing, "s2-right-wing-attach")),
        _edge("s2-right-upper", (260, 80), (190, 150)),
        _edge("s2-top-left", (190, 150), (0, 120)),
        _edge("s2-left", (0, 120), (0, 0),
              _bend("s2-left-bend", -94, 10, 0.42, left_wing, "s2-left-wing-attach")),
    ])
    return SheetMetalTree(thickness=1.8, root=root)


def _hex_step() -> SheetMetalTree:
    return_flap = _attached_flat(
        "s3-return", "Return Flap", math.hypot(72 + 10, 70 - 62),
        [(74, 22), (-4, 18)], ["right", "top", "left"],
    )
    short_wall = _attached_flat(
        "s3-wall", "Short Wall", math.hypot(30, 50),
        [(72, 70), (-10, 62)], ["right", "top", "left"],
        bends={"top": _bend("s3-return-bend", 110, 2, 0.37, return_flap, "s3-return-attach")},
    )
    root = _flat("s3-root", "Hex Panel",
                 [(0, 0), (220, 0), (250, 50), (240, 130), (80, 160), (0, 110)], [
        _edge("s3-bottom", (0, 0), (220, 0)),
        _edge("s3-knee", (220, 0), (250, 50),
              _bend("s3-wall-bend", -88, 14, 0.43, short_wall, "s3-wall-attach")),
        _edge("s3-right", (250, 50), (240, 130)),
        _edge("s3-top-right", (240, 130), (80, 160)),
        _edge("s3-top-left", (80, 160), (0, 110)),
        _edge("s3-left", (0, 110), (0, 0)),
    ])
    return SheetMetalTree(thickness=2.2, root=root)


def _dogleg_strip() -> SheetMetalTree:
    ear_len = math.hypot(20, 50)
    right_ear = _attached_flat(
        "s4-right-ear", "Right Ear", ear_len,
        [(44, 58), (-10, 52)], ["front", "top", "back"],
    )
    left_ear = _attached_flat(
        "s4-left-ear", "Left Ear", ear_len,
        [(58, 46), (-8, 34)], ["front", "top", "back"],
    )
    root = _flat("s4-root", "Dogleg Strip",
                 [(0, 0), (260, 0), (280, 50), (260, 100), (0, 100), (-20, 50)], [
        _edge("s4-bottom", (0, 0), (260, 0)),
        _edge("s4-right-front", (260, 0), (280, 50),
              _bend("s4-right-bend", 75, 12, 0.44, right_ear, "s4-right-ear-attach")),
        _edge("s4-right-back", (280, 50), (260, 100)),
        _edge("s4-top", (260, 100), (0, 100)),
        _edge("s4-left-back", (0, 100), (-20, 50),
              _bend("s4-left-bend", -112, 4, 0.38, left_ear, "s4-left-ear-attach")),
        _edge("s4-left-front", (-20, 50), (0, 0)),
    ])
    return SheetMetalTree(thickness=1.5, root=root)


SAMPLE_SCENARIOS: Dict[str, SampleScenario] = {
    s.id: s for s in (
        SampleScenario(
            "baseline-channel", "Baseline Channel",
            "Two side bends plus a return lip. Mixed radii 8mm and 3mm.",
            _baseline_channel,
        ),
        SampleScenario(
            "skew-bracket", "Skew Bracket",
            "Irregular pentagon base with opposing bends and different radii (5mm / 10mm).",
            _skew_bracket,
        ),
        SampleScenario(
            "hex-step", "Hex Step",
            "Hex-like base with a large-radius primary bend and a tight secondary return.",
            _hex_step,
        ),
        SampleScenario(
            "dogleg-strip", "Dogleg Strip",
            "Six-sided strip with asymmetric end bends: wide-radius + tight-radius comparison.",
            _dogleg_strip,
        ),
    )
}

DEFAULT_SCENARIO_ID = "baseline-channel"


def get_sample_scenario(scenario_id: str = DEFAULT_SCENARIO_ID) -> SampleScenario:
    scenario = SAMPLE_SCENARIOS.get(scenario_id)
    if scenario is None:
        raise ValueError(
            f"Unknown sample scenario {scenario_id!r}; expected one of {sorted(SAMPLE_SCENARIOS)}"
        )
    return scenario


def sample_tree(scenario_id: str = DEFAULT_SCENARIO_ID) -> SheetMetalTree:
    return get_sample_scenario(scenario_id).build_tree()
