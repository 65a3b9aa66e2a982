"""
Shared test fixtures for the sheet-metal fold/unfold engine.
"""
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sheetmetal_unfold.contracts import Bend, BendChild, Edge, Flat, SheetMetalTree


def rect_flat(flat_id, width, height, hinge_edges=None, holes=None):
    """Axis-aligned rectangle with edges bottom/right/top/left, ids prefixed by *flat_id*.

    *hinge_edges* maps an edge suffix ("bottom", "right", ...) to a Bend.
    """
    hinge_edges = hinge_edges or {}
    pts = [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]
    names = ["bottom", "right", "top", "left"]
    edges = [
        Edge(id=f"{flat_id}-{name}", polyline=[pts[i], pts[(i + 1) % 4]], bend=hinge_edges.get(name))
        for i, name in enumerate(names)
    ]
    return Flat(id=flat_id, outline=pts, edges=edges, holes=holes or [])


@pytest.fixture
def make_ab_tree():
    """Factory for the two-flat reference part.

    A is a 10x10 square hinged along its right edge (10,0)->(10,10); B is a
    10x4 strip attached by its bottom edge (0,0)->(10,0).
    """
    def _make(
        angle_deg=90.0,
        mid_radius=0.5,
        k_factor=0.5,
        thickness=1.0,
        reverse_edge=None,
        child_attach_polyline=None,
    ):
        child = rect_flat("B", 10.0, 4.0)
        if child_attach_polyline is not None:
            child.edges[0].polyline = list(child_attach_polyline)
        bend = Bend(
            id="b1",
            angle_deg=angle_deg,
            mid_radius=mid_radius,
            k_factor=k_factor,
            children=[BendChild(flat=child, attach_edge_id="B-bottom", reverse_edge=reverse_edge)],
        )
        root = rect_flat("A", 10.0, 10.0, hinge_edges={"right": bend})
        return SheetMetalTree(thickness=thickness, root=root)

    return _make


@pytest.fixture
def ab_tree(make_ab_tree):
    return make_ab_tree()


@pytest.fixture
def single_flat_tree():
    return SheetMetalTree(thickness=2.0, root=rect_flat("solo", 50.0, 20.0))
