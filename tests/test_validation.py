"""Tests for input validation."""
import math

import pytest

from conftest import rect_flat
from sheetmetal_unfold.contracts import Bend, BendChild, Edge, Flat, UnfoldConfig
from sheetmetal_unfold.errors import DegenerateEdgeError, MissingEdgeError, SheetMetalValidationError
from sheetmetal_unfold.validation import find_edge, validate_config, validate_flat, validate_thickness


def _hinged(**bend_kwargs):
    params = dict(id="b", angle_deg=90.0, mid_radius=1.0, k_factor=0.5,
                  children=[BendChild(flat=rect_flat("child", 10.0, 3.0), attach_edge_id="child-bottom")])
    params.update(bend_kwargs)
    return rect_flat("parent", 10.0, 10.0, hinge_edges={"right": Bend(**params)})


class TestThicknessAndConfig:

    @pytest.mark.parametrize("value", [0.0, -1.0, math.inf, math.nan, None])
    def test_bad_thickness(self, value):
        with pytest.raises(SheetMetalValidationError):
            validate_thickness(value)

    def test_good_thickness(self):
        validate_thickness(0.8)

    def test_config_problems_reported(self):
        config = UnfoldConfig(eps=-1.0, continuity_tolerance=0.0)
        problems = config.validate()
        assert len(problems) == 2
        with pytest.raises(SheetMetalValidationError, match="eps"):
            validate_config(config)

    def test_default_config_valid(self):
        assert UnfoldConfig().validate() == []


class TestFlatValidation:

    def test_valid_flat_passes(self):
        validate_flat(_hinged())

    def test_outline_needs_three_points(self):
        flat = Flat(id="f", outline=[(0, 0), (1, 0)], edges=[])
        with pytest.raises(SheetMetalValidationError) as exc:
            validate_flat(flat)
        assert exc.value.flat_id == "f"

    def test_duplicate_edge_ids(self):
        flat = rect_flat("f", 5.0, 5.0)
        flat.edges[1].id = flat.edges[0].id
        with pytest.raises(SheetMetalValidationError, match="duplicate edge id"):
            validate_flat(flat)

    def test_short_polyline(self):
        flat = rect_flat("f", 5.0, 5.0)
        flat.edges.append(Edge(id="stub", polyline=[(0.0, 0.0)]))
        with pytest.raises(SheetMetalValidationError) as exc:
            validate_flat(flat)
        assert exc.value.edge_id == "stub"

    def test_zero_length_edge(self):
        flat = rect_flat("f", 5.0, 5.0)
        flat.edges.append(Edge(id="dot", polyline=[(1.0, 1.0), (1.0, 1.0)]))
        with pytest.raises(DegenerateEdgeError, match="zero length") as exc:
            validate_flat(flat)
        assert exc.value.flat_id == "f"
        assert exc.value.edge_id == "dot"


class TestBendValidation:

    @pytest.mark.parametrize("angle", [0.0, 1e-9, math.nan, math.inf])
    def test_bad_angle(self, angle):
        with pytest.raises(SheetMetalValidationError) as exc:
            validate_flat(_hinged(angle_deg=angle))
        assert exc.value.bend_id == "b"
        assert exc.value.edge_id == "parent-right"

    @pytest.mark.parametrize("radius", [0.0, -2.0, math.nan])
    def test_bad_radius(self, radius):
        with pytest.raises(SheetMetalValidationError, match="midRadius"):
            validate_flat(_hinged(mid_radius=radius))

    def test_non_finite_k_factor(self):
        with pytest.raises(SheetMetalValidationError, match="kFactor"):
            validate_flat(_hinged(k_factor=math.inf))

    def test_k_factor_outside_unit_range_allowed(self):
        validate_flat(_hinged(k_factor=1.7))
        validate_flat(_hinged(k_factor=-0.3))

    def test_bend_needs_children(self):
        with pytest.raises(SheetMetalValidationError, match="at least one child"):
            validate_flat(_hinged(children=[]))

    def test_negative_angle_allowed(self):
        validate_flat(_hinged(angle_deg=-135.0))


class TestFindEdge:

    def test_found(self):
        flat = rect_flat("f", 5.0, 5.0)
        assert find_edge(flat, "f-top").id == "f-top"

    def test_missing(self):
        flat = rect_flat("f", 5.0, 5.0)
        with pytest.raises(MissingEdgeError) as exc:
            find_edge(flat, "nope")
        assert exc.value.flat_id == "f"
        assert exc.value.edge_id == "nope"
