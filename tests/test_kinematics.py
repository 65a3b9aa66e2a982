"""Tests for bend kinematics."""
import math

import numpy as np
import pytest

from sheetmetal_unfold.contracts import Edge
from sheetmetal_unfold.errors import DegenerateEdgeError
from sheetmetal_unfold.kinematics import (
    calculate_bend_allowance,
    local_bend_axis,
    local_bend_axis_signed,
    make_rotation_around_line,
    make_rotation_axis,
    make_translation,
    transform_direction,
    transform_point,
)


class TestBendAllowance:

    def test_half_k_factor_uses_mid_radius(self):
        angle = math.radians(90)
        assert calculate_bend_allowance(3.0, 2.0, 0.5, angle) == pytest.approx(angle * 3.0)

    def test_k_factor_moves_neutral_axis(self):
        angle = math.radians(60)
        expected = angle * (5.0 + (0.4 - 0.5) * 2.0)
        assert calculate_bend_allowance(5.0, 2.0, 0.4, angle) == pytest.approx(expected)

    def test_sign_of_angle_ignored(self):
        a = calculate_bend_allowance(5.0, 2.0, 0.4, math.radians(90))
        b = calculate_bend_allowance(5.0, 2.0, 0.4, math.radians(-90))
        assert a == pytest.approx(b)


class TestBendAxis:

    def test_positive_angle_axis_below_sheet(self):
        edge = Edge(id="e", polyline=[(10.0, 0.0), (10.0, 10.0)])
        axis = local_bend_axis_signed(edge, 2.0, math.radians(45))
        assert axis.start == pytest.approx([10.0, 0.0, -2.0])
        assert axis.direction == pytest.approx([0.0, 1.0, 0.0])
        assert axis.length == pytest.approx(10.0)

    def test_negative_angle_axis_above_sheet(self):
        edge = Edge(id="e", polyline=[(10.0, 0.0), (10.0, 10.0)])
        axis = local_bend_axis_signed(edge, 2.0, math.radians(-45))
        assert axis.start[2] == pytest.approx(2.0)

    def test_canonical_flip_keeps_segment(self):
        edge = Edge(id="e", polyline=[(0.0, 0.0), (4.0, 0.0)])
        axis = local_bend_axis(edge, 1.0)
        flipped = axis.canonical(interior_on_left=False)
        assert flipped.direction == pytest.approx([-1.0, 0.0, 0.0])
        assert flipped.start == pytest.approx(axis.end)
        assert flipped.end == pytest.approx(axis.start)
        assert axis.canonical(interior_on_left=True) is axis

    def test_degenerate_edge_raises(self):
        with pytest.raises(DegenerateEdgeError):
            local_bend_axis(Edge(id="e", polyline=[(1.0, 1.0), (1.0, 1.0)]), 1.0)


class TestRotations:

    def test_rotation_axis_right_handed(self):
        m = make_rotation_axis(np.array([0.0, 0.0, 1.0]), math.pi / 2)
        assert transform_point(m, [1.0, 0.0, 0.0]) == pytest.approx([0.0, 1.0, 0.0], abs=1e-12)

    def test_points_on_line_are_fixed(self):
        origin = np.array([10.0, 0.0, -0.5])
        m = make_rotation_around_line(origin, np.array([0.0, 1.0, 0.0]), 1.1)
        assert transform_point(m, [10.0, 7.0, -0.5]) == pytest.approx([10.0, 7.0, -0.5])

    def test_quarter_turn_about_offset_line(self):
        origin = np.array([10.0, 0.0, -0.5])
        m = make_rotation_around_line(origin, np.array([0.0, 1.0, 0.0]), math.pi / 2)
        assert transform_point(m, [10.0, 3.0, 0.0]) == pytest.approx([10.5, 3.0, -0.5])

    def test_translation_and_direction(self):
        m = make_translation(1.0, 2.0, 3.0)
        assert transform_point(m, [0.0, 0.0]) == pytest.approx([1.0, 2.0, 3.0])
        assert transform_direction(m, np.array([0.0, 0.0, 2.0])) == pytest.approx([0.0, 0.0, 1.0])
