"""Tests for edge alignment and attach-orientation inference."""
import numpy as np
import pytest

from conftest import rect_flat
from sheetmetal_unfold.alignment import infer_reverse_edge, make_edge_alignment, score_edge_orientation
from sheetmetal_unfold.contracts import Edge, Flat
from sheetmetal_unfold.errors import DegenerateEdgeError
from sheetmetal_unfold.planar import transform_points_2d


class TestEdgeAlignment:

    def test_forward_maps_start_to_start(self):
        m = make_edge_alignment([(10, 0), (10, 10)], [(0, 0), (10, 0)], reverse_child=False)
        out = transform_points_2d([(0, 0), (10, 0)], m)
        assert out == pytest.approx(np.array([[10, 0], [10, 10]]))

    def test_reverse_maps_child_end_to_parent_start(self):
        m = make_edge_alignment([(10, 0), (10, 10)], [(0, 0), (10, 0)], reverse_child=True)
        out = transform_points_2d([(10, 0), (0, 0)], m)
        assert out == pytest.approx(np.array([[10, 0], [10, 10]]))

    def test_is_rigid(self):
        m = make_edge_alignment([(1, 2), (4, 6)], [(-3, 1), (2, 1)], reverse_child=False)
        rot = m[:3, :3]
        assert rot @ rot.T == pytest.approx(np.eye(3))
        assert np.linalg.det(rot) == pytest.approx(1.0)

    def test_only_chord_matters(self):
        straight = make_edge_alignment([(0, 0), (5, 0)], [(0, 0), (0, 5)], False)
        bent = make_edge_alignment([(0, 0), (5, 0)], [(0, 0), (3, 1), (0, 5)], False)
        assert straight == pytest.approx(bent)

    def test_degenerate_raises(self):
        with pytest.raises(DegenerateEdgeError):
            make_edge_alignment([(0, 0), (5, 0)], [(1, 1), (1, 1)], False)

    def test_degenerate_error_names_edge(self):
        with pytest.raises(DegenerateEdgeError, match="tab-attach") as exc:
            make_edge_alignment(
                [(0, 0), (5, 0)], [(2, 2), (2, 2)], False,
                parent_edge_id="base-right", child_edge_id="tab-attach",
            )
        assert exc.value.edge_id == "tab-attach"

        with pytest.raises(DegenerateEdgeError) as exc:
            make_edge_alignment([(3, 3), (3, 3)], [(0, 0), (5, 0)], False, parent_edge_id="base-right")
        assert exc.value.edge_id == "base-right"


class TestOrientationInference:

    def test_child_placed_away_from_parent(self):
        parent = rect_flat("A", 10.0, 10.0)
        child = rect_flat("B", 10.0, 4.0)
        score = score_edge_orientation(parent, parent.edge("A-right"), child, child.edge("B-bottom"))
        assert score.score_forward == 1
        assert score.score_reverse == -1
        assert score.reverse is True
        assert not score.tie_break

    def test_child_below_attach_edge_needs_no_reverse(self):
        parent = rect_flat("A", 10.0, 10.0)
        child = Flat(
            id="C",
            outline=[(0, 0), (10, 0), (10, -4), (0, -4)],
            edges=[Edge(id="C-attach", polyline=[(0, 0), (10, 0)])],
        )
        assert infer_reverse_edge(parent, parent.edge("A-right"), child, child.edge("C-attach")) is False

    def test_tie_break_by_centroid(self, monkeypatch):
        # force equal scores so only the centroid comparison decides
        monkeypatch.setattr("sheetmetal_unfold.alignment.interior_side_of_boundary_loop", lambda *a, **k: 1)
        parent = rect_flat("A", 10.0, 10.0)
        child = rect_flat("B", 10.0, 4.0)
        score = score_edge_orientation(parent, parent.edge("A-right"), child, child.edge("B-bottom"))
        assert score.tie_break
        assert score.score_forward == score.score_reverse == 1
        assert score.reverse is True

    def test_deterministic(self):
        parent = rect_flat("A", 10.0, 10.0)
        child = rect_flat("B", 10.0, 4.0)
        results = {
            infer_reverse_edge(parent, parent.edge("A-right"), child, child.edge("B-bottom"))
            for _ in range(5)
        }
        assert results == {True}
