"""Tests for dict/JSON tree interchange."""
import json

import pytest

from sheetmetal_unfold import Bend, BendChild, CycleError, SheetMetalValidationError, evaluate_sheet_metal
from sheetmetal_unfold.samples import sample_tree
from sheetmetal_unfold.tree_io import (
    EVALUATION_SCHEMA_VERSION,
    evaluation_to_payload,
    load_tree,
    save_tree,
    tree_from_dict,
    tree_to_dict,
)

MINIMAL = {
    "thickness": 1.5,
    "root": {
        "id": "base",
        "label": "Base",
        "outline": [[0, 0], [20, 0], [20, 10], [0, 10]],
        "holes": [{"outline": [[2, 2], [4, 2], [4, 4]]}, [[10, 2], [12, 2], [12, 4]]],
        "edges": [
            {
                "id": "base-right",
                "polyline": [[20, 0], [20, 10]],
                "bend": {
                    "id": "fold",
                    "angleDeg": 90,
                    "midRadius": 2,
                    "kFactor": 0.44,
                    "children": [
                        {
                            "flat": {
                                "id": "wall",
                                "outline": [[0, 0], [10, 0], [10, 5], [0, 5]],
                                "edges": [{"id": "wall-attach", "polyline": [[0, 0], [10, 0]]}],
                            },
                            "attachEdgeId": "wall-attach",
                            "reverseEdge": True,
                        }
                    ],
                },
            }
        ],
    },
}


class TestTreeFromDict:

    def test_builds_tree(self):
        tree = tree_from_dict(MINIMAL)
        assert tree.thickness == 1.5
        assert tree.root.label == "Base"
        assert len(tree.root.holes) == 2
        bend = tree.root.edge("base-right").bend
        assert bend.k_factor == pytest.approx(0.44)
        child = bend.children[0]
        assert child.flat.id == "wall"
        assert child.reverse_edge is True

    def test_missing_reverse_means_infer(self):
        payload = json.loads(json.dumps(MINIMAL))
        del payload["root"]["edges"][0]["bend"]["children"][0]["reverseEdge"]
        child = tree_from_dict(payload).root.edges[0].bend.children[0]
        assert child.reverse_edge is None

    @pytest.mark.parametrize("path", [("thickness",), ("root", "id"), ("root", "outline")])
    def test_missing_required_key(self, path):
        payload = json.loads(json.dumps(MINIMAL))
        target = payload
        for key in path[:-1]:
            target = target[key]
        del target[path[-1]]
        with pytest.raises(SheetMetalValidationError, match=path[-1]):
            tree_from_dict(payload)

    def test_missing_bend_field(self):
        payload = json.loads(json.dumps(MINIMAL))
        del payload["root"]["edges"][0]["bend"]["midRadius"]
        with pytest.raises(SheetMetalValidationError, match="midRadius"):
            tree_from_dict(payload)

    @pytest.mark.parametrize("path", [("thickness",), ("root", "edges", 0, "bend", "angleDeg"),
                                      ("root", "edges", 0, "bend", "kFactor")])
    def test_non_numeric_value(self, path):
        payload = json.loads(json.dumps(MINIMAL))
        target = payload
        for key in path[:-1]:
            target = target[key]
        target[path[-1]] = "abc"
        with pytest.raises(SheetMetalValidationError, match=path[-1]):
            tree_from_dict(payload)

    def test_bad_points(self):
        payload = json.loads(json.dumps(MINIMAL))
        payload["root"]["outline"] = [[0, 0], ["x", 1], [2, 2]]
        with pytest.raises(SheetMetalValidationError):
            tree_from_dict(payload)


class TestRoundTrip:

    def test_sample_round_trip(self):
        tree = sample_tree("hex-step")
        payload = tree_to_dict(tree)
        assert tree_to_dict(tree_from_dict(payload)) == payload

    def test_file_round_trip(self, tmp_path):
        path = save_tree(tree_from_dict(MINIMAL), str(tmp_path / "tree.json"))
        tree = load_tree(str(path))
        assert tree.root.edge("base-right").bend.id == "fold"

    def test_load_rejects_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(SheetMetalValidationError, match="not valid JSON"):
            load_tree(str(path))

    def test_save_rejects_cyclic_tree(self, tmp_path):
        tree = tree_from_dict(MINIMAL)
        wall = tree.root.edge("base-right").bend.children[0].flat
        wall.edges[0].bend = Bend(
            id="loop", angle_deg=90.0, mid_radius=1.0, k_factor=0.5,
            children=[BendChild(flat=tree.root, attach_edge_id="base-right")],
        )
        with pytest.raises(CycleError) as exc:
            save_tree(tree, str(tmp_path / "cycle.json"))
        assert exc.value.path == ["base", "wall", "base"]
        assert not (tmp_path / "cycle.json").exists()

    def test_load_rejects_non_object(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(SheetMetalValidationError):
            load_tree(str(path))


class TestEvaluationPayload:

    def test_json_safe(self):
        evaluation = evaluate_sheet_metal(tree_from_dict(MINIMAL))
        payload = evaluation_to_payload(evaluation)
        text = json.dumps(payload)
        restored = json.loads(text)
        assert restored["schema_version"] == EVALUATION_SCHEMA_VERSION
        assert [f["flat_id"] for f in restored["flats_2d"]] == ["base", "wall"]
        assert len(restored["flats_3d"][1]["matrix"]) == 4
        assert restored["bends_2d"][0]["allowance"] > 0
        assert restored["orientation_decisions"][0]["inferred"] is False
