"""Tests for the built-in sample scenarios."""
import numpy as np
import pytest

from sheetmetal_unfold import evaluate_sheet_metal
from sheetmetal_unfold.samples import (
    DEFAULT_SCENARIO_ID,
    SAMPLE_SCENARIOS,
    get_sample_scenario,
    sample_tree,
)

EXPECTED_COUNTS = {
    "baseline-channel": (4, 3),
    "skew-bracket": (3, 2),
    "hex-step": (3, 2),
    "dogleg-strip": (3, 2),
}


class TestSampleScenarios:

    def test_catalogue(self):
        assert set(SAMPLE_SCENARIOS) == set(EXPECTED_COUNTS)
        assert DEFAULT_SCENARIO_ID in SAMPLE_SCENARIOS

    @pytest.mark.parametrize("scenario_id", sorted(EXPECTED_COUNTS))
    def test_evaluates_cleanly(self, scenario_id):
        result = evaluate_sheet_metal(sample_tree(scenario_id))
        flats, bends = EXPECTED_COUNTS[scenario_id]
        assert len(result.flats_3d) == flats
        assert len(result.bends_3d) == bends
        assert all(d.inferred for d in result.orientation_decisions)

    @pytest.mark.parametrize("scenario_id", sorted(EXPECTED_COUNTS))
    def test_flat_pattern_stays_planar(self, scenario_id):
        result = evaluate_sheet_metal(sample_tree(scenario_id))
        for placement in result.flats_2d:
            outline = np.array(placement.outline_world())
            assert np.allclose(outline[:, 2], 0.0)

    @pytest.mark.parametrize("scenario_id", sorted(EXPECTED_COUNTS))
    def test_children_folded_out_of_plane(self, scenario_id):
        result = evaluate_sheet_metal(sample_tree(scenario_id))
        for bend in result.bends_3d:
            cos = float(np.dot(bend.parent_normal, bend.child_normal))
            assert cos == pytest.approx(np.cos(bend.angle_rad), abs=1e-9)

    def test_preorder(self):
        result = evaluate_sheet_metal(sample_tree("baseline-channel"))
        assert [p.flat.id for p in result.flats_3d] == [
            "s1-base", "s1-right-wall", "s1-return-lip", "s1-left-wall",
        ]

    def test_fresh_tree_each_call(self):
        scenario = get_sample_scenario(DEFAULT_SCENARIO_ID)
        first = scenario.build_tree()
        second = scenario.build_tree()
        assert first.root is not second.root
        first.root.outline.append((0.0, 0.0))
        assert len(second.root.outline) == 4

    def test_unknown_scenario(self):
        with pytest.raises(ValueError, match="Unknown sample scenario"):
            get_sample_scenario("no-such-part")
