#!/usr/bin/env python3
"""Fold and unfold a sheet-metal tree, writing flat-pattern run artifacts."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sheetmetal_unfold import SheetMetalError, evaluate_sheet_metal
from sheetmetal_unfold.audit import AuditTrail, sha256_file
from sheetmetal_unfold.flat_pattern import (
    build_flat_pattern,
    flat_pattern_overlaps,
    flat_pattern_to_dxf,
    flat_pattern_to_svg,
)
from sheetmetal_unfold.samples import DEFAULT_SCENARIO_ID, SAMPLE_SCENARIOS, get_sample_scenario
from sheetmetal_unfold.tree_io import evaluation_to_payload, load_tree, save_tree
from run_protocol import (
    copy_input_tree,
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)

logger = logging.getLogger("unfold_tree")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Evaluate a sheet-metal flat/bend tree and export its flat pattern"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--tree", help="Path to a tree JSON file")
    source.add_argument(
        "--sample",
        choices=sorted(SAMPLE_SCENARIOS),
        default=None,
        help=f"Built-in sample scenario (default: {DEFAULT_SCENARIO_ID})",
    )
    parser.add_argument("--name", default=None, help="Part/run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument("--no-dxf", action="store_true", help="Skip DXF export")
    parser.add_argument("--no-svg", action="store_true", help="Skip SVG export")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def _build_summary(
    *,
    run_id: str,
    elapsed_s: float,
    status: str,
    flat_count: int,
    bend_count: int,
    cut_segment_count: int,
    overlap_count: int,
    error: str | None = None,
) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Status: **{status.upper()}**",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Flats: {flat_count}",
        f"- Bends: {bend_count}",
        f"- Cut segments: {cut_segment_count}",
        f"- Overlapping flat pairs: {overlap_count}",
        "",
    ]
    if error:
        lines += ["## Error", f"- {error}", ""]
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    started = time.perf_counter()
    if args.tree:
        name = args.name or Path(args.tree).stem
        run_paths = prepare_run_dir(args.runs_dir, name)
        input_path = copy_input_tree(args.tree, run_paths.input_dir)
    else:
        scenario = get_sample_scenario(args.sample or DEFAULT_SCENARIO_ID)
        name = args.name or scenario.id
        run_paths = prepare_run_dir(args.runs_dir, name)
        input_path = save_tree(scenario.build_tree(), str(run_paths.input_dir / f"{scenario.id}.json"))

    audit = AuditTrail(run_id=run_paths.run_id, artifacts_dir=run_paths.artifacts_dir)
    input_hashes = {"tree_sha256": sha256_file(input_path)}

    try:
        tree = load_tree(str(input_path))
        evaluation = evaluate_sheet_metal(tree)
    except SheetMetalError as exc:
        logger.error("Evaluation failed: %s", exc)
        elapsed = time.perf_counter() - started
        write_json(run_paths.metrics_path, {
            "run_id": run_paths.run_id,
            "status": "fail",
            "elapsed_s": round(elapsed, 3),
            "error_type": type(exc).__name__,
            "error": str(exc),
        })
        write_text(run_paths.summary_path, _build_summary(
            run_id=run_paths.run_id, elapsed_s=elapsed, status="fail",
            flat_count=0, bend_count=0, cut_segment_count=0, overlap_count=0,
            error=str(exc),
        ))
        audit.finalize()
        return 1

    for decision in evaluation.orientation_decisions:
        audit.record_orientation(decision)

    pattern = build_flat_pattern(evaluation)
    overlaps = flat_pattern_overlaps(evaluation)
    status = "pass" if not overlaps else "warn"

    evaluation_path = run_paths.artifact("evaluation.json")
    write_json(evaluation_path, evaluation_to_payload(evaluation))
    outputs = {"evaluation": str(evaluation_path)}
    if not args.no_dxf:
        outputs["dxf"] = flat_pattern_to_dxf(pattern, str(run_paths.artifact("flat_pattern.dxf")))
    if not args.no_svg:
        outputs["svg"] = flat_pattern_to_svg(pattern, str(run_paths.artifact("flat_pattern.svg")))

    counts = {
        "flats": len(evaluation.flats_3d),
        "bends": len(evaluation.bends_3d),
        "inferred_orientations": sum(1 for d in evaluation.orientation_decisions if d.inferred),
        "cut_segments": len(pattern.cut_segments),
        "bend_centerlines": len(pattern.bend_centerlines),
        "overlaps": len(overlaps),
    }
    metrics = {
        "thickness_mm": float(tree.thickness),
        "total_allowance_mm": float(sum(b.allowance for b in evaluation.bends_2d)),
        "pattern_width_mm": pattern.bounds.width,
        "pattern_height_mm": pattern.bounds.height,
    }
    checkpoint = audit.write_checkpoint(
        "evaluation", counts=counts, metrics=metrics, outputs=outputs, input_hashes=input_hashes
    )
    audit.finalize()
    elapsed = time.perf_counter() - started

    write_json(run_paths.metrics_path, {
        "run_id": run_paths.run_id,
        "status": status,
        "elapsed_s": round(elapsed, 3),
        "counts": counts,
        "metrics": metrics,
        "overlaps": [
            {"flat_ids": list(v.flat_ids), "area_mm2": v.value} for v in overlaps
        ],
    })
    write_text(run_paths.summary_path, _build_summary(
        run_id=run_paths.run_id,
        elapsed_s=elapsed,
        status=status,
        flat_count=counts["flats"],
        bend_count=counts["bends"],
        cut_segment_count=counts["cut_segments"],
        overlap_count=counts["overlaps"],
    ))
    write_json(run_paths.manifest_path, {
        "run_id": run_paths.run_id,
        "part_name": name,
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "input_tree": str(input_path),
        "status": status,
        "artifacts": {
            **outputs,
            "metrics": str(run_paths.metrics_path),
            "summary": str(run_paths.summary_path),
            "checkpoints": [str(checkpoint.path)],
            "decision_log": str(audit.decision_log_path),
            "decision_hash_chain": str(audit.hash_chain_path),
        },
    })
    update_latest_pointer(args.runs_dir, run_paths.run_dir)

    print(f"Run ID: {run_paths.run_id}")
    print(f"Run dir: {run_paths.run_dir}")
    print(f"Status: {status.upper()}")
    print(f"Flats: {counts['flats']}")
    print(f"Bends: {counts['bends']}")
    print(f"Cut segments: {counts['cut_segments']}")
    for key in ("dxf", "svg"):
        if key in outputs:
            print(f"{key.upper()}: {outputs[key]}")
    print(f"Metrics: {run_paths.metrics_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
