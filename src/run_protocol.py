"""Run-folder protocol for unfold runs.

    runs/<run_id>/
        input/          copied or generated tree JSON
        artifacts/      evaluation.json, flat_pattern.dxf/.svg, audit files
        manifest.json, metrics.json, summary.md
    runs/latest -> <run_id>
"""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


@dataclass
class RunPaths:
    run_id: str
    run_dir: Path
    input_dir: Path
    artifacts_dir: Path
    manifest_path: Path
    metrics_path: Path
    summary_path: Path

    def artifact(self, filename: str) -> Path:
        return self.artifacts_dir / filename


def slugify(value: str) -> str:
    value = re.sub(r"[^a-z0-9]+", "-", value.strip().lower())
    return value.strip("-") or "run"


def create_run_id(part_name: str) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{slugify(part_name)}"


def prepare_run_dir(runs_root: str, part_name: str) -> RunPaths:
    run_id = create_run_id(part_name)
    run_dir = Path(runs_root) / run_id
    suffix = 1
    while run_dir.exists():
        suffix += 1
        run_dir = Path(runs_root) / f"{run_id}_{suffix}"
    run_id = run_dir.name

    input_dir = run_dir / "input"
    artifacts_dir = run_dir / "artifacts"
    input_dir.mkdir(parents=True)
    artifacts_dir.mkdir(parents=True)

    return RunPaths(
        run_id=run_id,
        run_dir=run_dir,
        input_dir=input_dir,
        artifacts_dir=artifacts_dir,
        manifest_path=run_dir / "manifest.json",
        metrics_path=run_dir / "metrics.json",
        summary_path=run_dir / "summary.md",
    )


def copy_input_tree(tree_path: str, input_dir: Path) -> Path:
    src = Path(tree_path)
    dst = input_dir / src.name
    if src.resolve() != dst.resolve():
        shutil.copy2(src, dst)
    return dst


def write_json(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        f.write(content)


def update_latest_pointer(runs_root: str, run_dir: Path) -> None:
    runs_path = Path(runs_root)
    latest = runs_path / "latest"

    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, runs_path))
    except OSError:
        # no symlink support: leave a marker file instead
        latest.mkdir(parents=True, exist_ok=True)
        write_text(latest / "latest_run.txt", run_dir.name)
