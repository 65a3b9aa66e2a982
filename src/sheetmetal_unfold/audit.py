"""Audit/checkpoint utilities for unfold runs.

Every orientation decision made while evaluating a tree is appended to a
hash-chained JSONL log, so a run folder can show afterwards how each child
flat was attached.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from sheetmetal_unfold.contracts import OrientationDecision

GENESIS_HASH = "0" * 64


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def _canonical_json(payload: Dict[str, object]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass
class CheckpointHandle:
    stage: str
    path: Path
    payload_sha256: str


class AuditTrail:
    """Append-only decision log plus per-stage checkpoints for one run."""

    def __init__(self, run_id: str, artifacts_dir: Path):
        self.run_id = run_id
        self.artifacts_dir = artifacts_dir
        self.checkpoints_dir = artifacts_dir / "checkpoints"
        self.checkpoints_dir.mkdir(parents=True, exist_ok=True)
        self.decision_log_path = artifacts_dir / "decision_log.jsonl"
        self.hash_chain_path = artifacts_dir / "decision_hash_chain.json"
        self._entries: List[Dict[str, object]] = []
        self._checkpoints: List[CheckpointHandle] = []

    @property
    def last_hash(self) -> str:
        return self._entries[-1]["hash"] if self._entries else GENESIS_HASH

    @property
    def checkpoints(self) -> List[CheckpointHandle]:
        return list(self._checkpoints)

    def record_orientation(self, decision: OrientationDecision) -> Dict[str, object]:
        """Log how the attach orientation of one child flat was chosen."""
        if not decision.inferred:
            reason = "explicit_reverse_edge"
        elif decision.tie_break:
            reason = "centroid_tie_break"
        else:
            reason = "interior_side_score"
        evidence: Dict[str, float] = {}
        if decision.score_forward is not None:
            evidence["score_forward"] = float(decision.score_forward)
        if decision.score_reverse is not None:
            evidence["score_reverse"] = float(decision.score_reverse)
        return self.append_decision(
            decision_type="attach_orientation",
            entity_ids=[decision.bend_id, decision.parent_flat_id, decision.child_flat_id],
            selected="reverse" if decision.reverse_edge else "forward",
            reason=reason,
            numeric_evidence=evidence,
            metadata={"attach_edge_id": decision.attach_edge_id},
        )

    def append_decision(
        self,
        *,
        decision_type: str,
        entity_ids: List[str],
        selected: str,
        reason: str,
        numeric_evidence: Optional[Dict[str, float]] = None,
        metadata: Optional[Dict[str, object]] = None,
    ) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "schema_version": "sheetmetal_unfold.decision.v1",
            "run_id": self.run_id,
            "seq": len(self._entries) + 1,
            "timestamp_utc": _utc_now_iso(),
            "decision_type": decision_type,
            "entity_ids": list(entity_ids),
            "selected": selected,
            "reason": reason,
            "numeric_evidence": numeric_evidence or {},
            "metadata": metadata or {},
            "previous_hash": self.last_hash,
        }
        payload["hash"] = sha256_text(_canonical_json(payload))

        with self.decision_log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, sort_keys=True) + "\n")
        self._entries.append(
            {"seq": payload["seq"], "hash": payload["hash"], "previous_hash": payload["previous_hash"]}
        )
        return payload

    def write_checkpoint(
        self,
        stage: str,
        *,
        counts: Dict[str, int],
        metrics: Dict[str, float],
        outputs: Dict[str, object],
        input_hashes: Optional[Dict[str, str]] = None,
    ) -> CheckpointHandle:
        index = len(self._checkpoints) + 1
        path = self.checkpoints_dir / f"{index:02d}_{stage.lower().replace(' ', '_')}.json"
        payload: Dict[str, object] = {
            "schema_version": "sheetmetal_unfold.checkpoint.v1",
            "run_id": self.run_id,
            "stage": stage,
            "timestamp_utc": _utc_now_iso(),
            "input_hashes": input_hashes or {},
            "counts": counts,
            "metrics": metrics,
            "outputs": outputs,
            "decision_chain_head": self.last_hash,
        }
        payload_sha = sha256_text(_canonical_json(payload))
        payload["payload_sha256"] = payload_sha
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")

        handle = CheckpointHandle(stage=stage, path=path, payload_sha256=payload_sha)
        self._checkpoints.append(handle)
        return handle

    def finalize(self) -> None:
        payload = {
            "schema_version": "sheetmetal_unfold.hash_chain.v1",
            "run_id": self.run_id,
            "final_hash": self.last_hash,
            "decision_count": len(self._entries),
            "entries": self._entries,
            "checkpoint_hashes": [
                {"stage": c.stage, "path": str(c.path), "payload_sha256": c.payload_sha256}
                for c in self._checkpoints
            ],
        }
        self.hash_chain_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def verify_decision_log(path: Path) -> bool:
    """Recompute the hash chain of a decision log written by AuditTrail."""
    previous = GENESIS_HASH
    with path.open("r", encoding="utf-8") as handle:
        for line in handle:
            if not line.strip():
                continue
            entry = json.loads(line)
            claimed = entry.pop("hash")
            if entry.get("previous_hash") != previous:
                return False
            if sha256_text(_canonical_json(entry)) != claimed:
                return False
            previous = claimed
    return True
