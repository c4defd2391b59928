from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from vcoverride.core.runner import RunSummary, UnitOutcome
from vcoverride.models import Diagnostic


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def build_run_record(
    tool_name: str,
    tool_version: str,
    override_value: Optional[int],
    summary: Optional[RunSummary],
    outcomes: List[UnitOutcome],
    diagnostics: List[Diagnostic],
    description_path: Optional[str] = None,
    hash_algo: str = "sha1",
    include_debug: bool = False,
) -> Dict[str, Any]:
    units_out: List[Dict[str, Any]] = []
    for o in outcomes:
        units_out.append(
            {
                "id": o.unit.unit_id,
                "name": o.unit.name,
                "project": o.unit.project_path,
                "variant": o.unit.candidate.variant_name,
                "index": o.unit.candidate.sequence_index,
                "path": o.unit.candidate.path,
                "must_run_after": o.unit.must_run_after,
                "required_by": list(o.unit.required_by),
                "status": o.status,
                f"{hash_algo}_before": o.hash_before,
                f"{hash_algo}_after": o.hash_after,
            }
        )

    results_out = [
        {
            "level": d.level,
            "code": d.code,
            "message": d.message,
            "path": d.path,
        }
        for d in diagnostics
        if include_debug or d.level != "DEBUG"
    ]

    record = {
        "tool": tool_name,
        "version": tool_version,
        "timestamp_utc": _utc_now_iso(),
        "build_description": description_path,
        "version_code": override_value,
        "summary": None if summary is None else {
            "total": summary.total,
            "patched": summary.patched,
            "unchanged": summary.unchanged,
            "missing": summary.missing,
            "failed": summary.failed,
        },
        "units": units_out,
        "results": results_out,
    }
    return record


def write_run_record(record: Dict[str, Any], record_path: str) -> str:
    path = Path(record_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        json.dump(record, f, indent=2, ensure_ascii=False)

    return str(path)
