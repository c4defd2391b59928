from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from vcoverride.config import HASH_ALGO_DEFAULT
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.errors import MalformedManifest, ManifestWriteFailure
from vcoverride.core.hashing import manifest_digest
from vcoverride.core.patcher import patch_manifest
from vcoverride.models import WorkUnit


@dataclass(frozen=True)
class UnitOutcome:
    unit: WorkUnit
    status: str  # PATCHED | UNCHANGED | MISSING | FAILED
    hash_before: Optional[str] = None
    hash_after: Optional[str] = None


@dataclass(frozen=True)
class RunSummary:
    total: int
    patched: int
    unchanged: int
    missing: int
    failed: int


def execute_units(
    units: List[WorkUnit],
    target_value: int,
    sink: Optional[Diagnostics] = None,
    progress_cb: Optional[Callable[[int, int, WorkUnit], None]] = None,
    is_cancelled: Optional[Callable[[], bool]] = None,
    hash_algo: str = HASH_ALGO_DEFAULT,
) -> Tuple[RunSummary, List[UnitOutcome]]:
    """
    Runs the patcher once per unit, in order.

    A bad manifest only fails its own unit; the remaining units still run.
    """
    sink = sink or Diagnostics()
    outcomes: List[UnitOutcome] = []
    total = len(units)

    for idx, unit in enumerate(units, start=1):
        if is_cancelled and is_cancelled():
            sink.warning("RUN_CANCELLED", "Version code override cancelled.", unit.candidate.path)
            break

        if progress_cb:
            progress_cb(idx, total, unit)

        path = unit.candidate.path
        before = manifest_digest(path, algo=hash_algo)  # type: ignore[arg-type]

        try:
            status = patch_manifest(path, target_value, sink)
        except MalformedManifest as e:
            sink.error("MANIFEST_MALFORMED", f"{unit.unit_id}: manifest file does not contain valid XML ({e.reason})", path)
            outcomes.append(UnitOutcome(unit, "FAILED", before, before))
            continue
        except ManifestWriteFailure as e:
            sink.error("MANIFEST_WRITE_FAILED", f"{unit.unit_id}: {e.reason}", path)
            outcomes.append(UnitOutcome(unit, "FAILED", before, manifest_digest(path, algo=hash_algo)))  # type: ignore[arg-type]
            continue
        except OSError as e:
            sink.error("MANIFEST_READ_FAILED", f"{unit.unit_id}: {e}", path)
            outcomes.append(UnitOutcome(unit, "FAILED", before, before))
            continue

        after = manifest_digest(path, algo=hash_algo) if status == "PATCHED" else before  # type: ignore[arg-type]
        outcomes.append(UnitOutcome(unit, status, before, after))
        sink.debug("UNIT_DONE", f"Finished {unit.unit_id}: {status}", path)

    summary = RunSummary(
        total=total,
        patched=sum(1 for o in outcomes if o.status == "PATCHED"),
        unchanged=sum(1 for o in outcomes if o.status == "UNCHANGED"),
        missing=sum(1 for o in outcomes if o.status == "MISSING"),
        failed=sum(1 for o in outcomes if o.status == "FAILED"),
    )
    return summary, outcomes
