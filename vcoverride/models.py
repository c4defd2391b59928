from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

Level = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
PatchStatus = Literal["PATCHED", "UNCHANGED", "MISSING"]


@dataclass(frozen=True)
class Diagnostic:
    level: str  # DEBUG | INFO | WARNING | ERROR
    code: str   # stable short identifier (e.g. MANIFEST_MISSING)
    message: str
    path: Optional[str] = None  # manifest or description file when applicable


@dataclass(frozen=True)
class ManifestCandidate:
    path: str
    variant_name: str
    sequence_index: int


@dataclass(frozen=True)
class WorkUnit:
    name: str           # e.g. overrideVersionCodeDebug-0Manifest
    project_path: str   # e.g. :app
    candidate: ManifestCandidate
    must_run_after: Optional[str] = None
    required_by: List[str] = field(default_factory=list)

    @property
    def unit_id(self) -> str:
        prefix = self.project_path.rstrip(":")
        return f"{prefix}:{self.name}"
