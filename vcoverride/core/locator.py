from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Optional

from vcoverride.config import (
    AUXILIARY_MANIFEST_PROPERTIES,
    MANIFEST_FILENAME,
    MANIFEST_OUTPUT_DIRECTORY,
    MANIFEST_OUTPUT_FILE,
)
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.host import ManifestStep, VariantOutput
from vcoverride.models import ManifestCandidate


class OutputShape(Enum):
    DIRECTORY = "directory"                          # manifestOutputDirectory
    FILE = "file"                                    # manifestOutputFile (pre 3.0 layout)
    VERSION_CODE_OVERRIDE = "version_code_override"  # setVersionCodeOverride()
    UNKNOWN = "unknown"


def classify_step(step: ManifestStep, output: VariantOutput) -> OutputShape:
    # Priority order; the first match wins even if later shapes are also exposed
    if step.has_property(MANIFEST_OUTPUT_DIRECTORY):
        return OutputShape.DIRECTORY
    if step.has_property(MANIFEST_OUTPUT_FILE):
        return OutputShape.FILE
    if output.supports_version_code_override():
        return OutputShape.VERSION_CODE_OVERRIDE
    return OutputShape.UNKNOWN


def resolve_step(output: VariantOutput, sink: Diagnostics, variant_name: Optional[str] = None) -> Optional[ManifestStep]:
    """Evaluate the output's manifest step once; None when the host cannot provide it."""
    try:
        return output.manifest_step()
    except Exception as e:
        sink.warning(
            "MANIFEST_STEP_UNAVAILABLE",
            f"Variant {variant_name or output.name}: manifest processing step could not be resolved ({e})",
        )
        return None


def _resolve(step: ManifestStep, prop: str, sink: Diagnostics, vname: str, join: bool) -> Optional[Path]:
    try:
        p = step.resolve(prop)
    except Exception as e:
        sink.warning("OUTPUT_UNRESOLVED", f"Variant {vname}: '{prop}' could not be resolved ({e}), skipping")
        return None
    return p / MANIFEST_FILENAME if join else p


def locate(
    output: VariantOutput,
    override_value: int,
    sink: Optional[Diagnostics] = None,
    variant_name: Optional[str] = None,
    step: Optional[ManifestStep] = None,
) -> List[ManifestCandidate]:
    """
    Compute the manifest files one variant output may produce.

    Only one of the primary shapes is acted on. Split manifests (bundle,
    feature metadata, instant app) are added on top of whichever primary
    shape matched. Paths are not checked for existence here; a candidate
    that never materializes is skipped when it is patched. A location the
    host cannot resolve is reported and left out.
    """
    sink = sink or Diagnostics()
    vname = variant_name or output.name
    if step is None:
        step = resolve_step(output, sink, vname)
        if step is None:
            return []
    paths: List[Path] = []

    shape = classify_step(step, output)
    sink.debug("OUTPUT_SHAPE", f"Variant {vname}: manifest step '{step.name}' has shape '{shape.value}'")

    if shape is OutputShape.DIRECTORY:
        manifest = _resolve(step, MANIFEST_OUTPUT_DIRECTORY, sink, vname, join=True)
        if manifest is not None:
            sink.info("MANIFEST_EXPECTED", f"Intermediate {MANIFEST_FILENAME} to be stored at {manifest}", str(manifest))
            paths.append(manifest)
    elif shape is OutputShape.FILE:
        manifest = _resolve(step, MANIFEST_OUTPUT_FILE, sink, vname, join=False)
        if manifest is not None:
            sink.info("MANIFEST_EXPECTED", f"Intermediate {MANIFEST_FILENAME} will be stored at {manifest}", str(manifest))
            paths.append(manifest)
    elif shape is OutputShape.VERSION_CODE_OVERRIDE:
        sink.warning(
            "OVERRIDE_FALLBACK",
            f"Variant {vname}: not postprocessing {MANIFEST_FILENAME}, using setVersionCodeOverride({override_value})",
        )
        output.set_version_code_override(override_value)  # type: ignore[misc]

    for prop in AUXILIARY_MANIFEST_PROPERTIES:
        if not step.has_property(prop):
            continue
        sink.debug("OUTPUT_SHAPE", f"Variant {vname}: manifest step exposes '{prop}'")
        manifest = _resolve(step, prop, sink, vname, join=True)
        if manifest is None:
            continue
        sink.info("MANIFEST_EXPECTED", f"Split {MANIFEST_FILENAME} ({prop}) to be stored at {manifest}", str(manifest))
        paths.append(manifest)

    if not paths and shape is OutputShape.UNKNOWN:
        sink.debug("NO_MANIFEST_SHAPE", f"Variant {vname}: no known manifest output found")

    return [
        ManifestCandidate(path=str(p.absolute()), variant_name=vname, sequence_index=i)
        for i, p in enumerate(paths)
    ]
