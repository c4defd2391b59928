from __future__ import annotations

from typing import List, Optional, Tuple

from vcoverride.config import BUNDLE_RESOURCES_TEMPLATE, UNIT_NAME_TEMPLATE
from vcoverride.core.diagnostics import Diagnostics
from vcoverride.core.host import BuildProject
from vcoverride.core.locator import locate, resolve_step
from vcoverride.core.override import has_override_input, resolve_override
from vcoverride.models import WorkUnit


def capitalize(name: str) -> str:
    return name[:1].upper() + name[1:]


def unit_name(variant_name: str, index: int) -> str:
    return UNIT_NAME_TEMPLATE.format(variant=capitalize(variant_name), index=index)


def plan_project(project: BuildProject, override_value: int, sink: Diagnostics) -> List[WorkUnit]:
    units: List[WorkUnit] = []

    for variant in project.variants:
        sink.info("VARIANT", f"Analyzing variant {variant.name}")
        if not variant.outputs:
            sink.debug("NO_OUTPUTS", f"Variant {variant.name} has no outputs, skipping")
            continue

        output = variant.outputs[0]
        step = resolve_step(output, sink, variant.name)
        if step is None:
            continue
        candidates = locate(output, override_value, sink, variant_name=variant.name, step=step)
        if candidates:
            sink.info(
                "MANIFEST_CANDIDATES",
                f"Manifest file paths to consider: {[c.path for c in candidates]}",
            )

        cap = capitalize(variant.name)
        bundle_tasks = project.find_tasks(BUNDLE_RESOURCES_TEMPLATE.format(variant=cap))

        for c in candidates:
            required_by: List[str] = []
            if output.process_resources:
                required_by.append(output.process_resources)
            # app bundles read the manifest before bundle<Variant>Resources
            required_by.extend(t for t in bundle_tasks if t not in required_by)

            unit = WorkUnit(
                name=unit_name(variant.name, c.sequence_index),
                project_path=project.path,
                candidate=c,
                must_run_after=step.name,
                required_by=required_by,
            )
            sink.debug("UNIT_PLANNED", f"Installed {unit.unit_id} for variant {variant.name}", c.path)
            units.append(unit)

    return units


def plan_overrides(
    projects: List[BuildProject],
    legacy: Optional[str],
    current: Optional[str],
    sink: Optional[Diagnostics] = None,
) -> Tuple[Optional[int], List[WorkUnit]]:
    """
    Build the work units for every eligible project.

    Returns (override_value, units). override_value is None when every
    project was skipped. InvalidOverrideValue propagates before any
    variant is inspected.
    """
    sink = sink or Diagnostics()
    eligible: List[BuildProject] = []

    for project in projects:
        if not project.is_supported() or not has_override_input(legacy, current):
            sink.info(
                "SKIPPED",
                f"Project {project.name} at {project.path} is either no Android app project "
                f"or build version has not been set to override. Skipping...",
            )
            continue
        eligible.append(project)

    if not eligible:
        return None, []

    value = resolve_override(legacy, current, sink)
    sink.info("OVERRIDE_VALUE", f"Preparing override of version code to {value}")

    units: List[WorkUnit] = []
    for project in eligible:
        sink.info("PROJECT", f"Processing version code override for project {project.name} at {project.path}...")
        units.extend(plan_project(project, value, sink))

    return value, units
