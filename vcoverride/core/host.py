from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from vcoverride.config import SUPPORTED_PLUGINS

# A filesystem location, either given directly or produced on demand
PathRef = Union[str, "os.PathLike[str]", Callable[[], Union[str, "os.PathLike[str]"]]]


def resolve_path(ref: PathRef) -> Path:
    value = ref() if callable(ref) else ref
    return Path(os.fspath(value))


@dataclass
class ManifestStep:
    name: str
    properties: Dict[str, PathRef] = field(default_factory=dict)

    def has_property(self, prop: str) -> bool:
        return self.properties.get(prop) is not None

    def resolve(self, prop: str) -> Path:
        return resolve_path(self.properties[prop])


@dataclass
class VariantOutput:
    name: str
    process_manifest: Union[ManifestStep, Callable[[], ManifestStep]]
    process_resources: Optional[str] = None
    set_version_code_override: Optional[Callable[[int], None]] = None
    version_code_override: Optional[int] = None

    def manifest_step(self) -> ManifestStep:
        step = self.process_manifest
        return step if isinstance(step, ManifestStep) else step()

    def supports_version_code_override(self) -> bool:
        return callable(self.set_version_code_override)

    def record_version_code_override(self, value: int) -> None:
        self.version_code_override = value


@dataclass
class Variant:
    name: str
    outputs: List[VariantOutput] = field(default_factory=list)


@dataclass
class BuildProject:
    name: str
    path: str = ":"
    plugins: List[str] = field(default_factory=list)
    tasks: List[str] = field(default_factory=list)
    variants: List[Variant] = field(default_factory=list)

    def is_supported(self) -> bool:
        return any(p in SUPPORTED_PLUGINS for p in self.plugins)

    def find_tasks(self, fragment: str) -> List[str]:
        return [t for t in self.tasks if fragment in t]


# -------------------------
# JSON build description
# -------------------------
def _abs(value: Any, base_dir: Path) -> str:
    p = Path(str(value))
    if not p.is_absolute():
        p = base_dir / p
    return str(p)


def _output_from_json(d: Dict[str, Any], variant_name: str, base_dir: Path) -> VariantOutput:
    pm = d.get("process_manifest", {}) or {}
    props_in = pm.get("properties", {}) or {}
    props: Dict[str, PathRef] = {
        str(k): _abs(v, base_dir) for k, v in props_in.items() if v is not None and str(v).strip()
    }
    cap = variant_name[:1].upper() + variant_name[1:]
    step = ManifestStep(name=str(pm.get("name") or f"process{cap}Manifest"), properties=props)

    out = VariantOutput(
        name=str(d.get("name") or variant_name),
        process_manifest=step,
        process_resources=d.get("process_resources") or f"process{cap}Resources",
    )
    if bool(d.get("version_code_override", False)):
        out.set_version_code_override = out.record_version_code_override
    return out


def project_from_json_dict(d: Dict[str, Any], base_dir: Path) -> BuildProject:
    variants: List[Variant] = []
    for v in d.get("variants", []) or []:
        vname = str(v.get("name") or "").strip()
        if not vname:
            raise ValueError("Variant without a name in build description")
        outputs = [_output_from_json(o, vname, base_dir) for o in (v.get("outputs") or [])]
        variants.append(Variant(name=vname, outputs=outputs))

    name = str(d.get("name") or "app")
    return BuildProject(
        name=name,
        path=str(d.get("path") or f":{name}"),
        plugins=[str(p) for p in (d.get("plugins") or [])],
        tasks=[str(t) for t in (d.get("tasks") or [])],
        variants=variants,
    )


def from_json_dict(d: Dict[str, Any], base_dir: Union[str, Path]) -> List[BuildProject]:
    base = Path(base_dir)
    if "projects" in d:
        return [project_from_json_dict(p, base) for p in (d.get("projects") or [])]
    return [project_from_json_dict(d, base)]


def _output_to_json(out: VariantOutput) -> Dict[str, Any]:
    step = out.manifest_step()
    return {
        "name": out.name,
        "process_manifest": {
            "name": step.name,
            "properties": {k: str(step.resolve(k)) for k in step.properties if step.has_property(k)},
        },
        "process_resources": out.process_resources,
        "version_code_override": out.supports_version_code_override(),
    }


def to_json_dict(projects: List[BuildProject]) -> Dict[str, Any]:
    return {
        "projects": [
            {
                "name": p.name,
                "path": p.path,
                "plugins": list(p.plugins),
                "tasks": list(p.tasks),
                "variants": [
                    {"name": v.name, "outputs": [_output_to_json(o) for o in v.outputs]}
                    for v in p.variants
                ],
            }
            for p in projects
        ]
    }


def load_build_description(path: Union[str, Path]) -> List[BuildProject]:
    p = Path(path).resolve()
    d = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(d, dict):
        raise ValueError(f"Build description must be a JSON object: {p}")
    return from_json_dict(d, p.parent)


def save_build_description(path: Union[str, Path], projects: List[BuildProject]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(to_json_dict(projects), indent=2), encoding="utf-8")
    return p
