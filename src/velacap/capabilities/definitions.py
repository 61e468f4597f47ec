"""Raw definition objects as stored in the control plane."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from velacap.capabilities.specs import CapabilityType


@dataclass(frozen=True)
class WorkloadGVK:
    """apiVersion/kind pair a component definition declares for its workload."""

    api_version: str
    kind: str


@dataclass(frozen=True)
class DefinitionReference:
    """Reference to the schema record backing a definition (``<plural>.<group>``)."""

    name: str
    version: str = ""


@dataclass(frozen=True)
class Schematic:
    """Structured container for an inline CUE template and/or template URI."""

    cue_template: str = ""
    cue_template_uri: str = ""
    # Other schematic kinds (helm, kube, terraform) carry no CUE template.
    kind: str = "cue"


@dataclass
class RawDefinition:
    """Represents a ComponentDefinition or TraitDefinition custom resource."""

    name: str
    capability_type: CapabilityType
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    workload: WorkloadGVK | None = None
    workload_type: str = ""
    definition_ref: DefinitionReference | None = None
    applies_to: list[str] = field(default_factory=list)
    extension: Any = None
    schematic: Schematic | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any], capability_type: CapabilityType) -> "RawDefinition":
        """Load a definition from the dict returned by the custom objects API."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}

        workload = None
        workload_type = ""
        definition_ref = None
        applies_to: list[str] = []

        if capability_type == CapabilityType.COMPONENT:
            workload_spec = spec.get("workload") or {}
            gvk = workload_spec.get("definition")
            if gvk:
                workload = WorkloadGVK(
                    api_version=gvk.get("apiVersion", ""),
                    kind=gvk.get("kind", ""),
                )
            workload_type = workload_spec.get("type", "")
        else:
            ref = spec.get("definitionRef")
            if ref:
                definition_ref = DefinitionReference(
                    name=ref.get("name", ""),
                    version=ref.get("version", ""),
                )
            applies_to = list(spec.get("appliesToWorkloads") or [])

        return cls(
            name=metadata.get("name", ""),
            capability_type=capability_type,
            namespace=metadata.get("namespace", ""),
            annotations=dict(metadata.get("annotations") or {}),
            labels=dict(metadata.get("labels") or {}),
            workload=workload,
            workload_type=workload_type,
            definition_ref=definition_ref,
            applies_to=applies_to,
            extension=spec.get("extension"),
            schematic=_schematic_from_dict(spec.get("schematic")),
        )


def _schematic_from_dict(data: dict[str, Any] | None) -> Schematic | None:
    if not data:
        return None
    cue = data.get("cue")
    if cue is not None:
        return Schematic(
            cue_template=cue.get("template", "") or "",
            cue_template_uri=cue.get("templateURI", "") or "",
        )
    for kind in ("helm", "kube", "terraform"):
        if data.get(kind) is not None:
            return Schematic(kind=kind)
    return None
