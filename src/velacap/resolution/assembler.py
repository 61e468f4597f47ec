"""Assemble resolved pieces into a `Capability`."""

from __future__ import annotations

from typing import Mapping, Optional

from velacap.capabilities.definitions import DefinitionReference, RawDefinition
from velacap.capabilities.specs import ApiIdentity, Capability, CapabilityType
from velacap.constants import ANNOTATION_DESCRIPTION, DESCRIPTION_UNDEFINED
from velacap.resolution.template import ResolvedTemplate


def get_description(annotations: Optional[Mapping[str, str]]) -> str:
    """Single-line description from the definition annotations."""
    if annotations:
        description = annotations.get(ANNOTATION_DESCRIPTION)
        if description is not None:
            return description.replace("\n", " ")
    return DESCRIPTION_UNDEFINED


def assemble_capability(
    raw: RawDefinition,
    reference: DefinitionReference,
    resolved: ResolvedTemplate,
    api_identity: Optional[ApiIdentity] = None,
) -> Capability:
    applies_to = list(raw.applies_to) if raw.capability_type == CapabilityType.TRAIT else []
    return Capability(
        name=raw.name,
        namespace=raw.namespace,
        type=raw.capability_type,
        template=resolved.template,
        crd_name=reference.name,
        description=get_description(raw.annotations),
        template_uri=resolved.template_uri,
        parameters=list(resolved.parameters),
        applies_to=applies_to,
        install=resolved.install,
        api_identity=api_identity,
    )
