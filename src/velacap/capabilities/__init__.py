"""Capability data model."""

from velacap.capabilities.definitions import (
    DefinitionReference,
    RawDefinition,
    Schematic,
    WorkloadGVK,
)
from velacap.capabilities.specs import (
    ApiIdentity,
    Capability,
    CapabilityType,
    HelmChart,
    Parameter,
)

__all__ = [
    "ApiIdentity",
    "Capability",
    "CapabilityType",
    "DefinitionReference",
    "HelmChart",
    "Parameter",
    "RawDefinition",
    "Schematic",
    "WorkloadGVK",
]
