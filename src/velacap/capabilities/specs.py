"""Capability specs: the resolved, user-facing descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from velacap.constants import DESCRIPTION_UNDEFINED


class CapabilityType(StrEnum):
    """Definition class a capability was resolved from."""

    COMPONENT = "component"
    TRAIT = "trait"


@dataclass(frozen=True, slots=True)
class ApiIdentity:
    """Concrete API identity a definition's reference resolves to."""

    api_version: str
    kind: str


@dataclass(frozen=True, slots=True)
class Parameter:
    """One typed entry of a capability's parameter schema."""

    name: str
    type: str
    required: bool
    default: Any = None
    description: str = ""
    short: str = ""
    alias: str = ""
    ignore: bool = False


@dataclass(frozen=True, slots=True)
class HelmChart:
    """Chart a capability needs installed before it can be used."""

    name: str
    version: str = ""
    url: str = ""
    repo: str = ""
    namespace: str | None = None
    values: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HelmChart":
        return cls(
            name=data.get("name", ""),
            version=str(data.get("version", "")),
            url=data.get("url", ""),
            repo=data.get("repo", ""),
            namespace=data.get("namespace") or None,
            values=dict(data.get("values") or {}),
        )


@dataclass(slots=True)
class Capability:
    """Resolved descriptor of a workload type or trait."""

    name: str
    namespace: str
    type: CapabilityType
    template: str
    crd_name: str = ""
    description: str = DESCRIPTION_UNDEFINED
    template_uri: str = ""
    parameters: list[Parameter] = field(default_factory=list)
    applies_to: list[str] = field(default_factory=list)
    install: HelmChart | None = None
    api_identity: ApiIdentity | None = None

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view for JSON/YAML output."""
        data: dict[str, Any] = {
            "name": self.name,
            "namespace": self.namespace,
            "type": str(self.type),
            "description": self.description,
            "crdName": self.crd_name,
            "template": self.template,
            "parameters": [
                {
                    "name": p.name,
                    "type": p.type,
                    "required": p.required,
                    "default": p.default,
                    "usage": p.description,
                    "short": p.short,
                    "alias": p.alias,
                    "ignore": p.ignore,
                }
                for p in self.parameters
            ],
        }
        if self.type == CapabilityType.TRAIT:
            data["appliesTo"] = list(self.applies_to)
        if self.api_identity is not None:
            data["crdInfo"] = {
                "apiVersion": self.api_identity.api_version,
                "kind": self.api_identity.kind,
            }
        if self.install is not None:
            data["install"] = {
                "helm": {
                    "name": self.install.name,
                    "version": self.install.version,
                    "url": self.install.url,
                    "repo": self.install.repo,
                    "namespace": self.install.namespace,
                }
            }
        return data
