"""
API discovery for definition references.

Maps workload apiVersion/kind pairs to their resource names and resource names
back to kinds, using the cluster's discovery documents through the dynamic
client. Error messages follow the wording of the Kubernetes REST mapper so that
callers can recognise a "no matches for" failure.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from kubernetes.dynamic import DynamicClient

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Raised when the discovery documents cannot be read."""


class NoMatchError(DiscoveryError):
    """Raised when no served resource matches a kind or resource name."""


@dataclass(frozen=True, slots=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version


@dataclass(frozen=True, slots=True)
class GroupVersionResource:
    group: str
    version: str
    resource: str

    @property
    def group_resource(self) -> str:
        """``<resource>.<group>``, or just the resource for the core group."""
        return f"{self.resource}.{self.group}" if self.group else self.resource

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Resource={self.resource}"


def parse_group_resource(name: str) -> tuple[str, str]:
    """Split ``deployments.apps`` into ``("apps", "deployments")``."""
    resource, _, group = name.partition(".")
    return group, resource


def parse_group_version(api_version: str) -> tuple[str, str]:
    """Split ``apps/v1`` into ``("apps", "v1")``; ``v1`` belongs to the core group."""
    if "/" not in api_version:
        return "", api_version
    group, _, version = api_version.partition("/")
    return group, version


class DiscoveryService(Protocol):
    """What the reference resolver needs from API discovery."""

    def rest_mapping(self, gvk: GroupVersionKind) -> GroupVersionResource: ...

    def kinds_for(self, gvr: GroupVersionResource) -> list[GroupVersionKind]: ...


class DiscoveryMapper:
    """`DiscoveryService` backed by ``kubernetes.dynamic.DynamicClient``.

    The dynamic client reads the discovery documents when it is created, so a
    mapper reflects the APIs served at that moment. Create a new mapper when a
    fresh view is needed.
    """

    def __init__(self, api_client: Any) -> None:
        try:
            self._dynamic = DynamicClient(api_client)
        except Exception as exc:
            raise DiscoveryError(f"unable to read API discovery: {exc}") from exc

    def _search(self, **kwargs: Any) -> list[Any]:
        try:
            results = self._dynamic.resources.search(**kwargs)
        except Exception as exc:
            raise DiscoveryError(f"unable to read API discovery: {exc}") from exc
        # Subresources (deployments/scale) and list kinds are not mappable.
        return [
            r
            for r in results
            if "/" not in (getattr(r, "name", None) or "/") and not r.kind.endswith("List")
        ]

    @staticmethod
    def _scope(group: str) -> dict[str, str]:
        return {"group": group} if group else {"prefix": "api", "group": ""}

    def rest_mapping(self, gvk: GroupVersionKind) -> GroupVersionResource:
        """Return the resource serving ``gvk``."""
        query = {**self._scope(gvk.group), "kind": gvk.kind}
        if gvk.version:
            query["api_version"] = gvk.version
        matches = self._search(**query)
        if not matches:
            if gvk.version:
                raise NoMatchError(
                    f'no matches for kind "{gvk.kind}" in version "{gvk.api_version}"'
                )
            raise NoMatchError(f'no matches for kind "{gvk.kind}" in group "{gvk.group}"')
        resource = sorted(matches, key=lambda r: not getattr(r, "preferred", False))[0]
        logger.debug("Mapped %s %s to resource %s", gvk.api_version, gvk.kind, resource.name)
        return GroupVersionResource(gvk.group, resource.api_version, resource.name)

    def kinds_for(self, gvr: GroupVersionResource) -> list[GroupVersionKind]:
        """Return the kinds served under ``gvr``, preferred version first."""
        query = {**self._scope(gvr.group), "name": gvr.resource}
        if gvr.version:
            query["api_version"] = gvr.version
        matches = sorted(self._search(**query), key=lambda r: not getattr(r, "preferred", False))
        if not matches:
            raise NoMatchError(f"no matches for {gvr}")
        return [GroupVersionKind(gvr.group, r.api_version, r.kind) for r in matches]
