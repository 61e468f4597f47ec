"""
Reference resolution.

A definition points at the API that backs it: component definitions through
their workload apiVersion/kind, trait definitions through ``definitionRef``
(``<plural>.<group>``). Resolution turns that pointer into a concrete
`ApiIdentity` using API discovery.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from velacap.capabilities.definitions import DefinitionReference, RawDefinition
from velacap.capabilities.specs import ApiIdentity, CapabilityType
from velacap.cluster.discovery import (
    DiscoveryError,
    DiscoveryService,
    GroupVersionKind,
    GroupVersionResource,
    NoMatchError,
    parse_group_resource,
    parse_group_version,
)
from velacap.constants import AUTODETECT_WORKLOAD_TYPE, DUMMY_REFERENCE
from velacap.exceptions import ReferenceResolutionError

logger = logging.getLogger(__name__)

NO_MATCHES = "no matches for "


def rewrite_discovery_error(message: str) -> str:
    """Turn a mapper "no matches for X" message into "expected provider: X"."""
    if NO_MATCHES in message:
        return "expected provider: " + message.split(NO_MATCHES, 1)[1]
    return message


class ReferenceResolver:
    """Maps definition references to API identities through a discovery handle.

    The handle is built on first use and then reused, so one resolver per batch
    reads the discovery documents at most once.
    """

    def __init__(self, discovery_factory: Callable[[], DiscoveryService]) -> None:
        self._discovery_factory = discovery_factory
        self._discovery: Optional[DiscoveryService] = None

    @property
    def discovery(self) -> DiscoveryService:
        if self._discovery is None:
            self._discovery = self._discovery_factory()
        return self._discovery

    def definition_reference(self, raw: RawDefinition) -> DefinitionReference:
        """Return the backing reference of a raw definition.

        Raises:
            ReferenceResolutionError: If a component's workload kind is not served
        """
        if raw.capability_type == CapabilityType.TRAIT:
            return raw.definition_ref or DefinitionReference(name="")

        if raw.workload_type == AUTODETECT_WORKLOAD_TYPE:
            return DefinitionReference(name="")
        if raw.workload is None:
            return DefinitionReference(name=raw.workload_type)

        group, version = parse_group_version(raw.workload.api_version)
        gvk = GroupVersionKind(group=group, version=version, kind=raw.workload.kind)
        try:
            gvr = self.discovery.rest_mapping(gvk)
        except DiscoveryError as exc:
            raise ReferenceResolutionError(
                f"installing capability '{raw.name}'... {rewrite_discovery_error(str(exc))}",
                cause=exc,
            ) from exc
        return DefinitionReference(name=gvr.group_resource, version=gvr.version)

    def resolve(self, reference: DefinitionReference, definition_name: str) -> Optional[ApiIdentity]:
        """Resolve ``reference`` to the API identity it names.

        Empty and placeholder references have no identity and return None
        without touching discovery.

        Raises:
            ReferenceResolutionError: If discovery has no match or fails
        """
        if not reference.name or reference.name == DUMMY_REFERENCE:
            return None

        group, resource = parse_group_resource(reference.name)
        gvr = GroupVersionResource(group=group, version=reference.version, resource=resource)
        try:
            kinds = self.discovery.kinds_for(gvr)
            if not kinds:
                raise NoMatchError(f"{NO_MATCHES}{gvr}")
        except DiscoveryError as exc:
            raise ReferenceResolutionError(
                f"installing capability '{definition_name}'... {rewrite_discovery_error(str(exc))}",
                cause=exc,
            ) from exc

        gvk = kinds[0]
        logger.debug("Resolved %s to %s %s", reference.name, gvk.api_version, gvk.kind)
        return ApiIdentity(api_version=gvk.api_version, kind=gvk.kind)
