"""
Control-plane access for capability definitions.

Lists and reads ComponentDefinition / TraitDefinition custom resources through
the Kubernetes custom objects API.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from velacap.capabilities.definitions import RawDefinition
from velacap.capabilities.specs import CapabilityType
from velacap.constants import (
    COMPONENT_DEFINITION_PLURAL,
    DEFINITION_GROUP,
    DEFINITION_VERSION,
    TRAIT_DEFINITION_PLURAL,
)
from velacap.exceptions import (
    ClusterConfigError,
    DefinitionLookupError,
    DefinitionNotFoundError,
    ListFailedError,
)

if TYPE_CHECKING:
    from velacap.config import Settings

logger = logging.getLogger(__name__)

_PLURALS = {
    CapabilityType.COMPONENT: COMPONENT_DEFINITION_PLURAL,
    CapabilityType.TRAIT: TRAIT_DEFINITION_PLURAL,
}


def plural_for(capability_type: CapabilityType) -> str:
    return _PLURALS[CapabilityType(capability_type)]


class DefinitionSource(Protocol):
    """Read access to definitions of one class in a namespace."""

    def list(
        self,
        namespace: str,
        capability_type: CapabilityType,
        selector: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[RawDefinition]: ...

    def get(
        self,
        namespace: str,
        capability_type: CapabilityType,
        name: str,
        timeout: Optional[float] = None,
    ) -> RawDefinition: ...


def load_api_client(settings: Settings) -> client.ApiClient:
    """Build an API client from kubeconfig, falling back to in-cluster config."""
    try:
        return config.new_client_from_config(
            config_file=settings.kubeconfig,
            context=settings.kube_context,
        )
    except (ConfigException, FileNotFoundError) as exc:
        logger.debug("Kubeconfig not usable (%s), trying in-cluster config", exc)
        kubeconfig_error = exc

    try:
        config.load_incluster_config()
    except ConfigException as exc:
        raise ClusterConfigError(
            f"no cluster configuration found: {kubeconfig_error}", cause=exc
        ) from exc
    return client.ApiClient()


class DefinitionClient:
    """`DefinitionSource` over ``CustomObjectsApi``."""

    def __init__(self, api_client: Any = None, custom_api: Any = None) -> None:
        self.api_client = api_client
        self._custom_api = custom_api or client.CustomObjectsApi(api_client)

    def list(
        self,
        namespace: str,
        capability_type: CapabilityType,
        selector: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> list[RawDefinition]:
        kwargs: dict[str, Any] = {}
        if selector:
            kwargs["label_selector"] = selector
        if timeout is not None:
            kwargs["_request_timeout"] = timeout

        plural = plural_for(capability_type)
        try:
            raw = self._custom_api.list_namespaced_custom_object(
                group=DEFINITION_GROUP,
                version=DEFINITION_VERSION,
                namespace=namespace,
                plural=plural,
                **kwargs,
            )
        except Exception as exc:
            raise ListFailedError(
                f"failed to list {plural} in namespace '{namespace}': {exc}", cause=exc
            ) from exc

        items = raw.get("items", [])
        logger.debug("Listed %d %s in %s", len(items), plural, namespace)
        return [RawDefinition.from_dict(item, capability_type) for item in items]

    def get(
        self,
        namespace: str,
        capability_type: CapabilityType,
        name: str,
        timeout: Optional[float] = None,
    ) -> RawDefinition:
        kwargs: dict[str, Any] = {}
        if timeout is not None:
            kwargs["_request_timeout"] = timeout

        plural = plural_for(capability_type)
        try:
            raw = self._custom_api.get_namespaced_custom_object(
                group=DEFINITION_GROUP,
                version=DEFINITION_VERSION,
                namespace=namespace,
                plural=plural,
                name=name,
                **kwargs,
            )
        except ApiException as exc:
            if exc.status == 404:
                raise DefinitionNotFoundError(
                    f"{capability_type} definition '{name}' not found in namespace '{namespace}'"
                ) from exc
            raise DefinitionLookupError(
                f"failed to get {capability_type} definition '{name}': {exc.reason}", cause=exc
            ) from exc
        except Exception as exc:
            raise DefinitionLookupError(
                f"failed to get {capability_type} definition '{name}': {exc}", cause=exc
            ) from exc

        return RawDefinition.from_dict(raw, capability_type)
