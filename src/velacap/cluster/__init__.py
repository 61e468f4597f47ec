"""Cluster access: definition client and API discovery."""

from velacap.cluster.client import DefinitionClient, DefinitionSource, load_api_client
from velacap.cluster.discovery import (
    DiscoveryError,
    DiscoveryMapper,
    DiscoveryService,
    GroupVersionKind,
    GroupVersionResource,
    NoMatchError,
    parse_group_resource,
    parse_group_version,
)

__all__ = [
    "DefinitionClient",
    "DefinitionSource",
    "DiscoveryError",
    "DiscoveryMapper",
    "DiscoveryService",
    "GroupVersionKind",
    "GroupVersionResource",
    "NoMatchError",
    "load_api_client",
    "parse_group_resource",
    "parse_group_version",
]
