"""Capability discovery for OAM component and trait definitions."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("velacap")
except PackageNotFoundError:
    __version__ = "0.0.0"

from velacap.capabilities import Capability, CapabilityType, HelmChart, Parameter
from velacap.exceptions import CapabilityError, ItemError
from velacap.resolution import CapabilityFetcher, FetchResult
from velacap.sync import (
    LocalDefinitionStore,
    SyncResult,
    sync_definition_to_local,
    sync_definitions_to_local,
)

__all__ = [
    "Capability",
    "CapabilityError",
    "CapabilityFetcher",
    "CapabilityType",
    "FetchResult",
    "HelmChart",
    "ItemError",
    "LocalDefinitionStore",
    "Parameter",
    "SyncResult",
    "__version__",
    "sync_definition_to_local",
    "sync_definitions_to_local",
]
