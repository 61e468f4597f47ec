"""
Pytest configuration and shared fixtures for velacap tests.

Provides in-memory stand-ins for the control plane, API discovery and helm so
the resolution pipeline can be exercised without a cluster.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import pytest

from velacap.capabilities.definitions import RawDefinition
from velacap.capabilities.specs import CapabilityType, HelmChart
from velacap.cluster.discovery import GroupVersionKind, GroupVersionResource, NoMatchError
from velacap.config import clear_settings_cache
from velacap.exceptions import DefinitionNotFoundError
from velacap.helm import HelmError
from velacap.resolution.batch import CapabilityFetcher
from velacap.resolution.dependency import DependencyInstaller
from velacap.resolution.template import TemplateResolver

WEBSERVICE_TEMPLATE = """
output: {
	apiVersion: "apps/v1"
	kind:       "Deployment"
	spec: containers: [{image: parameter.image}]
}
parameter: {
	// +usage=Which image would you like to use for your service
	// +short=i
	image: string

	// +usage=Which port do you want customer traffic sent to
	port: *80 | int
}
"""

SCALER_TEMPLATE = """
patch: spec: replicas: parameter.replicas
parameter: {
	// +usage=Specify the number of workloads
	replicas: *1 | int
}
"""


class FakeDiscovery:
    """Discovery over a fixed ``{"<plural>.<group>": (group, version, kind)}`` table."""

    def __init__(self, resources: Optional[dict[str, tuple[str, str, str]]] = None) -> None:
        self.resources = resources if resources is not None else {
            "deployments.apps": ("apps", "v1", "Deployment"),
            "ingresses.networking.k8s.io": ("networking.k8s.io", "v1", "Ingress"),
        }
        self.kinds_calls: list[GroupVersionResource] = []

    def rest_mapping(self, gvk: GroupVersionKind) -> GroupVersionResource:
        for name, (group, version, kind) in self.resources.items():
            if group == gvk.group and kind == gvk.kind:
                return GroupVersionResource(group, version, name.partition(".")[0])
        raise NoMatchError(f'no matches for kind "{gvk.kind}" in version "{gvk.api_version}"')

    def kinds_for(self, gvr: GroupVersionResource) -> list[GroupVersionKind]:
        self.kinds_calls.append(gvr)
        entry = self.resources.get(gvr.group_resource)
        if entry is None:
            raise NoMatchError(f"no matches for {gvr}")
        return [GroupVersionKind(*entry)]


class FakeDefinitionSource:
    """In-memory `DefinitionSource`."""

    def __init__(
        self,
        components: tuple[RawDefinition, ...] | list[RawDefinition] = (),
        traits: tuple[RawDefinition, ...] | list[RawDefinition] = (),
        list_error: Optional[Exception] = None,
        get_error: Optional[Exception] = None,
    ) -> None:
        self.items = {
            CapabilityType.COMPONENT: list(components),
            CapabilityType.TRAIT: list(traits),
        }
        self.list_error = list_error
        self.get_error = get_error
        self.list_calls: list[tuple[str, CapabilityType, Optional[str]]] = []
        self.get_calls: list[tuple[str, CapabilityType, str]] = []

    def list(self, namespace, capability_type, selector=None, timeout=None):
        self.list_calls.append((namespace, capability_type, selector))
        if self.list_error is not None:
            raise self.list_error
        return list(self.items[capability_type])

    def get(self, namespace, capability_type, name, timeout=None):
        self.get_calls.append((namespace, capability_type, name))
        if self.get_error is not None:
            raise self.get_error
        for raw in self.items[capability_type]:
            if raw.name == name:
                return raw
        raise DefinitionNotFoundError(f"{capability_type} definition '{name}' not found")


class RecordingHelm:
    """Stands in for `HelmInstaller`, remembering installed chart names."""

    def __init__(self, fail_with: Optional[str] = None) -> None:
        self.fail_with = fail_with
        self.installed: list[str] = []

    def install(self, chart: HelmChart, ctx=None) -> bool:
        if self.fail_with:
            raise HelmError(self.fail_with)
        if chart.name in self.installed:
            return False
        self.installed.append(chart.name)
        return True


def build_definition(
    name: str,
    capability_type: str = "component",
    template: Optional[str] = WEBSERVICE_TEMPLATE,
    *,
    namespace: str = "vela-system",
    description: Optional[str] = None,
    workload: Optional[tuple[str, str]] = ("apps/v1", "Deployment"),
    definition_ref: Optional[str] = None,
    applies_to: Optional[list[str]] = None,
    extension: Any = None,
    template_uri: Optional[str] = None,
    labels: Optional[dict[str, str]] = None,
) -> RawDefinition:
    """Build a definition the way the custom objects API returns it."""
    annotations = {}
    if description is not None:
        annotations["definition.oam.dev/description"] = description

    spec: dict[str, Any] = {}
    cue: dict[str, Any] = {}
    if template is not None:
        cue["template"] = template
    if template_uri is not None:
        cue["templateURI"] = template_uri
    if cue:
        spec["schematic"] = {"cue": cue}
    if extension is not None:
        spec["extension"] = extension

    if capability_type == "component":
        if workload is not None:
            spec["workload"] = {"definition": {"apiVersion": workload[0], "kind": workload[1]}}
    else:
        if definition_ref is not None:
            spec["definitionRef"] = {"name": definition_ref}
        if applies_to is not None:
            spec["appliesToWorkloads"] = applies_to

    data = {
        "apiVersion": "core.oam.dev/v1beta1",
        "kind": "ComponentDefinition" if capability_type == "component" else "TraitDefinition",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "annotations": annotations,
            "labels": labels or {},
        },
        "spec": spec,
    }
    return RawDefinition.from_dict(data, CapabilityType(capability_type))


@pytest.fixture(autouse=True)
def reset_test_env(monkeypatch):
    """Reset environment and velacap logging state around each test."""
    monkeypatch.setenv("VELACAP_LOG_LEVEL", "DEBUG")
    clear_settings_cache()
    yield
    clear_settings_cache()
    root = logging.getLogger("velacap")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.propagate = True
    root.setLevel(logging.NOTSET)


@pytest.fixture
def make_definition():
    return build_definition


@pytest.fixture
def discovery() -> FakeDiscovery:
    return FakeDiscovery()


@pytest.fixture
def helm() -> RecordingHelm:
    return RecordingHelm()


@pytest.fixture
def make_source():
    return FakeDefinitionSource


@pytest.fixture
def make_fetcher(discovery, helm):
    """Build a `CapabilityFetcher` over a fake source with fake collaborators."""

    def _make(source, *, fetch=None, discovery_factory=None, installer=None):
        return CapabilityFetcher(
            client=source,
            discovery_factory=discovery_factory or (lambda: discovery),
            template_resolver=TemplateResolver(fetch=fetch),
            dependency_installer=DependencyInstaller(installer or helm),
        )

    return _make


@pytest.fixture
def webservice_template() -> str:
    return WEBSERVICE_TEMPLATE


@pytest.fixture
def scaler_template() -> str:
    return SCALER_TEMPLATE
