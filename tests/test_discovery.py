"""Tests for the discovery mapper."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from velacap.cluster import discovery as discovery_module
from velacap.cluster.discovery import (
    DiscoveryError,
    DiscoveryMapper,
    GroupVersionKind,
    GroupVersionResource,
    NoMatchError,
    parse_group_resource,
    parse_group_version,
)


def _resource(group, version, kind, name, preferred=True):
    return SimpleNamespace(
        group=group, api_version=version, kind=kind, name=name, preferred=preferred
    )


RESOURCES = [
    _resource("apps", "v1", "Deployment", "deployments"),
    _resource("apps", "v1", "Deployment", "deployments/scale"),
    _resource("apps", "v1", "DeploymentList", "deployments"),
    _resource("", "v1", "Pod", "pods"),
    _resource("autoscaling", "v1", "HorizontalPodAutoscaler", "horizontalpodautoscalers", False),
    _resource("autoscaling", "v2", "HorizontalPodAutoscaler", "horizontalpodautoscalers"),
]


class FakeResources:
    def __init__(self):
        self.searches = []

    def search(self, **kwargs):
        self.searches.append(kwargs)
        results = []
        for resource in RESOURCES:
            if "group" in kwargs and resource.group != kwargs["group"]:
                continue
            if "api_version" in kwargs and resource.api_version != kwargs["api_version"]:
                continue
            if "kind" in kwargs and resource.kind != kwargs["kind"]:
                continue
            if "name" in kwargs and resource.name.split("/")[0] != kwargs["name"]:
                continue
            results.append(resource)
        return results


@pytest.fixture
def mapper(monkeypatch):
    resources = FakeResources()

    class FakeDynamicClient:
        def __init__(self, api_client):
            self.resources = resources

    monkeypatch.setattr(discovery_module, "DynamicClient", FakeDynamicClient)
    return DiscoveryMapper(api_client=None)


def test_parse_helpers():
    assert parse_group_resource("deployments.apps") == ("apps", "deployments")
    assert parse_group_resource("ingresses.networking.k8s.io") == ("networking.k8s.io", "ingresses")
    assert parse_group_resource("pods") == ("", "pods")
    assert parse_group_version("apps/v1") == ("apps", "v1")
    assert parse_group_version("v1") == ("", "v1")


def test_group_version_resource_formatting():
    gvr = GroupVersionResource("example.com", "", "foos")

    assert str(gvr) == "example.com/, Resource=foos"
    assert gvr.group_resource == "foos.example.com"
    assert GroupVersionResource("", "v1", "pods").group_resource == "pods"


def test_rest_mapping(mapper):
    gvr = mapper.rest_mapping(GroupVersionKind("apps", "v1", "Deployment"))

    assert gvr == GroupVersionResource("apps", "v1", "deployments")
    assert gvr.group_resource == "deployments.apps"


def test_rest_mapping_core_group_searches_legacy_prefix(mapper):
    gvr = mapper.rest_mapping(GroupVersionKind("", "v1", "Pod"))

    assert gvr.group_resource == "pods"
    assert mapper._dynamic.resources.searches[-1]["prefix"] == "api"


def test_rest_mapping_no_match(mapper):
    with pytest.raises(NoMatchError) as exc_info:
        mapper.rest_mapping(GroupVersionKind("example.com", "v1", "Foo"))

    assert str(exc_info.value) == 'no matches for kind "Foo" in version "example.com/v1"'


def test_kinds_for_prefers_preferred_version(mapper):
    kinds = mapper.kinds_for(GroupVersionResource("autoscaling", "", "horizontalpodautoscalers"))

    assert kinds[0] == GroupVersionKind("autoscaling", "v2", "HorizontalPodAutoscaler")
    assert kinds[0].api_version == "autoscaling/v2"


def test_kinds_for_no_match(mapper):
    with pytest.raises(NoMatchError) as exc_info:
        mapper.kinds_for(GroupVersionResource("example.com", "", "foos"))

    assert str(exc_info.value) == "no matches for example.com/, Resource=foos"


def test_discovery_failure_is_wrapped(monkeypatch):
    class BrokenDynamicClient:
        def __init__(self, api_client):
            raise ConnectionError("connection refused")

    monkeypatch.setattr(discovery_module, "DynamicClient", BrokenDynamicClient)

    with pytest.raises(DiscoveryError) as exc_info:
        DiscoveryMapper(api_client=None)

    assert "connection refused" in str(exc_info.value)
