"""Tests for reference resolution and discovery error rewriting."""

from __future__ import annotations

import pytest

from velacap.capabilities.definitions import DefinitionReference
from velacap.capabilities.specs import ApiIdentity
from velacap.cluster.discovery import DiscoveryError
from velacap.exceptions import ReferenceResolutionError
from velacap.resolution.reference import ReferenceResolver, rewrite_discovery_error


def test_rewrite_discovery_error_no_matches():
    message = 'no matches for kind "Foo" in group "example.com"'

    assert rewrite_discovery_error(message) == 'expected provider: kind "Foo" in group "example.com"'


def test_rewrite_discovery_error_keeps_other_messages():
    assert rewrite_discovery_error("connection refused") == "connection refused"


def test_component_reference_uses_rest_mapping(make_definition, discovery):
    resolver = ReferenceResolver(lambda: discovery)
    raw = make_definition("webservice", workload=("apps/v1", "Deployment"))

    reference = resolver.definition_reference(raw)

    assert reference == DefinitionReference(name="deployments.apps", version="v1")


def test_component_with_unknown_kind_fails(make_definition, discovery):
    resolver = ReferenceResolver(lambda: discovery)
    raw = make_definition("foo", workload=("example.com/v1", "Foo"))

    with pytest.raises(ReferenceResolutionError) as exc_info:
        resolver.definition_reference(raw)

    assert exc_info.value.message == (
        "installing capability 'foo'... expected provider: "
        'kind "Foo" in version "example.com/v1"'
    )


def test_trait_reference_is_definition_ref(make_definition, discovery):
    resolver = ReferenceResolver(lambda: discovery)
    raw = make_definition("ingress", "trait", definition_ref="ingresses.networking.k8s.io")

    assert resolver.definition_reference(raw).name == "ingresses.networking.k8s.io"


def test_trait_without_reference_is_empty(make_definition, discovery):
    resolver = ReferenceResolver(lambda: discovery)
    raw = make_definition("annotations", "trait")

    assert resolver.definition_reference(raw) == DefinitionReference(name="")


def test_resolve_returns_api_identity(discovery):
    resolver = ReferenceResolver(lambda: discovery)

    identity = resolver.resolve(DefinitionReference(name="deployments.apps"), "webservice")

    assert identity == ApiIdentity(api_version="apps/v1", kind="Deployment")


@pytest.mark.parametrize("name", ["", "dummy"])
def test_placeholder_references_skip_discovery(name):
    created = []

    def factory():
        created.append(True)
        raise AssertionError("discovery must not be used")

    resolver = ReferenceResolver(factory)

    assert resolver.resolve(DefinitionReference(name=name), "labels") is None
    assert created == []


def test_resolve_unknown_resource_rewrites_message(discovery):
    resolver = ReferenceResolver(lambda: discovery)

    with pytest.raises(ReferenceResolutionError) as exc_info:
        resolver.resolve(DefinitionReference(name="foos.example.com"), "foo")

    assert exc_info.value.message == (
        "installing capability 'foo'... expected provider: example.com/, Resource=foos"
    )


def test_resolve_wraps_other_discovery_failures():
    class BrokenDiscovery:
        def kinds_for(self, gvr):
            raise DiscoveryError("unable to read API discovery: timeout")

    resolver = ReferenceResolver(BrokenDiscovery)

    with pytest.raises(ReferenceResolutionError) as exc_info:
        resolver.resolve(DefinitionReference(name="foos.example.com"), "foo")

    assert "installing capability 'foo'... unable to read API discovery" in exc_info.value.message


def test_discovery_handle_created_once(discovery):
    created = []

    def factory():
        created.append(True)
        return discovery

    resolver = ReferenceResolver(factory)
    resolver.resolve(DefinitionReference(name="deployments.apps"), "a")
    resolver.resolve(DefinitionReference(name="ingresses.networking.k8s.io"), "b")

    assert len(created) == 1
