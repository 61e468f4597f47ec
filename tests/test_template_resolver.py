"""Tests for template source selection and parameter extraction."""

from __future__ import annotations

import pytest

from velacap.capabilities.definitions import Schematic
from velacap.exceptions import (
    InvalidDefinitionError,
    OperationCancelledError,
    ParameterExtractionError,
    TemplateFetchError,
    TemplateMissingError,
)
from velacap.resolution.template import TemplateResolver


class CountingFetcher:
    def __init__(self, body: str = "", error: Exception | None = None) -> None:
        self.body = body
        self.error = error
        self.calls: list[str] = []

    def __call__(self, uri: str, *, timeout: float, ctx=None) -> str:
        self.calls.append(uri)
        if self.error is not None:
            raise self.error
        return self.body


def test_schematic_template_wins_without_fetching(webservice_template, scaler_template):
    fetcher = CountingFetcher(body=scaler_template)
    resolver = TemplateResolver(fetch=fetcher)
    schematic = Schematic(
        cue_template=webservice_template,
        cue_template_uri="https://example.com/ignored.cue",
    )

    resolved = resolver.resolve(
        {"template": scaler_template, "templateURI": "https://example.com/other.cue"},
        schematic,
        "webservice",
    )

    assert resolved.template == webservice_template
    assert resolved.template_uri == ""
    assert fetcher.calls == []
    assert [p.name for p in resolved.parameters] == ["image", "port"]


def test_extension_template_used_when_schematic_empty(scaler_template):
    fetcher = CountingFetcher()
    resolver = TemplateResolver(fetch=fetcher)

    resolved = resolver.resolve({"template": scaler_template}, Schematic(), "scaler")

    assert resolved.template == scaler_template
    assert fetcher.calls == []


def test_template_uri_fetched_exactly_once(scaler_template):
    fetcher = CountingFetcher(body=scaler_template)
    resolver = TemplateResolver(fetch=fetcher)
    schematic = Schematic(cue_template_uri="https://example.com/scaler.cue")

    resolved = resolver.resolve(None, schematic, "scaler")

    assert fetcher.calls == ["https://example.com/scaler.cue"]
    assert resolved.template == scaler_template
    assert resolved.template_uri == ""
    assert resolved.parameters[0].name == "replicas"


def test_extension_template_uri_is_fetched(scaler_template):
    fetcher = CountingFetcher(body=scaler_template)
    resolver = TemplateResolver(fetch=fetcher)

    resolver.resolve({"templateURI": "https://example.com/legacy.cue"}, None, "scaler")

    assert fetcher.calls == ["https://example.com/legacy.cue"]


def test_no_template_source_raises_missing():
    resolver = TemplateResolver(fetch=CountingFetcher())

    with pytest.raises(TemplateMissingError) as exc_info:
        resolver.resolve({}, None, "empty")

    assert "template not exist in definition 'empty'" in exc_info.value.message


def test_empty_fetched_body_raises_missing():
    resolver = TemplateResolver(fetch=CountingFetcher(body=""))

    with pytest.raises(TemplateMissingError):
        resolver.resolve(None, Schematic(cue_template_uri="https://example.com/empty.cue"), "x")


def test_fetch_failure_is_wrapped():
    resolver = TemplateResolver(fetch=CountingFetcher(error=ConnectionError("refused")))

    with pytest.raises(TemplateFetchError) as exc_info:
        resolver.resolve(None, Schematic(cue_template_uri="https://example.com/x.cue"), "x")

    assert isinstance(exc_info.value.cause, ConnectionError)


def test_fetch_cancellation_propagates_unwrapped():
    resolver = TemplateResolver(fetch=CountingFetcher(error=OperationCancelledError()))

    with pytest.raises(OperationCancelledError):
        resolver.resolve(None, Schematic(cue_template_uri="https://example.com/x.cue"), "x")


@pytest.mark.parametrize("extension", [["template"], "not json", 42])
def test_malformed_extension_raises_invalid(extension):
    resolver = TemplateResolver(fetch=CountingFetcher())

    with pytest.raises(InvalidDefinitionError):
        resolver.resolve(extension, None, "broken")


def test_extension_as_json_text(scaler_template):
    import json

    resolver = TemplateResolver(fetch=CountingFetcher())

    resolved = resolver.resolve(json.dumps({"template": scaler_template}), None, "scaler")

    assert resolved.template == scaler_template


def test_bad_template_raises_parameter_extraction_error():
    resolver = TemplateResolver(fetch=CountingFetcher())

    with pytest.raises(ParameterExtractionError) as exc_info:
        resolver.resolve(None, Schematic(cue_template="output: {}\nparameter: {"), "broken")

    assert "expected '}'" in exc_info.value.message


def test_install_section_is_decoded(scaler_template):
    resolver = TemplateResolver(fetch=CountingFetcher())
    extension = {
        "install": {
            "helm": {
                "repo": "kedacore",
                "name": "keda",
                "url": "https://kedacore.github.io/charts",
                "version": "2.0.0",
                "namespace": "keda",
                "values": {"watchNamespace": ""},
            }
        }
    }

    resolved = resolver.resolve(extension, Schematic(cue_template=scaler_template), "keda-scaler")

    assert resolved.install is not None
    assert resolved.install.name == "keda"
    assert resolved.install.url == "https://kedacore.github.io/charts"
    assert resolved.install.namespace == "keda"
    assert resolved.install.values == {"watchNamespace": ""}


def test_install_section_must_be_object(scaler_template):
    resolver = TemplateResolver(fetch=CountingFetcher())

    with pytest.raises(InvalidDefinitionError):
        resolver.resolve({"install": "helm"}, Schematic(cue_template=scaler_template), "x")
