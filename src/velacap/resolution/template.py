"""
Template resolution.

A definition can carry its CUE template in three places. They are consulted in
a fixed order and the first one that yields text wins:

1. ``spec.schematic.cue.template``
2. ``spec.extension.template`` (legacy inline field)
3. a template URI, from ``spec.schematic.cue.templateURI`` or
   ``spec.extension.templateURI``, fetched once

Once text is resolved the URI is dropped, so a resolved capability never
carries both.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from velacap.capabilities.definitions import Schematic
from velacap.capabilities.specs import HelmChart, Parameter
from velacap.context import CancelContext, background
from velacap.cue import CueError, get_parameters
from velacap.exceptions import (
    CapabilityError,
    InvalidDefinitionError,
    ParameterExtractionError,
    TemplateFetchError,
    TemplateMissingError,
)
from velacap.fetch import http_get

logger = logging.getLogger(__name__)

TemplateFetcher = Callable[..., str]


@dataclass(frozen=True)
class ResolvedTemplate:
    template: str
    parameters: list[Parameter] = field(default_factory=list)
    template_uri: str = ""
    install: Optional[HelmChart] = None


def decode_extension(extension: Any, name: str) -> dict[str, Any]:
    """Return the extension payload as a dict; absent payloads decode to ``{}``.

    Raises:
        InvalidDefinitionError: If the payload is not a JSON object
    """
    if extension is None:
        return {}
    if isinstance(extension, (str, bytes)):
        try:
            extension = json.loads(extension) if extension else {}
        except json.JSONDecodeError as exc:
            raise InvalidDefinitionError(
                f"invalid extension in definition '{name}': {exc}", cause=exc
            ) from exc
    if not isinstance(extension, dict):
        raise InvalidDefinitionError(
            f"invalid extension in definition '{name}': expected an object, "
            f"got {type(extension).__name__}"
        )
    return extension


def decode_install(extension: dict[str, Any], name: str) -> Optional[HelmChart]:
    install = extension.get("install")
    if not install:
        return None
    if not isinstance(install, dict):
        raise InvalidDefinitionError(f"invalid install section in definition '{name}'")
    helm = install.get("helm")
    if not helm:
        return None
    if not isinstance(helm, dict):
        raise InvalidDefinitionError(f"invalid helm install section in definition '{name}'")
    return HelmChart.from_dict(helm)


class TemplateResolver:
    """Chooses a definition's template source and extracts its parameters."""

    def __init__(self, fetch: Optional[TemplateFetcher] = None, fetch_timeout: float = 10.0) -> None:
        self._fetch = fetch or http_get
        self.fetch_timeout = fetch_timeout

    def resolve(
        self,
        extension: Any,
        schematic: Optional[Schematic],
        name: str,
        ctx: Optional[CancelContext] = None,
    ) -> ResolvedTemplate:
        """
        Resolve the template text, parameter schema and install section.

        Raises:
            InvalidDefinitionError: If the extension payload is malformed
            TemplateFetchError: If the template URI cannot be fetched
            TemplateMissingError: If no source yields template text
            ParameterExtractionError: If the template's parameters cannot be read
        """
        ctx = ctx or background()
        ext = decode_extension(extension, name)
        install = decode_install(ext, name)

        template = ""
        template_uri = ""
        if schematic is not None and schematic.cue_template:
            template = schematic.cue_template
        elif ext.get("template"):
            template = str(ext["template"])
        else:
            if schematic is not None and schematic.cue_template_uri:
                template_uri = schematic.cue_template_uri
            elif ext.get("templateURI"):
                template_uri = str(ext["templateURI"])
            if template_uri:
                template = self._fetch_template(template_uri, name, ctx)

        if not template:
            raise TemplateMissingError(
                f"template not exist in definition '{name}'",
                suggestions=[
                    "Set spec.schematic.cue.template on the definition",
                    "Or point spec.schematic.cue.templateURI at a reachable template",
                ],
            )

        try:
            parameters = get_parameters(template)
        except CueError as exc:
            raise ParameterExtractionError(
                f"failed to extract parameters of '{name}': {exc}", cause=exc
            ) from exc

        return ResolvedTemplate(template=template, parameters=parameters, install=install)

    def _fetch_template(self, uri: str, name: str, ctx: CancelContext) -> str:
        logger.debug("Fetching template of %s from %s", name, uri)
        try:
            return self._fetch(uri, timeout=self.fetch_timeout, ctx=ctx)
        except CapabilityError:
            raise
        except Exception as exc:
            raise TemplateFetchError(
                f"failed to fetch template of '{name}' from {uri}: {exc}", cause=exc
            ) from exc
