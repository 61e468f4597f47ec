"""
Batch fetching of capabilities from the control plane.

`CapabilityFetcher` lists the definitions of one class in a namespace and runs
every item through the resolution pipeline:

    definition reference -> template -> dependency install -> API identity

A failing item is recorded as an `ItemError` and the batch moves on; only a
failed list call or cancellation stops the batch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from velacap.capabilities.definitions import RawDefinition
from velacap.capabilities.specs import Capability, CapabilityType
from velacap.cluster.client import DefinitionClient, DefinitionSource, load_api_client
from velacap.cluster.discovery import DiscoveryMapper, DiscoveryService
from velacap.config import Settings, get_settings
from velacap.context import CancelContext, background
from velacap.exceptions import (
    CapabilityError,
    DefinitionNotFoundError,
    ItemError,
    NotACapabilityError,
    OperationCancelledError,
    ResolutionStage,
)
from velacap.helm import HelmInstaller, IOStreams
from velacap.resolution.assembler import assemble_capability
from velacap.resolution.dependency import DependencyInstaller
from velacap.resolution.reference import ReferenceResolver
from velacap.resolution.template import TemplateResolver

logger = logging.getLogger(__name__)

DiscoveryFactory = Callable[[], DiscoveryService]


@dataclass
class FetchResult:
    """Successes and per-item failures of a batch, in list order."""

    capabilities: list[Capability] = field(default_factory=list)
    errors: list[ItemError] = field(default_factory=list)

    def extend(self, other: "FetchResult") -> None:
        self.capabilities.extend(other.capabilities)
        self.errors.extend(other.errors)

    @property
    def ok(self) -> bool:
        return not self.errors


class CapabilityFetcher:
    """Resolves definitions into capabilities, isolating per-item failures."""

    def __init__(
        self,
        client: DefinitionSource,
        discovery_factory: DiscoveryFactory,
        template_resolver: Optional[TemplateResolver] = None,
        dependency_installer: Optional[DependencyInstaller] = None,
        request_timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.discovery_factory = discovery_factory
        self.template_resolver = template_resolver or TemplateResolver()
        self.dependency_installer = dependency_installer or DependencyInstaller()
        self.request_timeout = request_timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CapabilityFetcher":
        """Build a fetcher wired to the cluster described by ``settings``."""
        settings = settings or get_settings()
        api_client = load_api_client(settings)
        return cls(
            client=DefinitionClient(api_client),
            discovery_factory=lambda: DiscoveryMapper(api_client),
            template_resolver=TemplateResolver(
                fetch_timeout=settings.template_fetch_timeout_seconds
            ),
            dependency_installer=DependencyInstaller(
                HelmInstaller(
                    helm_binary=settings.helm_binary,
                    streams=IOStreams.from_process(),
                    timeout=settings.helm_timeout_seconds,
                )
            ),
            request_timeout=settings.request_timeout_seconds,
        )

    def fetch(
        self,
        namespace: str,
        capability_type: CapabilityType,
        selector: Optional[str] = None,
        ctx: Optional[CancelContext] = None,
    ) -> FetchResult:
        """
        List and resolve every definition of ``capability_type`` in ``namespace``.

        Args:
            namespace: Namespace to list; must not be empty
            capability_type: Definition class to list
            selector: Label selector passed through to the list call
            ctx: Cancellation context

        Returns:
            FetchResult with one entry per listed definition

        Raises:
            ValueError: If ``namespace`` is empty
            ListFailedError: If the list call fails
            OperationCancelledError: If ``ctx`` is cancelled; ``partial`` holds
                the results accumulated so far
        """
        if not namespace:
            raise ValueError("namespace must not be empty")
        ctx = ctx or background()
        capability_type = CapabilityType(capability_type)

        result = FetchResult()
        references = ReferenceResolver(self.discovery_factory)
        try:
            definitions = self.client.list(
                namespace,
                capability_type,
                selector,
                timeout=ctx.timeout_for(self.request_timeout),
            )
            for raw in definitions:
                ctx.raise_if_cancelled()
                outcome = self.resolve_definition(raw, ctx, references)
                if isinstance(outcome, ItemError):
                    result.errors.append(outcome)
                else:
                    result.capabilities.append(outcome)
        except OperationCancelledError as exc:
            raise OperationCancelledError(exc.message, partial=result) from exc

        logger.info(
            "Fetched %d %s capabilities from %s (%d failed)",
            len(result.capabilities),
            capability_type,
            namespace,
            len(result.errors),
        )
        return result

    def fetch_components(
        self, namespace: str, selector: Optional[str] = None, ctx: Optional[CancelContext] = None
    ) -> FetchResult:
        return self.fetch(namespace, CapabilityType.COMPONENT, selector, ctx)

    def fetch_traits(
        self, namespace: str, selector: Optional[str] = None, ctx: Optional[CancelContext] = None
    ) -> FetchResult:
        return self.fetch(namespace, CapabilityType.TRAIT, selector, ctx)

    def fetch_all(
        self, namespace: str, selector: Optional[str] = None, ctx: Optional[CancelContext] = None
    ) -> FetchResult:
        """Components then traits, merged into one result."""
        result = self.fetch_components(namespace, selector, ctx)
        try:
            result.extend(self.fetch_traits(namespace, selector, ctx))
        except OperationCancelledError as exc:
            if exc.partial is not None:
                result.extend(exc.partial)
            raise OperationCancelledError(exc.message, partial=result) from exc
        return result

    def resolve_definition(
        self,
        raw: RawDefinition,
        ctx: Optional[CancelContext] = None,
        references: Optional[ReferenceResolver] = None,
    ) -> Union[Capability, ItemError]:
        """
        Run one definition through the pipeline.

        Per-item failures are returned as an `ItemError` tagged with the stage
        that failed. Cancellation is the only exception that propagates; an
        error raised once the context is cancelled is reported as cancellation.
        """
        ctx = ctx or background()
        references = references or ReferenceResolver(self.discovery_factory)

        stage = ResolutionStage.REFERENCE
        try:
            reference = references.definition_reference(raw)

            stage = ResolutionStage.TEMPLATE
            resolved = self.template_resolver.resolve(raw.extension, raw.schematic, raw.name, ctx)

            stage = ResolutionStage.DEPENDENCY
            self.dependency_installer.ensure_installed(resolved.install, raw.name, ctx)

            # The chart installed above may be what serves the referenced API.
            stage = ResolutionStage.REFERENCE
            api_identity = references.resolve(reference, raw.name)
        except OperationCancelledError:
            raise
        except CapabilityError as exc:
            # A timeout caused by the deadline is cancellation, not a broken definition.
            ctx.raise_if_cancelled()
            item_error = ItemError(
                name=raw.name,
                capability_type=raw.capability_type,
                stage=stage,
                error=exc,
            )
            logger.warning(
                "%s",
                item_error,
                extra={"capability": raw.name, "stage": str(stage), "code": exc.code.value},
            )
            return item_error

        return assemble_capability(raw, reference, resolved, api_identity)

    def resolve_named(
        self,
        namespace: str,
        name: str,
        ctx: Optional[CancelContext] = None,
    ) -> Capability:
        """
        Resolve one named capability, looking for a component first, then a trait.

        Raises:
            NotACapabilityError: If neither class has a definition named ``name``
            DefinitionLookupError: If a lookup fails for a reason other than NotFound
            CapabilityError: The per-item error if the definition fails to resolve
        """
        ctx = ctx or background()
        raw = None
        for capability_type in (CapabilityType.COMPONENT, CapabilityType.TRAIT):
            try:
                raw = self.client.get(
                    namespace,
                    capability_type,
                    name,
                    timeout=ctx.timeout_for(self.request_timeout),
                )
                break
            except DefinitionNotFoundError:
                logger.debug("No %s definition named %s in %s", capability_type, name, namespace)
        if raw is None:
            raise NotACapabilityError(name)

        outcome = self.resolve_definition(raw, ctx)
        if isinstance(outcome, ItemError):
            raise outcome.error
        return outcome
