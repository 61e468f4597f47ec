"""
Local capability cache.

Resolved capability templates are written under a local directory so that a
CLI can offer them without going back to the cluster:

    <root>/components/<name>.cue
    <root>/traits/<name>.cue
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from velacap.capabilities.specs import Capability, CapabilityType
from velacap.constants import DEFAULT_NAMESPACE, TEMPLATE_FILE_SUFFIX
from velacap.context import CancelContext, background
from velacap.exceptions import ItemError, OperationCancelledError
from velacap.resolution.batch import CapabilityFetcher, FetchResult

logger = logging.getLogger(__name__)

_SUBDIRS = {
    CapabilityType.COMPONENT: "components",
    CapabilityType.TRAIT: "traits",
}


class LocalDefinitionStore:
    """Filesystem store of capability templates, one file per name."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).expanduser()

    def path_for(self, capability_type: CapabilityType, name: str) -> Path:
        if not name or "/" in name or "\\" in name or name in (".", ".."):
            raise ValueError(f"invalid capability name: {name!r}")
        return self.root / _SUBDIRS[CapabilityType(capability_type)] / f"{name}{TEMPLATE_FILE_SUFFIX}"

    def write(self, capability: Capability) -> Path:
        """Write the capability's template, replacing any previous version."""
        path = self.path_for(capability.type, capability.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(capability.template, encoding="utf-8")
        logger.debug("Wrote %s %s to %s", capability.type, capability.name, path)
        return path

    def write_all(self, capabilities: Iterable[Capability]) -> list[Path]:
        return [self.write(capability) for capability in capabilities]

    def read_template(self, capability_type: CapabilityType, name: str) -> Optional[str]:
        path = self.path_for(capability_type, name)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def list_names(self, capability_type: CapabilityType) -> list[str]:
        directory = self.root / _SUBDIRS[CapabilityType(capability_type)]
        if not directory.exists():
            return []
        return sorted(p.stem for p in directory.glob(f"*{TEMPLATE_FILE_SUFFIX}") if p.is_file())


@dataclass
class SyncResult:
    capabilities: list[Capability] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def format_warning(item_error: ItemError) -> str:
    return (
        f"WARN: {item_error}, you will be unable to use this "
        f"{item_error.capability_type} capability"
    )


def sync_definitions_to_local(
    fetcher: CapabilityFetcher,
    store: LocalDefinitionStore,
    namespace: str = DEFAULT_NAMESPACE,
    ctx: Optional[CancelContext] = None,
) -> SyncResult:
    """
    Fetch all components and traits and write them to ``store``.

    Both classes are fetched before anything is written, so a list failure
    leaves the store untouched. Per-item failures become warning lines. On
    cancellation nothing is written and the raised error's ``partial`` holds
    the components and traits resolved so far.
    """
    ctx = ctx or background()
    components = fetcher.fetch_components(namespace, ctx=ctx)
    try:
        traits = fetcher.fetch_traits(namespace, ctx=ctx)
    except OperationCancelledError as exc:
        partial = FetchResult(list(components.capabilities), list(components.errors))
        if exc.partial is not None:
            partial.extend(exc.partial)
        raise OperationCancelledError(exc.message, partial=partial) from exc

    result = SyncResult()
    for fetched in (components, traits):
        result.warnings.extend(format_warning(error) for error in fetched.errors)
        store.write_all(fetched.capabilities)
        result.capabilities.extend(fetched.capabilities)

    logger.info(
        "Synced %d capabilities from %s to %s (%d warnings)",
        len(result.capabilities),
        namespace,
        store.root,
        len(result.warnings),
    )
    return result


def sync_definition_to_local(
    fetcher: CapabilityFetcher,
    store: LocalDefinitionStore,
    name: str,
    namespace: str = DEFAULT_NAMESPACE,
    ctx: Optional[CancelContext] = None,
) -> Capability:
    """
    Resolve one capability by name and write it to ``store``.

    Raises:
        NotACapabilityError: If ``name`` is neither a component nor a trait
    """
    capability = fetcher.resolve_named(namespace, name, ctx)
    store.write(capability)
    return capability
