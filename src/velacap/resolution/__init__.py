"""Definition resolution pipeline."""

from velacap.resolution.assembler import assemble_capability, get_description
from velacap.resolution.batch import CapabilityFetcher, FetchResult
from velacap.resolution.dependency import DependencyInstaller
from velacap.resolution.reference import ReferenceResolver, rewrite_discovery_error
from velacap.resolution.template import ResolvedTemplate, TemplateResolver

__all__ = [
    "CapabilityFetcher",
    "DependencyInstaller",
    "FetchResult",
    "ReferenceResolver",
    "ResolvedTemplate",
    "TemplateResolver",
    "assemble_capability",
    "get_description",
    "rewrite_discovery_error",
]
