"""
velacap Exception Classes

Structured error classes with error codes, contextual messages, and suggestions.
Fatal errors abort the enclosing operation; per-item errors are collected by the
batch fetcher as `ItemError` entries.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from velacap.capabilities.specs import CapabilityType
    from velacap.resolution.batch import FetchResult


class CapabilityErrorCode(Enum):
    """Error codes for velacap exceptions."""

    # Cluster access errors (CAP-001 to CAP-099), fatal
    LIST_FAILED = "CAP-001"
    LOOKUP_FAILED = "CAP-002"
    CLUSTER_CONFIG = "CAP-003"

    # Per-item resolution errors (CAP-100 to CAP-199)
    REFERENCE_RESOLUTION_FAILED = "CAP-100"
    TEMPLATE_MISSING = "CAP-101"
    TEMPLATE_FETCH_FAILED = "CAP-102"
    INVALID_DEFINITION = "CAP-103"
    PARAMETER_EXTRACTION_FAILED = "CAP-104"
    DEPENDENCY_INSTALL_FAILED = "CAP-105"

    # Single-item lookup errors (CAP-200 to CAP-299)
    DEFINITION_NOT_FOUND = "CAP-200"
    NOT_A_CAPABILITY = "CAP-201"

    # Control flow (CAP-300 to CAP-399)
    CANCELLED = "CAP-300"


class CapabilityError(Exception):
    """
    Base exception for velacap errors.

    All velacap exceptions include:
    - Error code for searchability
    - Contextual error message
    - Suggested actions to resolve

    Example:
        raise CapabilityError(
            message="template not exist in definition 'webservice'",
            code=CapabilityErrorCode.TEMPLATE_MISSING,
            suggestions=["Set spec.schematic.cue.template on the definition"],
        )
    """

    def __init__(
        self,
        message: str,
        code: CapabilityErrorCode,
        suggestions: Optional[List[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        """
        Initialize CapabilityError.

        Args:
            message: Clear description of what went wrong
            code: Error code from CapabilityErrorCode enum
            suggestions: List of suggested actions to resolve the error
            cause: Original exception that caused this error (if wrapping)
        """
        self.message = message
        self.code = code
        self.suggestions = suggestions or []
        self.cause = cause

        super().__init__(self._format_message(message))

    def _format_message(self, message: str) -> str:
        """Format error message with code, suggestions, and cause."""

        lines = [
            f"{self.__class__.__name__} ({self.code.value}): {message}",
        ]

        if self.suggestions:
            lines.append("")
            lines.append("Suggested actions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        if self.cause:
            lines.append("")
            lines.append(f"Caused by: {type(self.cause).__name__}: {str(self.cause)}")

        return "\n".join(lines)


# Fatal errors


class ListFailedError(CapabilityError):
    """Raised when listing definitions from the control plane fails."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.LIST_FAILED,
            suggestions=[
                "Check that the cluster is reachable with the current kubeconfig",
                "Check that your credentials may list definitions in the namespace",
            ],
            cause=cause,
        )


class DefinitionLookupError(CapabilityError):
    """Raised when fetching a single definition fails for a reason other than NotFound."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.LOOKUP_FAILED,
            cause=cause,
        )


class ClusterConfigError(CapabilityError):
    """Raised when no usable cluster configuration can be loaded."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.CLUSTER_CONFIG,
            suggestions=[
                "Set VELACAP_KUBECONFIG or KUBECONFIG to a valid kubeconfig file",
                "Set VELACAP_KUBE_CONTEXT to select a context",
            ],
            cause=cause,
        )


# Per-item errors


class ReferenceResolutionError(CapabilityError):
    """Raised when a definition's reference cannot be mapped to an API identity."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.REFERENCE_RESOLUTION_FAILED,
            cause=cause,
        )


class TemplateMissingError(CapabilityError):
    """Raised when no template text can be obtained for a definition."""

    def __init__(self, message: str, suggestions: Optional[List[str]] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.TEMPLATE_MISSING,
            suggestions=suggestions,
        )


class TemplateFetchError(CapabilityError):
    """Raised when a remote template URI cannot be fetched."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.TEMPLATE_FETCH_FAILED,
            cause=cause,
        )


class InvalidDefinitionError(CapabilityError):
    """Raised when a definition's raw extension payload cannot be decoded."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.INVALID_DEFINITION,
            cause=cause,
        )


class ParameterExtractionError(CapabilityError):
    """Raised when the parameter schema cannot be extracted from a template."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.PARAMETER_EXTRACTION_FAILED,
            cause=cause,
        )


class DependencyInstallError(CapabilityError):
    """Raised when a definition's chart dependency cannot be installed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=message,
            code=CapabilityErrorCode.DEPENDENCY_INSTALL_FAILED,
            suggestions=[
                "Check that the helm binary is installed and on PATH",
                "Check that the chart repository URL and version exist",
            ],
            cause=cause,
        )


# Single-item lookup errors


class DefinitionNotFoundError(CapabilityError):
    """Raised when a named definition does not exist in a namespace."""

    def __init__(self, message: str):
        super().__init__(message=message, code=CapabilityErrorCode.DEFINITION_NOT_FOUND)


class NotACapabilityError(CapabilityError):
    """Raised when a name is neither a component nor a trait definition."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(
            message=f"{name} is not a valid workload type or trait",
            code=CapabilityErrorCode.NOT_A_CAPABILITY,
            suggestions=["Run `velacap list` to see the available capabilities"],
        )


class OperationCancelledError(CapabilityError):
    """Raised when the caller's context is cancelled or its deadline passes.

    ``partial`` holds whatever a batch operation had accumulated before it
    stopped, or ``None`` when nothing was in progress.
    """

    def __init__(self, message: str = "operation cancelled", partial: Optional[FetchResult] = None):
        self.partial = partial
        super().__init__(message=message, code=CapabilityErrorCode.CANCELLED)


class ResolutionStage(StrEnum):
    """Pipeline stage at which a per-item error was raised."""

    REFERENCE = "reference"
    TEMPLATE = "template"
    DEPENDENCY = "dependency"


@dataclass(frozen=True)
class ItemError:
    """A per-item failure tagged with the offending definition and stage."""

    name: str
    capability_type: CapabilityType
    stage: ResolutionStage
    error: CapabilityError

    def __str__(self) -> str:
        return f"{self.stage} {self.capability_type} `{self.name}` failed: {self.error.message}"
