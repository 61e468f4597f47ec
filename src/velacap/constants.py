"""Well-known names shared across velacap."""

from __future__ import annotations

# Namespace holding the system-wide capability definitions.
DEFAULT_NAMESPACE = "vela-system"

DESCRIPTION_UNDEFINED = "description not defined"
ANNOTATION_DESCRIPTION = "definition.oam.dev/description"

DEFINITION_GROUP = "core.oam.dev"
DEFINITION_VERSION = "v1beta1"
COMPONENT_DEFINITION_PLURAL = "componentdefinitions"
TRAIT_DEFINITION_PLURAL = "traitdefinitions"

# Placeholder reference name used by traits that do not back onto an API.
DUMMY_REFERENCE = "dummy"

TEMPLATE_FILE_SUFFIX = ".cue"

# Workload type telling the control plane to detect the workload kind itself.
AUTODETECT_WORKLOAD_TYPE = "autodetects.core.oam.dev"
