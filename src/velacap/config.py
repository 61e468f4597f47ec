"""
Configuration for velacap.

Settings are loaded from environment variables (prefixed ``VELACAP_``) and an
optional ``.env`` file.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from velacap.constants import DEFAULT_NAMESPACE


class Settings(BaseSettings):
    """Centralized configuration for velacap using environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VELACAP_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Cluster access ---
    kubeconfig: Optional[str] = Field(
        default=None, description="Path to kubeconfig. If None, the client default is used."
    )
    kube_context: Optional[str] = Field(default=None, description="Kubeconfig context to use")
    default_namespace: str = Field(
        default=DEFAULT_NAMESPACE, description="Namespace used when none is given"
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="Timeout for control-plane requests"
    )

    # --- Template resolution ---
    template_fetch_timeout_seconds: float = Field(
        default=10.0, description="Timeout for fetching remote template URIs"
    )

    # --- Dependency installation ---
    helm_binary: str = Field(default="helm", description="Helm executable name or path")
    helm_timeout_seconds: float = Field(
        default=300.0, description="Timeout for a single helm install"
    )

    # --- Local sync cache ---
    definitions_dir: Path = Field(
        default_factory=lambda: Path.home() / ".vela" / "capabilities",
        description="Directory where synced capability templates are written",
    )

    @field_validator("default_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("default_namespace cannot be empty")
        return v.strip()

    @field_validator("request_timeout_seconds", "template_fetch_timeout_seconds", "helm_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for tests)."""
    get_settings.cache_clear()
