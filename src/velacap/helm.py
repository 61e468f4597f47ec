"""
Helm chart installation through the ``helm`` binary.

Capabilities may declare a chart that must be present before they can be used
(for example an operator that serves the capability's API). The installer
checks for an existing deployed release first so repeated calls are cheap.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from typing import IO, Any, Optional

import yaml

from velacap.capabilities.specs import HelmChart
from velacap.context import CancelContext, background

logger = logging.getLogger(__name__)


class HelmError(Exception):
    """Raised when a helm command fails."""


@dataclass(frozen=True)
class IOStreams:
    """Standard streams handed to the helm process."""

    stdin: Optional[IO[Any]] = None
    stdout: Optional[IO[Any]] = None
    stderr: Optional[IO[Any]] = None

    @classmethod
    def from_process(cls) -> "IOStreams":
        return cls(stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr)


def chart_reference(chart: HelmChart) -> list[str]:
    """Chart argument plus the flags that locate it."""
    if chart.url:
        return [chart.name, "--repo", chart.url]
    if chart.repo:
        return [f"{chart.repo}/{chart.name}"]
    return [chart.name]


class HelmInstaller:
    """Install charts with ``helm upgrade --install``."""

    def __init__(
        self,
        helm_binary: str = "helm",
        streams: Optional[IOStreams] = None,
        timeout: float = 300.0,
    ) -> None:
        self.helm_binary = helm_binary
        self.streams = streams or IOStreams()
        self.timeout = timeout

    def _namespace_args(self, chart: HelmChart) -> list[str]:
        return ["-n", chart.namespace] if chart.namespace else []

    def is_installed(self, chart: HelmChart, ctx: Optional[CancelContext] = None) -> bool:
        """Return True when a release named after the chart is deployed."""
        ctx = ctx or background()
        command = [
            self.helm_binary,
            "status",
            chart.name,
            *self._namespace_args(chart),
            "-o",
            "json",
        ]
        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=ctx.timeout_for(self.timeout),
            )
        except FileNotFoundError as exc:
            raise HelmError(f"helm binary not found: {self.helm_binary}") from exc
        except subprocess.TimeoutExpired as exc:
            raise HelmError(f"helm status {chart.name} timed out") from exc

        if result.returncode != 0:
            return False
        try:
            status = json.loads(result.stdout or "{}")
        except json.JSONDecodeError:
            logger.debug("Unparseable helm status output for %s", chart.name)
            return False
        return (status.get("info") or {}).get("status") == "deployed"

    def install(self, chart: HelmChart, ctx: Optional[CancelContext] = None) -> bool:
        """
        Install ``chart`` unless it is already deployed.

        Returns:
            True if helm ran an install, False if the release already existed

        Raises:
            HelmError: If helm is missing, times out or exits non-zero
        """
        ctx = ctx or background()
        if self.is_installed(chart, ctx):
            logger.info("Helm release %s already deployed, skipping install", chart.name)
            return False

        command = [self.helm_binary, "upgrade", "--install", chart.name, *chart_reference(chart)]
        if chart.version:
            command += ["--version", chart.version]
        if chart.namespace:
            command += ["-n", chart.namespace, "--create-namespace"]

        values_path = None
        if chart.values:
            with tempfile.NamedTemporaryFile(
                "w", suffix=".yaml", prefix="velacap-values-", delete=False
            ) as handle:
                yaml.safe_dump(chart.values, handle, sort_keys=False)
                values_path = handle.name
            command += ["-f", values_path]

        logger.info("Installing helm chart %s %s", chart.name, chart.version)
        try:
            subprocess.run(
                command,
                check=True,
                stdin=self.streams.stdin,
                stdout=self.streams.stdout,
                stderr=self.streams.stderr,
                timeout=ctx.timeout_for(self.timeout),
            )
        except FileNotFoundError as exc:
            raise HelmError(f"helm binary not found: {self.helm_binary}") from exc
        except subprocess.TimeoutExpired as exc:
            raise HelmError(f"helm install {chart.name} timed out") from exc
        except subprocess.CalledProcessError as exc:
            raise HelmError(f"helm exited with status {exc.returncode}") from exc
        finally:
            if values_path:
                os.unlink(values_path)
        return True
