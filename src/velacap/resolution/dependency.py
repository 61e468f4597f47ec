"""Install the chart a capability depends on before it is offered."""

from __future__ import annotations

import logging
from typing import Optional

from velacap.capabilities.specs import HelmChart
from velacap.context import CancelContext, background
from velacap.exceptions import DependencyInstallError
from velacap.helm import HelmError, HelmInstaller

logger = logging.getLogger(__name__)


class DependencyInstaller:
    def __init__(self, installer: Optional[HelmInstaller] = None) -> None:
        self.installer = installer or HelmInstaller()

    def ensure_installed(
        self,
        chart: Optional[HelmChart],
        definition_name: str,
        ctx: Optional[CancelContext] = None,
    ) -> None:
        """Install ``chart`` for ``definition_name``; a None chart is a no-op.

        Raises:
            DependencyInstallError: If helm fails
        """
        if chart is None:
            return
        ctx = ctx or background()
        try:
            self.installer.install(chart, ctx)
        except HelmError as exc:
            raise DependencyInstallError(
                f"unable to install helm chart dependency {chart.name}"
                f"({chart.version} from {chart.url}) for this capability "
                f"'{definition_name}': {exc}",
                cause=exc,
            ) from exc
