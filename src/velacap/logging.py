"""
Logging setup for velacap.

Provides a single `setup_logging` entry point for the CLI and library users, a
JSON formatter for machine-readable output, and optional log files whose path
may contain a ``{YMD}`` date placeholder.
"""

from __future__ import annotations

import logging
import os
import string
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pythonjsonlogger import jsonlogger

logger = logging.getLogger(__name__)

_KNOWN_PLACEHOLDERS = {"YMD", "YM", "Y"}


class LoggingSettings(BaseSettings):
    """Logging configuration loaded from ``VELACAP_LOG_*`` variables."""

    model_config = SettingsConfigDict(
        env_prefix="VELACAP_LOG_",
        case_sensitive=False,
        extra="ignore",
    )

    level: str = Field(default="WARNING", description="Root log level for velacap loggers")
    log_format: Literal["text", "json"] = Field(default="text", description="Output format")
    log_file_template: Optional[str] = Field(
        default=None,
        description="Optional log file path; supports {YMD}, {YM} and {Y} placeholders",
    )


class JsonFormatter(jsonlogger.JsonFormatter):
    """One JSON object per line; ``extra`` fields become top-level keys."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        if not log_record.get("timestamp"):
            log_record["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()
        log_record["level"] = record.levelname.lower()
        log_record["logger"] = record.name


def _render_log_file_path(template: str) -> Path | None:
    """Resolve a log file template to a concrete path.

    Relative paths are anchored at ``VELACAP_PROJECT_PATH`` when set, else the
    current directory. Unknown placeholders disable file logging.
    """
    fields = {name for _, name, _, _ in string.Formatter().parse(template) if name}
    unknown = fields - _KNOWN_PLACEHOLDERS
    if unknown:
        logger.warning("Unknown log file template placeholder(s): %s", ", ".join(sorted(unknown)))
        return None

    now = datetime.now()
    rendered = template.format(
        YMD=now.strftime("%Y%m%d"),
        YM=now.strftime("%Y%m"),
        Y=now.strftime("%Y"),
    )
    path = Path(rendered).expanduser()
    if not path.is_absolute():
        base = os.environ.get("VELACAP_PROJECT_PATH")
        path = (Path(base) if base else Path.cwd()) / path
    return path


def setup_logging(settings: LoggingSettings | None = None, *, force: bool = False) -> None:
    """Configure the ``velacap`` logger hierarchy.

    Args:
        settings: Logging settings; loaded from the environment when omitted
        force: Replace handlers installed by a previous call
    """
    settings = settings or LoggingSettings()
    root = logging.getLogger("velacap")

    if root.handlers and not force:
        return
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if settings.log_format == "json":
        formatter: logging.Formatter = JsonFormatter("%(message)s")
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.log_file_template:
        path = _render_log_file_path(settings.log_file_template)
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

    root.setLevel(settings.level.upper())
    root.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a logger in the velacap hierarchy."""
    return logging.getLogger(name)
