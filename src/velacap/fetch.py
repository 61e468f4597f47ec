"""Remote template retrieval."""

from __future__ import annotations

import logging
from typing import Optional

import requests

from velacap.context import CancelContext, background
from velacap.exceptions import TemplateFetchError

logger = logging.getLogger(__name__)


def http_get(uri: str, *, timeout: float = 10.0, ctx: Optional[CancelContext] = None) -> str:
    """
    Fetch a template body over HTTP(S).

    A single attempt is made; the effective timeout is bounded by the
    context's deadline.

    Raises:
        TemplateFetchError: On transport errors or non-2xx responses
        OperationCancelledError: If ``ctx`` is already cancelled
    """
    ctx = ctx or background()
    request_timeout = ctx.timeout_for(timeout)

    logger.debug("Fetching template from %s", uri)
    try:
        response = requests.get(uri, timeout=request_timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise TemplateFetchError(f"failed to fetch template from {uri}: {exc}", cause=exc) from exc
    return response.text
