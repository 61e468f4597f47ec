"""Tests for remote template fetching."""

from __future__ import annotations

import pytest
import requests

from velacap import fetch as fetch_module
from velacap.context import CancelContext
from velacap.exceptions import OperationCancelledError, TemplateFetchError
from velacap.fetch import http_get


class DummyResponse:
    def __init__(self, text="", status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Client Error")


def test_http_get_returns_body(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return DummyResponse("parameter: {}")

    monkeypatch.setattr(fetch_module.requests, "get", fake_get)

    assert http_get("https://example.com/t.cue", timeout=3) == "parameter: {}"
    assert calls == [("https://example.com/t.cue", 3)]


def test_http_get_timeout_bounded_by_deadline(monkeypatch):
    timeouts = []

    def fake_get(url, timeout):
        timeouts.append(timeout)
        return DummyResponse("x: 1")

    monkeypatch.setattr(fetch_module.requests, "get", fake_get)

    http_get("https://example.com/t.cue", timeout=60, ctx=CancelContext(timeout=5))

    assert 0 < timeouts[0] <= 5


def test_http_get_http_error(monkeypatch):
    monkeypatch.setattr(
        fetch_module.requests, "get", lambda url, timeout: DummyResponse(status_code=404)
    )

    with pytest.raises(TemplateFetchError) as exc_info:
        http_get("https://example.com/missing.cue")

    assert "https://example.com/missing.cue" in exc_info.value.message


def test_http_get_transport_error(monkeypatch):
    def refuse(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(fetch_module.requests, "get", refuse)

    with pytest.raises(TemplateFetchError):
        http_get("https://example.com/t.cue")


def test_http_get_cancelled_context_makes_no_request(monkeypatch):
    calls = []
    monkeypatch.setattr(fetch_module.requests, "get", lambda url, timeout: calls.append(url))
    ctx = CancelContext()
    ctx.cancel()

    with pytest.raises(OperationCancelledError):
        http_get("https://example.com/t.cue", ctx=ctx)

    assert calls == []
