"""Shared httpx helpers for adapters that speak raw HTTP streams."""

import json

import httpx

from chat_relay.errors import UpstreamError, UpstreamTransportError
from chat_relay.providers.base import error_for_status

__all__ = [
    "check_stream_status",
    "translate_httpx_error",
]


def check_stream_status(response: httpx.Response, provider: str) -> None:
    """Raise the taxonomy error for a failed streaming response.

    The body is not read; provider error bodies are never surfaced.
    """
    if response.status_code >= 400:
        raise error_for_status(provider, response.status_code)


def translate_httpx_error(exc: Exception, provider: str) -> UpstreamError | None:
    """Translate httpx and framing errors raised while streaming."""
    if isinstance(exc, httpx.HTTPStatusError):
        return error_for_status(provider, exc.response.status_code)
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamTransportError("provider timed out", provider=provider)
    if isinstance(exc, httpx.HTTPError):
        return UpstreamTransportError("connection to provider failed", provider=provider)
    if isinstance(exc, json.JSONDecodeError | UnicodeDecodeError):
        return UpstreamTransportError("malformed stream framing", provider=provider)
    return None
