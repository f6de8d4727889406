"""Outbound HTTP client construction."""

from __future__ import annotations

import httpx

from permset_revoker.config import HttpSettings


def create_http_client(
    settings: HttpSettings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the client shared by every call of one invocation.

    The configured User-Agent is attached here so request builders never
    carry a client identifier of their own.
    """
    return httpx.AsyncClient(
        timeout=settings.timeout_seconds,
        headers={"User-Agent": settings.user_agent},
        transport=transport,
    )
