"""Shared HTTP utilities."""

from __future__ import annotations

from urllib.parse import urlparse

from permset_revoker.errors import NoAddressConfigured

_ALLOWED_SCHEMES = frozenset({"http", "https"})


def resolve_base_url(params_address: str | None, env_address: str | None) -> str:
    """Pick the service base URL for one invocation.

    The per-request address wins over the environment default. Exactly one
    trailing slash is stripped so paths can be appended with ``/``.

    Raises ``NoAddressConfigured`` when neither source yields a value.
    """
    for candidate in (params_address, env_address):
        if candidate is None:
            continue
        value = candidate.strip()
        if value:
            return validate_base_url(value[:-1] if value.endswith("/") else value)
    raise NoAddressConfigured()


def validate_base_url(value: str) -> str:
    parsed = urlparse(value)
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        raise NoAddressConfigured(f"Address must use http or https: {value}")
    if not parsed.netloc:
        raise NoAddressConfigured(f"Address must include host: {value}")
    return value
