"""Masking of credential material before it reaches the logs.

Job secrets, token request forms and header mappings are logged only after
passing through ``redact_sensitive_fields``.
"""

from __future__ import annotations

from collections.abc import Mapping

MASK = "***"

_MAX_REDACT_DEPTH = 10

# Matched against the key with case, ``_`` and ``-`` ignored.
SENSITIVE_KEY_MARKERS: tuple[str, ...] = (
    "password",
    "secret",
    "token",
    "authorization",
    "apikey",
    "assertion",
)


def is_sensitive_key(key: object) -> bool:
    normalized = str(key).lower().replace("_", "").replace("-", "")
    return any(marker in normalized for marker in SENSITIVE_KEY_MARKERS)


def redact_sensitive_fields(value: object, *, depth: int = 0) -> object:
    """Return a copy of ``value`` with sensitive mapping values masked.

    Present-but-empty secrets stay empty so the log still shows which
    credential bundle was (not) configured. Anything nested deeper than
    the depth limit is masked whole.
    """
    if depth >= _MAX_REDACT_DEPTH:
        return MASK
    if isinstance(value, Mapping):
        return {
            key: (
                (MASK if item else item)
                if is_sensitive_key(key)
                else redact_sensitive_fields(item, depth=depth + 1)
            )
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_sensitive_fields(item, depth=depth + 1) for item in value]
    return value
