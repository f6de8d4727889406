"""Resolution of ``{{$.path}}`` templates in job parameters."""

from __future__ import annotations

import re
from typing import Any

_TEMPLATE_PATTERN = re.compile(r"\{\{\s*(\$[^{}]*?)\s*\}\}")
_SEGMENT_PATTERN = re.compile(r"\.([A-Za-z_][\w-]*)|\[(\d+)\]|\[['\"]([^'\"]+)['\"]\]")

_MISSING = object()


def _lookup(path: str, data: Any) -> Any:
    """Walk a ``$.a.b[0]`` style path through dicts and lists."""
    if not path.startswith("$"):
        return _MISSING
    rest = path[1:]
    current = data
    pos = 0
    while pos < len(rest):
        match = _SEGMENT_PATTERN.match(rest, pos)
        if match is None:
            return _MISSING
        key, index, quoted = match.groups()
        if index is not None:
            if not isinstance(current, list) or int(index) >= len(current):
                return _MISSING
            current = current[int(index)]
        else:
            name = key if key is not None else quoted
            if not isinstance(current, dict) or name not in current:
                return _MISSING
            current = current[name]
        pos = match.end()
    return current


def _resolve_string(value: str, data: Any, errors: list[str]) -> Any:
    whole = _TEMPLATE_PATTERN.fullmatch(value.strip())
    if whole:
        found = _lookup(whole.group(1), data)
        if found is _MISSING:
            errors.append(f"Failed to resolve template {whole.group(0)}")
            return ""
        return found

    def _substitute(match: re.Match[str]) -> str:
        found = _lookup(match.group(1), data)
        if found is _MISSING:
            errors.append(f"Failed to resolve template {match.group(0)}")
            return ""
        return str(found)

    return _TEMPLATE_PATTERN.sub(_substitute, value)


def resolve_templates(value: Any, data: Any) -> tuple[Any, list[str]]:
    """Resolve templates in ``value`` against ``data``.

    A string consisting of a single template keeps the looked-up value's
    type; templates embedded in longer strings are substituted as text.
    Unresolved templates become ``""`` and are reported in the error list.
    """
    errors: list[str] = []

    def _walk(item: Any) -> Any:
        if isinstance(item, str):
            return _resolve_string(item, data, errors)
        if isinstance(item, dict):
            return {key: _walk(val) for key, val in item.items()}
        if isinstance(item, list):
            return [_walk(val) for val in item]
        return item

    return _walk(value), errors
