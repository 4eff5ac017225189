"""Variable placeholder handling for preview content.

Placeholders look like ``{{ user.name }}``: a dotted path between double
braces with optional surrounding whitespace.  Anything else between braces
(filters, expressions) is left for the template stage.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w\-]*(?:\.[\w\-]+)*)\s*\}\}")


def flatten_variables(variables: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys.

    Keys that are already dotted are kept as given, so
    ``{"user": {"name": "Ana"}}`` and ``{"user.name": "Ana"}`` resolve alike.
    """
    flat: dict[str, Any] = {}
    for key, value in variables.items():
        path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(flatten_variables(value, path))
        else:
            flat[path] = value
    return flat


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def resolve_variables(content: str, variables: Mapping[str, Any]) -> str:
    """Replace known placeholders; unknown ones are left untouched."""
    if not content or "{{" not in content:
        return content or ""

    flat = flatten_variables(variables)

    def replace(match: re.Match) -> str:
        path = match.group(1)
        if path in flat:
            return _to_text(flat[path])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, content)


def extract_variables(content: str) -> list[str]:
    """Return the placeholder paths used in ``content``, in first-seen order."""
    if not content:
        return []
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(content)))


def find_unresolved(content: str, variables: Mapping[str, Any]) -> list[str]:
    flat = flatten_variables(variables)
    return [path for path in extract_variables(content) if path not in flat]


def format_placeholder(path: str) -> str:
    """Text to insert in the editor for ``path``."""
    return f"{{{{ {path} }}}}"
