"""
Template expansion for preview content.

Content is rendered with a sandboxed Jinja2 environment so editors can use
conditionals and loops (``{% if %}``, ``{% for %}``).  Placeholders whose path
cannot be resolved, filtered or not, are copied to the output exactly as
written, matching the variable stage, which also leaves them alone.  Other
missing lookups render back as a ``{{ path }}`` placeholder instead of vanishing.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

from jinja2 import TemplateError, TemplateSyntaxError, Undefined, meta
from jinja2.sandbox import SandboxedEnvironment

from pagebuilder.exceptions import TemplateStageError
from pagebuilder.preview.variables import PLACEHOLDER_PATTERN, flatten_variables

logger = logging.getLogger(__name__)

# A placeholder path with optional filters: {{ user.name }}, {{ user.name | upper }}
FILTERED_PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][\w\-]*(?:\.[\w\-]+)*)\s*(?:\|[^{}]*?)?\}\}")

# Markers are private-use code points.
_SHIELD = "\ue000{}\ue001"


class PlaceholderUndefined(Undefined):
    """Undefined value that remembers its dotted path and prints it back as a placeholder."""

    __slots__ = ()

    def __str__(self) -> str:
        if self._undefined_name is None:
            return ""
        return "{{ %s }}" % self._undefined_name

    def __getattr__(self, name: str) -> Any:
        if name[:2] == "__":
            raise AttributeError(name)
        return self._child(name)

    def __getitem__(self, key: Any) -> Any:
        return self._child(key)

    def _child(self, key: Any) -> PlaceholderUndefined:
        base = self._undefined_name
        return type(self)(name=f"{base}.{key}" if base else str(key))


class VariableScope(dict):
    """Nested variable mapping that knows its own dotted path."""

    def __init__(self, path: str, data: Mapping[str, Any]) -> None:
        super().__init__(data)
        self.path = path

    def child_path(self, key: Any) -> str:
        return f"{self.path}.{key}" if self.path else str(key)


def nest_variables(variables: Mapping[str, Any]) -> dict[str, Any]:
    """Turn dotted keys into nested VariableScope mappings for template lookups."""
    tree: dict[str, Any] = {}
    for path, value in flatten_variables(variables).items():
        node = tree
        parts = path.split(".")
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = value

    def wrap(data: dict[str, Any], path: str) -> VariableScope:
        scope = VariableScope(path, {})
        for key, value in data.items():
            child_path = f"{path}.{key}" if path else key
            scope[key] = wrap(value, child_path) if isinstance(value, dict) else value
        return scope

    return dict(wrap(tree, ""))


class PreviewEnvironment(SandboxedEnvironment):
    """Sandboxed environment whose missing variable lookups keep their full path."""

    def __init__(self, **options: Any) -> None:
        options.setdefault("undefined", PlaceholderUndefined)
        options.setdefault("autoescape", False)
        options.setdefault("keep_trailing_newline", True)
        super().__init__(**options)

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, VariableScope):
            if attribute in obj:
                return obj[attribute]
            if not hasattr(dict, attribute):
                return self.undefined(name=obj.child_path(attribute))
        return super().getattr(obj, attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        if isinstance(obj, VariableScope) and isinstance(argument, str) and argument not in obj:
            return self.undefined(name=obj.child_path(argument))
        return super().getitem(obj, argument)


def _is_resolved(path: str, flat: Mapping[str, Any]) -> bool:
    prefix = path + "."
    return path in flat or any(key.startswith(prefix) for key in flat)


def shield_unresolved(content: str, flat: Mapping[str, Any], context_names: set[str]) -> tuple[str, dict[str, str]]:
    """
    Swap unresolvable placeholders for opaque markers.

    Only paths rooted at a context variable are candidates; names bound
    inside the template (loop targets, ``set``) are left to Jinja.

    Returns:
        The shielded content and a marker -> original text map.
    """
    shielded: dict[str, str] = {}

    def replace(match: re.Match) -> str:
        path = match.group(1)
        if path.split(".")[0] not in context_names or _is_resolved(path, flat):
            return match.group(0)
        marker = _SHIELD.format(len(shielded))
        shielded[marker] = match.group(0)
        return marker

    return FILTERED_PLACEHOLDER_PATTERN.sub(replace, content), shielded


def restore_shielded(output: str, shielded: Mapping[str, str]) -> str:
    for marker, original in shielded.items():
        output = output.replace(marker, original)
    return output


def needs_templating(content: str) -> bool:
    """True when content holds template syntax beyond simple ``{{ path }}`` placeholders."""
    if not content:
        return False
    remainder = PLACEHOLDER_PATTERN.sub("", content)
    return "{%" in remainder or "{{" in remainder or "{#" in remainder


class TemplateRenderer:
    """Expands control-flow constructs in preview content."""

    def __init__(self, environment: SandboxedEnvironment | None = None) -> None:
        self.environment = environment or PreviewEnvironment()

    def render(self, content: str, variables: Mapping[str, Any] | None = None) -> str:
        """
        Render ``content`` with ``variables``.

        Raises:
            TemplateStageError: on syntax or runtime template errors.
        """
        flat = flatten_variables(variables or {})
        try:
            context_names = meta.find_undeclared_variables(self.environment.parse(content))
            shielded_content, shielded = shield_unresolved(content, flat, context_names)
            template = self.environment.from_string(shielded_content)
            return restore_shielded(template.render(nest_variables(flat)), shielded)
        except TemplateSyntaxError as exc:
            raise TemplateStageError(f"Template syntax error: {exc.message}", line=exc.lineno) from exc
        except TemplateError as exc:
            raise TemplateStageError(f"Template error: {exc}") from exc

    def validate(self, content: str) -> list[str]:
        """Return syntax error messages for ``content`` (empty when valid)."""
        try:
            self.environment.parse(content)
        except TemplateSyntaxError as exc:
            return [f"line {exc.lineno}: {exc.message}"]
        return []
