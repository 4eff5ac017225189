"""
Templates Plugin

Template expansion for preview content: conditionals, loops and filters
rendered by a sandboxed Jinja2 environment.

Capability: pagebuilder.preview.templating.TemplateRenderer
Snippets:   if / for / variable / filter skeletons
"""

from __future__ import annotations

import logging
from typing import Any

from pagebuilder.plugins.base import PluginBase, PluginContext, PluginMeta
from pagebuilder.preview.templating import PreviewEnvironment, TemplateRenderer

logger = logging.getLogger(__name__)

_META = PluginMeta(
    name="templates",
    version="1.0.0",
    description="Conditionals and loops in page content ({% if %}, {% for %})",
    dependencies=[],
    preview_priority=85,
    config_schema={
        "trim_blocks": {"type": "boolean", "default": False},
    },
)

_SNIPPETS: dict[str, dict[str, str]] = {
    "template-if": {
        "label": "Template If",
        "body": "{% if ${1:condition} %}\n  ${2:content}\n{% endif %}",
        "description": "Conditional block",
    },
    "template-for": {
        "label": "Template For",
        "body": "{% for ${1:item} in ${2:collection} %}\n  ${3:content}\n{% endfor %}",
        "description": "Loop over a collection",
    },
    "template-variable": {
        "label": "Template Variable",
        "body": "{{ ${1:variable} }}",
        "description": "Output a variable",
    },
    "template-filter": {
        "label": "Template Filter",
        "body": "{{ ${1:variable} | ${2:filter} }}",
        "description": "Variable with a filter",
    },
}


class TemplatesPlugin(PluginBase):
    """Templating capability consulted by the preview pipeline."""

    @property
    def meta(self) -> PluginMeta:
        return _META

    async def init(self, context: PluginContext) -> Any:
        trim = bool(context.config.get("trim_blocks", False))
        environment = PreviewEnvironment(trim_blocks=trim, lstrip_blocks=trim)
        logger.debug("TemplatesPlugin loaded (trim_blocks=%s)", trim)
        return TemplateRenderer(environment)

    def supply_snippets(self) -> dict[str, dict[str, str]]:
        return dict(_SNIPPETS)
