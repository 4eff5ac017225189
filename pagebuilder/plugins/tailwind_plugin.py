"""
Tailwind Plugin

Injects the Tailwind CDN build (JIT) into the preview document so utility
classes used by blocks render without a build step.

Preview priority 100: styling loads before any script plugin.
"""

from __future__ import annotations

import logging
from typing import Any

from pagebuilder.plugins.base import PluginBase, PluginContext, PluginMeta, inline_json

logger = logging.getLogger(__name__)

_DEFAULT_CDN_URL = "https://cdn.tailwindcss.com"
_DEFAULT_COLORS = {"primary": "#3B82F6", "secondary": "#6B7280"}

_META = PluginMeta(
    name="tailwind",
    version="2.0.0",
    description="Tailwind CSS utility classes in the live preview",
    dependencies=[],
    preview_priority=100,
    config_schema={
        "cdn_url": {"type": "string", "default": _DEFAULT_CDN_URL},
        "colors": {"type": "object", "default": _DEFAULT_COLORS},
    },
)

# Most used classes, offered as editor completions.
ESSENTIAL_CLASSES: list[str] = [
    "container", "mx-auto", "px-4", "py-8", "py-16",
    "flex", "grid", "gap-4", "grid-cols-2", "grid-cols-3", "md:grid-cols-2", "lg:grid-cols-3",
    "text-center", "text-left", "text-right", "text-4xl", "font-bold",
    "bg-white", "bg-gray-50", "bg-blue-500", "text-white", "text-gray-800",
    "rounded", "rounded-lg", "shadow", "shadow-lg",
]


class TailwindPlugin(PluginBase):
    """Preview styling via the Tailwind CDN."""

    @property
    def meta(self) -> PluginMeta:
        return _META

    async def init(self, context: PluginContext) -> Any:
        self._cdn_url = context.config.get("cdn_url", _DEFAULT_CDN_URL)
        self._colors = {**_DEFAULT_COLORS, **context.config.get("colors", {})}
        logger.debug("TailwindPlugin loaded (cdn=%s)", self._cdn_url)
        return self

    def supply_preview_fragment(self) -> str:
        theme = {"theme": {"extend": {"colors": self._colors}}}
        return (
            f'<script src="{self._cdn_url}"></script>\n'
            f"<script>tailwind.config = {inline_json(theme)};</script>"
        )

    def supply_snippets(self) -> dict[str, dict[str, str]]:
        return {
            f"tw-{css_class}": {"label": css_class, "body": css_class, "description": "Tailwind class"}
            for css_class in ESSENTIAL_CLASSES
        }
