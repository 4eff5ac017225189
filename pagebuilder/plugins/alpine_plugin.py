"""
Alpine Plugin

Adds Alpine.js to the preview document so blocks can use declarative
interactivity (x-data, x-show, x-on).  Depends on the variables plugin:
page variables are exposed to Alpine as a global store.
"""

from __future__ import annotations

import logging
from typing import Any

from pagebuilder.plugins.base import PluginBase, PluginContext, PluginMeta, inline_json

logger = logging.getLogger(__name__)

_DEFAULT_CDN_URL = "https://cdn.jsdelivr.net/npm/alpinejs@3.14.1/dist/cdn.min.js"

_META = PluginMeta(
    name="alpine",
    version="1.0.0",
    description="Alpine.js interactivity in the live preview",
    dependencies=["variables"],
    preview_priority=90,
    config_schema={
        "cdn_url": {"type": "string", "default": _DEFAULT_CDN_URL},
    },
)

_SNIPPETS: dict[str, dict[str, str]] = {
    "alpine-data": {
        "label": "x-data",
        "body": 'x-data="{ ${1:open}: ${2:false} }"',
        "description": "Declare component state",
    },
    "alpine-show": {
        "label": "x-show",
        "body": 'x-show="${1:open}"',
        "description": "Toggle visibility",
    },
    "alpine-click": {
        "label": "x-on:click",
        "body": '@click="${1:open = !open}"',
        "description": "Click handler",
    },
}


class AlpinePlugin(PluginBase):
    """Interactivity plugin, exposes system variables to Alpine's store."""

    @property
    def meta(self) -> PluginMeta:
        return _META

    async def init(self, context: PluginContext) -> Any:
        self._cdn_url = context.config.get("cdn_url", _DEFAULT_CDN_URL)
        variables = context.dependency("variables")
        self._store = variables.defaults() if variables is not None else {}
        return self

    async def on_ready(self) -> None:
        logger.info("AlpinePlugin ready (%d store variables)", len(self._store))

    def supply_preview_fragment(self) -> str:
        store = inline_json(self._store)
        return (
            "<style>[x-cloak] { display: none !important; }</style>\n"
            "<script>document.addEventListener('alpine:init', () => "
            f"{{ Alpine.store('vars', {store}); }});</script>\n"
            f'<script defer src="{self._cdn_url}"></script>'
        )

    def supply_snippets(self) -> dict[str, dict[str, str]]:
        return dict(_SNIPPETS)
