"""
Plugin Base Classes

PluginMeta:         declarative metadata for a plugin (name, dependencies, preview priority).
PluginBase:         abstract base class all plugins must subclass.
PluginCapabilities: the optional hooks a plugin actually implements, resolved
                    once at registration time.
PluginContext:      what a plugin receives when it is initialized.
inline_json:        JSON that can be embedded in a preview <script> element.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pagebuilder.plugins.hooks import ALL_HOOKS, HOOK_ON_READY, HOOK_PREVIEW_FRAGMENT, HOOK_SNIPPETS


@dataclass
class PluginMeta:
    """
    Declarative metadata describing a plugin.

    Attributes:
        name:             Machine-readable slug, e.g. "tailwind", "templates".
        version:          Semver string, e.g. "1.0.0".
        description:      Human-readable description.
        author:           Plugin author (defaults to "Page Builder Core Team").
        dependencies:     Names of plugins that must be ready before this one.
        preview_priority: Ordering of preview fragments, higher first; also the
                          scheduler tie-breaker.
        config_schema:    JSON Schema fragments describing configurable options.
    """

    name: str
    version: str
    description: str
    author: str = "Page Builder Core Team"
    dependencies: list[str] = field(default_factory=list)
    preview_priority: int = 50
    config_schema: dict[str, Any] = field(default_factory=dict)


@dataclass
class PluginContext:
    """
    Passed to PluginBase.init().

    ``config`` is the plugin's persisted config slice.  ``dependency`` returns
    the capability of an already-ready plugin, or None.
    """

    name: str
    config: dict[str, Any] = field(default_factory=dict)
    lookup: Callable[[str], Any] = field(default=lambda name: None, repr=False)

    def dependency(self, name: str) -> Any | None:
        return self.lookup(name)


class PluginBase(ABC):
    """
    Abstract base class for all page builder plugins.

    Subclasses must implement the `meta` property.  ``init`` returns the
    plugin's capability (the plugin itself by default).  The optional hooks
    below are only wired up when a subclass overrides them.
    """

    @property
    @abstractmethod
    def meta(self) -> PluginMeta:
        """Return the plugin's metadata."""
        ...

    async def init(self, context: PluginContext) -> Any:
        """
        Build and return the capability.

        Called at most once per successful lifetime.  Override to load
        resources; raise to mark the plugin as failed.
        """
        return self

    async def teardown(self, capability: Any) -> None:  # noqa: B027
        """
        Called when the plugin is unregistered or the runtime shuts down.

        Override to release resources (e.g. cancel tasks, close connections).
        """

    # ── Optional hooks ────────────────────────────────────────────────────────

    def supply_preview_fragment(self) -> str:
        """Markup injected into the preview document head."""
        raise NotImplementedError

    def supply_snippets(self) -> dict[str, dict[str, str]]:
        """Editor completion snippets keyed by snippet id."""
        raise NotImplementedError

    async def on_ready(self) -> None:
        """Called once after every plugin has finished initializing."""
        raise NotImplementedError


def _overrides(plugin: PluginBase, method: str) -> bool:
    return getattr(type(plugin), method) is not getattr(PluginBase, method)


@dataclass(frozen=True)
class PluginCapabilities:
    """
    Optional hooks a plugin provides.  A field is None when the plugin
    does not implement that hook.
    """

    preview_fragment: Callable[[], str] | None = None
    snippets: Callable[[], dict[str, dict[str, str]]] | None = None
    on_ready: Callable[[], Any] | None = None

    @classmethod
    def from_plugin(cls, plugin: PluginBase) -> PluginCapabilities:
        return cls(
            preview_fragment=plugin.supply_preview_fragment if _overrides(plugin, "supply_preview_fragment") else None,
            snippets=plugin.supply_snippets if _overrides(plugin, "supply_snippets") else None,
            on_ready=plugin.on_ready if _overrides(plugin, "on_ready") else None,
        )

    def names(self) -> list[str]:
        """Return the hook names this plugin implements."""
        provided = {
            HOOK_PREVIEW_FRAGMENT: self.preview_fragment,
            HOOK_SNIPPETS: self.snippets,
            HOOK_ON_READY: self.on_ready,
        }
        return [hook for hook in ALL_HOOKS if provided[hook] is not None]


def inline_json(value: Any) -> str:
    """Serialize ``value`` for a <script> element; ``<``, ``>`` and ``&`` are escaped."""
    return (
        json.dumps(value, sort_keys=True, default=str)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )
