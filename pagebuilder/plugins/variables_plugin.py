"""
Variables Plugin

Supplies the variables every page can reference and resolves ``{{ path }}``
placeholders.  Variables come from a chain of providers, each with a
priority; when two providers define the same path the higher priority wins.

Built-in providers:
    system     (100) — app name/version, current date and time
    user        (95) — the editing user
    site        (80) — site metadata
    templates   (70) — counts and names of the saved templates
    custom      (50) — free-form variables from the plugin config

Capability: VariablesCapability
Snippets:   one insertion snippet per known variable
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Protocol

from pagebuilder.config import settings
from pagebuilder.plugins.base import PluginBase, PluginContext, PluginMeta
from pagebuilder.preview.variables import flatten_variables, format_placeholder, resolve_variables

logger = logging.getLogger(__name__)

_META = PluginMeta(
    name="variables",
    version="1.0.0",
    description="System and site variables for {{ placeholder }} substitution",
    dependencies=[],
    preview_priority=95,
    config_schema={
        "site": {"type": "object", "default": {}},
        "user": {"type": "object", "default": {}},
        "templates": {"type": "array", "default": []},
        "variables": {"type": "object", "default": {}},
        "providers": {"type": "object", "default": {}},
    },
)


# ── Providers ─────────────────────────────────────────────────────────────────


class VariableProvider(Protocol):
    name: str
    priority: int

    def get_variables(self) -> dict[str, Any]: ...


class SystemVariableProvider:
    name = "system"
    priority = 100

    def get_variables(self) -> dict[str, Any]:
        now = datetime.now()
        return {
            "app.name": settings.app_name,
            "app.version": settings.app_version,
            "app.environment": settings.environment,
            "current.date": now.strftime("%Y-%m-%d"),
            "current.time": now.strftime("%H:%M:%S"),
            "current.datetime": now.strftime("%Y-%m-%d %H:%M:%S"),
            "current.year": now.year,
            "current.month": now.strftime("%B"),
            "current.day": now.day,
            "current.weekday": now.strftime("%A"),
            "current.timestamp": int(time.time() * 1000),
            "current.iso": datetime.now(timezone.utc).isoformat(),
        }


class UserVariableProvider:
    name = "user"
    priority = 95

    def __init__(self, user: Mapping[str, Any] | None = None) -> None:
        self._user = dict(user or {})

    def get_variables(self) -> dict[str, Any]:
        name = self._user.get("name", "Demo User")
        return {
            "user.id": self._user.get("id", 1),
            "user.name": name,
            "user.email": self._user.get("email", "user@example.com"),
            "user.role": self._user.get("role", "user"),
            "user.initials": "".join(part[0] for part in str(name).split()[:2]).upper(),
        }


class SiteVariableProvider:
    name = "site"
    priority = 80

    def __init__(self, site: Mapping[str, Any] | None = None) -> None:
        self._site = dict(site or {})

    def get_variables(self) -> dict[str, Any]:
        return {
            "site.title": self._site.get("title", settings.app_name),
            "site.description": self._site.get("description", ""),
            "site.keywords": self._site.get("keywords", ""),
            "site.author": self._site.get("author", ""),
            "site.url": self._site.get("url", ""),
            "site.language": self._site.get("language", settings.preview_lang),
            "site.version": self._site.get("version", "1.0.0"),
        }


class TemplatesVariableProvider:
    name = "templates"
    priority = 70

    def __init__(self, templates: list[Mapping[str, Any]] | None = None) -> None:
        self._templates = [dict(item) for item in templates or []]

    def get_variables(self) -> dict[str, Any]:
        names = [item.get("name", "") for item in self._templates]
        categories = sorted({item["category"] for item in self._templates if item.get("category")})
        return {
            "templates.count": len(names),
            "templates.latest": names[0] if names else "",
            "templates.oldest": names[-1] if names else "",
            "templates.categories": ", ".join(categories),
        }


class CustomVariableProvider:
    """Free-form variables; nested maps become dotted paths."""

    def __init__(self, variables: Mapping[str, Any] | None = None, name: str = "custom", priority: int = 50) -> None:
        self.name = name
        self.priority = priority
        self._variables = flatten_variables(variables or {})

    def get_variables(self) -> dict[str, Any]:
        return dict(self._variables)

    def set(self, path: str, value: Any) -> None:
        self._variables[path] = value

    def remove(self, path: str) -> None:
        self._variables.pop(path, None)


# ── Capability ────────────────────────────────────────────────────────────────


class VariablesCapability:
    """Prioritized provider chain plus placeholder resolution."""

    def __init__(self, providers: list[VariableProvider] | None = None) -> None:
        self._providers: dict[str, VariableProvider] = {}
        for provider in providers or []:
            self.add_provider(provider)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> VariablesCapability:
        """
        Build the built-in provider chain from the plugin's config slice.

        ``providers`` maps a provider name to ``{"enabled": bool, "priority": int}``.
        """
        providers: list[VariableProvider] = [
            SystemVariableProvider(),
            UserVariableProvider(config.get("user")),
            SiteVariableProvider(config.get("site")),
            TemplatesVariableProvider(config.get("templates")),
            CustomVariableProvider(config.get("variables")),
        ]
        overrides = config.get("providers") or {}
        capability = cls()
        for provider in providers:
            options = overrides.get(provider.name) or {}
            if not options.get("enabled", True):
                logger.debug("Variable provider %s disabled by config", provider.name)
                continue
            if "priority" in options:
                provider.priority = int(options["priority"])
            capability.add_provider(provider)
        return capability

    def add_provider(self, provider: VariableProvider) -> None:
        """Register ``provider``, replacing one with the same name."""
        self._providers[provider.name] = provider

    def remove_provider(self, name: str) -> None:
        self._providers.pop(name, None)

    def get_provider(self, name: str) -> VariableProvider | None:
        return self._providers.get(name)

    @property
    def providers(self) -> list[VariableProvider]:
        """Providers from lowest to highest priority."""
        return sorted(self._providers.values(), key=lambda provider: provider.priority)

    def defaults(self) -> dict[str, Any]:
        """Merge every provider's variables, evaluated now."""
        values: dict[str, Any] = {}
        for provider in self.providers:
            try:
                values.update(provider.get_variables())
            except Exception as exc:
                logger.warning("Variable provider %s raised: %s", provider.name, exc)
        return values

    def resolve(self, content: str, variables: Mapping[str, Any] | None = None) -> str:
        """Resolve placeholders using defaults overlaid with ``variables``."""
        merged = self.defaults()
        merged.update(flatten_variables(variables or {}))
        return resolve_variables(content, merged)


class VariablesPlugin(PluginBase):
    """Base plugin: no dependencies, other plugins may build on it."""

    @property
    def meta(self) -> PluginMeta:
        return _META

    async def init(self, context: PluginContext) -> VariablesCapability:
        self._capability = VariablesCapability.from_config(context.config)
        logger.debug(
            "VariablesPlugin loaded (providers=%s)",
            [provider.name for provider in self._capability.providers],
        )
        return self._capability

    def supply_snippets(self) -> dict[str, dict[str, str]]:
        capability = getattr(self, "_capability", None) or VariablesCapability.from_config({})
        return {
            f"var-{path}": {
                "label": path,
                "body": format_placeholder(path),
                "description": f"Variable {path}",
            }
            for path in capability.defaults()
        }
