"""
Plugin Loader

Handles reading/writing plugin configuration from the JSON file named by
``settings.plugins_config_file`` and bringing the built-in plugins up at
application startup.
"""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pagebuilder.config import settings

if TYPE_CHECKING:
    from pagebuilder.plugins.manager import InitializationReport, PluginManager

logger = logging.getLogger(__name__)

# ── Config file location ──────────────────────────────────────────────────────
_PLUGINS_CONFIG_FILE = Path(settings.plugins_config_file)

# ── Default plugin config (all built-in plugins enabled) ─────────────────────
_DEFAULT_CONFIG: dict[str, dict[str, Any]] = {
    "variables": {"enabled": True},
    "templates": {"enabled": True},
    "tailwind": {"enabled": True},
    "alpine": {"enabled": True},
}


# ── Config I/O ────────────────────────────────────────────────────────────────


def load_plugins_config() -> dict[str, dict[str, Any]]:
    """
    Load plugin configuration from disk.

    Returns defaults if the file does not exist, cannot be parsed, or is not
    an object mapping plugin names to objects.
    """
    if _PLUGINS_CONFIG_FILE.exists():
        try:
            config = json.loads(_PLUGINS_CONFIG_FILE.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to read plugins config: %s", exc)
        else:
            if _is_valid_config(config):
                return config
            logger.warning("Ignoring plugins config %s: expected an object of objects", _PLUGINS_CONFIG_FILE)
    return copy.deepcopy(_DEFAULT_CONFIG)


def _is_valid_config(config: Any) -> bool:
    return isinstance(config, dict) and all(
        isinstance(name, str) and isinstance(entry, dict) for name, entry in config.items()
    )


def save_plugins_config(config: dict[str, dict[str, Any]]) -> None:
    """Persist plugin configuration to disk."""
    _PLUGINS_CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    _PLUGINS_CONFIG_FILE.write_text(
        json.dumps(config, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


# ── Startup initialisation ────────────────────────────────────────────────────


def builtin_plugin_classes() -> list[type]:
    """Return the built-in plugin classes.

    Deferred imports keep this module importable from the plugin modules.
    """
    from pagebuilder.plugins.alpine_plugin import AlpinePlugin
    from pagebuilder.plugins.tailwind_plugin import TailwindPlugin
    from pagebuilder.plugins.templates_plugin import TemplatesPlugin
    from pagebuilder.plugins.variables_plugin import VariablesPlugin

    return [VariablesPlugin, TemplatesPlugin, TailwindPlugin, AlpinePlugin]


async def initialize_plugins(manager: PluginManager) -> InitializationReport:
    """
    Register every enabled built-in plugin and initialize the catalog.

    Called from the runtime startup.  Plugins disabled in the config file
    are not registered at all.
    """
    config = load_plugins_config()

    for plugin_class in builtin_plugin_classes():
        plugin = plugin_class()
        plugin_config = config.get(plugin.meta.name, {})
        if not plugin_config.get("enabled", True):
            logger.info("Plugin %s disabled by config, not registering", plugin.meta.name)
            continue
        options = {key: value for key, value in plugin_config.items() if key != "enabled"}
        manager.register(plugin, options)

    return await manager.initialize_all()
