"""
Page Builder Plugin System

Public API for the plugin system:
    PluginMeta            — plugin metadata dataclass
    PluginBase            — abstract base class for all plugins
    PluginCapabilities    — optional hooks resolved at registration
    PluginContext         — what a plugin receives at init
    PluginManager         — catalog + dependency-ordered lifecycle
    InitializationReport  — outcome of PluginManager.initialize_all()
"""

from .base import PluginBase, PluginCapabilities, PluginContext, PluginMeta
from .manager import InitializationReport, PluginManager, PluginStatus, PreviewFragment

__all__ = [
    "InitializationReport",
    "PluginBase",
    "PluginCapabilities",
    "PluginContext",
    "PluginManager",
    "PluginMeta",
    "PluginStatus",
    "PreviewFragment",
]
