"""
Plugin Routes

GET /api/v1/plugins           → all registered plugins with lifecycle status
GET /api/v1/plugins/snippets  → editor snippets from ready plugins
GET /api/v1/plugins/{name}    → single plugin by name

Plugin options come from the JSON file at ``settings.plugins_config_file``.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends

from pagebuilder.exceptions import PluginNotFoundError
from pagebuilder.plugins.manager import PluginManager, PluginRecord
from pagebuilder.runtime import PageBuilderRuntime, get_runtime
from pagebuilder.schemas.plugins import PluginResponse

router = APIRouter(tags=["Plugins"])
logger = logging.getLogger(__name__)


# ── Helpers ────────────────────────────────────────────────────────────────────


def _build_response(record: PluginRecord) -> PluginResponse:
    meta = record.plugin.meta
    return PluginResponse(
        name=meta.name,
        version=meta.version,
        description=meta.description,
        author=meta.author,
        dependencies=list(meta.dependencies),
        preview_priority=meta.preview_priority,
        status=record.status.value,
        reason=record.reason,
        hooks=record.capabilities.names(),
        config=record.config,
        config_schema=meta.config_schema,
    )


def _get_or_404(manager: PluginManager, name: str) -> PluginRecord:
    record = manager.get_record(name)
    if record is None:
        raise PluginNotFoundError(name)
    return record


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.get("", response_model=list[PluginResponse])
async def list_plugins(runtime: PageBuilderRuntime = Depends(get_runtime)) -> list[PluginResponse]:
    """List all registered plugins in registration order."""
    manager = runtime.plugins
    return [_build_response(_get_or_404(manager, plugin.meta.name)) for plugin in manager.all_plugins()]


@router.get("/snippets")
async def list_snippets(runtime: PageBuilderRuntime = Depends(get_runtime)) -> dict[str, Any]:
    """Editor completion snippets, keyed by plugin name."""
    return runtime.plugins.snippets()


@router.get("/{name}", response_model=PluginResponse)
async def get_plugin(name: str, runtime: PageBuilderRuntime = Depends(get_runtime)) -> PluginResponse:
    return _build_response(_get_or_404(runtime.plugins, name))
