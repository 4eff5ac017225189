"""
Runtime wiring

PageBuilderRuntime owns one of each moving part: the plugin manager, the
block type registry, the preview broadcaster and the live preview pipeline
feeding it.  The application creates one at startup and stores it on
``app.state.runtime``; tests build their own.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from fastapi import Request

from pagebuilder.blocks.builtin import register_builtin_blocks
from pagebuilder.blocks.registry import BlockTypeRegistry
from pagebuilder.blocks.tree import BlockTree
from pagebuilder.config import settings
from pagebuilder.plugins.loader import initialize_plugins
from pagebuilder.plugins.manager import InitializationReport, PluginManager
from pagebuilder.preview.pipeline import PreviewPipeline, VariableSource
from pagebuilder.preview.surface import PreviewBroadcaster

logger = logging.getLogger(__name__)


class PageBuilderRuntime:
    def __init__(
        self,
        plugins: PluginManager | None = None,
        blocks: BlockTypeRegistry | None = None,
        broadcaster: PreviewBroadcaster | None = None,
        variables: VariableSource | None = None,
        debounce: float | None = None,
    ) -> None:
        self.plugins = plugins or PluginManager()
        self.blocks = blocks or register_builtin_blocks(BlockTypeRegistry())
        self.broadcaster = broadcaster or PreviewBroadcaster(max_queue_size=settings.sse_max_queue_size)
        self.pipeline = PreviewPipeline(self.plugins, self.broadcaster, variables=variables, debounce=debounce)
        self.report: InitializationReport | None = None

    @property
    def started(self) -> bool:
        return self.report is not None

    async def startup(self, load_builtin_plugins: bool = True) -> InitializationReport:
        """Register the configured built-in plugins and initialize everything registered."""
        logger.info("Starting page builder runtime...")
        if load_builtin_plugins:
            self.report = await initialize_plugins(self.plugins)
        else:
            self.report = await self.plugins.initialize_all()
        return self.report

    async def shutdown(self) -> None:
        logger.info("Shutting down page builder runtime...")
        self.pipeline.close()
        await self.pipeline.flush()
        await self.plugins.shutdown()
        self.report = None

    def new_tree(self) -> BlockTree:
        return BlockTree(self.blocks)

    def render_blocks(self, records: Iterable[Mapping[str, Any]]) -> str:
        """Build a tree from nested block records and render it."""
        tree = self.new_tree()
        tree.load(records)
        return tree.render()


def get_runtime(request: Request) -> PageBuilderRuntime:
    """FastAPI dependency returning the application's runtime."""
    return request.app.state.runtime
