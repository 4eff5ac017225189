"""
Live Preview Pipeline

PreviewPipeline turns raw page content into a complete preview document and
delivers it to a PreviewSurface.

Update cycle (per surface):

    idle --update_preview()--> scheduled --quiet period--> rendering --> idle

- Every ``update_preview`` call cancels the pending timer and starts a new
  quiet period; only the content of the last call is rendered.
- Content identical to what is already on the surface is dropped.
- Each accepted update takes the next sequence number.  A render whose
  sequence is no longer the latest when it finishes is discarded, never
  delivered.  Renders in progress are not cancelled.

Stages, in order: variable resolution, template expansion, document
assembly.  A failing stage is logged and its input is passed on unchanged,
so the surface always receives something renderable.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pagebuilder.config import settings
from pagebuilder.plugins.manager import PluginManager
from pagebuilder.preview.document import assemble_document
from pagebuilder.preview.surface import PreviewSurface, RenderContext
from pagebuilder.preview.templating import needs_templating
from pagebuilder.preview.variables import flatten_variables, resolve_variables

logger = logging.getLogger(__name__)

VariableSource = Union[Mapping[str, Any], Callable[[], Mapping[str, Any]]]


class PreviewState(str, Enum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RENDERING = "rendering"


class PreviewPipeline:
    """Debounced, last-writer-wins preview renderer for one surface."""

    def __init__(
        self,
        plugins: PluginManager,
        surface: PreviewSurface,
        variables: VariableSource | None = None,
        debounce: float | None = None,
        title: str | None = None,
        lang: str | None = None,
        variables_plugin: str = "variables",
        templates_plugin: str = "templates",
    ) -> None:
        self._plugins = plugins
        self._surface = surface
        self._variables = variables
        self._debounce = settings.preview_debounce_seconds if debounce is None else debounce
        self._title = title
        self._lang = lang
        self._variables_plugin = variables_plugin
        self._templates_plugin = templates_plugin

        self._timer: asyncio.TimerHandle | None = None
        self._pending_content: str | None = None
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

        self._sequence = 0
        self._last_rendered: str | None = None
        self.last_document: str | None = None
        self.render_count = 0
        self.discarded_count = 0

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> PreviewState:
        if self._timer is not None:
            return PreviewState.SCHEDULED
        if self._tasks:
            return PreviewState.RENDERING
        return PreviewState.IDLE

    @property
    def sequence(self) -> int:
        return self._sequence

    @property
    def debounce(self) -> float:
        return self._debounce

    # ── Update contract ───────────────────────────────────────────────────────

    def update_preview(self, raw_content: str) -> None:
        """
        Request a preview of ``raw_content``.  Fire-and-forget.

        Must be called from inside the running event loop.
        """
        if raw_content == self._last_rendered:
            if self.state is not PreviewState.IDLE:
                # The surface already shows this content: drop whatever is
                # pending or in flight.
                self._cancel_timer()
                self._sequence += 1
                self._mark_idle_if_done()
            logger.debug("Preview content unchanged, update dropped")
            return

        loop = asyncio.get_running_loop()
        self._cancel_timer()
        self._sequence += 1
        self._pending_content = raw_content
        self._idle.clear()
        self._timer = loop.call_later(self._debounce, self._fire, self._sequence)
        logger.debug(
            "Preview update %d scheduled in %ss", self._sequence, self._debounce, extra={"sequence": self._sequence}
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, sequence: int) -> None:
        self._timer = None
        content = self._pending_content or ""
        task = asyncio.get_running_loop().create_task(self._run_cycle(sequence, content))
        self._tasks.add(task)

    def _mark_idle_if_done(self) -> None:
        if self._timer is None and not self._tasks:
            self._idle.set()

    async def _run_cycle(self, sequence: int, content: str) -> None:
        self.render_count += 1
        try:
            variables = self._current_variables()
            context = RenderContext(
                content=content,
                variables=variables,
                timestamp=datetime.now(timezone.utc),
                sequence=sequence,
            )
            document = await self.process(content, variables)

            if sequence != self._sequence:
                self.discarded_count += 1
                logger.debug(
                    "Discarding superseded preview render %d (latest %d)",
                    sequence,
                    self._sequence,
                    extra={"sequence": sequence},
                )
                return

            await self._surface.deliver(document, context)
            self._last_rendered = content
            self.last_document = document
            logger.debug("Preview render %d delivered", sequence, extra={"sequence": sequence})
        except Exception:
            logger.exception("Preview cycle %d failed", sequence, extra={"sequence": sequence})
        finally:
            current = asyncio.current_task()
            if current is not None:
                self._tasks.discard(current)
            self._mark_idle_if_done()

    async def flush(self) -> None:
        """Wait until nothing is scheduled or rendering."""
        await self._idle.wait()

    def close(self) -> None:
        """Cancel any pending update.  Renders in progress finish and are discarded."""
        self._cancel_timer()
        self._sequence += 1
        self._mark_idle_if_done()

    # ── Stages ────────────────────────────────────────────────────────────────

    def _current_variables(self) -> dict[str, Any]:
        source = self._variables
        if source is None:
            return {}
        try:
            values = source() if callable(source) else source
            return flatten_variables(values or {})
        except Exception as exc:
            logger.warning("Variable source failed, rendering without variables: %s", exc)
            return {}

    def _all_variables(self, variables: Mapping[str, Any]) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        capability = self._plugins.get(self._variables_plugin)
        if capability is not None:
            merged.update(capability.defaults())
        merged.update(flatten_variables(variables))
        return merged

    def _resolve_stage(self, content: str, variables: Mapping[str, Any]) -> str:
        return resolve_variables(content, self._all_variables(variables))

    def _template_stage(self, content: str, variables: Mapping[str, Any]) -> Any:
        renderer = self._plugins.get(self._templates_plugin)
        if renderer is None or not needs_templating(content):
            return content
        return renderer.render(content, self._all_variables(variables))

    def _assemble_stage(self, content: str, variables: Mapping[str, Any]) -> str:
        return assemble_document(content, self._plugins.preview_fragments(), title=self._title, lang=self._lang)

    async def process(self, content: str, variables: Mapping[str, Any] | None = None) -> str:
        """Run every stage over ``content``; never raises for stage failures."""
        stages = (
            ("variables", self._resolve_stage),
            ("templates", self._template_stage),
            ("document", self._assemble_stage),
        )
        values = dict(variables or {})
        output = content or ""
        for name, stage in stages:
            try:
                result = stage(output, values)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                logger.warning("Preview stage '%s' failed, keeping previous output: %s", name, exc)
                continue
            output = result
        return output

    async def render_now(self, raw_content: str, variables: Mapping[str, Any] | None = None) -> str:
        """Render immediately, bypassing the debounce and the surface."""
        values = self._current_variables()
        values.update(flatten_variables(variables or {}))
        return await self.process(raw_content, values)
