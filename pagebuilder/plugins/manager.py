"""
Plugin Lifecycle Manager

PluginManager: owns the plugin catalog and drives every plugin through
registration -> dependency-ordered initialization -> ready.

Initialization asks the scheduler for an order and then requests each
capability from the SingletonRegistry one at a time.  A plugin whose
dependency did not become ready is skipped with a reason and never attempted.
Once every plugin has resolved, ``on_ready`` hooks run once each, in the same
order.

Preview fragments and editor snippets are collected from ready plugins only;
a misbehaving plugin is logged and left out, never allowed to break the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Any

from pagebuilder.core.scheduler import CapabilityTask, missing_dependencies, schedule
from pagebuilder.core.singleton import SingletonRegistry
from pagebuilder.exceptions import InitializationTimeoutError, PluginNotFoundError
from pagebuilder.plugins.base import PluginBase, PluginCapabilities, PluginContext

logger = logging.getLogger(__name__)


class PluginStatus(str, Enum):
    REGISTERED = "registered"
    READY = "ready"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class PluginRecord:
    """Catalog entry for one registered plugin."""

    plugin: PluginBase
    capabilities: PluginCapabilities
    config: dict[str, Any] = field(default_factory=dict)
    status: PluginStatus = PluginStatus.REGISTERED
    reason: str | None = None
    ready_fired: bool = False

    @property
    def name(self) -> str:
        return self.plugin.meta.name


@dataclass
class InitializationReport:
    """Outcome of one initialize_all() run."""

    order: list[str] = field(default_factory=list)
    ready: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)
    missing_dependencies: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped


@dataclass(frozen=True)
class PreviewFragment:
    name: str
    priority: int
    markup: str


class PluginManager:
    """
    Catalog and lifecycle driver for page builder plugins.

    One instance per runtime; tests create their own.
    """

    def __init__(self, singletons: SingletonRegistry | None = None) -> None:
        self._records: dict[str, PluginRecord] = {}
        self._singletons = singletons or SingletonRegistry()
        self._init_lock = asyncio.Lock()

    @property
    def singletons(self) -> SingletonRegistry:
        return self._singletons

    # ── Registration ──────────────────────────────────────────────────────────

    def register(self, plugin: PluginBase, config: dict[str, Any] | None = None) -> bool:
        """
        Add a plugin to the catalog.

        Re-registering a name already in the catalog is a no-op.

        Returns:
            True if the plugin was added, False if the name was already taken.
        """
        name = plugin.meta.name
        if name in self._records:
            logger.debug("Plugin %s already registered, skipping", name)
            return False

        capabilities = PluginCapabilities.from_plugin(plugin)
        self._records[name] = PluginRecord(plugin=plugin, capabilities=capabilities, config=dict(config or {}))
        logger.info(
            "Plugin registered: %s v%s (deps=%s, hooks=%s)",
            name,
            plugin.meta.version,
            plugin.meta.dependencies,
            capabilities.names(),
            extra={"plugin": name},
        )
        return True

    async def unregister(self, name: str) -> None:
        """Tear down a plugin's capability and drop it from the catalog."""
        if name not in self._records:
            raise PluginNotFoundError(name)
        await self._singletons.remove(name)
        del self._records[name]
        logger.info("Plugin unregistered: %s", name, extra={"plugin": name})

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, name: str) -> Any | None:
        """Return the capability of a ready plugin, or None."""
        record = self._records.get(name)
        if record is None or record.status is not PluginStatus.READY:
            return None
        return self._singletons.peek(name)

    def get_plugin(self, name: str) -> PluginBase | None:
        record = self._records.get(name)
        return record.plugin if record else None

    def get_record(self, name: str) -> PluginRecord | None:
        return self._records.get(name)

    def is_registered(self, name: str) -> bool:
        return name in self._records

    def is_ready(self, name: str) -> bool:
        record = self._records.get(name)
        return record is not None and record.status is PluginStatus.READY

    def all_plugins(self) -> list[PluginBase]:
        """Return all registered plugins in registration order."""
        return [record.plugin for record in self._records.values()]

    def status(self) -> dict[str, dict[str, Any]]:
        return {
            name: {"status": record.status.value, "reason": record.reason}
            for name, record in self._records.items()
        }

    # ── Initialization ────────────────────────────────────────────────────────

    def _task_for(self, record: PluginRecord) -> CapabilityTask:
        context = PluginContext(name=record.name, config=record.config, lookup=self.get)
        return CapabilityTask(
            name=record.name,
            init=partial(record.plugin.init, context),
            dependencies=tuple(record.plugin.meta.dependencies),
            priority=record.plugin.meta.preview_priority,
        )

    async def initialize_all(self) -> InitializationReport:
        """
        Bring every registered plugin up in dependency order.

        Concurrent calls are serialized; a second caller runs after the
        first has finished and only retries what is not ready yet.

        Raises:
            CircularDependencyError: before any plugin is attempted.
        """
        async with self._init_lock:
            return await self._initialize_all()

    async def _initialize_all(self) -> InitializationReport:
        tasks = [self._task_for(record) for record in self._records.values()]
        ordered = schedule(tasks)
        report = InitializationReport(order=[task.name for task in ordered])

        report.missing_dependencies = missing_dependencies(tasks)
        for name, absent in report.missing_dependencies.items():
            logger.warning(
                "Plugin %s depends on unregistered plugin(s) %s, ignoring", name, absent, extra={"plugin": name}
            )

        for task in ordered:
            record = self._records.get(task.name)
            if record is None:
                logger.info(
                    "Plugin %s unregistered before its turn, not initializing",
                    task.name,
                    extra={"plugin": task.name},
                )
                continue
            blocker = self._first_unready_dependency(task)
            if blocker is not None:
                record.status = PluginStatus.SKIPPED
                record.reason = f"dependency '{blocker}' is not ready ({self._records[blocker].status.value})"
                report.skipped[task.name] = record.reason
                logger.warning("Plugin %s skipped: %s", task.name, record.reason, extra={"plugin": task.name})
                continue

            failure: str | None = None
            try:
                await self._singletons.get_instance(task.name, task.init, teardown=record.plugin.teardown)
            except InitializationTimeoutError as exc:
                failure = exc.message
            except Exception as exc:
                failure = f"{type(exc).__name__}: {exc}"

            if self._records.get(task.name) is not record:
                logger.info(
                    "Plugin %s unregistered during initialization, result dropped",
                    task.name,
                    extra={"plugin": task.name},
                )
                continue
            if failure is not None:
                self._mark_failed(record, failure, report)
                continue
            record.status = PluginStatus.READY
            record.reason = None
            report.ready.append(task.name)
            logger.info("Plugin %s ready", task.name, extra={"plugin": task.name})

        await self._fire_ready_hooks(report.order)
        logger.info(
            "Plugin initialisation complete: %d ready, %d failed, %d skipped",
            len(report.ready),
            len(report.failed),
            len(report.skipped),
        )
        return report

    def _first_unready_dependency(self, task: CapabilityTask) -> str | None:
        for dep in task.dependencies:
            record = self._records.get(dep)
            if record is not None and record.status is not PluginStatus.READY:
                return dep
        return None

    @staticmethod
    def _mark_failed(record: PluginRecord, reason: str, report: InitializationReport) -> None:
        record.status = PluginStatus.FAILED
        record.reason = reason
        report.failed[record.name] = reason
        logger.error("Plugin %s failed to initialize: %s", record.name, reason, extra={"plugin": record.name})

    async def _fire_ready_hooks(self, order: list[str]) -> None:
        for name in order:
            record = self._records.get(name)
            if record is None or record.status is not PluginStatus.READY or record.ready_fired:
                continue
            record.ready_fired = True
            if record.capabilities.on_ready is None:
                continue
            try:
                result = record.capabilities.on_ready()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                logger.warning("Plugin %s on_ready raised: %s", name, exc, extra={"plugin": name})

    # ── Ready-plugin enumeration ──────────────────────────────────────────────

    def _ready_records(self) -> list[PluginRecord]:
        ready = [record for record in self._records.values() if record.status is PluginStatus.READY]
        # sorted() is stable, so equal priorities keep registration order.
        return sorted(ready, key=lambda record: -record.plugin.meta.preview_priority)

    def for_each_ready(self, visitor: Callable[[PluginBase, PluginCapabilities], Any]) -> None:
        """Call ``visitor(plugin, capabilities)`` for each ready plugin, highest preview priority first."""
        for record in self._ready_records():
            visitor(record.plugin, record.capabilities)

    def preview_fragments(self) -> list[PreviewFragment]:
        """Collect preview markup from ready plugins, highest priority first."""
        fragments: list[PreviewFragment] = []

        def collect(plugin: PluginBase, capabilities: PluginCapabilities) -> None:
            if capabilities.preview_fragment is None:
                return
            try:
                markup = capabilities.preview_fragment()
            except Exception as exc:
                logger.warning(
                    "Plugin %s preview fragment raised: %s", plugin.meta.name, exc, extra={"plugin": plugin.meta.name}
                )
                return
            fragments.append(PreviewFragment(plugin.meta.name, plugin.meta.preview_priority, markup))

        self.for_each_ready(collect)
        return fragments

    def snippets(self) -> dict[str, dict[str, dict[str, str]]]:
        """Collect editor snippets from ready plugins, keyed by plugin name."""
        collected: dict[str, dict[str, dict[str, str]]] = {}

        def collect(plugin: PluginBase, capabilities: PluginCapabilities) -> None:
            if capabilities.snippets is None:
                return
            try:
                collected[plugin.meta.name] = dict(capabilities.snippets())
            except Exception as exc:
                logger.warning(
                    "Plugin %s snippets raised: %s", plugin.meta.name, exc, extra={"plugin": plugin.meta.name}
                )

        self.for_each_ready(collect)
        return collected

    # ── Shutdown ──────────────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Tear down all capabilities; plugins stay registered."""
        await self._singletons.clear()
        for record in self._records.values():
            record.status = PluginStatus.REGISTERED
            record.reason = None
            record.ready_fired = False
        logger.info("Plugin manager shut down")
