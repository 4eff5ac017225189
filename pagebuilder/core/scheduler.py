"""
Dependency Scheduler

Orders named initialization tasks so that every task comes after the tasks
it depends on.  The ordering is a depth-first topological sort; tasks with
no ordering constraint between them are visited by descending priority and
then by declaration order, so the same input always yields the same order.

The scheduler is pure: it never runs a task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from pagebuilder.exceptions import CircularDependencyError

logger = logging.getLogger(__name__)

InitFunction = Callable[[], Any]


@dataclass
class CapabilityTask:
    """
    A named unit of initialization.

    Attributes:
        name:         Unique task name (plugin or library name).
        init:         Zero-argument callable producing the capability; may be async.
        dependencies: Names of tasks that must complete first.
        priority:     Tie-breaker between unconstrained tasks, higher first.
    """

    name: str
    init: InitFunction
    dependencies: tuple[str, ...] = field(default_factory=tuple)
    priority: int = 0

    def __post_init__(self) -> None:
        # Keep declaration order, drop repeats.
        self.dependencies = tuple(dict.fromkeys(self.dependencies))


def _unique(tasks: Iterable[CapabilityTask]) -> list[CapabilityTask]:
    seen: dict[str, CapabilityTask] = {}
    for task in tasks:
        if task.name in seen:
            logger.warning("Task %s declared twice, keeping the first declaration", task.name)
            continue
        seen[task.name] = task
    return list(seen.values())


def missing_dependencies(tasks: Iterable[CapabilityTask]) -> dict[str, list[str]]:
    """Return, per task, the dependency names that are absent from the task set."""
    task_list = _unique(tasks)
    names = {task.name for task in task_list}
    missing: dict[str, list[str]] = {}
    for task in task_list:
        absent = [dep for dep in task.dependencies if dep not in names]
        if absent:
            missing[task.name] = absent
    return missing


def schedule(tasks: Iterable[CapabilityTask]) -> list[CapabilityTask]:
    """
    Return the tasks in dependency-correct order.

    Dependencies naming a task that is not in the set are ignored.

    Raises:
        CircularDependencyError: if the dependency graph has a cycle.  The
            error carries the cycle path; no partial order is returned.
    """
    task_list = _unique(tasks)
    by_name = {task.name: task for task in task_list}
    position = {task.name: index for index, task in enumerate(task_list)}

    def rank(name: str) -> tuple[int, int]:
        return (-by_name[name].priority, position[name])

    visited: set[str] = set()
    path: list[str] = []
    on_path: set[str] = set()
    ordered: list[CapabilityTask] = []

    def visit(name: str) -> None:
        if name in on_path:
            cycle = path[path.index(name):] + [name]
            raise CircularDependencyError(cycle)
        if name in visited:
            return

        path.append(name)
        on_path.add(name)
        known = [dep for dep in by_name[name].dependencies if dep in by_name]
        for dep in sorted(known, key=rank):
            visit(dep)
        on_path.discard(name)
        path.pop()

        visited.add(name)
        ordered.append(by_name[name])

    for name in sorted(by_name, key=rank):
        visit(name)

    logger.debug("Scheduled order: %s", [task.name for task in ordered])
    return ordered
