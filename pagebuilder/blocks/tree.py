"""
Block Composition Tree

BlockTree keeps every BlockInstance in an arena keyed by block id.  Parents
reference children by id, so editing the tree never aliases a child list
between two parents and a block can only ever be attached once.

All mutations validate first and change nothing on failure.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pagebuilder.blocks.models import BlockInstance
from pagebuilder.blocks.registry import BlockTypeRegistry
from pagebuilder.exceptions import (
    BlockNotFoundError,
    InvalidOperationError,
    NotAContainerError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class BlockTree:
    """An editable page made of nested blocks."""

    def __init__(self, registry: BlockTypeRegistry) -> None:
        self.registry = registry
        self._blocks: dict[str, BlockInstance] = {}
        # attached block id -> parent id (None for top-level blocks)
        self._parents: dict[str, str | None] = {}
        self._roots: list[str] = []

    def __len__(self) -> int:
        return len(self._blocks)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._blocks

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, block_id: str) -> BlockInstance:
        block = self._blocks.get(block_id)
        if block is None:
            raise BlockNotFoundError(block_id)
        return block

    def roots(self) -> list[BlockInstance]:
        return [self._blocks[block_id] for block_id in self._roots]

    def children(self, block_id: str) -> list[BlockInstance]:
        return [self._blocks[child_id] for child_id in self.get(block_id).children]

    def parent_of(self, block_id: str) -> BlockInstance | None:
        self.get(block_id)
        parent_id = self._parents.get(block_id)
        return self._blocks[parent_id] if parent_id is not None else None

    def walk(self, root_ids: Iterable[str] | None = None) -> Iterator[tuple[BlockInstance, int]]:
        """Yield ``(block, depth)`` depth-first, parents before children."""
        stack = [(block_id, 0) for block_id in reversed(list(self._roots if root_ids is None else root_ids))]
        while stack:
            block_id, depth = stack.pop()
            block = self.get(block_id)
            yield block, depth
            stack.extend((child_id, depth + 1) for child_id in reversed(block.children))

    def _subtree_ids(self, block_id: str) -> list[str]:
        return [block.id for block, _ in self.walk([block_id])]

    # ── Creation ──────────────────────────────────────────────────────────────

    def create_instance(
        self,
        type_id: str,
        overrides: Mapping[str, Any] | None = None,
        block_id: str | None = None,
    ) -> BlockInstance:
        """
        Create a detached block with merged config and styles.

        Raises:
            UnknownBlockTypeError: if ``type_id`` is not registered.
            InvalidOperationError: if ``block_id`` is already used.
        """
        if block_id is not None and block_id in self._blocks:
            raise InvalidOperationError(f"Block id '{block_id}' is already in use", {"block_id": block_id})
        block = self.registry.create_instance(type_id, overrides, block_id=block_id)
        self._blocks[block.id] = block
        return block

    # ── Attachment ────────────────────────────────────────────────────────────

    def _check_attachable(self, child: BlockInstance, parent_id: str | None) -> None:
        descriptor = self.registry.require(child.type_id)
        known = self._blocks.get(child.id)
        if known is not None and known is not child:
            raise InvalidOperationError(f"Block id '{child.id}' is already in use", {"block_id": child.id})
        if child.id in self._parents:
            raise InvalidOperationError(f"Block '{child.id}' is already attached", {"block_id": child.id})
        if child.children and not descriptor.is_container:
            raise NotAContainerError(child.id, child.type_id)
        if known is None and child.children:
            raise InvalidOperationError(
                f"Block '{child.id}' references children outside this tree", {"block_id": child.id}
            )
        if known is not None and parent_id is not None and parent_id in self._subtree_ids(child.id):
            raise InvalidOperationError(
                f"Block '{child.id}' cannot be placed inside its own subtree",
                {"block_id": child.id, "parent_id": parent_id},
            )

    @staticmethod
    def _insert(ids: list[str], block_id: str, position: int | None) -> None:
        if position is None:
            ids.append(block_id)
        else:
            ids.insert(position, block_id)

    def add_root(self, block: BlockInstance, position: int | None = None) -> BlockInstance:
        """Attach ``block`` at the top level of the page."""
        self._check_attachable(block, None)
        self._blocks[block.id] = block
        self._parents[block.id] = None
        self._insert(self._roots, block.id, position)
        return block

    def add_child(self, parent_id: str, child: BlockInstance, position: int | None = None) -> BlockInstance:
        """
        Attach ``child`` under ``parent_id``.

        Raises:
            BlockNotFoundError: if the parent is not in the tree.
            NotAContainerError: if the parent's type is not a container.
            InvalidOperationError: if the child is already attached or would
                become its own ancestor.
        """
        parent = self.get(parent_id)
        if not self.registry.require(parent.type_id).is_container:
            raise NotAContainerError(parent.id, parent.type_id)
        self._check_attachable(child, parent_id)
        self._blocks[child.id] = child
        self._parents[child.id] = parent_id
        self._insert(parent.children, child.id, position)
        logger.debug("Block %s added to %s", child.id, parent_id)
        return child

    # ── Removal ───────────────────────────────────────────────────────────────

    def _discard(self, block_id: str) -> None:
        for descendant_id in self._subtree_ids(block_id):
            self._blocks.pop(descendant_id, None)
            self._parents.pop(descendant_id, None)

    def remove_child(self, parent_id: str, child_id: str) -> BlockInstance:
        """Detach ``child_id`` from its parent and destroy its subtree."""
        parent = self.get(parent_id)
        if child_id not in parent.children:
            raise BlockNotFoundError(child_id)
        child = self._blocks[child_id]
        self._discard(child_id)
        parent.children.remove(child_id)
        logger.debug("Block %s removed from %s", child_id, parent_id)
        return child

    def remove_root(self, block_id: str) -> BlockInstance:
        if block_id not in self._roots:
            raise BlockNotFoundError(block_id)
        block = self._blocks[block_id]
        self._discard(block_id)
        self._roots.remove(block_id)
        return block

    # ── Editing ───────────────────────────────────────────────────────────────

    def update(
        self,
        block_id: str,
        config: Mapping[str, Any] | None = None,
        styles: Mapping[str, Any] | None = None,
    ) -> BlockInstance:
        """Shallow-merge new config/styles values into a block in place."""
        block = self.get(block_id)
        if config:
            block.config.update(config)
        if styles:
            block.styles.update(styles)
        return block

    # ── Rendering ─────────────────────────────────────────────────────────────

    def render_block(self, block_id: str) -> str:
        block = self.get(block_id)
        children = "\n".join(self.render_block(child_id) for child_id in block.children)
        return self.registry.renderer_for(block.type_id)(block, children)

    def render(self, root_ids: Iterable[str] | None = None) -> str:
        """Render the page (or the given top-level blocks) depth-first."""
        ids = self._roots if root_ids is None else list(root_ids)
        return "\n".join(self.render_block(block_id) for block_id in ids)

    # ── Import / export ───────────────────────────────────────────────────────

    def load(self, records: Iterable[Mapping[str, Any]]) -> list[BlockInstance]:
        """
        Replace the tree with blocks built from nested records.

        Each record looks like ``{"id", "typeId", "config", "styles",
        "children", "order"}``; ``type`` and ``type_id`` are accepted as
        aliases of ``typeId``.  Siblings are sorted by ``order`` when present.
        On any error the current tree is left unchanged.
        """
        staging = BlockTree(self.registry)
        for record in _sorted_records(records):
            staging.add_root(staging._build(record))

        self._blocks = staging._blocks
        self._parents = staging._parents
        self._roots = staging._roots
        logger.info("Block tree loaded: %d blocks", len(self._blocks))
        return self.roots()

    def _build(self, record: Mapping[str, Any]) -> BlockInstance:
        if not isinstance(record, Mapping):
            raise ValidationError("Block record must be an object")
        type_id = record.get("typeId") or record.get("type_id") or record.get("type")
        if not type_id:
            raise ValidationError("Block type is required", field="typeId")

        block = self.create_instance(
            type_id,
            {"config": record.get("config"), "styles": record.get("styles")},
            block_id=record.get("id") or None,
        )
        children = _sorted_records(record.get("children") or [])
        if children and not self.registry.require(type_id).is_container:
            raise NotAContainerError(block.id, type_id)
        for child_record in children:
            child = self._build(child_record)
            self._parents[child.id] = block.id
            block.children.append(child.id)
        return block

    def to_dict(self) -> list[dict[str, Any]]:
        """Export the tree as nested records (the ``load`` input format)."""

        def export(block_id: str, order: int) -> dict[str, Any]:
            block = self._blocks[block_id]
            return {
                "id": block.id,
                "typeId": block.type_id,
                "config": dict(block.config),
                "styles": dict(block.styles),
                "order": order,
                "children": [export(child_id, index) for index, child_id in enumerate(block.children)],
            }

        return [export(block_id, index) for index, block_id in enumerate(self._roots)]


def _sorted_records(records: Iterable[Mapping[str, Any]]) -> list[Mapping[str, Any]]:
    items = list(records)
    if any(isinstance(item, Mapping) and "order" in item for item in items):
        return sorted(items, key=lambda item: item.get("order", 0) if isinstance(item, Mapping) else 0)
    return items
