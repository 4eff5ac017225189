"""
Block Type Registry

BlockTypeRegistry: registered block type descriptors and their render
procedures.  Types are registered once at startup and read-only afterward.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from markupsafe import escape

from pagebuilder.blocks.models import BlockInstance, BlockTypeDescriptor, generate_block_id
from pagebuilder.exceptions import DuplicateBlockTypeError, UnknownBlockTypeError

logger = logging.getLogger(__name__)

# (instance, rendered children markup) -> markup
BlockRenderFn = Callable[[BlockInstance, str], str]


def render_generic(instance: BlockInstance, children: str) -> str:
    """Fallback for types registered without a render procedure."""
    return (
        f'<div data-block-id="{escape(instance.id)}" data-block-type="{escape(instance.type_id)}">'
        f"{children}</div>"
    )


class BlockTypeRegistry:
    """Lookup of block types by id."""

    def __init__(self) -> None:
        self._types: dict[str, BlockTypeDescriptor] = {}
        self._renderers: dict[str, BlockRenderFn] = {}

    # ── Registration ──────────────────────────────────────────────────────────

    def register_type(self, descriptor: BlockTypeDescriptor, render: BlockRenderFn | None = None) -> None:
        """
        Register a block type.

        Raises:
            DuplicateBlockTypeError: if the id is already registered.
        """
        if descriptor.id in self._types:
            raise DuplicateBlockTypeError(descriptor.id)
        self._types[descriptor.id] = descriptor
        if render is not None:
            self._renderers[descriptor.id] = render
        logger.info("Block type registered: %s (container=%s)", descriptor.id, descriptor.is_container)

    # ── Lookup ────────────────────────────────────────────────────────────────

    def get(self, type_id: str) -> BlockTypeDescriptor | None:
        return self._types.get(type_id)

    def require(self, type_id: str) -> BlockTypeDescriptor:
        descriptor = self._types.get(type_id)
        if descriptor is None:
            raise UnknownBlockTypeError(type_id)
        return descriptor

    def is_registered(self, type_id: str) -> bool:
        return type_id in self._types

    def all_types(self) -> list[BlockTypeDescriptor]:
        """Return descriptors in registration order."""
        return list(self._types.values())

    def renderer_for(self, type_id: str) -> BlockRenderFn:
        return self._renderers.get(type_id, render_generic)

    # ── Instances ─────────────────────────────────────────────────────────────

    def create_instance(
        self,
        type_id: str,
        overrides: Mapping[str, Any] | None = None,
        block_id: str | None = None,
    ) -> BlockInstance:
        """
        Build a new block of ``type_id``.

        ``overrides`` may carry ``config`` and ``styles`` maps; each is
        shallow-merged over the type defaults, overrides win.

        Raises:
            UnknownBlockTypeError: if ``type_id`` is not registered.
        """
        descriptor = self.require(type_id)
        overrides = overrides or {}
        return BlockInstance(
            id=block_id or generate_block_id(type_id),
            type_id=type_id,
            config={**descriptor.default_config, **(overrides.get("config") or {})},
            styles={**descriptor.default_styles, **(overrides.get("styles") or {})},
        )
