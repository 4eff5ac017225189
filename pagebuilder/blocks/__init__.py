"""
Block Composition Tree

Public API:
    BlockTypeDescriptor  — read-only block type description
    BlockInstance        — one block placed on a page
    BlockTypeRegistry    — registered types and their render procedures
    BlockTree            — arena of blocks with nesting and rendering
"""

from .models import BlockInstance, BlockTypeDescriptor
from .registry import BlockTypeRegistry
from .tree import BlockTree

__all__ = ["BlockInstance", "BlockTree", "BlockTypeDescriptor", "BlockTypeRegistry"]
