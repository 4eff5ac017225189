"""
Block data model.

BlockTypeDescriptor: read-only description of a block type (defaults, container flag).
BlockInstance:       one block placed on a page.  Children are stored as an
                     ordered list of block ids resolved through the owning tree.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BlockTypeDescriptor:
    """
    Attributes:
        id:             Unique type id, e.g. "hero".
        name:           Display name for the block palette.
        description:    One-line description.
        category:       Palette group ("content", "layout", ...).
        default_config: Config applied to every new instance.
        default_styles: Styles applied to every new instance.
        is_container:   Only container types may hold children.
    """

    id: str
    name: str = ""
    description: str = ""
    category: str = "content"
    default_config: dict[str, Any] = field(default_factory=dict)
    default_styles: dict[str, Any] = field(default_factory=dict)
    is_container: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name or self.id,
            "description": self.description,
            "category": self.category,
            "default_config": dict(self.default_config),
            "default_styles": dict(self.default_styles),
            "is_container": self.is_container,
        }


def generate_block_id(type_id: str) -> str:
    return f"{type_id}-{uuid.uuid4().hex[:12]}"


@dataclass
class BlockInstance:
    id: str
    type_id: str
    config: dict[str, Any] = field(default_factory=dict)
    styles: dict[str, Any] = field(default_factory=dict)
    children: list[str] = field(default_factory=list)
