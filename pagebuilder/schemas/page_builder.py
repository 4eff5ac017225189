from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BlockNode(BaseModel):
    """One block of a page, as sent by the editor."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Block id; generated when omitted.")
    type_id: str = Field(..., alias="typeId", description="Registered block type id, e.g. 'grid'.")
    config: dict[str, Any] = Field(default_factory=dict)
    styles: dict[str, Any] = Field(default_factory=dict)
    order: Optional[int] = Field(None, description="Position among siblings.")
    children: list[BlockNode] = Field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.id,
            "typeId": self.type_id,
            "config": self.config,
            "styles": self.styles,
            "children": [child.to_record() for child in self.children],
        }
        if self.order is not None:
            record["order"] = self.order
        return record


class RenderRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "blocks": [
                    {
                        "typeId": "grid",
                        "config": {"columns": 2},
                        "children": [
                            {"typeId": "text", "config": {"content": "Left"}},
                            {"typeId": "text", "config": {"content": "Right"}},
                        ],
                    }
                ]
            }
        }
    )

    blocks: list[BlockNode] = Field(default_factory=list)


class RenderResponse(BaseModel):
    html: str
    block_count: int


class PreviewRequest(BaseModel):
    content: str = Field("", description="Raw page content, may contain {{ placeholders }} and template tags.")
    variables: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "content": "<p>Hello {{ user.name }}</p>",
                "variables": {"user": {"name": "Ada"}},
            }
        }
    )


class PreviewResponse(BaseModel):
    html: str


class LivePreviewResponse(BaseModel):
    accepted: bool
    sequence: int
    state: str


class BlockTypeResponse(BaseModel):
    id: str
    name: str
    description: str
    category: str
    is_container: bool
    default_config: dict[str, Any]
    default_styles: dict[str, Any]
