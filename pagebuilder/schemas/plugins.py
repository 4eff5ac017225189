from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel


class PluginResponse(BaseModel):
    name: str
    version: str
    description: str
    author: str
    dependencies: list[str]
    preview_priority: int
    status: str
    reason: Optional[str] = None
    hooks: list[str]
    config: dict[str, Any]
    config_schema: dict[str, Any]
