"""
Page Builder Routes

POST /api/v1/page-builder/render        → render a block tree to HTML
POST /api/v1/page-builder/preview       → full preview document, rendered now
POST /api/v1/page-builder/preview/live  → debounced preview update (202)
GET  /api/v1/page-builder/blocks        → registered block types

The live preview stream lives in ``routes/sse.py``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status

from pagebuilder.preview.pipeline import PreviewState
from pagebuilder.runtime import PageBuilderRuntime, get_runtime
from pagebuilder.schemas.page_builder import (
    BlockTypeResponse,
    LivePreviewResponse,
    PreviewRequest,
    PreviewResponse,
    RenderRequest,
    RenderResponse,
)

router = APIRouter(tags=["Page Builder"])
logger = logging.getLogger(__name__)


@router.post("/render", response_model=RenderResponse)
async def render_blocks(
    payload: RenderRequest,
    runtime: PageBuilderRuntime = Depends(get_runtime),
) -> RenderResponse:
    """Render a nested block tree to an HTML fragment.

    Unknown block types and children under non-container blocks are
    rejected with 400.
    """
    tree = runtime.new_tree()
    tree.load(block.to_record() for block in payload.blocks)
    return RenderResponse(html=tree.render(), block_count=len(tree))


@router.post("/preview", response_model=PreviewResponse)
async def render_preview(
    payload: PreviewRequest,
    runtime: PageBuilderRuntime = Depends(get_runtime),
) -> PreviewResponse:
    """Run content through every preview stage and return the document."""
    html = await runtime.pipeline.render_now(payload.content, payload.variables)
    return PreviewResponse(html=html)


@router.post("/preview/live", response_model=LivePreviewResponse, status_code=status.HTTP_202_ACCEPTED)
async def update_live_preview(
    payload: PreviewRequest,
    runtime: PageBuilderRuntime = Depends(get_runtime),
) -> LivePreviewResponse:
    """Queue content for the live preview.

    Rapid calls are coalesced; subscribers of ``/preview/stream`` receive the
    document for the last content once the editor goes quiet.
    """
    pipeline = runtime.pipeline
    before = pipeline.sequence
    pipeline.update_preview(payload.content)
    return LivePreviewResponse(
        accepted=pipeline.state is PreviewState.SCHEDULED and pipeline.sequence != before,
        sequence=pipeline.sequence,
        state=pipeline.state.value,
    )


@router.get("/blocks", response_model=list[BlockTypeResponse])
async def list_block_types(
    runtime: PageBuilderRuntime = Depends(get_runtime),
) -> list[BlockTypeResponse]:
    """List registered block types in registration order."""
    return [BlockTypeResponse(**descriptor.to_dict()) for descriptor in runtime.blocks.all_types()]
