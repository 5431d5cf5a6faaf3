"""
Downloads API

Serves purchased workflow files as JSON attachments.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import FileResponse

from api.dependencies import get_download_gate
from core.auth import get_bearer_user_id
from storefront.schemas import ErrorResponse

from .access import DownloadGate

router = APIRouter(prefix="/api", tags=["downloads"])


@router.get(
    "/download/{product_id}",
    response_class=FileResponse,
    responses={
        200: {"content": {"application/json": {}}, "description": "Workflow file"},
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Download a purchased workflow",
)
async def download_workflow(
    product_id: str,
    user_id: Optional[str] = Query(None, alias="userId"),
    token: Optional[str] = Query(None, description="Download token issued at purchase"),
    bearer_user_id: Optional[str] = Depends(get_bearer_user_id),
    gate: DownloadGate = Depends(get_download_gate),
):
    """
    Download a workflow file

    Authorize with ``userId`` and ``token`` query parameters, or with an
    ``Authorization: Bearer`` JWT whose subject bought the product.
    """
    path = await run_in_threadpool(
        gate.authorize,
        product_id,
        user_id=user_id,
        token=token,
        bearer_user_id=bearer_user_id,
    )
    return FileResponse(path, media_type="application/json", filename=gate.download_filename(product_id))
