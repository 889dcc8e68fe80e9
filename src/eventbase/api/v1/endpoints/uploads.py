"""Content upload API endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Header, Query, Request

from eventbase.core.config import Settings, get_settings
from eventbase.infrastructure.storage import (
    PinataContentStore,
    get_content_store,
    validate_image_upload,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/uploads", tags=["Uploads"])


@router.post("/image")
async def upload_image(
    request: Request,
    store: Annotated[PinataContentStore, Depends(get_content_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    content_type: str = Header(..., description="Image MIME type"),
    filename: str = Query("upload", description="Original filename"),
) -> dict[str, Any]:
    """Pin a banner image sent as the raw request body.

    Type and size are checked before anything is sent to the store.
    """
    data = await request.body()
    validate_image_upload(data, content_type, settings)
    url = await store.upload_binary(data, content_type, filename)
    return {"success": True, "url": url}


@router.post("/metadata")
async def upload_metadata(
    store: Annotated[PinataContentStore, Depends(get_content_store)],
    document: dict[str, Any] = Body(..., description="Metadata JSON"),
) -> dict[str, Any]:
    url = await store.upload_json(document)
    return {"success": True, "url": url}
