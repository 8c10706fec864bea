"""
Infinite Notepad Backend — Signed Object Downloads
====================================================

GET /api/storage/{key}?expires=<unix>&signature=<hex>

No bearer token: the signature is the authorization. Links come from
GET /api/media/{mediaId}/url and stop working after `expires`.
"""

import mimetypes

from fastapi import APIRouter, Depends, Query
from fastapi.responses import FileResponse

from notepad.dependencies import get_storage
from notepad.exceptions import NotFoundError
from notepad.schemas.common import ErrorResponse
from notepad.services.storage_service import ObjectStorage

router = APIRouter(prefix="/api/storage", tags=["Storage"])


@router.get(
    "/{key:path}",
    responses={
        200: {"description": "The object's bytes"},
        403: {"description": "Expired or invalid signature", "model": ErrorResponse},
        404: {"description": "Object not found", "model": ErrorResponse},
    },
    summary="Download an object through a signed URL",
)
async def download_object(
    key: str,
    expires: int = Query(..., description="Expiry as unix seconds"),
    signature: str = Query(..., description="Hex HMAC-SHA256 of '<key>:<expires>'"),
    storage: ObjectStorage = Depends(get_storage),
) -> FileResponse:
    storage.verify_signature(key, expires, signature)
    path = storage.path_for(key)
    if not path.is_file():
        raise NotFoundError(resource="object", resource_id=key)

    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    return FileResponse(
        path=str(path),
        media_type=media_type,
        headers={"Cache-Control": "private, max-age=3600"},
    )
