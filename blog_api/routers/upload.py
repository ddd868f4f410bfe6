# blog_api/routers/upload.py
"""
File upload endpoint.

POST /api/upload - multipart form with `file` and optional `directory`
"""

import logging

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from blog_api.auth import require_admin_token
from blog_api.responses import ApiError
from blog_api.services.upload_service import DEFAULT_DIRECTORY, UploadService, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/upload", dependencies=[Depends(require_admin_token)])
def upload_file(
    file: UploadFile | None = File(None),
    directory: str = Form(DEFAULT_DIRECTORY),
    uploads: UploadService = Depends(get_upload_service),
):
    """
    Upload a markdown, image or video file to object storage.

    Returns {"url": ...} on success, {"error": ...} with a 4xx/5xx status otherwise.
    """
    if file is None or not file.filename:
        return JSONResponse(status_code=400, content={"error": "No file provided"})

    if file.size is not None and file.size > uploads.max_bytes:
        return JSONResponse(status_code=400, content={"error": uploads.size_limit_message()})

    # One byte past the limit is enough for validation to reject the file.
    content = file.file.read(uploads.max_bytes + 1)
    try:
        stored = uploads.upload(file.filename, file.content_type, content, directory)
    except ApiError as e:
        logger.error(f"Upload error for {file.filename}: {e.message}", extra={"status_code": e.status_code})
        return JSONResponse(status_code=e.status_code, content={"error": e.message})

    return {"url": stored.url}
