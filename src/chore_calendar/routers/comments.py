from __future__ import annotations

import datetime as dt
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status

from ..attachments import Attachment, AttachmentPipeline
from ..schemas import CommentCreate, CommentOut

router = APIRouter(
    prefix="/api/comments",
    tags=["comments"],
)


def get_pipeline(request: Request) -> AttachmentPipeline:
    """
    Dependency returning the comment pipeline built once at application startup.
    """
    return request.app.state.pipeline


def _read_attachment(photo: Optional[UploadFile], limit: int) -> Optional[Attachment]:
    """
    Read at most ``limit + 1`` bytes so oversized photos are detected without
    buffering the whole upload. An empty file part with no filename is what
    browsers send when nothing was picked; treat it as no photo.
    """
    if photo is None:
        return None
    data = photo.file.read(limit + 1)
    if not data and not photo.filename:
        return None
    return Attachment(
        data=data,
        content_type=photo.content_type or "application/octet-stream",
        filename=photo.filename or "photo",
    )


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[CommentOut],
    summary="List Comments",
    description="List all comments, most recent first. Clients group them by date.",
)
def list_comments(pipeline: AttachmentPipeline = Depends(get_pipeline)) -> List[CommentOut]:
    return [CommentOut(**c) for c in pipeline.list()]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Comment",
    description=(
        "Post a comment for a date as multipart form data. A photo is optional; "
        "when given it is uploaded to the image host before the comment is saved."
    ),
    responses={
        201: {"description": "Comment created"},
        400: {"description": "Empty comment or invalid photo"},
        502: {"description": "Photo upload failed"},
        503: {"description": "Photo upload not configured"},
    },
)
def create_comment(
    date: dt.date = Form(..., description="Date the comment belongs to (YYYY-MM-DD)"),
    name: Optional[str] = Form(None, description="Display name"),
    anonymous: bool = Form(False, description="Hide the author's name"),
    text: str = Form("", description="Comment body"),
    photo: Optional[UploadFile] = File(None, description="Optional image"),
    pipeline: AttachmentPipeline = Depends(get_pipeline),
) -> CommentOut:
    """
    Create a comment, uploading the photo first if one is attached.
    """
    draft = CommentCreate(date=date, name=name, anonymous=anonymous, text=text)
    attachment = _read_attachment(photo, pipeline.max_bytes)
    return CommentOut(**pipeline.create(draft, attachment))  # type: ignore[arg-type]
