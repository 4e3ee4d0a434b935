"""
Audio upload endpoints
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from meeting_copilot.config import settings
from meeting_copilot.core.auth import require_current_user
from meeting_copilot.core.exceptions import ValidationException
from meeting_copilot.core.storage import FileStorageManager, get_storage_manager
from meeting_copilot.models.user import User
from meeting_copilot.schemas.meeting import UploadUrlRequest
from meeting_copilot.services.meeting import MeetingService, get_meeting_service

router = APIRouter()


@router.post("/meeting/save-audio", summary="Store a meeting recording")
async def save_audio(
    audio: Optional[UploadFile] = File(None),
    meeting_id: Optional[str] = Form(None, alias="meetingId"),
    is_partial: Optional[str] = Form(None, alias="isPartial"),
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
    storage: FileStorageManager = Depends(get_storage_manager),
) -> Dict[str, Any]:
    """
    Save a partial or final recording.

    Partial uploads overwrite ``{id}-temp.{ext}``, the final upload writes
    ``{id}-live.{ext}``; the meeting's audio path follows the latest upload.
    """
    if audio is None or not meeting_id:
        raise ValidationException("Missing audio file or meeting ID")

    meeting = await service.get_meeting(meeting_id, owner=current_user)

    content = await audio.read()
    if not content:
        raise ValidationException("Audio file is empty")
    if len(content) > settings.max_upload_size:
        raise ValidationException("Audio file too large")

    partial = (is_partial or "").lower() == "true"
    audio_path = await storage.save_meeting_audio(
        meeting.id, content, audio.filename, audio.content_type, partial,
        previous_url=meeting.audio_path,
    )
    await service.set_audio_path(meeting, audio_path)

    return {"success": True, "audioPath": audio_path, "isPartial": partial}


@router.post("/upload-url", summary="Signed URL for a direct upload")
async def create_upload_url(
    body: UploadUrlRequest,
    current_user: User = Depends(require_current_user),
    storage: FileStorageManager = Depends(get_storage_manager),
) -> Dict[str, Any]:
    if not body.filename:
        raise ValidationException("Filename is required")
    if body.content_type not in settings.allowed_upload_types:
        raise ValidationException(f"Unsupported content type: {body.content_type}")

    target = await storage.create_upload_target(body.filename, body.content_type)
    return {
        "success": True,
        "uploadUrl": target["url"],
        "fields": target["fields"],
        "blobUrl": target["blob_url"],
    }
