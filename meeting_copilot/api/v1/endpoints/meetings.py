"""
Meeting endpoints: start, list, read and live transcript updates
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from meeting_copilot.core.auth import require_current_user
from meeting_copilot.core.exceptions import ResourceNotFoundException, ValidationException
from meeting_copilot.core.live_store import LiveMeetingStore, get_live_store
from meeting_copilot.core.logging import api_logger as logger
from meeting_copilot.core.storage import FileStorageManager, get_storage_manager
from meeting_copilot.models.user import User
from meeting_copilot.schemas.meeting import (
    MeetingNotesRequest,
    MeetingType,
    SegmentsUpdateRequest,
    TitleUpdateRequest,
    TranscriptAppendRequest,
)
from meeting_copilot.services.meeting import (
    MeetingService,
    get_meeting_service,
    live_to_api,
    meeting_to_api,
)

router = APIRouter()


async def _start(service: MeetingService, user: User, meeting_type: MeetingType) -> Dict[str, Any]:
    meeting = await service.start_meeting(user, meeting_type)
    return {"success": True, "meeting": meeting_to_api(meeting)}


@router.post("/meeting/start", summary="Start a live meeting")
async def start_meeting(
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    """Create the durable row and its live entry under the same id."""
    return await _start(service, current_user, MeetingType.AUDIO_ONLY)


@router.post("/audio-only/start", summary="Start an audio-only meeting")
async def start_audio_only_meeting(
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    return await _start(service, current_user, MeetingType.AUDIO_ONLY)


@router.post("/screen-share/start", summary="Start a screen-share meeting")
async def start_screen_share_meeting(
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    return await _start(service, current_user, MeetingType.SCREEN_SHARE)


@router.get("/meetings", summary="List the caller's meetings")
async def list_meetings(
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    meetings = await service.list_meetings(current_user)
    return {"success": True, "meetings": [meeting_to_api(m) for m in meetings]}


@router.get("/meeting/{meeting_id}", summary="Get a meeting")
async def get_meeting(
    meeting_id: str,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    meeting = await service.get_meeting(meeting_id, owner=current_user)
    return {"success": True, "meeting": meeting_to_api(meeting)}


@router.post("/meeting/{meeting_id}", summary="Append a transcript fragment")
async def append_transcript(
    meeting_id: str,
    body: TranscriptAppendRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    if not body.transcript:
        raise ValidationException("Transcript text required")
    meeting = await service.get_meeting(meeting_id, owner=current_user)
    await service.append_transcript(meeting, body.transcript)
    return {"success": True}


@router.put("/meeting/{meeting_id}/segments", summary="Replace the timed transcript")
async def replace_segments(
    meeting_id: str,
    body: SegmentsUpdateRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    meeting = await service.get_meeting(meeting_id, owner=current_user)
    meeting = await service.set_segments(meeting, body.segments)
    return {"success": True, "meeting": meeting_to_api(meeting)}


@router.get("/meeting/{meeting_id}/live", summary="Live state of a meeting")
async def get_live_meeting(
    meeting_id: str,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
    live_store: LiveMeetingStore = Depends(get_live_store),
) -> Dict[str, Any]:
    await service.get_meeting(meeting_id, owner=current_user)
    live = live_store.get(meeting_id)
    if live is None:
        raise ResourceNotFoundException("Live meeting")
    return {"success": True, "meeting": live_to_api(live)}


@router.patch("/meetings/{meeting_id}", summary="Rename a meeting")
async def update_meeting(
    meeting_id: str,
    body: TitleUpdateRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    # An explicit null clears the title; a missing key is an error
    if "title" not in body.model_fields_set:
        raise ValidationException("Title is required")
    meeting = await service.get_meeting(meeting_id, owner=current_user)
    meeting = await service.update_title(meeting, body.title)
    return {"success": True, "meeting": meeting_to_api(meeting)}


@router.delete("/meetings/{meeting_id}", summary="Delete a meeting and its audio")
async def delete_meeting(
    meeting_id: str,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
    storage: FileStorageManager = Depends(get_storage_manager),
) -> Dict[str, Any]:
    meeting = await service.get_meeting(meeting_id, owner=current_user)
    if not await storage.delete_meeting_audio(meeting.id, meeting.audio_path):
        logger.warning(f"Audio object of meeting {meeting_id} could not be deleted")
    await service.delete_meeting(meeting)
    return {"success": True, "message": "Meeting deleted successfully"}


def _add_typed_routes(prefix: str, meeting_type: MeetingType) -> None:
    """Read, append and notes routes that only accept one meeting type."""

    @router.get(f"/{prefix}/{{meeting_id}}", summary=f"Get a {meeting_type.value} meeting")
    async def get_typed_meeting(
        meeting_id: str,
        current_user: User = Depends(require_current_user),
        service: MeetingService = Depends(get_meeting_service),
    ) -> Dict[str, Any]:
        meeting = await service.get_meeting(meeting_id, owner=current_user)
        service.ensure_type(meeting, meeting_type)
        return {"success": True, "meeting": meeting_to_api(meeting, include_notes=True)}

    @router.post(f"/{prefix}/{{meeting_id}}", summary=f"Append to a {meeting_type.value} transcript")
    async def append_typed_transcript(
        meeting_id: str,
        body: TranscriptAppendRequest,
        current_user: User = Depends(require_current_user),
        service: MeetingService = Depends(get_meeting_service),
    ) -> Dict[str, Any]:
        if not body.transcript:
            raise ValidationException("Transcript text required")
        meeting = await service.get_meeting(meeting_id, owner=current_user)
        service.ensure_type(meeting, meeting_type)
        await service.append_transcript(meeting, body.transcript)
        return {"success": True}

    @router.put(f"/{prefix}/{{meeting_id}}", summary=f"Save notes of a {meeting_type.value} meeting")
    async def update_typed_notes(
        meeting_id: str,
        body: MeetingNotesRequest,
        current_user: User = Depends(require_current_user),
        service: MeetingService = Depends(get_meeting_service),
    ) -> Dict[str, Any]:
        if body.notes is None:
            raise ValidationException("Notes required")
        meeting = await service.get_meeting(meeting_id, owner=current_user)
        service.ensure_type(meeting, meeting_type)
        await service.update_notes(meeting, body.notes)
        return {"success": True}


_add_typed_routes("audio-only", MeetingType.AUDIO_ONLY)
_add_typed_routes("screen-share", MeetingType.SCREEN_SHARE)
