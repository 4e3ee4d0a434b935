"""
Summary endpoints
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from meeting_copilot.core.auth import require_current_user
from meeting_copilot.models.user import User
from meeting_copilot.schemas.meeting import (
    DocumentUpdateRequest,
    MeetingIdRequest,
    NotesUpdateRequest,
    SummaryUpdateRequest,
)
from meeting_copilot.services.analysis import AnalysisClient, get_analysis_client
from meeting_copilot.services.meeting import MeetingService, get_meeting_service, meeting_to_api

router = APIRouter()


@router.post("", summary="Generate the final summary")
async def generate_summary(
    body: MeetingIdRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
    analysis: AnalysisClient = Depends(get_analysis_client),
) -> Dict[str, Any]:
    summary = await service.generate_summary(body.meeting_id, analysis)
    return {"success": True, "summary": summary}


@router.put("/{meeting_id}", summary="Replace a meeting summary")
async def update_summary(
    meeting_id: str,
    body: SummaryUpdateRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    """Writes the database row and, when the meeting is live here, its live entry."""
    await service.update_summary(meeting_id, body.summary)
    return {"success": True, "message": "Summary updated successfully"}


@router.put("/{meeting_id}/notes", summary="Update raw and enhanced notes")
async def update_notes(
    meeting_id: str,
    body: NotesUpdateRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    fields = body.model_dump(by_alias=True, include=body.model_fields_set)
    await service.merge_notes(meeting_id, fields)
    return {"success": True}


@router.put("/{meeting_id}/document", summary="Save the edited summary document")
async def update_document(
    meeting_id: str,
    body: DocumentUpdateRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
) -> Dict[str, Any]:
    meeting = await service.merge_document(meeting_id, body.edited_document)
    return {"success": True, "meeting": meeting_to_api(meeting)}
