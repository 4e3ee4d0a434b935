"""
Live suggestion endpoint
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from meeting_copilot.core.auth import require_current_user
from meeting_copilot.models.user import User
from meeting_copilot.schemas.meeting import MeetingIdRequest
from meeting_copilot.services.analysis import AnalysisClient, get_analysis_client
from meeting_copilot.services.meeting import MeetingService, get_meeting_service

router = APIRouter()


@router.post("", summary="Refresh live suggestions")
async def refresh_suggestions(
    body: MeetingIdRequest,
    current_user: User = Depends(require_current_user),
    service: MeetingService = Depends(get_meeting_service),
    analysis: AnalysisClient = Depends(get_analysis_client),
) -> Dict[str, Any]:
    """
    Analyze the latest transcript window and merge the result into the
    meeting's suggestions. Short windows return the current suggestions
    without calling the analysis service.
    """
    suggestions = await service.refresh_suggestions(body.meeting_id, analysis)
    return {"success": True, "suggestions": suggestions.model_dump(mode="json")}
