"""
API v1 router aggregation
"""

from fastapi import APIRouter

from meeting_copilot.api.v1.endpoints import admin, audio, auth, meetings, suggestions, summary

api_router = APIRouter()

# audio comes before meetings: /meeting/save-audio must win over /meeting/{meeting_id}
api_router.include_router(audio.router, tags=["audio"])
api_router.include_router(meetings.router, tags=["meetings"])
api_router.include_router(summary.router, prefix="/summary", tags=["summary"])
api_router.include_router(suggestions.router, prefix="/suggestions", tags=["suggestions"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
