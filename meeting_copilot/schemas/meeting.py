"""
Meeting schemas: live aggregator state and request bodies
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Model whose JSON keys are camelCase while attributes stay snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MeetingStatus(str, Enum):
    ACTIVE = "active"
    PROCESSING = "processing"
    COMPLETED = "completed"


class MeetingType(str, Enum):
    AUDIO_ONLY = "audio-only"
    SCREEN_SHARE = "screen-share"
    UPLOAD = "upload"


class TranscriptSegment(BaseModel):
    """One timed piece of transcript."""

    text: str
    timestamp: float = Field(..., description="Offset from the start, in seconds")
    speaker: Optional[str] = None


class Decision(BaseModel):
    text: str
    confidence: Optional[float] = None


class Action(BaseModel):
    text: str
    assignee: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[Literal["low", "medium", "high"]] = None
    confidence: Optional[float] = None


class Suggestions(BaseModel):
    """Topics, decisions and actions refreshed while a meeting is live."""

    topics: List[str] = Field(default_factory=list)
    decisions: List[Decision] = Field(default_factory=list)
    actions: List[Action] = Field(default_factory=list)


class TopicDetail(BaseModel):
    title: str
    summary: str = ""


class Summary(BaseModel):
    """
    Final structured output of a meeting.

    Unknown keys are kept as-is so client-side additions survive a round trip.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    summary: str = ""
    actions: List[Action] = Field(default_factory=list)
    decisions: List[Decision] = Field(default_factory=list)
    topics: List[TopicDetail] = Field(default_factory=list)
    # Clients read the snake_case key; the camelCase spelling is accepted on input
    open_questions: Optional[List[str]] = Field(
        default=None, validation_alias=AliasChoices("open_questions", "openQuestions")
    )
    detailed: Optional[Dict[str, Any]] = None
    raw_notes: Optional[str] = Field(default=None, alias="rawNotes")
    enhanced_notes: Optional[str] = Field(default=None, alias="enhancedNotes")
    edited_document: Optional[str] = Field(default=None, alias="editedDocument")


class LiveMeeting(CamelModel):
    """In-memory state of a meeting that is being recorded."""

    id: str
    title: Optional[str] = None
    transcript: List[str] = Field(default_factory=list)
    transcript_segments: List[TranscriptSegment] = Field(default_factory=list)
    suggestions: Suggestions = Field(default_factory=Suggestions)
    summary: Optional[Summary] = None
    duration: Optional[int] = None
    status: MeetingStatus = MeetingStatus.ACTIVE
    type: MeetingType = MeetingType.AUDIO_ONLY
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# Request bodies

class TranscriptAppendRequest(BaseModel):
    transcript: Optional[str] = None


class SegmentsUpdateRequest(BaseModel):
    segments: List[TranscriptSegment]


class TitleUpdateRequest(BaseModel):
    title: Optional[str] = None


class SummaryUpdateRequest(BaseModel):
    summary: Optional[Dict[str, Any]] = None


class NotesUpdateRequest(CamelModel):
    raw_notes: Optional[str] = None
    enhanced_notes: Optional[str] = None


class DocumentUpdateRequest(CamelModel):
    edited_document: Optional[str] = None


class MeetingNotesRequest(BaseModel):
    notes: Optional[str] = None


class MeetingIdRequest(CamelModel):
    meeting_id: Optional[str] = None


class UploadUrlRequest(CamelModel):
    filename: Optional[str] = None
    content_type: Optional[str] = None
