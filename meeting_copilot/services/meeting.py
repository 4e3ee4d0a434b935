"""
Meeting service: durable rows plus the live store mirror
"""

import math
from typing import Any, Dict, List, Optional

from fastapi import Depends
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from meeting_copilot.core.exceptions import (
    AnalysisServiceException,
    ResourceNotFoundException,
    ValidationException,
)
from meeting_copilot.core.live_store import LiveMeetingStore, get_live_store
from meeting_copilot.core.logging import service_logger as logger
from meeting_copilot.db.database import get_db
from meeting_copilot.models.meeting import Meeting
from meeting_copilot.models.user import User
from meeting_copilot.schemas.meeting import (
    LiveMeeting,
    MeetingStatus,
    MeetingType,
    Suggestions,
    Summary,
    TranscriptSegment,
)
from meeting_copilot.services.analysis import AnalysisClient
from meeting_copilot.services.suggestions import (
    MIN_ANALYSIS_CHARS,
    merge_suggestions,
    recent_transcript,
)

MIN_SUMMARY_CHARS = 10


def meeting_to_api(meeting: Meeting, include_notes: bool = False) -> Dict[str, Any]:
    """Project a durable row into the JSON shape clients expect."""
    data = {
        "id": meeting.id,
        "status": meeting.status,
        "type": meeting.type,
        "title": meeting.title,
        "audioPath": meeting.audio_path,
        "transcript": meeting.load_json("transcript"),
        "transcriptSegments": meeting.load_json("transcript_segments"),
        "suggestions": {
            "topics": meeting.load_json("topics"),
            "decisions": meeting.load_json("decisions"),
            "actions": meeting.load_json("actions"),
        },
        "summary": meeting.load_json("summary"),
        "duration": meeting.duration,
        "createdAt": meeting.created_at.isoformat() if meeting.created_at else None,
    }
    if include_notes:
        data["notes"] = meeting.notes or ""
    return data


def live_to_api(meeting: LiveMeeting) -> Dict[str, Any]:
    return meeting.model_dump(mode="json", by_alias=True)


def _parse_summary(summary: Dict[str, Any]) -> Summary:
    try:
        return Summary.model_validate(summary)
    except ValidationError as e:
        raise ValidationException(f"Invalid summary: {e.errors()[0].get('msg')}") from e


def _dump_summary(summary: Summary) -> Dict[str, Any]:
    return summary.model_dump(mode="json", by_alias=True, exclude_none=True)


class MeetingService:
    """
    Every write goes to the database first; the live store is then updated
    when it holds an entry for the meeting. A missing live entry is normal
    (restart, eviction, another worker) and never an error.
    """

    def __init__(self, db: AsyncSession, live_store: LiveMeetingStore):
        self.db = db
        self.live_store = live_store

    async def _commit(self, meeting: Meeting) -> Meeting:
        await self.db.commit()
        await self.db.refresh(meeting)
        return meeting

    async def start_meeting(
        self, user: User, meeting_type: MeetingType = MeetingType.AUDIO_ONLY
    ) -> Meeting:
        meeting = Meeting(
            user_id=user.id,
            status=MeetingStatus.ACTIVE.value,
            type=MeetingType(meeting_type).value,
            title=None,
        )
        self.db.add(meeting)
        meeting = await self._commit(meeting)

        self.live_store.create(meeting.id, MeetingType(meeting.type), meeting.title)
        logger.info(f"Started {meeting.type} meeting {meeting.id} for user {user.id}")
        return meeting

    async def list_meetings(self, user: User) -> List[Meeting]:
        result = await self.db.execute(
            select(Meeting)
            .where(Meeting.user_id == user.id)
            .order_by(Meeting.created_at.desc(), Meeting.id.desc())
        )
        return list(result.scalars().all())

    async def get_meeting(self, meeting_id: str, owner: Optional[User] = None) -> Meeting:
        """Fetch a row; with ``owner`` other users' meetings look absent."""
        query = select(Meeting).where(Meeting.id == meeting_id)
        if owner is not None:
            query = query.where(Meeting.user_id == owner.id)
        result = await self.db.execute(query)
        meeting = result.scalar_one_or_none()
        if meeting is None:
            raise ResourceNotFoundException("Meeting")
        return meeting

    def ensure_type(self, meeting: Meeting, meeting_type: MeetingType) -> None:
        if meeting.type != meeting_type.value:
            article = "an" if meeting_type.value[0] in "aeiou" else "a"
            raise ValidationException(f"Not {article} {meeting_type.value} meeting")

    async def append_transcript(self, meeting: Meeting, text: Optional[str]) -> Meeting:
        if not text:
            raise ValidationException("Transcript text required")

        transcript = meeting.load_json("transcript")
        transcript.append(text)
        meeting.dump_json("transcript", transcript)
        meeting = await self._commit(meeting)

        self.live_store.add_transcript(meeting.id, text)
        return meeting

    async def set_segments(self, meeting: Meeting, segments: List[TranscriptSegment]) -> Meeting:
        """Replace the timed segments; transcript and duration are derived from them."""
        meeting.dump_json("transcript_segments", [s.model_dump(mode="json") for s in segments])
        meeting.dump_json("transcript", [s.text for s in segments])
        if segments:
            meeting.duration = math.ceil(segments[-1].timestamp)
        meeting = await self._commit(meeting)

        self.live_store.set_transcript_segments(meeting.id, segments)
        return meeting

    async def update_title(self, meeting: Meeting, title: Optional[str]) -> Meeting:
        meeting.title = title
        meeting = await self._commit(meeting)

        live = self.live_store.get(meeting.id)
        if live is not None:
            live.title = title
        return meeting

    async def update_notes(self, meeting: Meeting, notes: Optional[str]) -> Meeting:
        if notes is None:
            raise ValidationException("Notes required")
        meeting.notes = notes
        return await self._commit(meeting)

    async def delete_meeting(self, meeting: Meeting) -> None:
        meeting_id = meeting.id
        await self.db.delete(meeting)
        await self.db.commit()
        self.live_store.remove(meeting_id)
        logger.info(f"Deleted meeting {meeting_id}")

    async def set_audio_path(self, meeting: Meeting, audio_path: str) -> Meeting:
        meeting.audio_path = audio_path
        return await self._commit(meeting)

    # Summary

    async def update_summary(self, meeting_id: str, summary: Optional[Dict[str, Any]]) -> None:
        """Replace the summary and denormalize its topics, decisions and actions."""
        if not summary:
            raise ValidationException("Summary required")
        parsed = _parse_summary(summary)
        meeting = await self.get_meeting(meeting_id)

        meeting.dump_json("summary", _dump_summary(parsed))
        meeting.dump_json("topics", [topic.title for topic in parsed.topics])
        meeting.dump_json("decisions", [d.model_dump(mode="json", exclude_none=True) for d in parsed.decisions])
        meeting.dump_json("actions", [a.model_dump(mode="json", exclude_none=True) for a in parsed.actions])
        await self._commit(meeting)

        self.live_store.set_summary(meeting_id, parsed)

    async def merge_notes(
        self, meeting_id: str, fields: Dict[str, Optional[str]]
    ) -> Meeting:
        """Merge note fields into the stored summary, leaving the rest untouched."""
        meeting = await self.get_meeting(meeting_id)
        current = meeting.load_json("summary") or {}
        current.update(fields)
        meeting.dump_json("summary", current)
        meeting = await self._commit(meeting)
        self.live_store.merge_summary_fields(meeting_id, fields)
        return meeting

    async def merge_document(self, meeting_id: str, edited_document: Optional[str]) -> Meeting:
        if not edited_document:
            raise ValidationException("editedDocument is required")
        meeting = await self.get_meeting(meeting_id)
        current = meeting.load_json("summary")
        if not current:
            raise ValidationException("Meeting has no summary")
        current["editedDocument"] = edited_document
        meeting.dump_json("summary", current)
        meeting = await self._commit(meeting)
        self.live_store.merge_summary_fields(meeting_id, {"editedDocument": edited_document})
        return meeting

    # Live analysis

    def _rehydrate(self, meeting: Meeting) -> LiveMeeting:
        """Rebuild a live entry from the durable row."""
        live = self.live_store.create(meeting.id, MeetingType(meeting.type), meeting.title)
        for text in meeting.load_json("transcript"):
            self.live_store.add_transcript(meeting.id, text)
        self.live_store.update_suggestions(
            meeting.id,
            Suggestions(
                topics=meeting.load_json("topics"),
                decisions=meeting.load_json("decisions"),
                actions=meeting.load_json("actions"),
            ),
        )
        self.live_store.update_status(meeting.id, MeetingStatus(meeting.status))
        logger.info(f"Rehydrated live meeting {meeting.id} from the database")
        return live

    async def refresh_suggestions(
        self, meeting_id: Optional[str], analysis: AnalysisClient
    ) -> Suggestions:
        if not meeting_id:
            raise ValidationException("Meeting ID required")

        live = self.live_store.get(meeting_id)
        if live is None:
            live = self._rehydrate(await self.get_meeting(meeting_id))

        window = recent_transcript(live.transcript)
        if len(window) < MIN_ANALYSIS_CHARS:
            return live.suggestions

        incoming = await analysis.analyze_live_transcript(window)
        merged = merge_suggestions(live.suggestions, incoming)
        self.live_store.update_suggestions(meeting_id, merged)

        meeting = await self.get_meeting(meeting_id)
        meeting.dump_json("topics", merged.topics)
        meeting.dump_json("decisions", [d.model_dump(mode="json", exclude_none=True) for d in merged.decisions])
        meeting.dump_json("actions", [a.model_dump(mode="json", exclude_none=True) for a in merged.actions])
        await self._commit(meeting)
        return merged

    async def generate_summary(
        self, meeting_id: Optional[str], analysis: AnalysisClient
    ) -> Dict[str, Any]:
        """
        Produce the final summary.

        The meeting is ``processing`` while the analysis runs and
        ``completed`` once the summary is stored. If the analysis fails the
        previous status is restored.
        """
        if not meeting_id:
            raise ValidationException("Meeting ID required")

        meeting = await self.get_meeting(meeting_id)
        live = self.live_store.get(meeting_id)
        if live is not None:
            transcript = list(live.transcript)
            suggestions = live.suggestions
        else:
            transcript = meeting.load_json("transcript")
            suggestions = Suggestions(
                topics=meeting.load_json("topics"),
                decisions=meeting.load_json("decisions"),
                actions=meeting.load_json("actions"),
            )

        if len(" ".join(transcript).strip()) < MIN_SUMMARY_CHARS:
            raise ValidationException("Not enough content to generate summary")

        previous_status = meeting.status
        meeting.status = MeetingStatus.PROCESSING.value
        meeting = await self._commit(meeting)
        self.live_store.update_status(meeting_id, MeetingStatus.PROCESSING)

        try:
            summary = await analysis.generate_final_summary(transcript, suggestions)
        except AnalysisServiceException:
            meeting.status = previous_status
            await self._commit(meeting)
            self.live_store.update_status(meeting_id, MeetingStatus(previous_status))
            raise

        meeting.dump_json("summary", _dump_summary(summary))
        meeting.status = MeetingStatus.COMPLETED.value
        await self._commit(meeting)
        self.live_store.set_summary(meeting_id, summary)

        logger.info(f"Generated summary for meeting {meeting_id}")
        return _dump_summary(summary)


async def get_meeting_service(
    db: AsyncSession = Depends(get_db),
    live_store: LiveMeetingStore = Depends(get_live_store),
) -> MeetingService:
    return MeetingService(db, live_store)
