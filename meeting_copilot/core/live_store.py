"""
In-memory state for meetings that are being recorded.

Live transcription pushes partial updates every few seconds; keeping them here
avoids a database write per update. The database stays the source of truth:
an entry may be missing (process restart, eviction, another instance) and every
reader must handle that.
"""

import math
import time
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional, Sequence

from fastapi import Request

from meeting_copilot.core.logging import live_logger
from meeting_copilot.schemas.meeting import (
    LiveMeeting,
    MeetingStatus,
    MeetingType,
    Suggestions,
    Summary,
    TranscriptSegment,
    utc_now,
)


class LiveMeetingStore:
    """
    Bounded table of live meetings keyed by meeting id.

    Mutations return ``True`` when the entry exists and was updated and
    ``False`` when the id is unknown; unknown ids never raise and never
    create entries.

    Entries idle for longer than ``ttl_seconds`` are evicted on the next
    ``create`` (or an explicit ``evict_expired``). When ``max_entries`` is
    reached the oldest completed entry goes first, then the oldest entry.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        ttl_seconds: Optional[float] = 6 * 3600,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._meetings: "OrderedDict[str, LiveMeeting]" = OrderedDict()
        self._touched: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._meetings)

    def __contains__(self, meeting_id: str) -> bool:
        return meeting_id in self._meetings

    def _touch(self, meeting_id: str) -> None:
        self._touched[meeting_id] = self._clock()

    def create(
        self,
        meeting_id: str,
        meeting_type: MeetingType = MeetingType.AUDIO_ONLY,
        title: Optional[str] = None,
    ) -> LiveMeeting:
        """Insert a fresh entry. An existing entry with the same id is replaced."""
        self.evict_expired()

        if meeting_id in self._meetings:
            live_logger.debug(f"Replacing live meeting {meeting_id}")
            self.remove(meeting_id)
        elif len(self._meetings) >= self.max_entries:
            self._evict_one()

        now = utc_now()
        meeting = LiveMeeting(
            id=meeting_id,
            title=title,
            type=MeetingType(meeting_type),
            created_at=now,
            updated_at=now,
        )
        self._meetings[meeting_id] = meeting
        self._touch(meeting_id)
        return meeting

    def get(self, meeting_id: str) -> Optional[LiveMeeting]:
        return self._meetings.get(meeting_id)

    def add_transcript(self, meeting_id: str, text: str) -> bool:
        """Append one free-form fragment. Leaves ``updated_at`` and ``duration`` alone."""
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            return False
        meeting.transcript.append(text)
        self._touch(meeting_id)
        return True

    def set_transcript_segments(self, meeting_id: str, segments: Sequence[TranscriptSegment]) -> bool:
        """
        Replace the segments wholesale and rebuild ``transcript`` from them.

        Prior ``add_transcript`` fragments are discarded. ``duration`` becomes
        the ceiling of the last segment's timestamp; an empty list leaves it as is.
        """
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            return False
        segments = [TranscriptSegment.model_validate(segment) for segment in segments]
        meeting.transcript_segments = segments
        meeting.transcript = [segment.text for segment in segments]
        meeting.updated_at = utc_now()
        if segments:
            meeting.duration = math.ceil(segments[-1].timestamp)
        self._touch(meeting_id)
        return True

    def update_suggestions(self, meeting_id: str, suggestions: Suggestions) -> bool:
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            return False
        meeting.suggestions = Suggestions.model_validate(suggestions)
        self._touch(meeting_id)
        return True

    def set_summary(self, meeting_id: str, summary: Summary) -> bool:
        """Store the final summary; the meeting becomes ``completed`` whatever its status."""
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            return False
        meeting.summary = Summary.model_validate(summary)
        meeting.status = MeetingStatus.COMPLETED
        self._touch(meeting_id)
        return True

    def merge_summary_fields(self, meeting_id: str, fields: Dict[str, Any]) -> bool:
        """Overlay fields on the stored summary. Status and ``updated_at`` are left alone."""
        meeting = self._meetings.get(meeting_id)
        if meeting is None or meeting.summary is None:
            return False
        current = meeting.summary.model_dump(by_alias=True)
        current.update(fields)
        meeting.summary = Summary.model_validate(current)
        self._touch(meeting_id)
        return True

    def update_status(self, meeting_id: str, status: MeetingStatus) -> bool:
        # Any transition is accepted
        meeting = self._meetings.get(meeting_id)
        if meeting is None:
            return False
        meeting.status = MeetingStatus(status)
        self._touch(meeting_id)
        return True

    def get_all(self) -> List[LiveMeeting]:
        return list(self._meetings.values())

    def remove(self, meeting_id: str) -> bool:
        self._touched.pop(meeting_id, None)
        return self._meetings.pop(meeting_id, None) is not None

    def evict_expired(self) -> int:
        """Drop entries idle for longer than the TTL; returns how many went."""
        if self.ttl_seconds is None:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        expired = [mid for mid, touched in self._touched.items() if touched < cutoff]
        for meeting_id in expired:
            self.remove(meeting_id)
        if expired:
            live_logger.info(f"Evicted {len(expired)} idle live meetings")
        return len(expired)

    def _evict_one(self) -> None:
        victim = next(
            (mid for mid, m in self._meetings.items() if m.status == MeetingStatus.COMPLETED),
            None,
        )
        if victim is None:
            victim = next(iter(self._meetings))
        live_logger.warning(f"Live store full ({self.max_entries}), evicting {victim}")
        self.remove(victim)


def get_live_store(request: Request) -> LiveMeetingStore:
    """The store owned by the running application."""
    return request.app.state.live_store
