"""
Meeting model
"""

import json
from typing import Any

from sqlalchemy import Column, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from meeting_copilot.db.database import BaseModel
from meeting_copilot.schemas.meeting import MeetingStatus, MeetingType


class Meeting(BaseModel):
    """Durable meeting record; list-valued columns hold JSON text"""
    __tablename__ = "meetings"

    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=True)
    status = Column(String(20), default=MeetingStatus.ACTIVE.value, nullable=False)
    type = Column(String(20), default=MeetingType.AUDIO_ONLY.value, nullable=False)

    transcript = Column(Text, default="[]", nullable=False)
    transcript_segments = Column(Text, default="[]", nullable=False)
    topics = Column(Text, default="[]", nullable=False)
    decisions = Column(Text, default="[]", nullable=False)
    actions = Column(Text, default="[]", nullable=False)
    summary = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    duration = Column(Integer, nullable=True)
    audio_path = Column(String(1000), nullable=True)

    user = relationship("User", back_populates="meetings")

    __table_args__ = (
        Index("ix_meetings_user_created", "user_id", "created_at"),
    )

    JSON_LIST_COLUMNS = ("transcript", "transcript_segments", "topics", "decisions", "actions")

    def load_json(self, column: str) -> Any:
        raw = getattr(self, column)
        if raw is None:
            return [] if column in self.JSON_LIST_COLUMNS else None
        return json.loads(raw)

    def dump_json(self, column: str, value: Any) -> None:
        setattr(self, column, None if value is None else json.dumps(value, ensure_ascii=False))

    def __repr__(self):
        return f"<Meeting(id={self.id}, type='{self.type}', status='{self.status}')>"
