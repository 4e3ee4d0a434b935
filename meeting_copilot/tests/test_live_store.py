"""
Live meeting store tests
"""

import pytest

from meeting_copilot.core.live_store import LiveMeetingStore
from meeting_copilot.schemas.meeting import (
    Action,
    Decision,
    MeetingStatus,
    MeetingType,
    Suggestions,
    Summary,
    TranscriptSegment,
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def store() -> LiveMeetingStore:
    return LiveMeetingStore(max_entries=10, ttl_seconds=None)


def segments(*pairs):
    return [TranscriptSegment(text=text, timestamp=ts) for text, ts in pairs]


class TestCreateAndGet:

    def test_new_entry_is_empty_and_active(self, store):
        created = store.create("m1", MeetingType.SCREEN_SHARE, "Standup")
        meeting = store.get("m1")

        assert meeting is created
        assert meeting.title == "Standup"
        assert meeting.type == MeetingType.SCREEN_SHARE
        assert meeting.transcript == []
        assert meeting.transcript_segments == []
        assert meeting.suggestions == Suggestions()
        assert meeting.summary is None
        assert meeting.duration is None
        assert meeting.status == MeetingStatus.ACTIVE
        assert meeting.created_at == meeting.updated_at

    def test_unknown_id_is_absent(self, store):
        assert store.get("missing") is None
        assert "missing" not in store

    def test_create_replaces_existing_entry(self, store):
        store.create("m1")
        store.add_transcript("m1", "hello")

        store.create("m1", title="Second take")

        meeting = store.get("m1")
        assert meeting.transcript == []
        assert meeting.title == "Second take"
        assert len(store) == 1

    def test_get_all_keeps_insertion_order(self, store):
        for meeting_id in ("a", "b", "c"):
            store.create(meeting_id)
        assert [m.id for m in store.get_all()] == ["a", "b", "c"]

    def test_serializes_with_camel_case_keys(self, store):
        store.create("m1")
        data = store.get("m1").model_dump(mode="json", by_alias=True)
        assert {"transcriptSegments", "createdAt", "updatedAt"} <= set(data)
        assert data["type"] == "audio-only"


class TestTranscript:

    def test_add_transcript_appends_without_touching_updated_at(self, store):
        meeting = store.create("m1")
        updated_at = meeting.updated_at

        assert store.add_transcript("m1", "first") is True
        assert store.add_transcript("m1", "second") is True

        assert meeting.transcript == ["first", "second"]
        assert meeting.updated_at == updated_at
        assert meeting.duration is None

    def test_segments_replace_transcript_wholesale(self, store):
        store.create("m1")
        store.add_transcript("m1", "free-form fragment")

        store.set_transcript_segments("m1", segments(("a", 1.0), ("b", 2.0)))
        store.set_transcript_segments("m1", segments(("c", 3.0), ("d", 4.5), ("e", 6.0)))

        meeting = store.get("m1")
        assert meeting.transcript == ["c", "d", "e"]
        assert [s.text for s in meeting.transcript_segments] == ["c", "d", "e"]

    def test_duration_is_ceiling_of_last_timestamp(self, store):
        store.create("m1")
        store.set_transcript_segments("m1", segments(("a", 3.0), ("b", 125.4)))
        assert store.get("m1").duration == 126

    def test_empty_segments_keep_duration(self, store):
        store.create("m1")
        store.set_transcript_segments("m1", segments(("a", 125.4)))

        assert store.set_transcript_segments("m1", []) is True

        meeting = store.get("m1")
        assert meeting.duration == 126
        assert meeting.transcript == []
        assert meeting.transcript_segments == []

    def test_segments_refresh_updated_at(self, store):
        meeting = store.create("m1")
        before = meeting.updated_at

        store.set_transcript_segments("m1", segments(("a", 1.0)))

        assert meeting.updated_at >= before

    def test_segments_accept_plain_dicts(self, store):
        store.create("m1")
        store.set_transcript_segments("m1", [{"text": "hi", "timestamp": 0.5, "speaker": "A"}])
        segment = store.get("m1").transcript_segments[0]
        assert segment.speaker == "A"
        assert store.get("m1").duration == 1


class TestSuggestionsAndSummary:

    def test_update_suggestions_replaces_and_keeps_updated_at(self, store):
        meeting = store.create("m1")
        updated_at = meeting.updated_at
        suggestions = Suggestions(
            topics=["Budget"],
            decisions=[Decision(text="Ship on Friday", confidence=0.9)],
            actions=[Action(text="Write release notes", assignee="Sam")],
        )

        assert store.update_suggestions("m1", suggestions) is True
        assert store.update_suggestions("m1", Suggestions(topics=["Hiring"])) is True

        assert meeting.suggestions.topics == ["Hiring"]
        assert meeting.suggestions.decisions == []
        assert meeting.updated_at == updated_at

    @pytest.mark.parametrize("prior", list(MeetingStatus))
    def test_set_summary_always_completes(self, store, prior):
        meeting = store.create("m1")
        store.update_status("m1", prior)
        updated_at = meeting.updated_at

        assert store.set_summary("m1", Summary(summary="Done")) is True

        assert meeting.status == MeetingStatus.COMPLETED
        assert meeting.summary.summary == "Done"
        assert meeting.updated_at == updated_at

    def test_update_status_accepts_any_transition(self, store):
        store.create("m1")
        store.update_status("m1", MeetingStatus.COMPLETED)
        store.update_status("m1", MeetingStatus.ACTIVE)
        assert store.get("m1").status == MeetingStatus.ACTIVE

    def test_merge_summary_fields_keeps_the_rest(self, store):
        meeting = store.create("m1")
        store.set_summary("m1", Summary(summary="Done", open_questions=["Who?"]))
        store.update_status("m1", MeetingStatus.ACTIVE)
        updated_at = meeting.updated_at

        assert store.merge_summary_fields("m1", {"rawNotes": "raw"}) is True

        assert meeting.summary.raw_notes == "raw"
        assert meeting.summary.summary == "Done"
        assert meeting.summary.open_questions == ["Who?"]
        assert meeting.status == MeetingStatus.ACTIVE
        assert meeting.updated_at == updated_at

    def test_merge_summary_fields_needs_a_summary(self, store):
        meeting = store.create("m1")
        assert store.merge_summary_fields("m1", {"rawNotes": "raw"}) is False
        assert store.merge_summary_fields("ghost", {"rawNotes": "raw"}) is False
        assert meeting.summary is None


class TestUnknownIds:

    def test_mutations_report_not_found_and_create_nothing(self, store):
        assert store.get("ghost") is None

        assert store.add_transcript("ghost", "hello") is False
        assert store.set_transcript_segments("ghost", segments(("a", 1.0))) is False
        assert store.update_suggestions("ghost", Suggestions(topics=["x"])) is False
        assert store.set_summary("ghost", Summary(summary="x")) is False
        assert store.update_status("ghost", MeetingStatus.PROCESSING) is False
        assert store.remove("ghost") is False

        assert store.get("ghost") is None
        assert len(store) == 0

    def test_set_summary_on_unknown_id_leaves_others_alone(self, store):
        meeting = store.create("m1")
        store.set_summary("ghost", Summary(summary="x"))
        assert meeting.status == MeetingStatus.ACTIVE
        assert meeting.summary is None


class TestEviction:

    def test_full_store_evicts_oldest_completed_first(self):
        store = LiveMeetingStore(max_entries=3, ttl_seconds=None)
        store.create("a")
        store.create("b")
        store.create("c")
        store.set_summary("b", Summary(summary="done"))

        store.create("d")

        assert [m.id for m in store.get_all()] == ["a", "c", "d"]

    def test_full_store_evicts_oldest_when_nothing_completed(self):
        store = LiveMeetingStore(max_entries=2, ttl_seconds=None)
        store.create("a")
        store.create("b")

        store.create("c")

        assert store.get("a") is None
        assert [m.id for m in store.get_all()] == ["b", "c"]

    def test_idle_entries_expire(self):
        clock = FakeClock()
        store = LiveMeetingStore(max_entries=10, ttl_seconds=60, clock=clock)
        store.create("idle")
        store.create("busy")

        clock.now = 50
        store.add_transcript("busy", "still talking")
        clock.now = 90

        assert store.evict_expired() == 1
        assert store.get("idle") is None
        assert store.get("busy") is not None

    def test_create_runs_expiry(self):
        clock = FakeClock()
        store = LiveMeetingStore(max_entries=10, ttl_seconds=10, clock=clock)
        store.create("old")

        clock.now = 11
        store.create("new")

        assert "old" not in store
        assert "new" in store

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            LiveMeetingStore(max_entries=0)


class TestApplicationStore:

    def test_app_keeps_injected_empty_store(self):
        from meeting_copilot.main import create_app

        store = LiveMeetingStore(max_entries=5, ttl_seconds=None)
        app = create_app(live_store=store, init_database=False)

        assert len(store) == 0
        assert app.state.live_store is store

    def test_app_builds_its_own_store(self):
        from meeting_copilot.main import create_app

        first = create_app(init_database=False)
        second = create_app(init_database=False)

        assert isinstance(first.state.live_store, LiveMeetingStore)
        assert first.state.live_store is not second.state.live_store
