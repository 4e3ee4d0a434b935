"""
Test configuration and fixtures
"""

from typing import AsyncGenerator, List, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from meeting_copilot.config import settings
from meeting_copilot.core.auth import auth_service
from meeting_copilot.core.live_store import LiveMeetingStore
from meeting_copilot.core.mail import MailSender, get_mail_sender
from meeting_copilot.core.storage import (
    FileStorageManager,
    LocalStorageBackend,
    get_storage_manager,
)
from meeting_copilot.db.database import Base, get_db
from meeting_copilot.main import create_app
from meeting_copilot.models.meeting import Meeting
from meeting_copilot.models.user import Account, User
from meeting_copilot.schemas.meeting import Suggestions, Summary
from meeting_copilot.services.analysis import get_analysis_client

TEST_DATABASE_URL = "sqlite+aiosqlite://"
ADMIN_EMAIL = "admin@example.com"


class RecordingMailSender(MailSender):
    """Keeps outgoing mail in memory instead of talking to SMTP."""

    def __init__(self):
        super().__init__()
        self.sent: List[dict] = []

    async def send(self, to_email, subject, body, html_body=None) -> bool:
        self.sent.append({"to": to_email, "subject": subject, "body": body})
        return True


class FakeAnalysisClient:
    """Canned analysis results; records what it was asked."""

    def __init__(self):
        self.live_result = Suggestions()
        self.summary_result = Summary(summary="Short meeting")
        self.summary_error: Optional[Exception] = None
        self.live_calls: List[str] = []
        self.summary_calls: List[list] = []

    async def analyze_live_transcript(self, transcript: str) -> Suggestions:
        self.live_calls.append(transcript)
        return self.live_result

    async def generate_final_summary(self, transcript, validated=None) -> Summary:
        self.summary_calls.append(list(transcript))
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary_result


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def live_store() -> LiveMeetingStore:
    return LiveMeetingStore(max_entries=100, ttl_seconds=None)


@pytest.fixture
def mail_sender() -> RecordingMailSender:
    return RecordingMailSender()


@pytest.fixture
def storage_manager(tmp_path) -> FileStorageManager:
    return FileStorageManager(backend=LocalStorageBackend(str(tmp_path / "uploads")))


@pytest.fixture
def analysis_client() -> FakeAnalysisClient:
    return FakeAnalysisClient()


@pytest.fixture(autouse=True)
def admin_email(monkeypatch):
    monkeypatch.setattr(settings, "admin_email", ADMIN_EMAIL)
    return ADMIN_EMAIL


@pytest.fixture
def app(db_session, live_store, mail_sender, storage_manager, analysis_client):
    application = create_app(live_store=live_store, init_database=False)

    async def _override_get_db():
        yield db_session

    application.dependency_overrides[get_db] = _override_get_db
    application.dependency_overrides[get_mail_sender] = lambda: mail_sender
    application.dependency_overrides[get_storage_manager] = lambda: storage_manager
    application.dependency_overrides[get_analysis_client] = lambda: analysis_client
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_user(db: AsyncSession, email: str, password: Optional[str], name: str) -> User:
    user = User(
        email=email,
        name=name,
        hashed_password=auth_service.get_password_hash(password) if password else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "test@example.com", "testpassword", "Test User")


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "other@example.com", "otherpassword", "Other User")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, ADMIN_EMAIL, "adminpassword", "Admin User")


@pytest.fixture
async def federated_user(db_session: AsyncSession) -> User:
    """A user who only signs in through Google."""
    user = await _create_user(db_session, "google@example.com", None, "Google User")
    db_session.add(Account(user_id=user.id, provider="google", provider_account_id="g-123"))
    await db_session.commit()
    return user


def headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {auth_service.issue_token(user)}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return headers_for(admin_user)


@pytest.fixture
async def make_meeting(db_session: AsyncSession):
    """Factory inserting a durable meeting row."""

    async def _make(user: User, **fields) -> Meeting:
        meeting = Meeting(user_id=user.id, **fields)
        db_session.add(meeting)
        await db_session.commit()
        await db_session.refresh(meeting)
        return meeting

    return _make
