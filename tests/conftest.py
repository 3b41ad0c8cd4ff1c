import os

# Point the app at a throwaway in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("REDIS_URL", None)

import random
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import Mock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from app.database import Base, SessionLocal, engine, init_db
from app.dependencies import get_scheduler, get_session_store, get_trivia_source
from app.main import app
from app.models import Question, Quiz
from app.services.notifications import RecordingChannel
from app.services.scheduler import AnnouncementScheduler
from app.services.session_store import InMemorySessionStore
from app.services.trivia_source import TriviaSource
from app.utils.time_utils import utc_now

CREATOR_ID = "creator-1"
OTHER_CREATOR_ID = "creator-2"
STUDENT_ID = "student-1"
STUDENT_2_ID = "student-2"

# bearer token -> identity provider user
FAKE_USERS = {
    "creator-token": SimpleNamespace(id=CREATOR_ID, email="teacher@example.com",
                                     user_metadata={"name": "Teacher One", "role": "creator"}, app_metadata={}),
    "other-creator-token": SimpleNamespace(id=OTHER_CREATOR_ID, email="teacher2@example.com",
                                           user_metadata={"name": "Teacher Two", "role": "creator"}, app_metadata={}),
    "student-token": SimpleNamespace(id=STUDENT_ID, email="ada@example.com",
                                     user_metadata={"name": "Ada"}, app_metadata={}),
    "student-2-token": SimpleNamespace(id=STUDENT_2_ID, email="grace@example.com",
                                       user_metadata={"name": "Grace", "role": "participant"}, app_metadata={}),
}

def trivia_item(index: int) -> dict:
    return {
        "prompt": f"Question {index}?",
        "correct_answer": f"right-{index}",
        "distractors": [f"wrong-{index}-a", f"wrong-{index}-b", f"wrong-{index}-c"],
    }

@pytest.fixture(autouse=True)
def fresh_database():
    """Recreate every table for each test"""
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture(autouse=True)
def fake_identity_provider():
    """Resolve the test bearer tokens without calling Supabase"""
    with patch("app.utils.auth_utils.verify_supabase_token", side_effect=FAKE_USERS.get) as verify:
        yield verify

@pytest.fixture
def channel():
    return RecordingChannel()

@pytest.fixture
async def scheduler(channel):
    scheduler = AnnouncementScheduler(SessionLocal, channel)
    yield scheduler
    await scheduler.shutdown()

@pytest.fixture
def session_store():
    return InMemorySessionStore()

@pytest.fixture
def trivia_source():
    source = Mock(spec=TriviaSource)
    source.fetch_questions.side_effect = lambda amount: [trivia_item(i) for i in range(amount)]
    return source

@pytest.fixture
async def client(scheduler, session_store, trivia_source):
    """Create test client with in-process collaborators"""
    app.dependency_overrides[get_scheduler] = lambda: scheduler
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_trivia_source] = lambda: trivia_source
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

@pytest.fixture
def auth_headers():
    """Helper to create auth headers"""
    def _auth_headers(token: str):
        return {"Authorization": f"Bearer {token}"}
    return _auth_headers

@pytest.fixture
def make_quiz(db_session):
    """Insert a quiz straight into the question store"""
    def _make_quiz(creator_id=CREATOR_ID, duration=5, questions=None, **fields):
        if questions is None:
            questions = [
                {"text": "What is 2+2?", "options": ["3", "4", "5", "6"], "correct_answer": "4",
                 "marks": 2, "negative_marks": 1},
                {"text": "What is the capital of France?", "options": ["London", "Berlin", "Paris", "Madrid"],
                 "correct_answer": "Paris", "marks": 2, "negative_marks": 1},
            ]
        quiz = Quiz(
            title=fields.pop("title", "Test Quiz"),
            description=fields.pop("description", "A test quiz"),
            creator_id=creator_id,
            duration=duration,
            total_marks=sum(q["marks"] for q in questions),
            **fields,
        )
        quiz.questions = [Question(position=i, **q) for i, q in enumerate(questions)]
        db_session.add(quiz)
        db_session.commit()
        return quiz
    return _make_quiz

@pytest.fixture
def open_quiz(make_quiz):
    """A protected quiz that opened a minute ago"""
    now = utc_now()
    return make_quiz(
        is_protected=True,
        access_code="123456",
        start_time=now - timedelta(minutes=1),
        access_code_expiry=now + timedelta(minutes=4),
    )

@pytest.fixture
def seeded_rng():
    return random.Random(1234)

