"""
Providers for the collaborators each route needs.

Process-wide singletons (session store, trivia source, scheduler, broadcaster)
are built once; tests swap them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal, get_db
from app.services.access_gate import AccessGate
from app.services.evaluator import SubmissionEvaluator
from app.services.leaderboard import LeaderboardAggregator
from app.services.publication import PublicationService
from app.services.quizzes import QuizService
from app.services.scheduler import AnnouncementScheduler
from app.services.session_store import InMemorySessionStore, RedisSessionStore, SessionStore
from app.services.trial import TrialService
from app.services.trivia_source import TriviaSource
from app.utils.websocket_manager import broadcaster

@lru_cache(maxsize=1)
def get_session_store() -> SessionStore:
    if settings.redis_url:
        return RedisSessionStore.from_url(settings.redis_url)
    return InMemorySessionStore()

@lru_cache(maxsize=1)
def get_trivia_source() -> TriviaSource:
    return TriviaSource(settings.trivia_api_url, timeout=settings.trivia_timeout_seconds)

@lru_cache(maxsize=1)
def get_scheduler() -> AnnouncementScheduler:
    return AnnouncementScheduler(SessionLocal, broadcaster)

def get_quiz_service(db: Session = Depends(get_db),
                     scheduler: AnnouncementScheduler = Depends(get_scheduler)) -> QuizService:
    return QuizService(db, scheduler)

def get_publication_service(db: Session = Depends(get_db),
                            scheduler: AnnouncementScheduler = Depends(get_scheduler)) -> PublicationService:
    return PublicationService(db, scheduler, access_code_length=settings.access_code_length)

def get_access_gate(db: Session = Depends(get_db)) -> AccessGate:
    return AccessGate(db)

def get_trial_service(store: SessionStore = Depends(get_session_store),
                      source: TriviaSource = Depends(get_trivia_source)) -> TrialService:
    return TrialService(
        store,
        source,
        default_questions=settings.trial_default_questions,
        max_questions=settings.trial_max_questions,
        anonymous_ttl=settings.trial_anonymous_ttl,
        max_ttl=settings.trial_max_ttl,
        single_use=settings.trial_single_use,
    )

def get_leaderboard_aggregator(db: Session = Depends(get_db)) -> LeaderboardAggregator:
    return LeaderboardAggregator(db, size=settings.leaderboard_size,
                                 max_retries=settings.leaderboard_max_retries)

def get_submission_evaluator(db: Session = Depends(get_db),
                             leaderboard: LeaderboardAggregator = Depends(get_leaderboard_aggregator)) -> SubmissionEvaluator:
    return SubmissionEvaluator(db, leaderboard)
