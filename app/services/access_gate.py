import math
from datetime import datetime
from typing import Callable, Optional, Union

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, NotFoundError
from app.models import Quiz
from app.schemas import (
    CreatorQuestion, CreatorQuizView, ParticipantQuestion, ParticipantQuizView, QuizCountdown, QuizSummary,
)
from app.utils.auth_utils import CREATOR, PARTICIPANT
from app.utils.time_utils import ensure_utc, utc_now

class AccessGate:
    """Decides what a reader may see of a quiz right now"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.clock = clock

    def read_quiz(self, quiz_id: str, requester: dict,
                  access_code: Optional[str] = None) -> Union[QuizCountdown, ParticipantQuizView, CreatorQuizView]:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")

        role = requester.get("role")
        if role == CREATOR:
            return self.creator_view(quiz)
        if role != PARTICIPANT:
            raise AuthorizationError("Invalid role")

        now = self.clock()
        start_time = ensure_utc(quiz.start_time)
        if start_time is not None and start_time > now:
            # Nothing but the countdown before the quiz opens
            return QuizCountdown(
                quiz_id=quiz.id,
                title=quiz.title,
                description=quiz.description,
                start_time=start_time,
                starts_in_seconds=math.ceil((start_time - now).total_seconds()),
            )

        if quiz.is_protected:
            if access_code is None or quiz.access_code != access_code:
                raise AuthorizationError("Invalid access code")
            expiry = ensure_utc(quiz.access_code_expiry)
            if expiry is not None and expiry < now:
                raise AuthorizationError("Access code expired")

        return self.participant_view(quiz)

    def participant_view(self, quiz: Quiz) -> ParticipantQuizView:
        return ParticipantQuizView(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            creator_id=quiz.creator_id,
            duration=quiz.duration,
            total_marks=quiz.total_marks,
            is_protected=quiz.is_protected,
            start_time=ensure_utc(quiz.start_time),
            questions=[ParticipantQuestion.model_validate(q) for q in quiz.questions],
        )

    def creator_view(self, quiz: Quiz) -> CreatorQuizView:
        return CreatorQuizView(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            creator_id=quiz.creator_id,
            duration=quiz.duration,
            total_marks=quiz.total_marks,
            is_protected=quiz.is_protected,
            start_time=ensure_utc(quiz.start_time),
            access_code=quiz.access_code,
            access_code_expiry=ensure_utc(quiz.access_code_expiry),
            questions=[CreatorQuestion.model_validate(q) for q in quiz.questions],
        )

    def summary_view(self, quiz: Quiz) -> QuizSummary:
        """Catalogue entry: no questions, no access code"""
        return QuizSummary(
            id=quiz.id,
            title=quiz.title,
            description=quiz.description,
            creator_id=quiz.creator_id,
            duration=quiz.duration,
            total_marks=quiz.total_marks,
            is_protected=quiz.is_protected,
            start_time=ensure_utc(quiz.start_time),
            question_count=len(quiz.questions),
        )
