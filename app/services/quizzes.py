import logging
from typing import List, Union

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, NotFoundError
from app.models import Question, Quiz
from app.schemas import CreatorQuizView, QuizCreate, QuizCreated, QuizSummary
from app.services.access_gate import AccessGate
from app.services.scheduler import AnnouncementScheduler
from app.utils.auth_utils import CREATOR, PARTICIPANT, is_creator

logger = logging.getLogger(__name__)

class QuizService:
    """Seeding and removal of quizzes; editing is out of scope"""

    def __init__(self, db: Session, scheduler: AnnouncementScheduler):
        self.db = db
        self.scheduler = scheduler

    def create(self, creator: dict, quiz_data: QuizCreate) -> QuizCreated:
        if not is_creator(creator):
            raise AuthorizationError("Only creators can create quizzes")

        quiz = Quiz(
            title=quiz_data.title,
            description=quiz_data.description,
            creator_id=creator["id"],
            duration=quiz_data.duration,
            total_marks=sum(question.marks for question in quiz_data.questions),
        )
        quiz.questions = [
            Question(
                position=position,
                text=question.text,
                options=list(question.options),
                correct_answer=question.correct_answer,
                marks=question.marks,
                negative_marks=question.negative_marks,
            )
            for position, question in enumerate(quiz_data.questions)
        ]
        self.db.add(quiz)
        self.db.commit()

        logger.info(f"Quiz {quiz.id} created by {creator['id']} with {len(quiz.questions)} questions")
        return QuizCreated(quiz_id=quiz.id, title=quiz.title, total_marks=quiz.total_marks)

    def list_for(self, caller: dict) -> List[Union[QuizSummary, CreatorQuizView]]:
        """Creators get their own quizzes in full, participants a catalogue of every quiz"""
        gate = AccessGate(self.db)
        role = caller.get("role")
        if role == CREATOR:
            quizzes = (self.db.query(Quiz)
                       .filter(Quiz.creator_id == caller["id"])
                       .order_by(Quiz.created_at)
                       .all())
            return [gate.creator_view(quiz) for quiz in quizzes]
        if role == PARTICIPANT:
            return [gate.summary_view(quiz) for quiz in self.db.query(Quiz).order_by(Quiz.created_at).all()]
        raise AuthorizationError("Invalid role")

    def delete(self, quiz_id: str, caller: dict) -> None:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if not is_creator(caller) or quiz.creator_id != caller["id"]:
            raise AuthorizationError("You are not authorized to delete this quiz")

        self.scheduler.cancel(self.db, quiz_id)
        self.db.delete(quiz)
        self.db.commit()
        logger.info(f"Quiz {quiz_id} deleted by {caller['id']}")
