import logging
from datetime import datetime
from typing import Callable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.models import Quiz, Submission
from app.schemas import AnswerIn, SubmissionHistoryItem, SubmissionListItem
from app.services.leaderboard import LeaderboardAggregator
from app.utils.auth_utils import is_creator
from app.utils.time_utils import milliseconds_between, parse_iso_datetime, utc_now

logger = logging.getLogger(__name__)

class SubmissionEvaluator:
    """Scores a participant's single attempt and feeds the leaderboard"""

    def __init__(self, db: Session, leaderboard: LeaderboardAggregator,
                 clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.leaderboard = leaderboard
        self.clock = clock

    def submit(self, caller: dict, quiz_id: str, started_at, answers: List[AnswerIn]) -> Submission:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")

        if quiz.creator_id == caller["id"]:
            raise ConflictError("You can't attempt your own quiz")

        start_time = parse_iso_datetime(started_at)
        if start_time is None:
            raise ValidationError("Quiz start time is required")

        if self._existing(quiz_id, caller["id"]) is not None:
            raise ConflictError("You have already submitted this quiz")

        questions = {question.id: question for question in quiz.questions}
        if not questions:
            raise NotFoundError("No questions found for this quiz")

        score = 0
        evaluated_answers = []
        scored = set()
        for answer in answers:
            question = questions.get(answer.question_id)
            # Unknown ids and repeats of an already scored question count for nothing
            if question is None or question.id in scored:
                continue
            scored.add(question.id)

            is_correct = answer.selected_option == question.correct_answer
            marks_awarded = question.marks if is_correct else -question.negative_marks
            # Negative totals are kept as-is
            score += marks_awarded

            evaluated_answers.append({
                "questionId": question.id,
                "selectedOption": answer.selected_option,
                "correctOption": question.correct_answer,
                "isCorrect": is_correct,
                "marksAwarded": marks_awarded,
            })

        submitted_at = self.clock()
        time_taken = milliseconds_between(start_time, submitted_at)
        if time_taken < 0:
            raise ValidationError("Quiz start time cannot be in the future")

        submission = Submission(
            quiz_id=quiz_id,
            participant_id=caller["id"],
            participant_name=caller.get("name"),
            answers=evaluated_answers,
            score=score,
            total_marks=quiz.total_marks,
            started_at=start_time,
            submitted_at=submitted_at,
            time_taken=time_taken,
        )
        self.db.add(submission)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent submission for the same pair
            self.db.rollback()
            raise ConflictError("You have already submitted this quiz")

        logger.info(f"Submission {submission.id}: {caller['id']} scored {score}/{quiz.total_marks} "
                    f"on quiz {quiz_id} in {time_taken}ms")

        try:
            self.leaderboard.record_score(quiz_id, caller["id"], caller.get("name"), score, time_taken)
        except ConflictError as e:
            # The submission stands; full standings are computed from submissions
            logger.error(f"Submission {submission.id} saved but leaderboard for quiz {quiz_id} "
                         f"was not updated: {e.message}")
        return submission

    def get_my_submission(self, caller: dict, quiz_id: str) -> Submission:
        submission = self._existing(quiz_id, caller["id"])
        if submission is None:
            raise NotFoundError("No submission found")
        return submission

    def history(self, caller: dict) -> List[SubmissionHistoryItem]:
        rows = (
            self.db.query(Submission, Quiz.title)
            .outerjoin(Quiz, Quiz.id == Submission.quiz_id)
            .filter(Submission.participant_id == caller["id"])
            .order_by(Submission.submitted_at.desc())
            .all()
        )
        return [
            SubmissionHistoryItem(
                id=submission.id,
                quiz_id=submission.quiz_id,
                quiz_title=title,
                score=submission.score,
                total_marks=submission.total_marks,
                submitted_at=submission.submitted_at,
            )
            for submission, title in rows
        ]

    def list_for_quiz(self, caller: dict, quiz_id: str) -> List[SubmissionListItem]:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if not is_creator(caller) or quiz.creator_id != caller["id"]:
            raise AuthorizationError("You are not authorized")

        submissions = (
            self.db.query(Submission)
            .filter(Submission.quiz_id == quiz_id)
            .order_by(Submission.score.desc(), Submission.submitted_at.asc())
            .all()
        )
        return [SubmissionListItem.model_validate(submission) for submission in submissions]

    def _existing(self, quiz_id: str, participant_id: str):
        return (
            self.db.query(Submission)
            .filter(Submission.quiz_id == quiz_id, Submission.participant_id == participant_id)
            .one_or_none()
        )
