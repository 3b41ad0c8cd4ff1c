import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.exceptions import AuthorizationError, ConflictError, NotFoundError
from app.models import Leaderboard, Quiz, Submission
from app.schemas import LeaderboardEntryOut, LeaderboardOut
from app.utils.auth_utils import is_creator
from app.utils.time_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

def rank_entries(entries: List[Dict], limit: Optional[int] = None) -> List[Dict]:
    """
    Order entries by score (desc) then timeTaken (asc) and assign dense ranks.

    An entry shares its predecessor's rank only when both score and timeTaken
    are equal; otherwise it gets the predecessor's rank + 1. The input is not
    modified. With ``limit`` the result is cut to the first ``limit`` entries.
    """
    ordered = sorted(entries, key=lambda entry: (-entry["score"], entry["timeTaken"]))

    ranked = []
    for entry in ordered:
        entry = dict(entry)
        previous = ranked[-1] if ranked else None
        if previous is None:
            entry["rank"] = 1
        elif entry["score"] == previous["score"] and entry["timeTaken"] == previous["timeTaken"]:
            entry["rank"] = previous["rank"]
        else:
            entry["rank"] = previous["rank"] + 1
        ranked.append(entry)

    return ranked[:limit] if limit is not None else ranked

class LeaderboardAggregator:
    """Per-quiz top-N standings, written with optimistic concurrency"""

    def __init__(self, db: Session, size: int = 10, max_retries: int = 5,
                 clock: Callable[[], datetime] = utc_now):
        self.db = db
        self.size = size
        self.max_retries = max_retries
        self.clock = clock

    def record_score(self, quiz_id: str, participant_id: str, participant_name: Optional[str],
                     score: int, time_taken: int) -> Leaderboard:
        entry = {
            "participantId": participant_id,
            "participantName": participant_name,
            "score": score,
            "timeTaken": time_taken,
            "rank": None,
            "submittedAt": self.clock().isoformat(),
        }

        def add_entry(leaderboard: Leaderboard):
            # Assign a new list; in-place JSON mutation isn't tracked
            leaderboard.entries = rank_entries(list(leaderboard.entries or []) + [entry], self.size)

        leaderboard = self._write(quiz_id, add_entry, create_missing=True)
        logger.info(f"Recorded score {score} ({time_taken}ms) for {participant_id} on quiz {quiz_id}")
        return leaderboard

    def get_leaderboard(self, quiz_id: str) -> LeaderboardOut:
        leaderboard = self.db.query(Leaderboard).filter(Leaderboard.quiz_id == quiz_id).one_or_none()
        if leaderboard is None:
            raise NotFoundError("Leaderboard not found")
        return LeaderboardOut(
            quiz_id=quiz_id,
            entries=[LeaderboardEntryOut.model_validate(entry) for entry in leaderboard.entries or []],
        )

    def reset_leaderboard(self, quiz_id: str, caller: dict) -> None:
        """Clear a quiz's entries, keeping the leaderboard itself"""
        self._require_owner(quiz_id, caller, "You are not authorized to reset leaderboard")

        def clear(leaderboard: Leaderboard):
            leaderboard.entries = []

        self._write(quiz_id, clear, create_missing=False)
        logger.info(f"Leaderboard for quiz {quiz_id} reset by {caller['id']}")

    def full_standings(self, quiz_id: str, caller: dict) -> LeaderboardOut:
        """Every participant ranked, computed from submissions rather than the top-N view"""
        self._require_owner(quiz_id, caller, "You are not authorized to view standings")

        submissions = self.db.query(Submission).filter(Submission.quiz_id == quiz_id).all()
        entries = rank_entries([
            {
                "participantId": submission.participant_id,
                "participantName": submission.participant_name,
                "score": submission.score,
                "timeTaken": submission.time_taken,
                "submittedAt": ensure_utc(submission.submitted_at).isoformat(),
            }
            for submission in submissions
        ])
        return LeaderboardOut(
            quiz_id=quiz_id,
            entries=[LeaderboardEntryOut.model_validate(entry) for entry in entries],
        )

    def _require_owner(self, quiz_id: str, caller: dict, message: str) -> Quiz:
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")
        if not is_creator(caller) or quiz.creator_id != caller["id"]:
            raise AuthorizationError(message)
        return quiz

    def _write(self, quiz_id: str, mutate: Callable[[Leaderboard], None], create_missing: bool) -> Leaderboard:
        """Read, mutate and commit, starting over whenever another writer got there first"""
        for attempt in range(1, self.max_retries + 1):
            try:
                leaderboard = (
                    self.db.query(Leaderboard)
                    .filter(Leaderboard.quiz_id == quiz_id)
                    .populate_existing()
                    .one_or_none()
                )
                if leaderboard is None:
                    if not create_missing:
                        raise NotFoundError("Leaderboard not found")
                    leaderboard = Leaderboard(quiz_id=quiz_id, entries=[])
                    self.db.add(leaderboard)

                mutate(leaderboard)
                self.db.commit()
                return leaderboard
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(f"Concurrent leaderboard write on quiz {quiz_id} "
                               f"(attempt {attempt}/{self.max_retries}): {e.__class__.__name__}")

        raise ConflictError("Leaderboard is busy, please retry")
