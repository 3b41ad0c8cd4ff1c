"""
Instant trials: a throwaway quiz drawn from the public trivia source.

The answer key never reaches the client. It lives in the session store under a
random session id for as long as the participant could plausibly need, and
answers are scored by position against it.
"""

import logging
import random
from typing import List, Optional
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool

from app.exceptions import NotFoundError, ValidationError
from app.schemas import TrialFeedback, TrialQuestion, TrialResult, TrialStart
from app.services.session_store import SessionStore
from app.services.trivia_source import TriviaSource

logger = logging.getLogger(__name__)

class TrialService:
    def __init__(self, store: SessionStore, source: TriviaSource,
                 default_questions: int = 5, max_questions: int = 50,
                 anonymous_ttl: int = 600, max_ttl: int = 3600,
                 single_use: bool = False, rng: random.Random = None):
        self.store = store
        self.source = source
        self.default_questions = default_questions
        self.max_questions = max_questions
        self.anonymous_ttl = anonymous_ttl
        self.max_ttl = max_ttl
        self.single_use = single_use
        self.rng = rng or random.SystemRandom()

    def plan(self, caller: Optional[dict], requested_count: Optional[int]):
        """Return ``(question_count, ttl_seconds)`` for a new trial"""
        if requested_count is not None and requested_count < 1:
            raise ValidationError("numberOfQuestions must be at least 1")

        # Only signed-in callers get to pick the size
        if caller is None or requested_count is None:
            return self.default_questions, self.anonymous_ttl

        count = min(requested_count, self.max_questions)
        # A minute per question plus five minutes of slack, capped
        ttl = min(count * 60 + 300, self.max_ttl)
        return count, ttl

    async def start_trial(self, caller: Optional[dict], requested_count: Optional[int] = None) -> TrialStart:
        count, ttl = self.plan(caller, requested_count)
        questions = await run_in_threadpool(self.source.fetch_questions, count)

        client_quiz: List[TrialQuestion] = []
        answer_key = []
        for question in questions:
            options = question["distractors"] + [question["correct_answer"]]
            # Fresh order per question so position gives nothing away
            self.rng.shuffle(options)
            client_quiz.append(TrialQuestion(prompt=question["prompt"], options=options))
            answer_key.append({
                "prompt": question["prompt"],
                "correctAnswer": question["correct_answer"],
                "distractors": question["distractors"],
                "options": options,
            })

        session_id = str(uuid4())
        self.store.set(session_id, answer_key, ttl)
        logger.info(f"Trial {session_id} started with {len(answer_key)} questions, ttl={ttl}s, "
                    f"{'authenticated' if caller else 'anonymous'}")
        return TrialStart(session_id=session_id, quiz=client_quiz)

    def submit_trial(self, caller: Optional[dict], session_id: str, answers: List[Optional[str]]) -> TrialResult:
        answer_key = self.store.get(session_id)
        if answer_key is None:
            raise NotFoundError("Session expired or invalid")

        score = 0
        feedback = []
        for index, entry in enumerate(answer_key):
            selected = answers[index] if index < len(answers) else None
            is_correct = selected is not None and selected == entry["correctAnswer"]
            if is_correct:
                score += 1
            feedback.append(TrialFeedback(
                prompt=entry["prompt"],
                selected=selected,
                correct=entry["correctAnswer"],
                is_correct=is_correct,
            ))

        if self.single_use:
            self.store.delete(session_id)

        # Anonymous callers only learn their score
        return TrialResult(
            score=score,
            total=len(answer_key),
            feedback=feedback if caller is not None else None,
        )
