from fastapi import APIRouter, Depends, status
from typing import List
from app.dependencies import get_submission_evaluator
from app.schemas import SubmissionHistoryItem, SubmissionListItem, SubmissionRequest, SubmissionSummary
from app.services.evaluator import SubmissionEvaluator
from app.utils.auth_utils import get_current_user

router = APIRouter()

@router.post("", response_model=SubmissionSummary, status_code=status.HTTP_201_CREATED)
async def submit_quiz(body: SubmissionRequest,
                      current_user: dict = Depends(get_current_user),
                      evaluator: SubmissionEvaluator = Depends(get_submission_evaluator)):
    """Submit quiz answers (once per quiz)"""
    return evaluator.submit(current_user, body.quiz_id, body.started_at, body.answers)

@router.get("/history", response_model=List[SubmissionHistoryItem])
async def get_history(current_user: dict = Depends(get_current_user),
                      evaluator: SubmissionEvaluator = Depends(get_submission_evaluator)):
    """Get every quiz the current user has attempted"""
    return evaluator.history(current_user)

@router.get("/{quiz_id}/mine", response_model=SubmissionSummary)
async def get_my_submission(quiz_id: str,
                            current_user: dict = Depends(get_current_user),
                            evaluator: SubmissionEvaluator = Depends(get_submission_evaluator)):
    """Get current user's submission for a quiz"""
    return evaluator.get_my_submission(current_user, quiz_id)

@router.get("/{quiz_id}/all", response_model=List[SubmissionListItem])
async def get_quiz_submissions(quiz_id: str,
                               current_user: dict = Depends(get_current_user),
                               evaluator: SubmissionEvaluator = Depends(get_submission_evaluator)):
    """Get all submissions for a quiz (only for quiz creator)"""
    return evaluator.list_for_quiz(current_user, quiz_id)
