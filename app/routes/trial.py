from fastapi import APIRouter, Depends, Query
from typing import Optional
from app.dependencies import get_trial_service
from app.schemas import TrialResult, TrialStart, TrialSubmitRequest
from app.services.trial import TrialService
from app.utils.auth_utils import get_current_user_optional

router = APIRouter()

@router.get("/start", response_model=TrialStart)
async def start_trial(number_of_questions: Optional[int] = Query(None, alias="numberOfQuestions"),
                      current_user: Optional[dict] = Depends(get_current_user_optional),
                      trials: TrialService = Depends(get_trial_service)):
    """Start an instant trial; signed-in users may choose the number of questions"""
    return await trials.start_trial(current_user, number_of_questions)

@router.post("/submit", response_model=TrialResult, response_model_exclude_none=True)
async def submit_trial(body: TrialSubmitRequest,
                       current_user: Optional[dict] = Depends(get_current_user_optional),
                       trials: TrialService = Depends(get_trial_service)):
    """Score an instant trial; feedback is only returned to signed-in users"""
    return trials.submit_trial(current_user, body.session_id, body.answers)
