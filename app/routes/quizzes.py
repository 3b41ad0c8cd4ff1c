from fastapi import APIRouter, Depends, Query, status
from typing import List, Optional
from app.dependencies import get_access_gate, get_publication_service, get_quiz_service
from app.schemas import MessageResponse, PublishRequest, PublishResult, QuizCreate, QuizCreated, QuizListing, QuizView
from app.services.access_gate import AccessGate
from app.services.publication import PublicationService
from app.services.quizzes import QuizService
from app.utils.auth_utils import get_current_user

router = APIRouter()

@router.post("", response_model=QuizCreated, status_code=status.HTTP_201_CREATED)
async def create_quiz(quiz_data: QuizCreate,
                      current_user: dict = Depends(get_current_user),
                      quizzes: QuizService = Depends(get_quiz_service)):
    """Create a quiz with its questions"""
    return quizzes.create(current_user, quiz_data)

@router.get("", response_model=List[QuizListing])
async def list_quizzes(current_user: dict = Depends(get_current_user),
                       quizzes: QuizService = Depends(get_quiz_service)):
    """Own quizzes for creators, the catalogue without questions for participants"""
    return quizzes.list_for(current_user)

@router.post("/{quiz_id}/publish", response_model=PublishResult)
async def publish_quiz(quiz_id: str, body: PublishRequest,
                       current_user: dict = Depends(get_current_user),
                       publication: PublicationService = Depends(get_publication_service)):
    """Protect a quiz with a fresh access code and schedule its opening"""
    return publication.publish(quiz_id, current_user, body.start_time)

@router.get("/{quiz_id}", response_model=QuizView)
async def get_quiz(quiz_id: str,
                   access_code: Optional[str] = Query(None, alias="accessCode"),
                   current_user: dict = Depends(get_current_user),
                   gate: AccessGate = Depends(get_access_gate)):
    """Countdown before the start, the gated quiz after it, or the full record for creators"""
    return gate.read_quiz(quiz_id, current_user, access_code)

@router.delete("/{quiz_id}", response_model=MessageResponse)
async def delete_quiz(quiz_id: str,
                      current_user: dict = Depends(get_current_user),
                      quizzes: QuizService = Depends(get_quiz_service)):
    """Delete a quiz and cancel its pending start announcement"""
    quizzes.delete(quiz_id, current_user)
    return MessageResponse(message="Quiz deleted successfully")
