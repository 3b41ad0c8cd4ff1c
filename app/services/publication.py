import logging
import secrets
import string
from datetime import timedelta

from sqlalchemy.orm import Session

from app.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.models import Quiz
from app.schemas import PublishResult
from app.services.scheduler import AnnouncementScheduler
from app.utils.auth_utils import is_creator
from app.utils.time_utils import parse_iso_datetime

logger = logging.getLogger(__name__)

def generate_access_code(length: int = 6) -> str:
    """Generate a random numeric access code"""
    return ''.join(secrets.choice(string.digits) for _ in range(length))

class PublicationService:
    def __init__(self, db: Session, scheduler: AnnouncementScheduler, access_code_length: int = 6):
        self.db = db
        self.scheduler = scheduler
        self.access_code_length = access_code_length

    def publish(self, quiz_id: str, requester: dict, start_time) -> PublishResult:
        """Protect a quiz with a fresh access code and open it at ``start_time``"""
        quiz = self.db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found")

        if not is_creator(requester) or quiz.creator_id != requester["id"]:
            raise AuthorizationError("You are not authorized to publish this quiz")

        quiz_start_time = parse_iso_datetime(start_time)
        if quiz_start_time is None:
            raise ValidationError("Invalid start time")

        access_code = generate_access_code(self.access_code_length)
        expiry = quiz_start_time + timedelta(minutes=quiz.duration)

        quiz.is_protected = True
        quiz.access_code = access_code
        quiz.start_time = quiz_start_time
        quiz.access_code_expiry = expiry

        job = self.scheduler.record(self.db, quiz.id, quiz_start_time)
        self.db.commit()
        self.scheduler.arm(quiz.id, job)

        logger.info(f"Quiz {quiz.id} published, opens at {quiz_start_time.isoformat()}")
        return PublishResult(
            access_code=access_code,
            start_time=quiz_start_time,
            access_code_expiry=expiry,
        )
