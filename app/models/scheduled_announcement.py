from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time_utils import utc_now
from uuid import uuid4

PENDING = "pending"
FIRED = "fired"
CANCELLED = "cancelled"
MISSED = "missed"

class ScheduledAnnouncement(Base):
    __tablename__ = "scheduled_announcements"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    quiz_id = Column(String, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    fire_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=PENDING, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)
    fired_at = Column(DateTime(timezone=True), nullable=True)

    quiz = relationship("Quiz", back_populates="announcements")

    def __repr__(self):
        return f"<ScheduledAnnouncement(quiz_id={self.quiz_id}, fire_at={self.fire_at}, status={self.status})>"
