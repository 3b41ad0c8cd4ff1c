from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time_utils import utc_now
from uuid import uuid4

class Submission(Base):
    __tablename__ = "submissions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    quiz_id = Column(String, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(String, nullable=False, index=True)
    participant_name = Column(String, nullable=True)
    # [{questionId, selectedOption, correctOption, isCorrect, marksAwarded}]
    answers = Column(JSON, nullable=False)
    score = Column(Integer, nullable=False, default=0)
    total_marks = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    time_taken = Column(Integer, nullable=False, default=0)  # milliseconds

    # Enforce one submission per participant per quiz
    __table_args__ = (
        UniqueConstraint('quiz_id', 'participant_id', name='unique_quiz_participant_submission'),
    )

    quiz = relationship("Quiz", back_populates="submissions")

    def __repr__(self):
        return f"<Submission(id={self.id}, quiz_id={self.quiz_id}, participant_id={self.participant_id})>"
