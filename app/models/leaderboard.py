from sqlalchemy import Column, Integer, String, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time_utils import utc_now
from uuid import uuid4

class Leaderboard(Base):
    __tablename__ = "leaderboards"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    quiz_id = Column(String, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, unique=True)
    # [{participantId, participantName, score, timeTaken, rank, submittedAt}], ranked and truncated
    entries = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    # UPDATEs carry "WHERE version = :old"; a concurrent writer makes them match nothing
    __mapper_args__ = {"version_id_col": version}

    quiz = relationship("Quiz", back_populates="leaderboard")

    def __repr__(self):
        return f"<Leaderboard(quiz_id={self.quiz_id}, entries={len(self.entries or [])}, version={self.version})>"
