from sqlalchemy import Column, String, DateTime, Integer, Boolean, CheckConstraint
from sqlalchemy.orm import relationship
from app.database import Base
from app.utils.time_utils import utc_now
from uuid import uuid4

class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    creator_id = Column(String, nullable=False, index=True)  # identity provider user id
    duration = Column(Integer, nullable=False)  # In minutes
    total_marks = Column(Integer, nullable=False, default=0)
    is_protected = Column(Boolean, nullable=False, default=False)
    access_code = Column(String, nullable=True)
    access_code_expiry = Column(DateTime(timezone=True), nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    # A protected quiz always carries its code and expiry
    __table_args__ = (
        CheckConstraint(
            "NOT is_protected OR (access_code IS NOT NULL AND access_code_expiry IS NOT NULL)",
            name="protected_quiz_has_access_code",
        ),
    )

    # Relationships
    questions = relationship(
        "Question",
        back_populates="quiz",
        order_by="Question.position",
        cascade="all, delete-orphan",
    )
    submissions = relationship("Submission", back_populates="quiz", cascade="all, delete-orphan")
    leaderboard = relationship("Leaderboard", back_populates="quiz", uselist=False, cascade="all, delete-orphan")
    announcements = relationship("ScheduledAnnouncement", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title={self.title}, is_protected={self.is_protected})>"
