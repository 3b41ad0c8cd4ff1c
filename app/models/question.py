from sqlalchemy import Column, Integer, String, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.database import Base
from uuid import uuid4

class Question(Base):
    __tablename__ = "questions"

    id = Column(String, primary_key=True, default=lambda: str(uuid4()))
    quiz_id = Column(String, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    text = Column(String, nullable=False)
    options = Column(JSON, nullable=False)  # ordered list of option values, at least 2
    correct_answer = Column(String, nullable=False)  # matched by value, not index
    marks = Column(Integer, nullable=False, default=1)
    negative_marks = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<Question(id={self.id}, quiz_id={self.quiz_id}, text={self.text[:20]})>"
