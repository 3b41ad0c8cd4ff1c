from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

class MessageResponse(CamelModel):
    success: bool = True
    message: str

# Quizzes

class QuestionCreate(CamelModel):
    text: str = Field(min_length=1, max_length=500)
    options: List[str]
    correct_answer: str
    marks: int = Field(default=1, ge=0)
    negative_marks: int = Field(default=0, ge=0)

    @field_validator("options")
    @classmethod
    def at_least_two_options(cls, options):
        if len(options) < 2:
            raise ValueError("A question must have at least 2 options")
        return options

    @model_validator(mode="after")
    def correct_answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError("Correct answer must be one of the options")
        return self

class QuizCreate(CamelModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    duration: int = Field(gt=0)  # minutes
    questions: List[QuestionCreate] = Field(min_length=1, max_length=50)

class QuizCreated(CamelModel):
    quiz_id: str
    title: str
    total_marks: int

class PublishRequest(CamelModel):
    start_time: Optional[str] = None

class PublishResult(CamelModel):
    access_code: str
    start_time: datetime
    access_code_expiry: datetime

class QuizCountdown(CamelModel):
    view: Literal["countdown"] = "countdown"
    quiz_id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    starts_in_seconds: int

class ParticipantQuestion(CamelModel):
    id: str
    text: str
    options: List[str]
    marks: int
    negative_marks: int

class CreatorQuestion(ParticipantQuestion):
    correct_answer: str

class ParticipantQuizView(CamelModel):
    view: Literal["participant"] = "participant"
    id: str
    title: str
    description: Optional[str] = None
    creator_id: str
    duration: int
    total_marks: int
    is_protected: bool
    start_time: Optional[datetime] = None
    questions: List[ParticipantQuestion]

class CreatorQuizView(CamelModel):
    view: Literal["creator"] = "creator"
    id: str
    title: str
    description: Optional[str] = None
    creator_id: str
    duration: int
    total_marks: int
    is_protected: bool
    start_time: Optional[datetime] = None
    access_code: Optional[str] = None
    access_code_expiry: Optional[datetime] = None
    questions: List[CreatorQuestion]

class QuizSummary(CamelModel):
    view: Literal["summary"] = "summary"
    id: str
    title: str
    description: Optional[str] = None
    creator_id: str
    duration: int
    total_marks: int
    is_protected: bool
    start_time: Optional[datetime] = None
    question_count: int

QuizView = Annotated[
    Union[QuizCountdown, ParticipantQuizView, CreatorQuizView],
    Field(discriminator="view"),
]

QuizListing = Annotated[
    Union[QuizSummary, CreatorQuizView],
    Field(discriminator="view"),
]

# Instant trial

class TrialQuestion(CamelModel):
    prompt: str
    options: List[str]

class TrialStart(CamelModel):
    session_id: str
    quiz: List[TrialQuestion]

class TrialSubmitRequest(CamelModel):
    session_id: str = Field(min_length=1)
    answers: List[Optional[str]]

class TrialFeedback(CamelModel):
    prompt: str
    selected: Optional[str] = None
    correct: str
    is_correct: bool

class TrialResult(CamelModel):
    score: int
    total: int
    feedback: Optional[List[TrialFeedback]] = None

# Submissions

class AnswerIn(CamelModel):
    question_id: str
    selected_option: str

class SubmissionRequest(CamelModel):
    quiz_id: str
    started_at: Optional[str] = None
    answers: List[AnswerIn]

class EvaluatedAnswer(CamelModel):
    question_id: str
    selected_option: str
    correct_option: str
    is_correct: bool
    marks_awarded: int

class SubmissionSummary(CamelModel):
    id: str
    quiz_id: str
    participant_id: str
    score: int
    total_marks: int
    started_at: datetime
    submitted_at: datetime
    time_taken: int  # milliseconds
    answers: List[EvaluatedAnswer]

class SubmissionHistoryItem(CamelModel):
    id: str
    quiz_id: str
    quiz_title: Optional[str] = None
    score: int
    total_marks: int
    submitted_at: datetime

class SubmissionListItem(CamelModel):
    id: str
    participant_id: str
    participant_name: Optional[str] = None
    score: int
    total_marks: int
    time_taken: int
    submitted_at: datetime

# Leaderboards

class LeaderboardEntryOut(CamelModel):
    rank: Optional[int] = None
    participant_id: str
    participant_name: Optional[str] = None
    score: int
    time_taken: int
    submitted_at: datetime

class LeaderboardOut(CamelModel):
    quiz_id: str
    entries: List[LeaderboardEntryOut]
