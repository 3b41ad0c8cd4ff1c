from pydantic import BaseModel
from typing import Optional
from enum import Enum
import time

class MessageType(str, Enum):
    # Client messages
    JOIN_QUIZ = "join_quiz"
    LEAVE_QUIZ = "leave_quiz"

    # Server acknowledgements
    CONNECTED = "connected"
    JOINED = "joined"
    LEFT = "left"

    # Broadcast messages
    QUIZ_STARTED = "quiz_started"

    # Status messages
    ERROR = "error"
    HEARTBEAT = "heartbeat"

def quiz_topic(quiz_id: str) -> str:
    """Broadcast topic for one quiz"""
    return f"quiz:{quiz_id}"

class BaseMessage(BaseModel):
    type: MessageType
    timestamp: Optional[float] = None

    def __init__(self, **data):
        if 'timestamp' not in data:
            data['timestamp'] = time.time()
        super().__init__(**data)

# Client Messages
class JoinQuizMessage(BaseMessage):
    type: MessageType = MessageType.JOIN_QUIZ
    quiz_id: str

class LeaveQuizMessage(BaseMessage):
    type: MessageType = MessageType.LEAVE_QUIZ
    quiz_id: str

# Server Messages
class ConnectedMessage(BaseMessage):
    type: MessageType = MessageType.CONNECTED
    connection_id: str

class JoinedMessage(BaseMessage):
    type: MessageType = MessageType.JOINED
    quiz_id: str

class LeftMessage(BaseMessage):
    type: MessageType = MessageType.LEFT
    quiz_id: str

class QuizStartedMessage(BaseMessage):
    type: MessageType = MessageType.QUIZ_STARTED
    quiz_id: str

# Status Messages
class ErrorMessage(BaseMessage):
    type: MessageType = MessageType.ERROR
    message: str

class HeartbeatMessage(BaseMessage):
    type: MessageType = MessageType.HEARTBEAT
