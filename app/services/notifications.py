from typing import List, Protocol, Tuple
from app.models.realtime import BaseMessage

class NotificationChannel(Protocol):
    """Push side of the system: anything that can broadcast a message to a topic"""

    async def publish(self, topic: str, message: BaseMessage) -> int:
        """Deliver ``message`` to every subscriber of ``topic``; return how many received it"""
        ...

class RecordingChannel:
    """Channel that keeps published messages in memory instead of sending them"""

    def __init__(self):
        self.published: List[Tuple[str, BaseMessage]] = []

    async def publish(self, topic: str, message: BaseMessage) -> int:
        self.published.append((topic, message))
        return 1
