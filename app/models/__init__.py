from .quiz import Quiz
from .question import Question
from .submission import Submission
from .leaderboard import Leaderboard
from .scheduled_announcement import ScheduledAnnouncement

__all__ = ["Quiz", "Question", "Submission", "Leaderboard", "ScheduledAnnouncement"]
