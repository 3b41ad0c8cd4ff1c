"""
Deferred "quiz started" announcements.

Every armed timer has a ``scheduled_announcements`` row behind it, so a
restart can re-arm what was pending (``reconcile``), and every timer is held
per quiz so re-publishing or deleting a quiz can cancel it.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.models import Quiz, ScheduledAnnouncement
from app.models.realtime import QuizStartedMessage, quiz_topic
from app.models.scheduled_announcement import PENDING, FIRED, CANCELLED, MISSED
from app.services.notifications import NotificationChannel
from app.utils.time_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)

class AnnouncementScheduler:
    def __init__(self, session_factory: Callable[[], Session], channel: NotificationChannel,
                 clock: Callable[[], datetime] = utc_now):
        self.session_factory = session_factory
        self.channel = channel
        self.clock = clock
        self._tasks: Dict[str, asyncio.Task] = {}  # quiz_id -> armed timer

    def is_armed(self, quiz_id: str) -> bool:
        task = self._tasks.get(quiz_id)
        return task is not None and not task.done()

    @property
    def armed_count(self) -> int:
        return sum(1 for task in self._tasks.values() if not task.done())

    def record(self, db: Session, quiz_id: str, fire_at: datetime) -> Optional[ScheduledAnnouncement]:
        """
        Stage the durable side of a schedule in ``db`` (the caller commits).

        Earlier pending jobs for the quiz are cancelled. Returns the new job, or
        None when ``fire_at`` has already passed.
        """
        self._cancel_pending_rows(db, quiz_id)
        if ensure_utc(fire_at) <= self.clock():
            return None
        job = ScheduledAnnouncement(quiz_id=quiz_id, fire_at=ensure_utc(fire_at), status=PENDING)
        db.add(job)
        db.flush()
        return job

    def arm(self, quiz_id: str, job: Optional[ScheduledAnnouncement]) -> None:
        """Replace the quiz's in-process timer with one for ``job`` (after the job is committed)"""
        self._cancel_task(quiz_id)
        if job is None:
            logger.warning(f"Start time for quiz {quiz_id} is in the past. Skipping scheduling.")
            return
        self._start_timer(job.id, quiz_id, ensure_utc(job.fire_at))
        logger.info(f"Armed start announcement for quiz {quiz_id} at {ensure_utc(job.fire_at).isoformat()}")

    def cancel(self, db: Session, quiz_id: str) -> int:
        """Cancel the quiz's timer and mark its pending jobs cancelled (the caller commits)"""
        self._cancel_task(quiz_id)
        cancelled = self._cancel_pending_rows(db, quiz_id)
        if cancelled:
            logger.info(f"Cancelled {cancelled} pending announcement(s) for quiz {quiz_id}")
        return cancelled

    async def reconcile(self) -> Dict[str, int]:
        """Re-arm pending jobs after a restart"""
        counts = {"rearmed": 0, "fired_late": 0, "missed": 0, "cancelled": 0}
        now = self.clock()

        db = self.session_factory()
        try:
            jobs = db.query(ScheduledAnnouncement).filter(ScheduledAnnouncement.status == PENDING).all()
            for job in jobs:
                quiz = db.get(Quiz, job.quiz_id)
                fire_at = ensure_utc(job.fire_at)

                if quiz is None:
                    job.status = CANCELLED
                    counts["cancelled"] += 1
                elif fire_at > now:
                    self._cancel_task(job.quiz_id)
                    self._start_timer(job.id, job.quiz_id, fire_at)
                    counts["rearmed"] += 1
                elif quiz.access_code_expiry and now <= ensure_utc(quiz.access_code_expiry):
                    # Missed while down but the quiz is still open: announce now
                    self._cancel_task(job.quiz_id)
                    self._start_timer(job.id, job.quiz_id, now)
                    counts["fired_late"] += 1
                else:
                    job.status = MISSED
                    counts["missed"] += 1
                    logger.warning(f"Announcement for quiz {job.quiz_id} missed its window; not sent")
            db.commit()
        finally:
            db.close()

        logger.info(f"Announcement reconciliation: {counts}")
        return counts

    async def shutdown(self) -> None:
        """Stop all timers; their jobs stay pending for the next reconcile"""
        tasks = [task for task in self._tasks.values() if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    def _start_timer(self, job_id: str, quiz_id: str, fire_at: datetime) -> None:
        task = asyncio.create_task(self._fire_at(job_id, quiz_id, fire_at))
        self._tasks[quiz_id] = task

        def _forget(done: asyncio.Task, quiz_id=quiz_id):
            if self._tasks.get(quiz_id) is done:
                del self._tasks[quiz_id]

        task.add_done_callback(_forget)

    def _cancel_task(self, quiz_id: str) -> None:
        task = self._tasks.pop(quiz_id, None)
        if task and not task.done():
            task.cancel()

    def _cancel_pending_rows(self, db: Session, quiz_id: str) -> int:
        jobs = (
            db.query(ScheduledAnnouncement)
            .filter(ScheduledAnnouncement.quiz_id == quiz_id, ScheduledAnnouncement.status == PENDING)
            .all()
        )
        for job in jobs:
            job.status = CANCELLED
        return len(jobs)

    async def _fire_at(self, job_id: str, quiz_id: str, fire_at: datetime) -> None:
        delay = (fire_at - self.clock()).total_seconds()
        if delay > 0:
            await asyncio.sleep(delay)

        try:
            delivered = await self.channel.publish(quiz_topic(quiz_id), QuizStartedMessage(quiz_id=quiz_id))
        except Exception:
            # Row stays pending; the next reconcile retries it while the window is open
            logger.exception(f"Failed to announce start of quiz {quiz_id}")
            return

        db = self.session_factory()
        try:
            job = db.get(ScheduledAnnouncement, job_id)
            if job is not None and job.status == PENDING:
                job.status = FIRED
                job.fired_at = self.clock()
                db.commit()
        finally:
            db.close()

        logger.info(f"Quiz {quiz_id} started! Announced to {delivered} subscriber(s)")
